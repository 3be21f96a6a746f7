from __future__ import annotations

import math
from pathlib import Path
import sys

import pytest

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from datadesk.errors import QueryExecutionError, ValidationError
from datadesk.query_context import QueryContext, storage_names, validate_select


@pytest.fixture()
def ctx():
    context = QueryContext()
    context.load(
        [
            {"first name": "Ann", "v": 10, "ok": True},
            {"first name": "Bob", "v": 9, "ok": False},
            {"first name": "Cy", "v": None},
        ]
    )
    yield context
    context.close()


def test_count_rows(ctx: QueryContext) -> None:
    result = ctx.query("SELECT COUNT(*) AS n FROM dataset")
    assert result.error is None
    assert result.rows == [{"n": 3}]
    assert result.columns == ["n"]
    assert result.row_count == 1
    assert result.execution_time_ms >= 0


def test_bracket_identifiers(ctx: QueryContext) -> None:
    result = ctx.query("select [first name] FROM dataset WHERE [v] > 9")
    assert result.rows == [{"first name": "Ann"}]


def test_booleans_and_missing_cells(ctx: QueryContext) -> None:
    result = ctx.query("SELECT ok FROM dataset ORDER BY [first name]")
    assert [r["ok"] for r in result.rows] == [1, 0, None]
    assert ctx.columns == ["first name", "v", "ok"]


def test_number_columns_get_numeric_affinity() -> None:
    context = QueryContext()
    context.load([{"v": "10"}, {"v": "9"}], {"v": "number"})
    result = context.query("SELECT v FROM dataset ORDER BY v")
    assert [r["v"] for r in result.rows] == [9, 10]
    context.close()


def test_stdev_aggregate() -> None:
    context = QueryContext()
    context.load([{"v": v} for v in [2, 4, 4, 4, 5, 5, 7, 9]])
    result = context.query("SELECT STDEV(v) AS s FROM dataset")
    assert result.rows[0]["s"] == pytest.approx(math.sqrt(32 / 7))
    context.close()


def test_only_select_is_allowed(ctx: QueryContext) -> None:
    with pytest.raises(ValidationError, match="Only SELECT"):
        ctx.query("DELETE FROM dataset")
    with pytest.raises(ValidationError, match="empty"):
        ctx.query("   ")
    assert validate_select("  select 1 ") == "select 1"


def test_engine_fault_is_reported_not_raised(ctx: QueryContext) -> None:
    result = ctx.query("SELECT nope FROM dataset")
    assert result.error
    assert result.rows == []
    assert result.row_count == 0
    with pytest.raises(QueryExecutionError):
        result.raise_for_error()


def test_reload_replaces_table(ctx: QueryContext) -> None:
    ctx.load([{"x": 1}])
    assert ctx.query("SELECT * FROM dataset").rows == [{"x": 1}]
    ctx.load([])
    assert ctx.columns == []
    assert ctx.query("SELECT * FROM dataset").error


def test_custom_table_name() -> None:
    context = QueryContext("people")
    context.load([{"a": 1}])
    assert context.query("SELECT a FROM people").rows == [{"a": 1}]
    context.close()


def test_storage_names_suffix_case_duplicates() -> None:
    assert storage_names(["a", "b"]) == {}
    assert storage_names(["Name", "name", "NAME"]) == {"name": "name_2", "NAME": "NAME_3"}
    assert storage_names(["Name", "name", "name_2"]) == {"name": "name_3"}


def test_case_duplicate_columns_keep_their_own_values() -> None:
    context = QueryContext()
    context.load([{"Name": "a", "name": "b"}])
    assert context.query("SELECT * FROM dataset").rows == [{"Name": "a", "name": "b"}]
    assert context.query("SELECT [name] FROM dataset").rows == [{"name": "b"}]
    assert context.query("SELECT [Name] AS x FROM dataset").rows == [{"x": "a"}]
    context.close()
