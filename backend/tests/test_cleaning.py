from __future__ import annotations

from pathlib import Path
import sys

import pytest

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from datadesk.cleaning import clean_dataset, count_matches, find_replace, remove_duplicates
from datadesk.errors import ValidationError
from datadesk.profiling import profile_dataset


def _raw_rows() -> list[dict]:
    return [
        {"name": " Alice ", "age": "30"},
        {"name": " Alice ", "age": "30"},
        {"name": "Bob", "age": None},
        {"name": None, "age": "40"},
    ]


def _auto_clean(rows: list[dict]):
    return clean_dataset(rows, profile_dataset(rows).column_stats)


def test_remove_duplicates_keeps_first_in_order() -> None:
    rows = [{"a": 1}, {"a": 2}, {"a": 1}, {"a": 3}, {"a": 2}]
    unique, removed = remove_duplicates(rows)
    assert unique == [{"a": 1}, {"a": 2}, {"a": 3}]
    assert removed == 2


def test_clean_dataset_pipeline() -> None:
    cleaned, summary = _auto_clean(_raw_rows())

    assert cleaned == [
        {"name": "Alice", "age": 30},
        {"name": "Bob", "age": 30},
        {"name": "Alice", "age": 40},
    ]
    assert summary.total_rows_before == 4
    assert summary.total_rows_after == 3
    assert summary.duplicates_removed == 1
    assert [(a.column, a.action, a.affected_rows) for a in summary.actions] == [
        ("All", "Remove duplicates", 1),
        ("name", "Fill missing with mode", 1),
        ("name", "Trim whitespace", 2),
        ("age", "Fill missing with median", 1),
    ]


def test_clean_dataset_does_not_mutate_input() -> None:
    rows = _raw_rows()
    _auto_clean(rows)
    assert rows == _raw_rows()


def test_clean_dataset_is_idempotent() -> None:
    cleaned, _ = _auto_clean(_raw_rows())
    again, summary = _auto_clean(cleaned)
    assert summary.actions == []
    assert again == cleaned


def test_all_missing_column_fills_with_empty_string_once() -> None:
    rows = [{"a": 1, "b": None}, {"a": 2, "b": None}]
    cleaned, summary = _auto_clean(rows)
    assert [r["b"] for r in cleaned] == ["", ""]
    assert summary.actions[0].action == "Fill missing with empty string"
    _, second = _auto_clean(cleaned)
    assert second.actions == []


def test_numeric_fill_falls_back_to_zero() -> None:
    rows = [{"v": None}, {"v": 1}]
    stats = profile_dataset(rows).column_stats
    # Stats with no numeric summary force the zero fallback.
    bare = [stats[0].model_copy(update={"median": None, "mean": None})]
    cleaned, summary = clean_dataset(rows, bare)
    assert cleaned[0]["v"] == 0
    assert summary.actions[0].action == "Fill missing with zero"


def test_find_replace_escapes_metacharacters() -> None:
    rows = [{"p": "a.b"}, {"p": "axb"}]
    updated, action = find_replace(rows, "p", ".", "-")
    assert [r["p"] for r in updated] == ["a-b", "axb"]
    assert action.affected_rows == 1
    assert action.action == "Find and Replace"
    assert rows[0]["p"] == "a.b"


def test_find_replace_whole_word() -> None:
    rows = [{"t": "cat catalog cat"}]
    updated, _ = find_replace(rows, "t", "cat", "dog", whole_word=True)
    assert updated[0]["t"] == "dog catalog dog"


def test_find_replace_case_sensitivity() -> None:
    rows = [{"t": "Cat"}, {"t": "cat"}]
    insensitive, action = find_replace(rows, "t", "cat", "dog")
    assert [r["t"] for r in insensitive] == ["dog", "dog"]
    assert action.affected_rows == 2

    sensitive, action = find_replace(rows, "t", "cat", "dog", match_case=True)
    assert [r["t"] for r in sensitive] == ["Cat", "dog"]
    assert action.affected_rows == 1


def test_find_replace_replacement_is_literal() -> None:
    rows = [{"t": "abc"}]
    updated, _ = find_replace(rows, "t", "b", r"\1$&")
    assert updated[0]["t"] == r"a\1$&c"


def test_find_replace_skips_missing_cells() -> None:
    rows = [{"t": None}, {"t": ""}, {"t": "a0b"}]
    updated, action = find_replace(rows, "t", "0", "9")
    assert updated[0]["t"] is None
    assert updated[1]["t"] == ""
    assert updated[2]["t"] == "a9b"
    assert action.affected_rows == 1


def test_count_matches_counts_occurrences_not_rows() -> None:
    rows = [{"t": "a a a"}, {"t": "A"}, {"t": None}]
    assert count_matches(rows, "t", "a") == 4
    assert count_matches(rows, "t", "a", match_case=True) == 3


def test_find_requires_term_and_known_column() -> None:
    rows = [{"t": "a"}]
    with pytest.raises(ValidationError):
        find_replace(rows, "t", "", "x")
    with pytest.raises(ValidationError):
        count_matches(rows, "missing", "a")
