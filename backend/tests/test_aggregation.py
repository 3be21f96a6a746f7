from __future__ import annotations

from pathlib import Path
import sys

import pytest

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from datadesk.aggregation import perform_aggregation
from datadesk.errors import ValidationError
from datadesk.models import AggregationConfig, AggregationSpec


def _config(group_by: list[str], *aggs: tuple[str, str]) -> AggregationConfig:
    return AggregationConfig(
        group_by_columns=group_by,
        aggregations=[AggregationSpec(column=c, function=f) for c, f in aggs],
    )


def test_sum_by_group_in_first_seen_order() -> None:
    rows = [{"g": "a", "v": 10}, {"g": "a", "v": 20}, {"g": "b", "v": 5}]
    result = perform_aggregation(rows, _config(["g"], ("v", "sum")))
    assert result == [{"g": "a", "sum_v": 30}, {"g": "b", "sum_v": 5}]


def test_all_functions() -> None:
    rows = [
        {"g": "a", "v": 1},
        {"g": "a", "v": "2"},
        {"g": "a", "v": 2},
        {"g": "a", "v": None},
        {"g": "a", "v": "n/a"},
    ]
    result = perform_aggregation(
        rows,
        _config(["g"], ("v", "count"), ("v", "sum"), ("v", "avg"), ("v", "median"), ("v", "min"), ("v", "max")),
    )
    assert result == [{
        "g": "a",
        "count_v": 4,
        "sum_v": 5,
        "avg_v": 1.67,
        "median_v": 2,
        "min_v": 1,
        "max_v": 2,
    }]


def test_even_median() -> None:
    rows = [{"v": 1}, {"v": 2}, {"v": 3}, {"v": 10}]
    assert perform_aggregation(rows, _config([], ("v", "median"))) == [{"median_v": 2.5}]


def test_non_numeric_group_falls_back_to_zero() -> None:
    rows = [{"g": "a", "v": "x"}]
    result = perform_aggregation(rows, _config(["g"], ("v", "avg"), ("v", "min"), ("v", "sum")))
    assert result == [{"g": "a", "avg_v": 0, "min_v": 0, "sum_v": 0}]


def test_group_keys_are_stringified() -> None:
    rows = [{"g": 1, "v": 1}, {"g": "1", "v": 2}, {"g": None, "v": 3}]
    result = perform_aggregation(rows, _config(["g"], ("v", "sum")))
    assert result == [{"g": "1", "sum_v": 3}, {"g": "", "sum_v": 3}]


def test_multi_column_keys_do_not_collide() -> None:
    rows = [{"a": "x|y", "b": "z"}, {"a": "x", "b": "y|z"}]
    result = perform_aggregation(rows, _config(["a", "b"]))
    assert len(result) == 2


def test_empty_request_is_rejected() -> None:
    with pytest.raises(ValidationError):
        perform_aggregation([{"v": 1}], AggregationConfig())


def test_camel_case_payload() -> None:
    config = AggregationConfig.model_validate(
        {"groupByColumns": ["g"], "aggregations": [{"column": "v", "function": "count"}]}
    )
    assert config.group_by_columns == ["g"]
