from __future__ import annotations

from pathlib import Path
import sys

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from datadesk.cells import is_missing
from datadesk.models import column_names
from datadesk.profiling import calculate_mode, count_duplicates, profile_column, profile_dataset


def test_textbook_numeric_stats() -> None:
    stats = profile_column("v", [2, 4, 4, 4, 5, 5, 7, 9])
    assert stats.type == "number"
    assert stats.mean == 5
    assert stats.median == 4.5
    assert stats.standard_dev == 2
    assert stats.min == 2
    assert stats.max == 9
    assert stats.mode == 4


def test_numeric_stats_from_text_cells() -> None:
    stats = profile_column("v", ["1", "2", "4", None])
    assert stats.type == "number"
    assert stats.median == 2
    assert stats.mean == 2.33
    assert stats.missing_count == 1
    assert stats.missing_percentage == 25


def test_duplicate_detection_example() -> None:
    rows = [{"a": 1, "b": 2}, {"a": 1, "b": 2}, {"a": 1, "b": 3}]
    summary = profile_dataset(rows)
    assert summary.duplicate_row_count == 1
    assert summary.total_rows == 3
    assert count_duplicates(rows) == 1


def test_missing_plus_present_equals_total_rows() -> None:
    rows = [
        {"a": 1, "b": "x"},
        {"a": None, "c": ""},
        {"b": "y", "c": "z"},
        {"a": float("nan"), "b": " ", "c": None},
    ]
    summary = profile_dataset(rows)
    assert summary.total_columns == len(column_names(rows))
    for stats in summary.column_stats:
        present = sum(1 for row in rows if not is_missing(row.get(stats.name)))
        assert stats.missing_count + present == summary.total_rows
        assert stats.non_missing_count == present


def test_overall_missing_percentage() -> None:
    rows = [{"a": 1, "b": None}, {"a": None, "b": None}]
    summary = profile_dataset(rows)
    assert summary.overall_missing_percentage == 75


def test_mode_first_to_reach_max_wins() -> None:
    assert calculate_mode(["b", "a", "a", "b"]) == "a"
    assert calculate_mode([]) is None


def test_unique_count_collides_on_string_form() -> None:
    stats = profile_column("v", [1, "1", 2, None])
    assert stats.unique_count == 2


def test_string_column_extrema_are_lexicographic() -> None:
    stats = profile_column("city", ["Paris", "Berlin", "Rome"])
    assert stats.type == "string"
    assert stats.min == "Berlin"
    assert stats.max == "Rome"
    assert stats.mean is None


def test_date_column_extrema() -> None:
    stats = profile_column("d", ["2024-03-01", "2023-12-31", None])
    assert stats.type == "date"
    assert stats.min == "2023-12-31"
    assert stats.max == "2024-03-01"


def test_empty_dataset_summary() -> None:
    summary = profile_dataset([])
    assert summary.total_rows == 0
    assert summary.total_columns == 0
    assert summary.overall_missing_percentage == 0
    assert summary.column_stats == []


def test_summary_serializes_camel_case() -> None:
    payload = profile_dataset([{"a": 1}]).model_dump(by_alias=True)
    assert "totalRows" in payload
    assert "missingPercentage" in payload["columnStats"][0]
