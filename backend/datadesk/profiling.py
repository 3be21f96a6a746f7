"""Dataset profiling: per-column descriptive statistics and duplicate detection."""

from __future__ import annotations

import json
import logging
import math
from typing import Any, Iterable, Sequence

from .cells import CellKind, classify, is_missing, numeric_or_none, plain_number, round2, to_text
from .inference import DEFAULT_TYPE_THRESHOLD, detect_column_type
from .models import ColumnStats, DatasetSummary, Row, column_names

logger = logging.getLogger(__name__)


def _canonical_value(value: Any) -> Any:
    kind = classify(value)
    if kind is CellKind.NULL:
        return "" if value == "" else None
    if kind is CellKind.NUMBER:
        return plain_number(float(value))
    if kind is CellKind.DATE:
        return value.isoformat()
    return value


def canonical_row(row: Row) -> str:
    """Stable string encoding of a row, keys in their own order."""
    return json.dumps(
        {key: _canonical_value(value) for key, value in row.items()},
        ensure_ascii=False,
        separators=(",", ":"),
        default=str,
    )


def count_duplicates(rows: Sequence[Row]) -> int:
    return len(rows) - len({canonical_row(row) for row in rows})


def median(sorted_values: Sequence[float]) -> float:
    """Median of an ascending sequence. Empty input yields NaN."""
    n = len(sorted_values)
    if n == 0:
        return math.nan
    mid = n // 2
    if n % 2:
        return sorted_values[mid]
    return (sorted_values[mid - 1] + sorted_values[mid]) / 2


def numeric_stats(values: Sequence[float]) -> dict[str, float | int]:
    """min/max plus population mean, median and standard deviation."""
    ordered = sorted(values)
    n = len(ordered)
    mean = sum(ordered) / n
    variance = sum((v - mean) ** 2 for v in ordered) / n
    return {
        "min": plain_number(ordered[0]),
        "max": plain_number(ordered[-1]),
        "mean": round2(mean),
        "median": round2(median(ordered)),
        "standard_dev": round2(math.sqrt(variance)),
    }


def calculate_mode(values: Iterable[Any]) -> Any:
    """Most frequent value by string form; the first to reach the top count wins."""
    frequency: dict[str, int] = {}
    best = 0
    mode: Any = None
    for value in values:
        key = to_text(value)
        frequency[key] = frequency.get(key, 0) + 1
        if frequency[key] > best:
            best = frequency[key]
            mode = value
    return mode


def profile_column(
    name: str,
    values: Sequence[Any],
    threshold: float = DEFAULT_TYPE_THRESHOLD,
) -> ColumnStats:
    present = [v for v in values if not is_missing(v)]
    total = len(values)
    missing = total - len(present)
    col_type = detect_column_type(values, threshold)

    extra: dict[str, Any] = {}
    if col_type == "number":
        numbers = [n for n in (numeric_or_none(v) for v in present) if n is not None]
        if numbers:
            extra = numeric_stats(numbers)
    elif col_type in ("string", "date") and present:
        texts = sorted(to_text(v) for v in present)
        extra = {"min": texts[0], "max": texts[-1]}

    return ColumnStats(
        name=name,
        type=col_type,
        total_count=total,
        missing_count=missing,
        missing_percentage=round2(missing * 100 / total) if total else 0,
        unique_count=len({to_text(v) for v in present}),
        mode=calculate_mode(present),
        **extra,
    )


def profile_dataset(
    rows: Sequence[Row],
    threshold: float = DEFAULT_TYPE_THRESHOLD,
) -> DatasetSummary:
    """Profile every column of a dataset. An empty dataset yields an all-zero summary."""
    if not rows:
        return DatasetSummary(
            total_rows=0,
            total_columns=0,
            overall_missing_percentage=0,
            duplicate_row_count=0,
            column_stats=[],
        )

    columns = column_names(rows)
    stats = [profile_column(col, [row.get(col) for row in rows], threshold) for col in columns]
    total_missing = sum(s.missing_count for s in stats)
    total_cells = len(rows) * len(columns)

    summary = DatasetSummary(
        total_rows=len(rows),
        total_columns=len(columns),
        overall_missing_percentage=round2(total_missing * 100 / total_cells) if total_cells else 0,
        duplicate_row_count=count_duplicates(rows),
        column_stats=stats,
    )
    logger.debug(
        "Profiled %d rows x %d columns (%d duplicates)",
        summary.total_rows, summary.total_columns, summary.duplicate_row_count,
    )
    return summary

