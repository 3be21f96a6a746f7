"""Automatic cleaning pipeline and find & replace."""

from __future__ import annotations

import logging
import re
from typing import Any, Sequence

from .cells import CellKind, classify, is_missing, numeric_or_none, plain_number, same_cell, to_text
from .errors import ValidationError
from .models import (
    CleaningAction,
    CleaningSummary,
    ColumnStats,
    Dataset,
    Row,
    column_names,
    copy_rows,
)
from .profiling import canonical_row

logger = logging.getLogger(__name__)


def remove_duplicates(rows: Sequence[Row]) -> tuple[Dataset, int]:
    """Drop exact duplicate rows, keeping first occurrences in order."""
    seen: set[str] = set()
    unique: Dataset = []
    for row in rows:
        key = canonical_row(row)
        if key in seen:
            continue
        seen.add(key)
        unique.append(row)
    return unique, len(rows) - len(unique)


def fill_missing(rows: Dataset, column: str, fill_value: Any) -> int:
    """Fill missing cells of ``column`` in place. Returns the number of cells changed."""
    filled = 0
    for row in rows:
        current = row.get(column)
        if not is_missing(current):
            continue
        if column in row and same_cell(current, fill_value):
            continue
        row[column] = fill_value
        filled += 1
    return filled


def _numeric_fill(stats: ColumnStats) -> tuple[Any, str]:
    if stats.median is not None:
        return stats.median, "median"
    if stats.mean is not None:
        return stats.mean, "mean"
    return 0, "zero"


def _mode_fill(stats: ColumnStats) -> tuple[Any, str]:
    if stats.mode is not None:
        return stats.mode, "mode"
    return "", "empty string"


def _trim_strings(rows: Dataset, column: str) -> int:
    trimmed = 0
    for row in rows:
        value = row.get(column)
        if isinstance(value, str):
            stripped = value.strip()
            if stripped != value:
                row[column] = stripped
                trimmed += 1
    return trimmed


def _coerce_numbers(rows: Dataset, column: str) -> None:
    for row in rows:
        value = row.get(column)
        if isinstance(value, str) and value != "":
            number = numeric_or_none(value)
            if number is not None:
                row[column] = plain_number(number)


def clean_dataset(
    rows: Sequence[Row],
    column_stats: Sequence[ColumnStats],
) -> tuple[Dataset, CleaningSummary]:
    """Run the automatic cleaning pipeline on a copy of ``rows``.

    ``column_stats`` must be profiled from the uncleaned rows so fill
    values reflect the original distribution. Steps, in order: drop
    duplicate rows, then per column fill missing values (median for
    numbers, mode otherwise), trim string columns and coerce numeric
    text in number columns. The last step is not logged.
    """
    total_before = len(rows)
    cleaned, duplicates = remove_duplicates(copy_rows(rows))
    actions: list[CleaningAction] = []

    if duplicates:
        actions.append(CleaningAction(
            column="All",
            action="Remove duplicates",
            affected_rows=duplicates,
            details=f"Removed {duplicates} duplicate rows",
        ))

    for stats in column_stats:
        col = stats.name

        if stats.missing_count > 0:
            if stats.type == "number":
                fill_value, method = _numeric_fill(stats)
            else:
                fill_value, method = _mode_fill(stats)
            filled = fill_missing(cleaned, col, fill_value)
            if filled:
                actions.append(CleaningAction(
                    column=col,
                    action=f"Fill missing with {method}",
                    affected_rows=filled,
                    details=f"Filled {filled} missing values with {to_text(fill_value)}",
                ))
                logger.debug("Filled %d cells in %r with %s", filled, col, method)

        if stats.type == "string":
            trimmed = _trim_strings(cleaned, col)
            if trimmed:
                actions.append(CleaningAction(
                    column=col,
                    action="Trim whitespace",
                    affected_rows=trimmed,
                    details=f"Trimmed whitespace from {trimmed} values",
                ))

        if stats.type == "number":
            _coerce_numbers(cleaned, col)

    summary = CleaningSummary(
        total_rows_before=total_before,
        total_rows_after=len(cleaned),
        duplicates_removed=duplicates,
        actions=actions,
    )
    logger.info(
        "Auto-clean: %d -> %d rows, %d actions",
        total_before, len(cleaned), len(actions),
    )
    return cleaned, summary


# ------------------------------------------------------------------
# Find & replace
# ------------------------------------------------------------------

def build_pattern(find: str, *, match_case: bool = False, whole_word: bool = False) -> re.Pattern[str]:
    if not find:
        raise ValidationError("Find value is required")
    escaped = re.escape(find)
    if whole_word:
        escaped = rf"\b{escaped}\b"
    return re.compile(escaped, 0 if match_case else re.IGNORECASE)


def _require_column(rows: Sequence[Row], column: str) -> None:
    if rows and column not in column_names(rows):
        raise ValidationError(f"Column not found: {column}")


def count_matches(
    rows: Sequence[Row],
    column: str,
    find: str,
    *,
    match_case: bool = False,
    whole_word: bool = False,
) -> int:
    """Total number of pattern occurrences in ``column``."""
    _require_column(rows, column)
    pattern = build_pattern(find, match_case=match_case, whole_word=whole_word)
    return sum(len(pattern.findall(to_text(row.get(column)))) for row in rows)


def find_replace(
    rows: Sequence[Row],
    column: str,
    find: str,
    replace: str,
    *,
    match_case: bool = False,
    whole_word: bool = False,
) -> tuple[Dataset, CleaningAction]:
    """Replace every literal occurrence of ``find`` in one column.

    Works on a copy. The action counts rows whose value changed.
    """
    _require_column(rows, column)
    pattern = build_pattern(find, match_case=match_case, whole_word=whole_word)
    updated = copy_rows(rows)
    replaced = 0
    for row in updated:
        value = row.get(column)
        if classify(value) is CellKind.NULL:
            continue
        text = to_text(value)
        new_text = pattern.sub(lambda _m: replace, text)
        if new_text != text:
            row[column] = new_text
            replaced += 1

    action = CleaningAction(
        column=column,
        action="Find and Replace",
        affected_rows=replaced,
        details=f'Replaced "{find}" with "{replace}" in {replaced} rows',
    )
    logger.debug("Find & replace on %r changed %d rows", column, replaced)
    return updated, action
