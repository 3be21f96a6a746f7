"""Column type inference over raw cell values."""

from __future__ import annotations

import math
import re
from datetime import datetime
from typing import Any, Iterable

from .cells import CellKind, classify, is_missing, parse_number_text
from .models import ColumnType

DEFAULT_TYPE_THRESHOLD = 0.8

DATE_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"^\d{4}-\d{2}-\d{2}$"), "%Y-%m-%d"),
    (re.compile(r"^\d{2}/\d{2}/\d{4}$"), "%m/%d/%Y"),
    (re.compile(r"^\d{2}-\d{2}-\d{4}$"), "%m-%d-%Y"),
)


def is_date_text(text: str) -> bool:
    """True when text matches a supported literal pattern and is a real calendar date."""
    for pattern, fmt in DATE_PATTERNS:
        if pattern.match(text):
            try:
                datetime.strptime(text, fmt)
            except ValueError:
                return False
            return True
    return False


def _value_kind(value: Any) -> str | None:
    kind = classify(value)
    if kind is CellKind.BOOL:
        return "boolean"
    if kind is CellKind.NUMBER:
        return "number"
    if kind is CellKind.DATE:
        return "date"
    text = str(value).strip()
    if text.lower() in ("true", "false"):
        return "boolean"
    if not math.isnan(parse_number_text(text)):
        return "number"
    if is_date_text(text):
        return "date"
    return None


def detect_column_type(
    values: Iterable[Any],
    threshold: float = DEFAULT_TYPE_THRESHOLD,
) -> ColumnType:
    """Classify a column by the share of values parseable as each type.

    Missing values are ignored. Boolean wins over number, number over
    date, each needing at least ``threshold`` of the non-missing values.
    Columns with no dominant type, and all-missing columns, are strings.
    """
    present = [v for v in values if not is_missing(v)]
    if not present:
        return "string"

    counts = {"boolean": 0, "number": 0, "date": 0}
    for value in present:
        kind = _value_kind(value)
        if kind is not None:
            counts[kind] += 1

    cutoff = len(present) * threshold
    for type_name in ("boolean", "number", "date"):
        if counts[type_name] >= cutoff:
            return type_name  # type: ignore[return-value]
    return "string"
