"""Row filtering, multi-key sorting and paging."""

from __future__ import annotations

import functools
import math
import unicodedata
from typing import Any, Sequence

from .cells import CellKind, classify, is_missing, to_number, to_text
from .errors import ValidationError
from .models import Dataset, FilterConfig, Row, SortConfig, column_names

FILTER_OPERATORS: frozenset[str] = frozenset({
    "equals", "not_equals", "contains",
    "greater_than", "less_than", "between",
    "is_null", "is_not_null",
})


def _matches(row: Row, f: FilterConfig) -> bool:
    value = row.get(f.column)
    op = f.operator

    if op == "is_null":
        return is_missing(value)
    if op == "is_not_null":
        return not is_missing(value)

    text = to_text(value).lower()
    target = to_text(f.value).lower()
    if op == "equals":
        return text == target
    if op == "not_equals":
        return text != target
    if op == "contains":
        return target in text

    # NaN operands make every comparison false.
    number = to_number(value)
    if op == "greater_than":
        return number > to_number(f.value)
    if op == "less_than":
        return number < to_number(f.value)
    if op == "between":
        return to_number(f.value) <= number <= to_number(f.value2)

    return True


def apply_filters(rows: Sequence[Row], filters: Sequence[FilterConfig]) -> Dataset:
    """Keep rows passing every filter. Unknown operators let rows through."""
    if not filters:
        return list(rows)
    return [row for row in rows if all(_matches(row, f) for f in filters)]


def _collation_key(text: str) -> tuple[str, str, str]:
    decomposed = unicodedata.normalize("NFKD", text)
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return base.casefold(), text.casefold(), text.swapcase()


def locale_compare(a: str, b: str) -> int:
    """Accent- and case-insensitive first, then accents, then lowercase before uppercase."""
    ka, kb = _collation_key(a), _collation_key(b)
    return (ka > kb) - (ka < kb)


def compare_values(a: Any, b: Any) -> int:
    if classify(a) is CellKind.NUMBER and classify(b) is CellKind.NUMBER:
        diff = a - b
        if math.isnan(diff):
            return 0
        return (diff > 0) - (diff < 0)
    return locale_compare(to_text(a), to_text(b))


def apply_sort(rows: Sequence[Row], sorts: Sequence[SortConfig]) -> Dataset:
    """Stable multi-key sort; each key breaks ties left by the previous one."""
    if not sorts:
        return list(rows)

    def compare_rows(a: Row, b: Row) -> int:
        for s in sorts:
            result = compare_values(a.get(s.column), b.get(s.column))
            if result:
                return result if s.direction == "asc" else -result
        return 0

    return sorted(rows, key=functools.cmp_to_key(compare_rows))


def paginate(
    rows: Sequence[Row],
    page: int,
    page_size: int,
    *,
    total_rows: int | None = None,
    max_page_size: int = 10000,
) -> dict[str, Any]:
    """Zero-based page of ``rows`` with the counts a table view needs."""
    if page < 0:
        raise ValidationError("page must be >= 0")
    if page_size < 1 or page_size > max_page_size:
        raise ValidationError(f"page_size must be between 1 and {max_page_size}")

    filtered = len(rows)
    start = page * page_size
    return {
        "rows": list(rows[start:start + page_size]),
        "columns": column_names(rows),
        "totalRows": filtered if total_rows is None else total_rows,
        "filteredRows": filtered,
        "page": page,
        "pageSize": page_size,
        "totalPages": max(1, (filtered + page_size - 1) // page_size),
    }
