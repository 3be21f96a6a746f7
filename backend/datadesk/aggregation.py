"""Group-by aggregation over rows."""

from __future__ import annotations

import logging
from typing import Sequence

from .cells import is_missing, numeric_or_none, round2, to_text
from .errors import ValidationError
from .models import AggregationConfig, Dataset, Row
from .profiling import median

logger = logging.getLogger(__name__)


def _aggregate(function: str, values: list, numbers: list[float]) -> float | int:
    if function == "count":
        return len(values)
    if function == "sum":
        return round2(sum(numbers))
    if not numbers:
        return 0
    if function == "avg":
        return round2(sum(numbers) / len(numbers))
    if function == "median":
        return round2(median(sorted(numbers)))
    if function == "min":
        return round2(min(numbers))
    if function == "max":
        return round2(max(numbers))
    raise ValidationError(f"Unsupported aggregation function: {function}")


def perform_aggregation(rows: Sequence[Row], config: AggregationConfig) -> Dataset:
    """Group rows and summarize each group.

    Group keys are the stringified group-by values; groups come out in the
    order their key was first seen. Each result column is named
    ``{function}_{column}``. At least one group-by column or aggregation
    is required.
    """
    if not config.group_by_columns and not config.aggregations:
        raise ValidationError("Select at least one group-by column or aggregation")

    groups: dict[tuple[str, ...], list[Row]] = {}
    for row in rows:
        key = tuple(to_text(row.get(col)) for col in config.group_by_columns)
        groups.setdefault(key, []).append(row)

    result: Dataset = []
    for key, members in groups.items():
        out: Row = dict(zip(config.group_by_columns, key))
        for agg in config.aggregations:
            values = [r.get(agg.column) for r in members if not is_missing(r.get(agg.column))]
            numbers = [n for n in (numeric_or_none(v) for v in values) if n is not None]
            out[f"{agg.function}_{agg.column}"] = _aggregate(agg.function, values, numbers)
        result.append(out)

    logger.debug("Aggregated %d rows into %d groups", len(rows), len(result))
    return result
