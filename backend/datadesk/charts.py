"""Chart-ready series built from processed rows."""

from __future__ import annotations

import logging
import math
from typing import Any, Sequence

from .cells import is_missing, numeric_or_none, plain_number, round2, to_text
from .errors import ValidationError
from .models import ChartConfig, Row

logger = logging.getLogger(__name__)

UNKNOWN_CATEGORY = "Unknown"


def _round1(value: float) -> float | int:
    return plain_number(math.floor(value * 10 + 0.5) / 10)


def prepare_chart_data(
    rows: Sequence[Row],
    x_axis: str,
    y_axis: str | None = None,
    aggregation: str = "count",
    limit: int = 20,
) -> list[dict[str, Any]]:
    """Category series ``[{name, value}]``, largest first, at most ``limit`` entries."""
    groups: dict[str, list[float]] = {}
    for row in rows:
        x_value = row.get(x_axis)
        name = UNKNOWN_CATEGORY if is_missing(x_value) else to_text(x_value)
        bucket = groups.setdefault(name, [])
        if y_axis:
            number = numeric_or_none(row.get(y_axis))
            if number is not None:
                bucket.append(number)
        else:
            bucket.append(1.0)

    series: list[dict[str, Any]] = []
    for name, values in groups.items():
        if aggregation == "count":
            value: float = len(values)
        elif aggregation == "sum":
            value = sum(values)
        elif aggregation == "avg":
            value = sum(values) / len(values) if values else 0
        else:
            raise ValidationError(f"Unsupported chart aggregation: {aggregation}")
        series.append({"name": name, "value": round2(value)})

    series.sort(key=lambda point: point["value"], reverse=True)
    return series[:limit]


def prepare_scatter_data(
    rows: Sequence[Row],
    x_axis: str,
    y_axis: str,
    limit: int = 500,
) -> list[dict[str, Any]]:
    points: list[dict[str, Any]] = []
    for row in rows:
        x = numeric_or_none(row.get(x_axis))
        y = numeric_or_none(row.get(y_axis))
        if x is None or y is None:
            continue
        points.append({"x": plain_number(x), "y": plain_number(y)})
        if len(points) >= limit:
            break
    return points


def prepare_histogram_data(
    rows: Sequence[Row],
    column: str,
    bins: int = 10,
) -> list[dict[str, Any]]:
    """Equal-width bins over [min, max]; the last bin includes ``max``."""
    values = [
        n for n in (numeric_or_none(row.get(column)) for row in rows if not is_missing(row.get(column)))
        if n is not None
    ]
    if not values or bins < 1:
        return []

    lo = min(values)
    hi = max(values)
    width = (hi - lo) / bins

    histogram: list[dict[str, Any]] = []
    for i in range(bins):
        start = lo + i * width
        last = i == bins - 1
        end = hi if last else start + width
        count = sum(1 for v in values if v >= start and (v <= end if last else v < end))
        histogram.append({
            "range": f"{to_text(_round1(start))} - {to_text(_round1(end))}",
            "count": count,
        })
    return histogram


def build_chart(
    rows: Sequence[Row],
    config: ChartConfig,
    *,
    max_categories: int = 20,
    max_points: int = 500,
) -> list[dict[str, Any]]:
    if config.type == "histogram":
        column = config.y_axis or config.x_axis
        if not column:
            raise ValidationError("Histogram needs a column")
        return prepare_histogram_data(rows, column)

    if not config.x_axis:
        raise ValidationError("Chart needs an x-axis column")

    if config.type == "scatter":
        if not config.y_axis:
            raise ValidationError("Scatter chart needs a y-axis column")
        return prepare_scatter_data(rows, config.x_axis, config.y_axis, max_points)

    data = prepare_chart_data(
        rows, config.x_axis, config.y_axis, config.aggregation, max_categories,
    )
    logger.debug("Prepared %s chart with %d categories", config.type, len(data))
    return data
