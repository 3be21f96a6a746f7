"""User-directed missing value handling: per-column fill or drop strategies."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Sequence

from .cells import is_missing, numeric_or_none, plain_number, to_text
from .cleaning import fill_missing
from .errors import ValidationError
from .models import (
    CleaningAction,
    ColumnStats,
    ColumnType,
    Dataset,
    MissingValueConfig,
    MissingValuePreview,
    MissingValueStrategy,
    Row,
    copy_rows,
)

logger = logging.getLogger(__name__)

ALL_TYPES: frozenset[str] = frozenset({"number", "string", "date", "boolean", "mixed"})

STRATEGY_TYPES: dict[str, frozenset[str]] = {
    "leave_null": ALL_TYPES,
    "fill_mean": frozenset({"number"}),
    "fill_median": frozenset({"number"}),
    "fill_mode": ALL_TYPES,
    "fill_custom": ALL_TYPES,
    "fill_earliest": frozenset({"date"}),
    "fill_latest": frozenset({"date"}),
    "drop_rows": ALL_TYPES,
}

# strategy -> (ColumnStats field, fallback). A None fallback means the
# column is left untouched when the statistic is unavailable.
FILL_SOURCES: dict[str, tuple[str, Any]] = {
    "fill_mean": ("mean", 0),
    "fill_median": ("median", 0),
    "fill_mode": ("mode", ""),
    "fill_earliest": ("min", None),
    "fill_latest": ("max", None),
}

STRATEGY_LABELS: dict[str, str] = {
    "fill_mean": "Mean",
    "fill_median": "Median",
    "fill_mode": "Mode",
    "fill_custom": "Custom value",
    "fill_earliest": "Earliest date",
    "fill_latest": "Latest date",
}


def strategies_for_type(column_type: ColumnType) -> list[MissingValueStrategy]:
    return [s for s, types in STRATEGY_TYPES.items() if column_type in types]  # type: ignore[misc]


def coerce_custom_value(value: Any, column_type: ColumnType) -> Any:
    """Convert a user-typed literal to the column's native representation."""
    if value is None:
        return ""
    if column_type == "number":
        number = numeric_or_none(value)
        return plain_number(number) if number is not None else value
    if column_type == "boolean":
        text = to_text(value).strip().lower()
        if text in ("true", "false"):
            return text == "true"
        return value
    return value if isinstance(value, str) else to_text(value)


def _normalize_configs(
    configs: Mapping[str, MissingValueConfig] | Iterable[MissingValueConfig],
) -> list[MissingValueConfig]:
    if isinstance(configs, Mapping):
        return list(configs.values())
    ordered: dict[str, MissingValueConfig] = {}
    for config in configs:
        ordered[config.column] = config
    return list(ordered.values())


def _validate(configs: Sequence[MissingValueConfig], stats_by_name: Mapping[str, ColumnStats]) -> None:
    for config in configs:
        stats = stats_by_name.get(config.column)
        if stats is None:
            raise ValidationError(f"Unknown column: {config.column}")
        if stats.type not in STRATEGY_TYPES[config.strategy]:
            raise ValidationError(
                f"Strategy '{config.strategy}' is not applicable to "
                f"{stats.type} column '{config.column}'"
            )


def resolve_fill_value(config: MissingValueConfig, stats: ColumnStats) -> Any:
    """Fill value for a config, or None when the strategy has nothing to fill with."""
    if config.strategy == "fill_custom":
        return coerce_custom_value(config.custom_value, stats.type)
    field, fallback = FILL_SOURCES[config.strategy]
    value = getattr(stats, field)
    return fallback if value is None else value


def apply_missing_values(
    rows: Sequence[Row],
    configs: Mapping[str, MissingValueConfig] | Iterable[MissingValueConfig],
    column_stats: Sequence[ColumnStats],
) -> tuple[Dataset, list[CleaningAction]]:
    """Apply configured strategies column by column on a copy of ``rows``.

    Configs are validated up front; nothing is applied if any is invalid.
    Drops run in configuration order interleaved with fills, so a later
    drop sees the cells filled by an earlier config.
    """
    ordered = _normalize_configs(configs)
    stats_by_name = {s.name: s for s in column_stats}
    _validate(ordered, stats_by_name)

    updated = copy_rows(rows)
    actions: list[CleaningAction] = []

    for config in ordered:
        if config.strategy == "leave_null":
            continue
        col = config.column
        stats = stats_by_name[col]

        if config.strategy == "drop_rows":
            before = len(updated)
            updated = [row for row in updated if not is_missing(row.get(col))]
            dropped = before - len(updated)
            if dropped:
                actions.append(CleaningAction(
                    column=col,
                    action="Drop rows with missing",
                    affected_rows=dropped,
                    details=f"Removed {dropped} rows with missing values",
                ))
            continue

        fill_value = resolve_fill_value(config, stats)
        if fill_value is None:
            logger.debug("No fill value for %r (%s); skipped", col, config.strategy)
            continue
        filled = fill_missing(updated, col, fill_value)
        if filled:
            actions.append(CleaningAction(
                column=col,
                action=f"Fill missing with {STRATEGY_LABELS[config.strategy]}",
                affected_rows=filled,
                details=f"Filled {filled} missing values with {to_text(fill_value)}",
            ))

    logger.info("Applied %d missing value strategies, %d actions", len(ordered), len(actions))
    return updated, actions


def _format_stat(value: Any) -> str:
    if value is None:
        return "N/A"
    number = numeric_or_none(value)
    if number is not None and not isinstance(value, str):
        return f"{number:.2f}"
    return to_text(value)


def preview_missing_values(
    configs: Mapping[str, MissingValueConfig] | Iterable[MissingValueConfig],
    column_stats: Sequence[ColumnStats],
) -> list[MissingValuePreview]:
    """Describe what applying ``configs`` would do, based on the stats snapshot."""
    stats_by_name = {s.name: s for s in column_stats}
    previews: list[MissingValuePreview] = []
    for config in _normalize_configs(configs):
        stats = stats_by_name.get(config.column)
        if stats is None or config.strategy == "leave_null":
            continue
        affected = stats.missing_count
        if config.strategy == "drop_rows":
            description = f"{affected} rows will be removed due to missing values"
        elif config.strategy == "fill_custom":
            description = (
                f'{affected} missing values will be filled with "{to_text(config.custom_value)}"'
            )
        else:
            field, _ = FILL_SOURCES[config.strategy]
            label = STRATEGY_LABELS[config.strategy]
            description = (
                f"{affected} missing values will be filled with "
                f"{label} ({_format_stat(getattr(stats, field))})"
            )
        previews.append(MissingValuePreview(
            column=config.column,
            strategy=config.strategy,
            affected_rows=affected,
            description=description,
        ))
    return previews
