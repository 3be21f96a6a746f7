"""Compile a visual query configuration into SQL text.

The output is handed to the query engine as-is: nothing here checks that
the text is well-formed. WHERE literals and the HAVING fragment are
inserted verbatim, so a value containing a single quote produces broken
SQL that the engine reports.
"""

from __future__ import annotations

import re
from typing import Sequence

from .models import QueryAggregation, VisualQueryConfig, WhereCondition

DEFAULT_TABLE_NAME = "dataset"

_BARE_IDENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

_COMPARISON_OPS = {
    "greater_than": ">",
    "less_than": "<",
    "greater_equal": ">=",
    "less_equal": "<=",
}


def quote_ident(name: str) -> str:
    return f"[{name}]"


def _alias(agg: QueryAggregation) -> str:
    if agg.alias:
        return agg.alias
    suffix = "all" if agg.column == "*" else agg.column
    return f"{agg.function.lower()}_{suffix}"


def compile_aggregation(agg: QueryAggregation) -> str:
    alias = _alias(agg)
    if agg.column == "*":
        alias_sql = alias if _BARE_IDENT_RE.match(alias) else quote_ident(alias)
        return f"{agg.function}(*) AS {alias_sql}"
    return f"{agg.function}({quote_ident(agg.column)}) AS {quote_ident(alias)}"


def _select_list(config: VisualQueryConfig, known_columns: Sequence[str]) -> list[str]:
    parts = [compile_aggregation(agg) for agg in config.aggregations]

    if "*" in config.select_columns:
        if not parts:
            return ["*"]
        # Expand the wildcard to every column not consumed by an aggregation.
        aggregated = {agg.column for agg in config.aggregations}
        parts.extend(quote_ident(col) for col in known_columns if col not in aggregated)
        return parts

    parts.extend(quote_ident(col) for col in config.select_columns)
    return parts or ["*"]


def compile_condition(cond: WhereCondition) -> str:
    col = quote_ident(cond.column)
    op = cond.operator
    if op == "equals":
        return f"{col} = '{cond.value}'"
    if op == "not_equals":
        return f"{col} != '{cond.value}'"
    if op == "contains":
        return f"{col} LIKE '%{cond.value}%'"
    if op == "like":
        return f"{col} LIKE '{cond.value}'"
    if op in _COMPARISON_OPS:
        return f"{col} {_COMPARISON_OPS[op]} {cond.value}"
    if op == "between":
        return f"{col} BETWEEN {cond.value} AND {cond.value2}"
    if op == "is_null":
        return f"{col} IS NULL"
    if op == "is_not_null":
        return f"{col} IS NOT NULL"
    if op == "in":
        values = ", ".join(f"'{v.strip()}'" for v in cond.value.split(","))
        return f"{col} IN ({values})"
    return ""


def compile_where(conditions: Sequence[WhereCondition]) -> str:
    parts: list[str] = []
    for index, cond in enumerate(conditions):
        clause = compile_condition(cond)
        parts.append(f"{cond.connector} {clause}" if index > 0 else clause)
    return "WHERE " + " ".join(parts)


def build_query_from_visual(
    config: VisualQueryConfig,
    known_columns: Sequence[str],
    table_name: str = DEFAULT_TABLE_NAME,
) -> str:
    """Build SELECT ... FROM ... [WHERE] [GROUP BY] [HAVING] [ORDER BY] [LIMIT]."""
    lines = [
        f"SELECT {', '.join(_select_list(config, known_columns))}",
        f"FROM {table_name}",
    ]
    if config.where_conditions:
        lines.append(compile_where(config.where_conditions))
    if config.group_by_columns:
        lines.append("GROUP BY " + ", ".join(quote_ident(c) for c in config.group_by_columns))
    if config.having:
        lines.append(f"HAVING {config.having}")
    if config.order_by_columns:
        lines.append(
            "ORDER BY " + ", ".join(
                f"{quote_ident(o.column)} {o.direction}" for o in config.order_by_columns
            )
        )
    if config.limit and config.limit > 0:
        lines.append(f"LIMIT {config.limit}")
    return "\n".join(lines)
