from __future__ import annotations

from typing import Any, Iterable, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .errors import QueryExecutionError

Row = dict[str, Any]
Dataset = list[Row]

ColumnType = Literal["number", "string", "date", "boolean", "mixed"]

MissingValueStrategy = Literal[
    "leave_null",
    "fill_mean",
    "fill_median",
    "fill_mode",
    "fill_custom",
    "fill_earliest",
    "fill_latest",
    "drop_rows",
]

AggregationFunction = Literal["count", "sum", "avg", "median", "min", "max"]

WhereOperator = Literal[
    "equals", "not_equals", "contains", "like",
    "greater_than", "less_than", "greater_equal", "less_equal",
    "between", "is_null", "is_not_null", "in",
]

QueryFunction = Literal["COUNT", "SUM", "AVG", "MIN", "MAX"]

ChartType = Literal["bar", "line", "pie", "histogram", "scatter", "heatmap"]

TemplateCategory = Literal["basic", "analysis", "aggregation", "advanced", "quality"]


class _Model(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class _Record(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


def column_names(rows: Iterable[Row]) -> list[str]:
    """Union of row keys in first-seen order."""
    seen: dict[str, None] = {}
    for row in rows:
        for key in row:
            seen.setdefault(key, None)
    return list(seen)


def copy_rows(rows: Iterable[Row]) -> Dataset:
    """Full copy of a dataset. Cells are immutable scalars, so a per-row copy is deep."""
    return [dict(row) for row in rows]


# ------------------------------------------------------------------
# Profiling
# ------------------------------------------------------------------

class ColumnStats(_Record):
    """Per-column statistics snapshot."""
    name: str
    type: ColumnType
    total_count: int
    missing_count: int
    missing_percentage: float
    unique_count: int
    mode: Any = None
    min: int | float | str | None = None
    max: int | float | str | None = None
    mean: int | float | None = None
    median: int | float | None = None
    standard_dev: int | float | None = None

    @property
    def non_missing_count(self) -> int:
        return self.total_count - self.missing_count


class DatasetSummary(_Record):
    total_rows: int
    total_columns: int
    overall_missing_percentage: float
    duplicate_row_count: int
    column_stats: list[ColumnStats] = Field(default_factory=list)

    def column(self, name: str) -> ColumnStats | None:
        for stats in self.column_stats:
            if stats.name == name:
                return stats
        return None


# ------------------------------------------------------------------
# Cleaning
# ------------------------------------------------------------------

class CleaningAction(_Record):
    """Immutable log entry for one applied cleaning step."""
    column: str
    action: str
    affected_rows: int
    details: str


class CleaningSummary(_Record):
    total_rows_before: int
    total_rows_after: int
    duplicates_removed: int
    actions: list[CleaningAction] = Field(default_factory=list)


class MissingValueConfig(_Model):
    column: str
    strategy: MissingValueStrategy = "leave_null"
    custom_value: str | int | float | bool | None = None


class MissingValuePreview(_Record):
    column: str
    strategy: MissingValueStrategy
    affected_rows: int
    description: str


# ------------------------------------------------------------------
# Filter / sort / aggregate
# ------------------------------------------------------------------

class FilterConfig(_Model):
    """Row predicate. Unknown operators pass every row."""
    column: str
    operator: str
    value: str | int | float | bool | None = None
    value2: str | int | float | bool | None = None


class SortConfig(_Model):
    column: str
    direction: Literal["asc", "desc"] = "asc"


class AggregationSpec(_Model):
    column: str
    function: AggregationFunction


class AggregationConfig(_Model):
    group_by_columns: list[str] = Field(default_factory=list)
    aggregations: list[AggregationSpec] = Field(default_factory=list)


# ------------------------------------------------------------------
# Visual query builder
# ------------------------------------------------------------------

class WhereCondition(_Model):
    id: str = ""
    column: str
    operator: WhereOperator
    value: str = ""
    value2: str | None = None
    connector: Literal["AND", "OR"] = "AND"


class OrderByConfig(_Model):
    column: str
    direction: Literal["ASC", "DESC"] = "ASC"


class QueryAggregation(_Model):
    id: str = ""
    column: str
    function: QueryFunction
    alias: str | None = None


class VisualQueryConfig(_Model):
    select_columns: list[str] = Field(default_factory=list)
    where_conditions: list[WhereCondition] = Field(default_factory=list)
    group_by_columns: list[str] = Field(default_factory=list)
    order_by_columns: list[OrderByConfig] = Field(default_factory=list)
    aggregations: list[QueryAggregation] = Field(default_factory=list)
    limit: int | None = None
    having: str | None = None


class QueryResult(_Model):
    rows: Dataset = Field(default_factory=list)
    columns: list[str] = Field(default_factory=list)
    row_count: int = 0
    execution_time_ms: float = 0.0
    error: str | None = None

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise QueryExecutionError(self.error)


class SQLTemplate(_Record):
    id: str
    name: str
    description: str
    category: TemplateCategory
    query: str


# ------------------------------------------------------------------
# Charts
# ------------------------------------------------------------------

class ChartConfig(_Model):
    type: ChartType = "bar"
    x_axis: str | None = None
    y_axis: str | None = None
    aggregation: Literal["count", "sum", "avg"] = "count"
