"""In-memory tabular data workbench: profiling, cleaning, querying and export."""
from .errors import (
    DatadeskError,
    ParseError,
    ValidationError,
    ComputationError,
    QueryExecutionError,
    SessionNotFoundError,
)
from .models import (
    AggregationConfig,
    AggregationSpec,
    ChartConfig,
    CleaningAction,
    CleaningSummary,
    ColumnStats,
    DatasetSummary,
    FilterConfig,
    MissingValueConfig,
    MissingValuePreview,
    OrderByConfig,
    QueryAggregation,
    QueryResult,
    SortConfig,
    SQLTemplate,
    VisualQueryConfig,
    WhereCondition,
)
from .inference import detect_column_type
from .profiling import profile_dataset
from .cleaning import clean_dataset, count_matches, find_replace
from .missing_values import apply_missing_values, preview_missing_values, strategies_for_type
from .transforms import apply_filters, apply_sort, paginate
from .aggregation import perform_aggregation
from .query_builder import build_query_from_visual
from .query_context import QueryContext
from .charts import prepare_chart_data, prepare_histogram_data, prepare_scatter_data
from .templates import build_templates
from .undo import UndoManager
from .workbench import Workbench

__all__ = [
    "DatadeskError",
    "ParseError",
    "ValidationError",
    "ComputationError",
    "QueryExecutionError",
    "SessionNotFoundError",
    "AggregationConfig",
    "AggregationSpec",
    "ChartConfig",
    "CleaningAction",
    "CleaningSummary",
    "ColumnStats",
    "DatasetSummary",
    "FilterConfig",
    "MissingValueConfig",
    "MissingValuePreview",
    "OrderByConfig",
    "QueryAggregation",
    "QueryResult",
    "SortConfig",
    "SQLTemplate",
    "VisualQueryConfig",
    "WhereCondition",
    "detect_column_type",
    "profile_dataset",
    "clean_dataset",
    "count_matches",
    "find_replace",
    "apply_missing_values",
    "preview_missing_values",
    "strategies_for_type",
    "apply_filters",
    "apply_sort",
    "paginate",
    "perform_aggregation",
    "build_query_from_visual",
    "QueryContext",
    "prepare_chart_data",
    "prepare_histogram_data",
    "prepare_scatter_data",
    "build_templates",
    "UndoManager",
    "Workbench",
]
