"""One upload's worth of state: raw rows, cleaned rows, view settings and undo."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Iterable, Mapping, Sequence

from . import formats
from .aggregation import perform_aggregation
from .charts import build_chart
from .cleaning import clean_dataset, count_matches, find_replace
from .config import Settings, get_settings
from .errors import ValidationError
from .missing_values import apply_missing_values, preview_missing_values
from .models import (
    AggregationConfig,
    ChartConfig,
    CleaningAction,
    CleaningSummary,
    Dataset,
    DatasetSummary,
    FilterConfig,
    MissingValueConfig,
    MissingValuePreview,
    QueryResult,
    Row,
    SortConfig,
    SQLTemplate,
    VisualQueryConfig,
    copy_rows,
)
from .profiling import profile_dataset
from .query_builder import build_query_from_visual
from .query_context import QueryContext
from .templates import build_templates
from .transforms import apply_filters, apply_sort, paginate
from .undo import UndoManager

logger = logging.getLogger(__name__)

TEXT_COLUMN_TYPES = frozenset({"string", "mixed"})

MissingValueConfigs = Mapping[str, MissingValueConfig] | Iterable[MissingValueConfig]


class Workbench:
    """Session orchestrator: raw -> profile -> clean -> filter/sort -> aggregate/query -> export.

    Every mutation is computed on a copy and committed at the end, so a
    rejected request leaves the session untouched. Each committed
    mutation bumps ``version`` and opens an undo window for it.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.settings = settings or get_settings()
        self.file_name = ""
        self.original_data: Dataset = []
        self.cleaned_data: Dataset = []
        self.raw_summary: DatasetSummary = profile_dataset([])
        self.summary: DatasetSummary = self.raw_summary
        self.cleaning_summary = CleaningSummary(
            total_rows_before=0, total_rows_after=0, duplicates_removed=0,
        )
        self.user_actions: list[CleaningAction] = []
        self.filters: list[FilterConfig] = []
        self.sorts: list[SortConfig] = []
        self.version = 0
        self.query_context = QueryContext(self.settings.table_name)
        self.undo_manager = UndoManager(self.settings.undo_window_s, clock)
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def load(self, rows: Sequence[Row], file_name: str) -> CleaningSummary:
        with self._lock:
            original = copy_rows(rows)
            self._auto_clean(original)
            self.file_name = file_name
            self.original_data = original
            self.filters = []
            self.sorts = []
            logger.info(
                "Loaded %s: %d rows, %d after auto-clean",
                file_name, len(self.original_data), len(self.cleaned_data),
            )
            return self.cleaning_summary

    @property
    def is_empty(self) -> bool:
        return not self.original_data

    def reset_to_original(self) -> None:
        """Drop every user action and re-run the automatic pipeline on the upload."""
        with self._lock:
            self._auto_clean(self.original_data)
            logger.info("Reset %s to original", self.file_name)

    def close(self) -> None:
        with self._lock:
            self.undo_manager.cancel()
            self.query_context.close()

    def _auto_clean(self, original: Dataset) -> None:
        raw_summary = profile_dataset(original, self.settings.type_threshold)
        cleaned, cleaning_summary = clean_dataset(original, raw_summary.column_stats)
        self._commit(cleaned)
        self.raw_summary = raw_summary
        self.cleaning_summary = cleaning_summary
        self.user_actions = []
        self.undo_manager.cancel()
        self.version += 1

    def _commit(self, rows: Dataset) -> None:
        # The engine load is the only step that can fail; state follows it.
        summary = profile_dataset(rows, self.settings.type_threshold)
        self.query_context.load(rows, {s.name: s.type for s in summary.column_stats})
        self.cleaned_data = rows
        self.summary = summary

    def _mutate(self, rows: Dataset, actions: Sequence[CleaningAction]) -> None:
        before_rows, before_actions = self.cleaned_data, self.user_actions
        self._commit(rows)
        self.version += 1
        self.undo_manager.begin(self.version, before_rows, before_actions)
        self.user_actions = [*before_actions, *actions]

    def _require_text_column(self, column: str) -> None:
        for stats in self.summary.column_stats:
            if stats.name == column and stats.type not in TEXT_COLUMN_TYPES:
                raise ValidationError(
                    f"Find and replace needs a text column; {column} is {stats.type}"
                )

    # ------------------------------------------------------------------
    # User-directed cleaning
    # ------------------------------------------------------------------

    def preview_missing_values(self, configs: MissingValueConfigs) -> list[MissingValuePreview]:
        with self._lock:
            return preview_missing_values(configs, self.summary.column_stats)

    def apply_missing_values(self, configs: MissingValueConfigs) -> list[CleaningAction]:
        with self._lock:
            updated, actions = apply_missing_values(
                self.cleaned_data, configs, self.summary.column_stats,
            )
            if actions:
                self._mutate(updated, actions)
            return actions

    def preview_find_replace(
        self,
        column: str,
        find: str,
        *,
        match_case: bool = False,
        whole_word: bool = False,
    ) -> int:
        with self._lock:
            self._require_text_column(column)
            return count_matches(
                self.cleaned_data, column, find,
                match_case=match_case, whole_word=whole_word,
            )

    def find_replace(
        self,
        column: str,
        find: str,
        replace: str,
        *,
        match_case: bool = False,
        whole_word: bool = False,
    ) -> CleaningAction:
        with self._lock:
            self._require_text_column(column)
            updated, action = find_replace(
                self.cleaned_data, column, find, replace,
                match_case=match_case, whole_word=whole_word,
            )
            if action.affected_rows:
                self._mutate(updated, [action])
            return action

    def undo(self) -> bool:
        """Revert the latest mutation if its undo window is still open."""
        with self._lock:
            snapshot = self.undo_manager.take(self.version)
            if snapshot is None:
                return False
            self._commit(snapshot.rows)
            self.version += 1
            self.user_actions = list(snapshot.actions)
            logger.info("Undid mutation %d on %s", snapshot.version, self.file_name)
            return True

    @property
    def undo_state(self) -> dict[str, Any]:
        with self._lock:
            remaining = self.undo_manager.remaining()
            return {"canUndo": remaining > 0, "secondsRemaining": remaining}

    # ------------------------------------------------------------------
    # View
    # ------------------------------------------------------------------

    def set_view(
        self,
        filters: Sequence[FilterConfig] = (),
        sorts: Sequence[SortConfig] = (),
    ) -> None:
        with self._lock:
            self.filters = list(filters)
            self.sorts = list(sorts)

    def processed_rows(self) -> Dataset:
        with self._lock:
            return apply_sort(apply_filters(self.cleaned_data, self.filters), self.sorts)

    def page(self, page: int = 0, page_size: int | None = None) -> dict[str, Any]:
        with self._lock:
            return paginate(
                self.processed_rows(),
                page,
                page_size or self.settings.page_size,
                total_rows=len(self.cleaned_data),
                max_page_size=self.settings.max_page_size,
            )

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    def aggregate(self, config: AggregationConfig) -> Dataset:
        return perform_aggregation(self.processed_rows(), config)

    def run_query(self, sql: str) -> QueryResult:
        with self._lock:
            result = self.query_context.query(sql)
        logger.info("Query returned %d rows in %.2f ms", result.row_count, result.execution_time_ms)
        return result

    def compile_visual_query(self, config: VisualQueryConfig) -> str:
        with self._lock:
            return build_query_from_visual(
                config, self.query_context.columns, self.query_context.table_name,
            )

    def run_visual_query(self, config: VisualQueryConfig) -> tuple[str, QueryResult]:
        sql = self.compile_visual_query(config)
        return sql, self.run_query(sql)

    def templates(self) -> list[SQLTemplate]:
        with self._lock:
            return build_templates(self.summary.column_stats, self.settings.table_name)

    def chart(self, config: ChartConfig) -> list[dict[str, Any]]:
        return build_chart(
            self.processed_rows(),
            config,
            max_categories=self.settings.chart_max_categories,
            max_points=self.settings.scatter_max_points,
        )

    def export(self, file_format: str) -> tuple[bytes, str]:
        """Serialized processed rows and the download file name."""
        content = formats.serialize(self.processed_rows(), file_format)
        return content, formats.export_file_name(self.file_name, file_format)
