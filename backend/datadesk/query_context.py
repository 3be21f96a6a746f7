"""Embedded SQL engine holding one named table."""

from __future__ import annotations

import logging
import math
import re
import sqlite3
import threading
import time
from typing import Any, Mapping, Sequence

from .cells import CellKind, classify
from .errors import ValidationError
from .models import Dataset, QueryResult, Row, column_names
from .query_builder import DEFAULT_TABLE_NAME

logger = logging.getLogger(__name__)

_BRACKET_IDENT_RE = re.compile(r"\[([^\]]+)\]")

SQLITE_TYPE_MAP: dict[str, str] = {
    "number": "NUMERIC",
    "string": "",
    "date": "",
    "boolean": "",
    "mixed": "",
}


class _SampleStdev:
    """STDEV aggregate (sample standard deviation, Welford)."""

    def __init__(self) -> None:
        self.n = 0
        self.mean = 0.0
        self.m2 = 0.0

    def step(self, value: Any) -> None:
        if value is None or isinstance(value, (str, bytes)):
            return
        self.n += 1
        delta = value - self.mean
        self.mean += delta / self.n
        self.m2 += delta * (value - self.mean)

    def finalize(self) -> float | None:
        if self.n < 2:
            return None
        return math.sqrt(self.m2 / (self.n - 1))


def validate_select(sql: str) -> str:
    """Only SELECT statements reach the engine."""
    stripped = sql.strip()
    if not stripped:
        raise ValidationError("SQL query is empty")
    if not stripped.upper().startswith("SELECT"):
        raise ValidationError("Only SELECT queries are allowed for data analysis")
    return stripped


def _to_sql_value(value: Any) -> Any:
    kind = classify(value)
    if kind is CellKind.NULL:
        return "" if value == "" else None
    if kind is CellKind.BOOL:
        return int(value)
    if kind is CellKind.DATE:
        return value.isoformat()
    if kind is CellKind.NUMBER:
        return value if isinstance(value, (int, float)) else float(value)
    return str(value)


def _quote_ddl_ident(ident: str) -> str:
    return '"' + ident.replace('"', '""') + '"'


def storage_names(columns: Sequence[str]) -> dict[str, str]:
    """Table names for columns that clash case-insensitively with an earlier one.

    SQLite folds identifier case, so ``Name`` and ``name`` cannot share a
    table. Later duplicates get a ``_2``, ``_3``... suffix that collides
    with no other column.
    """
    taken = {c.casefold() for c in columns}
    seen: set[str] = set()
    renamed: dict[str, str] = {}
    for col in columns:
        key = col.casefold()
        if key not in seen:
            seen.add(key)
            continue
        n = 2
        while f"{col}_{n}".casefold() in taken:
            n += 1
        stored = f"{col}_{n}"
        taken.add(stored.casefold())
        seen.add(stored.casefold())
        renamed[col] = stored
    return renamed


class QueryContext:
    """Owns an in-memory SQLite connection with a single dataset table."""

    def __init__(self, table_name: str = DEFAULT_TABLE_NAME) -> None:
        self.table_name = table_name
        self.columns: list[str] = []
        self._stored: dict[str, str] = {}
        self._original: dict[str, str] = {}
        self.conn = sqlite3.connect(":memory:", check_same_thread=False)
        self.conn.create_aggregate("STDEV", 1, _SampleStdev)
        self._lock = threading.Lock()

    def load(self, rows: Sequence[Row], column_types: Mapping[str, str] | None = None) -> None:
        """Replace the table contents with ``rows``. An empty dataset drops the table."""
        types = column_types or {}
        table_sql = _quote_ddl_ident(self.table_name)
        columns = column_names(rows)
        renamed = storage_names(columns)
        # Built under a staging name so a failed load keeps the previous table.
        staging_sql = _quote_ddl_ident(f"{self.table_name}__staging")
        try:
            with self._lock, self.conn:
                self.conn.execute(f"DROP TABLE IF EXISTS {staging_sql}")
                if rows:
                    cols_ddl = ", ".join(
                        f"{_quote_ddl_ident(renamed.get(c, c))} "
                        f"{SQLITE_TYPE_MAP.get(types.get(c, ''), '')}".rstrip()
                        for c in columns
                    )
                    self.conn.execute(f"CREATE TABLE {staging_sql} ({cols_ddl})")
                    placeholders = ", ".join("?" for _ in columns)
                    self.conn.executemany(
                        f"INSERT INTO {staging_sql} VALUES ({placeholders})",
                        ([_to_sql_value(row.get(c)) for c in columns] for row in rows),
                    )
                self.conn.execute(f"DROP TABLE IF EXISTS {table_sql}")
                if rows:
                    self.conn.execute(f"ALTER TABLE {staging_sql} RENAME TO {table_sql}")
        except sqlite3.Error as exc:
            with self._lock:
                self.conn.execute(f"DROP TABLE IF EXISTS {staging_sql}")
            logger.warning("Could not load %s: %s", self.table_name, exc)
            raise ValidationError(f"Could not load dataset into the query engine: {exc}") from exc
        self.columns = columns
        self._stored = renamed
        self._original = {stored: col for col, stored in renamed.items()}
        logger.debug("Loaded %d rows into %s", len(rows), self.table_name)

    def _to_storage_sql(self, sql: str) -> str:
        if not self._stored:
            return sql
        return _BRACKET_IDENT_RE.sub(
            lambda m: f"[{self._stored.get(m.group(1), m.group(1))}]", sql,
        )

    def query(self, sql: str) -> QueryResult:
        """Run a SELECT. Engine faults come back as ``error`` with no rows."""
        statement = validate_select(sql)
        start = time.perf_counter()
        try:
            with self._lock:
                cursor = self.conn.execute(self._to_storage_sql(statement))
                cols = [self._original.get(desc[0], desc[0]) for desc in cursor.description or ()]
                raw_rows = cursor.fetchall()
        except sqlite3.Error as exc:
            logger.warning("Query failed: %s", exc)
            return QueryResult(
                execution_time_ms=round((time.perf_counter() - start) * 1000, 2),
                error=str(exc),
            )
        elapsed = round((time.perf_counter() - start) * 1000, 2)

        rows: Dataset = [dict(zip(cols, raw)) for raw in raw_rows]
        return QueryResult(
            rows=rows,
            columns=cols,
            row_count=len(rows),
            execution_time_ms=elapsed,
        )

    def close(self) -> None:
        self.conn.close()
