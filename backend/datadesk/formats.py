"""File boundaries: decode uploads into rows and serialize rows for export."""

from __future__ import annotations

import csv
import io
import json
import logging
import math
import os
import tempfile
from datetime import date, datetime, time as dt_time
from pathlib import Path
from typing import Any, Sequence

import duckdb
import pandas as pd

from .cells import to_text
from .errors import ParseError, ValidationError
from .models import Dataset, Row, column_names

logger = logging.getLogger(__name__)

SUPPORTED_UPLOAD_SUFFIX: dict[str, str] = {
    ".csv": "csv",
    ".xlsx": "xlsx",
}

EXPORT_MEDIA_TYPES: dict[str, str] = {
    "csv": "text/csv",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "json": "application/json",
}


def detect_format(file_name: str) -> str:
    suffix = Path(file_name).suffix.lower()
    file_format = SUPPORTED_UPLOAD_SUFFIX.get(suffix)
    if not file_format:
        raise ParseError(f"Unsupported file format: {suffix or file_name}")
    return file_format


def _normalize_value(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
        return None
    if isinstance(value, pd.Timestamp):
        if pd.isna(value):
            return None
        value = value.to_pydatetime()
    if isinstance(value, datetime):
        if value.time() == dt_time(0, 0):
            return value.date().isoformat()
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if hasattr(value, "item"):
        return _normalize_value(value.item())
    return value


def _parse_csv(data: bytes) -> Dataset:
    fd, path = tempfile.mkstemp(suffix=".csv")
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        conn = duckdb.connect()
        try:
            result = conn.execute(
                "SELECT * FROM read_csv_auto(?, header=true, all_varchar=true)",
                [path],
            )
            cols = [desc[0] for desc in result.description]
            raw_rows = result.fetchall()
        finally:
            conn.close()
    except duckdb.Error as exc:
        raise ParseError(f"Failed to parse CSV: {exc}") from exc
    finally:
        os.unlink(path)
    return [dict(zip(cols, raw)) for raw in raw_rows]


def _parse_excel(data: bytes) -> Dataset:
    try:
        df = pd.read_excel(io.BytesIO(data), sheet_name=0, engine="openpyxl")
    except Exception as exc:
        raise ParseError(f"Failed to parse Excel file: {exc}") from exc
    rows = df.to_dict(orient="records")
    return [{str(k): _normalize_value(v) for k, v in row.items()} for row in rows]


def parse(data: bytes, file_name: str | None = None, file_format: str | None = None) -> Dataset:
    """Decode an uploaded file. An empty result is valid and means an empty file."""
    fmt = file_format or detect_format(file_name or "")
    if not data.strip():
        return []
    if fmt == "csv":
        rows = _parse_csv(data)
    elif fmt == "xlsx":
        rows = _parse_excel(data)
    else:
        raise ParseError(f"Unsupported file format: {fmt}")
    logger.info("Parsed %s (%s): %d rows", file_name or "upload", fmt, len(rows))
    return rows


def _to_csv(rows: Sequence[Row]) -> bytes:
    if not rows:
        return b""
    headers = column_names(rows)
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(headers)
    for row in rows:
        writer.writerow(to_text(row.get(h)) for h in headers)
    return buf.getvalue().encode("utf-8")


def _to_xlsx(rows: Sequence[Row]) -> bytes:
    buf = io.BytesIO()
    df = pd.DataFrame(list(rows), columns=column_names(rows))
    df.to_excel(buf, index=False, sheet_name="Data", engine="openpyxl")
    return buf.getvalue()


def serialize(rows: Sequence[Row], file_format: str) -> bytes:
    if file_format == "csv":
        return _to_csv(rows)
    if file_format == "json":
        return json.dumps(list(rows), indent=2, ensure_ascii=False, default=to_text).encode("utf-8")
    if file_format == "xlsx":
        return _to_xlsx(rows)
    raise ValidationError(f"Unsupported export format: {file_format}")


def export_file_name(file_name: str, file_format: str) -> str:
    stem = Path(file_name).stem or "export"
    return f"{stem}_cleaned.{file_format}"
