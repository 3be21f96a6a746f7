"""FastAPI app: workbench session routes + static serving + CORS."""

from __future__ import annotations

import logging
from pathlib import Path
from uuid import uuid4

from fastapi import FastAPI, File, HTTPException, Query, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, Field

from datadesk import formats
from datadesk.config import settings
from datadesk.errors import QueryExecutionError, SessionNotFoundError
from datadesk.missing_values import strategies_for_type
from datadesk.models import (
    AggregationConfig,
    ChartConfig,
    FilterConfig,
    MissingValueConfig,
    SortConfig,
    VisualQueryConfig,
)
from datadesk.workbench import Workbench

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Datadesk")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

SESSIONS: dict[str, Workbench] = {}


def _get_session(session_id: str) -> Workbench:
    workbench = SESSIONS.get(session_id)
    if workbench is None:
        raise SessionNotFoundError(f"Session not found: {session_id}")
    return workbench


def _session_or_404(session_id: str) -> Workbench:
    try:
        return _get_session(session_id)
    except SessionNotFoundError as e:
        raise HTTPException(404, str(e))


def _summary_payload(workbench: Workbench) -> dict:
    summary = workbench.summary.model_dump(by_alias=True)
    for stats, payload in zip(workbench.summary.column_stats, summary["columnStats"]):
        payload["strategies"] = strategies_for_type(stats.type)
    return summary


# ── Upload ──


@app.post("/api/sessions/upload")
async def upload_dataset(file: UploadFile = File(...)):
    if not file.filename:
        raise HTTPException(400, "No file provided")

    original_name = file.filename
    safe_name = Path(original_name).name
    if safe_name != original_name or safe_name in {"", ".", ".."}:
        raise HTTPException(400, "Invalid filename")

    content = await file.read()
    try:
        rows = formats.parse(content, file_name=safe_name)
    except ValueError as e:
        raise HTTPException(400, f"Failed to load file: {e}")
    if not rows:
        raise HTTPException(400, "Uploaded file is empty")

    workbench = Workbench(settings)
    try:
        workbench.load(rows, safe_name)
    except ValueError as e:
        workbench.close()
        raise HTTPException(400, f"Failed to load file: {e}")
    session_id = uuid4().hex
    SESSIONS[session_id] = workbench
    logger.info("Session %s opened for %s", session_id, safe_name)

    return {
        "id": session_id,
        "name": safe_name,
        "rowCount": len(workbench.cleaned_data),
        "rawSummary": workbench.raw_summary.model_dump(by_alias=True),
        "summary": _summary_payload(workbench),
        "cleaningSummary": workbench.cleaning_summary.model_dump(by_alias=True),
    }


@app.delete("/api/sessions/{session_id}")
async def close_session(session_id: str):
    workbench = _session_or_404(session_id)
    SESSIONS.pop(session_id, None)
    workbench.close()
    return {"id": session_id, "closed": True}


# ── Profile / cleaning log ──


@app.get("/api/sessions/{session_id}/summary")
async def get_summary(session_id: str):
    return _summary_payload(_session_or_404(session_id))


@app.get("/api/sessions/{session_id}/cleaning")
async def get_cleaning(session_id: str):
    workbench = _session_or_404(session_id)
    return {
        "cleaningSummary": workbench.cleaning_summary.model_dump(by_alias=True),
        "userActions": [a.model_dump(by_alias=True) for a in workbench.user_actions],
        "undo": workbench.undo_state,
    }


# ── Missing values ──


class MissingValuesRequest(BaseModel):
    configs: list[MissingValueConfig] = Field(default_factory=list)


@app.post("/api/sessions/{session_id}/missing-values/preview")
async def preview_missing_values(session_id: str, body: MissingValuesRequest):
    workbench = _session_or_404(session_id)
    previews = workbench.preview_missing_values(body.configs)
    return {"previews": [p.model_dump(by_alias=True) for p in previews]}


@app.post("/api/sessions/{session_id}/missing-values/apply")
async def apply_missing_values(session_id: str, body: MissingValuesRequest):
    workbench = _session_or_404(session_id)
    try:
        actions = workbench.apply_missing_values(body.configs)
    except ValueError as e:
        raise HTTPException(400, str(e))
    return {
        "actions": [a.model_dump(by_alias=True) for a in actions],
        "summary": _summary_payload(workbench),
        "undo": workbench.undo_state,
    }


# ── Find & replace ──


class FindReplaceRequest(BaseModel):
    column: str
    find: str
    replace: str = ""
    matchCase: bool = False
    wholeWord: bool = False


@app.post("/api/sessions/{session_id}/find-replace/preview")
async def preview_find_replace(session_id: str, body: FindReplaceRequest):
    workbench = _session_or_404(session_id)
    try:
        matches = workbench.preview_find_replace(
            body.column, body.find, match_case=body.matchCase, whole_word=body.wholeWord,
        )
    except ValueError as e:
        raise HTTPException(400, str(e))
    return {"matches": matches}


@app.post("/api/sessions/{session_id}/find-replace")
async def apply_find_replace(session_id: str, body: FindReplaceRequest):
    workbench = _session_or_404(session_id)
    try:
        action = workbench.find_replace(
            body.column, body.find, body.replace,
            match_case=body.matchCase, whole_word=body.wholeWord,
        )
    except ValueError as e:
        raise HTTPException(400, str(e))
    return {
        "action": action.model_dump(by_alias=True),
        "summary": _summary_payload(workbench),
        "undo": workbench.undo_state,
    }


# ── Undo / reset ──


@app.post("/api/sessions/{session_id}/undo")
async def undo(session_id: str):
    workbench = _session_or_404(session_id)
    if not workbench.undo():
        raise HTTPException(409, "Nothing to undo")
    return {
        "userActions": [a.model_dump(by_alias=True) for a in workbench.user_actions],
        "summary": _summary_payload(workbench),
    }


@app.post("/api/sessions/{session_id}/reset")
async def reset(session_id: str):
    workbench = _session_or_404(session_id)
    workbench.reset_to_original()
    return {
        "summary": _summary_payload(workbench),
        "cleaningSummary": workbench.cleaning_summary.model_dump(by_alias=True),
    }


# ── View ──


class ViewRequest(BaseModel):
    filters: list[FilterConfig] = Field(default_factory=list)
    sorts: list[SortConfig] = Field(default_factory=list)


@app.post("/api/sessions/{session_id}/view")
async def set_view(session_id: str, body: ViewRequest):
    workbench = _session_or_404(session_id)
    workbench.set_view(body.filters, body.sorts)
    return workbench.page(0)


@app.get("/api/sessions/{session_id}/rows")
async def get_rows(
    session_id: str,
    page: int = Query(0, ge=0),
    page_size: int | None = Query(None, ge=1),
):
    workbench = _session_or_404(session_id)
    try:
        return workbench.page(page, page_size)
    except ValueError as e:
        raise HTTPException(400, str(e))


# ── Aggregation ──


@app.post("/api/sessions/{session_id}/aggregate")
async def aggregate(session_id: str, body: AggregationConfig):
    workbench = _session_or_404(session_id)
    try:
        rows = workbench.aggregate(body)
    except ValueError as e:
        raise HTTPException(400, str(e))
    return {"rows": rows, "rowCount": len(rows)}


# ── SQL Query ──


class QueryRequest(BaseModel):
    sql: str


@app.post("/api/sessions/{session_id}/query")
async def run_query(session_id: str, body: QueryRequest):
    workbench = _session_or_404(session_id)
    try:
        result = workbench.run_query(body.sql)
        result.raise_for_error()
    except ValueError as e:
        raise HTTPException(400, str(e))
    except QueryExecutionError as e:
        raise HTTPException(400, f"Query failed: {e}")
    return result.model_dump(by_alias=True)


@app.post("/api/sessions/{session_id}/visual-query")
async def run_visual_query(session_id: str, body: VisualQueryConfig):
    workbench = _session_or_404(session_id)
    try:
        sql, result = workbench.run_visual_query(body)
    except ValueError as e:
        raise HTTPException(400, str(e))
    payload = result.model_dump(by_alias=True)
    payload["sql"] = sql
    return payload


@app.get("/api/sessions/{session_id}/templates")
async def list_templates(session_id: str):
    workbench = _session_or_404(session_id)
    return {"templates": [t.model_dump(by_alias=True) for t in workbench.templates()]}


# ── Charts ──


@app.post("/api/sessions/{session_id}/chart")
async def chart(session_id: str, body: ChartConfig):
    workbench = _session_or_404(session_id)
    try:
        data = workbench.chart(body)
    except ValueError as e:
        raise HTTPException(400, str(e))
    return {"type": body.type, "data": data}


# ── Export ──


@app.get("/api/sessions/{session_id}/export")
async def export_dataset(
    session_id: str,
    format: str = Query("csv"),
):
    workbench = _session_or_404(session_id)
    try:
        content, filename = workbench.export(format)
    except ValueError as e:
        raise HTTPException(400, str(e))

    return StreamingResponse(
        iter([content]),
        media_type=formats.EXPORT_MEDIA_TYPES[format],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ── Serve frontend static files in production ──

DIST_DIR = Path(__file__).parent.parent / "frontend" / "dist"
if DIST_DIR.exists():
    app.mount("/", StaticFiles(directory=str(DIST_DIR), html=True), name="static")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app:app", host="0.0.0.0", port=8000, reload=True)
