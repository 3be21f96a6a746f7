from __future__ import annotations

from dataclasses import dataclass
import os

from dotenv import load_dotenv

load_dotenv()


def _getenv_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _getenv_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _normalize_level(raw: str | None) -> str:
    value = (raw or "INFO").strip().upper()
    return value if value in {"DEBUG", "INFO", "WARNING", "ERROR"} else "INFO"


@dataclass(frozen=True)
class Settings:
    undo_window_s: float
    table_name: str
    type_threshold: float
    page_size: int
    max_page_size: int
    chart_max_categories: int
    scatter_max_points: int
    log_level: str


settings = Settings(
    undo_window_s=_getenv_float("DATADESK_UNDO_WINDOW_S", 5.0),
    table_name=os.getenv("DATADESK_TABLE_NAME", "dataset"),
    type_threshold=_getenv_float("DATADESK_TYPE_THRESHOLD", 0.8),
    page_size=_getenv_int("DATADESK_PAGE_SIZE", 100),
    max_page_size=_getenv_int("DATADESK_MAX_PAGE_SIZE", 10000),
    chart_max_categories=_getenv_int("DATADESK_CHART_MAX_CATEGORIES", 20),
    scatter_max_points=_getenv_int("DATADESK_SCATTER_MAX_POINTS", 500),
    log_level=_normalize_level(os.getenv("DATADESK_LOG_LEVEL")),
)


def get_settings() -> Settings:
    return settings
