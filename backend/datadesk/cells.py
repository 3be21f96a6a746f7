"""Scalar cell model shared by every pipeline stage.

Rows keep plain Python scalars, but no stage inspects them ad hoc: each
one goes through ``classify`` and the coercions below, so ``1``, ``"1"``,
``True`` and ``None`` are handled the same way everywhere.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime
from enum import Enum
from numbers import Real
from typing import Any


class CellKind(str, Enum):
    NULL = "null"
    NUMBER = "number"
    TEXT = "text"
    BOOL = "bool"
    DATE = "date"


_DECIMAL_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")
_RADIX_RE = re.compile(r"^0([xXoObB])([0-9a-fA-F]+)$")
_RADIX_BASE = {"x": 16, "o": 8, "b": 2}


def is_missing(value: Any) -> bool:
    """A cell is missing when it is absent, None, an empty string or NaN."""
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, float):
        return math.isnan(value)
    return False


def classify(value: Any) -> CellKind:
    if is_missing(value):
        return CellKind.NULL
    if isinstance(value, bool):
        return CellKind.BOOL
    if isinstance(value, Real):
        return CellKind.NUMBER
    if isinstance(value, (date, datetime)):
        return CellKind.DATE
    return CellKind.TEXT


def parse_number_text(text: str) -> float:
    """Parse numeric text the way a spreadsheet formula bar would.

    NaN when the text is not numeric or does not fit a finite float, so
    ``Infinity`` and ``1e400`` stay text.
    """
    s = text.strip()
    if not s:
        return math.nan
    if _DECIMAL_RE.match(s):
        number = float(s)
        return number if math.isfinite(number) else math.nan
    radix = _RADIX_RE.match(s)
    if radix:
        try:
            return float(int(radix.group(2), _RADIX_BASE[radix.group(1).lower()]))
        except (ValueError, OverflowError):
            return math.nan
    return math.nan


def to_number(value: Any) -> float:
    """Numeric coercion. Missing, dates and non-numeric text coerce to NaN."""
    kind = classify(value)
    if kind is CellKind.NUMBER:
        number = float(value)
        return number if math.isfinite(number) else math.nan
    if kind is CellKind.BOOL:
        return 1.0 if value else 0.0
    if kind is CellKind.TEXT:
        return parse_number_text(str(value))
    return math.nan


def numeric_or_none(value: Any) -> float | None:
    n = to_number(value)
    return None if math.isnan(n) else n


def plain_number(value: float) -> float | int:
    """Collapse integral floats to ``int`` so ``30.0`` round-trips as ``30``."""
    if math.isnan(value) or math.isinf(value):
        return value
    if value == int(value) and abs(value) < 2**53:
        return int(value)
    return value


def _format_float(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "-Infinity" if value < 0 else "Infinity"
    if value == int(value) and abs(value) < 1e21:
        return str(int(value))
    # Shortest round-trip digits; fixed notation down to 1e-6, then
    # ``1e-7`` / ``1.5e+21`` style exponents.
    text = repr(value)
    if "e" not in text:
        return text
    mantissa, exp_text = text.split("e")
    exp = int(exp_text)
    if exp >= 21 or exp < -6:
        return f"{mantissa}e{'+' if exp > 0 else '-'}{abs(exp)}"
    sign = "-" if mantissa.startswith("-") else ""
    digits = mantissa.lstrip("-").replace(".", "")
    return f"{sign}0.{'0' * (-exp - 1)}{digits}"


def to_text(value: Any) -> str:
    """String coercion. Missing cells stringify to ``""``."""
    kind = classify(value)
    if kind is CellKind.NULL:
        return ""
    if kind is CellKind.BOOL:
        return "true" if value else "false"
    if kind is CellKind.NUMBER:
        if isinstance(value, int):
            return str(value)
        return _format_float(float(value))
    if kind is CellKind.DATE:
        return value.isoformat()
    return str(value)


def round2(value: float) -> float | int:
    """Round to 2 decimals, half away from zero. Non-finite input falls back to 0."""
    if math.isnan(value) or math.isinf(value):
        return 0
    scaled = math.floor(abs(value) * 100 + 0.5) / 100
    return plain_number(math.copysign(scaled, value))


def same_cell(a: Any, b: Any) -> bool:
    return type(a) is type(b) and a == b
