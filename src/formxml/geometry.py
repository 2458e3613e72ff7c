"""
Effective column/row span of a FormXML grid cell.

Span attributes arrive as raw attribute text that may be missing, blank,
non-numeric, zero or negative. Resolution is total: every input maps to an
integer >= 1. Bounds against the section grid are the caller's concern.
"""

import re
from typing import Optional

# Same acceptance as a 32-bit integer try-parse: surrounding whitespace and an
# optional sign around ASCII digits.
_INTEGER_RE = re.compile(r"\s*([+-]?)([0-9]+)\s*", re.ASCII)

# Digits of int32 max; longer strings are out of range without conversion.
_INT32_DIGITS = 10

_INT32_MAX = 2**31 - 1
_INT32_MIN = -(2**31)

DEFAULT_SPAN = 1


def _try_parse_int32(raw: str) -> Optional[int]:
    match = _INTEGER_RE.fullmatch(raw)
    if match is None:
        return None
    sign, digits = match.groups()
    digits = digits.lstrip("0") or "0"
    if len(digits) > _INT32_DIGITS:
        return None
    value = int(sign + digits)
    if value < _INT32_MIN or value > _INT32_MAX:
        return None
    return value


def _resolve_span(raw: Optional[str]) -> int:
    if raw is None or not raw.strip():
        return DEFAULT_SPAN
    value = _try_parse_int32(raw)
    if value is None or value <= 0:
        return DEFAULT_SPAN
    return value


def resolve_column_span(raw: Optional[str]) -> int:
    """Number of grid columns occupied by a cell with ``colspan=raw``."""
    return _resolve_span(raw)


def resolve_row_span(raw: Optional[str]) -> int:
    """Number of grid rows occupied by a cell with ``rowspan=raw``."""
    return _resolve_span(raw)


def cell_spans(cell) -> tuple[int, int]:
    """Return (column span, row span) for an lxml ``<cell>`` element."""
    return resolve_column_span(cell.get("colspan")), resolve_row_span(cell.get("rowspan"))
