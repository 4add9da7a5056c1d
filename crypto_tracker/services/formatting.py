"""Display formatting for prices, market sizes and timestamps.

Fixed-point output rounds half away from zero on the exact binary value of the
float, so ``0.125`` becomes ``0.13`` and ``1.005`` becomes ``1.00``. Grouped
prices round the shortest decimal spelling instead, as locale number
formatting does, so ``1.005`` shows as ``$1.01``.
"""

from __future__ import annotations

import math
from datetime import datetime
from decimal import ROUND_HALF_UP, Context, Decimal
from typing import Optional, Tuple

_CONTEXT = Context(prec=400, rounding=ROUND_HALF_UP)

ZERO_CURRENCY = "$0.00"
NOT_AVAILABLE = "N/A"

# (threshold, divisor, suffix), checked in order
_MAGNITUDES = (
    (1e12, 1e12, "T"),
    (1e9, 1e9, "B"),
    (1e6, 1e6, "M"),
    (1e3, 1e3, "K"),
)


def is_missing(value: Optional[float]) -> bool:
    return value is None or not math.isfinite(value)


def to_fixed(value: float, places: int) -> Decimal:
    """Round ``value`` to ``places`` decimals, half away from zero."""
    if value == 0:
        value = 0.0  # drop the sign of -0.0
    exp = Decimal(1).scaleb(-places)
    return Decimal(value).quantize(exp, context=_CONTEXT)


def to_grouped(value: float, places: int) -> str:
    """Round the shortest repr of ``value`` half up and group thousands with commas."""
    exp = Decimal(1).scaleb(-places)
    rounded = Decimal(repr(value)).quantize(exp, context=_CONTEXT)
    return f"{rounded:,.{places}f}"


def format_currency(value: Optional[float]) -> str:
    if is_missing(value):
        return ZERO_CURRENCY

    if value < 0.01:
        return f"${to_fixed(value, 6)}"
    if value < 1:
        return f"${to_fixed(value, 4)}"
    return f"${to_grouped(value, 2)}"


def format_large_number(value: Optional[float]) -> str:
    if is_missing(value):
        return NOT_AVAILABLE

    for threshold, divisor, suffix in _MAGNITUDES:
        if value >= threshold:
            return f"${to_fixed(value / divisor, 2)}{suffix}"
    return f"${to_fixed(value, 2)}"


def format_change(value: Optional[float]) -> Tuple[str, str]:
    """Return ``(text, direction)`` for a 24h percentage change, e.g. ``("▲ 2.50%", "positive")``."""
    change = 0.0 if is_missing(value) else value
    if change >= 0:
        return f"▲ {to_fixed(abs(change), 2)}%", "positive"
    return f"▼ {to_fixed(abs(change), 2)}%", "negative"


def format_timestamp(moment: Optional[datetime] = None) -> str:
    """12-hour ``hh:mm:ss AM`` rendering of ``moment`` (local now when omitted)."""
    moment = moment or datetime.now()
    return moment.strftime("%I:%M:%S %p")
