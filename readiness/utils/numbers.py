"""
Numeric helpers shared by the scoring services.

Scores are rounded half-up (0.5 -> 1), not with Python's banker's rounding,
so that 22.5 becomes 23 everywhere a score is shown.
"""

import math
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional

from readiness.core.errors import InvalidShapeError


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round with ties away from zero for positives."""
    quantum = Decimal(1).scaleb(-ndigits)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def to_number(value: Any, field: str, default: Optional[float] = 0.0) -> Optional[float]:
    """
    Coerce a stored numeric field to float.

    None -> default. Numeric strings are accepted (Mongo imports often store
    them that way). Anything else, or NaN/inf, raises InvalidShapeError.
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            raise InvalidShapeError(field, "a number", value)
    else:
        raise InvalidShapeError(field, "a number", value)

    if not math.isfinite(number):
        raise InvalidShapeError(field, "a finite number")
    return number
