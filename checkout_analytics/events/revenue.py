"""
Revenue extraction from checkout events.

Best-effort and lossy: any event yields a non-negative float, and 0.0 means
"no usable revenue", not an error.
"""

import math
import re
from decimal import Decimal
from typing import Any

from checkout_analytics.events.models import EventRecord

# Leading decimal number, the way lenient float parsing reads "12.50 USD"
_LEADING_NUMBER = re.compile(r"^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def coerce_amount(value: Any) -> float:
    """
    Coerce a loosely-typed monetary value to a non-negative float.

    Args:
        value: Number, numeric-looking string, or anything else

    Returns:
        The amount, or 0.0 when it is missing, not a number, infinite or negative
    """
    if value is None or isinstance(value, bool):
        return 0.0

    if isinstance(value, (int, float, Decimal)):
        try:
            number = float(value)
        except (OverflowError, ValueError):
            return 0.0
    else:
        match = _LEADING_NUMBER.match(str(value))
        if not match:
            return 0.0
        try:
            number = float(match.group())
        except ValueError:
            return 0.0

    if not math.isfinite(number) or number < 0:
        return 0.0
    return number


def extract_revenue(event: EventRecord) -> float:
    """
    Monetary value of an event.

    Checks ``revenue``, ``value``, ``orderValue``, ``totalValue`` then
    ``amount``; the first present, non-null field is used even if it turns
    out to be unusable.
    """
    return coerce_amount(event.meta.revenue_field())
