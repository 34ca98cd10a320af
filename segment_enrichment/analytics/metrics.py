"""
Metric helpers shared by the analytics stages.

Percentages round half-up to one decimal, money and multipliers to two.
Every ratio is zero-safe.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Union

Number = Union[int, float, Decimal]

_ONE_PLACE = Decimal("0.1")
_TWO_PLACES = Decimal("0.01")


def _to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # repr-based conversion so 0.15 rounds like the printed 0.15
    return Decimal(repr(value)) if isinstance(value, float) else Decimal(value)


def round1(value: Number) -> float:
    return float(_to_decimal(value).quantize(_ONE_PLACE, rounding=ROUND_HALF_UP))


def round2(value: Number) -> float:
    return float(_to_decimal(value).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP))


def safe_ratio(part: Number, total: Number) -> Decimal:
    """part / total, or 0 when total is not positive"""
    total = _to_decimal(total)
    if total <= 0:
        return Decimal(0)
    return _to_decimal(part) / total


def pct(part: Number, total: Number) -> float:
    """Percentage of part in total, one decimal, 0 for an empty total"""
    return round1(safe_ratio(part, total) * 100)


def mean(values) -> float:
    """Arithmetic mean rounded to two decimals, 0 for no values"""
    values = list(values)
    if not values:
        return 0.0
    return round2(safe_ratio(sum(values), len(values)))


def share_pct(part: Number, total: Number) -> float:
    """pct() held to [0, 100]; for money shares where refunds make parts negative"""
    return min(max(pct(part, total), 0.0), 100.0)
