"""
Coin amount helpers: human-readable coins <-> integer nano units (1e-9).
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Union

from ..errors import EncodeError

NANO_PER_COIN = 10**9

Amount = Union[int, str, Decimal]


def to_nano(amount: Amount) -> int:
    """
    Convert a coin amount to nano units.

    >>> to_nano("0.05")
    50000000

    Accepts ints (whole coins), decimal strings and Decimals. Floats are
    rejected because they cannot represent most decimal fractions exactly.
    """
    if isinstance(amount, float):
        raise EncodeError("pass coin amounts as str or Decimal, not float", field="amount")
    try:
        d = Decimal(amount)
    except (InvalidOperation, TypeError, ValueError) as e:
        raise EncodeError(f"invalid coin amount {amount!r}", field="amount") from e
    if d < 0:
        raise EncodeError(f"coin amount must be non-negative: {amount!r}", field="amount")
    nano = d * NANO_PER_COIN
    if nano != nano.to_integral_value():
        raise EncodeError(f"coin amount has more than 9 decimals: {amount!r}", field="amount")
    return int(nano)


def from_nano(nano: int) -> str:
    """Convert nano units to a plain decimal string (no exponent, trimmed)."""
    if nano < 0:
        raise EncodeError(f"nano amount must be non-negative: {nano}", field="amount")
    whole, frac = divmod(int(nano), NANO_PER_COIN)
    if not frac:
        return str(whole)
    return f"{whole}.{frac:09d}".rstrip("0")


__all__ = ["NANO_PER_COIN", "to_nano", "from_nano"]
