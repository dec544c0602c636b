from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable, Optional

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value) -> Decimal:
    """
    Normalize a monetary amount to a Decimal quantized to cents.

    Accepts Decimal, int, float or numeric strings. None is treated as zero.
    Floats go through str() so 0.1 becomes 0.10, not its binary expansion.
    """
    if value is None:
        return ZERO
    if isinstance(value, bool):
        raise ValueError("amount must be numeric")
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"invalid amount: {value!r}")
    if not amount.is_finite():
        raise ValueError(f"invalid amount: {value!r}")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def sum_money(values: Iterable) -> Decimal:
    total = ZERO
    for value in values:
        total += to_money(value)
    return total


def money_str(value: Optional[Decimal]) -> Optional[str]:
    """Serialize money as a fixed two-decimal string ('30.00')."""
    if value is None:
        return None
    return str(to_money(value))
