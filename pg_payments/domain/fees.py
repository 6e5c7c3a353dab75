"""Fee calculation for approved payments."""
from decimal import ROUND_HALF_UP, Decimal
from typing import Tuple

_WHOLE_UNIT = Decimal("1")


def calculate_fee(amount: Decimal, rate: Decimal, fixed_fee: Decimal) -> Tuple[Decimal, Decimal]:
    """
    Compute the partner fee and the net amount of a payment.

    fee = round(amount * rate) + fixed_fee  (half-up to whole currency units)
    net = amount - fee

    Example: calculate_fee(Decimal("10000"), Decimal("0.03"), Decimal("100"))
             == (Decimal("400"), Decimal("9600"))

    Args:
        amount: Payment amount, positive
        rate: Percentage rate as a fraction
        fixed_fee: Fixed fee added after rounding

    Returns:
        Tuple[Decimal, Decimal]: (fee, net)
    """
    fee = (amount * rate).quantize(_WHOLE_UNIT, rounding=ROUND_HALF_UP) + fixed_fee
    return fee, amount - fee
