"""
Unit tests for fee calculation.
"""
from decimal import Decimal

import pytest

from pg_payments.domain.fees import calculate_fee


class TestCalculateFee:
    """Test suite for calculate_fee."""

    @pytest.mark.unit
    def test_percentage_plus_fixed_fee(self) -> None:
        """Test 3% plus a fixed fee of 100."""
        fee, net = calculate_fee(Decimal("10000"), Decimal("0.03"), Decimal("100"))

        assert fee == Decimal("400")
        assert net == Decimal("9600")

    @pytest.mark.unit
    def test_fixed_fee_only(self) -> None:
        """Test a zero rate with only the fixed fee."""
        fee, net = calculate_fee(Decimal("5000"), Decimal("0"), Decimal("200"))

        assert fee == Decimal("200")
        assert net == Decimal("4800")

    @pytest.mark.unit
    def test_rounds_half_up_before_adding_fixed_fee(self) -> None:
        """Test 2.35% of 1050 = 24.675 rounds to 25."""
        fee, net = calculate_fee(Decimal("1050"), Decimal("0.0235"), Decimal("0"))

        assert fee == Decimal("25")
        assert net == Decimal("1025")

    @pytest.mark.unit
    def test_exact_half_rounds_up(self) -> None:
        """Test 0.5 rounds away from zero, not to even."""
        fee, _ = calculate_fee(Decimal("50"), Decimal("0.01"), Decimal("0"))

        assert fee == Decimal("1")

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "amount,rate,fixed_fee",
        [
            (Decimal("1"), Decimal("0.9999"), Decimal("0")),
            (Decimal("123456789"), Decimal("0.0275"), Decimal("50")),
            (Decimal("999"), Decimal("0.033"), Decimal("0")),
        ],
    )
    def test_net_plus_fee_equals_amount(
        self, amount: Decimal, rate: Decimal, fixed_fee: Decimal
    ) -> None:
        """Test fee and net always add back up to the amount."""
        fee, net = calculate_fee(amount, rate, fixed_fee)

        assert fee + net == amount
        assert fee == fee.to_integral_value()
