"""Tests for fixed-point amount helpers and fee calculation."""

from decimal import Decimal

import pytest

from src.p2p_common.amounts import (
    calculate_fee,
    format_amount,
    require_positive,
    require_scale,
    to_decimal,
)
from src.p2p_common.errors import InputValidationError


class TestToDecimal:
    def test_parses_strings_and_ints(self) -> None:
        assert to_decimal("19.6") == Decimal("19.6")
        assert to_decimal(20) == Decimal("20")
        assert to_decimal(" 0.000000000000000001 ") == Decimal("1E-18")

    @pytest.mark.parametrize("bad", [1.5, True, "abc", "NaN", "Infinity", None])
    def test_rejects_non_decimal_input(self, bad: object) -> None:
        with pytest.raises(InputValidationError):
            to_decimal(bad)


class TestValidators:
    @pytest.mark.parametrize("value", ["0", "-1"])
    def test_require_positive(self, value: str) -> None:
        with pytest.raises(InputValidationError):
            require_positive(Decimal(value))

    def test_require_scale_accepts_trailing_zeros(self) -> None:
        assert require_scale(Decimal("1.500000000000"), 8) == Decimal("1.500000000000")

    def test_require_scale_rejects_extra_digits(self) -> None:
        with pytest.raises(InputValidationError):
            require_scale(Decimal("0.123456789"), 8)


class TestCalculateFee:
    def test_five_percent_of_hundred(self) -> None:
        assert calculate_fee(Decimal("100"), Decimal("5")) == Decimal("5.00000000")

    def test_two_percent_of_twenty(self) -> None:
        assert calculate_fee(Decimal("20"), Decimal("2")) == Decimal("0.40000000")

    def test_zero_rate(self) -> None:
        assert calculate_fee(Decimal("20"), Decimal("0")) == Decimal("0")

    def test_rounds_up_at_eighth_place(self) -> None:
        # 0.00000001 * 1% = 1e-10 -> 0.00000001
        assert calculate_fee(Decimal("0.00000001"), Decimal("1")) == Decimal("0.00000001")

    def test_full_rate_takes_everything(self) -> None:
        assert calculate_fee(Decimal("3"), Decimal("100")) == Decimal("3")


def test_format_amount() -> None:
    assert format_amount(Decimal("95")) == "95.00000000"
    assert format_amount(Decimal("1.5"), 18) == "1.500000000000000000"
