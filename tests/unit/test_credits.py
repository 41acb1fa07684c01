"""Unit tests for fixed-point credit helpers."""

from decimal import Decimal

import pytest

from src.pm_common.credits import (
    credits_to_display,
    fee_multiplier,
    quantize,
    quantize_down,
    to_decimal,
)


class TestToDecimal:
    def test_float_goes_through_repr(self) -> None:
        assert to_decimal(0.1) == Decimal("0.1")

    def test_passthrough_and_ints(self) -> None:
        d = Decimal("12.5")
        assert to_decimal(d) is d
        assert to_decimal(7) == Decimal(7)
        assert to_decimal("3.000001") == Decimal("3.000001")

    def test_bool_rejected(self) -> None:
        with pytest.raises(TypeError):
            to_decimal(True)

    def test_garbage_rejected(self) -> None:
        with pytest.raises(ValueError):
            to_decimal("ten")


class TestRounding:
    def test_quantize_down_truncates(self) -> None:
        assert quantize_down(Decimal("1.0000009")) == Decimal("1.000000")
        assert quantize_down(Decimal("909.0909090909")) == Decimal("909.090909")

    def test_quantize_half_even(self) -> None:
        assert quantize(Decimal("0.0000005")) == Decimal("0.000000")
        assert quantize(Decimal("0.0000015")) == Decimal("0.000002")

    @pytest.mark.parametrize(
        "fee_bps,expected", [(0, "1"), (30, "0.997"), (200, "0.98"), (9999, "0.0001")]
    )
    def test_fee_multiplier(self, fee_bps: int, expected: str) -> None:
        assert fee_multiplier(fee_bps) == Decimal(expected)


class TestDisplay:
    @pytest.mark.parametrize(
        "amount,expected",
        [
            (Decimal("1500.5"), "1,500.50"),
            (Decimal("0"), "0.00"),
            (Decimal("10000"), "10,000.00"),
            (Decimal("-42.125"), "-42.12"),
        ],
    )
    def test_credits_to_display(self, amount: Decimal, expected: str) -> None:
        assert credits_to_display(amount) == expected
