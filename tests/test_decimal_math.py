"""Tests for Decimal money helpers."""

from decimal import Decimal, InvalidOperation

import pytest

from calculator.decimal_math import (
    add,
    clamp,
    divide,
    format_money,
    hours,
    money,
    percent_of,
    sum_money,
    to_decimal,
    to_float,
)


class TestToDecimal:
    """Tests for to_decimal conversion."""

    def test_float_goes_through_str(self):
        """0.1 should stay 0.1, not its binary expansion."""
        assert to_decimal(0.1) == Decimal("0.1")

    def test_none_and_empty_use_default(self):
        assert to_decimal(None) == Decimal("0")
        assert to_decimal("", default=5) == Decimal("5")

    def test_rejects_bool(self):
        with pytest.raises(InvalidOperation):
            to_decimal(True)

    def test_rejects_garbage(self):
        with pytest.raises(InvalidOperation):
            to_decimal("eight")


class TestRounding:
    """Tests for money/hours rounding."""

    def test_money_rounds_half_up(self):
        assert money(2.675) == Decimal("2.68")
        assert money("100.994") == Decimal("100.99")
        assert money(100.999) == Decimal("101.00")

    def test_hours_two_places(self):
        assert hours("7.333") == Decimal("7.33")

    def test_add_avoids_float_drift(self):
        assert add(0.1, 0.2) == Decimal("0.3")

    def test_sum_money(self):
        assert sum_money([10.005, 0.004]) == Decimal("10.01")


class TestDivision:
    def test_divide_by_zero_with_default(self):
        assert divide(10, 0, default=0) == Decimal("0")

    def test_divide_by_zero_raises(self):
        with pytest.raises(InvalidOperation):
            divide(10, 0)

    def test_percent_of(self):
        assert percent_of(25, 200) == Decimal("12.50")
        assert percent_of(5, 0) == Decimal("0.00")

    def test_clamp(self):
        assert clamp(150, 0, 100) == Decimal("100")
        assert clamp(-3, 0, 100) == Decimal("0")


class TestFormatting:
    def test_format_money(self):
        assert format_money(1234567.89) == "$1,234,567.89"
        assert format_money(-5) == "-$5.00"

    def test_to_float(self):
        assert to_float(Decimal("12.50")) == 12.5
        assert to_float(None) == 0.0
