"""
Test suite for currency module

Tests Decimal coercion, loose parsing of form input and display formatting.
"""

import pytest
from decimal import Decimal

from simple_bank.currency import (
    ZERO, display_plain, format_amount, parse_amount, quantize_amount, to_decimal
)


class TestToDecimal:
    """Test strict coercion"""

    def test_supported_types(self):
        assert to_decimal(Decimal('1.50')) == Decimal('1.50')
        assert to_decimal(5) == Decimal('5')
        assert to_decimal("12.34") == Decimal('12.34')
        assert to_decimal(" 7 ") == Decimal('7')

    def test_float_goes_through_string(self):
        assert to_decimal(0.1) == Decimal('0.1')
        assert to_decimal(0.1) + to_decimal(0.2) == Decimal('0.3')

    @pytest.mark.parametrize("value", ["abc", "", None, True, [1], "NaN", "Infinity"])
    def test_rejects_non_numeric(self, value):
        with pytest.raises(ValueError):
            to_decimal(value)

    def test_rejects_out_of_range(self):
        with pytest.raises(ValueError, match="out of range"):
            to_decimal("1e30")
        assert to_decimal("1e17") == Decimal('100000000000000000')


class TestParseAmount:
    """Test loose parsing of submitted amounts"""

    def test_plain_numbers(self):
        assert parse_amount("50") == Decimal('50')
        assert parse_amount("50.25") == Decimal('50.25')
        assert parse_amount("-5") == Decimal('-5')

    def test_symbols_and_separators(self):
        assert parse_amount("$1,234.50") == Decimal('1234.50')
        assert parse_amount("1,234") == Decimal('1234')
        assert parse_amount("12,5") == Decimal('12.5')

    def test_exponent_notation(self):
        """Number inputs may submit scientific notation"""
        assert parse_amount("1e3") == Decimal('1000')
        assert parse_amount("2.5E2") == Decimal('250')
        assert parse_amount("1e-2") == Decimal('0.01')

    def test_longest_numeric_prefix(self):
        """Trailing junk is ignored after the leading number"""
        assert parse_amount("1a2") == Decimal('1')
        assert parse_amount("1.5.5") == Decimal('1.5')
        assert parse_amount("  42 dollars") == Decimal('42')
        assert parse_amount("1e") == Decimal('1')

    def test_out_of_range_becomes_zero(self):
        assert parse_amount("1e999999") == ZERO

    @pytest.mark.parametrize("value", ["", "   ", "abc", "-", "a1", None])
    def test_garbage_becomes_zero(self, value):
        assert parse_amount(value) == ZERO

    def test_non_string_input(self):
        assert parse_amount(Decimal('3')) == Decimal('3')
        assert parse_amount(2.5) == Decimal('2.5')


class TestFormatting:
    """Test display formatting"""

    def test_display_plain(self):
        assert display_plain(Decimal('1E+2')) == "100"
        assert display_plain(Decimal('10.25')) == "10.25"
        assert display_plain(Decimal('0')) == "0"
        assert display_plain(Decimal('1E-2')) == "0.01"

    def test_two_decimal_places(self):
        assert format_amount(Decimal('150')) == "150.00"
        assert format_amount(Decimal('1234.5')) == "1,234.50"
        assert format_amount(20) == "20.00"

    def test_rounding_half_up(self):
        assert quantize_amount(Decimal('100.555')) == Decimal('100.56')
        assert format_amount(Decimal('0.005')) == "0.01"

    def test_custom_precision(self):
        assert format_amount(Decimal('1234.5'), precision=0) == "1,235"
