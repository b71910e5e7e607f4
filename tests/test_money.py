"""
Tests for exact Decimal amount handling
"""

import pytest
from decimal import Decimal

from eagle_bank.errors import ValidationError
from eagle_bank.money import (
    ZERO, add_amounts, format_amount, subtract_amounts, to_amount, to_positive_amount
)


class TestToAmount:
    """Test conversion of incoming values to two-decimal amounts"""

    def test_accepts_decimal_string_and_int(self):
        assert to_amount(Decimal('10.5')) == Decimal('10.50')
        assert to_amount("99.99") == Decimal('99.99')
        assert to_amount(" 7 ") == Decimal('7.00')
        assert to_amount(3) == Decimal('3.00')

    def test_result_always_has_two_fraction_digits(self):
        assert str(to_amount("5")) == "5.00"
        assert str(to_amount(Decimal('0.1'))) == "0.10"

    def test_rejects_float(self):
        with pytest.raises(ValidationError, match="exact decimal"):
            to_amount(0.1)

    def test_rejects_bool(self):
        with pytest.raises(ValidationError):
            to_amount(True)

    def test_rejects_garbage(self):
        with pytest.raises(ValidationError, match="not a valid decimal"):
            to_amount("ten pounds")

    def test_rejects_non_finite(self):
        with pytest.raises(ValidationError, match="finite"):
            to_amount("NaN")
        with pytest.raises(ValidationError, match="finite"):
            to_amount(Decimal('Infinity'))

    def test_rejects_sub_cent_precision(self):
        with pytest.raises(ValidationError, match="2 decimal places"):
            to_amount("1.005")

    def test_trailing_zeros_beyond_cents_are_fine(self):
        assert to_amount("1.5000") == Decimal('1.50')

    def test_negative_amounts_pass_through(self):
        assert to_amount("-5.00") == Decimal('-5.00')

    def test_large_amounts_kept_exact(self):
        big = "1" + "0" * 27
        assert to_amount(big) == Decimal(big + ".00")
        assert str(to_amount("9e25")) == "9" + "0" * 25 + ".00"
        assert to_amount("12345678901234567890123456789.99") == Decimal("12345678901234567890123456789.99")

    def test_out_of_range_exponent_rejected(self):
        with pytest.raises(ValidationError, match="out of range"):
            to_amount("1e1000000")


class TestToPositiveAmount:
    """Test strictly positive amount checks"""

    def test_positive(self):
        assert to_positive_amount("0.01") == Decimal('0.01')

    def test_zero_rejected(self):
        with pytest.raises(ValidationError, match="Amount must be positive"):
            to_positive_amount(ZERO)

    def test_negative_rejected_with_field_name(self):
        with pytest.raises(ValidationError, match="Deposit amount must be positive"):
            to_positive_amount("-5.00", "deposit amount")


def test_format_amount():
    assert format_amount(Decimal('12')) == "12.00"
    assert format_amount(Decimal('0.5')) == "0.50"
    assert format_amount(Decimal("1" + "0" * 30)) == "1" + "0" * 30 + ".00"


class TestAmountArithmetic:
    """Test exact sums and differences beyond the default context precision"""

    def setup_method(self):
        self.big = Decimal("180000000000000000000000000.00")

    def test_add_keeps_cents(self):
        assert add_amounts(self.big, Decimal('0.01')) == Decimal("180000000000000000000000000.01")
        assert add_amounts(Decimal('99.99'), Decimal('0.01')) == Decimal('100.00')

    def test_subtract_keeps_cents(self):
        assert subtract_amounts(self.big, Decimal('0.01')) == Decimal("179999999999999999999999999.99")

    def test_carry_into_new_digit(self):
        nines = Decimal("9" * 40 + ".99")
        assert add_amounts(nines, Decimal('0.01')) == Decimal("1" + "0" * 40 + ".00")

    def test_round_trip_is_conserved(self):
        cent = Decimal('0.01')
        assert subtract_amounts(add_amounts(self.big, cent), cent) == self.big
