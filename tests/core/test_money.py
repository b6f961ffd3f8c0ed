from decimal import Decimal

import pytest

from src.core.exceptions import ValidationError
from src.shared.utils.money import (
    format_money,
    from_minor_units,
    has_sub_cent_digits,
    percentage_of,
    require_non_negative,
    round_money,
    to_minor_units,
)


class TestRoundMoney:
    """Tests for round_money function."""

    def test_round_half_up(self):
        assert round_money("10.125") == Decimal("10.13")
        assert round_money("10.124") == Decimal("10.12")
        assert round_money("10.115") == Decimal("10.12")

    def test_float_goes_through_str(self):
        """0.1 + 0.2 must not leak binary artefacts into cents."""
        assert round_money(0.1 + 0.2) == Decimal("0.30")

    def test_from_int(self):
        assert round_money(100) == Decimal("100.00")
        assert round_money(0) == Decimal("0.00")

    def test_negative_halves_round_towards_zero(self):
        assert round_money("-10.125") == Decimal("-10.12")
        assert round_money("-10.126") == Decimal("-10.13")

    def test_precision(self):
        assert str(round_money(10)) == "10.00"
        assert str(round_money("10.1")) == "10.10"


class TestMinorUnits:
    def test_to_minor_units(self):
        assert to_minor_units("1234.5") == 123450
        assert to_minor_units("-0.01") == -1

    def test_from_minor_units(self):
        assert from_minor_units(123450) == Decimal("1234.50")
        assert from_minor_units(-1) == Decimal("-0.01")


class TestSubCentDigits:
    def test_whole_cents(self):
        assert has_sub_cent_digits("10.50") is False
        assert has_sub_cent_digits("10.500") is False
        assert has_sub_cent_digits(100) is False

    def test_below_cent(self):
        assert has_sub_cent_digits("0.005") is True
        assert has_sub_cent_digits("100.004") is True
        assert has_sub_cent_digits("-0.004") is True


class TestPercentageOf:
    def test_whole_percentage(self):
        assert percentage_of("1000.00", "10") == Decimal("100.00")

    def test_fractional_result_rounds_half_up(self):
        # 12.5% of 0.99 = 0.12375
        assert percentage_of("0.99", "12.5") == Decimal("0.12")
        # 33.33% of 100.05 = 33.346665
        assert percentage_of("100.05", "33.33") == Decimal("33.35")

    def test_zero(self):
        assert percentage_of("1000.00", "0") == Decimal("0.00")
        assert percentage_of("0", "50") == Decimal("0.00")


class TestRequireNonNegative:
    def test_accepts_zero_and_positive(self):
        assert require_non_negative("0", "other_charges") == Decimal("0.00")
        assert require_non_negative("15.5", "other_charges") == Decimal("15.50")

    def test_rejects_negative(self):
        with pytest.raises(ValidationError) as exc_info:
            require_non_negative("-0.01", "other_charges")
        assert exc_info.value.details["field"] == "other_charges"


class TestFormatMoney:
    def test_usd(self):
        assert format_money(Decimal("1234.5")) == "$1,234.50"

    def test_negative_balance(self):
        assert format_money(Decimal("-1234.5"), "USD") == "-$1,234.50"

    def test_known_and_unknown_currency(self):
        assert format_money(Decimal("600"), "KES") == "KSh 600.00"
        assert format_money(Decimal("600"), "chf") == "CHF 600.00"
