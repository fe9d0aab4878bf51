"""Tests for fixed-point money helpers."""

from decimal import Decimal

import pytest

from sweeps_ledger.utils.errors import ValidationError
from sweeps_ledger.utils.money import (
    apply_multiplier,
    bp_to_multiplier,
    format_coins,
    from_minor,
    multiplier_to_bp,
    percent_of,
    to_minor,
)


class TestToMinor:
    def test_whole_and_fractional_amounts(self):
        """Coins convert to hundredths."""
        assert to_minor(Decimal("150")) == 15000
        assert to_minor("0.01") == 1
        assert to_minor(7) == 700
        assert to_minor("12.50") == 1250

    def test_sub_cent_precision_rejected(self):
        """More than two decimal places is not representable."""
        with pytest.raises(ValidationError):
            to_minor("1.005")

    @pytest.mark.parametrize("value", ["abc", "NaN", "Infinity"])
    def test_non_numbers_rejected(self, value):
        with pytest.raises(ValidationError):
            to_minor(value)


class TestConversions:
    def test_from_minor_quantizes(self):
        assert from_minor(14500) == Decimal("145.00")
        assert from_minor(1) == Decimal("0.01")

    def test_multiplier_truncates_to_basis_points(self):
        """99 / 49.5 is exactly 2x; 99 / 70 truncates."""
        assert multiplier_to_bp(Decimal(99) / Decimal("49.5")) == 20000
        assert multiplier_to_bp(Decimal(99) / Decimal(70)) == 14142
        assert bp_to_multiplier(14142) == Decimal("1.4142")

    def test_payout_rounds_down(self):
        assert apply_multiplier(100, 20000) == 200
        assert apply_multiplier(3, 14142) == 4
        assert apply_multiplier(100, 0) == 0

    def test_percent_of_rounds_down(self):
        assert percent_of(100000, 50) == 50000
        assert percent_of(99, 30) == 29

    def test_format_coins(self):
        assert format_coins(123456, "sc") == "1,234.56 SC"
