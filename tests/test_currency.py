"""
Tests for currency conversion, rounding and formatting.
"""

from decimal import Decimal

import pytest

from remindmybill.exceptions import UnknownCurrencyError
from remindmybill.services.currency import (
    StaticRateSource,
    convert,
    format_currency,
    round_money,
    sanitize_currency,
)


class TestSanitizeCurrency:
    @pytest.mark.parametrize("value,expected", [
        ("$", "USD"),
        ("€", "EUR"),
        ("£", "GBP"),
        (" eur ", "EUR"),
        ("", "USD"),
        (None, "USD"),
    ])
    def test_sanitize(self, value, expected):
        assert sanitize_currency(value) == expected


class TestConvert:
    def test_same_currency_is_identity(self):
        assert convert(Decimal("12.34"), "EUR", "eur") == Decimal("12.34")

    def test_usd_to_eur(self):
        assert convert(Decimal("100"), "USD", "EUR") == Decimal("92.00")

    def test_cross_rate_goes_through_usd(self):
        result = convert(Decimal("92"), "EUR", "GBP")
        assert round_money(result) == Decimal("79.00")

    def test_round_trip_within_tolerance(self):
        for code in ("EUR", "GBP", "JPY", "CAD", "AUD", "KRW", "INR"):
            there = convert(Decimal("49.99"), "USD", code)
            back = convert(there, code, "USD")
            assert abs(back - Decimal("49.99")) < Decimal("0.000001")

    def test_unknown_currency_raises(self):
        with pytest.raises(UnknownCurrencyError) as exc_info:
            convert(Decimal("10"), "USD", "XYZ")
        assert exc_info.value.code == "XYZ"

    def test_unknown_source_currency_raises(self):
        with pytest.raises(UnknownCurrencyError):
            convert(Decimal("10"), "ZZZ", "USD")

    def test_pluggable_rate_source(self):
        rates = StaticRateSource({"USD": Decimal("1"), "CHF": Decimal("0.5")})
        assert convert(Decimal("10"), "USD", "CHF", rates) == Decimal("5.0")
        with pytest.raises(UnknownCurrencyError):
            convert(Decimal("10"), "USD", "EUR", rates)

    def test_zero_amount(self):
        assert convert(0, "USD", "JPY") == 0


class TestRoundMoney:
    def test_half_up(self):
        assert round_money(Decimal("2.345")) == Decimal("2.35")
        assert round_money(Decimal("2.344")) == Decimal("2.34")

    def test_repeated_thirds_do_not_drift(self):
        third = Decimal("10") / 3
        assert round_money(third * 3) == Decimal("10.00")


class TestFormatCurrency:
    def test_us_dollars(self):
        assert format_currency(Decimal("1234.5"), "USD") == "$1,234.50"

    def test_always_two_fraction_digits(self):
        assert format_currency(Decimal("3"), "GBP") == "£3.00"
        assert format_currency(Decimal("1500"), "JPY") == "¥1,500.00"

    def test_negative(self):
        assert format_currency(Decimal("-20"), "USD") == "-$20.00"

    def test_suffix_locale(self):
        assert format_currency(Decimal("1234.5"), "EUR", "de-DE") == "1.234,50 €"

    def test_unknown_symbol_uses_code(self):
        assert format_currency(Decimal("9.99"), "SEK") == "SEK 9.99"
