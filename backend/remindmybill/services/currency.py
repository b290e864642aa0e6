"""Currency conversion and display formatting.

Rates come from a pluggable ``RateSource``. The bundled ``StaticRateSource``
holds a USD-based table (1 USD = X units) and derives cross rates through USD.
Conversion never rounds; use ``round_money`` at display or comparison time.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Protocol

from remindmybill.config import settings
from remindmybill.exceptions import UnknownCurrencyError

SYMBOL_TO_ISO = {
    "€": "EUR",
    "$": "USD",
    "£": "GBP",
    "¥": "JPY",
    "₩": "KRW",
    "₹": "INR",
}

USD_RATES = {
    "USD": Decimal("1"),
    "EUR": Decimal("0.92"),
    "GBP": Decimal("0.79"),
    "JPY": Decimal("149.5"),
    "CAD": Decimal("1.36"),
    "AUD": Decimal("1.53"),
    "KRW": Decimal("1330"),
    "INR": Decimal("83.2"),
}

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "CAD": "C$",
    "AUD": "A$",
    "KRW": "₩",
    "INR": "₹",
}

# Locales that put the symbol after the amount and use "." for thousands
_SUFFIX_LOCALES = ("de", "fr", "es", "it", "nl")

CENT = Decimal("0.01")


class RateSource(Protocol):
    def rate(self, from_code: str, to_code: str) -> Decimal: ...


class StaticRateSource:
    def __init__(self, usd_rates: dict[str, Decimal] | None = None):
        self.usd_rates = dict(usd_rates or USD_RATES)

    def _usd_rate(self, code: str) -> Decimal:
        try:
            return self.usd_rates[code]
        except KeyError:
            raise UnknownCurrencyError(code) from None

    def rate(self, from_code: str, to_code: str) -> Decimal:
        return self._usd_rate(to_code) / self._usd_rate(from_code)


default_rates = StaticRateSource()


def sanitize_currency(code: str | None) -> str:
    if not code:
        return settings.DEFAULT_CURRENCY
    stripped = code.strip()
    return SYMBOL_TO_ISO.get(stripped) or stripped.upper()


def convert(
    amount: Decimal | int | float,
    from_code: str | None,
    to_code: str | None,
    rates: RateSource | None = None,
) -> Decimal:
    amount = Decimal(str(amount))
    source = sanitize_currency(from_code)
    target = sanitize_currency(to_code)
    if source == target:
        return amount
    return amount * (rates or default_rates).rate(source, target)


def round_money(amount: Decimal | int | float) -> Decimal:
    return Decimal(str(amount)).quantize(CENT, rounding=ROUND_HALF_UP)


def format_currency(amount: Decimal | int | float, code: str | None = "USD", locale: str = "en-US") -> str:
    iso = sanitize_currency(code)
    value = round_money(amount)
    sign = "-" if value < 0 else ""
    digits = f"{abs(value):,.2f}"

    language = locale.replace("_", "-").split("-")[0].lower()
    symbol = CURRENCY_SYMBOLS.get(iso)

    if language in _SUFFIX_LOCALES:
        digits = digits.replace(",", "\x00").replace(".", ",").replace("\x00", ".")
        return f"{sign}{digits} {symbol or iso}"
    if symbol is None:
        return f"{sign}{iso} {digits}"
    return f"{sign}{symbol}{digits}"
