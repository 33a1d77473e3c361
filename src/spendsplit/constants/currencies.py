"""Selectable display currencies."""

from __future__ import annotations

from ..models.currency import Currency

DEFAULT_CURRENCY = Currency(code="INR", name="Indian Rupee", symbol="₹")

CURRENCIES = [
    Currency(code="AED", name="UAE Dirham", symbol="د.إ"),
    Currency(code="AUD", name="Australian Dollar", symbol="A$"),
    Currency(code="BRL", name="Brazilian Real", symbol="R$"),
    Currency(code="CAD", name="Canadian Dollar", symbol="C$"),
    Currency(code="CHF", name="Swiss Franc", symbol="CHF"),
    Currency(code="CNY", name="Chinese Yuan", symbol="¥"),
    Currency(code="EUR", name="Euro", symbol="€"),
    Currency(code="GBP", name="British Pound", symbol="£"),
    Currency(code="HKD", name="Hong Kong Dollar", symbol="HK$"),
    Currency(code="IDR", name="Indonesian Rupiah", symbol="Rp"),
    DEFAULT_CURRENCY,
    Currency(code="JPY", name="Japanese Yen", symbol="¥"),
    Currency(code="KRW", name="South Korean Won", symbol="₩"),
    Currency(code="MXN", name="Mexican Peso", symbol="MX$"),
    Currency(code="MYR", name="Malaysian Ringgit", symbol="RM"),
    Currency(code="NZD", name="New Zealand Dollar", symbol="NZ$"),
    Currency(code="PHP", name="Philippine Peso", symbol="₱"),
    Currency(code="PKR", name="Pakistani Rupee", symbol="₨"),
    Currency(code="SAR", name="Saudi Riyal", symbol="﷼"),
    Currency(code="SEK", name="Swedish Krona", symbol="kr"),
    Currency(code="SGD", name="Singapore Dollar", symbol="S$"),
    Currency(code="THB", name="Thai Baht", symbol="฿"),
    Currency(code="USD", name="US Dollar", symbol="$"),
    Currency(code="ZAR", name="South African Rand", symbol="R"),
]


def search_currencies(term: str | None) -> list[Currency]:
    """Filter currencies by a case-insensitive match on name or code."""

    lowered = (term or "").strip().lower()
    if not lowered:
        return list(CURRENCIES)
    return [c for c in CURRENCIES if lowered in c.name.lower() or lowered in c.code.lower()]


def find_currency(code: str) -> Currency | None:
    """Look up a built-in currency by ISO code."""

    upper = code.strip().upper()
    return next((c for c in CURRENCIES if c.code == upper), None)
