"""
Currency display formatting.

Symbols come from a static table; digits are grouped with Babel's decimal
pattern for the configured locale (``#,##0.###`` for en_US), which matches
what the browser client shows for the same amount.
"""
from __future__ import annotations

from babel.numbers import format_decimal

from app.config import settings

CURRENCY_SYMBOLS: dict[str, str] = {
    "NGN": "₦",
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "CAD": "$",
    "AUD": "$",
    "CHF": "CHF",
    "CNY": "¥",
    "INR": "₹",
}

SUPPORTED_CURRENCIES: list[str] = list(CURRENCY_SYMBOLS)


def currency_symbol(currency_code: str) -> str:
    """Display symbol for ``currency_code``; unknown codes are echoed."""
    return CURRENCY_SYMBOLS.get(currency_code, currency_code or "")


def group_digits(amount: float, locale: str | None = None) -> str:
    return format_decimal(amount, locale=locale or settings.RECEIPT_LOCALE)


def format_money(amount: float, currency_code: str, locale: str | None = None) -> str:
    """``symbol + grouped(amount)``, e.g. ``format_money(50000, "NGN") == "₦50,000"``."""
    return f"{currency_symbol(currency_code)}{group_digits(amount or 0, locale)}"
