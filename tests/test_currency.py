"""
Unit tests for currency display formatting.
"""
import pytest

from app.services.currency import CURRENCY_SYMBOLS, currency_symbol, format_money


@pytest.mark.parametrize(
    "code, symbol",
    [
        ("NGN", "₦"),
        ("USD", "$"),
        ("EUR", "€"),
        ("GBP", "£"),
        ("JPY", "¥"),
        ("CAD", "$"),
        ("AUD", "$"),
        ("CHF", "CHF"),
        ("CNY", "¥"),
        ("INR", "₹"),
    ],
)
def test_supported_symbols(code, symbol):
    assert currency_symbol(code) == symbol
    assert format_money(1234567, code) == f"{symbol}1,234,567"


def test_table_covers_all_documented_codes():
    assert len(CURRENCY_SYMBOLS) == 10


def test_unknown_code_is_echoed():
    assert format_money(1500, "XOF") == "XOF1,500"


def test_example_amount():
    assert format_money(50000, "NGN") == "₦50,000"


def test_fractional_amounts_keep_decimals():
    assert format_money(12.5, "USD") == "$12.5"
    assert format_money(1999.99, "GBP") == "£1,999.99"


def test_small_and_zero_amounts():
    assert format_money(0, "USD") == "$0"
    assert format_money(999, "EUR") == "€999"


def test_never_fails_on_empty_code():
    assert format_money(10, "") == "10"
