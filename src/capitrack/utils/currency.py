"""Currency code helpers."""

from typing import Optional

CURRENCY_SYMBOLS = {
    "$": "USD",
    "US$": "USD",
    "€": "EUR",
    "£": "GBP",
    "¥": "JPY",
    "₪": "ILS",
    "ש\"ח": "ILS",
    "שח": "ILS",
    "דולר": "USD",
    "אירו": "EUR",
    "יורו": "EUR",
    "ליש\"ט": "GBP",
}


def currency_to_code(value: Optional[str]) -> Optional[str]:
    """Convert a currency symbol or name to its ISO 4217 code.

    Unknown values are returned upper-cased, so "usd" becomes "USD".
    """
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    if value in CURRENCY_SYMBOLS:
        return CURRENCY_SYMBOLS[value]
    return value.upper()
