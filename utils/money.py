"""
utils/money.py
--------------
Amount formatting for display. Symbols are shown as-is; no currency conversion.
"""

import math

CURRENCY_SYMBOLS = ("€", "$", "£")


def check_currency_symbol(symbol: str) -> str:
    """
    Validate a configured currency symbol.

    Raises:
        ValueError: If the symbol is not one of CURRENCY_SYMBOLS.
    """
    symbol = (symbol or "").strip()
    if symbol not in CURRENCY_SYMBOLS:
        raise ValueError(f"Unsupported currency symbol {symbol!r}, use one of {' '.join(CURRENCY_SYMBOLS)}")
    return symbol


def format_money(value, symbol: str = "€") -> str:
    """
    Two decimals with a comma separator, symbol appended: 12.3 -> "12,30€".

    Accepts floats and the exact fractions returned by services.amounts.
    Non-finite values (NaN, inf) are shown as zero.
    """
    if value is None or not math.isfinite(value):
        value = 0.0
    return f"{float(value):.2f}".replace(".", ",") + symbol
