"""
Currency symbols and price formatting for breakdown descriptions.

The engine never converts between currencies; the code only picks the symbol
shown in human-readable descriptions.
"""

import logging
from typing import Dict

from quote_engine.core.config import DEFAULT_CURRENCY

logger = logging.getLogger(__name__)

CURRENCIES: Dict[str, Dict[str, str]] = {
    "USD": {"symbol": "$", "code": "USD", "name": "US Dollar"},
    "IDR": {"symbol": "Rp", "code": "IDR", "name": "Indonesian Rupiah"},
}


def get_currency(code: str | None) -> Dict[str, str]:
    """Return the currency config for a code, falling back to the default."""
    key = (code or DEFAULT_CURRENCY).upper()
    if key not in CURRENCIES:
        logger.warning(f"Unknown currency '{code}', using {DEFAULT_CURRENCY}")
        key = DEFAULT_CURRENCY if DEFAULT_CURRENCY in CURRENCIES else "USD"
    return CURRENCIES[key]


def format_price(
    amount: float,
    currency: str | None = None,
    min_decimals: int = 2,
    max_decimals: int = 6,
) -> str:
    """
    Format an amount with its currency symbol.

    Fractions of a cent keep up to ``max_decimals`` places so that tiny
    per-unit prices do not render as zero.
    """
    symbol = get_currency(currency)["symbol"]
    if 0 < amount < 0.01:
        return f"{symbol}{amount:.{max_decimals}f}"
    return f"{symbol}{amount:.{min_decimals}f}"


def format_number(value: float) -> str:
    """Render a plain number without a trailing '.0' for whole values."""
    if float(value).is_integer():
        return str(int(value))
    return str(value)
