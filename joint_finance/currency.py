"""Static exchange rates, currency conversion and display formatting.

Rates are expressed against USD.  Conversion goes through USD:
``amount / rate[from] * rate[to]``.  Fetching live rates is left to the
caller; pass a replacement ``rates`` mapping to use them.
"""

from __future__ import annotations

from typing import Dict, Mapping, Optional, Union

EXCHANGE_RATES: Dict[str, float] = {
    'USD': 1.0,
    'ILS': 3.65,
    'EUR': 0.92,
    'GBP': 0.79,
    'JPY': 149.50,
    'CAD': 1.36,
    'AUD': 1.52,
    'CHF': 0.88,
}

CURRENCY_SYMBOLS: Dict[str, str] = {
    'ILS': '₪',
    'USD': '$',
    'EUR': '€',
    'GBP': '£',
    'JPY': '¥',
    'CAD': '$',
    'AUD': '$',
    'CHF': 'CHF',
}

CURRENCY_NAMES: Dict[str, str] = {
    'ILS': 'Israeli Shekel',
    'USD': 'US Dollar',
    'EUR': 'Euro',
    'GBP': 'British Pound',
    'JPY': 'Japanese Yen',
    'CAD': 'Canadian Dollar',
    'AUD': 'Australian Dollar',
    'CHF': 'Swiss Franc',
}

# Older records store the shekel as NIS
CURRENCY_ALIASES = {'NIS': 'ILS'}

SUFFIX_SYMBOL_CURRENCIES = {'CHF'}


def normalize_currency(code: Optional[str]) -> str:
    """Upper-case ``code`` and resolve legacy aliases."""
    if not code:
        raise ValueError("Currency code cannot be empty")
    upper = code.strip().upper()
    return CURRENCY_ALIASES.get(upper, upper)


def convert_currency(
    amount: float,
    from_currency: str,
    to_currency: str,
    rates: Optional[Mapping[str, float]] = None,
) -> float:
    """Convert ``amount`` between currencies using USD as the pivot.

    Raises:
        ValueError: If either currency has no rate.
    """
    source = normalize_currency(from_currency)
    target = normalize_currency(to_currency)
    if source == target:
        return amount

    table = rates or EXCHANGE_RATES
    missing = [code for code in (source, target) if code not in table]
    if missing:
        raise ValueError(f"No exchange rate for: {', '.join(missing)}")

    amount_in_usd = amount / table[source]
    return amount_in_usd * table[target]


def currency_symbol(code: str) -> str:
    normalized = normalize_currency(code)
    return CURRENCY_SYMBOLS.get(normalized, normalized)


def currency_name(code: str) -> str:
    """Display name such as 'US Dollar'; unknown codes come back unchanged."""
    normalized = normalize_currency(code)
    return CURRENCY_NAMES.get(normalized, normalized)


def format_currency(amount: Union[float, int], currency: str = 'ILS', include_sign: bool = True) -> str:
    """Format a currency amount with thousands separators.

    Example:
        >>> format_currency(1234.5, 'USD')
        '$1,234.50'
        >>> format_currency(10, 'CHF')
        '10.00 CHF'
    """
    formatted = f"{amount:,.2f}"
    if not include_sign:
        return formatted
    normalized = normalize_currency(currency)
    symbol = currency_symbol(normalized)
    if normalized in SUFFIX_SYMBOL_CURRENCIES:
        return f"{formatted} {symbol}"
    return f"{symbol}{formatted}"
