"""
Price parsing and formatting helpers.
"""

import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional, Union


# Anything that is not part of a plain decimal number: currency symbols,
# thousands separators, whitespace
_NON_NUMERIC = re.compile(r"[^0-9.\-]")

TWO_PLACES = Decimal("0.01")

# Larger values are treated as data entry errors
MAX_PRICE = Decimal("1000000000")

PriceLike = Union[str, int, float, Decimal]


def parse_price(value: Optional[PriceLike]) -> Optional[Decimal]:
    """
    Parse a spreadsheet price cell.

    Currency symbols and thousands separators are stripped before parsing,
    so "$1,234.50" parses to Decimal("1234.50").

    Args:
        value: Raw cell value

    Returns:
        Parsed Decimal, or None if the cell is empty, not a number or
        above MAX_PRICE in magnitude
    """
    if value is None:
        return None

    if isinstance(value, Decimal):
        return value if value.is_finite() and abs(value) <= MAX_PRICE else None

    cleaned = _NON_NUMERIC.sub("", str(value))
    if not cleaned:
        return None

    try:
        price = Decimal(cleaned)
    except InvalidOperation:
        return None

    if not price.is_finite() or abs(price) > MAX_PRICE:
        return None

    return price


def format_price(value: Optional[PriceLike]) -> Optional[str]:
    """
    Format a price to standard format (2 decimal places).

    Args:
        value: Price as string, number or Decimal

    Returns:
        Formatted price or None
    """
    if value is None:
        return None

    try:
        decimal_value = Decimal(str(value))
        return str(decimal_value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP))
    except InvalidOperation:
        return None
