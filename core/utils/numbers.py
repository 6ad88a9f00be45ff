"""
Numeric Parsing Utilities

Exchanges send prices and percentages as JSON strings ("64250.10000000") or
numbers. Both are parsed through Decimal so that a missing, empty or garbage
field raises MalformedError instead of silently turning into 0.0.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from core.errors import MalformedError


def parse_decimal(
    value: Any,
    field: str,
    exchange: Optional[str] = None,
    pair_id: Optional[str] = None
) -> Decimal:
    """
    Parse an exchange numeric field into a finite Decimal.

    Args:
        value: Raw JSON value (str, int or float)
        field: Field name, used in the error message
        exchange: Exchange name for error context
        pair_id: Pair identifier for error context

    Returns:
        Decimal: The parsed value

    Raises:
        MalformedError: If the value is missing, boolean, non-numeric or not finite

    Examples:
        >>> parse_decimal("64250.10", "lastPrice")
        Decimal('64250.10')
        >>> parse_decimal(None, "lastPrice")
        Traceback (most recent call last):
        ...
        core.errors.MalformedError: malformed: missing field 'lastPrice'
    """
    if value is None:
        raise MalformedError(f"missing field '{field}'", exchange, pair_id)

    # bool is an int subclass, but never a valid price
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise MalformedError(f"field '{field}' is not numeric: {value!r}", exchange, pair_id)

    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise MalformedError(f"field '{field}' is not numeric: {value!r}", exchange, pair_id)

    if not number.is_finite():
        raise MalformedError(f"field '{field}' is not finite: {value!r}", exchange, pair_id)

    return number


def parse_price(
    value: Any,
    field: str,
    exchange: Optional[str] = None,
    pair_id: Optional[str] = None
) -> Decimal:
    """
    Parse a price field; prices must be strictly positive.

    Raises:
        MalformedError: If the value is not a positive finite number
    """
    price = parse_decimal(value, field, exchange, pair_id)
    if price <= 0:
        raise MalformedError(f"field '{field}' must be positive, got {value!r}", exchange, pair_id)
    return price
