"""
Money Helpers Module

Decimal coercion, form-input parsing and display formatting for account
amounts. NEVER uses float arithmetic for monetary values.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, getcontext
from typing import Union
import re

# Set global decimal context for financial precision
getcontext().prec = 28

Amount = Union[Decimal, int, float, str]

ZERO = Decimal('0')

# Amounts above this many digits before the point are rejected
MAX_INTEGER_DIGITS = 18

_LEADING_SYMBOLS = re.compile(r'^[\s$€£¥]+')
_NUMERIC_PREFIX = re.compile(r'[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?')


def to_decimal(value: Amount) -> Decimal:
    """
    Coerce a numeric value to Decimal

    Floats go through str() so 0.1 becomes Decimal('0.1') rather than its
    binary expansion.

    Raises:
        ValueError: If the value is not numeric, not finite or out of range
    """
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool):
        raise ValueError(f"Cannot convert {value!r} to Decimal")
    elif isinstance(value, (int, float, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"Cannot convert {value!r} to Decimal")
    else:
        raise ValueError(f"Cannot convert {value!r} to Decimal")

    if not result.is_finite():
        raise ValueError(f"Amount must be finite, got {value!r}")
    if result.adjusted() >= MAX_INTEGER_DIGITS:
        raise ValueError(f"Amount out of range: {value!r}")
    return result


def parse_amount(value: str) -> Decimal:
    """
    Parse a form-submitted amount the way a loose numeric cast would

    Leading currency symbols and thousands separators are removed, then the
    longest leading number is taken: "1e3" is 1000, "1a2" is 1 and "1.5.5"
    is 1.5. Input with no leading number yields zero, which every account
    operation then reports as a non-positive amount.

    Args:
        value: Raw text from the caller

    Returns:
        Decimal value (zero when nothing numeric was supplied)
    """
    if value is None:
        return ZERO
    if not isinstance(value, str):
        try:
            return to_decimal(value)
        except ValueError:
            return ZERO

    text = _LEADING_SYMBOLS.sub('', value)

    # Both comma and dot - comma is the thousands separator
    if ',' in text and '.' in text:
        text = text.replace(',', '')
    elif text.count(',') == 1 and len(text.split(',')[1]) <= 2:
        text = text.replace(',', '.')  # Decimal separator
    else:
        text = text.replace(',', '')

    match = _NUMERIC_PREFIX.match(text)
    if not match:
        return ZERO
    try:
        return to_decimal(match.group(0))
    except ValueError:
        return ZERO


def display_plain(value: Decimal) -> str:
    """Decimal as plain digits for messages, e.g. Decimal('1E+2') -> '100'"""
    return f"{value:f}"


def quantize_amount(value: Decimal, precision: int = 2) -> Decimal:
    """Round to the given number of decimal places (ROUND_HALF_UP)"""
    return value.quantize(Decimal('0.1') ** precision, rounding=ROUND_HALF_UP)


def format_amount(value: Amount, precision: int = 2) -> str:
    """Format for display, e.g. Decimal('1234.5') -> '1,234.50'"""
    rounded = quantize_amount(to_decimal(value), precision)
    return f"{rounded:,.{precision}f}"
