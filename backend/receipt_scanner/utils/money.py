"""
Money normalization utilities for OCR amounts.

Canonical form is a dollar string with exactly two decimals:
- "$ 2.86"    → "$2.86"
- "CAD$ 60.00" → "$60.00"
- "60"        → "$60.00"
- "-3"        → "$-3.00"

Anything that does not reduce to a plain number is passed through unchanged
so the user still sees what was scanned.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, localcontext
from typing import Optional
import re

CENTS = Decimal('0.01')

# Currency codes like CAD, USD, CA (optionally glued to a "$")
CURRENCY_CODE_PATTERN = re.compile(r'[A-Z]{2,3}\s*\$?', re.IGNORECASE)
NUMERIC_PATTERN = re.compile(r'^-?(\d+(\.\d*)?|\.\d+)$')
LEADING_NUMBER_PATTERN = re.compile(r'^-?(\d+(\.\d*)?|\.\d+)')


def format_money(amount: Decimal) -> str:
    """
    Format a Decimal amount as a canonical money string.

    Precision grows with the amount, so long digit runs (barcodes or card
    numbers misread as amounts) still quantize. Negative zero prints as
    "$0.00".

    Examples:
        >>> format_money(Decimal('2.8'))
        '$2.80'
        >>> format_money(Decimal('-3'))
        '$-3.00'
    """
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, amount.adjusted() + 3)
        quantized = amount.quantize(CENTS, rounding=ROUND_HALF_UP)
        if quantized.is_zero():
            quantized = abs(quantized)
    return f"${quantized}"


def normalize_currency(value: Optional[str]) -> Optional[str]:
    """
    Normalize a raw currency value to "$X.XX".

    Args:
        value: Raw OCR value (e.g., "$ 2.86", "CAD$ 60.00", "60")

    Returns:
        Canonical money string, the original value if it is not a plain
        number once symbols are stripped, or None for empty input

    Examples:
        >>> normalize_currency("CAD$ 60.00")
        '$60.00'
        >>> normalize_currency("not-a-number")
        'not-a-number'
    """
    if not value:
        return None

    cleaned = CURRENCY_CODE_PATTERN.sub('', value)
    cleaned = cleaned.replace('$', '')
    cleaned = re.sub(r'\s+', '', cleaned)

    if not NUMERIC_PATTERN.match(cleaned):
        return value

    try:
        return format_money(Decimal(cleaned))
    except InvalidOperation:
        return value


def parse_currency_to_number(value: Optional[str]) -> Optional[Decimal]:
    """
    Parse a money string (e.g., "$10.50", "$1,204.00") back to a Decimal.

    Only the leading numeric portion is read, so trailing text is ignored.
    Returns None when no number can be read.
    """
    if not value:
        return None

    cleaned = re.sub(r'[$,\s]', '', value)
    match = LEADING_NUMBER_PATTERN.match(cleaned)
    if not match:
        return None

    try:
        return Decimal(match.group(0))
    except InvalidOperation:
        return None
