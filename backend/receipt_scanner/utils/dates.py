"""
Date normalization for OCR receipt dates.

Canonical form is YYYY/MM/DD. Numeric grammars are tried first, in order,
then a list of free-text formats. Unparseable input is returned unchanged.
"""

from datetime import datetime
from typing import Optional
import re

# 00-49 → 2000s, 50-99 → 1900s
TWO_DIGIT_YEAR_PIVOT = 50

YY_MM_DD = re.compile(r'^(\d{2})[/\-](\d{1,2})[/\-](\d{1,2})$')
YYYY_MM_DD = re.compile(r'^(\d{4})[/\-](\d{1,2})[/\-](\d{1,2})$')
DD_MM_YYYY = re.compile(r'^(\d{1,2})[/\-](\d{1,2})[/\-](\d{4})$')

ORDINAL_SUFFIX = re.compile(r'(\d+)(?:st|nd|rd|th)\b', re.IGNORECASE)

FREE_TEXT_FORMATS = [
    '%m/%d/%Y', '%m-%d-%Y',
    '%m/%d/%y', '%m-%d-%y',
    '%B %d, %Y', '%b %d, %Y',
    '%B %d %Y', '%b %d %Y',
    '%d %B %Y', '%d %b %Y',
    '%d %B, %Y', '%d %b, %Y',
    '%b. %d, %Y',
    '%A, %B %d, %Y', '%a, %b %d, %Y',
    '%Y.%m.%d', '%m.%d.%Y',
    '%B %Y',
]


def _in_range(month: str, day: str) -> bool:
    return int(month) <= 12 and int(day) <= 31


def _expand_year(yy: str) -> str:
    return f"20{yy}" if int(yy) < TWO_DIGIT_YEAR_PIVOT else f"19{yy}"


def _parse_free_text(date_str: str) -> Optional[datetime]:
    """Try the free-text formats, e.g. "January 15, 2025" or "03/14/2025"."""
    date_str = ORDINAL_SUFFIX.sub(r'\1', date_str)
    date_str = re.sub(r'\s+', ' ', date_str)

    for fmt in FREE_TEXT_FORMATS:
        try:
            return datetime.strptime(date_str, fmt)
        except ValueError:
            continue

    return None


def normalize_date(value: Optional[str]) -> Optional[str]:
    """
    Normalize a raw date value to YYYY/MM/DD.

    Args:
        value: Raw OCR date (e.g., "26/01/31", "2025-03-05", "January 15, 2025")

    Returns:
        Canonical date string, the original value if no grammar applies,
        or None for empty input

    Examples:
        >>> normalize_date("26/01/31")
        '2026/01/31'
        >>> normalize_date("15/01/2025")
        '2025/01/15'
        >>> normalize_date("garbage")
        'garbage'
    """
    if not value:
        return None

    cleaned = value.strip()

    match = YY_MM_DD.match(cleaned)
    if match:
        yy, month, day = match.groups()
        month, day = month.zfill(2), day.zfill(2)
        if _in_range(month, day):
            return f"{_expand_year(yy)}/{month}/{day}"

    match = YYYY_MM_DD.match(cleaned)
    if match:
        year, month, day = match.groups()
        return f"{year}/{month.zfill(2)}/{day.zfill(2)}"

    match = DD_MM_YYYY.match(cleaned)
    if match:
        day, month, year = match.groups()
        month, day = month.zfill(2), day.zfill(2)
        if _in_range(month, day):
            return f"{year}/{month}/{day}"

    parsed = _parse_free_text(cleaned)
    if parsed:
        return parsed.strftime('%Y/%m/%d')

    return value
