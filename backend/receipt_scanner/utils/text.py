"""
Whitespace cleanup for OCR text values.
"""

from typing import Optional
import re


def clean_text(value: Optional[str]) -> Optional[str]:
    """Replace newlines with spaces, collapse whitespace and trim."""
    if value is None:
        return None

    text = value.replace('\n', ' ')
    text = re.sub(r'\s+', ' ', text)
    return text.strip()


def clean_field_value(value: Optional[str]) -> Optional[str]:
    """
    Clean a detected field value before it is normalized.

    Same as clean_text, plus spaces around decimal points are dropped
    ("10. 58" → "10.58"). Empty values come back as None.
    """
    if not value:
        return None

    text = clean_text(value)
    text = re.sub(r'\s*\.\s*', '.', text)
    return text.strip() or None
