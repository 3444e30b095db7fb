"""
Receipt parser service for turning expense-analysis fields into a canonical receipt.

Three stages:
1. Locate the best raw value for each logical field (type match, then label match)
2. Normalize currency, date and text values
3. Derive the subtotal from total and tax when it was not detected
"""

import logging
from dataclasses import dataclass, asdict
from decimal import InvalidOperation
from functools import partial
from typing import Optional, Dict, Any, List, Callable, Sequence

from receipt_scanner.utils.money import (
    format_money,
    normalize_currency,
    parse_currency_to_number,
)
from receipt_scanner.utils.dates import normalize_date
from receipt_scanner.utils.text import clean_field_value

logger = logging.getLogger(__name__)

ZERO_TAX = "$0.00"


@dataclass(frozen=True)
class RawExpenseField:
    """One detected (type, label, value) triple from the expense-analysis engine."""
    type_tag: Optional[str] = None
    label_text: Optional[str] = None
    value_text: Optional[str] = None

    @classmethod
    def from_textract(cls, field: Dict[str, Any]) -> "RawExpenseField":
        """Build from a Textract ``SummaryFields`` entry."""
        return cls(
            type_tag=(field.get('Type') or {}).get('Text'),
            label_text=(field.get('LabelDetection') or {}).get('Text'),
            value_text=(field.get('ValueDetection') or {}).get('Text'),
        )


@dataclass(frozen=True)
class ParsedReceiptData:
    """Canonical receipt fields produced by one scan."""
    subtotal: Optional[str] = None
    gst: str = ZERO_TAX
    total: Optional[str] = None
    invoice_number: Optional[str] = None
    vendor: Optional[str] = None
    receipt_date: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return asdict(self)


def find_field_by_type(
    fields: Optional[Sequence[RawExpenseField]],
    type_names: Sequence[str]
) -> Optional[str]:
    """
    Find a field value by its type tag.

    Type names are tried in priority order: every field is checked against
    type_names[0] before any is checked against type_names[1].

    Args:
        fields: Detected fields
        type_names: Acceptable type tags, highest priority first

    Returns:
        Cleaned value of the first match, or None
    """
    if not fields:
        return None

    for type_name in type_names:
        wanted = type_name.upper()
        for field in fields:
            if field.type_tag and field.type_tag.upper() == wanted:
                return clean_field_value(field.value_text)

    return None


def find_field_by_label(
    fields: Optional[Sequence[RawExpenseField]],
    label_names: Sequence[str],
    exclude_type_names: Sequence[str] = ()
) -> Optional[str]:
    """
    Find a field value by the label printed next to it.

    A field matches when its label contains label_names[i] (case-insensitive)
    and its type tag contains none of exclude_type_names. Some engines put
    "GST"-like labels on tax registration numbers, which the exclusions skip.

    Args:
        fields: Detected fields
        label_names: Label substrings, highest priority first
        exclude_type_names: Type tag substrings that disqualify a field

    Returns:
        Cleaned value of the first match, or None
    """
    if not fields:
        return None

    excluded = [name.upper() for name in exclude_type_names]

    for label_name in label_names:
        wanted = label_name.upper()
        for field in fields:
            if not field.label_text or wanted not in field.label_text.upper():
                continue
            field_type = (field.type_tag or '').upper()
            if any(name in field_type for name in excluded):
                continue
            return clean_field_value(field.value_text)

    return None


# Tax registration numbers, not amounts
TAX_ID_TYPES = ('TAX_PAYER_ID', 'VENDOR_GST_NUMBER', 'GST_NUMBER', 'TAX_ID')

# Lookup chain per logical field, evaluated in order
FIELD_LOOKUPS: Dict[str, List[Callable[[Sequence[RawExpenseField]], Optional[str]]]] = {
    'subtotal': [
        partial(find_field_by_type, type_names=('SUBTOTAL', 'SUB_TOTAL')),
    ],
    'gst': [
        partial(find_field_by_type, type_names=('TAX',)),
        partial(find_field_by_label, label_names=('GST', 'TAX'), exclude_type_names=TAX_ID_TYPES),
    ],
    'total': [
        partial(find_field_by_type, type_names=('TOTAL', 'AMOUNT_DUE', 'GRAND_TOTAL')),
    ],
    'invoice_number': [
        partial(find_field_by_label, label_names=('Invoice Number', 'Ref. #', 'Ref #', 'Reference')),
        partial(find_field_by_type, type_names=('INVOICE_RECEIPT_ID', 'INVOICE_NUMBER', 'RECEIPT_ID')),
    ],
    'vendor': [
        partial(find_field_by_type, type_names=('VENDOR_NAME', 'VENDOR', 'NAME')),
    ],
    'receipt_date': [
        partial(find_field_by_type, type_names=('INVOICE_RECEIPT_DATE', 'DATE', 'TRANSACTION_DATE')),
    ],
}


def locate_field(fields: Sequence[RawExpenseField], field_name: str) -> Optional[str]:
    """Run the lookup chain for a logical field; first non-empty value wins."""
    for lookup in FIELD_LOOKUPS[field_name]:
        value = lookup(fields)
        if value:
            return value
    return None


def resolve_subtotal(
    total: Optional[str],
    gst: Optional[str],
    subtotal: Optional[str]
) -> Optional[str]:
    """
    Fill in a missing subtotal from normalized total and tax.

    - subtotal present: returned as-is
    - total and tax both parse: total - tax (may be negative)
    - tax missing or unparseable: subtotal = total
    - no total: None
    """
    if subtotal:
        return subtotal

    if not total:
        return None

    if gst:
        total_amount = parse_currency_to_number(total)
        gst_amount = parse_currency_to_number(gst)
        if total_amount is not None and gst_amount is not None:
            try:
                return format_money(total_amount - gst_amount)
            except InvalidOperation:
                logger.warning("Could not derive subtotal", extra={"total": total, "gst": gst})

    return total


class ReceiptParser:
    """Service for parsing detected expense fields into ParsedReceiptData."""

    def parse(self, fields: Optional[Sequence[RawExpenseField]]) -> ParsedReceiptData:
        """
        Parse detected fields into a canonical receipt.

        Never raises: missing fields are None, unparseable values are kept
        as scanned, and a missing tax becomes "$0.00".

        Args:
            fields: Detected fields (None or empty when nothing was found)

        Returns:
            ParsedReceiptData
        """
        fields = list(fields or [])

        logger.debug("Parsing expense fields", extra={
            "field_count": len(fields),
            "fields": [
                {"type": f.type_tag, "label": f.label_text, "value": f.value_text}
                for f in fields
            ]
        })

        raw = {name: locate_field(fields, name) for name in FIELD_LOOKUPS}

        total = normalize_currency(raw['total'])
        gst = normalize_currency(raw['gst'])
        subtotal = resolve_subtotal(total, gst, normalize_currency(raw['subtotal']))

        return ParsedReceiptData(
            subtotal=subtotal,
            gst=gst or ZERO_TAX,
            total=total,
            invoice_number=raw['invoice_number'],
            vendor=raw['vendor'],
            receipt_date=normalize_date(raw['receipt_date']),
        )

    def parse_expense_document(self, document: Optional[Dict[str, Any]]) -> ParsedReceiptData:
        """Parse a Textract ExpenseDocument dict (None = no document found)."""
        summary_fields = (document or {}).get('SummaryFields') or []
        fields = [RawExpenseField.from_textract(f) for f in summary_fields]
        return self.parse(fields)
