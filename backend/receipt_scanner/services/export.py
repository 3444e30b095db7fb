"""
CSV and Excel export of receipts grouped by bucket.
"""

import csv
import io
import logging
import re
from typing import Dict, List, Optional, Sequence

from openpyxl import Workbook
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from receipt_scanner.config import settings
from receipt_scanner.models.bucket import Bucket
from receipt_scanner.models.receipt import Receipt
from receipt_scanner.utils.buckets import group_by_bucket
from receipt_scanner.utils.money import parse_currency_to_number

logger = logging.getLogger(__name__)

CSV_HEADERS = ['Year', 'Month', 'Category', 'Date', 'Vendor', 'Invoice #', 'Subtotal', 'GST', 'Total']
SHEET_HEADERS = ['Date', 'Vendor', 'Invoice #', 'Subtotal', 'GST', 'Total']
COLUMN_WIDTHS = [12, 30, 15, 12, 10, 12]
CURRENCY_FORMAT = '$#,##0.00'

# Rows are 1-based: title, blank, headers, then data
TITLE_ROW = 1
HEADER_ROW = 3
DATA_START_ROW = 4


def generate_csv(receipts: Sequence[Receipt], bucket: Optional[Bucket] = None) -> str:
    """
    Render receipts as CSV.

    Bucket columns are filled from ``bucket`` when given, otherwise empty.
    """
    output = io.StringIO()
    writer = csv.writer(output, lineterminator='\n')
    writer.writerow(CSV_HEADERS)

    year = str(bucket.year) if bucket else ''
    month = bucket.month_name if bucket else ''
    category = bucket.category if bucket else ''

    for receipt in receipts:
        writer.writerow([
            year,
            month,
            category,
            receipt.receipt_date or '',
            receipt.vendor or '',
            receipt.invoice_number or '',
            receipt.subtotal or '',
            receipt.gst or '',
            receipt.total or '',
        ])

    return output.getvalue()


def parse_monetary(value: Optional[str]) -> Optional[float]:
    """Spreadsheet number for a canonical money string; a lone "-" counts as zero."""
    if not value:
        return None
    if re.sub(r'[$,\s]', '', value) == '-':
        return 0.0
    amount = parse_currency_to_number(value)
    return float(amount) if amount is not None else None


def sheet_title(bucket: Bucket) -> str:
    return f"{settings.BUSINESS_NAME} {bucket.month_name} {bucket.year} - {bucket.category}"


def sheet_name(bucket: Bucket) -> str:
    # Excel caps sheet names at 31 characters
    return f"{bucket.month_name} - {bucket.category}"[:31]


def build_sheet(ws: Worksheet, receipts: Sequence[Receipt], bucket: Bucket) -> Worksheet:
    """
    Fill a worksheet for one bucket.

    Layout: merged title row, blank row, header row, data rows, blank row,
    and a SUM of the Total column.
    """
    last_column = get_column_letter(len(SHEET_HEADERS))

    ws.cell(row=TITLE_ROW, column=1, value=sheet_title(bucket))
    ws.merge_cells(f"A{TITLE_ROW}:{last_column}{TITLE_ROW}")

    for col, header in enumerate(SHEET_HEADERS, start=1):
        ws.cell(row=HEADER_ROW, column=col, value=header)

    row = DATA_START_ROW
    for receipt in receipts:
        values = [
            receipt.receipt_date or '',
            receipt.vendor or '',
            receipt.invoice_number or '',
            parse_monetary(receipt.subtotal),
            parse_monetary(receipt.gst),
            parse_monetary(receipt.total),
        ]
        for col, value in enumerate(values, start=1):
            cell = ws.cell(row=row, column=col, value=value)
            if col >= 4 and isinstance(value, float):
                cell.number_format = CURRENCY_FORMAT
        row += 1

    data_end_row = DATA_START_ROW + len(receipts) - 1
    totals_row = data_end_row + 2
    formula = f"=SUM({last_column}{DATA_START_ROW}:{last_column}{data_end_row})" if receipts else 0
    totals_cell = ws.cell(row=totals_row, column=len(SHEET_HEADERS), value=formula)
    totals_cell.number_format = CURRENCY_FORMAT

    for col, width in enumerate(COLUMN_WIDTHS, start=1):
        ws.column_dimensions[get_column_letter(col)].width = width

    return ws


def workbook_to_bytes(wb: Workbook) -> bytes:
    output = io.BytesIO()
    wb.save(output)
    return output.getvalue()


def build_bucket_workbook(receipts: Sequence[Receipt], bucket: Bucket) -> Workbook:
    """Workbook with a single sheet for one bucket."""
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_name(bucket)
    build_sheet(ws, receipts, bucket)
    return wb


def build_year_workbook(
    receipts: Sequence[Receipt],
    buckets: Dict[str, Bucket],
    year: int
) -> Workbook:
    """
    Workbook with one sheet per bucket of ``year`` that has receipts.

    Sheets are ordered by month then category. An "Empty" sheet is written
    when there is nothing to export.
    """
    groups = group_by_bucket(receipts)
    with_receipts: List[Bucket] = sorted(
        (buckets[bucket_id] for bucket_id in groups
         if bucket_id in buckets and buckets[bucket_id].year == year),
        key=lambda b: (b.month, b.category)
    )

    wb = Workbook()
    wb.remove(wb.active)

    for bucket in with_receipts:
        ws = wb.create_sheet(title=sheet_name(bucket))
        build_sheet(ws, groups[bucket.id], bucket)

    if not with_receipts:
        ws = wb.create_sheet(title='Empty')
        ws.append(['No receipts found'])

    logger.debug("Built year workbook", extra={
        "year": year,
        "sheet_count": len(wb.sheetnames)
    })

    return wb


def bucket_workbook_filename(bucket: Bucket) -> str:
    return f"receipts-{bucket.year}-{bucket.month:02d}-{bucket.category}.xlsx"


def year_workbook_filename(year: int) -> str:
    return f"{settings.BUSINESS_NAME} {year}.xlsx"
