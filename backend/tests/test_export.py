"""
Tests for CSV and Excel export.
"""

import csv
import io

from openpyxl import load_workbook

from receipt_scanner.services.export import (
    CSV_HEADERS,
    build_bucket_workbook,
    build_year_workbook,
    bucket_workbook_filename,
    generate_csv,
    parse_monetary,
    sheet_title,
    workbook_to_bytes,
    year_workbook_filename,
)


def read_csv(text):
    return list(csv.reader(io.StringIO(text)))


class TestCSVExport:

    def test_header_row(self):
        rows = read_csv(generate_csv([]))
        assert rows == [CSV_HEADERS]

    def test_bucket_columns_filled(self, make_bucket, make_receipt):
        rows = read_csv(generate_csv([make_receipt()], make_bucket(year=2025, month=3, category='Food')))

        assert rows[1] == [
            '2025', 'March', 'Food', '2025/03/14', 'Corner Store', 'INV-1', '$95.00', '$5.00', '$100.00'
        ]

    def test_bucket_columns_empty_without_bucket(self, make_receipt):
        rows = read_csv(generate_csv([make_receipt(invoice_number=None)]))

        assert rows[1][:3] == ['', '', '']
        assert rows[1][5] == ''

    def test_values_with_commas_are_quoted(self, make_receipt):
        text = generate_csv([make_receipt(vendor='Smith, Jones & Co', total='$1,234.50')])

        assert '"Smith, Jones & Co"' in text
        assert '"$1,234.50"' in text
        assert read_csv(text)[1][4] == 'Smith, Jones & Co'


class TestParseMonetary:

    def test_amounts(self):
        assert parse_monetary('$1,234.50') == 1234.5
        assert parse_monetary('$-') == 0.0
        assert parse_monetary(None) is None
        assert parse_monetary('n/a') is None


class TestBucketWorkbook:

    def load(self, wb):
        return load_workbook(io.BytesIO(workbook_to_bytes(wb)))

    def test_layout(self, make_bucket, make_receipt):
        bucket = make_bucket(year=2025, month=3, category='Food')
        receipts = [
            make_receipt(id='1', total='$100.00'),
            make_receipt(id='2', subtotal='$19.00', gst='$1.00', total='$20.00'),
        ]

        ws = self.load(build_bucket_workbook(receipts, bucket)).active

        assert ws.title == 'March - Food'
        assert ws['A1'].value == sheet_title(bucket)
        assert ws['A1'].value == 'Carino March 2025 - Food'
        assert 'A1:F1' in [str(r) for r in ws.merged_cells.ranges]
        assert [c.value for c in ws[3]] == ['Date', 'Vendor', 'Invoice #', 'Subtotal', 'GST', 'Total']
        assert ws['B4'].value == 'Corner Store'
        assert ws['F4'].value == 100.0
        assert ws['F4'].number_format == '$#,##0.00'
        assert ws['D5'].value == 19.0
        assert ws['F7'].value == '=SUM(F4:F5)'
        assert ws.column_dimensions['B'].width == 30

    def test_empty_bucket_total_is_zero(self, make_bucket):
        ws = self.load(build_bucket_workbook([], make_bucket())).active

        assert ws['F5'].value == 0

    def test_unparseable_amount_left_blank(self, make_bucket, make_receipt):
        ws = self.load(build_bucket_workbook([make_receipt(gst='n/a')], make_bucket())).active

        assert ws['E4'].value is None


class TestYearWorkbook:

    def test_one_sheet_per_bucket_ordered(self, make_bucket, make_receipt):
        buckets = {
            'supply-mar': make_bucket(id='supply-mar', month=3, category='Supply'),
            'food-mar': make_bucket(id='food-mar', month=3, category='Food'),
            'food-jan': make_bucket(id='food-jan', month=1, category='Food'),
            'empty': make_bucket(id='empty', month=6, category='Food'),
        }
        receipts = [
            make_receipt(id='1', bucket_id='supply-mar'),
            make_receipt(id='2', bucket_id='food-jan'),
            make_receipt(id='3', bucket_id='food-mar'),
        ]

        wb = build_year_workbook(receipts, buckets, 2025)

        assert wb.sheetnames == ['January - Food', 'March - Food', 'March - Supply']

    def test_other_years_excluded(self, make_bucket, make_receipt):
        buckets = {'old': make_bucket(id='old', year=2024)}
        wb = build_year_workbook([make_receipt(bucket_id='old')], buckets, 2025)

        assert wb.sheetnames == ['Empty']
        assert wb['Empty']['A1'].value == 'No receipts found'


class TestFilenames:

    def test_bucket_filename(self, make_bucket):
        assert bucket_workbook_filename(make_bucket(year=2025, month=3, category='Other A')) == \
            'receipts-2025-03-Other A.xlsx'

    def test_year_filename(self):
        assert year_workbook_filename(2025) == 'Carino 2025.xlsx'
