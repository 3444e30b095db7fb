import base64
import io

import pytest
from PIL import Image

from receipt_scanner.models.bucket import Bucket
from receipt_scanner.models.receipt import Receipt


@pytest.fixture
def make_bucket():
    def _make(id='bucket-1', year=2025, month=3, category='Food'):
        return Bucket(id=id, year=year, month=month, category=category, created_at='2025-03-01T00:00:00Z')
    return _make


@pytest.fixture
def make_receipt():
    def _make(id='receipt-1', bucket_id='bucket-1', **fields):
        data = {
            'subtotal': '$95.00',
            'gst': '$5.00',
            'total': '$100.00',
            'invoice_number': 'INV-1',
            'vendor': 'Corner Store',
            'receipt_date': '2025/03/14',
            'image_url': None,
            'created_at': '2025-03-14T12:00:00Z',
        }
        data.update(fields)
        return Receipt(id=id, bucket_id=bucket_id, **data)
    return _make


def _image_bytes(size=(40, 20), mode='RGB', fmt='PNG'):
    image = Image.new(mode, size, 'white')
    output = io.BytesIO()
    image.save(output, format=fmt)
    return output.getvalue()


@pytest.fixture
def make_image_bytes():
    return _image_bytes


@pytest.fixture
def png_bytes():
    return _image_bytes()


@pytest.fixture
def png_data_url(png_bytes):
    return "data:image/png;base64," + base64.b64encode(png_bytes).decode('ascii')
