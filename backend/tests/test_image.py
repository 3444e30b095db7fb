"""
Tests for receipt image preprocessing.
"""

import asyncio
import base64
import io
from unittest.mock import AsyncMock, Mock, patch

import pytest
from PIL import Image

from receipt_scanner.services.image import (
    InvalidImageError,
    OpenCVLoader,
    decode_image_payload,
    deskew_receipt,
    format_bytes,
    get_base64_size,
    optimize_image_for_ocr,
    order_corners,
)


class TestDecodeImagePayload:

    def test_strips_data_url_prefix(self, png_bytes, png_data_url):
        assert decode_image_payload(png_data_url) == png_bytes

    def test_accepts_bare_base64(self, png_bytes):
        assert decode_image_payload(base64.b64encode(png_bytes).decode()) == png_bytes

    def test_rejects_invalid_base64(self):
        with pytest.raises(InvalidImageError):
            decode_image_payload("not base64!!")

    @patch('receipt_scanner.services.image.settings')
    def test_rejects_oversized_payload(self, mock_settings):
        mock_settings.MAX_UPLOAD_MB = 1
        payload = base64.b64encode(b'\0' * (2 * 1024 * 1024)).decode()

        with pytest.raises(InvalidImageError, match="exceeds 1 MB"):
            decode_image_payload(payload)


class TestOptimizeImage:

    def test_large_image_is_scaled_to_max_dimension(self, make_image_bytes):
        result = optimize_image_for_ocr(make_image_bytes(size=(3200, 1600)), max_dimension=1600)

        image = Image.open(io.BytesIO(result))
        assert image.format == 'JPEG'
        assert image.size == (1600, 800)

    def test_small_image_is_not_upscaled(self, make_image_bytes):
        result = optimize_image_for_ocr(make_image_bytes(size=(400, 300)), max_dimension=1600)
        assert Image.open(io.BytesIO(result)).size == (400, 300)

    def test_transparent_png_is_converted_to_jpeg(self, make_image_bytes):
        result = optimize_image_for_ocr(make_image_bytes(mode='RGBA'))
        image = Image.open(io.BytesIO(result))
        assert image.format == 'JPEG'
        assert image.mode == 'RGB'

    def test_unreadable_image_raises(self):
        with pytest.raises(InvalidImageError):
            optimize_image_for_ocr(b"definitely not an image")


class TestSizeHelpers:

    def test_get_base64_size(self):
        assert get_base64_size("data:image/jpeg;base64,AAAA") == 3
        assert get_base64_size("AAAAAAAA") == 6

    @pytest.mark.parametrize("size,expected", [
        (512, "512 B"),
        (2048, "2.0 KB"),
        (3 * 1024 * 1024, "3.0 MB"),
    ])
    def test_format_bytes(self, size, expected):
        assert format_bytes(size) == expected


class TestOrderCorners:

    def test_orders_clockwise_from_top_left(self):
        points = [(100, 210), (10, 200), (110, 5), (0, 0)]
        assert order_corners(points) == [(0, 0), (110, 5), (100, 210), (10, 200)]


class TestOpenCVLoader:

    def test_concurrent_loads_import_once(self):
        loader = OpenCVLoader('fake_cv2')
        module = object()

        async def load_twice():
            return await asyncio.gather(loader.load(), loader.load(), loader.load())

        with patch('receipt_scanner.services.image.importlib.import_module', return_value=module) as mock_import:
            results = asyncio.run(load_twice())

        assert results == [module, module, module]
        mock_import.assert_called_once_with('fake_cv2')
        assert loader.loaded

    def test_failed_load_is_retried(self):
        loader = OpenCVLoader('fake_cv2')
        module = object()

        async def load_after_failure():
            with pytest.raises(ImportError):
                await loader.load()
            assert not loader.loaded
            return await loader.load()

        with patch(
            'receipt_scanner.services.image.importlib.import_module',
            side_effect=[ImportError("no cv2"), module]
        ) as mock_import:
            result = asyncio.run(load_after_failure())

        assert result is module
        assert mock_import.call_count == 2


class TestDeskew:

    def test_returns_original_when_opencv_unavailable(self, png_bytes):
        with patch('receipt_scanner.services.image.opencv_loader') as mock_loader:
            mock_loader.load = Mock(side_effect=ImportError("no cv2"))
            result = asyncio.run(deskew_receipt(png_bytes))

        assert result == png_bytes

    def fake_cv2(self, contours):
        np = pytest.importorskip("numpy")

        cv2 = Mock()
        cv2.imdecode.return_value = np.zeros((100, 200, 3), dtype=np.uint8)
        cv2.cvtColor.return_value = np.zeros((100, 200), dtype=np.uint8)
        cv2.GaussianBlur.side_effect = lambda img, ksize, sigma: img
        cv2.Canny.side_effect = lambda img, low, high: img
        cv2.findContours.return_value = (contours, None)
        cv2.arcLength.return_value = 500.0
        cv2.approxPolyDP.side_effect = lambda contour, epsilon, closed: contour
        cv2.contourArea.return_value = 14000.0
        cv2.getPerspectiveTransform.return_value = np.eye(3)
        cv2.warpPerspective.return_value = np.zeros((78, 180, 3), dtype=np.uint8)
        cv2.imencode.return_value = (True, np.array([1, 2, 3], dtype=np.uint8))
        return cv2

    def run_deskew(self, cv2, image_data):
        with patch('receipt_scanner.services.image.opencv_loader') as mock_loader:
            mock_loader.load = AsyncMock(return_value=cv2)
            return asyncio.run(deskew_receipt(image_data, quality=90))

    def test_warps_largest_quadrilateral(self, png_bytes):
        np = pytest.importorskip("numpy")
        outline = np.array([[[10, 10]], [[190, 12]], [[188, 90]], [[12, 88]]])
        cv2 = self.fake_cv2([outline])

        result = self.run_deskew(cv2, png_bytes)

        assert result == bytes([1, 2, 3])
        src, dst = cv2.getPerspectiveTransform.call_args[0]
        assert src.tolist() == [[10, 10], [190, 12], [188, 90], [12, 88]]
        assert dst.tolist() == [[0, 0], [179, 0], [179, 77], [0, 77]]
        assert cv2.warpPerspective.call_args[0][2] == (180, 78)
        assert cv2.imencode.call_args[0][2] == [cv2.IMWRITE_JPEG_QUALITY, 90]

    def test_small_or_non_quadrilateral_contours_keep_original(self, png_bytes):
        np = pytest.importorskip("numpy")
        triangle = np.array([[[10, 10]], [[190, 12]], [[100, 90]]])
        cv2 = self.fake_cv2([triangle])

        assert self.run_deskew(cv2, png_bytes) == png_bytes
        cv2.warpPerspective.assert_not_called()

        cv2 = self.fake_cv2([np.array([[[0, 0]], [[10, 0]], [[10, 10]], [[0, 10]]])])
        cv2.contourArea.return_value = 100.0

        assert self.run_deskew(cv2, png_bytes) == png_bytes
        cv2.warpPerspective.assert_not_called()
