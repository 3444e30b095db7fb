"""
Image preprocessing for receipt photos before expense analysis.

- Decode base64 / data URL payloads
- Resize to fit within MAX_IMAGE_DIMENSION and re-encode as JPEG
- Optional deskew with OpenCV (loaded on first use)
"""

import asyncio
import base64
import binascii
import importlib
import io
import logging
import math
import re
from typing import Any, List, Optional, Tuple

from PIL import Image

from receipt_scanner.config import settings

logger = logging.getLogger(__name__)

DATA_URL_PREFIX = re.compile(r'^data:image/\w+;base64,')

Point = Tuple[float, float]


class InvalidImageError(ValueError):
    """Raised when an uploaded image payload cannot be decoded."""


def decode_image_payload(image: str) -> bytes:
    """
    Decode a base64 image, with or without a ``data:image/...;base64,`` prefix.

    Raises:
        InvalidImageError: If the payload is too large or not valid base64
    """
    base64_data = DATA_URL_PREFIX.sub('', image.strip())

    max_bytes = settings.MAX_UPLOAD_MB * 1024 * 1024
    if get_base64_size(base64_data) > max_bytes:
        raise InvalidImageError(f"Image exceeds {settings.MAX_UPLOAD_MB} MB")

    try:
        return base64.b64decode(base64_data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidImageError(f"Image is not valid base64: {e}") from e


def get_base64_size(data_url: str) -> int:
    """Approximate decoded size in bytes of a base64 data URL."""
    base64_part = data_url.split(',', 1)[1] if ',' in data_url else data_url
    return round(len(base64_part) * 3 / 4)


def format_bytes(size: int) -> str:
    """Format a byte count as B / KB / MB."""
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"


def optimize_image_for_ocr(
    image_data: bytes,
    max_dimension: Optional[int] = None,
    quality: Optional[int] = None
) -> bytes:
    """
    Resize and compress an image for faster upload and analysis.

    Keeps the aspect ratio, never upscales, always re-encodes as JPEG.

    Args:
        image_data: Raw image bytes (JPEG, PNG, etc.)
        max_dimension: Longest allowed side (default from settings)
        quality: JPEG quality (default from settings)

    Returns:
        JPEG bytes

    Raises:
        InvalidImageError: If Pillow cannot open the image
    """
    max_dimension = max_dimension or settings.MAX_IMAGE_DIMENSION
    quality = quality or settings.JPEG_QUALITY

    try:
        image = Image.open(io.BytesIO(image_data))
        image.load()
    except (OSError, Image.DecompressionBombError) as e:
        raise InvalidImageError(f"Unreadable image: {e}") from e

    width, height = image.size
    if width > max_dimension or height > max_dimension:
        ratio = min(max_dimension / width, max_dimension / height)
        new_size = (round(width * ratio), round(height * ratio))
        image = image.resize(new_size, Image.Resampling.LANCZOS)

    if image.mode != 'RGB':
        image = image.convert('RGB')

    output = io.BytesIO()
    image.save(output, format='JPEG', quality=quality, optimize=True)
    optimized = output.getvalue()

    logger.debug("Optimized image for OCR", extra={
        "original_size": format_bytes(len(image_data)),
        "optimized_size": format_bytes(len(optimized)),
        "dimensions": image.size
    })

    return optimized


class OpenCVLoader:
    """
    Memoized async loader for OpenCV.

    The first caller imports ``cv2`` in a worker thread while holding the
    lock; concurrent callers wait on the same lock and reuse the module.
    A failed import is not cached, so a later call tries again.
    """

    def __init__(self, module_name: str = 'cv2'):
        self.module_name = module_name
        self._module: Optional[Any] = None
        self._lock = asyncio.Lock()

    @property
    def loaded(self) -> bool:
        return self._module is not None

    async def load(self) -> Any:
        if self._module is not None:
            return self._module

        async with self._lock:
            if self._module is None:
                logger.info("Loading OpenCV", extra={"module": self.module_name})
                self._module = await asyncio.to_thread(importlib.import_module, self.module_name)
            return self._module


opencv_loader = OpenCVLoader()


def order_corners(points: List[Point]) -> List[Point]:
    """Order four points as top-left, top-right, bottom-right, bottom-left."""
    by_sum = sorted(points, key=lambda p: p[0] + p[1])
    top_left, bottom_right = by_sum[0], by_sum[3]
    bottom_left, top_right = sorted(by_sum[1:3], key=lambda p: p[0] - p[1])
    return [top_left, top_right, bottom_right, bottom_left]


def _distance(p1: Point, p2: Point) -> float:
    return math.hypot(p2[0] - p1[0], p2[1] - p1[1])


def _find_receipt_corners(cv2: Any, edges: Any, width: int, height: int) -> Optional[List[Point]]:
    """Largest 4-point contour covering at least 10% of the image."""
    contours, _ = cv2.findContours(edges, cv2.RETR_LIST, cv2.CHAIN_APPROX_SIMPLE)
    min_area = width * height * 0.1
    best_points, best_area = None, 0.0

    for contour in contours:
        perimeter = cv2.arcLength(contour, True)
        approx = cv2.approxPolyDP(contour, 0.02 * perimeter, True)
        if len(approx) != 4:
            continue
        area = cv2.contourArea(approx)
        if area > min_area and area > best_area:
            best_points = [(float(p[0][0]), float(p[0][1])) for p in approx]
            best_area = area

    return order_corners(best_points) if best_points else None


def _deskew_with(cv2: Any, image_data: bytes, quality: int) -> bytes:
    import numpy as np

    buffer = np.frombuffer(image_data, dtype=np.uint8)
    img = cv2.imdecode(buffer, cv2.IMREAD_COLOR)
    if img is None:
        raise InvalidImageError("OpenCV could not decode image")

    gray = cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)
    blurred = cv2.GaussianBlur(gray, (5, 5), 0)
    edges = cv2.Canny(blurred, 75, 200)

    height, width = gray.shape
    corners = _find_receipt_corners(cv2, edges, width, height)
    if corners is None:
        logger.debug("No receipt contour found, keeping original image")
        return image_data

    out_width = round(max(_distance(corners[0], corners[1]), _distance(corners[3], corners[2])))
    out_height = round(max(_distance(corners[0], corners[3]), _distance(corners[1], corners[2])))

    src = np.array(corners, dtype=np.float32)
    dst = np.array([
        [0, 0],
        [out_width - 1, 0],
        [out_width - 1, out_height - 1],
        [0, out_height - 1],
    ], dtype=np.float32)

    matrix = cv2.getPerspectiveTransform(src, dst)
    warped = cv2.warpPerspective(img, matrix, (out_width, out_height))

    ok, encoded = cv2.imencode('.jpg', warped, [cv2.IMWRITE_JPEG_QUALITY, quality])
    if not ok:
        raise InvalidImageError("OpenCV could not encode deskewed image")
    return encoded.tobytes()


async def deskew_receipt(image_data: bytes, quality: Optional[int] = None) -> bytes:
    """
    Detect the receipt outline and straighten it with a perspective transform.

    Returns the original bytes when no outline is found or anything fails.
    """
    try:
        cv2 = await opencv_loader.load()
        return _deskew_with(cv2, image_data, quality or settings.JPEG_QUALITY)
    except Exception as e:
        logger.warning("Deskew failed, using original image", extra={
            "error": str(e)
        }, exc_info=True)
        return image_data


async def prepare_image(image_data: bytes) -> bytes:
    """Deskew (when enabled) and optimize an uploaded receipt image."""
    if settings.AUTO_DESKEW:
        image_data = await deskew_receipt(image_data)
    return optimize_image_for_ocr(image_data)
