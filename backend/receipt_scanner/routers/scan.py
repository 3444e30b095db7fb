"""
Scan API router: receipt photo in, parsed receipt fields out.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
import logging

from receipt_scanner.models.receipt import ParseReceiptResponse, ParsedReceipt, ScanReceiptRequest
from receipt_scanner.services.image import InvalidImageError, decode_image_payload, prepare_image
from receipt_scanner.services.textract import TextractService

router = APIRouter(prefix="/scan-receipt", tags=["scan"])
logger = logging.getLogger(__name__)


def _failure(status_code: int, error: str) -> JSONResponse:
    body = ParseReceiptResponse(success=False, error=error)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


@router.post("", response_model=ParseReceiptResponse)
async def scan_receipt(request: ScanReceiptRequest):
    """
    Analyze a receipt photo.

    This endpoint:
    1. Decodes the base64 image (data URL prefix optional)
    2. Deskews (when enabled), resizes and recompresses it
    3. Runs Textract AnalyzeExpense
    4. Returns the parsed fields for the user to review

    Nothing is persisted here; the client saves via POST /receipts.
    """
    if not request.image:
        return _failure(400, "No image provided")

    try:
        image_bytes = decode_image_payload(request.image)
        image_bytes = await prepare_image(image_bytes)
    except InvalidImageError as e:
        logger.warning("Rejected scan image", extra={"error": str(e)})
        return _failure(400, "Invalid image")

    try:
        textract = TextractService()
        parsed = textract.analyze_receipt(image_bytes)
    except Exception as e:
        logger.error("Error scanning receipt", extra={"error": str(e)}, exc_info=True)
        return _failure(500, "Failed to scan receipt")

    logger.info("Scanned receipt", extra={
        "vendor": parsed.vendor,
        "total": parsed.total,
        "receipt_date": parsed.receipt_date
    })

    return ParseReceiptResponse(success=True, data=ParsedReceipt.from_parsed(parsed))
