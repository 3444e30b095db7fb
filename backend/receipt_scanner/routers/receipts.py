"""
Receipts API router for saving, listing, editing and deleting receipts.
"""

from fastapi import APIRouter, HTTPException, Query
from typing import Optional
import logging

from receipt_scanner.models.receipt import (
    Receipt,
    ReceiptCreate,
    ReceiptList,
    ReceiptUpdate,
    SaveReceiptResponse,
)
from receipt_scanner.services.image import InvalidImageError, decode_image_payload, optimize_image_for_ocr
from receipt_scanner.services.storage import StorageService
from receipt_scanner.services.store import ReceiptStore

router = APIRouter(prefix="/receipts", tags=["receipts"])
logger = logging.getLogger(__name__)


def with_signed_url(receipt: Receipt, storage: StorageService) -> Receipt:
    """
    Replace the stored image path with a signed URL (valid for 1 hour).

    Receipts without an image, or whose image_url is already a URL, are
    returned unchanged.
    """
    image_path = receipt.image_url
    if not image_path or image_path.startswith(('http://', 'https://')):
        return receipt

    signed_url = storage.signed_url(image_path, expires_in=3600)
    if not signed_url:
        logger.warning("Failed to generate signed URL", extra={
            "receipt_id": receipt.id,
            "image_path": image_path
        })
        return receipt

    return receipt.model_copy(update={'image_url': signed_url})


@router.post("", response_model=SaveReceiptResponse)
async def save_receipt(request: ReceiptCreate):
    """
    Save a scanned receipt, including any edits the user made.

    The optional ``image`` is uploaded to storage under the receipt's bucket
    and its path stored as ``image_url``.
    """
    if not request.bucket_id.strip():
        raise HTTPException(status_code=400, detail="bucket_id is required and must be a string")

    try:
        store = ReceiptStore()
        storage = StorageService()

        record = request.model_dump(exclude={'image'})

        if request.image:
            try:
                image_bytes = optimize_image_for_ocr(decode_image_payload(request.image))
            except InvalidImageError as e:
                raise HTTPException(status_code=400, detail=f"Invalid image: {e}")

            image_path = storage.upload_receipt_image(request.bucket_id, image_bytes)
            if not image_path:
                raise HTTPException(status_code=500, detail="Failed to upload receipt image")
            record['image_url'] = image_path

        receipt = store.save_receipt(record)

        return SaveReceiptResponse(success=True, receipt=with_signed_url(receipt, storage))

    except HTTPException:
        raise
    except Exception as e:
        logger.error("Failed to save receipt", extra={
            "bucket_id": request.bucket_id,
            "error": str(e)
        }, exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to save receipt: {str(e)}"
        )


@router.get("", response_model=ReceiptList)
async def list_receipts(
    bucket_id: Optional[str] = Query(None, description="Only receipts in this bucket")
):
    """List receipts, newest first."""
    try:
        store = ReceiptStore()
        storage = StorageService()

        receipts = [with_signed_url(r, storage) for r in store.list_receipts(bucket_id)]

        return ReceiptList(receipts=receipts, total=len(receipts))

    except Exception as e:
        logger.error("Failed to fetch receipts", extra={
            "bucket_id": bucket_id,
            "error": str(e)
        }, exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to fetch receipts: {str(e)}"
        )


@router.get("/{receipt_id}", response_model=Receipt)
async def get_receipt(receipt_id: str):
    """Get a single receipt by ID."""
    try:
        store = ReceiptStore()
        receipt = store.get_receipt(receipt_id)

        if not receipt:
            raise HTTPException(status_code=404, detail="Receipt not found")

        return with_signed_url(receipt, StorageService())

    except HTTPException:
        raise
    except Exception as e:
        logger.error("Failed to fetch receipt", extra={
            "receipt_id": receipt_id,
            "error": str(e)
        }, exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to fetch receipt: {str(e)}"
        )


@router.patch("/{receipt_id}", response_model=Receipt)
async def update_receipt(receipt_id: str, updates: ReceiptUpdate):
    """Update the fields that were sent; omitted fields are left alone."""
    changes = updates.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")

    try:
        store = ReceiptStore()
        receipt = store.update_receipt(receipt_id, changes)

        if not receipt:
            raise HTTPException(status_code=404, detail="Receipt not found")

        logger.info("Updated receipt", extra={
            "receipt_id": receipt_id,
            "fields": sorted(changes)
        })

        return with_signed_url(receipt, StorageService())

    except HTTPException:
        raise
    except Exception as e:
        logger.error("Failed to update receipt", extra={
            "receipt_id": receipt_id,
            "error": str(e)
        }, exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to update receipt: {str(e)}"
        )


@router.delete("/{receipt_id}")
async def delete_receipt(receipt_id: str):
    """Delete a receipt and its image."""
    try:
        store = ReceiptStore()
        storage = StorageService()

        receipt = store.get_receipt(receipt_id)
        if not receipt:
            raise HTTPException(status_code=404, detail="Receipt not found")

        store.delete_receipt(receipt_id)

        if receipt.image_url and not receipt.image_url.startswith(('http://', 'https://')):
            storage.delete_file(receipt.image_url)

        logger.info("Deleted receipt", extra={
            "receipt_id": receipt_id,
            "image_path": receipt.image_url
        })

        return {"message": "Receipt deleted successfully", "id": receipt_id}

    except HTTPException:
        raise
    except Exception as e:
        logger.error("Failed to delete receipt", extra={
            "receipt_id": receipt_id,
            "error": str(e)
        }, exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to delete receipt: {str(e)}"
        )
