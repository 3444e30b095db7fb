"""
Buckets API router for the year / month / category groupings.
"""

from fastapi import APIRouter, HTTPException
import logging

from receipt_scanner.models.bucket import Bucket, BucketCreate
from receipt_scanner.services.store import DuplicateBucketError, ReceiptStore
from receipt_scanner.utils.buckets import bucket_exists, receipt_counts_by_bucket

router = APIRouter(prefix="/buckets", tags=["buckets"])
logger = logging.getLogger(__name__)


@router.get("", response_model=list[Bucket])
async def list_buckets():
    """
    List buckets, most recent first (year desc, month desc, category asc).

    Each bucket carries the number of receipts filed under it.
    """
    try:
        store = ReceiptStore()
        counts = receipt_counts_by_bucket(store.list_receipts())
        return [
            b.model_copy(update={'receipt_count': counts.get(b.id, 0)})
            for b in store.list_buckets()
        ]
    except Exception as e:
        logger.error("Failed to fetch buckets", extra={"error": str(e)}, exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to fetch buckets: {str(e)}"
        )


@router.post("", response_model=Bucket, status_code=201)
async def create_bucket(bucket: BucketCreate):
    """
    Create a bucket.

    Returns 409 when a bucket with the same year, month and category exists.
    """
    try:
        store = ReceiptStore()
        if bucket_exists(store.list_buckets(), bucket.year, bucket.month, bucket.category):
            raise DuplicateBucketError(
                f"Bucket {bucket.year}/{bucket.month}/{bucket.category} already exists"
            )

        created = store.create_bucket(bucket)
        logger.info("Created bucket", extra={
            "bucket_id": created.id,
            "label": created.label
        })
        return created

    except DuplicateBucketError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        logger.error("Failed to create bucket", extra={"error": str(e)}, exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to create bucket: {str(e)}"
        )


@router.delete("/{bucket_id}")
async def delete_bucket(bucket_id: str):
    """Delete a bucket."""
    try:
        if not ReceiptStore().delete_bucket(bucket_id):
            raise HTTPException(status_code=404, detail="Bucket not found")

        return {"message": "Bucket deleted successfully", "id": bucket_id}

    except HTTPException:
        raise
    except Exception as e:
        logger.error("Failed to delete bucket", extra={
            "bucket_id": bucket_id,
            "error": str(e)
        }, exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to delete bucket: {str(e)}"
        )
