"""
Export API router for CSV and Excel downloads.
"""

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import StreamingResponse
from typing import Optional
import io
import logging

from receipt_scanner.services.export import (
    build_bucket_workbook,
    build_year_workbook,
    bucket_workbook_filename,
    generate_csv,
    workbook_to_bytes,
    year_workbook_filename,
)
from receipt_scanner.services.store import ReceiptStore

router = APIRouter(prefix="/export", tags=["export"])
logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _download(content: bytes, media_type: str, filename: str) -> StreamingResponse:
    return StreamingResponse(
        io.BytesIO(content),
        media_type=media_type,
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"'
        }
    )


@router.get("/csv")
async def export_csv(
    bucket_id: Optional[str] = Query(None, description="Export only this bucket")
):
    """
    Export receipts as CSV.

    Year, Month and Category columns are filled when a bucket is given.
    """
    try:
        store = ReceiptStore()

        bucket = None
        if bucket_id:
            bucket = store.get_bucket(bucket_id)
            if not bucket:
                raise HTTPException(status_code=404, detail="Bucket not found")

        receipts = store.list_receipts(bucket_id)
        csv_text = generate_csv(receipts, bucket)

        filename = "receipts.csv"
        if bucket:
            filename = f"receipts-{bucket.year}-{bucket.month:02d}-{bucket.category}.csv"

        return _download(csv_text.encode('utf-8'), "text/csv; charset=utf-8", filename)

    except HTTPException:
        raise
    except Exception as e:
        logger.error("Failed to export CSV", extra={
            "bucket_id": bucket_id,
            "error": str(e)
        }, exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to export CSV: {str(e)}"
        )


@router.get("/excel/bucket/{bucket_id}")
async def export_bucket_excel(bucket_id: str):
    """Export one bucket as a single-sheet workbook with a totals row."""
    try:
        store = ReceiptStore()

        bucket = store.get_bucket(bucket_id)
        if not bucket:
            raise HTTPException(status_code=404, detail="Bucket not found")

        receipts = store.list_receipts(bucket_id)
        wb = build_bucket_workbook(receipts, bucket)

        return _download(workbook_to_bytes(wb), XLSX_MEDIA_TYPE, bucket_workbook_filename(bucket))

    except HTTPException:
        raise
    except Exception as e:
        logger.error("Failed to export bucket workbook", extra={
            "bucket_id": bucket_id,
            "error": str(e)
        }, exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to export Excel: {str(e)}"
        )


@router.get("/excel/year/{year}")
async def export_year_excel(year: int):
    """Export every bucket of a year, one sheet per bucket with receipts."""
    try:
        store = ReceiptStore()

        buckets = {b.id: b for b in store.list_buckets() if b.year == year}
        receipts = [r for r in store.list_receipts() if r.bucket_id in buckets]
        wb = build_year_workbook(receipts, buckets, year)

        return _download(workbook_to_bytes(wb), XLSX_MEDIA_TYPE, year_workbook_filename(year))

    except Exception as e:
        logger.error("Failed to export year workbook", extra={
            "year": year,
            "error": str(e)
        }, exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to export Excel: {str(e)}"
        )
