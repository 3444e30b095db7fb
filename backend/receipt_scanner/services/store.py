"""
Record store for receipts and buckets backed by Supabase tables.
"""

import logging
from typing import Any, Dict, List, Optional

from receipt_scanner.models.bucket import Bucket, BucketCreate
from receipt_scanner.models.receipt import Receipt
from receipt_scanner.utils.buckets import sort_buckets
from receipt_scanner.utils.supabase import get_supabase_client

logger = logging.getLogger(__name__)

RECEIPTS_TABLE = 'receipts'
BUCKETS_TABLE = 'buckets'

# Postgres unique_violation
UNIQUE_VIOLATION = '23505'


class RecordStoreError(Exception):
    """Raised when a database operation fails."""


class DuplicateBucketError(RecordStoreError):
    """Raised when a bucket with the same year, month and category exists."""


class ReceiptStore:
    """CRUD access to the receipts and buckets tables."""

    def __init__(self, client=None):
        self.supabase = client or get_supabase_client()

    # Receipts

    def save_receipt(self, record: Dict[str, Any]) -> Receipt:
        """
        Insert a receipt row.

        Args:
            record: Column values; bucket_id is required

        Returns:
            The stored receipt
        """
        try:
            response = self.supabase.table(RECEIPTS_TABLE).insert(record).execute()
        except Exception as e:
            logger.error("Error saving receipt", extra={
                "bucket_id": record.get('bucket_id'),
                "error": str(e)
            }, exc_info=True)
            raise RecordStoreError(f"Failed to save receipt: {e}") from e

        if not response.data:
            raise RecordStoreError("Failed to save receipt: no row returned")

        receipt = Receipt(**response.data[0])
        logger.info("Saved receipt", extra={
            "receipt_id": receipt.id,
            "bucket_id": receipt.bucket_id
        })
        return receipt

    def list_receipts(self, bucket_id: Optional[str] = None) -> List[Receipt]:
        """All receipts, newest first, optionally limited to one bucket."""
        try:
            query = self.supabase.table(RECEIPTS_TABLE).select('*')
            if bucket_id:
                query = query.eq('bucket_id', bucket_id)
            response = query.order('created_at', desc=True).execute()
        except Exception as e:
            logger.error("Error fetching receipts", extra={
                "bucket_id": bucket_id,
                "error": str(e)
            }, exc_info=True)
            raise RecordStoreError(f"Failed to fetch receipts: {e}") from e

        return [Receipt(**row) for row in response.data]

    def get_receipt(self, receipt_id: str) -> Optional[Receipt]:
        try:
            response = self.supabase.table(RECEIPTS_TABLE).select('*').eq('id', receipt_id).execute()
        except Exception as e:
            logger.error("Error fetching receipt", extra={
                "receipt_id": receipt_id,
                "error": str(e)
            }, exc_info=True)
            raise RecordStoreError(f"Failed to fetch receipt: {e}") from e

        return Receipt(**response.data[0]) if response.data else None

    def update_receipt(self, receipt_id: str, updates: Dict[str, Any]) -> Optional[Receipt]:
        """
        Apply a partial update.

        Returns:
            The updated receipt, or None if it does not exist
        """
        try:
            response = self.supabase.table(RECEIPTS_TABLE).update(updates).eq('id', receipt_id).execute()
        except Exception as e:
            logger.error("Error updating receipt", extra={
                "receipt_id": receipt_id,
                "error": str(e)
            }, exc_info=True)
            raise RecordStoreError(f"Failed to update receipt: {e}") from e

        return Receipt(**response.data[0]) if response.data else None

    def delete_receipt(self, receipt_id: str) -> bool:
        """Delete a receipt; False if it did not exist."""
        try:
            response = self.supabase.table(RECEIPTS_TABLE).delete().eq('id', receipt_id).execute()
        except Exception as e:
            logger.error("Error deleting receipt", extra={
                "receipt_id": receipt_id,
                "error": str(e)
            }, exc_info=True)
            raise RecordStoreError(f"Failed to delete receipt: {e}") from e

        return bool(response.data)

    # Buckets

    def list_buckets(self) -> List[Bucket]:
        """Buckets sorted year desc, month desc, category asc."""
        try:
            response = (
                self.supabase.table(BUCKETS_TABLE)
                .select('*')
                .order('year', desc=True)
                .order('month', desc=True)
                .order('category')
                .execute()
            )
        except Exception as e:
            logger.error("Error fetching buckets", extra={"error": str(e)}, exc_info=True)
            raise RecordStoreError(f"Failed to fetch buckets: {e}") from e

        return sort_buckets(Bucket(**row) for row in response.data)

    def get_bucket(self, bucket_id: str) -> Optional[Bucket]:
        try:
            response = self.supabase.table(BUCKETS_TABLE).select('*').eq('id', bucket_id).execute()
        except Exception as e:
            logger.error("Error fetching bucket", extra={
                "bucket_id": bucket_id,
                "error": str(e)
            }, exc_info=True)
            raise RecordStoreError(f"Failed to fetch bucket: {e}") from e

        return Bucket(**response.data[0]) if response.data else None

    def create_bucket(self, bucket: BucketCreate) -> Bucket:
        """
        Insert a bucket.

        Raises:
            DuplicateBucketError: If (year, month, category) already exists
            RecordStoreError: On any other database failure
        """
        try:
            response = self.supabase.table(BUCKETS_TABLE).insert(bucket.model_dump()).execute()
        except Exception as e:
            if getattr(e, 'code', None) == UNIQUE_VIOLATION:
                logger.warning("Bucket already exists", extra=bucket.model_dump())
                raise DuplicateBucketError(
                    f"Bucket {bucket.year}/{bucket.month}/{bucket.category} already exists"
                ) from e
            logger.error("Error creating bucket", extra={"error": str(e)}, exc_info=True)
            raise RecordStoreError(f"Failed to create bucket: {e}") from e

        if not response.data:
            raise RecordStoreError("Failed to create bucket: no row returned")

        return Bucket(**response.data[0])

    def delete_bucket(self, bucket_id: str) -> bool:
        """Delete a bucket; False if it did not exist."""
        try:
            response = self.supabase.table(BUCKETS_TABLE).delete().eq('id', bucket_id).execute()
        except Exception as e:
            logger.error("Error deleting bucket", extra={
                "bucket_id": bucket_id,
                "error": str(e)
            }, exc_info=True)
            raise RecordStoreError(f"Failed to delete bucket: {e}") from e

        return bool(response.data)
