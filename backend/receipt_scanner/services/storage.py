"""
Storage service for receipt images in Supabase Storage.
Content-addressed paths make re-uploads of the same photo idempotent.
"""

import hashlib
import logging
from typing import Optional

from receipt_scanner.config import settings
from receipt_scanner.utils.supabase import get_supabase_client

logger = logging.getLogger(__name__)


class StorageService:
    """Service for managing receipt image uploads to Supabase Storage."""

    def __init__(self, client=None):
        """Initialize storage service."""
        self.supabase = client or get_supabase_client()
        self.bucket_name = settings.RECEIPT_BUCKET

    def calculate_file_hash(self, file_data: bytes) -> str:
        """SHA-256 hex digest of the file bytes."""
        return hashlib.sha256(file_data).hexdigest()

    def generate_file_path(self, bucket_id: str, file_hash: str, extension: str = "jpg") -> str:
        """
        Generate deterministic, content-addressed storage path.

        Format: {bucket_id}/{hash[:2]}/{hash}.{extension}
        """
        return f"{bucket_id}/{file_hash[:2]}/{file_hash}.{extension}"

    def upload(
        self,
        file_data: bytes,
        file_path: str,
        mime_type: str = "image/jpeg"
    ) -> bool:
        """
        Upload a file to Supabase Storage with idempotent upsert.

        Returns:
            True if upload succeeded, False otherwise
        """
        try:
            self.supabase.storage.from_(self.bucket_name).upload(
                path=file_path,
                file=file_data,
                file_options={
                    "content-type": mime_type,
                    "upsert": "true"
                }
            )

            logger.debug("Uploaded file to storage", extra={
                "file_path": file_path,
                "size_bytes": len(file_data),
                "mime_type": mime_type
            })

            return True

        except Exception as e:
            logger.error("Error uploading file", extra={
                "file_path": file_path,
                "error": str(e)
            }, exc_info=True)
            return False

    def upload_receipt_image(self, bucket_id: str, image_data: bytes) -> Optional[str]:
        """
        Upload a receipt photo under its bucket.

        Args:
            bucket_id: Bucket the receipt is filed under
            image_data: JPEG bytes

        Returns:
            Storage path, or None if the upload failed
        """
        file_hash = self.calculate_file_hash(image_data)
        file_path = self.generate_file_path(bucket_id, file_hash)

        if not self.upload(image_data, file_path, "image/jpeg"):
            return None

        return file_path

    def signed_url(self, file_path: str, expires_in: int = 3600) -> Optional[str]:
        """
        Generate a signed URL for temporary access to a private file.

        Returns:
            Signed URL, or None if failed
        """
        try:
            response = self.supabase.storage.from_(self.bucket_name).create_signed_url(
                file_path,
                expires_in
            )

            signed_url = response.get('signedURL') or response.get('signedUrl')

            if not signed_url:
                logger.warning("Signed URL generation returned empty", extra={
                    "file_path": file_path
                })
                return None

            return signed_url

        except Exception as e:
            logger.error("Error creating signed URL", extra={
                "file_path": file_path,
                "error": str(e)
            }, exc_info=True)
            return None

    def delete_file(self, file_path: str) -> bool:
        """
        Delete a file from storage.

        Returns:
            True if deleted successfully, False otherwise
        """
        try:
            self.supabase.storage.from_(self.bucket_name).remove([file_path])
            logger.debug("Deleted file from storage", extra={"file_path": file_path})
            return True

        except Exception as e:
            logger.error("Error deleting file", extra={
                "file_path": file_path,
                "error": str(e)
            }, exc_info=True)
            return False
