"""
Expense analysis service backed by AWS Textract AnalyzeExpense.
"""

import logging
from typing import Any, Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from receipt_scanner.config import settings
from receipt_scanner.services.parser import ReceiptParser, ParsedReceiptData

logger = logging.getLogger(__name__)


class ExpenseAnalysisError(Exception):
    """Raised when the expense analysis call itself fails."""


class TextractService:
    """Service for analyzing receipt images with Textract."""

    def __init__(self, client: Optional[Any] = None, parser: Optional[ReceiptParser] = None):
        """
        Initialize Textract service.

        Args:
            client: Optional pre-built boto3 Textract client
            parser: Optional ReceiptParser instance
        """
        self.client = client or boto3.client(
            'textract',
            region_name=settings.AWS_REGION,
            aws_access_key_id=settings.AWS_ACCESS_KEY_ID or None,
            aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY or None,
        )
        self.parser = parser or ReceiptParser()

    def analyze_expense(self, image_bytes: bytes) -> Optional[Dict[str, Any]]:
        """
        Run AnalyzeExpense and return the first expense document.

        Returns:
            ExpenseDocument dict, or None if Textract found none

        Raises:
            ExpenseAnalysisError: If the Textract call fails
        """
        try:
            response = self.client.analyze_expense(Document={'Bytes': image_bytes})
        except (ClientError, BotoCoreError) as e:
            logger.error("Textract AnalyzeExpense failed", extra={
                "size_bytes": len(image_bytes),
                "error": str(e)
            }, exc_info=True)
            raise ExpenseAnalysisError(str(e)) from e

        documents = response.get('ExpenseDocuments') or []

        logger.info("Textract AnalyzeExpense completed", extra={
            "document_count": len(documents),
            "size_bytes": len(image_bytes)
        })

        return documents[0] if documents else None

    def analyze_receipt(self, image_bytes: bytes) -> ParsedReceiptData:
        """
        Analyze a receipt image and parse it into canonical fields.

        A response with no expense document parses as an empty field list.
        """
        document = self.analyze_expense(image_bytes)
        return self.parser.parse_expense_document(document)
