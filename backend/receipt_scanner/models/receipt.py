"""
Pydantic models for receipts.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Optional

from receipt_scanner.services.parser import ParsedReceiptData


class ReceiptBase(BaseModel):
    """Editable receipt fields, stored in canonical string form."""
    subtotal: Optional[str] = None
    gst: Optional[str] = None
    total: Optional[str] = None
    invoice_number: Optional[str] = None
    vendor: Optional[str] = None
    receipt_date: Optional[str] = None  # YYYY/MM/DD


class ReceiptCreate(ReceiptBase):
    """Model for saving a scanned (possibly edited) receipt."""
    bucket_id: str
    image: Optional[str] = None  # base64 or data URL, uploaded to storage
    image_url: Optional[str] = None


class ReceiptUpdate(ReceiptBase):
    """Partial update; only fields that are sent are written."""
    bucket_id: Optional[str] = None


class Receipt(ReceiptBase):
    """Model for receipt API responses."""
    id: str
    bucket_id: str
    image_url: Optional[str] = None  # Signed URL, generated at access time
    created_at: str

    class Config:
        from_attributes = True


class ReceiptList(BaseModel):
    """Model for receipt list responses."""
    receipts: list[Receipt]
    total: int


class ParsedReceipt(BaseModel):
    """Scan result as sent to the client (camelCase keys)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    subtotal: Optional[str] = None
    gst: Optional[str] = None
    total: Optional[str] = None
    invoice_number: Optional[str] = None
    vendor: Optional[str] = None
    receipt_date: Optional[str] = None

    @classmethod
    def from_parsed(cls, data: ParsedReceiptData) -> "ParsedReceipt":
        return cls(**data.to_dict())


class ScanReceiptRequest(BaseModel):
    """Request body for scanning a receipt image."""
    image: Optional[str] = None


class ParseReceiptResponse(BaseModel):
    """Response envelope for a scan."""
    success: bool
    data: Optional[ParsedReceipt] = None
    error: Optional[str] = None


class SaveReceiptResponse(BaseModel):
    """Response envelope for saving a receipt."""
    success: bool
    receipt: Optional[Receipt] = None
    error: Optional[str] = None
