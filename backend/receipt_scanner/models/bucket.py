"""
Pydantic models for buckets (year / month / category groupings).
"""

from pydantic import BaseModel, Field
from typing import Literal, Optional

BUCKET_CATEGORIES = ('Food', 'Supply', 'Other A')

MONTH_NAMES = (
    'January', 'February', 'March', 'April', 'May', 'June',
    'July', 'August', 'September', 'October', 'November', 'December',
)

BucketCategory = Literal['Food', 'Supply', 'Other A']


class BucketCreate(BaseModel):
    """Model for creating a bucket."""
    year: int = Field(..., ge=1900, le=2999)
    month: int = Field(..., ge=1, le=12)
    category: BucketCategory


class Bucket(BucketCreate):
    """Model for bucket API responses."""
    id: str
    created_at: Optional[str] = None
    receipt_count: int = 0  # filled in by GET /buckets

    class Config:
        from_attributes = True

    @property
    def month_name(self) -> str:
        return MONTH_NAMES[self.month - 1]

    @property
    def label(self) -> str:
        return f"{self.year} / {self.month_name} / {self.category}"
