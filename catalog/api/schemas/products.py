"""
Pydantic schemas for product import and image attachment.
"""

from typing import List, Optional
from pydantic import BaseModel, Field


class ImportSummaryInfo(BaseModel):
    """Counts and issues from one CSV import."""

    total_rows: int = Field(..., description="Data rows read, header excluded")
    imported_count: int = Field(..., description="Products created")
    updated_count: int = Field(..., description="Existing products overwritten")
    invalid_count: int
    duplicate_count: int = Field(..., description="Rows repeating an earlier SKU in the file")
    images_linked: int
    images_not_found: int
    errors: List[str] = Field(default_factory=list, description="Issues in encounter order")


class ImportResponse(BaseModel):
    success: bool
    data: ImportSummaryInfo


class ProductInfo(BaseModel):
    id: int
    sku: str
    name: str
    price: str
    primary_image_id: Optional[int] = None


class AttachedImageInfo(BaseModel):
    id: int
    upload_id: int
    variant: str
    path: str
    width: int
    height: int


class AttachImageData(BaseModel):
    product: ProductInfo
    image: AttachedImageInfo


class AttachImageResponse(BaseModel):
    success: bool = True
    message: str
    data: AttachImageData
