"""
Pydantic schemas for chunked uploads.
"""

from typing import List, Optional
from pydantic import BaseModel, Field


class ChunkUploadResponse(BaseModel):
    """Result of submitting one chunk."""

    status: str = Field(..., description="uploading or completed (all bytes received)")
    upload_id: int = Field(..., description="Upload ID")
    received_chunks_count: Optional[int] = Field(None, description="Chunks received so far")
    total_chunks: Optional[int] = Field(None, description="Declared number of chunks")
    progress: Optional[int] = Field(None, ge=0, le=100, description="Percent of chunks received")
    message: Optional[str] = Field(None, description="Human-readable message")


class ImageVariantInfo(BaseModel):
    """One stored variant."""

    id: int
    variant: str = Field(..., description="Variant label (target width)")
    path: str
    width: int
    height: int


class UploadStatusResponse(BaseModel):
    """Upload status for inspection."""

    upload_id: int
    original_name: str
    checksum: str
    status: str = Field(..., description="uploading, processing, completed or failed")
    received_chunks_count: int
    total_chunks: int
    progress: int = Field(..., ge=0, le=100)
    variants: List[ImageVariantInfo] = Field(default_factory=list)
