"""
Upload Endpoints
POST /upload/chunk - Submit one chunk of a file
GET /uploads/{upload_id} - Inspect an upload's status and variants
"""

import logging

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from ..dependencies import get_ledger
from ..schemas.uploads import ChunkUploadResponse, UploadStatusResponse
from ...uploads.ledger import MAX_CHECKSUM_LENGTH, UploadLedger

logger = logging.getLogger(__name__)

router = APIRouter(tags=["uploads"])


@router.post(
    "/upload/chunk",
    response_model=ChunkUploadResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
)
def upload_chunk(
    checksum: str = Form(..., min_length=1, max_length=MAX_CHECKSUM_LENGTH),
    chunk_index: int = Form(..., ge=0),
    total_chunks: int = Form(..., ge=1),
    original_name: str = Form(..., min_length=1),
    chunk: UploadFile = File(...),
    ledger: UploadLedger = Depends(get_ledger),
) -> ChunkUploadResponse:
    """
    Submit one chunk.

    Resubmitting a chunk index is a no-op. When the last chunk arrives the
    upload is queued for variant processing and status "completed" is
    returned.
    """
    data = chunk.file.read()
    receipt = ledger.submit_chunk(
        checksum=checksum,
        chunk_index=chunk_index,
        total_chunks=total_chunks,
        original_name=original_name,
        data=data,
    )
    return ChunkUploadResponse(**receipt.to_dict())


@router.get("/uploads/{upload_id}", response_model=UploadStatusResponse)
def get_upload_status(
    upload_id: int, ledger: UploadLedger = Depends(get_ledger)
) -> UploadStatusResponse:
    """Status, chunk progress and variants of an upload."""
    return UploadStatusResponse(**ledger.status(upload_id))
