"""
Product Endpoints
POST /import/products - Bulk import products from a CSV file
POST /products/{product_id}/attach-image/{upload_id} - Set a product's primary image
"""

import logging
import os
import tempfile

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.orm import Session

from ..dependencies import get_db, get_import_pipeline
from ..schemas.products import AttachImageResponse, ImportResponse
from ...ingestion.csv_processor import ProductImportPipeline
from ...ingestion.image_linker import attach_image
from ...ingestion.validation import CsvValidator, format_bytes
from ...models.errors import StructuralValidationError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["products"])

COPY_BUFFER_SIZE = 1024 * 1024


def _spool_to_disk(upload: UploadFile, max_bytes: int) -> str:
    """Copy the uploaded file to a temp file, refusing anything over max_bytes."""
    fd, path = tempfile.mkstemp(suffix=".csv", prefix="import-")
    written = 0
    try:
        with os.fdopen(fd, "wb") as out:
            while True:
                block = upload.file.read(COPY_BUFFER_SIZE)
                if not block:
                    break
                written += len(block)
                if written > max_bytes:
                    raise StructuralValidationError(
                        f"File too large. Maximum size: {format_bytes(max_bytes)}"
                    )
                out.write(block)
    except Exception:
        os.unlink(path)
        raise
    return path


@router.post("/import/products", response_model=ImportResponse)
def import_products(
    csv: UploadFile = File(...),
    pipeline: ProductImportPipeline = Depends(get_import_pipeline),
) -> ImportResponse:
    """
    Import products from a CSV with header sku,name,price[,image].

    Structural problems reject the file with 422 before any row is read.
    Row problems are counted and listed in the summary.
    """
    filename = csv.filename or "upload.csv"
    CsvValidator.validate_extension(filename)

    path = _spool_to_disk(csv, pipeline.max_bytes)
    try:
        summary = pipeline.import_file(path, filename=filename)
    finally:
        os.unlink(path)

    logger.info(
        f"Imported {filename}: {summary.imported_count} new, {summary.updated_count} updated, "
        f"{summary.invalid_count} invalid, {summary.duplicate_count} duplicates"
    )
    return ImportResponse(success=summary.success, data=summary.to_dict())


@router.post(
    "/products/{product_id}/attach-image/{upload_id}", response_model=AttachImageResponse
)
def attach_product_image(
    product_id: int, upload_id: int, db: Session = Depends(get_db)
) -> AttachImageResponse:
    """Attach a completed upload's largest variant as the product's primary image."""
    try:
        result = attach_image(db, product_id, upload_id)
        db.commit()
    except Exception:
        db.rollback()
        raise

    return AttachImageResponse(
        message="Image attached successfully" if result["changed"] else "Image already attached",
        data={"product": result["product"], "image": result["image"]},
    )
