"""
Data Models Package
Row validation, import summaries and domain errors.
"""

from .product import ProductRow, parse_product_row, REQUIRED_COLUMNS, IMAGE_COLUMN
from .summary import ImportSummary, ImportRun
from .errors import (
    CatalogError,
    StructuralValidationError,
    RowValidationError,
    DuplicateKeyError,
    UploadIntegrityError,
    LinkResolutionMiss,
    ChunkMismatchError,
    NotFoundError,
    UploadNotReadyError,
)

__all__ = [
    "ProductRow",
    "parse_product_row",
    "REQUIRED_COLUMNS",
    "IMAGE_COLUMN",
    "ImportSummary",
    "ImportRun",
    "CatalogError",
    "StructuralValidationError",
    "RowValidationError",
    "DuplicateKeyError",
    "UploadIntegrityError",
    "LinkResolutionMiss",
    "ChunkMismatchError",
    "NotFoundError",
    "UploadNotReadyError",
]
