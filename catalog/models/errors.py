"""
Domain errors for uploads and product import.
"""

from typing import Any, Dict, List, Optional


class CatalogError(Exception):
    """Base exception for catalog domain errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class StructuralValidationError(CatalogError):
    """The CSV file as a whole is unusable (columns, type, size). Raised before any row work."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        self.errors = errors or [message]
        super().__init__(message, details={"errors": self.errors})


class RowValidationError(CatalogError):
    """A single CSV row is missing data or has a bad price."""

    def __init__(self, row_number: int, reason: str):
        self.row_number = row_number
        self.reason = reason
        super().__init__(f"Row {row_number}: {reason}", details={"row": row_number})


class DuplicateKeyError(CatalogError):
    """A SKU appeared earlier in the same file."""

    def __init__(self, sku: str):
        self.sku = sku
        super().__init__(f"Duplicate SKU in CSV: {sku}", details={"sku": sku})


class UploadIntegrityError(CatalogError):
    """Assembled content cannot be trusted (missing chunk or checksum mismatch)."""


class LinkResolutionMiss(CatalogError):
    """A filename from the CSV did not resolve to a usable completed upload."""

    def __init__(self, sku: str, filename: str, reason: str):
        self.sku = sku
        self.filename = filename
        super().__init__(
            f"Image not found for SKU '{sku}': {filename} ({reason})",
            details={"sku": sku, "filename": filename},
        )


class ChunkMismatchError(CatalogError):
    """A chunk disagrees with what is already recorded for its checksum."""


class NotFoundError(CatalogError):
    """A referenced product or upload does not exist."""

    def __init__(self, resource: str, resource_id: Any):
        super().__init__(
            f"{resource} not found: {resource_id}",
            details={"resource": resource, "id": resource_id},
        )


class UploadNotReadyError(CatalogError):
    """An upload cannot be attached yet (not completed, or has no variants)."""
