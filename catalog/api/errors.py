"""
Error Handlers
Every error leaves the API as {"error": {"message", "type", "details"?}}.
"""

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..models.errors import (
    CatalogError,
    ChunkMismatchError,
    NotFoundError,
    StructuralValidationError,
    UploadNotReadyError,
)

logger = logging.getLogger(__name__)

# Anything else derived from CatalogError is a 400
STATUS_CODES = {
    StructuralValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ChunkMismatchError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    UploadNotReadyError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    NotFoundError: status.HTTP_404_NOT_FOUND,
}


def error_response(
    status_code: int, message: str, error_type: str, details: Optional[Any] = None
) -> JSONResponse:
    error = {"message": message, "type": error_type}
    if details is not None:
        error["details"] = details
    return JSONResponse(status_code=status_code, content={"error": error})


def status_for(exc: CatalogError) -> int:
    for error_class, status_code in STATUS_CODES.items():
        if isinstance(exc, error_class):
            return status_code
    return status.HTTP_400_BAD_REQUEST


def setup_error_handlers(app: FastAPI) -> None:
    """Register the handlers on app."""

    @app.exception_handler(CatalogError)
    async def catalog_error_handler(request: Request, exc: CatalogError):
        status_code = status_for(exc)
        logger.warning(
            f"{request.method} {request.url.path} rejected ({status_code}): {exc.message}",
            extra={"status_code": status_code, "path": request.url.path},
        )
        return error_response(status_code, exc.message, type(exc).__name__, exc.details)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = [
            {
                "loc": [str(part) for part in error.get("loc", ())],
                "msg": str(error.get("msg", "")),
                "type": error.get("type", ""),
            }
            for error in exc.errors()
        ]
        logger.warning(f"Invalid request to {request.url.path}: {errors}")
        return error_response(
            status.HTTP_422_UNPROCESSABLE_ENTITY, "Request validation failed", "ValidationError", errors
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        logger.warning(f"Bad value for {request.url.path}: {exc}")
        return error_response(status.HTTP_400_BAD_REQUEST, str(exc), "ValueError")

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=True)
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "An unexpected error occurred", "InternalServerError"
        )
