"""
Dependency Injection
FastAPI dependencies for database sessions and domain services.
"""

import logging
from typing import Generator

from sqlalchemy.orm import Session

from ..db.session import get_session_factory
from ..ingestion.csv_processor import ProductImportPipeline, default_pipeline
from ..uploads.ledger import UploadLedger, default_ledger

logger = logging.getLogger(__name__)


def get_db() -> Generator[Session, None, None]:
    """
    Get database session.

    Use as FastAPI dependency:
        @app.get("/endpoint")
        def endpoint(db: Session = Depends(get_db)):
            ...
    """
    SessionLocal = get_session_factory()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_ledger() -> UploadLedger:
    """Upload ledger dispatching processing to Celery."""
    return default_ledger()


def get_import_pipeline() -> ProductImportPipeline:
    """CSV import pipeline using configured batch size and size cap."""
    return default_pipeline()
