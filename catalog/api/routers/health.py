"""
Health Endpoints
GET /health - Liveness
GET /status - Database, blob storage and upload backlog
"""

import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..dependencies import get_db
from ...config.settings import Settings, get_settings
from ...db.models import Upload
from ...storage import get_blob_store

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/health")
async def health_check() -> Dict[str, str]:
    return {"status": "healthy", "timestamp": _now()}


@router.get("/status")
def status_check(
    settings: Settings = Depends(get_settings),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """
    Component status.

    The database entry includes upload counts per status, so a growing
    "processing" count shows a stalled worker pool.
    """
    components: Dict[str, Any] = {}

    try:
        rows = db.execute(select(Upload.status, func.count()).group_by(Upload.status)).all()
        components["database"] = {
            "status": "healthy",
            "uploads": {upload_status: count for upload_status, count in rows},
        }
    except SQLAlchemyError as e:
        logger.error(f"Database status check failed: {e}")
        components["database"] = {"status": "unhealthy", "error": str(e)}

    try:
        root = get_blob_store().root
        writable = os.access(root, os.W_OK)
        components["storage"] = {
            "status": "healthy" if writable else "unhealthy",
            "root": str(root),
        }
    except OSError as e:
        logger.error(f"Storage status check failed: {e}")
        components["storage"] = {"status": "unhealthy", "error": str(e)}

    healthy = all(c["status"] == "healthy" for c in components.values())
    return {
        "status": "healthy" if healthy else "degraded",
        "version": settings.version,
        "timestamp": _now(),
        "components": components,
    }
