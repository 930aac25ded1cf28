"""
Upload Processing Tasks
Background tasks for turning fully received uploads into image variants
"""

import logging
from typing import Any, Dict

from .celery_app import app

logger = logging.getLogger(__name__)


@app.task(bind=True, name="tasks.process_upload_variants")
def process_upload_variants(self, upload_id: int) -> Dict[str, Any]:
    """
    Assemble, verify and render variants for an upload.

    Safe to deliver more than once: completed and failed uploads are skipped.

    Args:
        upload_id: Upload primary key

    Returns:
        Dictionary with the upload's resulting status
    """
    # Import here to avoid circular dependencies
    from ..uploads.processor import default_processor

    logger.info(f"Processing upload {upload_id}")
    status = default_processor().process(upload_id)

    return {
        "upload_id": upload_id,
        "status": status if status is not None else "missing",
    }
