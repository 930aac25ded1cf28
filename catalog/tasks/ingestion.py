"""
Data Ingestion Tasks
Background task for importing product CSV files
"""

import logging
from typing import Dict, Any

from .celery_app import app

logger = logging.getLogger(__name__)


@app.task(bind=True, name="tasks.import_products_csv")
def import_products_csv(self, file_path: str) -> Dict[str, Any]:
    """
    Import a product CSV file.

    Args:
        file_path: Path to the CSV file, readable by the worker

    Returns:
        Dictionary with the import summary, or the structural errors that
        rejected the file
    """
    # Import here to avoid circular dependencies
    from ..ingestion.csv_processor import default_pipeline
    from ..models.errors import StructuralValidationError

    logger.info(f"Starting CSV import for {file_path}")

    try:
        summary = default_pipeline().import_file(file_path)
    except StructuralValidationError as e:
        logger.warning(f"Rejected CSV file {file_path}: {e.message}")
        return {"success": False, "file_path": file_path, "errors": e.errors}

    logger.info(f"Completed CSV import for {file_path}: {summary.total_rows} rows")
    return {"success": summary.success, "file_path": file_path, "data": summary.to_dict()}
