#!/usr/bin/env python3
"""
Upload Reprocessing Script
Re-runs variant processing for an upload, including one that failed.

Usage:
    python -m catalog.scripts.reprocess_upload 42
"""

import argparse
import logging
import sys

from catalog.db.session import init_db
from catalog.models.errors import NotFoundError
from catalog.uploads.processor import default_processor

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Reprocess an upload's image variants")
    parser.add_argument("upload_ids", type=int, nargs="+", help="Upload IDs to reprocess")
    args = parser.parse_args(argv)

    init_db()
    processor = default_processor()

    exit_code = 0
    for upload_id in args.upload_ids:
        try:
            status = processor.reprocess(upload_id)
        except NotFoundError as e:
            logger.error(e.message)
            exit_code = 1
            continue

        logger.info(f"Upload {upload_id}: {status}")
        if status != "completed":
            exit_code = 1

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
