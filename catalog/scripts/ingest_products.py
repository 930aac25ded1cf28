#!/usr/bin/env python3
"""
Product Import Script
Loads a product CSV (sku,name,price[,image]) into the database.

Usage:
    python -m catalog.scripts.ingest_products data/products.csv
    python -m catalog.scripts.ingest_products data/products.csv --batch-size 500
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from catalog.config.settings import get_settings
from catalog.db.session import get_session_factory, init_db
from catalog.ingestion.csv_processor import ProductImportPipeline
from catalog.models.errors import StructuralValidationError

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def main(argv=None) -> int:
    """Main function to run CSV import."""
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Import product data from CSV")
    parser.add_argument("csv_path", type=str, help="Path to CSV file containing product data")
    parser.add_argument(
        "--batch-size",
        type=int,
        default=settings.import_batch_size,
        help=f"Number of rows per batch (default: {settings.import_batch_size})",
    )
    parser.add_argument(
        "--json", action="store_true", help="Print the summary as JSON on stdout"
    )

    args = parser.parse_args(argv)

    csv_path = Path(args.csv_path)
    if not csv_path.exists():
        logger.error(f"CSV file not found: {csv_path}")
        return 1

    init_db()
    pipeline = ProductImportPipeline(
        get_session_factory(),
        batch_size=args.batch_size,
        max_bytes=settings.max_csv_bytes,
    )

    try:
        summary = pipeline.import_file(str(csv_path))
    except StructuralValidationError as e:
        for error in e.errors:
            logger.error(error)
        return 2

    if args.json:
        print(json.dumps({"success": summary.success, "data": summary.to_dict()}, indent=2))
    else:
        logger.info("=" * 60)
        logger.info("IMPORT COMPLETE" if summary.success else "IMPORT ABORTED")
        logger.info("=" * 60)
        logger.info(f"Total rows: {summary.total_rows}")
        logger.info(f"Imported: {summary.imported_count}")
        logger.info(f"Updated: {summary.updated_count}")
        logger.info(f"Invalid: {summary.invalid_count}")
        logger.info(f"Duplicates: {summary.duplicate_count}")
        logger.info(f"Images linked: {summary.images_linked}")
        logger.info(f"Images not found: {summary.images_not_found}")

        if summary.errors:
            logger.warning(f"Issues encountered: {len(summary.errors)}")
            for error in summary.errors[:5]:  # Show first 5 issues
                logger.warning(f"  - {error}")

    return 0 if summary.success else 1


if __name__ == "__main__":
    sys.exit(main())
