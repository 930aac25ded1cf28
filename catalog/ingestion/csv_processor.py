"""
CSV Import Pipeline
Streams product CSV files in fixed-size batches, validates rows, drops
in-file duplicates and upserts each batch by SKU.
"""

import logging
import time
from typing import Any, Dict, List, Optional, Set

import pandas as pd
from sqlalchemy import func, select
from sqlalchemy.orm import Session, sessionmaker

from ..db.models import Product
from ..models.errors import DuplicateKeyError, RowValidationError
from ..models.product import IMAGE_COLUMN, ProductRow, parse_product_row
from ..models.summary import ImportRun, ImportSummary
from .image_linker import ImageLinker
from .validation import DEFAULT_MAX_BYTES, CsvValidator, detect_csv_encoding

logger = logging.getLogger(__name__)


class ProductImportPipeline:
    """
    Main CSV import pipeline.
    Handles chunked reading, validation, upsert and image linking.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        batch_size: int = 1000,
        max_bytes: int = DEFAULT_MAX_BYTES,
        linker: Optional[ImageLinker] = None,
    ):
        """
        Initialize the import pipeline.

        Args:
            session_factory: Creates one session per batch
            batch_size: Number of rows per batch (and per transaction)
            max_bytes: File size cap checked before import
            linker: Image linker used when the file has an image column
        """
        self.Session = session_factory
        self.batch_size = batch_size
        self.max_bytes = max_bytes
        self.linker = linker or ImageLinker()

    def import_file(self, file_path: str, filename: Optional[str] = None) -> ImportSummary:
        """
        Import a product CSV.

        Args:
            file_path: Path to CSV file
            filename: Client filename, for the file type check

        Returns:
            ImportSummary. Row problems and mid-stream failures are reported
            inside it rather than raised.

        Raises:
            StructuralValidationError: if the file is rejected before import
        """
        start_time = time.time()
        CsvValidator.validate_file(file_path)
        encoding = detect_csv_encoding(file_path)
        header = CsvValidator.validate(
            file_path, max_bytes=self.max_bytes, filename=filename, encoding=encoding
        )
        columns = self._normalize_columns(header)
        run = ImportRun(has_image_column=IMAGE_COLUMN in columns)

        logger.info(
            f"Starting import of {file_path} (image column: {'yes' if run.has_image_column else 'no'})"
        )

        try:
            reader = pd.read_csv(
                file_path,
                header=0,
                names=columns,
                index_col=False,  # Extra trailing fields are dropped, short rows padded
                chunksize=self.batch_size,
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=False,
                encoding=encoding,
                engine="python",
            )

            for batch_num, batch_df in enumerate(reader):
                logger.info(
                    f"Processing batch {batch_num + 1} "
                    f"(rows {run.rows_read + 1}-{run.rows_read + len(batch_df)})"
                )
                self._process_batch(batch_df, run)

        except Exception as e:
            logger.error(f"Import of {file_path} aborted: {e}", exc_info=True)
            run.summary.success = False
            run.issue(f"Fatal error: {e}")

        self._log_statistics(run.summary, time.time() - start_time)
        return run.summary

    def _normalize_columns(self, header: List[str]) -> List[str]:
        """Rename the first case-insensitive 'image' column to 'image'."""
        columns = list(header)
        if IMAGE_COLUMN not in columns:
            for i, column in enumerate(columns):
                if column.lower() == IMAGE_COLUMN:
                    columns[i] = IMAGE_COLUMN
                    break
        return columns

    def _process_batch(self, df: pd.DataFrame, run: ImportRun) -> None:
        """Validate, dedupe and write one batch in its own transaction."""
        rows = self._collect_rows(df.to_dict("records"), run)
        if not rows:
            return

        session = self.Session()
        try:
            skus = [row.sku for row in rows]
            existing = self._get_existing_skus(session, skus)

            self._upsert_products(session, rows)

            if run.has_image_column:
                self.linker.link(session, {row.sku: row.image for row in rows}, run)

            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

        run.summary.updated_count += len(existing)
        run.summary.imported_count += len(rows) - len(existing)

    def _collect_rows(self, records: List[Dict[str, Any]], run: ImportRun) -> List[ProductRow]:
        rows = []
        for record in records:
            run.rows_read += 1
            run.summary.total_rows += 1

            try:
                row = parse_product_row(self._clean_record(record), run.rows_read)
                if row.sku in run.seen_skus:
                    raise DuplicateKeyError(row.sku)
            except RowValidationError as e:
                run.summary.invalid_count += 1
                run.issue(e.message)
                continue
            except DuplicateKeyError as e:
                run.summary.duplicate_count += 1
                run.issue(e.message)
                continue

            run.seen_skus.add(row.sku)
            rows.append(row)
        return rows

    def _clean_record(self, record: Dict) -> Dict:
        """Turn pandas missing markers from short rows into None."""
        return {key: (value if pd.notna(value) else None) for key, value in record.items()}

    def _get_existing_skus(self, session: Session, skus: List[str]) -> Set[str]:
        """Get SKUs from this batch that are already stored."""
        if not skus:
            return set()
        result = session.execute(select(Product.sku).where(Product.sku.in_(skus)))
        return {row[0] for row in result}

    def _upsert_products(self, session: Session, rows: List[ProductRow]) -> None:
        """Insert new SKUs and overwrite name/price of existing ones in one statement."""
        dialect = session.get_bind().dialect.name
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        elif dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert
        else:
            raise NotImplementedError(f"Upsert not supported for dialect: {dialect}")

        table = Product.__table__
        stmt = insert(table).values(
            [{"sku": row.sku, "name": row.name, "price": row.price} for row in rows]
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.sku],
            set_={
                "name": stmt.excluded.name,
                "price": stmt.excluded.price,
                "updated_at": func.now(),
            },
        )
        session.execute(stmt)

    def _log_statistics(self, summary: ImportSummary, elapsed: float) -> None:
        """Log final statistics."""
        logger.info("=== Import Statistics ===")
        logger.info(f"Total rows: {summary.total_rows}")
        logger.info(f"Imported: {summary.imported_count}")
        logger.info(f"Updated: {summary.updated_count}")
        logger.info(f"Invalid: {summary.invalid_count}")
        logger.info(f"Duplicates: {summary.duplicate_count}")
        logger.info(f"Images linked: {summary.images_linked}")
        logger.info(f"Images not found: {summary.images_not_found}")
        logger.info(f"Processing time: {elapsed:.1f} seconds")

        if not summary.success:
            logger.warning(f"Import finished with a fatal error: {summary.errors[-1]}")


def default_pipeline() -> ProductImportPipeline:
    """Pipeline wired to the configured database and import settings."""
    from ..config.settings import get_settings
    from ..db.session import get_session_factory

    settings = get_settings()
    return ProductImportPipeline(
        get_session_factory(),
        batch_size=settings.import_batch_size,
        max_bytes=settings.max_csv_bytes,
    )
