"""
CSV structural validation.
Checks a file as a whole before any row is processed.
"""

import logging
import os
from pathlib import Path
from typing import List, Optional, Sequence

import chardet
import pandas as pd

from ..models.errors import StructuralValidationError
from ..models.product import REQUIRED_COLUMNS

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = (".csv", ".txt")
DEFAULT_MAX_BYTES = 100 * 1024 * 1024  # 100MB


def detect_csv_encoding(file_path: str) -> str:
    """
    Detect CSV file encoding using chardet.

    Args:
        file_path: Path to CSV file

    Returns:
        Detected encoding string
    """
    with open(file_path, "rb") as f:
        raw_data = f.read(10000)  # Read first 10KB
    result = chardet.detect(raw_data)
    encoding = result["encoding"]
    confidence = result["confidence"] or 0.0

    # ASCII is often a false positive for UTF-8 files
    # Since UTF-8 is a superset of ASCII, default to UTF-8
    if not encoding or encoding.lower() == "ascii":
        return "utf-8"

    logger.info(f"Detected encoding: {encoding} (confidence: {confidence:.2%})")
    return encoding


def format_bytes(num_bytes: int) -> str:
    """Format a byte count for humans, e.g. 1.5 MB."""
    units = ["B", "KB", "MB", "GB"]
    value = float(max(num_bytes, 0))
    power = 0
    while value >= 1024 and power < len(units) - 1:
        value /= 1024
        power += 1
    return f"{round(value, 2):g} {units[power]}"


class CsvValidator:
    """Structural checks for product CSV files."""

    @staticmethod
    def validate_file(path: str) -> None:
        """The path must be an existing, readable regular file."""
        if not os.path.isfile(path):
            raise StructuralValidationError("File not found")
        if not os.access(path, os.R_OK):
            raise StructuralValidationError("File is not readable")

    @staticmethod
    def validate_extension(filename: str) -> None:
        if Path(filename).suffix.lower() not in ALLOWED_EXTENSIONS:
            raise StructuralValidationError(
                f"Unsupported file type: {filename}. Expected one of: {', '.join(ALLOWED_EXTENSIONS)}"
            )

    @staticmethod
    def validate_size(path: str, max_bytes: int = DEFAULT_MAX_BYTES) -> int:
        try:
            size = os.path.getsize(path)
        except OSError:
            raise StructuralValidationError("Cannot determine file size")

        if size > max_bytes:
            raise StructuralValidationError(
                f"File too large. Maximum size: {format_bytes(max_bytes)}, "
                f"Actual size: {format_bytes(size)}"
            )
        return size

    @staticmethod
    def read_header(path: str, encoding: str) -> List[str]:
        """Read the header row, with surrounding whitespace removed from each name."""
        try:
            header = pd.read_csv(path, nrows=0, encoding=encoding, dtype=str)
        except pd.errors.EmptyDataError:
            raise StructuralValidationError("CSV file is empty or header row cannot be read")
        except (UnicodeDecodeError, pd.errors.ParserError) as e:
            raise StructuralValidationError(f"CSV header cannot be parsed: {e}")
        return [str(column).strip() for column in header.columns]

    @staticmethod
    def validate_columns(header: Sequence[str], required: Sequence[str] = REQUIRED_COLUMNS) -> None:
        missing = [column for column in required if column not in header]
        if missing:
            raise StructuralValidationError(
                "Missing required columns: " + ", ".join(missing),
                errors=[
                    "Missing required columns: " + ", ".join(missing),
                    "Found columns: " + ", ".join(header),
                ],
            )

    @classmethod
    def validate(
        cls,
        path: str,
        max_bytes: int = DEFAULT_MAX_BYTES,
        filename: Optional[str] = None,
        encoding: Optional[str] = None,
    ) -> List[str]:
        """
        Run every structural check.

        Args:
            path: File on disk
            max_bytes: Size cap
            filename: Client filename used for the type check (defaults to path)
            encoding: Known encoding, detected when omitted

        Returns:
            The header row

        Raises:
            StructuralValidationError: on the first failed check
        """
        cls.validate_file(path)
        cls.validate_extension(filename or path)
        cls.validate_size(path, max_bytes)

        header = cls.read_header(path, encoding or detect_csv_encoding(path))
        cls.validate_columns(header)
        return header
