"""
Import summary and run-scoped import state.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Set


@dataclass
class ImportSummary:
    """Aggregate outcome of one CSV import."""

    total_rows: int = 0
    imported_count: int = 0
    updated_count: int = 0
    invalid_count: int = 0
    duplicate_count: int = 0
    images_linked: int = 0
    images_not_found: int = 0
    errors: List[str] = field(default_factory=list)
    success: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ImportRun:
    """
    State for a single import invocation.

    seen_skus grows with the number of distinct SKUs; row content does not
    outlive its batch.
    """

    has_image_column: bool
    summary: ImportSummary = field(default_factory=ImportSummary)
    seen_skus: Set[str] = field(default_factory=set)
    rows_read: int = 0

    def issue(self, message: str) -> None:
        self.summary.errors.append(message)
