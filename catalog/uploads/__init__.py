"""
Uploads Package
Chunked upload bookkeeping, reassembly and image variant generation.
"""

from .ledger import UploadLedger, ChunkReceipt, default_ledger
from .assembler import Assembler
from .variants import VariantGenerator
from .processor import UploadProcessor, default_processor
from .locks import KeyedLock, upload_locks

__all__ = [
    "UploadLedger",
    "ChunkReceipt",
    "default_ledger",
    "Assembler",
    "VariantGenerator",
    "UploadProcessor",
    "default_processor",
    "KeyedLock",
    "upload_locks",
]
