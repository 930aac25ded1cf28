"""
Assembler
Rebuilds an uploaded file from its chunks and checks it against the declared checksum.
"""

import hashlib
import logging
from typing import List

from ..db.models import Upload
from ..models.errors import UploadIntegrityError
from ..storage.blob_store import LocalBlobStore, StoragePaths

logger = logging.getLogger(__name__)


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


class Assembler:
    """Concatenates chunks in index order and verifies the result."""

    def __init__(self, store: LocalBlobStore):
        self.store = store

    def missing_chunks(self, upload: Upload) -> List[int]:
        """Indices in 0..total_chunks-1 with no stored chunk."""
        return [
            index
            for index in range(upload.total_chunks)
            if not self.store.exists(StoragePaths.chunk(upload.id, index))
        ]

    def assemble(self, upload: Upload) -> bytes:
        """
        Assemble and verify the file for an upload.

        The assembled bytes are also written to the upload's assembled path;
        callers discard it with discard() when done.

        Raises:
            UploadIntegrityError: if a chunk is missing or the checksum does not match
        """
        missing = self.missing_chunks(upload)
        if missing:
            raise UploadIntegrityError(
                f"Chunks {missing} not found for upload {upload.id}",
                details={"upload_id": upload.id, "missing_chunks": missing},
            )

        buffer = bytearray()
        for index in range(upload.total_chunks):
            buffer += self.store.get(StoragePaths.chunk(upload.id, index))
        data = bytes(buffer)

        actual = sha256_hex(data)
        if actual != upload.checksum.lower():
            raise UploadIntegrityError(
                f"Checksum mismatch for upload {upload.id}",
                details={"upload_id": upload.id, "expected": upload.checksum, "actual": actual},
            )

        self.store.put(StoragePaths.assembled(upload.id), data)
        logger.info(f"Assembled upload {upload.id}: {len(data)} bytes, checksum verified")
        return data

    def discard(self, upload_id: int) -> None:
        """Remove the assembled intermediate file, if any."""
        self.store.delete(StoragePaths.assembled(upload_id))
