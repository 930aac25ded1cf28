"""
Path-addressable blob storage for chunks, assembled files and image variants.
Paths are derived from upload id (and width for variants), never randomized.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Union

logger = logging.getLogger(__name__)


class StoragePaths:
    """
    Centralized storage path definitions.

    Structure:
        uploads/chunks/{upload_id}/{chunk_index}
        uploads/assembled/{upload_id}
        images/{upload_id}_{width}.jpg
    """

    @staticmethod
    def chunk(upload_id: int, chunk_index: int) -> str:
        """Path to one stored chunk."""
        return f"uploads/chunks/{upload_id}/{chunk_index}"

    @staticmethod
    def chunk_dir(upload_id: int) -> str:
        return f"uploads/chunks/{upload_id}"

    @staticmethod
    def assembled(upload_id: int) -> str:
        """Path to the reassembled file while it is being processed."""
        return f"uploads/assembled/{upload_id}"

    @staticmethod
    def variant(upload_id: int, width: int, extension: str = "jpg") -> str:
        """Path to a resized variant."""
        return f"images/{upload_id}_{width}.{extension}"


class LocalBlobStore:
    """Blob store backed by a local directory."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root).resolve()
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, key: str) -> Path:
        """Resolve a storage key to a filesystem path inside the root."""
        path = (self.root / key).resolve()
        if path != self.root and self.root not in path.parents:
            raise ValueError(f"Storage key escapes root: {key}")
        return path

    def exists(self, key: str) -> bool:
        return self.path_for(key).is_file()

    def get(self, key: str) -> bytes:
        return self.path_for(key).read_bytes()

    def size(self, key: str) -> int:
        return self.path_for(key).stat().st_size

    def put(self, key: str, data: bytes) -> str:
        """Write data, replacing any existing blob atomically."""
        path = self.path_for(key)
        tmp = self._write_temp(path, data)
        os.replace(tmp, path)
        return key

    def put_if_absent(self, key: str, data: bytes) -> bool:
        """
        Write data only if nothing is stored under key yet.

        The first writer wins even under concurrent calls; later writers
        leave the existing blob untouched.

        Returns:
            True if this call stored the data, False if a blob already existed
        """
        path = self.path_for(key)
        if path.exists():
            return False

        tmp = self._write_temp(path, data)
        try:
            os.link(tmp, path)
            return True
        except FileExistsError:
            return False
        finally:
            os.unlink(tmp)

    def delete(self, key: str) -> bool:
        path = self.path_for(key)
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False

    def _write_temp(self, path: Path, data: bytes) -> str:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=".tmp-")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
        except Exception:
            os.unlink(tmp)
            raise
        return tmp
