"""
Upload Ledger
Records incoming chunks per upload and hands complete uploads to processing.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from ..db.models import (
    Upload,
    UPLOAD_UPLOADING,
    UPLOAD_PROCESSING,
    UPLOAD_COMPLETED,
    UPLOAD_FAILED,
)
from ..models.errors import ChunkMismatchError, NotFoundError
from ..storage.blob_store import LocalBlobStore, StoragePaths
from .locks import upload_locks

logger = logging.getLogger(__name__)

MAX_CHECKSUM_LENGTH = 64

Dispatcher = Callable[[int], Any]

_COMPLETE_MESSAGES = {
    UPLOAD_PROCESSING: "All chunks received. Processing images...",
    UPLOAD_COMPLETED: "All chunks received. Images already processed.",
    UPLOAD_FAILED: "All chunks received. Processing failed; check the upload status.",
}


@dataclass
class ChunkReceipt:
    """Outcome of one chunk submission."""

    status: str
    upload_id: int
    received_chunks_count: Optional[int] = None
    total_chunks: Optional[int] = None
    progress: Optional[int] = None
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {key: value for key, value in asdict(self).items() if value is not None}


def celery_dispatcher(upload_id: int) -> Any:
    """Queue variant processing on the Celery worker pool."""
    # Import here to avoid circular dependencies
    from ..tasks.uploads import process_upload_variants

    return process_upload_variants.delay(upload_id)


class UploadLedger:
    """
    Tracks chunks per upload.

    Chunks are keyed by (upload id, index) and never overwritten. When the
    last missing chunk arrives the upload moves to processing and exactly one
    processing job is dispatched.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        store: LocalBlobStore,
        dispatcher: Optional[Dispatcher] = None,
    ):
        self.Session = session_factory
        self.store = store
        self.dispatcher = dispatcher or celery_dispatcher

    def submit_chunk(
        self,
        checksum: str,
        chunk_index: int,
        total_chunks: int,
        original_name: str,
        data: bytes,
    ) -> ChunkReceipt:
        """
        Record one chunk.

        Args:
            checksum: Declared SHA-256 of the whole file, identifies the upload
            chunk_index: 0-based index of this chunk
            total_chunks: Declared number of chunks
            original_name: Client filename
            data: Chunk bytes

        Returns:
            ChunkReceipt with status "uploading" (plus progress) or "completed"
            (all bytes received, processing dispatched)

        Raises:
            ChunkMismatchError: if the chunk disagrees with the recorded upload
        """
        self._check_arguments(checksum, chunk_index, total_chunks, original_name)

        with upload_locks.hold(("checksum", checksum)):
            session = self.Session()
            try:
                upload = self._get_or_create(session, checksum, total_chunks, original_name)

                if upload.total_chunks != total_chunks:
                    raise ChunkMismatchError(
                        f"Upload {upload.id} expects {upload.total_chunks} chunks, "
                        f"chunk declared {total_chunks}",
                        details={
                            "upload_id": upload.id,
                            "expected_total_chunks": upload.total_chunks,
                            "declared_total_chunks": total_chunks,
                        },
                    )

                received = upload.received_indices
                if chunk_index in received:
                    logger.info(f"Chunk {chunk_index} of upload {upload.id} already received, ignoring")
                else:
                    stored = self.store.put_if_absent(StoragePaths.chunk(upload.id, chunk_index), data)
                    if not stored:
                        logger.warning(
                            f"Chunk {chunk_index} of upload {upload.id} was already on disk, keeping it"
                        )
                    upload.received_chunks = sorted(set(received) | {chunk_index})
                    logger.info(
                        f"Stored chunk {chunk_index + 1}/{upload.total_chunks} "
                        f"for upload {upload.id} ({len(data)} bytes)"
                    )

                upload_id = upload.id
                received_count = upload.received_count
                progress = upload.progress
                session.commit()

                if received_count < total_chunks:
                    return ChunkReceipt(
                        status="uploading",
                        upload_id=upload_id,
                        received_chunks_count=received_count,
                        total_chunks=total_chunks,
                        progress=progress,
                    )

                flipped = self._start_processing(session, upload_id)
                current_status = session.execute(
                    select(Upload.status).where(Upload.id == upload_id)
                ).scalar_one()
                session.commit()

            except Exception:
                session.rollback()
                raise
            finally:
                session.close()

        if flipped:
            logger.info(f"All {total_chunks} chunks received for upload {upload_id}, dispatching processing")
            try:
                self.dispatcher(upload_id)
            except Exception as e:
                logger.error(
                    f"Failed to dispatch processing for upload {upload_id}: {e}. "
                    f"Run reprocess_upload to recover.",
                    exc_info=True,
                )
                raise

        message = _COMPLETE_MESSAGES.get(current_status)
        if message is None:
            # The conditional update leaves no upload with every chunk in "uploading"
            logger.error(
                f"Upload {upload_id} has all {total_chunks} chunks but status is {current_status!r}; "
                f"processing was not dispatched"
            )
            raise RuntimeError(f"Upload {upload_id} did not move to processing (status {current_status!r})")

        return ChunkReceipt(status="completed", upload_id=upload_id, message=message)

    def _check_arguments(self, checksum: str, chunk_index: int, total_chunks: int, original_name: str):
        if not checksum or len(checksum) > MAX_CHECKSUM_LENGTH:
            raise ValueError(f"checksum must be 1-{MAX_CHECKSUM_LENGTH} characters")
        if total_chunks < 1:
            raise ValueError("total_chunks must be at least 1")
        if chunk_index < 0:
            raise ValueError("chunk_index must be non-negative")
        if chunk_index >= total_chunks:
            raise ChunkMismatchError(
                f"Chunk index {chunk_index} out of range for {total_chunks} chunks",
                details={"chunk_index": chunk_index, "total_chunks": total_chunks},
            )
        if not original_name or not original_name.strip():
            raise ValueError("original_name is required")

    def _get_or_create(
        self, session: Session, checksum: str, total_chunks: int, original_name: str
    ) -> Upload:
        """Locked lookup by checksum; creates the upload on its first chunk."""
        query = select(Upload).where(Upload.checksum == checksum).with_for_update()
        upload = session.execute(query).scalar_one_or_none()
        if upload is not None:
            return upload

        upload = Upload(
            checksum=checksum,
            original_name=original_name,
            total_chunks=total_chunks,
            received_chunks=[],
            status=UPLOAD_UPLOADING,
        )
        session.add(upload)
        try:
            session.flush()
            logger.info(f"Created upload {upload.id} for {original_name} ({total_chunks} chunks)")
            return upload
        except IntegrityError:
            # Another process created it first
            session.rollback()
            return session.execute(query).scalar_one()

    def _start_processing(self, session: Session, upload_id: int) -> bool:
        """Move uploading -> processing. True only for the caller that made the move."""
        result = session.execute(
            update(Upload)
            .where(Upload.id == upload_id, Upload.status == UPLOAD_UPLOADING)
            .values(status=UPLOAD_PROCESSING)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def status(self, upload_id: int) -> Dict[str, Any]:
        """
        Describe an upload for status inspection.

        Raises:
            NotFoundError: if the upload does not exist
        """
        session = self.Session()
        try:
            upload = session.get(Upload, upload_id)
            if upload is None:
                raise NotFoundError("Upload", upload_id)
            return {
                "upload_id": upload.id,
                "original_name": upload.original_name,
                "checksum": upload.checksum,
                "status": upload.status,
                "received_chunks_count": upload.received_count,
                "total_chunks": upload.total_chunks,
                "progress": upload.progress,
                "variants": [
                    {
                        "id": image.id,
                        "variant": image.variant,
                        "path": image.path,
                        "width": image.width,
                        "height": image.height,
                    }
                    for image in upload.images
                ],
            }
        finally:
            session.close()


def default_ledger(dispatcher: Optional[Dispatcher] = None) -> UploadLedger:
    """Ledger wired to the configured database and blob store."""
    from ..db.session import get_session_factory
    from ..storage import get_blob_store

    return UploadLedger(get_session_factory(), get_blob_store(), dispatcher=dispatcher)
