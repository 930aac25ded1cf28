"""
Upload Processor
Assembles a fully received upload, verifies it and renders its variants.
Safe to run any number of times, concurrently or in sequence, for the same upload.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..db.models import Upload, UPLOAD_UPLOADING, UPLOAD_PROCESSING, UPLOAD_COMPLETED, UPLOAD_FAILED
from ..models.errors import NotFoundError, UploadIntegrityError
from ..storage.blob_store import LocalBlobStore
from .assembler import Assembler
from .locks import upload_locks
from .variants import VariantGenerator

logger = logging.getLogger(__name__)


class UploadProcessor:
    """
    Runs the assemble -> verify -> variants job for one upload.

    The upload row is held with SELECT ... FOR UPDATE (and the in-process
    keyed lock) for the whole job. Completed and failed uploads are left
    alone, which makes at-least-once dispatch safe.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        store: LocalBlobStore,
        generator: Optional[VariantGenerator] = None,
    ):
        self.Session = session_factory
        self.store = store
        self.assembler = Assembler(store)
        self.generator = generator or VariantGenerator(store)

    def process(self, upload_id: int) -> Optional[str]:
        """
        Process an upload.

        Args:
            upload_id: Upload primary key

        Returns:
            The upload's status after the call, or None if the upload does not exist
        """
        with upload_locks.hold(("upload", upload_id)):
            session = self.Session()
            try:
                upload = self._lock_upload(session, upload_id)
                if upload is None:
                    logger.info(f"Upload {upload_id} not found, nothing to process")
                    return None

                if upload.is_terminal:
                    logger.info(f"Upload {upload_id} already {upload.status}, skipping")
                    return upload.status

                if upload.status == UPLOAD_UPLOADING:
                    # Chunks still arriving; the last one dispatches processing
                    logger.info(f"Upload {upload_id} still receiving chunks, not processing yet")
                    return upload.status

                upload = self._run(session, upload)
                status = upload.status
                session.commit()
                return status

            except Exception:
                session.rollback()
                raise
            finally:
                session.close()
                self.assembler.discard(upload_id)

    def _run(self, session: Session, upload: Upload) -> Upload:
        upload_id = upload.id
        try:
            data = self.assembler.assemble(upload)
            created = self.generator.generate(session, upload, data)
            upload.status = UPLOAD_COMPLETED
            logger.info(f"Upload {upload_id} completed ({created} new variants)")

        except UploadIntegrityError as e:
            upload.status = UPLOAD_FAILED
            logger.warning(f"Upload {upload_id} failed integrity check: {e.message}")

        except Exception as e:
            logger.error(f"Image variant generation failed for upload {upload_id}: {e}", exc_info=True)
            if isinstance(e, SQLAlchemyError):
                session.rollback()
                upload = self._lock_upload(session, upload_id)
            upload.status = UPLOAD_FAILED

        return upload

    def _lock_upload(self, session: Session, upload_id: int) -> Optional[Upload]:
        return session.execute(
            select(Upload).where(Upload.id == upload_id).with_for_update()
        ).scalar_one_or_none()

    def reprocess(self, upload_id: int) -> Optional[str]:
        """
        Operator retry for an upload.

        A failed upload is moved back to processing before the job runs
        again; variants that already exist are kept. An upload still
        receiving chunks is left alone and its status returned.

        Raises:
            NotFoundError: if the upload does not exist
        """
        with upload_locks.hold(("upload", upload_id)):
            session = self.Session()
            try:
                upload = self._lock_upload(session, upload_id)
                if upload is None:
                    raise NotFoundError("Upload", upload_id)
                if upload.status == UPLOAD_UPLOADING:
                    logger.warning(f"Upload {upload_id} is still receiving chunks, refusing to reprocess")
                    return upload.status
                if upload.status == UPLOAD_FAILED:
                    upload.status = UPLOAD_PROCESSING
                    logger.info(f"Upload {upload_id} reset from failed to processing for retry")
                session.commit()
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()

            return self.process(upload_id)


def default_processor() -> UploadProcessor:
    """Processor wired to the configured database and blob store."""
    from ..config.settings import get_settings
    from ..db.session import get_session_factory
    from ..storage import get_blob_store

    settings = get_settings()
    store = get_blob_store()
    generator = VariantGenerator(
        store,
        widths=settings.variant_widths,
        image_format=settings.variant_format,
        quality=settings.variant_quality,
    )
    return UploadProcessor(get_session_factory(), store, generator=generator)
