"""
Pytest configuration and shared fixtures
"""

import hashlib
import io
import sys
from pathlib import Path

import pytest
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from catalog.db.models import Base
from catalog.storage.blob_store import LocalBlobStore
from catalog.uploads.ledger import UploadLedger
from catalog.uploads.processor import UploadProcessor


def make_png(width: int = 40, height: int = 30, mode: str = "RGB", shade: int = 30) -> bytes:
    """Encode a solid-colour PNG."""
    color = (200, shade, 30, 255) if mode == "RGBA" else (200, shade, 30)
    image = Image.new(mode, (width, height), color)
    out = io.BytesIO()
    image.save(out, format="PNG")
    return out.getvalue()


def sha256(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def split_chunks(data: bytes, parts: int):
    """Split data into `parts` contiguous slices."""
    size = -(-len(data) // parts)
    return [data[i * size:(i + 1) * size] for i in range(parts)]


@pytest.fixture
def engine(tmp_path):
    """SQLite database file per test, shared safely across threads."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'catalog.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def blob_store(tmp_path):
    return LocalBlobStore(tmp_path / "storage")


@pytest.fixture
def dispatched():
    """Upload IDs handed to the processing dispatcher."""
    return []


@pytest.fixture
def ledger(session_factory, blob_store, dispatched):
    return UploadLedger(session_factory, blob_store, dispatcher=dispatched.append)


@pytest.fixture
def processor(session_factory, blob_store):
    return UploadProcessor(session_factory, blob_store)


@pytest.fixture
def upload_image(ledger, processor):
    """
    Upload an image in chunks and run processing.

    Returns the upload ID.
    """
    shades = iter(range(256))

    def _upload(original_name: str, width: int = 40, height: int = 30, chunks: int = 2) -> int:
        # Distinct content per call, so each call is its own upload
        data = make_png(width, height, shade=next(shades))
        checksum = sha256(data)
        receipt = None
        for index, part in enumerate(split_chunks(data, chunks)):
            receipt = ledger.submit_chunk(checksum, index, chunks, original_name, part)
        processor.process(receipt.upload_id)
        return receipt.upload_id

    return _upload


@pytest.fixture
def write_csv(tmp_path):
    """Write CSV text to a file and return its path."""
    counter = {"n": 0}

    def _write(content: str, name: str = None) -> str:
        counter["n"] += 1
        path = tmp_path / (name or f"products_{counter['n']}.csv")
        path.write_text(content, encoding="utf-8")
        return str(path)

    return _write
