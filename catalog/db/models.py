"""
SQLAlchemy ORM Models
Database table definitions using SQLAlchemy ORM.
"""

from __future__ import annotations

from typing import List, Optional

from sqlalchemy import (
    Column, String, Integer, TIMESTAMP, ForeignKey, Numeric, Index,
    CheckConstraint, JSON,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


# Upload lifecycle
UPLOAD_UPLOADING = "uploading"
UPLOAD_PROCESSING = "processing"
UPLOAD_COMPLETED = "completed"
UPLOAD_FAILED = "failed"

UPLOAD_STATUSES = (UPLOAD_UPLOADING, UPLOAD_PROCESSING, UPLOAD_COMPLETED, UPLOAD_FAILED)
TERMINAL_STATUSES = (UPLOAD_COMPLETED, UPLOAD_FAILED)


class Upload(Base):
    """
    Upload model.

    One row per distinct file, identified by its content checksum.
    Tracks which chunks have arrived and where the file is in its lifecycle.
    """
    __tablename__ = 'uploads'

    id = Column(Integer, primary_key=True, autoincrement=True)
    original_name = Column(String(255), nullable=False,
                           comment='Filename as given by the client')
    checksum = Column(String(64), nullable=False, unique=True, index=True,
                      comment='SHA-256 hex digest declared by the client')
    total_chunks = Column(Integer, nullable=False,
                          comment='Declared number of chunks, fixed on creation')
    received_chunks = Column(JSON, nullable=False, default=list,
                             comment='Sorted list of received chunk indices')
    status = Column(String(20), nullable=False, default=UPLOAD_UPLOADING, index=True,
                    comment='Status: uploading, processing, completed, failed')

    # Timestamps
    created_at = Column(TIMESTAMP, nullable=False, server_default=func.now())
    updated_at = Column(TIMESTAMP, nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    images = relationship("ImageVariant", back_populates="upload", cascade="all, delete-orphan",
                          order_by="ImageVariant.width")

    __table_args__ = (
        CheckConstraint(
            "status IN ('uploading', 'processing', 'completed', 'failed')",
            name='ck_uploads_status',
        ),
        CheckConstraint('total_chunks >= 1', name='ck_uploads_total_chunks'),
    )

    def __repr__(self):
        return f"<Upload(id={self.id}, name={self.original_name}, status={self.status})>"

    @property
    def received_indices(self) -> List[int]:
        return list(self.received_chunks or [])

    @property
    def received_count(self) -> int:
        return len(self.received_indices)

    @property
    def progress(self) -> int:
        """Percentage of chunks received, rounded down."""
        return (self.received_count * 100) // self.total_chunks

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def largest_variant(self) -> Optional["ImageVariant"]:
        """Widest variant; the first one found wins a tie."""
        best = None
        for image in self.images:
            if best is None or image.width > best.width:
                best = image
        return best


class ImageVariant(Base):
    """
    Image variant model.

    A resized derivative of an upload, one row per (upload, variant label).
    """
    __tablename__ = 'images'

    id = Column(Integer, primary_key=True, autoincrement=True)
    upload_id = Column(Integer, ForeignKey('uploads.id', ondelete='CASCADE'),
                       nullable=False, index=True)

    path = Column(String(512), nullable=False, comment='Blob store path of the encoded variant')
    width = Column(Integer, nullable=False)
    height = Column(Integer, nullable=False)
    variant = Column(String(20), nullable=False, comment='Variant label: 256, 512, 1024')
    checksum = Column(String(64), nullable=False, comment='SHA-256 of the stored variant bytes')

    created_at = Column(TIMESTAMP, nullable=False, server_default=func.now())
    updated_at = Column(TIMESTAMP, nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    upload = relationship("Upload", back_populates="images")

    # Unique constraint: one row per upload per variant
    __table_args__ = (
        Index('idx_images_upload_variant', 'upload_id', 'variant', unique=True),
    )

    def __repr__(self):
        return f"<ImageVariant(id={self.id}, upload_id={self.upload_id}, variant={self.variant})>"


class Product(Base):
    """
    Product model.

    Keyed by SKU. Holds a non-owning pointer to its primary image variant.
    """
    __tablename__ = 'products'

    id = Column(Integer, primary_key=True, autoincrement=True)
    sku = Column(String(255), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)

    primary_image_id = Column(Integer, ForeignKey('images.id', ondelete='SET NULL'),
                              nullable=True, index=True)

    created_at = Column(TIMESTAMP, nullable=False, server_default=func.now())
    updated_at = Column(TIMESTAMP, nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    primary_image = relationship("ImageVariant", foreign_keys=[primary_image_id])

    __table_args__ = (
        CheckConstraint('price >= 0', name='ck_products_price_non_negative'),
    )

    def __repr__(self):
        return f"<Product(id={self.id}, sku={self.sku})>"
