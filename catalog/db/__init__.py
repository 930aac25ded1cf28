"""
Database ORM Models
SQLAlchemy ORM models for database tables.
"""

from .models import Base, Upload, ImageVariant, Product

__all__ = [
    "Base",
    "Upload",
    "ImageVariant",
    "Product",
]
