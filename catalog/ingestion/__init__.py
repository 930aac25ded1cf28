"""
Data Ingestion Package
Handles CSV product import, validation and image linking.
"""

from .csv_processor import ProductImportPipeline, default_pipeline
from .image_linker import ImageLinker, attach_image
from .validation import CsvValidator

__all__ = ["ProductImportPipeline", "default_pipeline", "ImageLinker", "attach_image", "CsvValidator"]
