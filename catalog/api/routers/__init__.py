"""
API Routers
FastAPI route handlers for different endpoints.
"""

from .health import router as health_router
from .products import router as products_router
from .uploads import router as uploads_router

__all__ = [
    "health_router",
    "products_router",
    "uploads_router",
]
