"""
API routes
"""
from .reports import router as reports_router
from .export import router as export_router
from .cache import router as cache_router

__all__ = [
    "reports_router",
    "export_router",
    "cache_router",
]
