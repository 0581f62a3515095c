"""Route modules."""

from .admin import router as admin_router
from .internal import router as internal_router
from .uploads import router as uploads_router

__all__ = ["admin_router", "internal_router", "uploads_router"]
