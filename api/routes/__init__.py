# Routes module
from .articles import router as articles_router
from .admin import router as admin_router

__all__ = ["articles_router", "admin_router"]
