# app/routers/__init__.py
"""
API routers.
"""

from app.routers.admin_archives import router as admin_archives_router

__all__ = [
    "admin_archives_router",
]
