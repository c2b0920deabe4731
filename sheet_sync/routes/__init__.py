"""
Routes package.
"""

from .auth import router as auth_router
from .stores import router as stores_router
from .sheets import router as sheets_router
from .sync import router as sync_router
from .events import router as events_router

__all__ = [
    "auth_router",
    "stores_router",
    "sheets_router",
    "sync_router",
    "events_router",
]
