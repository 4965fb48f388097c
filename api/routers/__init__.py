"""API Routers for Ad Sync."""

from .sync import router as sync_router
from .system import router as system_router

__all__ = [
    "system_router",
    "sync_router",
]
