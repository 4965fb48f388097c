"""API Schema models for Ad Sync."""

from .sync import SyncErrorDetail, SyncRequest, SyncResponse
from .system import HealthResponse

__all__ = [
    "HealthResponse",
    "SyncRequest",
    "SyncResponse",
    "SyncErrorDetail",
]
