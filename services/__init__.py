"""Services package for business logic."""

from services.metrics_sync import (
    InMemoryMetricsWriter,
    MetricsSyncService,
    MetricsWriter,
    SyncJob,
    SyncResult,
    failure_category,
)

__all__ = [
    "MetricsSyncService",
    "MetricsWriter",
    "InMemoryMetricsWriter",
    "SyncJob",
    "SyncResult",
    "failure_category",
]
