"""Metrics Sync Service.

Runs a provider client's metric fetch for one ad account and streams the
normalized rows, page by page, into a writer. Provider failures are not
raised; they are reported on the SyncResult with their classification so
callers can decide whether to retry later or ask the user to reconnect.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Optional, Protocol

import httpx

from collectors.base import BaseAdPlatformClient, gather_or_cancel
from collectors.errors import ClassifiedError
from collectors.models import NormalizedMetric
from collectors.oauth import OAuthRefreshError

logger = logging.getLogger(__name__)


class MetricsWriter(Protocol):
    """Destination for normalized metric rows."""

    def write(self, metrics: list[NormalizedMetric]) -> None:
        ...


@dataclass
class InMemoryMetricsWriter:
    """Collects written rows in a list."""

    metrics: list[NormalizedMetric] = field(default_factory=list)
    batches: int = 0

    def write(self, metrics: list[NormalizedMetric]) -> None:
        self.metrics.extend(metrics)
        self.batches += 1


@dataclass
class SyncResult:
    """Outcome of one account sync."""

    provider_id: str
    account_id: str
    success: bool
    rows_written: int = 0
    pages_written: int = 0
    duration_ms: int = 0
    error: Optional[str] = None
    error_category: Optional[str] = None  # auth | rate_limit | transient | fatal | network
    reconnect_required: bool = False
    http_status: Optional[int] = None
    request_id: Optional[str] = None


@dataclass
class SyncJob:
    """One account to sync with a given client."""

    client: BaseAdPlatformClient
    account_id: str
    timeframe_days: int = 30
    writer: Optional[MetricsWriter] = None


def failure_category(error: BaseException) -> str:
    """Map an exception from a provider call to a failure category."""
    if isinstance(error, ClassifiedError):
        return error.category
    if isinstance(error, OAuthRefreshError):
        return "auth"
    return "network"


class MetricsSyncService:
    """Service for syncing provider metrics into a writer.

    Example:
        >>> service = MetricsSyncService()
        >>> writer = InMemoryMetricsWriter()
        >>> result = await service.sync(client, "4445556666", 30, writer)
        >>> if result.reconnect_required:
        ...     notify_user_to_reconnect()
    """

    async def sync(
        self,
        client: BaseAdPlatformClient,
        account_id: str,
        timeframe_days: int,
        writer: MetricsWriter,
    ) -> SyncResult:
        """Fetch metrics for one account and write them page by page.

        Rows from pages that were fully fetched before a failure stay
        written; a page that fails is never partially written.

        Raises:
            ValueError: If the client rejects its inputs (e.g. empty account id).
        """
        provider_id = client.PROVIDER_ID
        result = SyncResult(provider_id=provider_id, account_id=account_id, success=False)
        started = time.monotonic()

        def sink(metrics: list[NormalizedMetric]) -> None:
            writer.write(metrics)
            result.rows_written += len(metrics)
            result.pages_written += 1

        try:
            await client.fetch_metrics(account_id, timeframe_days, sink=sink)
            result.success = True
        except (ClassifiedError, OAuthRefreshError, httpx.HTTPError) as ex:
            result.error = str(ex) or type(ex).__name__
            result.error_category = failure_category(ex)
            result.reconnect_required = result.error_category == "auth"
            if isinstance(ex, ClassifiedError):
                result.http_status = ex.http_status
                result.request_id = ex.request_id
            logger.error(
                f"{provider_id} sync failed for {account_id} "
                f"({result.error_category}): {result.error}"
            )
        finally:
            result.duration_ms = int((time.monotonic() - started) * 1000)

        if result.success:
            logger.info(
                f"{provider_id} sync for {account_id}: {result.rows_written} rows "
                f"in {result.pages_written} pages ({result.duration_ms}ms)"
            )
        return result

    async def sync_many(
        self, jobs: list[SyncJob], default_writer: Optional[MetricsWriter] = None
    ) -> list[SyncResult]:
        """Run several syncs concurrently.

        Each job is its own call chain, so one account's token refresh or
        retry budget never affects another's.

        Returns:
            Results in job order.
        """
        writers = [job.writer or default_writer or InMemoryMetricsWriter() for job in jobs]
        return await gather_or_cancel(
            [
                self.sync(job.client, job.account_id, job.timeframe_days, writer)
                for job, writer in zip(jobs, writers)
            ]
        )
