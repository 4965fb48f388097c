"""TikTok Ads client built on the shared request engine.

This module provides the TikTokAdsClient class for fetching campaign
metrics and advertiser accounts from the TikTok Business API.

API Reference:
    https://business-api.tiktok.com/portal/docs
"""

import logging
from datetime import date, timedelta
from typing import Any, Callable, Mapping, Optional

import httpx

from collectors.adapter import ApiRequest, ProviderAdapter
from collectors.base import HEALTH_CHECK_RETRY_CONFIG, BaseAdPlatformClient, MetricSink
from collectors.errors import ClassifiedError, ErrorDetails
from collectors.models import AdAccount, HealthStatus, NormalizedMetric
from collectors.pagination import PageCursor
from collectors.tiktok.parsers import (
    PROVIDER_ID,
    extract_report_page,
    extract_tiktok_error,
    is_tiktok_success,
    parse_advertiser,
    parse_metric_row,
)
from collectors.tiktok.schemas import (
    REPORT_DIMENSIONS,
    REPORT_METRICS,
    REPORT_PAGE_SIZE,
    TIKTOK_API_BASE,
    TIKTOK_CODE_SETS,
)

logger = logging.getLogger(__name__)

ADVERTISER_PAGE_SIZE = 50


def build_date_range(timeframe_days: int, today: Optional[date] = None) -> tuple[str, str]:
    """Return (start, end) ISO days covering the last N days, today included."""
    end = today or date.today()
    start = end - timedelta(days=max(0, timeframe_days - 1))
    return start.isoformat(), end.isoformat()


class TikTokAdapter(ProviderAdapter):
    """TikTok headers, success check and error extraction.

    TikTok returns HTTP 200 for most logical failures, so success also
    requires ``code == 0`` in the body.
    """

    provider_id = PROVIDER_ID
    code_sets = TIKTOK_CODE_SETS

    def build_headers(self, access_token: str) -> dict[str, str]:
        return {"Access-Token": access_token, "Content-Type": "application/json"}

    def is_success(self, http_status: int, payload: Any) -> bool:
        return 200 <= http_status < 300 and is_tiktok_success(payload)

    def extract_error(self, payload: Any, headers: Mapping[str, str]) -> ErrorDetails:
        return extract_tiktok_error(payload, headers)


class TikTokAdsClient(BaseAdPlatformClient):
    """Client for TikTok Ads reporting and advertiser discovery.

    Example:
        >>> client = TikTokAdsClient(access_token="act.xxx")
        >>> metrics = await client.fetch_metrics("7001234567890", timeframe_days=14)
    """

    PROVIDER_ID = PROVIDER_ID
    BASE_URL = TIKTOK_API_BASE
    DEFAULT_MAX_PAGES = 20

    def _adapter(self) -> TikTokAdapter:
        return TikTokAdapter()

    def _report_request(
        self, advertiser_id: str, timeframe_days: int
    ) -> Callable[[Optional[PageCursor]], ApiRequest]:
        start_date, end_date = build_date_range(timeframe_days)
        url = f"{self.BASE_URL}/report/integrated/get/"

        def build(cursor: Optional[PageCursor]) -> ApiRequest:
            body: dict[str, Any] = {
                "advertiser_id": advertiser_id,
                "report_type": "BASIC",
                "data_level": "AUCTION_CAMPAIGN",
                "dimensions": REPORT_DIMENSIONS,
                "metrics": REPORT_METRICS,
                "start_date": start_date,
                "end_date": end_date,
                "page_size": REPORT_PAGE_SIZE,
                "time_granularity": "STAT_TIME_DAY",
                "order_field": "spend",
                "order_type": "DESC",
            }
            if isinstance(cursor, int):
                body["page"] = cursor
            elif cursor:
                body["cursor"] = cursor
            return ApiRequest("POST", url, json=body)

        return build

    async def fetch_metrics(
        self,
        account_id: str,
        timeframe_days: int,
        sink: Optional[MetricSink] = None,
    ) -> list[NormalizedMetric]:
        """Fetch campaign-level daily metrics for an advertiser.

        Args:
            account_id: TikTok advertiser id.
            timeframe_days: Number of days to report, today included.
            sink: Optional callback receiving each page's normalized rows.

        Returns:
            Normalized metrics; rows without ``stat_time_day`` are dropped.

        Raises:
            ValueError: If account_id is empty.
            ClassifiedError: If the API request fails after retries.
        """
        if not account_id:
            raise ValueError("TikTok advertiser ID is required")

        metrics: list[NormalizedMetric] = []
        state = self.new_call_state()

        async for page in self._paginator().iterate(
            self._report_request(account_id, timeframe_days),
            extract_report_page,
            state,
            operation=f"fetchMetrics:{account_id}",
            on_rate_limit=self._on_rate_limit,
        ):
            parsed = (parse_metric_row(r, account_id) for r in page.rows)
            page_metrics = [m for m in parsed if m is not None]
            metrics.extend(page_metrics)
            if sink is not None:
                sink(page_metrics)

        logger.info(f"Fetched {len(metrics)} TikTok metric rows for advertiser {account_id}")
        return metrics

    async def _advertiser_info(
        self, advertiser_ids: Optional[list[str]], **execute_kwargs: Any
    ) -> list[AdAccount]:
        body: dict[str, Any] = {"page_size": ADVERTISER_PAGE_SIZE}
        if advertiser_ids:
            body["advertiser_ids"] = advertiser_ids

        payload = await self._execute(
            ApiRequest("POST", f"{self.BASE_URL}/advertiser/info/", json=body),
            self.new_call_state(),
            operation="fetchAdAccounts",
            **execute_kwargs,
        )
        data = payload.get("data") if isinstance(payload, dict) else None
        entries = data.get("list") if isinstance(data, dict) else None
        accounts = [parse_advertiser(e) for e in entries or []]
        return [a for a in accounts if a is not None]

    async def fetch_ad_accounts(
        self, advertiser_ids: Optional[list[str]] = None
    ) -> list[AdAccount]:
        """Load advertiser accounts.

        When the API returns nothing for explicitly requested ids, placeholder
        accounts are returned for those ids so callers can still link them.

        Args:
            advertiser_ids: Advertiser ids authorized for the token.

        Returns:
            AdAccount list.

        Raises:
            ClassifiedError: If the API request fails after retries.
        """
        accounts = await self._advertiser_info(advertiser_ids)

        if not accounts and advertiser_ids:
            return [
                AdAccount(id=i, name=f"TikTok advertiser {i}", provider_id=PROVIDER_ID)
                for i in advertiser_ids
                if isinstance(i, str) and i
            ]
        return accounts

    async def check_health(self, account_id: Optional[str] = None) -> HealthStatus:
        """Check the access token and, optionally, advertiser access."""
        try:
            await self._execute(
                ApiRequest("GET", f"{self.BASE_URL}/user/info/"),
                self.new_call_state(),
                operation="healthCheck",
                retry_config=HEALTH_CHECK_RETRY_CONFIG,
                allow_refresh=False,
            )
        except (ClassifiedError, httpx.HTTPError) as ex:
            return self._unhealthy(ex, token_valid=False)

        if account_id:
            try:
                accounts = await self._advertiser_info(
                    [account_id],
                    retry_config=HEALTH_CHECK_RETRY_CONFIG,
                    allow_refresh=False,
                )
            except (ClassifiedError, httpx.HTTPError) as ex:
                return self._unhealthy(ex, token_valid=True)
            if not any(a.id == account_id for a in accounts):
                return HealthStatus(
                    healthy=False,
                    token_valid=True,
                    account_accessible=False,
                    error="Advertiser not found in accessible accounts",
                )

        return HealthStatus(healthy=True, token_valid=True, account_accessible=True)
