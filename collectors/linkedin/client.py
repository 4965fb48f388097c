"""LinkedIn Ads client built on the shared request engine.

This module provides the LinkedInAdsClient class for fetching campaign
analytics and ad accounts from the versioned LinkedIn Marketing REST API.

API Reference:
    https://learn.microsoft.com/en-us/linkedin/marketing/integrations/ads-reporting/ads-reporting
"""

import logging
from datetime import date, timedelta
from functools import partial
from typing import Any, Callable, Mapping, Optional
from urllib.parse import quote

import httpx

from collectors.adapter import ApiRequest, ProviderAdapter
from collectors.base import HEALTH_CHECK_RETRY_CONFIG, BaseAdPlatformClient, MetricSink
from collectors.errors import ClassifiedError, ErrorDetails
from collectors.linkedin.parsers import (
    PROVIDER_ID,
    extract_elements_page,
    extract_linkedin_error,
    parse_ad_account,
    parse_metric_row,
)
from collectors.linkedin.schemas import (
    ACCOUNT_URN_PREFIX,
    ANALYTICS_FIELDS,
    LINKEDIN_API_BASE,
    LINKEDIN_API_VERSION,
    LINKEDIN_CODE_SETS,
    LINKEDIN_PROFILE_URL,
    RESTLI_PROTOCOL_VERSION,
)
from collectors.models import AdAccount, HealthStatus, NormalizedMetric, merge_account
from collectors.pagination import PageCursor

logger = logging.getLogger(__name__)


def _restli_date(day: date) -> str:
    return f"(year:{day.year},month:{day.month},day:{day.day})"


def build_analytics_query(
    account_id: str,
    timeframe_days: int,
    start: int,
    count: int,
    today: Optional[date] = None,
) -> str:
    """Build the Rest.li query string for ``adAnalytics?q=analytics``.

    Rest.li structures (``List(...)``, ``(year:..)``) must reach the server
    unescaped, so the query is assembled by hand and only URNs are encoded.

    Example:
        >>> "dateRange=(start:(year:2024,month:1,day:5)," in build_analytics_query(
        ...     "123", 1, 0, 100, today=date(2024, 1, 5)
        ... )
        True
    """
    end = today or date.today()
    begin = end - timedelta(days=max(0, timeframe_days - 1))
    account_urn = quote(f"{ACCOUNT_URN_PREFIX}{account_id}", safe="")
    return (
        "q=analytics&pivot=CAMPAIGN&timeGranularity=DAILY"
        f"&dateRange=(start:{_restli_date(begin)},end:{_restli_date(end)})"
        f"&accounts=List({account_urn})"
        f"&fields={','.join(ANALYTICS_FIELDS)}"
        f"&start={start}&count={count}"
    )


class LinkedInAdapter(ProviderAdapter):
    """LinkedIn headers and error extraction."""

    provider_id = PROVIDER_ID
    code_sets = LINKEDIN_CODE_SETS

    def __init__(self, api_version: str = LINKEDIN_API_VERSION) -> None:
        self.api_version = api_version

    def build_headers(self, access_token: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {access_token}",
            "X-Restli-Protocol-Version": RESTLI_PROTOCOL_VERSION,
            "LinkedIn-Version": self.api_version,
        }

    def is_success(self, http_status: int, payload: Any) -> bool:
        # Gateways occasionally wrap an error envelope in a 2xx response.
        if isinstance(payload, dict):
            status = payload.get("status")
            if isinstance(status, int) and not isinstance(status, bool) and status >= 400:
                return False
        return 200 <= http_status < 300

    def extract_error(self, payload: Any, headers: Mapping[str, str]) -> ErrorDetails:
        return extract_linkedin_error(payload, headers)


class LinkedInAdsClient(BaseAdPlatformClient):
    """Client for LinkedIn Ads analytics and account discovery.

    Example:
        >>> async with LinkedInAdsClient(access_token="AQV...") as client:
        ...     metrics = await client.fetch_metrics("508123456", timeframe_days=30)
    """

    PROVIDER_ID = PROVIDER_ID
    BASE_URL = LINKEDIN_API_BASE
    DEFAULT_MAX_PAGES = 10
    DEFAULT_PAGE_SIZE = 100

    def __init__(
        self,
        access_token: str,
        api_version: str = LINKEDIN_API_VERSION,
        page_size: int = DEFAULT_PAGE_SIZE,
        **kwargs: Any,
    ) -> None:
        super().__init__(access_token, **kwargs)
        self.api_version = api_version
        self.page_size = page_size

    def _adapter(self) -> LinkedInAdapter:
        return LinkedInAdapter(self.api_version)

    def _analytics_request(
        self, account_id: str, timeframe_days: int
    ) -> Callable[[Optional[PageCursor]], ApiRequest]:
        today = date.today()

        def build(start: Optional[PageCursor]) -> ApiRequest:
            query = build_analytics_query(
                account_id, timeframe_days, int(start or 0), self.page_size, today=today
            )
            return ApiRequest("GET", f"{self.BASE_URL}/adAnalytics?{query}")

        return build

    def _accounts_request(self) -> Callable[[Optional[PageCursor]], ApiRequest]:
        def build(start: Optional[PageCursor]) -> ApiRequest:
            return ApiRequest(
                "GET",
                f"{self.BASE_URL}/adAccounts",
                params={"q": "search", "start": int(start or 0), "count": self.page_size},
            )

        return build

    async def fetch_metrics(
        self,
        account_id: str,
        timeframe_days: int,
        sink: Optional[MetricSink] = None,
    ) -> list[NormalizedMetric]:
        """Fetch campaign-level daily analytics for an ad account.

        Args:
            account_id: Sponsored account id (with or without the URN prefix).
            timeframe_days: Number of days to report, today included.
            sink: Optional callback receiving each page's normalized rows.

        Returns:
            Normalized metrics; rows without ``dateRange.start`` are dropped.

        Raises:
            ValueError: If account_id is empty.
            ClassifiedError: If the API request fails after retries.
        """
        account_id = (account_id or "").replace(ACCOUNT_URN_PREFIX, "")
        if not account_id:
            raise ValueError("Missing LinkedIn ad account ID on integration")

        metrics: list[NormalizedMetric] = []
        async for page in self._paginator().iterate(
            self._analytics_request(account_id, timeframe_days),
            partial(extract_elements_page, page_size=self.page_size),
            self.new_call_state(),
            operation=f"fetchMetrics:{account_id}",
            on_rate_limit=self._on_rate_limit,
        ):
            parsed = (parse_metric_row(r, account_id) for r in page.rows)
            page_metrics = [m for m in parsed if m is not None]
            metrics.extend(page_metrics)
            if sink is not None:
                sink(page_metrics)

        logger.info(f"Fetched {len(metrics)} LinkedIn metric rows for account {account_id}")
        return metrics

    async def fetch_ad_accounts(self) -> list[AdAccount]:
        """List every ad account the token can see.

        Raises:
            ClassifiedError: If the API request fails after retries.
        """
        accounts: dict[str, AdAccount] = {}
        async for page in self._paginator().iterate(
            self._accounts_request(),
            partial(extract_elements_page, page_size=self.page_size),
            self.new_call_state(),
            operation="fetchAdAccounts",
            on_rate_limit=self._on_rate_limit,
        ):
            for element in page.rows:
                account = parse_ad_account(element)
                if account is not None:
                    merge_account(accounts, account)

        logger.info(f"Discovered {len(accounts)} LinkedIn ad accounts")
        return list(accounts.values())

    async def check_health(self, account_id: Optional[str] = None) -> HealthStatus:
        """Check the access token and, optionally, ad account access."""
        try:
            await self._execute(
                ApiRequest("GET", LINKEDIN_PROFILE_URL),
                self.new_call_state(),
                operation="healthCheck",
                retry_config=HEALTH_CHECK_RETRY_CONFIG,
                allow_refresh=False,
            )
        except (ClassifiedError, httpx.HTTPError) as ex:
            return self._unhealthy(ex, token_valid=False)

        if account_id:
            account_id = account_id.replace(ACCOUNT_URN_PREFIX, "")
            try:
                await self._execute(
                    ApiRequest("GET", f"{self.BASE_URL}/adAccounts/{account_id}"),
                    self.new_call_state(),
                    operation=f"healthCheck:{account_id}",
                    retry_config=HEALTH_CHECK_RETRY_CONFIG,
                    allow_refresh=False,
                )
            except (ClassifiedError, httpx.HTTPError) as ex:
                return HealthStatus(
                    healthy=False,
                    token_valid=True,
                    account_accessible=False,
                    error=str(ex) or "Ad account not accessible",
                )

        return HealthStatus(healthy=True, token_valid=True, account_accessible=True)
