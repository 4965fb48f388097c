"""Google Ads client built on the shared request engine.

This module provides the GoogleAdsClient class for fetching campaign
metrics and discovering ad accounts (including manager account children)
through the Google Ads REST API.

API Reference:
    https://developers.google.com/google-ads/api/rest/reference/rest
"""

import logging
import os
import re
from datetime import date, timedelta
from typing import Any, Awaitable, Callable, Mapping, Optional, TypeVar

import httpx

from collectors.adapter import ApiRequest, ProviderAdapter
from collectors.backoff import RetryConfig
from collectors.base import (
    HEALTH_CHECK_RETRY_CONFIG,
    BaseAdPlatformClient,
    MetricSink,
    gather_or_cancel,
)
from collectors.errors import AuthError, ClassifiedError, ErrorDetails
from collectors.google_ads.parsers import (
    PROVIDER_ID,
    extract_google_error,
    extract_search_page,
    parse_customer_client,
    parse_customer_summary,
    parse_metric_row,
)
from collectors.google_ads.schemas import (
    DEVELOPER_TOKEN_ENV,
    DEVELOPER_TOKEN_ERROR_CODES,
    GOOGLE_ADS_CODE_SETS,
    GOOGLE_API_BASE,
)
from collectors.models import AdAccount, HealthStatus, NormalizedMetric, merge_account
from collectors.pagination import PageCursor
from collectors.token_gate import CallAttemptState

logger = logging.getLogger(__name__)

T = TypeVar("T")

ACCOUNT_LOOKUP_CONCURRENCY = 3
ACCOUNT_LOOKUP_BATCH_PAUSE = 0.25
MANAGER_CLIENT_MAX_PAGES = 5

CUSTOMER_SUMMARY_QUERY = (
    "SELECT customer.id, customer.descriptive_name, customer.currency_code, "
    "customer.manager FROM customer LIMIT 1"
)
CUSTOMER_CLIENT_QUERY = (
    "SELECT customer_client.client_customer, customer_client.descriptive_name, "
    "customer_client.currency_code, customer_client.manager, customer_client.level "
    "FROM customer_client WHERE customer_client.hidden = FALSE"
)
HEALTH_CHECK_QUERY = "SELECT customer.id FROM customer LIMIT 1"

# Date literals GAQL accepts directly.
_LAST_N_DAYS_LITERALS = (7, 14, 30)


def build_metrics_query(timeframe_days: int, today: Optional[date] = None) -> str:
    """Build the campaign-level GAQL query for the last N days.

    GAQL only supports a fixed set of LAST_N_DAYS literals, so other windows
    use an explicit BETWEEN range.

    Example:
        >>> build_metrics_query(7).endswith("DURING LAST_7_DAYS")
        True
    """
    days = timeframe_days if timeframe_days > 0 else 7
    select = (
        "SELECT segments.date, campaign.id, campaign.name, metrics.impressions, "
        "metrics.clicks, metrics.cost_micros, metrics.conversions, "
        "metrics.conversions_value FROM campaign"
    )
    if days in _LAST_N_DAYS_LITERALS:
        return f"{select} WHERE segments.date DURING LAST_{days}_DAYS"

    end = today or date.today()
    start = end - timedelta(days=days - 1)
    return f"{select} WHERE segments.date BETWEEN '{start.isoformat()}' AND '{end.isoformat()}'"


def normalize_customer_id(customer_id: Optional[str]) -> str:
    """Strip dashes and whitespace from a customer id ("123-456-7890")."""
    return re.sub(r"[\s-]", "", customer_id or "")


class GoogleAdsAdapter(ProviderAdapter):
    """Google Ads headers and error extraction."""

    provider_id = PROVIDER_ID
    code_sets = GOOGLE_ADS_CODE_SETS

    def __init__(self, developer_token: str, login_customer_id: Optional[str] = None) -> None:
        self.developer_token = developer_token
        self.login_customer_id = login_customer_id

    def build_headers(self, access_token: str) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {access_token}",
            "developer-token": self.developer_token,
            "Content-Type": "application/json",
        }
        if self.login_customer_id:
            headers["login-customer-id"] = self.login_customer_id
        return headers

    def extract_error(self, payload: Any, headers: Mapping[str, str]) -> ErrorDetails:
        return extract_google_error(payload, headers)


class GoogleAdsClient(BaseAdPlatformClient):
    """Client for Google Ads reporting and account discovery.

    Example:
        >>> client = GoogleAdsClient(
        ...     access_token="ya29...",
        ...     developer_token="dev-token",
        ...     login_customer_id="1112223333",
        ... )
        >>> metrics = await client.fetch_metrics("4445556666", timeframe_days=30)
        >>> accounts = await client.fetch_ad_accounts()
    """

    PROVIDER_ID = PROVIDER_ID
    BASE_URL = GOOGLE_API_BASE
    DEFAULT_MAX_PAGES = 8
    DEFAULT_PAGE_SIZE = 1000

    def __init__(
        self,
        access_token: str,
        developer_token: Optional[str] = None,
        login_customer_id: Optional[str] = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        **kwargs: Any,
    ) -> None:
        """Initialize the Google Ads client.

        Args:
            access_token: OAuth access token.
            developer_token: Google Ads developer token; falls back to the
                GOOGLE_ADS_DEVELOPER_TOKEN environment variable.
            login_customer_id: Manager account id to authenticate through.
            page_size: Rows per search page.
            **kwargs: Forwarded to BaseAdPlatformClient.

        Raises:
            ValueError: If no access token or developer token is available.
        """
        super().__init__(access_token, **kwargs)
        resolved = developer_token or os.environ.get(DEVELOPER_TOKEN_ENV)
        if not resolved:
            raise ValueError(
                "Google Ads developer token is required via integration data "
                f"or {DEVELOPER_TOKEN_ENV} env"
            )
        self.developer_token = resolved
        self.login_customer_id = normalize_customer_id(login_customer_id) or None
        self.page_size = page_size

    def _adapter(self, login_customer_id: Optional[str] = None) -> GoogleAdsAdapter:
        """Build the adapter for one request.

        ``login_customer_id`` None means the client default; an empty string
        sends no login-customer-id header at all.
        """
        if login_customer_id is None:
            login_customer_id = self.login_customer_id
        return GoogleAdsAdapter(self.developer_token, login_customer_id or None)

    def _search_request(
        self, customer_id: str, query: str, page_size: int
    ) -> Callable[[Optional[PageCursor]], ApiRequest]:
        url = f"{self.BASE_URL}/customers/{customer_id}/googleAds:search"

        def build(page_token: Optional[PageCursor]) -> ApiRequest:
            body: dict[str, Any] = {"query": query, "pageSize": page_size}
            if page_token:
                body["pageToken"] = page_token
            return ApiRequest("POST", url, json=body)

        return build

    async def search(
        self,
        customer_id: str,
        query: str,
        state: Optional[CallAttemptState] = None,
        *,
        login_customer_id: Optional[str] = None,
        page_size: Optional[int] = None,
        max_pages: Optional[int] = None,
        on_rows: Optional[Callable[[list[dict]], None]] = None,
        retry_config: Optional[RetryConfig] = None,
        allow_refresh: bool = True,
    ) -> list[dict]:
        """Run a GAQL query with pagination.

        Args:
            customer_id: Customer to query.
            query: GAQL query string.
            state: Chain state; a new chain is started if None.
            login_customer_id: Override for the login-customer-id header
                ("" sends none).
            page_size: Rows per page.
            max_pages: Page cap (default: client max_pages).
            on_rows: Called with each page's raw rows.
            retry_config: Override for the client's retry tuning.
            allow_refresh: Whether an auth error may trigger a token refresh.

        Returns:
            All raw result rows, in received order.

        Raises:
            ClassifiedError: If the API request fails after retries.
        """
        customer_id = normalize_customer_id(customer_id)
        state = state or self.new_call_state()
        paginator = self._paginator(
            self._adapter(login_customer_id), max_pages, retry_config, allow_refresh
        )

        rows: list[dict] = []

        def sink(page_rows: list[dict]) -> None:
            rows.extend(page_rows)
            if on_rows is not None:
                on_rows(page_rows)

        await paginator.collect(
            self._search_request(customer_id, query, page_size or self.page_size),
            extract_search_page,
            state,
            sink,
            operation=f"search:{customer_id}",
            on_rate_limit=self._on_rate_limit,
        )
        return rows

    async def fetch_metrics(
        self,
        account_id: str,
        timeframe_days: int,
        sink: Optional[MetricSink] = None,
    ) -> list[NormalizedMetric]:
        """Fetch campaign-level daily metrics for a customer.

        Args:
            account_id: Google Ads customer id.
            timeframe_days: Number of days to report.
            sink: Optional callback receiving each page's normalized rows.

        Returns:
            Normalized metrics; rows without a date are dropped.

        Raises:
            ValueError: If account_id is empty.
            ClassifiedError: If the API request fails after retries.
        """
        customer_id = normalize_customer_id(account_id)
        if not customer_id:
            raise ValueError("Google Ads customer id is required")

        metrics: list[NormalizedMetric] = []

        def on_rows(page_rows: list[dict]) -> None:
            parsed = (parse_metric_row(r, customer_id) for r in page_rows)
            page_metrics = [m for m in parsed if m is not None]
            metrics.extend(page_metrics)
            if sink is not None:
                sink(page_metrics)

        await self.search(customer_id, build_metrics_query(timeframe_days), on_rows=on_rows)
        logger.info(f"Fetched {len(metrics)} Google Ads metric rows for {customer_id}")
        return metrics

    async def list_accessible_customers(
        self,
        state: Optional[CallAttemptState] = None,
        retry_config: Optional[RetryConfig] = None,
        allow_refresh: bool = True,
    ) -> list[str]:
        """Return ids of the customers directly accessible to the token."""
        state = state or self.new_call_state()
        payload = await self._execute(
            ApiRequest("GET", f"{self.BASE_URL}/customers:listAccessibleCustomers"),
            state,
            operation="listAccessibleCustomers",
            adapter=self._adapter(""),
            retry_config=retry_config,
            allow_refresh=allow_refresh,
        )
        names = payload.get("resourceNames") if isinstance(payload, dict) else None
        ids = [str(name).replace("customers/", "") for name in names or []]
        return [i for i in ids if i]

    async def _fetch_customer_summary(
        self, customer_id: str, access_token: str
    ) -> Optional[AdAccount]:
        """Load one customer's summary.

        The first attempt authenticates as the customer itself; if that
        fails the lookup is repeated without a login-customer-id header.
        """
        for login_id in (customer_id, ""):
            try:
                rows = await self.search(
                    customer_id,
                    CUSTOMER_SUMMARY_QUERY,
                    self.new_call_state(access_token),
                    login_customer_id=login_id,
                    page_size=1,
                    max_pages=1,
                )
                return parse_customer_summary(rows, customer_id)
            except AuthError:
                if not login_id:
                    raise
            except (ClassifiedError, httpx.HTTPError) as ex:
                if not login_id:
                    logger.error(f"Failed to load customer metadata for {customer_id}: {ex}")
        return None

    async def _fetch_manager_clients(
        self, manager_id: str, access_token: str
    ) -> list[AdAccount]:
        try:
            rows = await self.search(
                manager_id,
                CUSTOMER_CLIENT_QUERY,
                self.new_call_state(access_token),
                login_customer_id=manager_id,
                max_pages=MANAGER_CLIENT_MAX_PAGES,
            )
        except AuthError:
            raise
        except (ClassifiedError, httpx.HTTPError) as ex:
            logger.error(f"Failed to load manager clients for {manager_id}: {ex}")
            return []

        accounts = [a for a in (parse_customer_client(r, manager_id) for r in rows) if a]
        # customer_client includes the manager itself at level 0.
        return [a for a in accounts if a.id != manager_id]

    async def _gather_bounded(self, factories: list[Callable[[], Awaitable[T]]]) -> list[T]:
        """Run coroutine factories at most ACCOUNT_LOOKUP_CONCURRENCY at a time.

        Batches are separated by a short pause so bulk discovery does not
        trip the provider's own rate limiter through sheer request volume.
        """
        results: list[T] = []
        for start in range(0, len(factories), ACCOUNT_LOOKUP_CONCURRENCY):
            if start:
                await self._sleep(ACCOUNT_LOOKUP_BATCH_PAUSE)
            batch = factories[start : start + ACCOUNT_LOOKUP_CONCURRENCY]
            results.extend(await gather_or_cancel([factory() for factory in batch]))
        return results

    async def fetch_ad_accounts(self) -> list[AdAccount]:
        """Discover every ad account reachable with the current token.

        Lists accessible customers, loads each summary, then expands manager
        accounts into their child accounts. Accounts are merged by id, first
        writer wins, so directly listed accounts keep their own fields.

        Returns:
            Accounts in discovery order.

        Raises:
            ClassifiedError: If listing accessible customers fails, or any
                lookup fails with an auth error.
        """
        root_state = self.new_call_state()
        customer_ids = await self.list_accessible_customers(root_state)
        if not customer_ids:
            return []

        # Every lookup is its own chain, seeded with the (possibly refreshed)
        # root token.
        token = root_state.active_access_token

        summaries = await self._gather_bounded(
            [lambda cid=cid: self._fetch_customer_summary(cid, token) for cid in customer_ids]
        )

        accounts: dict[str, AdAccount] = {}
        for summary in summaries:
            if summary is not None:
                merge_account(accounts, summary)

        managers = [s.id for s in summaries if s is not None and s.manager]
        children = await self._gather_bounded(
            [lambda mid=mid: self._fetch_manager_clients(mid, token) for mid in managers]
        )
        for child_accounts in children:
            for child in child_accounts:
                merge_account(accounts, child)

        logger.info(
            f"Discovered {len(accounts)} Google Ads accounts "
            f"({len(managers)} manager accounts expanded)"
        )
        return list(accounts.values())

    async def check_health(self, account_id: Optional[str] = None) -> HealthStatus:
        """Check the access token, developer token and optional customer access.

        Never raises for provider failures; the outcome is reported in the
        returned HealthStatus.
        """
        try:
            await self.list_accessible_customers(
                retry_config=HEALTH_CHECK_RETRY_CONFIG, allow_refresh=False
            )
        except ClassifiedError as ex:
            developer_token_bad = ex.provider_error_code in DEVELOPER_TOKEN_ERROR_CODES or (
                ex.http_status == 401 and "developer" in str(ex).lower()
            )
            return HealthStatus(
                healthy=False,
                token_valid=developer_token_bad or not ex.is_auth_error,
                account_accessible=False,
                developer_token_valid=not developer_token_bad,
                error=str(ex),
            )
        except httpx.HTTPError as ex:
            return self._unhealthy(ex, token_valid=False)

        if account_id:
            try:
                await self.search(
                    account_id,
                    HEALTH_CHECK_QUERY,
                    page_size=1,
                    max_pages=1,
                    retry_config=HEALTH_CHECK_RETRY_CONFIG,
                    allow_refresh=False,
                )
            except (ClassifiedError, httpx.HTTPError) as ex:
                return HealthStatus(
                    healthy=False,
                    token_valid=True,
                    account_accessible=False,
                    developer_token_valid=True,
                    error=str(ex) or "Account not accessible",
                )

        return HealthStatus(
            healthy=True, token_valid=True, account_accessible=True, developer_token_valid=True
        )
