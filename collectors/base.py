"""Base client for advertising platform APIs.

This module provides the base class with HTTP session handling, token
refresh wiring and retry configuration that is shared across the Google Ads,
TikTok and LinkedIn clients.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Optional, TypeVar

import httpx

from collectors.adapter import ApiRequest, ProviderAdapter
from collectors.backoff import DEFAULT_RETRY_CONFIG, RetryConfig
from collectors.errors import ClassifiedError
from collectors.executor import RateLimitObserver, RequestExecutor, Sleeper
from collectors.models import HealthStatus, NormalizedMetric
from collectors.pagination import Paginator
from collectors.token_gate import (
    CallAttemptState,
    RefreshCallback,
    TokenRefreshGate,
    TokenRefreshObserver,
)

logger = logging.getLogger(__name__)

MetricSink = Callable[[list[NormalizedMetric]], None]

T = TypeVar("T")

# Health checks fail fast: one attempt, no refresh.
HEALTH_CHECK_RETRY_CONFIG = RetryConfig(max_retries=1, max_chain_retries=0)


async def gather_or_cancel(awaitables: list[Awaitable[T]]) -> list[T]:
    """Run awaitables concurrently and return their results in order.

    If one of them raises, the others are cancelled and awaited before the
    error propagates, so no request keeps running after the caller has
    given up on the chain.
    """
    tasks = [asyncio.ensure_future(aw) for aw in awaitables]
    try:
        return list(await asyncio.gather(*tasks))
    finally:
        pending = [task for task in tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)


class BaseAdPlatformClient(ABC):
    """Base async client for an advertising platform API.

    Each public operation is one call chain: it creates its own
    CallAttemptState, so concurrent operations on the same client never
    share a refresh flag or a refreshed token.

    Attributes:
        access_token: Access token used to start each call chain.
        retry_config: Retry tuning for every request.
        max_pages: Page cap for paginated reports.

    Example:
        >>> class MyClient(BaseAdPlatformClient):
        ...     PROVIDER_ID = "example"
        ...     def _adapter(self):
        ...         return ExampleAdapter()
        ...     async def fetch_data(self):
        ...         state = self.new_call_state()
        ...         return await self._execute(
        ...             ApiRequest("GET", f"{self.BASE_URL}/data"),
        ...             state,
        ...             operation="fetchData",
        ...         )
    """

    PROVIDER_ID = ""
    BASE_URL = ""
    DEFAULT_MAX_PAGES = 5
    DEFAULT_TIMEOUT = 30.0

    def __init__(
        self,
        access_token: str,
        *,
        refresh_access_token: Optional[RefreshCallback] = None,
        on_token_refresh: Optional[TokenRefreshObserver] = None,
        on_rate_limit: Optional[RateLimitObserver] = None,
        retry_config: RetryConfig = DEFAULT_RETRY_CONFIG,
        max_pages: Optional[int] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_TIMEOUT,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        """Initialize the client.

        Args:
            access_token: OAuth access token for the provider.
            refresh_access_token: Async callback returning a fresh token;
                used at most once per call chain.
            on_token_refresh: Observer called with the new token.
            on_rate_limit: Observer called with the wait (ms) on rate limits.
            retry_config: Retry tuning.
            max_pages: Page cap; defaults to the provider's DEFAULT_MAX_PAGES.
            http_client: Shared httpx client; one is created lazily if None.
            timeout: Request timeout in seconds for a lazily created client.
            sleep: Async sleep used between retries (injectable for tests).

        Raises:
            ValueError: If access_token is empty.
        """
        if not access_token:
            raise ValueError(f"{self.PROVIDER_ID or 'Provider'} access token is required")

        self.access_token = access_token
        self.retry_config = retry_config
        self.max_pages = max_pages or self.DEFAULT_MAX_PAGES
        self._refresh_access_token = refresh_access_token
        self._on_token_refresh = on_token_refresh
        self._on_rate_limit = on_rate_limit
        self._http_client = http_client
        self._owns_http_client = http_client is None
        self._timeout = timeout
        self._sleep = sleep

    async def __aenter__(self) -> "BaseAdPlatformClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_http_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    def _get_http_client(self) -> httpx.AsyncClient:
        """Lazy initialization of the HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
        return self._http_client

    @abstractmethod
    def _adapter(self) -> ProviderAdapter:
        """Return the provider adapter used for a request."""

    def new_call_state(self, access_token: Optional[str] = None) -> CallAttemptState:
        """Start a new call chain."""
        return CallAttemptState(active_access_token=access_token or self.access_token)

    def _executor(
        self,
        adapter: Optional[ProviderAdapter] = None,
        retry_config: Optional[RetryConfig] = None,
        allow_refresh: bool = True,
    ) -> RequestExecutor:
        gate = TokenRefreshGate(
            self._refresh_access_token if allow_refresh else None,
            self._on_token_refresh,
        )
        return RequestExecutor(
            adapter or self._adapter(),
            self._get_http_client(),
            retry_config or self.retry_config,
            token_gate=gate,
            sleep=self._sleep,
        )

    def _paginator(
        self,
        adapter: Optional[ProviderAdapter] = None,
        max_pages: Optional[int] = None,
        retry_config: Optional[RetryConfig] = None,
        allow_refresh: bool = True,
    ) -> Paginator:
        return Paginator(
            self._executor(adapter, retry_config, allow_refresh),
            max_pages or self.max_pages,
        )

    async def _execute(
        self,
        request: ApiRequest,
        state: CallAttemptState,
        *,
        operation: str,
        adapter: Optional[ProviderAdapter] = None,
        retry_config: Optional[RetryConfig] = None,
        allow_refresh: bool = True,
    ) -> Any:
        """Execute a single request through the shared engine.

        Raises:
            ClassifiedError: If the provider call fails.
            httpx.TransportError: On network failure after retries.
        """
        executor = self._executor(adapter, retry_config, allow_refresh)
        return await executor.execute(
            request, state, operation=operation, on_rate_limit=self._on_rate_limit
        )

    @abstractmethod
    async def fetch_metrics(
        self,
        account_id: str,
        timeframe_days: int,
        sink: Optional[MetricSink] = None,
    ) -> list[NormalizedMetric]:
        """Fetch normalized daily metrics for ``account_id``.

        Rows are handed to ``sink`` one fully decoded page at a time.
        """

    @abstractmethod
    async def check_health(self, account_id: Optional[str] = None) -> HealthStatus:
        """Check the token, and ``account_id`` when given, in one attempt."""

    @staticmethod
    def _unhealthy(error: Exception, token_valid: bool) -> HealthStatus:
        if isinstance(error, ClassifiedError):
            token_valid = token_valid and not error.is_auth_error
        return HealthStatus(
            healthy=False,
            token_valid=token_valid,
            account_accessible=False,
            error=str(error) or type(error).__name__,
        )
