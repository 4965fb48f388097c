"""Request executor: the retry/backoff/auth-refresh state machine.

One execute() call drives a single request through the states

    Attempting -> Success | Retrying | AuthRefreshing | RateLimited | Failed

and either returns the decoded payload or raises. Network failures raise the
raw httpx.TransportError; provider failures raise a ClassifiedError.
"""

import asyncio
import logging
import random
import time
from typing import Any, Awaitable, Callable, Optional, Union

import httpx

from collectors.adapter import ApiRequest, ProviderAdapter
from collectors.backoff import DEFAULT_RETRY_CONFIG, RetryConfig, compute_delay
from collectors.errors import ClassifiedError
from collectors.token_gate import CallAttemptState, TokenRefreshGate

logger = logging.getLogger(__name__)

RateLimitObserver = Callable[[int], None]
Sleeper = Callable[[float], Awaitable[None]]


def _decode_payload(response: httpx.Response) -> Any:
    """Best-effort body decoding: JSON, else raw text."""
    try:
        return response.json()
    except ValueError:
        return response.text


def _loggable_url(url: str) -> str:
    """Strip the query string so tokens in params never reach the logs."""
    try:
        return str(httpx.URL(url).copy_with(query=None))
    except httpx.InvalidURL:
        return url.split("?", 1)[0]


class RequestExecutor:
    """Executes provider requests with retry, backoff and one token refresh.

    Attributes:
        adapter: Provider adapter (headers, success check, error extraction).
        retry_config: Retry tuning for this executor.

    Example:
        >>> executor = RequestExecutor(adapter, http_client, RetryConfig())
        >>> state = CallAttemptState(active_access_token="ya29...")
        >>> payload = await executor.execute(request, state, operation="search")
    """

    def __init__(
        self,
        adapter: ProviderAdapter,
        http_client: httpx.AsyncClient,
        retry_config: RetryConfig = DEFAULT_RETRY_CONFIG,
        token_gate: Optional[TokenRefreshGate] = None,
        sleep: Sleeper = asyncio.sleep,
        rng: Callable[[], float] = random.random,
    ) -> None:
        self.adapter = adapter
        self.retry_config = retry_config
        self._http_client = http_client
        self._token_gate = token_gate or TokenRefreshGate()
        self._sleep = sleep
        self._rng = rng

    def _can_retry(self, state: CallAttemptState) -> bool:
        return (
            state.attempt_index < self.retry_config.max_retries - 1
            and state.total_retries < self.retry_config.max_chain_retries
        )

    async def _wait_and_advance(self, state: CallAttemptState, delay_ms: int) -> None:
        await self._sleep(delay_ms / 1000)
        state.attempt_index += 1
        state.total_retries += 1

    def _log_attempt(
        self,
        operation: str,
        request: ApiRequest,
        state: CallAttemptState,
        elapsed_ms: float,
        status: Optional[int] = None,
        error: Optional[Union[ClassifiedError, Exception]] = None,
    ) -> None:
        attempt = f"{state.attempt_index + 1}/{self.retry_config.max_retries}"
        prefix = f"[{self.adapter.provider_id} API] {operation}"
        url = _loggable_url(request.url)

        if error is None:
            logger.info(
                f"{prefix} completed attempt={attempt} status={status} "
                f"duration={elapsed_ms:.0f}ms url={url}"
            )
            return

        detail = error.to_dict() if isinstance(error, ClassifiedError) else {
            "message": str(error) or type(error).__name__
        }
        logger.warning(
            f"{prefix} failed attempt={attempt} status={status} "
            f"duration={elapsed_ms:.0f}ms url={url} error={detail}"
        )

    async def _send(self, request: ApiRequest, state: CallAttemptState) -> httpx.Response:
        return await self._http_client.request(
            request.method,
            request.url,
            params=request.params,
            json=request.json,
            headers=self.adapter.build_headers(state.active_access_token),
        )

    async def execute(
        self,
        request: ApiRequest,
        state: CallAttemptState,
        *,
        operation: str,
        on_rate_limit: Optional[RateLimitObserver] = None,
    ) -> Any:
        """Execute ``request`` until success or an unrecoverable failure.

        Args:
            request: Request description (auth headers are added per attempt).
            state: Chain state; shared by every request of one chain.
            operation: Operation name used in logs.
            on_rate_limit: Observer notified with the wait (ms) whenever a
                rate limit is hit.

        Returns:
            The decoded response payload.

        Raises:
            ClassifiedError: Auth, rate-limit, transient or fatal failure
                that could not be recovered locally.
            httpx.TransportError: Network failure after all retries.
            Exception: Anything raised by the token refresh callback.
        """
        state.attempt_index = 0

        while True:
            started = time.monotonic()
            try:
                response = await self._send(request, state)
            except httpx.TransportError as ex:
                self._log_attempt(
                    operation, request, state, (time.monotonic() - started) * 1000,
                    error=ex,
                )
                if self._can_retry(state):
                    delay_ms = compute_delay(
                        state.attempt_index, self.retry_config, rng=self._rng
                    )
                    await self._wait_and_advance(state, delay_ms)
                    continue
                logger.error(
                    f"[{self.adapter.provider_id} API] {operation} network failure "
                    f"after {state.attempt_index + 1} attempts"
                )
                raise

            elapsed_ms = (time.monotonic() - started) * 1000
            payload = _decode_payload(response)

            if response.is_success and self.adapter.is_success(
                response.status_code, payload
            ):
                self._log_attempt(
                    operation, request, state, elapsed_ms, status=response.status_code
                )
                return payload

            error = self.adapter.classify(response.status_code, payload, response.headers)
            self._log_attempt(
                operation, request, state, elapsed_ms,
                status=response.status_code, error=error,
            )

            if error.is_auth_error:
                if await self._token_gate.try_refresh(state):
                    continue
                raise error

            if error.is_rate_limit_error:
                delay_ms = compute_delay(
                    state.attempt_index,
                    self.retry_config,
                    retry_after_ms=error.retry_after_ms,
                    rate_limited=True,
                    rng=self._rng,
                )
                if on_rate_limit is not None:
                    on_rate_limit(delay_ms)
                if self._can_retry(state):
                    logger.warning(
                        f"[{self.adapter.provider_id} API] Rate limited, "
                        f"waiting {delay_ms}ms before retry"
                    )
                    await self._wait_and_advance(state, delay_ms)
                    continue
                raise error

            if error.is_retryable and self._can_retry(state):
                delay_ms = compute_delay(
                    state.attempt_index, self.retry_config, rng=self._rng
                )
                await self._wait_and_advance(state, delay_ms)
                continue

            raise error
