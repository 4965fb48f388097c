"""Retry configuration and backoff delay computation.

compute_delay() is pure; the caller performs the actual suspension with
asyncio.sleep so that cancellation reaches sleeping retries.
"""

import random
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Callable, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

# 2**62 ms is already far beyond any sane max_delay_ms.
_MAX_EXPONENT = 62


class RetryConfig(BaseModel):
    """Per-call retry tuning.

    Attributes:
        max_retries: Total attempts for one request, excluding the single
            replay after a token refresh.
        base_delay_ms: Base delay for exponential backoff.
        max_delay_ms: Upper bound for any computed or hinted delay.
        jitter_factor: Fraction of the exponential delay added as random
            jitter (0 to 1).
        rate_limit_multiplier: Extra factor applied to the base delay when
            backing off from a rate-limit error.
        max_chain_retries: Ceiling on retries across a whole call chain
            (all pages plus the post-refresh replay).
    """

    model_config = ConfigDict(frozen=True)

    max_retries: int = Field(default=3, ge=1)
    base_delay_ms: int = Field(default=1000, ge=0)
    max_delay_ms: int = Field(default=30000, ge=0)
    jitter_factor: float = Field(default=0.3, ge=0.0, le=1.0)
    rate_limit_multiplier: float = Field(default=2.0, ge=1.0)
    max_chain_retries: int = Field(default=10, ge=0)

    @model_validator(mode="after")
    def _check_delay_bounds(self) -> "RetryConfig":
        if self.max_delay_ms < self.base_delay_ms:
            raise ValueError("max_delay_ms must be >= base_delay_ms")
        return self


DEFAULT_RETRY_CONFIG = RetryConfig()


def exponential_delay(
    attempt_index: int,
    config: RetryConfig = DEFAULT_RETRY_CONFIG,
    rate_limited: bool = False,
) -> float:
    """Return the clamped exponential delay before jitter, in milliseconds."""
    exponent = min(max(0, attempt_index), _MAX_EXPONENT)
    delay = config.base_delay_ms * (2**exponent)
    if rate_limited:
        delay = delay * config.rate_limit_multiplier
    return float(min(delay, config.max_delay_ms))


def compute_delay(
    attempt_index: int,
    config: RetryConfig = DEFAULT_RETRY_CONFIG,
    retry_after_ms: Optional[int] = None,
    rate_limited: bool = False,
    rng: Callable[[], float] = random.random,
) -> int:
    """Compute the wait before the next retry.

    A positive provider retry hint takes precedence over exponential
    backoff. Otherwise ``base * 2**attempt`` (doubled for rate limits by
    default) plus up to ``jitter_factor`` of itself as random jitter.
    The result is always clamped to ``config.max_delay_ms``.

    Args:
        attempt_index: Zero-based attempt that just failed.
        config: Retry tuning.
        retry_after_ms: Provider hint (Retry-After header or payload).
        rate_limited: Apply the rate-limit multiplier.
        rng: Uniform [0, 1) source, injectable for tests.

    Returns:
        Delay in milliseconds.

    Example:
        >>> compute_delay(2, RetryConfig(jitter_factor=0), rng=lambda: 0.5)
        4000
    """
    if retry_after_ms is not None and retry_after_ms > 0:
        return int(min(retry_after_ms, config.max_delay_ms))

    delay = exponential_delay(attempt_index, config, rate_limited=rate_limited)
    jitter = delay * config.jitter_factor * rng()
    return int(min(delay + jitter, config.max_delay_ms))


def parse_retry_after_ms(headers: Mapping[str, str]) -> Optional[int]:
    """Parse a Retry-After header (delta seconds or HTTP-date) into ms."""
    value = headers.get("retry-after") or headers.get("Retry-After")
    if not value:
        return None

    value = value.strip()
    try:
        seconds = float(value)
    except ValueError:
        try:
            when = parsedate_to_datetime(value)
        except (TypeError, ValueError):
            return None
        if when.tzinfo is None:
            when = when.replace(tzinfo=timezone.utc)
        seconds = (when - datetime.now(timezone.utc)).total_seconds()

    if not 0 < seconds < float("inf"):
        return None
    return int(seconds * 1000)
