"""Ad Sync - Collectors Module.

This module provides resilient API clients for advertising platforms. One
shared request engine handles error classification, retry with backoff,
a single token refresh per call chain and pagination; per-provider clients
supply headers, request bodies and row parsing.

Example:
    >>> from collectors import GoogleAdsClient, TikTokAdsClient, LinkedInAdsClient
    >>>
    >>> # Google Ads campaign metrics
    >>> async with GoogleAdsClient(access_token=token, developer_token=dev) as client:
    ...     metrics = await client.fetch_metrics("4445556666", timeframe_days=30)
    >>>
    >>> # TikTok with a refresh callback and a rate-limit observer
    >>> client = TikTokAdsClient(
    ...     access_token=token,
    ...     refresh_access_token=refresher.as_callback(),
    ...     on_rate_limit=lambda ms: print(f"waiting {ms}ms"),
    ... )
    >>> accounts = await client.fetch_ad_accounts(["7001234567890"])
"""

from collectors.adapter import ApiRequest, ProviderAdapter
from collectors.backoff import DEFAULT_RETRY_CONFIG, RetryConfig, compute_delay
from collectors.base import BaseAdPlatformClient
from collectors.errors import (
    AuthError,
    ClassifiedError,
    FatalError,
    RateLimitError,
    TransientError,
    classify_error,
)
from collectors.executor import RequestExecutor
from collectors.google_ads.client import GoogleAdsClient
from collectors.linkedin.client import LinkedInAdsClient
from collectors.models import AdAccount, HealthStatus, NormalizedMetric
from collectors.oauth import OAuthRefreshError, OAuthTokenRefresher
from collectors.pagination import Page, Paginator
from collectors.tiktok.client import TikTokAdsClient
from collectors.token_gate import CallAttemptState, TokenRefreshGate

__all__ = [
    # Clients
    "GoogleAdsClient",
    "TikTokAdsClient",
    "LinkedInAdsClient",
    "BaseAdPlatformClient",
    # Engine
    "ApiRequest",
    "ProviderAdapter",
    "RequestExecutor",
    "Paginator",
    "Page",
    "TokenRefreshGate",
    "CallAttemptState",
    "RetryConfig",
    "DEFAULT_RETRY_CONFIG",
    "compute_delay",
    "classify_error",
    "OAuthTokenRefresher",
    "OAuthRefreshError",
    # Errors
    "ClassifiedError",
    "AuthError",
    "RateLimitError",
    "TransientError",
    "FatalError",
    # Models
    "NormalizedMetric",
    "AdAccount",
    "HealthStatus",
]
