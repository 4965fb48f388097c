"""Builds provider clients from application configuration."""

import logging
from typing import Any, Optional

import httpx

from collectors.base import BaseAdPlatformClient
from collectors.google_ads.client import GoogleAdsClient
from collectors.linkedin.client import LinkedInAdsClient
from collectors.oauth import OAuthTokenRefresher
from collectors.tiktok.client import TikTokAdsClient
from config.config_manager import AppConfig

logger = logging.getLogger(__name__)

PROVIDERS = ("google", "tiktok", "linkedin")


def _secret(value: Any) -> Optional[str]:
    return value.get_secret_value() if value is not None else None


def build_refresher(
    provider: str,
    refresh_token: Optional[str],
    config: AppConfig,
    http_client: Optional[httpx.AsyncClient] = None,
) -> Optional[OAuthTokenRefresher]:
    """Return a refresher when both a refresh token and app credentials exist."""
    if not refresh_token:
        return None

    if provider == "google":
        client_id, secret = config.google_ads.client_id, _secret(config.google_ads.client_secret)
        factory = OAuthTokenRefresher.for_google
    elif provider == "linkedin":
        client_id, secret = config.linkedin.client_id, _secret(config.linkedin.client_secret)
        factory = OAuthTokenRefresher.for_linkedin
    elif provider == "tiktok":
        client_id, secret = config.tiktok.app_id, _secret(config.tiktok.app_secret)
        factory = OAuthTokenRefresher.for_tiktok
    else:
        return None

    if not (client_id and secret):
        logger.warning(f"{provider}: refresh token given but no OAuth app credentials configured")
        return None
    return factory(client_id, secret, refresh_token, http_client=http_client)


def create_client(
    provider: str,
    access_token: str,
    config: AppConfig,
    *,
    refresh_token: Optional[str] = None,
    login_customer_id: Optional[str] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    **kwargs: Any,
) -> BaseAdPlatformClient:
    """Create a configured client for ``provider``.

    Args:
        provider: One of "google", "tiktok", "linkedin".
        access_token: OAuth access token.
        config: Application configuration (retry tuning, app credentials).
        refresh_token: Optional refresh token enabling one refresh per chain.
        login_customer_id: Google Ads manager id override.
        http_client: Shared httpx client.
        **kwargs: Forwarded to the client constructor (e.g. ``sleep``).

    Raises:
        ValueError: For an unknown provider or missing credentials.
    """
    refresher = build_refresher(provider, refresh_token, config, http_client)
    common: dict[str, Any] = {
        "retry_config": config.retry,
        "http_client": http_client,
        "timeout": config.http_timeout_seconds,
        "refresh_access_token": refresher.as_callback() if refresher else None,
        **kwargs,
    }

    if provider == "google":
        return GoogleAdsClient(
            access_token,
            developer_token=config.google_developer_token(),
            login_customer_id=login_customer_id or config.google_ads.login_customer_id,
            **common,
        )
    if provider == "tiktok":
        return TikTokAdsClient(access_token, **common)
    if provider == "linkedin":
        return LinkedInAdsClient(access_token, api_version=config.linkedin.api_version, **common)
    raise ValueError(f"Unknown provider '{provider}'. Expected one of: {', '.join(PROVIDERS)}")
