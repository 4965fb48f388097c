"""OAuth refresh-token grant for the ad platform clients.

The request engine only needs an ``async () -> str`` callable to refresh an
expired access token. OAuthTokenRefresher performs the ``refresh_token``
grant against a provider token endpoint and exposes that callable through
as_callback().

Example:
    >>> refresher = OAuthTokenRefresher.for_google(client_id, client_secret, refresh_token)
    >>> client = GoogleAdsClient(
    ...     access_token=stored_token,
    ...     developer_token=dev_token,
    ...     refresh_access_token=refresher.as_callback(),
    ... )
"""

import logging
from typing import Any, Optional

import httpx

from collectors.token_gate import RefreshCallback

logger = logging.getLogger(__name__)

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
LINKEDIN_TOKEN_URL = "https://www.linkedin.com/oauth/v2/accessToken"
TIKTOK_TOKEN_URL = "https://business-api.tiktok.com/open_api/v1.3/oauth2/refresh_token/"


class OAuthRefreshError(Exception):
    """Raised when a refresh-token grant fails."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class OAuthTokenRefresher:
    """Exchanges a refresh token for a new access token.

    Attributes:
        token_url: Provider token endpoint.
        refresh_token: Current refresh token; replaced when the provider
            rotates it.
        access_token: Last access token obtained, if any.
    """

    def __init__(
        self,
        token_url: str,
        client_id: str,
        client_secret: str,
        refresh_token: str,
        *,
        json_body: bool = False,
        response_key: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ) -> None:
        """Initialize the refresher.

        Args:
            token_url: Provider token endpoint.
            client_id: OAuth client id (TikTok app id).
            client_secret: OAuth client secret (TikTok app secret).
            refresh_token: Refresh token to exchange.
            json_body: Send a JSON body instead of a form-encoded one.
            response_key: Key the token fields are nested under, if any.
            http_client: Shared httpx client; a short-lived one is used if None.
            timeout: Request timeout in seconds.

        Raises:
            ValueError: If any credential is empty.
        """
        if not (client_id and client_secret and refresh_token):
            raise ValueError("client_id, client_secret and refresh_token are required")

        self.token_url = token_url
        self.client_id = client_id
        self.client_secret = client_secret
        self.refresh_token = refresh_token
        self.access_token: Optional[str] = None
        self._json_body = json_body
        self._response_key = response_key
        self._http_client = http_client
        self._timeout = timeout

    @classmethod
    def for_google(cls, client_id: str, client_secret: str, refresh_token: str, **kwargs: Any):
        return cls(GOOGLE_TOKEN_URL, client_id, client_secret, refresh_token, **kwargs)

    @classmethod
    def for_linkedin(cls, client_id: str, client_secret: str, refresh_token: str, **kwargs: Any):
        return cls(LINKEDIN_TOKEN_URL, client_id, client_secret, refresh_token, **kwargs)

    @classmethod
    def for_tiktok(cls, app_id: str, secret: str, refresh_token: str, **kwargs: Any):
        return cls(
            TIKTOK_TOKEN_URL,
            app_id,
            secret,
            refresh_token,
            json_body=True,
            response_key="data",
            **kwargs,
        )

    def _request_kwargs(self) -> dict[str, Any]:
        if self._json_body:
            return {
                "json": {
                    "app_id": self.client_id,
                    "secret": self.client_secret,
                    "refresh_token": self.refresh_token,
                    "grant_type": "refresh_token",
                }
            }
        return {
            "data": {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "refresh_token": self.refresh_token,
                "grant_type": "refresh_token",
            }
        }

    async def _post(self) -> httpx.Response:
        if self._http_client is not None:
            return await self._http_client.post(self.token_url, **self._request_kwargs())
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await client.post(self.token_url, **self._request_kwargs())

    async def refresh(self) -> str:
        """Perform the refresh-token grant.

        Returns:
            The new access token.

        Raises:
            OAuthRefreshError: If the endpoint rejects the grant or returns
                no access token.
        """
        response = await self._post()
        try:
            payload = response.json()
        except ValueError:
            payload = {}

        if response.status_code >= 400:
            message = ""
            if isinstance(payload, dict):
                message = payload.get("error_description") or payload.get("error") or ""
            raise OAuthRefreshError(
                f"Token refresh failed ({response.status_code}): {message or response.text}",
                status_code=response.status_code,
            )

        if self._response_key and isinstance(payload, dict):
            if payload.get("code") not in (None, 0):
                raise OAuthRefreshError(
                    f"Token refresh failed: {payload.get('message') or payload.get('code')}",
                    status_code=response.status_code,
                )
            payload = payload.get(self._response_key)

        access_token = payload.get("access_token") if isinstance(payload, dict) else None
        if not access_token:
            raise OAuthRefreshError(
                "Token refresh response did not include an access token",
                status_code=response.status_code,
            )

        rotated = payload.get("refresh_token")
        if rotated:
            self.refresh_token = rotated
        self.access_token = access_token
        logger.info(f"Refreshed access token via {self.token_url}")
        return access_token

    def as_callback(self) -> RefreshCallback:
        """Return the ``refresh_access_token`` callable for a client."""
        return self.refresh
