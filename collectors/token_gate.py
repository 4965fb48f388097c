"""Per-chain attempt state and the single token-refresh gate."""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

RefreshCallback = Callable[[], Awaitable[str]]
TokenRefreshObserver = Callable[[str], None]


@dataclass
class CallAttemptState:
    """Mutable state owned by exactly one outer call chain.

    A chain is one logical operation (e.g. "fetch 30 days of metrics"),
    which may span many pages. Concurrent chains must never share an
    instance.

    Attributes:
        active_access_token: Token used to build request headers.
        attempt_index: Zero-based attempt within the current request.
        token_refresh_used: Flips to True at most once per chain.
        total_retries: Retries performed across the whole chain.
    """

    active_access_token: str
    attempt_index: int = 0
    token_refresh_used: bool = False
    total_retries: int = 0


class TokenRefreshGate:
    """Allows at most one access-token refresh per call chain.

    Example:
        >>> gate = TokenRefreshGate(refresh_access_token=oauth.refresh)
        >>> if await gate.try_refresh(state):
        ...     pass  # replay the request with state.active_access_token
    """

    def __init__(
        self,
        refresh_access_token: Optional[RefreshCallback] = None,
        on_token_refresh: Optional[TokenRefreshObserver] = None,
    ) -> None:
        self._refresh_access_token = refresh_access_token
        self._on_token_refresh = on_token_refresh

    @property
    def can_refresh(self) -> bool:
        return self._refresh_access_token is not None

    async def try_refresh(self, state: CallAttemptState) -> bool:
        """Refresh the chain's token if the chain has not done so yet.

        On success the new token is stored on ``state`` and the attempt
        counter is reset to zero so the fresh token is not penalized by
        earlier backoff.

        Args:
            state: The chain's attempt state.

        Returns:
            True if a new token is ready, False if the caller must
            propagate the auth error.

        Raises:
            Exception: Whatever the refresh callback raises, unchanged.
        """
        if self._refresh_access_token is None:
            logger.debug("No token refresh callback configured")
            return False
        if state.token_refresh_used:
            logger.warning("Token already refreshed once in this call chain")
            return False

        state.token_refresh_used = True
        new_token = await self._refresh_access_token()
        if not new_token:
            logger.error("Token refresh returned an empty access token")
            return False

        state.active_access_token = new_token
        state.attempt_index = 0
        logger.info("Access token refreshed, replaying request")

        if self._on_token_refresh is not None:
            self._on_token_refresh(new_token)
        return True
