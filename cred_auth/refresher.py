"""
Cred Auth Token Refresher

Exchanges the refresh token for a new access token when the current one is
about to expire. Concurrent callers holding the same pair share a single
exchange.
"""

import asyncio
import logging
import time
from typing import Callable, Dict, Optional

import httpx

from .claims import decode_claims, is_near_expiry
from .errors import CredError, RefreshFailedError, StorageError
from .storage import TokenStore
from .transport import send_json
from .types import ACCESS_TOKEN_KEY, DEFAULT_EXPIRATION_WINDOW, TokenPair, default_json_headers


logger = logging.getLogger("cred_auth.refresher")


class TokenRefresher:
    """
    Keeps a token pair fresh.

    At most one refresh per refresh token is in flight at any time. The
    in-flight entry is dropped as soon as the exchange settles, so a later
    expiration (or a retry after failure) starts a new exchange.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        tokens_url: str,
        expiration_window: float = DEFAULT_EXPIRATION_WINDOW,
        json_headers: Optional[Dict[str, str]] = None,
        store: Optional[TokenStore] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._client = client
        self._tokens_url = tokens_url
        self._expiration_window = expiration_window
        self._json_headers = json_headers if json_headers is not None else default_json_headers()
        self._store = store
        self._clock = clock
        self._in_flight: Dict[str, "asyncio.Future[TokenPair]"] = {}

    def needs_refresh(self, pair: TokenPair) -> bool:
        """
        Check if the pair's access token is inside the expiration window.

        Raises:
            MalformedTokenError: If the access token cannot be decoded
        """
        claims = decode_claims(pair.access_token)
        return is_near_expiry(claims, self._expiration_window, self._clock())

    async def ensure_fresh(self, pair: TokenPair) -> TokenPair:
        """
        Return a pair whose access token is safe to use.

        Args:
            pair: Current token pair

        Returns:
            The same pair if still fresh, otherwise the pair with a new
            access token and the original refresh token

        Raises:
            MalformedTokenError: If the access token cannot be decoded
            RefreshFailedError: If the refresh exchange failed
        """
        if not self.needs_refresh(pair):
            return pair

        key = pair.refresh_token
        pending = self._in_flight.get(key)
        if pending is None:
            logger.debug("Access token near expiry, refreshing")
            pending = asyncio.ensure_future(self._refresh(key, pair))
            pending.add_done_callback(_retrieve_exception)
            self._in_flight[key] = pending
        else:
            logger.debug("Joining in-flight token refresh")

        # One caller giving up must not cancel the exchange for the others.
        return await asyncio.shield(pending)

    def is_refreshing(self, pair: TokenPair) -> bool:
        """Check if a refresh for this pair is currently in flight."""
        return pair.refresh_token in self._in_flight

    async def _refresh(self, key: str, pair: TokenPair) -> TokenPair:
        try:
            fresh = await self._exchange(pair)
        finally:
            self._in_flight.pop(key, None)

        if self._store is not None:
            try:
                await self._store.save(fresh)
            except StorageError as e:
                logger.warning("Refreshed tokens could not be persisted: %s", e.message)
        return fresh

    async def _exchange(self, pair: TokenPair) -> TokenPair:
        headers = {
            **self._json_headers,
            "Authorization": f"Bearer {pair.refresh_token}",
        }

        try:
            data = await send_json(self._client, self._tokens_url, "PUT", headers)
        except CredError as e:
            logger.debug("Token refresh failed: %s", e.message)
            raise RefreshFailedError(
                f"Problem refreshing access token: {e.message}",
                e.status_code,
                {"original_error": e.code},
            )

        access_token = data.get(ACCESS_TOKEN_KEY) if isinstance(data, dict) else None
        if not access_token or not isinstance(access_token, str):
            raise RefreshFailedError(
                "Problem refreshing access token: response has no accessToken",
                0,
            )

        logger.debug("Token refresh successful")
        return TokenPair(access_token=access_token, refresh_token=pair.refresh_token)


def _retrieve_exception(task: "asyncio.Future[TokenPair]") -> None:
    # Mark the failure as seen even when every waiter was cancelled.
    if not task.cancelled():
        task.exception()
