"""
Cred Auth Client

The request dispatcher that attaches fresh bearer tokens to outgoing calls,
and the CredClient that wires storage, refresher, dispatcher and middleware
together from one CredConfig.
"""

import logging
from typing import Any, Callable, Dict, Optional

import httpx

from .claims import decode_claims, token_is_expired
from .errors import ConfigurationError
from .middleware import CallApi, ThunkMiddleware, select_state_tokens
from .refresher import TokenRefresher
from .storage import Candidate, FileDriver, TokenSource, TokenStore
from .transport import send_json
from .types import CredConfig, JWTClaims, RequestSpec, ApiResponse, TokenPair


logger = logging.getLogger("cred_auth")


class AuthenticatedRequestDispatcher:
    """
    Sends API requests, with a fresh bearer token when they need one.

    No request is ever retried here; callers dispatch again if they want to.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        refresher: TokenRefresher,
        json_headers: Dict[str, str],
        debug: bool = False,
    ) -> None:
        self._client = client
        self._refresher = refresher
        self._json_headers = json_headers
        self._debug = debug

    def _log(self, message: str, *args: Any) -> None:
        """Log debug message."""
        if self._debug:
            logger.debug(f"[Cred] {message}", *args)

    async def dispatch(
        self,
        spec: RequestSpec,
        source: TokenSource,
        refresher: Optional[TokenRefresher] = None,
        on_refresh: Optional[Callable[[TokenPair], Any]] = None,
    ) -> ApiResponse:
        """
        Execute a request described by `spec`.

        Args:
            spec: What to send
            source: Where the current token pair comes from
            refresher: Refresher to use instead of the dispatcher's own
            on_refresh: Called with the new pair when a refresh happened

        Returns:
            Parsed success envelope

        Raises:
            ApiError: If the endpoint answered with a non-success status
            NetworkError: If the endpoint could not be reached
            NoStoredTokensError: If auth is required and no tokens exist
            RefreshFailedError: If an expired access token could not be refreshed
            MalformedTokenError: If the access token cannot be decoded
        """
        headers = dict(self._json_headers)

        if spec.require_auth:
            refresher = refresher or self._refresher
            current = await source.resolve()
            pair = await refresher.ensure_fresh(current)
            if on_refresh is not None and pair is not current:
                on_refresh(pair)
            bearer_token = pair.refresh_token if spec.use_refresh_token else pair.access_token
            headers["Authorization"] = f"Bearer {bearer_token}"

        self._log("%s %s (auth=%s)", spec.method, spec.url, spec.require_auth)

        data = await send_json(self._client, spec.url, spec.method, headers, spec.body)
        return ApiResponse.from_dict(data)


class CredClient:
    """
    Cred Auth Client - entry point.

    Owns the HTTP client and storage driver and exposes the token lifecycle
    operations plus the thunk middleware.
    """

    def __init__(self, config: CredConfig) -> None:
        """Initialize the client."""
        self._validate_config(config)

        self._config = config
        self._debug = config.debug
        self._json_headers = dict(config.json_headers)
        self._window = config.token_expiration_window
        self._selector = config.tokens_selector or select_state_tokens

        self._driver = config.storage if config.storage is not None else FileDriver(config.name)
        self.store = TokenStore(self._driver)

        self._http_client = httpx.AsyncClient(timeout=config.timeout)

        self.refresher = TokenRefresher(
            self._http_client,
            config.tokens_url,
            expiration_window=self._window,
            json_headers=self._json_headers,
            store=self.store if config.persist_refreshed_tokens else None,
        )
        self.dispatcher = AuthenticatedRequestDispatcher(
            self._http_client,
            self.refresher,
            self._json_headers,
            debug=self._debug,
        )
        self.middleware = ThunkMiddleware(
            self.dispatcher,
            self.store,
            self._selector,
            refresh_action=config.refresh_action,
        )

        self._log(f"CredClient initialized (name={config.name})")

    def _validate_config(self, config: CredConfig) -> None:
        """Validate configuration."""
        if not config.name:
            raise ConfigurationError("name is required")
        if not config.tokens_url:
            raise ConfigurationError("tokens_url is required")
        if config.token_expiration_window < 0:
            raise ConfigurationError(
                "token_expiration_window must not be negative",
                {"token_expiration_window": config.token_expiration_window},
            )

    def _log(self, message: str, *args: Any) -> None:
        """Log debug message."""
        if self._debug:
            logger.debug(f"[Cred] {message}", *args)

    # =========================================================================
    # Token Methods
    # =========================================================================

    def decode_claims(self, token: str) -> JWTClaims:
        """Decode a token's claims without verifying it."""
        return decode_claims(token)

    def token_is_expired(self, token: str, now: Optional[float] = None) -> bool:
        """Check if a token is within the configured expiration window."""
        return token_is_expired(token, self._window, now)

    async def save_tokens(self, tokens: Any) -> TokenPair:
        """Persist tokens, e.g. straight from a login response."""
        pair = tokens if isinstance(tokens, TokenPair) else TokenPair.from_dict(tokens)
        self._log("Saving tokens")
        return await self.store.save(pair)

    async def load_tokens(self) -> TokenPair:
        """Read the persisted tokens."""
        return await self.store.load()

    async def clear_tokens(self) -> None:
        """Delete the persisted tokens."""
        self._log("Clearing tokens")
        await self.store.clear()

    async def ensure_fresh(self, pair: TokenPair) -> TokenPair:
        """Refresh the access token if it is about to expire."""
        return await self.refresher.ensure_fresh(pair)

    async def fresh_tokens(self, state: Any) -> TokenPair:
        """Resolve tokens from application state (or storage) and ensure they are fresh."""
        source = TokenSource(self.store, self._selector(state))
        return await self.refresher.ensure_fresh(await source.resolve())

    # =========================================================================
    # Request Methods
    # =========================================================================

    async def request(self, spec: RequestSpec, candidate: Candidate = None) -> ApiResponse:
        """Dispatch a request using `candidate` tokens, falling back to storage."""
        return await self.dispatcher.dispatch(spec, TokenSource(self.store, candidate))

    def call_api(self, state: Any) -> CallApi:
        """Return a request function bound to a fixed state snapshot."""
        return self.middleware.bind(lambda: state)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._http_client.aclose()

    async def __aenter__(self) -> "CredClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()


def create_cred_client(config: Optional[CredConfig] = None) -> CredClient:
    """Create a new Cred client."""
    return CredClient(config or CredConfig())
