"""
Cred Auth Type Definitions

Token pairs, request descriptions, response envelopes, the storage driver
interface and the client configuration.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Protocol, runtime_checkable


JWTClaims = Dict[str, Any]

ACCESS_TOKEN_KEY = "accessToken"
REFRESH_TOKEN_KEY = "refreshToken"

# 10 minutes, enough time to use a token successfully
DEFAULT_EXPIRATION_WINDOW = 60 * 10


def default_json_headers() -> Dict[str, str]:
    return {
        "Content-Type": "application/json",
        "Accept": "application/json",
    }


@runtime_checkable
class StorageDriver(Protocol):
    """Async key-value store scoped to a single namespace."""

    async def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None when absent."""
        ...

    async def set(self, key: str, value: str) -> None:
        """Store a value."""
        ...

    async def remove(self, key: str) -> None:
        """Remove a value. Removing a missing key is not an error."""
        ...


@dataclass(frozen=True)
class TokenPair:
    """Access token plus the refresh token it was issued with."""

    access_token: str
    refresh_token: str

    @property
    def is_complete(self) -> bool:
        """A pair with either token missing counts as no pair at all."""
        return bool(self.access_token) and bool(self.refresh_token)

    def to_dict(self) -> Dict[str, str]:
        """Convert to the camelCase shape used on the wire and in state."""
        return {
            ACCESS_TOKEN_KEY: self.access_token,
            REFRESH_TOKEN_KEY: self.refresh_token,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TokenPair":
        """Create from a mapping using either camelCase or snake_case keys."""
        return cls(
            access_token=data.get(ACCESS_TOKEN_KEY, data.get("access_token")) or "",
            refresh_token=data.get(REFRESH_TOKEN_KEY, data.get("refresh_token")) or "",
        )

    def __repr__(self) -> str:
        # Never echo credentials into logs or tracebacks.
        return f"TokenPair(complete={self.is_complete})"


@dataclass
class RequestSpec:
    """Description of one outgoing API call."""

    url: str = ""
    method: str = "GET"
    body: Any = None
    require_auth: bool = True
    use_refresh_token: bool = False


@dataclass
class ApiResponse:
    """Success envelope returned by every backend endpoint."""

    success: bool
    message: str
    data: Any = field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        """Read a payload field from the response body."""
        if isinstance(self.data, dict):
            return self.data.get(key, default)
        return default

    @classmethod
    def from_dict(cls, data: Any) -> "ApiResponse":
        """Create from a parsed JSON body."""
        if not isinstance(data, dict):
            return cls(success=True, message="", data=data)
        return cls(
            success=bool(data.get("success", True)),
            message=data.get("message", "") or "",
            data=data,
        )


TOKENS_REFRESHED = "TOKENS_REFRESHED"


def tokens_refreshed_action(pair: "TokenPair") -> Dict[str, Any]:
    """Action dispatched by the middleware after a thunk request refreshed its tokens."""
    return {"type": TOKENS_REFRESHED, "tokens": pair.to_dict()}


@dataclass
class CredConfig:
    """Client configuration."""

    # Storage namespace for persisted tokens
    name: str = "cred-app"
    # Refresh endpoint; the refresh token is PUT here
    tokens_url: str = "http://localhost:3000"
    # Seconds before `exp` at which an access token counts as expired
    token_expiration_window: int = DEFAULT_EXPIRATION_WINDOW
    # Headers sent with every request
    json_headers: Dict[str, str] = field(default_factory=default_json_headers)
    # Storage driver (default: None, uses FileDriver(name))
    storage: Optional[StorageDriver] = None
    # Request timeout in seconds
    timeout: float = 30.0
    # Extracts the current token pair from application state
    # (default: None, reads state["auth"]["tokens"])
    tokens_selector: Optional[Callable[[Any], Any]] = None
    # Write refreshed pairs back to storage
    persist_refreshed_tokens: bool = True
    # Builds the action the middleware dispatches when a request refreshed
    # the pair (None disables it)
    refresh_action: Optional[Callable[[TokenPair], Any]] = tokens_refreshed_action
    # Enable debug logging
    debug: bool = False
