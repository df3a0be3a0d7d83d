"""
Cred Auth

Client-side JWT session handling: token persistence, expiry detection,
single-flight refresh, and bearer-token request dispatch, with a thunk
middleware for redux-style state containers.

Token claims are decoded without signature verification and are only used
to decide when to refresh.
"""

from .claims import decode_claims, is_near_expiry, token_is_expired
from .client import AuthenticatedRequestDispatcher, CredClient, create_cred_client
from .errors import (
    CredError,
    MalformedTokenError,
    NoStoredTokensError,
    RefreshFailedError,
    ApiError,
    NetworkError,
    StorageError,
    ConfigurationError,
)
from .middleware import ThunkMiddleware, select_state_tokens
from .refresher import TokenRefresher
from .storage import MemoryDriver, FileDriver, EnvironmentDriver, TokenStore, TokenSource
from .types import (
    CredConfig,
    StorageDriver,
    TokenPair,
    RequestSpec,
    ApiResponse,
    JWTClaims,
    DEFAULT_EXPIRATION_WINDOW,
    TOKENS_REFRESHED,
    tokens_refreshed_action,
)

__version__ = "0.1.0"
__all__ = [
    # Client
    "CredClient",
    "create_cred_client",
    "AuthenticatedRequestDispatcher",
    "TokenRefresher",
    "ThunkMiddleware",
    "select_state_tokens",
    # Claims
    "decode_claims",
    "is_near_expiry",
    "token_is_expired",
    # Types
    "CredConfig",
    "StorageDriver",
    "TokenPair",
    "RequestSpec",
    "ApiResponse",
    "JWTClaims",
    "DEFAULT_EXPIRATION_WINDOW",
    "TOKENS_REFRESHED",
    "tokens_refreshed_action",
    # Errors
    "CredError",
    "MalformedTokenError",
    "NoStoredTokensError",
    "RefreshFailedError",
    "ApiError",
    "NetworkError",
    "StorageError",
    "ConfigurationError",
    # Storage
    "MemoryDriver",
    "FileDriver",
    "EnvironmentDriver",
    "TokenStore",
    "TokenSource",
]
