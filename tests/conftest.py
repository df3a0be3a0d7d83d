"""
Shared fixtures for Cred Auth tests.
"""

import time
import uuid
from typing import Any, Callable

import jwt
import pytest

from cred_auth import MemoryDriver, TokenPair


TOKENS_URL = "https://api.example.com/tokens"
API_URL = "https://api.example.com"

# Long enough that PyJWT does not warn about the HMAC key size
SIGNING_KEY = "test-signing-key-with-enough-bytes-for-hs256"


def mint_token(exp: float, **claims: Any) -> str:
    """Mint a signed JWT with the given expiration."""
    return jwt.encode({"exp": int(exp), **claims}, SIGNING_KEY, algorithm="HS256")


@pytest.fixture
def make_token() -> Callable[..., str]:
    """Factory for JWTs expiring `offset` seconds from now."""

    def _make(offset: float, **claims: Any) -> str:
        return mint_token(time.time() + offset, **claims)

    return _make


@pytest.fixture
def fresh_pair(make_token) -> TokenPair:
    """Pair whose access token expires in one hour."""
    return TokenPair(access_token=make_token(3600, sub="user_123"), refresh_token="refresh_123")


@pytest.fixture
def expired_pair(make_token) -> TokenPair:
    """Pair whose access token expired five minutes ago."""
    return TokenPair(access_token=make_token(-300, sub="user_123"), refresh_token="refresh_123")


@pytest.fixture
def memory_driver() -> MemoryDriver:
    """Memory driver in a namespace no other test uses."""
    return MemoryDriver(f"test-{uuid.uuid4().hex}")
