"""
Cred Auth Token Claims

Reads the payload segment of a JWT to find out when it expires.

The signature is NOT verified. The decoded claims are only good for
expiration bookkeeping on the client; they say nothing about whether the
token is authentic.
"""

import binascii
import json
import numbers
import re
import time
from typing import Any, Optional

from jwt.utils import base64url_decode

from .errors import MalformedTokenError
from .types import DEFAULT_EXPIRATION_WINDOW, JWTClaims


# base64url alphabet, padding optional; base64url_decode itself skips junk
BASE64URL_SEGMENT = re.compile(r"[A-Za-z0-9_-]*={0,2}")


def decode_claims(token: Any) -> JWTClaims:
    """
    Decode the claims segment of a token without checking its signature.

    Args:
        token: Dot-delimited token string

    Returns:
        The decoded claims object

    Raises:
        MalformedTokenError: If the token has no claims segment, or the
            segment is not base64-encoded JSON
    """
    if not isinstance(token, str):
        raise MalformedTokenError("Token must be a string")

    segments = token.split(".")
    if len(segments) < 2:
        raise MalformedTokenError("Token has no claims segment")
    if not BASE64URL_SEGMENT.fullmatch(segments[1]):
        raise MalformedTokenError("Token claims segment is not base64url")

    try:
        payload = base64url_decode(segments[1])
        claims = json.loads(payload.decode("utf-8"))
    except (binascii.Error, ValueError) as e:
        raise MalformedTokenError(f"Token claims could not be decoded: {e}")

    if not isinstance(claims, dict):
        raise MalformedTokenError("Token claims are not a JSON object")

    return claims


def is_near_expiry(claims: JWTClaims, window_seconds: float, now: float) -> bool:
    """Check if the token expires within `window_seconds` of `now`."""
    exp = claims.get("exp")
    if isinstance(exp, bool) or not isinstance(exp, numbers.Real):
        raise MalformedTokenError("Token has no numeric 'exp' claim")
    return exp <= now + window_seconds


def token_is_expired(
    token: str,
    window_seconds: float = DEFAULT_EXPIRATION_WINDOW,
    now: Optional[float] = None,
) -> bool:
    """Check a raw token against the expiration window, using the wall clock by default."""
    if now is None:
        now = time.time()
    return is_near_expiry(decode_claims(token), window_seconds, now)
