"""
Cred Auth Error Classes

Every failure leaving the token lifecycle layer is one of these types.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional


class CredError(Exception):
    """Base error class for Cred Auth."""

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 0,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "name": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "status_code": self.status_code,
            "details": self.details,
            "timestamp": self.timestamp,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


class MalformedTokenError(CredError):
    """Token claims could not be decoded. Not retryable."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("MALFORMED_TOKEN", message, 0, details)


class NoStoredTokensError(CredError):
    """No token pair is available; the user must authenticate."""

    def __init__(self, message: str = "No tokens found in storage"):
        super().__init__("NO_STORED_TOKENS", message, 401)


class RefreshFailedError(CredError):
    """Refresh exchange was rejected or could not reach the server."""

    def __init__(
        self,
        message: str,
        status_code: int = 401,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__("TOKEN_REFRESH_FAILED", message, status_code, details)


class ApiError(CredError):
    """Non-success response from a downstream endpoint."""

    def __init__(
        self,
        message: str,
        status_code: int,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__("API_ERROR", message, status_code, details)


class NetworkError(CredError):
    """Network error (connection issues, timeouts)."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("NETWORK_ERROR", message, 0, details)


class StorageError(CredError):
    """The persistent storage driver failed."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("STORAGE_ERROR", message, 0, details)


class ConfigurationError(CredError):
    """Configuration error."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFIGURATION_ERROR", message, 0, details)
