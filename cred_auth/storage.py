"""
Cred Auth Token Storage

Storage drivers for token persistence, the TokenStore that reads and writes
a token pair through a driver, and the TokenSource that prefers an
already-known pair over the persisted one.
"""

import asyncio
import json
import logging
import os
import re
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, TypeVar, Union

from .errors import NoStoredTokensError, StorageError
from .types import ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY, StorageDriver, TokenPair


logger = logging.getLogger("cred_auth.storage")

T = TypeVar("T")


# =============================================================================
# Drivers
# =============================================================================

class MemoryDriver:
    """In-memory driver (non-persistent). Namespaces are shared within the process."""

    _namespaces: Dict[str, Dict[str, str]] = {}
    _namespaces_lock = threading.Lock()

    def __init__(self, name: str = "cred-app") -> None:
        with self._namespaces_lock:
            self._data = self._namespaces.setdefault(name, {})

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)


class FileDriver:
    """File-based driver (persistent across restarts)."""

    def __init__(self, name: str = "cred-app", directory: Optional[str] = None) -> None:
        """
        Initialize file storage.

        Args:
            name: Storage namespace, used as the file name
            directory: Directory for token files. Defaults to ~/.cred
        """
        base = Path(directory) if directory else Path.home() / ".cred"
        self._file_path = base / f"{name}.json"
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._file_path

    async def _run(self, func: Callable[..., T], *args: Any) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func, *args)

    def _read_data(self) -> Dict[str, Any]:
        """Read token data from file."""
        if not self._file_path.exists():
            return {}
        try:
            with open(self._file_path, "r") as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning("Ignoring corrupt token file %s", self._file_path)
            return {}
        except OSError as e:
            raise StorageError(f"Could not read {self._file_path}: {e}")
        return data if isinstance(data, dict) else {}

    def _write_data(self, data: Dict[str, Any]) -> None:
        """Write token data to file."""
        try:
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._file_path, "w") as f:
                json.dump(data, f)
            # Owner read/write only
            os.chmod(self._file_path, 0o600)
        except OSError as e:
            raise StorageError(f"Could not write {self._file_path}: {e}")

    def _get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._read_data().get(key)

    def _set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._read_data()
            data[key] = value
            self._write_data(data)

    def _remove(self, key: str) -> None:
        with self._lock:
            data = self._read_data()
            if key not in data:
                return
            del data[key]
            self._write_data(data)

    async def get(self, key: str) -> Optional[str]:
        return await self._run(self._get, key)

    async def set(self, key: str, value: str) -> None:
        await self._run(self._set, key, value)

    async def remove(self, key: str) -> None:
        await self._run(self._remove, key)


class EnvironmentDriver:
    """Environment variable based driver (for serverless/containers).

    The namespace "cred-app" maps key "accessToken" to CRED_APP_ACCESSTOKEN.
    """

    def __init__(self, name: str = "cred-app") -> None:
        self._prefix = re.sub(r"[^A-Za-z0-9]+", "_", name).upper()

    def _var(self, key: str) -> str:
        return f"{self._prefix}_{key.upper()}"

    async def get(self, key: str) -> Optional[str]:
        return os.environ.get(self._var(key))

    async def set(self, key: str, value: str) -> None:
        os.environ[self._var(key)] = value

    async def remove(self, key: str) -> None:
        os.environ.pop(self._var(key), None)


# =============================================================================
# Token Store / Source
# =============================================================================

class TokenStore:
    """
    Durable copy of the token pair.

    No caching happens here; every call goes to the driver.
    """

    def __init__(self, driver: StorageDriver) -> None:
        self._driver = driver

    async def save(self, pair: TokenPair) -> TokenPair:
        """
        Persist both tokens.

        The two writes are independent. If the second one fails the first
        stays written and the error is raised.

        Raises:
            StorageError: If the driver fails
        """
        try:
            await self._driver.set(ACCESS_TOKEN_KEY, pair.access_token)
            await self._driver.set(REFRESH_TOKEN_KEY, pair.refresh_token)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Problem saving tokens: {e}")
        return pair

    async def load(self) -> TokenPair:
        """
        Read the persisted pair.

        Raises:
            NoStoredTokensError: If either token is missing
            StorageError: If the driver fails
        """
        try:
            access_token = await self._driver.get(ACCESS_TOKEN_KEY)
            refresh_token = await self._driver.get(REFRESH_TOKEN_KEY)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Problem retrieving tokens: {e}")

        if not access_token or not refresh_token:
            raise NoStoredTokensError("Problem retrieving tokens from storage")

        return TokenPair(access_token=access_token, refresh_token=refresh_token)

    async def clear(self) -> None:
        """Remove both tokens. Clearing an empty store is fine."""
        try:
            await self._driver.remove(ACCESS_TOKEN_KEY)
            await self._driver.remove(REFRESH_TOKEN_KEY)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Problem removing tokens: {e}")


Candidate = Union[TokenPair, Mapping[str, Any], None]


def _as_pair(candidate: Candidate) -> Optional[TokenPair]:
    if candidate is None:
        return None
    if isinstance(candidate, TokenPair):
        return candidate
    if isinstance(candidate, Mapping):
        return TokenPair.from_dict(candidate)
    return None


class TokenSource:
    """
    Resolves the token pair to use for a request.

    A complete candidate (typically whatever the application state holds)
    wins without touching storage; otherwise the store is read, e.g. on the
    first request after a restart.
    """

    def __init__(self, store: TokenStore, candidate: Candidate = None) -> None:
        self._store = store
        self._candidate = candidate

    async def resolve(self, candidate: Candidate = None) -> TokenPair:
        """
        Return the current token pair.

        Args:
            candidate: Pair to prefer over the one given at construction

        Raises:
            NoStoredTokensError: If no complete pair is known or stored
        """
        pair = _as_pair(candidate if candidate is not None else self._candidate)
        if pair is not None and pair.is_complete:
            return pair
        return await self._store.load()
