"""
Tests for storage drivers, TokenStore and TokenSource.
"""

import json
import os
import stat
from unittest.mock import AsyncMock

import pytest

from cred_auth import (
    EnvironmentDriver,
    FileDriver,
    MemoryDriver,
    NoStoredTokensError,
    StorageError,
    TokenPair,
    TokenSource,
    TokenStore,
)


PAIR = TokenPair(access_token="access_abc", refresh_token="refresh_abc")


def _counting_driver(values=None) -> AsyncMock:
    """Driver mock that records every call."""
    values = values or {}
    driver = AsyncMock()
    driver.get.side_effect = lambda key: values.get(key)
    return driver


# =============================================================================
# Driver Tests
# =============================================================================

class TestDrivers:
    """Tests for the bundled storage drivers."""

    @pytest.mark.asyncio
    async def test_memory_driver(self, memory_driver: MemoryDriver):
        """Test memory driver get/set/remove."""
        assert await memory_driver.get("accessToken") is None

        await memory_driver.set("accessToken", "value")
        assert await memory_driver.get("accessToken") == "value"

        await memory_driver.remove("accessToken")
        await memory_driver.remove("accessToken")
        assert await memory_driver.get("accessToken") is None

    @pytest.mark.asyncio
    async def test_memory_namespaces(self):
        """Test drivers with the same name share data, others do not."""
        first = MemoryDriver("test-shared-namespace")
        second = MemoryDriver("test-shared-namespace")
        other = MemoryDriver("test-other-namespace")

        await first.set("refreshToken", "shared")

        assert await second.get("refreshToken") == "shared"
        assert await other.get("refreshToken") is None

        await first.remove("refreshToken")

    @pytest.mark.asyncio
    async def test_file_driver(self, tmp_path):
        """Test file driver persists to a private JSON file."""
        driver = FileDriver("my-app", directory=str(tmp_path))

        await driver.set("accessToken", "access")
        await driver.set("refreshToken", "refresh")

        assert driver.path == tmp_path / "my-app.json"
        assert json.loads(driver.path.read_text()) == {
            "accessToken": "access",
            "refreshToken": "refresh",
        }
        assert stat.S_IMODE(os.stat(driver.path).st_mode) == 0o600

        reopened = FileDriver("my-app", directory=str(tmp_path))
        assert await reopened.get("refreshToken") == "refresh"

        await driver.remove("accessToken")
        assert await driver.get("accessToken") is None
        assert await driver.get("refreshToken") == "refresh"

    @pytest.mark.asyncio
    async def test_file_driver_corrupt_file(self, tmp_path):
        """Test a corrupt token file reads as empty."""
        (tmp_path / "my-app.json").write_text("{not json")
        driver = FileDriver("my-app", directory=str(tmp_path))

        assert await driver.get("accessToken") is None

    @pytest.mark.asyncio
    async def test_file_driver_unwritable(self, tmp_path):
        """Test write failures surface as StorageError."""
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        driver = FileDriver("my-app", directory=str(blocker))

        with pytest.raises(StorageError):
            await driver.set("accessToken", "access")

    @pytest.mark.asyncio
    async def test_environment_driver(self, monkeypatch):
        """Test environment driver maps keys to prefixed variables."""
        monkeypatch.delenv("MY_APP_ACCESSTOKEN", raising=False)
        driver = EnvironmentDriver("my-app")

        await driver.set("accessToken", "access")
        assert os.environ["MY_APP_ACCESSTOKEN"] == "access"
        assert await driver.get("accessToken") == "access"

        await driver.remove("accessToken")
        assert "MY_APP_ACCESSTOKEN" not in os.environ


# =============================================================================
# TokenStore Tests
# =============================================================================

class TestTokenStore:
    """Tests for TokenStore."""

    @pytest.mark.asyncio
    async def test_round_trip(self, memory_driver: MemoryDriver):
        """Test save followed by load yields the same pair."""
        store = TokenStore(memory_driver)

        assert await store.save(PAIR) == PAIR
        assert await store.load() == PAIR

    @pytest.mark.asyncio
    async def test_load_empty(self, memory_driver: MemoryDriver):
        """Test loading with nothing stored."""
        store = TokenStore(memory_driver)

        with pytest.raises(NoStoredTokensError):
            await store.load()

    @pytest.mark.asyncio
    async def test_load_partial(self, memory_driver: MemoryDriver):
        """Test a stored access token without refresh token counts as absent."""
        await memory_driver.set("accessToken", "access_only")
        store = TokenStore(memory_driver)

        with pytest.raises(NoStoredTokensError):
            await store.load()

    @pytest.mark.asyncio
    async def test_clear(self, memory_driver: MemoryDriver):
        """Test clear removes both tokens and is idempotent."""
        store = TokenStore(memory_driver)
        await store.save(PAIR)

        await store.clear()
        await store.clear()

        assert await memory_driver.get("accessToken") is None
        assert await memory_driver.get("refreshToken") is None

    @pytest.mark.asyncio
    async def test_driver_failure_on_save(self):
        """Test a failing second write is surfaced after the first landed."""
        driver = AsyncMock()
        driver.set.side_effect = [None, OSError("disk full")]
        store = TokenStore(driver)

        with pytest.raises(StorageError) as exc_info:
            await store.save(PAIR)

        assert "disk full" in exc_info.value.message
        assert driver.set.call_count == 2

    @pytest.mark.asyncio
    async def test_driver_failure_on_load(self):
        """Test read failures are not mistaken for missing tokens."""
        driver = AsyncMock()
        driver.get.side_effect = OSError("unavailable")
        store = TokenStore(driver)

        with pytest.raises(StorageError):
            await store.load()


# =============================================================================
# TokenSource Tests
# =============================================================================

class TestTokenSource:
    """Tests for TokenSource."""

    @pytest.mark.asyncio
    async def test_complete_candidate_skips_storage(self):
        """Test a full candidate pair is returned without any storage I/O."""
        driver = _counting_driver()
        source = TokenSource(TokenStore(driver), PAIR)

        assert await source.resolve() is PAIR
        assert driver.get.call_count == 0
        assert driver.set.call_count == 0

    @pytest.mark.asyncio
    async def test_mapping_candidate(self):
        """Test a camelCase mapping from application state is accepted."""
        driver = _counting_driver()
        source = TokenSource(
            TokenStore(driver),
            {"accessToken": "access_abc", "refreshToken": "refresh_abc"},
        )

        assert await source.resolve() == PAIR
        driver.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_incomplete_candidate_falls_back(self):
        """Test a half-populated candidate is ignored in favour of storage."""
        driver = _counting_driver({"accessToken": "stored_a", "refreshToken": "stored_r"})
        source = TokenSource(
            TokenStore(driver),
            TokenPair(access_token="access_abc", refresh_token=""),
        )

        pair = await source.resolve()

        assert pair == TokenPair(access_token="stored_a", refresh_token="stored_r")
        assert driver.get.call_count == 2

    @pytest.mark.asyncio
    async def test_no_candidate_and_empty_storage(self):
        """Test the caller is told to authenticate."""
        source = TokenSource(TokenStore(_counting_driver()))

        with pytest.raises(NoStoredTokensError):
            await source.resolve()

    @pytest.mark.asyncio
    async def test_resolve_argument_overrides(self):
        """Test a candidate passed to resolve wins over the constructor one."""
        driver = _counting_driver()
        source = TokenSource(TokenStore(driver), None)

        assert await source.resolve(PAIR) is PAIR
        driver.get.assert_not_called()
