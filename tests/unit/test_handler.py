"""Unit tests for the caching request flow."""

import pytest
import pytest_asyncio
from unittest.mock import AsyncMock, MagicMock, patch

from apicache.cache.base import CacheDecodeError, CacheEntry, CacheOperationError, now_ms
from apicache.cache.manager import CacheManager
from apicache.handler import CachingProxy
from apicache.upstream import UpstreamResponse

TTL = 1800
KEY = "GET /recipes?query=pasta"


@pytest.fixture
def upstream():
    """Upstream stub answering every request with one recipe."""
    client = MagicMock()
    client.request = AsyncMock(return_value=UpstreamResponse(status=200, data={"id": 1}))
    return client


@pytest_asyncio.fixture
async def manager(cache_file):
    manager = CacheManager({"ttl_seconds": TTL, "cache_file": str(cache_file), "redis_url": ""})
    await manager.initialize()
    return manager


@pytest.fixture
def proxy(manager, upstream):
    return CachingProxy(manager, upstream, ttl_seconds=TTL)


class TestCacheFlow:
    """Miss, hit and expiry through the file backend."""

    @pytest.mark.asyncio
    async def test_miss_calls_upstream_and_stores(self, proxy, manager, upstream):
        entry = await proxy.handle("GET", "/recipes", "query=pasta")

        assert entry.data == {"id": 1}
        assert entry.status == 200
        upstream.request.assert_awaited_once_with("GET", "/recipes?query=pasta")
        assert await manager.backend.get(KEY) == entry

    @pytest.mark.asyncio
    async def test_fresh_hit_skips_upstream(self, proxy, manager, upstream):
        stored = CacheEntry(data={"id": 1}, time_stored=now_ms(), status=200)
        await manager.backend.set(KEY, stored)

        entry = await proxy.handle("GET", "/recipes", "query=pasta")

        assert entry == stored
        upstream.request.assert_not_called()

    @pytest.mark.asyncio
    async def test_stale_hit_is_deleted_and_refetched(self, proxy, manager, upstream):
        stale = CacheEntry(data={"id": 0}, time_stored=now_ms() - TTL * 1000 - 1, status=200)
        await manager.backend.set(KEY, stale)

        with patch.object(manager.backend, "delete", wraps=manager.backend.delete) as delete:
            entry = await proxy.handle("GET", "/recipes", "query=pasta")

        delete.assert_awaited_once_with(KEY)
        upstream.request.assert_awaited_once()
        assert entry.data == {"id": 1}
        assert await manager.backend.get(KEY) == entry

    @pytest.mark.asyncio
    async def test_scenario_within_and_after_ttl(self, proxy, manager, upstream):
        """Set, read within TTL, then read after TTL has elapsed."""
        t = 1_700_000_000_000
        stored = CacheEntry(data={"id": 1}, status=200, time_stored=t)
        await manager.backend.set(KEY, stored)

        with patch("apicache.cache.base.now_ms", return_value=t + 1000):
            assert await proxy.handle("GET", "/recipes", "query=pasta") == stored
        upstream.request.assert_not_called()

        with patch("apicache.cache.base.now_ms", return_value=t + TTL * 1000):
            await proxy.handle("GET", "/recipes", "query=pasta")
        upstream.request.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_credentials_share_entry(self, proxy, upstream):
        await proxy.handle("GET", "/recipes", "query=pasta&apiKey=alice")
        await proxy.handle("GET", "/recipes", "apiKey=bob&query=pasta")

        upstream.request.assert_awaited_once_with("GET", "/recipes?query=pasta")

    @pytest.mark.asyncio
    async def test_failed_upstream_cached_without_body(self, proxy, manager, upstream):
        upstream.request.return_value = UpstreamResponse(status=500, data=None)

        entry = await proxy.handle("GET", "/recipes", "query=pasta")

        assert entry.data is None
        assert entry.status == 500
        assert (await manager.backend.get(KEY)).status == 500


class TestCacheDegradation:
    """Cache failures and an unselected backend degrade to uncached replies."""

    @pytest.mark.asyncio
    async def test_not_ready_is_forced_miss(self, cache_file, upstream):
        manager = CacheManager({"ttl_seconds": TTL, "cache_file": str(cache_file), "redis_url": ""})
        proxy = CachingProxy(manager, upstream, ttl_seconds=TTL)

        first = await proxy.handle("GET", "/recipes", "query=pasta")
        second = await proxy.handle("GET", "/recipes", "query=pasta")

        assert first.data == second.data == {"id": 1}
        assert upstream.request.await_count == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [CacheOperationError("GET failed"), CacheDecodeError("corrupt")])
    async def test_lookup_error_treated_as_miss(self, proxy, manager, upstream, error):
        manager.backend.get = AsyncMock(side_effect=error)

        with patch("apicache.handler.log_error") as mock_log_error:
            entry = await proxy.handle("GET", "/recipes", "query=pasta")

        assert entry.data == {"id": 1}
        upstream.request.assert_awaited_once()
        mock_log_error.assert_called_once()

    @pytest.mark.asyncio
    async def test_write_error_still_replies(self, proxy, manager, upstream):
        manager.backend.set = AsyncMock(side_effect=CacheOperationError("SETEX failed"))

        with patch("apicache.handler.log_error") as mock_log_error:
            entry = await proxy.handle("GET", "/recipes", "query=pasta")

        assert entry.status == 200
        mock_log_error.assert_called_once()
