"""Pytest configuration and fixtures for api-cache-proxy tests."""

import pytest
import pytest_asyncio
import fakeredis.aioredis

# Add the project root to the Python path
import sys
from pathlib import Path

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from apicache.cache.base import CacheEntry, now_ms
from apicache.config import Config


@pytest.fixture
def sample_entry():
    """A fresh cached recipe search response."""
    return CacheEntry(data={"id": 1, "title": "Pasta al limone"}, time_stored=now_ms(), status=200)


@pytest.fixture
def cache_file(tmp_path):
    """Snapshot path inside a per-test directory."""
    return tmp_path / "cache" / "cache.json"


@pytest.fixture
def test_config(cache_file):
    """Configuration for an isolated proxy instance."""
    return Config(
        upstream_base_url="https://upstream.test",
        upstream_api_key="test-upstream-key",
        upstream_api_key_header="x-api-key",
        cache_ttl_seconds=1800,
        cache_file=str(cache_file),
        redis_url="",
        strip_query_params="apiKey",
        cors_allow_origins="*",
        log_level="DEBUG",
    )


@pytest_asyncio.fixture
async def fake_redis():
    """In-process Redis replacement."""
    client = fakeredis.aioredis.FakeRedis(decode_responses=True)
    # FakeRedis instances share one server by default
    await client.flushall()
    yield client
    await client.aclose()
