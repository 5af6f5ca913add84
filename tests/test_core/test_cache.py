"""Tests for the lookup result cache."""

import pytest

from app.api.v1.geo_lookup.models import ResolvedResponse
from app.core.cache import ResultCache


@pytest.fixture
def cache(memory_store) -> ResultCache[ResolvedResponse]:
    return ResultCache(
        memory_store, ResolvedResponse, ttl_seconds=3600, degraded_ttl_seconds=300
    )


def make_response(**overrides) -> ResolvedResponse:
    values = {
        "country": "US",
        "geocoder": "primary",
        "latency_ms": 120,
        "local_count": 0,
        "national_count": 0,
    }
    values.update(overrides)
    return ResolvedResponse(**values)


class TestResultCache:
    """Round trips, expiry and corrupt entries."""

    async def test_should_miss_when_empty(self, cache):
        assert await cache.get("US:10001") is None

    async def test_should_return_stored_model(self, cache):
        response = make_response()
        await cache.put("US:10001", response)

        assert await cache.get("US:10001") == response

    async def test_should_expire_after_ttl(self, cache, fake_clock):
        await cache.put("US:10001", make_response())
        fake_clock.advance(3599)
        assert await cache.get("US:10001") is not None

        fake_clock.advance(1)
        assert await cache.get("US:10001") is None

    async def test_should_use_short_ttl_for_degraded_results(self, cache, fake_clock):
        degraded = make_response(geocoder="none", error="Could not locate postal code")
        await cache.put_degraded("US:10001", degraded)
        fake_clock.advance(300)

        assert await cache.get("US:10001") is None

    async def test_should_drop_corrupt_entry(self, cache, memory_store):
        await memory_store.set("geo:US:10001", "{not json", ttl_seconds=60)

        assert await cache.get("US:10001") is None
        assert await memory_store.get("geo:US:10001") is None

    async def test_should_store_under_prefix(self, cache, memory_store):
        await cache.put("CA:M5V 2T6", make_response(country="CA"))

        assert await memory_store.get("geo:CA:M5V 2T6") is not None
        assert await cache.size() == 1
