"""Tests for the TTL health cache.

Tests cover:
- Probe reuse within the TTL and re-probing after it
- Unknown providers and failing probes
- Invalidation and clearing
"""

import asyncio

import pytest

from dispatchr.observability.health_cache import HealthCache
from dispatchr.providers.base import HealthStatus
from dispatchr.providers.registry import ProviderRegistry


@pytest.fixture
def registry(make_provider):
    return ProviderRegistry([
        make_provider("fast", health=True),
        make_provider("flaky", health=ConnectionError("connection refused")),
        make_provider("down", health=False),
    ])


class TestHealthCacheTTL:
    """Tests for snapshot freshness."""

    @pytest.mark.asyncio
    async def test_single_probe_within_ttl(self, registry, clock):
        """Two lookups inside the TTL should probe once."""
        cache = HealthCache(registry, ttl_seconds=300, clock=clock)

        first = await cache.get_health("fast")
        clock.advance(299)
        second = await cache.get_health("fast")

        assert first.is_healthy and second.is_healthy
        assert registry.get("fast").probe.calls == 1
        assert cache.probe_count == 1

    @pytest.mark.asyncio
    async def test_reprobe_after_ttl(self, registry, clock):
        """A lookup at or past the TTL should probe again."""
        cache = HealthCache(registry, ttl_seconds=300, clock=clock)

        await cache.get_health("fast")
        clock.advance(300)
        status = await cache.get_health("fast")

        assert registry.get("fast").probe.calls == 2
        assert status.last_checked == clock()

    @pytest.mark.asyncio
    async def test_zero_ttl_always_probes(self, registry, clock):
        cache = HealthCache(registry, ttl_seconds=0, clock=clock)

        await cache.get_health("fast")
        await cache.get_health("fast")

        assert cache.probe_count == 2

    @pytest.mark.asyncio
    async def test_accepts_provider_instance(self, registry, clock):
        cache = HealthCache(registry, ttl_seconds=60, clock=clock)
        provider = registry.get("fast")

        await cache.get_health(provider)
        await cache.get_health("fast")

        assert provider.probe.calls == 1

    @pytest.mark.asyncio
    async def test_peek_does_not_probe(self, registry, clock):
        cache = HealthCache(registry, ttl_seconds=60, clock=clock)
        assert cache.peek("fast") is None

        await cache.get_health("fast")
        assert cache.peek("fast").is_healthy

        clock.advance(61)
        assert cache.peek("fast") is None
        assert cache.probe_count == 1


class TestHealthCacheFailures:
    """Tests for unknown providers and failing probes."""

    @pytest.mark.asyncio
    async def test_unknown_provider(self, registry, clock):
        cache = HealthCache(registry, clock=clock)

        status = await cache.get_health("ghost")

        assert not status.is_healthy
        assert status.status == "Provider not found"
        assert cache.probe_count == 0
        assert "ghost" not in cache.snapshot()

    @pytest.mark.asyncio
    async def test_probe_exception_becomes_unhealthy(self, registry, clock):
        """A probe that raises should not propagate."""
        cache = HealthCache(registry, clock=clock)

        status = await cache.get_health("flaky")

        assert not status.is_healthy
        assert status.status == "Health check failed: connection refused"
        assert status.provider_name == "flaky"

    @pytest.mark.asyncio
    async def test_failed_probe_is_cached(self, registry, clock):
        cache = HealthCache(registry, ttl_seconds=60, clock=clock)

        await cache.get_health("flaky")
        await cache.get_health("flaky")

        assert registry.get("flaky").probe.calls == 1

    @pytest.mark.asyncio
    async def test_unhealthy_probe(self, registry, clock):
        cache = HealthCache(registry, clock=clock)
        status = await cache.get_health("down")
        assert not status.is_healthy

    @pytest.mark.asyncio
    async def test_non_status_probe_result(self, clock):
        from dispatchr.providers.callable_provider import CallableProvider

        class OddProvider(CallableProvider):
            async def check_health(self):
                return "fine"

        cache = HealthCache(ProviderRegistry([OddProvider("odd")]), clock=clock)

        status = await cache.get_health("odd")

        assert not status.is_healthy
        assert status.status == "Health check returned no status"

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, clock):
        from dispatchr.providers.callable_provider import CallableProvider

        async def slow_probe():
            await asyncio.sleep(10)
            return True

        cache = HealthCache(ProviderRegistry([CallableProvider("slow", health_check=slow_probe)]), clock=clock)
        task = asyncio.ensure_future(cache.get_health("slow"))
        await asyncio.sleep(0)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

    @pytest.mark.asyncio
    async def test_cache_restamps_provider_status(self, clock):
        from dispatchr.providers.callable_provider import CallableProvider

        stale = HealthStatus.healthy("other-name")
        cache = HealthCache(ProviderRegistry([CallableProvider("a", health_check=lambda: stale)]), clock=clock)

        status = await cache.get_health("a")

        assert status.provider_name == "a"
        assert status.last_checked == clock()


class TestHealthCacheInvalidation:
    """Tests for invalidate() and clear()."""

    @pytest.mark.asyncio
    async def test_invalidate_forces_reprobe(self, registry, clock):
        cache = HealthCache(registry, ttl_seconds=300, clock=clock)
        await cache.get_health("fast")

        assert cache.invalidate("fast") is True
        assert cache.invalidate("fast") is False

        await cache.get_health("fast")
        assert registry.get("fast").probe.calls == 2

    @pytest.mark.asyncio
    async def test_clear(self, registry, clock):
        cache = HealthCache(registry, ttl_seconds=300, clock=clock)
        await cache.get_health("fast")
        await cache.get_health("down")

        cache.clear()

        assert cache.snapshot() == {}
        await cache.get_health("fast")
        assert registry.get("fast").probe.calls == 2

    def test_default_ttl(self, registry):
        assert HealthCache(registry).ttl_seconds == 300.0
