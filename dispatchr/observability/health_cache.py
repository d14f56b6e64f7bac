"""TTL-based provider health cache.

Provides:
- HealthCache: per-provider HealthStatus snapshots trusted for a fixed TTL

A cached entry is valid while ``now - last_checked < ttl``. Past that the
provider's own probe runs again and the fresh status replaces the entry.
A probe that raises yields a synthetic unhealthy status; probe failures
never propagate to the caller. Cancellation does.

The lock guards the map only and is never held across the probe, so two
concurrent callers may each probe a stale provider once. The map itself is
never left inconsistent.

Usage:
    from dispatchr.observability.health_cache import HealthCache

    cache = HealthCache(registry, ttl_seconds=300)
    status = await cache.get_health("fast-llm")
    if not status.is_healthy:
        ...
"""

import logging
import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Dict, Optional, Union

from dispatchr.core import constants
from dispatchr.core.errors import HealthProbeError
from dispatchr.providers.base import HealthStatus, Provider
from dispatchr.providers.registry import ProviderRegistry

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    """Return current UTC time (timezone-aware)."""
    return datetime.now(timezone.utc)


class HealthCache:
    """Caches provider health probes for a fixed time-to-live.

    Attributes:
        ttl_seconds: Seconds a snapshot is trusted without re-probing
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        ttl_seconds: Optional[float] = None,
        clock: Optional[Clock] = None,
    ):
        self._registry = registry
        self.ttl_seconds = float(constants.HEALTH_CACHE_TTL_SECONDS if ttl_seconds is None else ttl_seconds)
        self._clock = clock or _utc_now
        self._lock = threading.Lock()
        self._entries: Dict[str, HealthStatus] = {}
        self._probe_count = 0

    @property
    def probe_count(self) -> int:
        """Number of underlying probes issued since construction."""
        return self._probe_count

    def _is_fresh(self, status: HealthStatus, now: datetime) -> bool:
        return (now - status.last_checked).total_seconds() < self.ttl_seconds

    def peek(self, name: str) -> Optional[HealthStatus]:
        """Return the cached status if still fresh, without probing."""
        with self._lock:
            status = self._entries.get(name)
            if status is not None and self._is_fresh(status, self._clock()):
                return status
        return None

    async def get_health(self, provider: Union[str, Provider]) -> HealthStatus:
        """Get a provider's health, probing only when the cached entry is stale.

        Args:
            provider: Provider instance or registered name

        Returns:
            Cached or freshly probed HealthStatus. Unknown providers and
            failed probes yield an unhealthy status.
        """
        if isinstance(provider, str):
            resolved = self._registry.get(provider)
            if resolved is None:
                return HealthStatus.unhealthy(provider, "Provider not found", last_checked=self._clock())
            provider = resolved

        name = provider.name
        cached = self.peek(name)
        if cached is not None:
            logger.debug("Health cache hit for %s", name)
            return cached

        status = await self._probe(provider)
        with self._lock:
            self._entries[name] = status
        return status

    async def _probe(self, provider: Provider) -> HealthStatus:
        name = provider.name
        with self._lock:
            self._probe_count += 1
        try:
            status = await provider.check_health()
        except Exception as e:
            error = HealthProbeError(f"Health check failed: {e}", provider=name, original_error=e)
            logger.warning("Health probe failed for %s: %s", name, e)
            return HealthStatus.unhealthy(name, error.message, last_checked=self._clock())

        if not isinstance(status, HealthStatus):
            logger.warning("Health probe for %s returned %r, treating as unhealthy", name, status)
            return HealthStatus.unhealthy(name, "Health check returned no status", last_checked=self._clock())

        # The cache's clock owns freshness, whatever the provider stamped
        return replace(status, provider_name=name, last_checked=self._clock())

    def invalidate(self, name: str) -> bool:
        """Drop one cached entry. Returns True if an entry was removed."""
        with self._lock:
            return self._entries.pop(name, None) is not None

    def clear(self) -> None:
        """Drop every cached entry."""
        with self._lock:
            self._entries.clear()

    def snapshot(self) -> Dict[str, HealthStatus]:
        """Copy of every cached entry, fresh or stale."""
        with self._lock:
            return dict(self._entries)
