"""Fallback orchestration across ranked providers.

Provides:
- FallbackOrchestrator: select, execute, gate on confidence, fall back
- ServiceHealth: aggregate health across available providers
- build_dispatcher: wires registry, selector, health cache and cost ledger

Flow for one dispatch:
    1. Rank available providers for the request (selector)
    2. Optionally demote providers whose health is unhealthy
    3. Try the head; accept iff success and confidence >= threshold
    4. Otherwise try the next ranked provider, up to max_fallback_attempts
    5. Return an accepted result, or a failure listing every attempt

Per-attempt errors never escape dispatch(); they become AttemptRecords.
Only invalid input raises. Cancellation propagates unchanged.

Usage:
    from dispatchr.routing.orchestrator import build_dispatcher

    dispatcher = build_dispatcher([primary, backup])
    outcome = await dispatcher.dispatch(RequestDescriptor.from_text(prompt))
    if outcome.success:
        print(outcome.result.payload)
    else:
        print(outcome.summary())
"""

import asyncio
import logging
import math
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from dispatchr.core.errors import (
    FallbackExhaustedError,
    InvalidInputError,
    LowConfidenceError,
    ProviderExecutionError,
    RoutingError,
)
from dispatchr.core.settings import Settings, get_settings
from dispatchr.observability.costs import CostLedger, CostReport
from dispatchr.observability.health_cache import Clock, HealthCache
from dispatchr.providers.base import Feature, HealthStatus, Provider, ProviderResult, sanitize_cost
from dispatchr.providers.registry import ProviderRegistry
from dispatchr.routing.enrichment import enrich_language, synthesize_confidence
from dispatchr.routing.models import (
    AttemptOutcome,
    AttemptRecord,
    DispatchResult,
    RequestDescriptor,
    Strategy,
)
from dispatchr.routing.selector import ProviderSelector

logger = logging.getLogger(__name__)

DISPATCH_TIMEOUT = "DISPATCH_TIMEOUT"


def _utc_now() -> datetime:
    """Return current UTC time (timezone-aware)."""
    return datetime.now(timezone.utc)


@dataclass
class ServiceHealth:
    """Aggregate health of the dispatcher's available providers.

    Attributes:
        is_healthy: True when at least one provider is healthy
        healthy_count: Providers reporting healthy
        total_count: Providers probed
        success_rate: healthy_count / total_count as a percentage
        providers: Per-provider status
        checked_at: When the aggregate was built
    """
    is_healthy: bool
    healthy_count: int
    total_count: int
    success_rate: float
    providers: Dict[str, HealthStatus] = field(default_factory=dict)
    checked_at: datetime = field(default_factory=_utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_healthy": self.is_healthy,
            "healthy_count": self.healthy_count,
            "total_count": self.total_count,
            "success_rate": round(self.success_rate, 2),
            "providers": {name: status.to_dict() for name, status in self.providers.items()},
            "checked_at": self.checked_at.isoformat(),
        }


class FallbackOrchestrator:
    """Drives selection, execution and fallback for requests.

    Shares one selector, health cache and cost ledger across any number
    of concurrent dispatches.
    """

    def __init__(
        self,
        selector: ProviderSelector,
        health_cache: HealthCache,
        cost_ledger: CostLedger,
        settings: Optional[Settings] = None,
    ):
        self.selector = selector
        self.health_cache = health_cache
        self.cost_ledger = cost_ledger
        self.settings = settings if settings is not None else get_settings()

    # ==========================================================================
    # Dispatch
    # ==========================================================================

    async def dispatch(
        self, request: RequestDescriptor, strategy: Optional[Union[Strategy, str]] = None
    ) -> DispatchResult:
        """Run the full select / execute / fallback flow for one request.

        Args:
            request: Work item to dispatch
            strategy: Overrides the selector's default strategy

        Returns:
            DispatchResult: accepted result, or failure with every attempt

        Raises:
            InvalidInputError: If the request is None or has out-of-range fields
        """
        if request is None:
            raise InvalidInputError("request", "must not be None")
        request.validate()
        chosen = Strategy.parse(strategy) if strategy is not None else self.selector.strategy

        timeout = request.timeout if request.timeout is not None else self.settings.routing.default_timeout
        attempts: List[AttemptRecord] = []
        try:
            return await asyncio.wait_for(self._run(request, chosen, attempts), timeout=timeout)
        except asyncio.TimeoutError:
            message = f"Dispatch timed out after {timeout:g}s ({len(attempts)} attempts completed)"
            logger.error(message)
            return DispatchResult.failed(DISPATCH_TIMEOUT, message, attempts, chosen.value)

    async def dispatch_batch(self, requests: Iterable[RequestDescriptor]) -> List[DispatchResult]:
        """Dispatch several requests concurrently, preserving order.

        Raises:
            InvalidInputError: If the batch exceeds max_batch_size or any request is invalid
        """
        batch = list(requests)
        limit = self.settings.max_batch_size
        if len(batch) > limit:
            raise InvalidInputError("requests", f"batch of {len(batch)} exceeds max batch size {limit}")
        for request in batch:
            if request is None:
                raise InvalidInputError("requests", "batch contains None")
            request.validate()

        logger.info("Dispatching batch of %d requests", len(batch))
        results = await asyncio.gather(*(self.dispatch(request) for request in batch))
        return list(results)

    async def _run(
        self, request: RequestDescriptor, strategy: Strategy, attempts: List[AttemptRecord]
    ) -> DispatchResult:
        try:
            ranked = self.selector.rank(request, strategy)
        except RoutingError as e:
            logger.error("Selection failed: %s", e.message)
            return DispatchResult.failed(e.error_code, e.message, strategy=strategy.value)

        if self.settings.enable_health_checks:
            ranked = await self._order_by_health(ranked)

        threshold = self._resolve_threshold(request)
        max_fallbacks = self._resolve_max_fallbacks(request)
        candidates = ranked[: 1 + max_fallbacks]

        for index, provider in enumerate(candidates):
            if index > 0:
                logger.info(
                    "Falling back to %s (fallback %d of %d)", provider.name, index, len(candidates) - 1
                )

            record, result = await self._attempt(provider, request, threshold)
            attempts.append(record)
            if result is None:
                continue

            if (
                self.settings.enrich_language
                and request.requires(Feature.LANGUAGE_DETECTION)
                and not provider.capabilities.supports(Feature.LANGUAGE_DETECTION)
            ):
                result = enrich_language(result)

            logger.info("Accepted result from %s after %d attempt(s)", provider.name, len(attempts))
            return DispatchResult.accepted(result, attempts, strategy.value)

        error = FallbackExhaustedError.from_attempts(attempts)
        logger.error(error.message)
        return DispatchResult.failed(error.error_code, error.message, attempts, strategy.value)

    async def _attempt(
        self, provider: Provider, request: RequestDescriptor, threshold: float
    ) -> Tuple[AttemptRecord, Optional[ProviderResult]]:
        """Execute one provider and judge its result.

        Returns the attempt record, plus the result when it was accepted.
        """
        name = provider.name
        start = time.perf_counter()
        try:
            result = await provider.execute(request.payload, request.options)
        except Exception as e:
            duration = time.perf_counter() - start
            error = ProviderExecutionError(
                f"provider threw: {type(e).__name__}: {e}", provider=name, original_error=e
            )
            logger.warning("Provider %s failed: %s", name, error.message)
            self._record_cost(name, 0.0)
            record = AttemptRecord(
                provider_name=name,
                outcome=AttemptOutcome.PROVIDER_ERROR,
                detail=error.message,
                threshold=threshold,
                duration=duration,
            )
            return record, None
        duration = time.perf_counter() - start

        if not isinstance(result, ProviderResult):
            detail = f"provider returned {type(result).__name__} instead of a result"
            logger.warning("Provider %s failed: %s", name, detail)
            self._record_cost(name, 0.0)
            record = AttemptRecord(
                provider_name=name,
                outcome=AttemptOutcome.PROVIDER_ERROR,
                detail=detail,
                threshold=threshold,
                duration=duration,
            )
            return record, None

        cost = sanitize_cost(result.cost)
        if cost != result.cost:
            logger.warning("Provider %s reported invalid cost %r, recording 0.0", name, result.cost)
        self._record_cost(name, cost)
        result = result.with_updates(
            provider_name=result.provider_name or name,
            cost=cost,
            duration=result.duration or duration,
        )

        if not result.success:
            detail = f"provider failed: {result.error or 'no error detail'}"
            logger.warning("Provider %s failed: %s", name, detail)
            record = AttemptRecord(
                provider_name=name,
                outcome=AttemptOutcome.PROVIDER_FAILED,
                detail=detail,
                confidence=result.confidence,
                threshold=threshold,
                cost=cost,
                duration=result.duration,
            )
            return record, None

        if result.confidence is None:
            if provider.capabilities.supports(Feature.CONFIDENCE_SCORES):
                # Counted as 0.0 below
                logger.warning("Provider %s reports confidence scores but returned none", name)
            elif self.settings.enrich_confidence:
                result = synthesize_confidence(result)

        confidence = result.confidence
        if confidence is None or not math.isfinite(confidence):
            confidence = 0.0

        if confidence < threshold:
            error = LowConfidenceError(name, confidence, threshold)
            logger.warning(error.message)
            record = AttemptRecord(
                provider_name=name,
                outcome=AttemptOutcome.LOW_CONFIDENCE,
                detail=f"low confidence: {confidence:.2f} < {threshold:.2f}",
                confidence=confidence,
                threshold=threshold,
                cost=cost,
                duration=result.duration,
            )
            return record, None

        record = AttemptRecord(
            provider_name=name,
            outcome=AttemptOutcome.ACCEPTED,
            detail=f"confidence {confidence:.2f} >= {threshold:.2f}",
            confidence=confidence,
            threshold=threshold,
            cost=cost,
            duration=result.duration,
        )
        return record, result

    async def _order_by_health(self, ranked: List[Provider]) -> List[Provider]:
        """Move unhealthy providers behind healthy ones, keeping relative order."""
        statuses = await asyncio.gather(*(self.health_cache.get_health(p) for p in ranked))
        healthy = [p for p, s in zip(ranked, statuses) if s.is_healthy]
        unhealthy = [p for p, s in zip(ranked, statuses) if not s.is_healthy]
        if unhealthy:
            logger.info("Demoting unhealthy providers: %s", [p.name for p in unhealthy])
        return healthy + unhealthy

    def _record_cost(self, provider_name: str, amount: float) -> None:
        if self.settings.enable_cost_tracking:
            self.cost_ledger.record_cost(provider_name, amount)

    def _resolve_threshold(self, request: RequestDescriptor) -> float:
        if request.confidence_threshold is not None:
            return request.confidence_threshold
        return self.settings.routing.confidence_threshold

    def _resolve_max_fallbacks(self, request: RequestDescriptor) -> int:
        if not self.settings.routing.enable_fallback:
            return 0
        if request.max_fallback_attempts is not None:
            return request.max_fallback_attempts
        configured = self.settings.routing.max_fallback_attempts
        if configured < 0:
            logger.warning("Ignoring negative max_fallback_attempts setting (%d); using 0", configured)
            return 0
        return configured

    # ==========================================================================
    # Queries
    # ==========================================================================

    def select(self, request: RequestDescriptor, strategy: Optional[Union[Strategy, str]] = None) -> Provider:
        """Pure selection without execution.

        Raises:
            NoProvidersAvailableError: If no provider is registered or available
            NoCompatibleProviderError: If every provider fails the capability filter
        """
        if request is None:
            raise InvalidInputError("request", "must not be None")
        request.validate()
        return self.selector.select(request, strategy)

    async def get_health(self, provider_name: str) -> HealthStatus:
        return await self.health_cache.get_health(provider_name)

    def get_cost_report(self) -> CostReport:
        return self.cost_ledger.generate_report()

    def is_available(self) -> bool:
        """True when at least one provider reports itself available."""
        return bool(self.selector.available_providers())

    async def get_service_health(self) -> ServiceHealth:
        """Probe every available provider through the health cache and aggregate."""
        providers = self.selector.available_providers()
        statuses = await asyncio.gather(*(self.health_cache.get_health(p) for p in providers))
        by_name = {p.name: s for p, s in zip(providers, statuses)}
        healthy_count = sum(1 for s in statuses if s.is_healthy)
        total = len(providers)
        success_rate = (healthy_count / total * 100.0) if total else 0.0
        return ServiceHealth(
            is_healthy=healthy_count > 0,
            healthy_count=healthy_count,
            total_count=total,
            success_rate=success_rate,
            providers=by_name,
        )


def build_dispatcher(
    providers: Union[ProviderRegistry, Iterable[Provider]],
    settings: Optional[Settings] = None,
    clock: Optional[Clock] = None,
) -> FallbackOrchestrator:
    """Wire a registry, selector, health cache and cost ledger into an orchestrator.

    Args:
        providers: A registry, or providers to register
        settings: Settings to use (defaults to the global settings)
        clock: Clock for the health cache, injectable for tests

    Returns:
        Ready-to-use FallbackOrchestrator
    """
    settings = settings if settings is not None else get_settings()
    registry = providers if isinstance(providers, ProviderRegistry) else ProviderRegistry(providers)
    selector = ProviderSelector(
        registry,
        strategy=settings.routing.strategy,
        preferred_provider=settings.routing.preferred_provider,
    )
    cache = HealthCache(registry, ttl_seconds=settings.health.cache_ttl_seconds, clock=clock)
    return FallbackOrchestrator(selector, cache, CostLedger(), settings)
