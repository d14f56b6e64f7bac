"""Provider selection: capability filtering plus strategy ranking.

Usage:
    from dispatchr.routing.selector import ProviderSelector

    selector = ProviderSelector(registry, strategy=Strategy.COST_OPTIMIZED)
    provider = selector.select(RequestDescriptor.from_text(prompt))
"""

import logging
from typing import List, Optional, Union

from dispatchr.core.errors import NoCompatibleProviderError, NoProvidersAvailableError
from dispatchr.providers.base import Provider
from dispatchr.providers.registry import ProviderRegistry
from dispatchr.routing.models import RequestDescriptor, Strategy
from dispatchr.routing.scoring import fits_request, rank_providers

logger = logging.getLogger(__name__)


def match_preferred(candidates: List[Provider], preferred: str) -> Optional[Provider]:
    """Find a preferred provider by case-insensitive name, then by substring."""
    wanted = preferred.strip().lower()
    if not wanted:
        return None
    for provider in candidates:
        if provider.name.lower() == wanted:
            return provider
    for provider in candidates:
        if wanted in provider.name.lower():
            return provider
    return None


class ProviderSelector:
    """Chooses providers for requests under a selection strategy.

    Attributes:
        registry: Providers to choose from
        strategy: Default strategy when a call does not name one
        preferred_provider: Provider moved to the head of every ranking it survives
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        strategy: Union[Strategy, str] = Strategy.BALANCED,
        preferred_provider: Optional[str] = None,
    ):
        self.registry = registry
        self.strategy = Strategy.parse(strategy)
        self.preferred_provider = preferred_provider

    def available_providers(self) -> List[Provider]:
        """Registered providers that report themselves available."""
        return self.registry.available()

    def rank(
        self, request: RequestDescriptor, strategy: Optional[Union[Strategy, str]] = None
    ) -> List[Provider]:
        """Rank available providers for a request, best first.

        Args:
            request: Request being routed
            strategy: Overrides the selector's default strategy

        Returns:
            Non-empty list of ranked providers

        Raises:
            NoProvidersAvailableError: If no provider is registered or available
            NoCompatibleProviderError: If every provider fails the capability filter
        """
        chosen = Strategy.parse(strategy) if strategy is not None else self.strategy

        available = self.available_providers()
        if not available:
            raise NoProvidersAvailableError(registered=len(self.registry))

        candidates = [p for p in available if fits_request(p, request)]
        if not candidates:
            raise NoCompatibleProviderError(
                f"request of {request.estimated_units} units exceeds every provider's limit",
                strategy=chosen.value,
                candidates=[p.name for p in available],
            )

        ranked = rank_providers(candidates, request, chosen)
        if not ranked:
            required = sorted(f.value for f in request.required_features) or ["none"]
            raise NoCompatibleProviderError(
                f"no provider exactly matches required features ({', '.join(required)})",
                strategy=chosen.value,
                candidates=[p.name for p in candidates],
            )

        preferred = request.preferred_provider or self.preferred_provider
        if preferred:
            match = match_preferred(ranked, preferred)
            if match is not None:
                ranked.remove(match)
                ranked.insert(0, match)
            else:
                logger.warning(
                    "Preferred provider '%s' is not a compatible candidate, using %s ranking",
                    preferred,
                    chosen.value,
                )

        logger.info(
            "Selected %s (%s), fallbacks: %s",
            ranked[0].name,
            chosen.value,
            [p.name for p in ranked[1:]],
        )
        return ranked

    def select(self, request: RequestDescriptor, strategy: Optional[Union[Strategy, str]] = None) -> Provider:
        """Pick the single best provider for a request.

        Raises:
            NoProvidersAvailableError: If no provider is registered or available
            NoCompatibleProviderError: If every provider fails the capability filter
        """
        return self.rank(request, strategy)[0]

    def estimate_cost(self, request: RequestDescriptor) -> float:
        """Cheapest estimate across available providers that can take the request.

        Providers whose estimate raises are skipped. Returns 0.0 when no
        provider is compatible.
        """
        estimates = []
        for provider in self.available_providers():
            if not fits_request(provider, request):
                continue
            try:
                estimates.append(float(provider.estimate_cost(request.estimated_units, request.options)))
            except Exception as e:
                logger.warning("Cost estimate failed for %s: %s", provider.name, e)
        return min(estimates) if estimates else 0.0
