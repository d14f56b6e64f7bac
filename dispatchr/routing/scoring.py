"""Strategy scoring for provider ranking.

Every function here is pure: identical providers and requests always
produce the same ranking. Strategies are a function table keyed by
Strategy, not a class hierarchy.

Ranking rules:
    COST_OPTIMIZED         ascending cost_per_unit
    PERFORMANCE_OPTIMIZED  ascending average_response_time
    RELIABILITY_OPTIMIZED  descending reliability_score
    CAPABILITY_OPTIMIZED   exact feature match, then descending capability_score
    QUALITY_OPTIMIZED      descending quality_score
    BALANCED               descending balanced_score
    LOAD_BALANCED          stable hash of the request picks the head

Ties rank by provider name ascending: candidates are name-ordered before
the stable sort by strategy key, so registration order never matters.
Keys within a relative tolerance of each other count as ties.
"""

import hashlib
import logging
import math
from functools import cmp_to_key
from typing import Callable, Dict, List, Optional, Sequence

from dispatchr.core import constants
from dispatchr.providers.base import Capabilities, Feature, Provider
from dispatchr.routing.models import RequestDescriptor, Strategy

logger = logging.getLogger(__name__)

# Weight for each requested feature the provider supports
CAPABILITY_WEIGHTS: Dict[Feature, float] = {
    Feature.FUNCTION_CALLING: 0.4,
    Feature.VISION: 0.3,
    Feature.LANGUAGE_DETECTION: 0.3,
    Feature.HANDWRITING: 0.3,
    Feature.TABLES: 0.2,
    Feature.FORMS: 0.2,
}
LONG_CONTEXT_BONUS = 0.2
HEADROOM_BONUS = 0.1

# Optional features that must match the request exactly under CAPABILITY_OPTIMIZED
EXACT_MATCH_FEATURES = (
    Feature.FUNCTION_CALLING,
    Feature.VISION,
    Feature.TABLES,
    Feature.HANDWRITING,
    Feature.FORMS,
    Feature.LANGUAGE_DETECTION,
)

BALANCED_COST_WEIGHT = 0.4
BALANCED_PERFORMANCE_WEIGHT = 0.3
BALANCED_CAPABILITY_WEIGHT = 0.3


# =============================================================================
# Filters
# =============================================================================


def fits_request(provider: Provider, request: RequestDescriptor) -> bool:
    """Universal pre-filter: the provider accepts a request of this size."""
    return provider.capabilities.max_units_per_request >= request.estimated_units


def matches_features_exactly(provider: Provider, request: RequestDescriptor) -> bool:
    """Provider support equals request requirement for every optional feature."""
    caps = provider.capabilities
    return all(caps.supports(f) == request.requires(f) for f in EXACT_MATCH_FEATURES)


# =============================================================================
# Scores (higher is better)
# =============================================================================


def reliability_score(caps: Capabilities) -> float:
    score = 0.0
    if caps.supports(Feature.LONG_CONTEXT):
        score += 0.3
    if caps.supports(Feature.FUNCTION_CALLING):
        score += 0.2
    if caps.supports(Feature.VISION):
        score += 0.1
    if caps.max_units_per_request > constants.LARGE_CONTEXT_THRESHOLD:
        score += 0.2
    if caps.average_response_time < constants.RELIABILITY_FAST_RESPONSE_SECONDS:
        score += 0.2
    return score


def capability_score(caps: Capabilities, request: RequestDescriptor) -> float:
    """Weighted match of requested features the provider supports, plus headroom."""
    score = 0.0
    for feature, weight in CAPABILITY_WEIGHTS.items():
        if request.requires(feature) and caps.supports(feature):
            score += weight
    if caps.supports(Feature.LONG_CONTEXT):
        score += LONG_CONTEXT_BONUS
    if caps.max_units_per_request >= 2 * request.estimated_units:
        score += HEADROOM_BONUS
    return score


def quality_score(caps: Capabilities) -> float:
    score = 0.0
    if caps.supports(Feature.FUNCTION_CALLING):
        score += 0.3
    if caps.supports(Feature.LONG_CONTEXT):
        score += 0.2
    if caps.max_units_per_request > constants.QUALITY_CONTEXT_THRESHOLD:
        score += 0.2
    if caps.average_response_time < constants.QUALITY_FAST_RESPONSE_SECONDS:
        score += 0.2
    if caps.supports(Feature.VISION):
        score += 0.1
    return score


def balanced_score(caps: Capabilities, request: RequestDescriptor) -> float:
    """0.4 * cost score + 0.3 * performance score + 0.3 * capability score."""
    cost_score = 1.0 / (1.0 + 1000.0 * caps.cost_per_unit)
    performance_score = 1.0 / (1.0 + caps.average_response_time)
    return (
        BALANCED_COST_WEIGHT * cost_score
        + BALANCED_PERFORMANCE_WEIGHT * performance_score
        + BALANCED_CAPABILITY_WEIGHT * capability_score(caps, request)
    )


def load_balance_index(request: RequestDescriptor, count: int) -> int:
    """Deterministic bucket for a request, stable across processes."""
    if count <= 0:
        raise ValueError("count must be positive")
    key = request.routing_key if request.routing_key is not None else repr(request.payload)
    digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
    return int(digest, 16) % count


# =============================================================================
# Strategy table
# =============================================================================

# Sort keys: lower sorts first
SortKey = Callable[[Provider, RequestDescriptor], float]

_SORT_KEYS: Dict[Strategy, SortKey] = {
    Strategy.COST_OPTIMIZED: lambda p, r: p.capabilities.cost_per_unit,
    Strategy.PERFORMANCE_OPTIMIZED: lambda p, r: p.capabilities.average_response_time,
    Strategy.RELIABILITY_OPTIMIZED: lambda p, r: -reliability_score(p.capabilities),
    Strategy.CAPABILITY_OPTIMIZED: lambda p, r: -capability_score(p.capabilities, r),
    Strategy.QUALITY_OPTIMIZED: lambda p, r: -quality_score(p.capabilities),
    Strategy.BALANCED: lambda p, r: -balanced_score(p.capabilities, r),
}


# Relative tolerance under which two strategy keys count as a tie
KEY_TIE_TOLERANCE = 1e-9


def _compare_keys(left, right) -> int:
    """Order (key, provider) pairs by key; near-equal keys compare equal.

    The tolerance is relative, so tiny per-unit prices still order
    correctly while float noise in weighted sums keeps name order.
    """
    a, b = left[0], right[0]
    if math.isclose(a, b, rel_tol=KEY_TIE_TOLERANCE, abs_tol=0.0):
        return 0
    return -1 if a < b else 1


def strategy_score(provider: Provider, request: RequestDescriptor, strategy: Strategy) -> Optional[float]:
    """The value a strategy ranks by, for display.

    Cost and performance report the raw metric (lower is better); the
    scored strategies report their score (higher is better). Load
    balancing has no score.
    """
    key = _SORT_KEYS.get(strategy)
    if key is None:
        return None
    value = key(provider, request)
    if strategy in (Strategy.COST_OPTIMIZED, Strategy.PERFORMANCE_OPTIMIZED):
        return value
    return -value


def rank_providers(
    candidates: Sequence[Provider], request: RequestDescriptor, strategy: Strategy
) -> List[Provider]:
    """Order candidates best-first under a strategy.

    Candidates are expected to have passed fits_request(). Under
    CAPABILITY_OPTIMIZED, providers without an exact feature match are
    dropped, so the result may be empty.

    Args:
        candidates: Providers to rank
        request: Request being routed
        strategy: Ranking objective

    Returns:
        Ranked providers, best first
    """
    ordered = sorted(candidates, key=lambda p: p.name)

    if strategy == Strategy.LOAD_BALANCED:
        if not ordered:
            return []
        index = load_balance_index(request, len(ordered))
        return ordered[index:] + ordered[:index]

    if strategy == Strategy.CAPABILITY_OPTIMIZED:
        ordered = [p for p in ordered if matches_features_exactly(p, request)]

    key = _SORT_KEYS[strategy]
    keyed = [(key(p, request), p) for p in ordered]
    ranked = [p for _, p in sorted(keyed, key=cmp_to_key(_compare_keys))]
    logger.debug("Ranked under %s: %s", strategy.value, [p.name for p in ranked])
    return ranked
