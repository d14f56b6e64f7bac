"""Observability module for Dispatchr.

Provides the provider health cache and the cost ledger.
"""

from dispatchr.observability.costs import CostLedger, CostReport, ProviderCostInfo
from dispatchr.observability.health_cache import HealthCache

__all__ = [
    "CostLedger",
    "CostReport",
    "HealthCache",
    "ProviderCostInfo",
]
