"""In-memory cost ledger for dispatched requests.

Tracks cumulative spend and request counts per provider for the lifetime
of the process. Every executed attempt is recorded, including attempts
that failed or were rejected for low confidence.

Usage:
    from dispatchr.observability.costs import CostLedger

    ledger = CostLedger()
    ledger.record_cost("fast-llm", 0.0021)

    print(ledger.get_total_cost())
    print(ledger.generate_report().to_dict())
"""

import logging
import math
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from dispatchr.core.errors import InvalidInputError

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    """Return current UTC time (timezone-aware)."""
    return datetime.now(timezone.utc)


@dataclass
class ProviderCostInfo:
    """Cost totals for a single provider.

    Attributes:
        provider_name: Provider these totals belong to
        total_cost: Cumulative USD recorded
        request_count: Number of recorded attempts
    """
    provider_name: str
    total_cost: float = 0.0
    request_count: int = 0

    @property
    def average_cost_per_request(self) -> float:
        if self.request_count == 0:
            return 0.0
        return self.total_cost / self.request_count

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider_name": self.provider_name,
            "total_cost": round(self.total_cost, 6),
            "request_count": self.request_count,
            "average_cost_per_request": round(self.average_cost_per_request, 6),
        }


@dataclass
class CostReport:
    """Snapshot of the ledger at a point in time."""
    total_cost: float
    total_requests: int
    providers: Dict[str, ProviderCostInfo] = field(default_factory=dict)
    generated_at: datetime = field(default_factory=_utc_now)

    @property
    def average_cost_per_request(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.total_cost / self.total_requests

    def most_expensive(self) -> Optional[ProviderCostInfo]:
        """Provider with the highest total spend, if any were recorded."""
        if not self.providers:
            return None
        return max(self.providers.values(), key=lambda info: (info.total_cost, info.provider_name))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_cost": round(self.total_cost, 6),
            "total_requests": self.total_requests,
            "average_cost_per_request": round(self.average_cost_per_request, 6),
            "providers": {name: info.to_dict() for name, info in sorted(self.providers.items())},
            "generated_at": self.generated_at.isoformat(),
        }


class CostLedger:
    """Thread-safe per-provider cost accumulator.

    Invariant: get_total_cost(name) equals the sum of all amounts recorded
    for name since the last reset(). A single lock guards both maps.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._costs: Dict[str, float] = {}
        self._counts: Dict[str, int] = {}

    def record_cost(self, provider_name: str, amount: float) -> None:
        """Add amount to the provider's total and count one request.

        Negative or non-finite amounts are recorded as zero so a bad
        provider report cannot corrupt the totals.

        Args:
            provider_name: Provider that incurred the cost
            amount: USD cost of the attempt

        Raises:
            InvalidInputError: If provider_name is empty
        """
        if not provider_name:
            raise InvalidInputError("provider_name", "must be a non-empty string")

        try:
            amount = float(amount)
        except (TypeError, ValueError):
            logger.warning("Non-numeric cost %r for %s recorded as 0.0", amount, provider_name)
            amount = 0.0
        if not math.isfinite(amount) or amount < 0:
            logger.warning("Invalid cost %r for %s clamped to 0.0", amount, provider_name)
            amount = 0.0

        with self._lock:
            self._costs[provider_name] = self._costs.get(provider_name, 0.0) + amount
            self._counts[provider_name] = self._counts.get(provider_name, 0) + 1

        logger.debug("Recorded cost $%.6f for %s", amount, provider_name)

    def get_total_cost(self, provider_name: Optional[str] = None) -> float:
        """Total recorded cost, for one provider or across all of them."""
        with self._lock:
            if provider_name is not None:
                return self._costs.get(provider_name, 0.0)
            return sum(self._costs.values())

    def get_request_count(self, provider_name: Optional[str] = None) -> int:
        """Recorded request count, for one provider or across all of them."""
        with self._lock:
            if provider_name is not None:
                return self._counts.get(provider_name, 0)
            return sum(self._counts.values())

    def get_breakdown(self) -> Dict[str, float]:
        """Copy of the per-provider cost totals."""
        with self._lock:
            return dict(self._costs)

    def get_request_counts(self) -> Dict[str, int]:
        """Copy of the per-provider request counts."""
        with self._lock:
            return dict(self._counts)

    def generate_report(self) -> CostReport:
        """Consistent snapshot of totals and per-provider breakdown."""
        with self._lock:
            providers = {
                name: ProviderCostInfo(
                    provider_name=name,
                    total_cost=cost,
                    request_count=self._counts.get(name, 0),
                )
                for name, cost in self._costs.items()
            }
        return CostReport(
            total_cost=sum(info.total_cost for info in providers.values()),
            total_requests=sum(info.request_count for info in providers.values()),
            providers=providers,
        )

    def reset(self) -> None:
        """Clear all recorded costs and counts."""
        with self._lock:
            self._costs.clear()
            self._counts.clear()
        logger.info("Cost ledger reset")
