"""Abstract base classes and value types for dispatch providers."""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Optional

from dispatchr.core.errors import ProviderError


def _utc_now() -> datetime:
    """Return current UTC time (timezone-aware)."""
    return datetime.now(timezone.utc)


class Feature(str, Enum):
    """Declarative feature flags a provider may support."""

    STREAMING = "streaming"
    FUNCTION_CALLING = "function_calling"  # function calling / structured output
    VISION = "vision"
    LONG_CONTEXT = "long_context"
    TABLES = "tables"
    HANDWRITING = "handwriting"
    FORMS = "forms"
    LANGUAGE_DETECTION = "language_detection"
    CONFIDENCE_SCORES = "confidence_scores"

    @classmethod
    def parse(cls, value: Any) -> "Feature":
        """Parse a feature from its value or member name (case-insensitive)."""
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower().replace("-", "_")
        try:
            return cls(text)
        except ValueError:
            raise ValueError(
                f"Unknown feature '{value}'. Expected one of: {', '.join(f.value for f in cls)}"
            )


def feature_set(features: Optional[Iterable[Any]]) -> FrozenSet[Feature]:
    """Normalize an iterable of feature names or members to a frozenset."""
    if not features:
        return frozenset()
    return frozenset(Feature.parse(f) for f in features)


@dataclass(frozen=True)
class Capabilities:
    """Static description of what a provider can do and what it costs.

    Capabilities never change after construction. A provider whose real
    capability changes gets a new Capabilities value.

    Attributes:
        cost_per_unit: USD per unit of work (token, page, image)
        cost_per_request: Flat USD cost added per request
        max_units_per_request: Largest request the provider accepts
        average_response_time: Typical latency in seconds
        features: Supported feature flags
    """

    cost_per_unit: float = 0.0
    cost_per_request: float = 0.0
    max_units_per_request: int = 4096
    average_response_time: float = 1.0
    features: FrozenSet[Feature] = field(default_factory=frozenset)

    def __post_init__(self):
        # Accept any iterable of names so callers can pass lists or strings
        object.__setattr__(self, "features", feature_set(self.features))

    def supports(self, feature: Feature) -> bool:
        """Check whether a feature flag is declared."""
        return Feature.parse(feature) in self.features

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cost_per_unit": self.cost_per_unit,
            "cost_per_request": self.cost_per_request,
            "max_units_per_request": self.max_units_per_request,
            "average_response_time": self.average_response_time,
            "features": sorted(f.value for f in self.features),
        }


@dataclass(frozen=True)
class HealthStatus:
    """Point-in-time health of a provider.

    Attributes:
        provider_name: Provider this status belongs to
        is_healthy: Whether the provider should be trusted with work
        status: Human-readable status text
        last_checked: When the probe ran
        response_time: Probe latency in seconds, when measured
    """

    provider_name: str
    is_healthy: bool
    status: str = ""
    last_checked: datetime = field(default_factory=_utc_now)
    response_time: Optional[float] = None

    @classmethod
    def healthy(cls, provider_name: str, status: str = "Healthy", **kwargs) -> "HealthStatus":
        return cls(provider_name=provider_name, is_healthy=True, status=status, **kwargs)

    @classmethod
    def unhealthy(cls, provider_name: str, status: str, **kwargs) -> "HealthStatus":
        return cls(provider_name=provider_name, is_healthy=False, status=status, **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider_name": self.provider_name,
            "is_healthy": self.is_healthy,
            "status": self.status,
            "last_checked": self.last_checked.isoformat(),
            "response_time": self.response_time,
        }


@dataclass(frozen=True)
class ProviderResult:
    """Outcome of a single provider execution.

    Attributes:
        success: Whether the provider produced a usable payload
        payload: Provider output (text, parsed document, ...)
        confidence: 0.0-1.0 trust score, None when the provider cannot report one
        provider_name: Provider that produced the result
        cost: USD incurred by this execution
        duration: Elapsed seconds
        language: Detected language code, when known
        error: Failure description when success is False
        metadata: Provider-specific extras
    """

    success: bool
    payload: Any = None
    confidence: Optional[float] = None
    provider_name: str = ""
    cost: float = 0.0
    duration: float = 0.0
    language: Optional[str] = None
    error: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, payload: Any, confidence: Optional[float] = None, **kwargs) -> "ProviderResult":
        """Build a successful result."""
        return cls(success=True, payload=payload, confidence=confidence, **kwargs)

    @classmethod
    def fail(cls, error: str, **kwargs) -> "ProviderResult":
        """Build a failed result."""
        return cls(success=False, error=error, **kwargs)

    def with_updates(self, **changes) -> "ProviderResult":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "payload": self.payload if isinstance(self.payload, (str, int, float, bool, type(None))) else repr(self.payload),
            "confidence": self.confidence,
            "provider_name": self.provider_name,
            "cost": self.cost,
            "duration": self.duration,
            "language": self.language,
            "error": self.error,
            "metadata": self.metadata,
        }


class Provider(ABC):
    """
    Abstract base class for dispatch providers.

    A provider is one backend (an AI vendor, an OCR engine, ...) that can
    execute a request. Concrete variants implement execute() and
    check_health(); availability and cost estimates are cheap local checks.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique provider name within a registry."""
        pass

    @property
    @abstractmethod
    def capabilities(self) -> Capabilities:
        """Static capability description."""
        pass

    @property
    def is_available(self) -> bool:
        """Cheap, local, non-blocking availability check."""
        return True

    @abstractmethod
    async def execute(self, payload: Any, options: Optional[Dict[str, Any]] = None) -> ProviderResult:
        """
        Execute a request against the backend.

        Args:
            payload: Opaque request payload
            options: Per-request options passed through from the caller

        Returns:
            Result of the execution

        Raises:
            ProviderError: If the backend call fails
        """
        pass

    @abstractmethod
    async def check_health(self) -> HealthStatus:
        """
        Probe the backend's health.

        Returns:
            Current health status

        Raises:
            ProviderError: If the probe itself fails
        """
        pass

    def estimate_cost(self, units: int, options: Optional[Dict[str, Any]] = None) -> float:
        """
        Estimate the cost of a request from its size hint.

        Args:
            units: Estimated request size in units
            options: Per-request options

        Returns:
            Non-authoritative USD estimate
        """
        caps = self.capabilities
        return caps.cost_per_request + caps.cost_per_unit * max(0, units)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"


def sanitize_cost(value: Any) -> float:
    """Coerce a reported cost to a finite, non-negative float."""
    try:
        cost = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(cost) or cost < 0:
        return 0.0
    return cost


__all__ = [
    "Capabilities",
    "Feature",
    "HealthStatus",
    "Provider",
    "ProviderError",
    "ProviderResult",
    "feature_set",
    "sanitize_cost",
]
