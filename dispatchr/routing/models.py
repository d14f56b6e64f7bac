"""Request, attempt and result types for selection and fallback."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional

from dispatchr.core import constants
from dispatchr.core.errors import InvalidInputError
from dispatchr.providers.base import Feature, ProviderResult, feature_set


def _utc_now() -> datetime:
    """Return current UTC time (timezone-aware)."""
    return datetime.now(timezone.utc)


class Strategy(str, Enum):
    """Named objectives used to rank candidate providers."""

    COST_OPTIMIZED = "cost_optimized"
    PERFORMANCE_OPTIMIZED = "performance_optimized"
    RELIABILITY_OPTIMIZED = "reliability_optimized"
    CAPABILITY_OPTIMIZED = "capability_optimized"
    QUALITY_OPTIMIZED = "quality_optimized"
    BALANCED = "balanced"
    LOAD_BALANCED = "load_balanced"

    @classmethod
    def parse(cls, value: Any) -> "Strategy":
        """Parse a strategy from its value, member name or a short alias.

        "cost", "CostOptimized" and "cost-optimized" all resolve to
        COST_OPTIMIZED.
        """
        if isinstance(value, cls):
            return value
        text = str(value).strip().replace("-", "_").replace(" ", "_")
        # CamelCase -> snake_case
        snake = "".join("_" + c.lower() if c.isupper() else c for c in text).lstrip("_")
        names = []
        for base in (text.lower(), snake):
            names.extend([base, f"{base}_optimized"])
        for candidate in names:
            try:
                return cls(candidate)
            except ValueError:
                continue
        raise InvalidInputError(
            "strategy",
            f"unknown strategy '{value}' (expected one of: {', '.join(s.value for s in cls)})",
        )


@dataclass
class RequestDescriptor:
    """A unit of work to dispatch.

    Fields left as None are resolved from Settings at dispatch time.

    Attributes:
        payload: Opaque request payload handed to the provider
        estimated_units: Best-effort size hint, never computed exactly
        required_features: Feature flags the provider must support
        confidence_threshold: Minimum confidence to accept (0.0-1.0)
        max_fallback_attempts: Fallback providers tried after the primary
        timeout: Seconds allowed for the whole dispatch
        preferred_provider: Provider to try first when it is compatible
        routing_key: Stable key for load-balanced selection
        options: Passed through to Provider.execute()
    """

    payload: Any = None
    estimated_units: int = 0
    required_features: FrozenSet[Feature] = field(default_factory=frozenset)
    confidence_threshold: Optional[float] = None
    max_fallback_attempts: Optional[int] = None
    timeout: Optional[float] = None
    preferred_provider: Optional[str] = None
    routing_key: Optional[str] = None
    options: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.required_features = feature_set(self.required_features)

    @classmethod
    def from_text(cls, text: str, **kwargs) -> "RequestDescriptor":
        """Build a descriptor for a text request, estimating ~4 characters per unit."""
        units = max(1, len(text or "") // constants.CHARS_PER_UNIT)
        kwargs.setdefault("estimated_units", units)
        return cls(payload=text, **kwargs)

    def requires(self, feature: Feature) -> bool:
        return feature in self.required_features

    def validate(self) -> None:
        """Check field ranges.

        Raises:
            InvalidInputError: If any field is out of range
        """
        if isinstance(self.estimated_units, bool) or not isinstance(self.estimated_units, int):
            raise InvalidInputError("estimated_units", "must be an integer")
        if self.estimated_units < 0:
            raise InvalidInputError("estimated_units", "must be non-negative")
        if self.confidence_threshold is not None and not 0.0 <= self.confidence_threshold <= 1.0:
            raise InvalidInputError("confidence_threshold", "must be between 0.0 and 1.0")
        if self.max_fallback_attempts is not None:
            if isinstance(self.max_fallback_attempts, bool) or not isinstance(self.max_fallback_attempts, int):
                raise InvalidInputError("max_fallback_attempts", "must be an integer")
            if self.max_fallback_attempts < 0:
                raise InvalidInputError("max_fallback_attempts", "must be non-negative")
        if self.timeout is not None and self.timeout <= 0:
            raise InvalidInputError("timeout", "must be positive")


class AttemptOutcome(str, Enum):
    """How a single provider attempt ended."""

    ACCEPTED = "accepted"
    LOW_CONFIDENCE = "low_confidence"
    PROVIDER_FAILED = "provider_failed"  # result returned with success=False
    PROVIDER_ERROR = "provider_error"  # provider raised


@dataclass
class AttemptRecord:
    """Record of one provider attempt within a dispatch.

    Attributes:
        provider_name: Provider that was tried
        outcome: How the attempt ended
        detail: Human-readable reason, e.g. "low confidence: 0.41 < 0.70"
        confidence: Confidence the provider reported or was assigned
        threshold: Threshold the attempt was judged against
        cost: USD recorded for the attempt
        duration: Elapsed seconds
        timestamp: When the attempt finished
    """

    provider_name: str
    outcome: AttemptOutcome
    detail: str = ""
    confidence: Optional[float] = None
    threshold: Optional[float] = None
    cost: float = 0.0
    duration: float = 0.0
    timestamp: datetime = field(default_factory=_utc_now)

    @property
    def accepted(self) -> bool:
        return self.outcome == AttemptOutcome.ACCEPTED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider": self.provider_name,
            "outcome": self.outcome.value,
            "detail": self.detail,
            "confidence": self.confidence,
            "threshold": self.threshold,
            "cost": self.cost,
            "duration": round(self.duration, 4),
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class DispatchResult:
    """Single outcome of a dispatch: an accepted result or a failure with reasons.

    Attributes:
        success: True when a provider's result was accepted
        result: The accepted (and enriched) provider result
        attempts: Every attempt made, in order
        error_code: Machine-readable failure code when success is False
        message: Human-readable summary
        strategy: Strategy used for ranking
    """

    success: bool
    result: Optional[ProviderResult] = None
    attempts: List[AttemptRecord] = field(default_factory=list)
    error_code: Optional[str] = None
    message: str = ""
    strategy: Optional[str] = None

    @classmethod
    def accepted(
        cls, result: ProviderResult, attempts: List[AttemptRecord], strategy: Optional[str] = None
    ) -> "DispatchResult":
        return cls(
            success=True,
            result=result,
            attempts=list(attempts),
            message=f"Accepted result from {result.provider_name}",
            strategy=strategy,
        )

    @classmethod
    def failed(
        cls,
        error_code: str,
        message: str,
        attempts: Optional[List[AttemptRecord]] = None,
        strategy: Optional[str] = None,
    ) -> "DispatchResult":
        return cls(
            success=False,
            attempts=list(attempts or []),
            error_code=error_code,
            message=message,
            strategy=strategy,
        )

    @property
    def provider_name(self) -> Optional[str]:
        return self.result.provider_name if self.result else None

    @property
    def confidence(self) -> Optional[float]:
        return self.result.confidence if self.result else None

    @property
    def attempted_providers(self) -> List[str]:
        return [a.provider_name for a in self.attempts]

    @property
    def total_cost(self) -> float:
        return sum(a.cost for a in self.attempts)

    def summary(self) -> str:
        """One line per attempt, preceded by the overall message."""
        lines = [self.message]
        for i, attempt in enumerate(self.attempts, 1):
            lines.append(f"  {i}. {attempt.provider_name}: {attempt.outcome.value} ({attempt.detail})")
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "result": self.result.to_dict() if self.result else None,
            "attempts": [a.to_dict() for a in self.attempts],
            "error_code": self.error_code,
            "message": self.message,
            "strategy": self.strategy,
            "provider_name": self.provider_name,
            "total_cost": round(self.total_cost, 6),
        }
