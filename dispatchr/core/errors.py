"""Core exception hierarchy for Dispatchr.

This module defines the exception classes used throughout Dispatchr.
All Dispatchr exceptions inherit from DispatchrError, enabling both specific
and broad exception handling.

Only registry-level errors (no providers, no compatible provider) and
programmer errors (invalid input) are raised across the library boundary.
Per-attempt errors are recovered inside the fallback loop and surface as
attempt records on the dispatch result.

Exception Hierarchy:
    DispatchrError (base)
    ├── RoutingError - selection and fallback issues
    │   ├── NoProvidersAvailableError
    │   ├── NoCompatibleProviderError
    │   └── FallbackExhaustedError
    ├── ProviderError - a single provider's issues
    │   ├── ProviderExecutionError
    │   ├── LowConfidenceError
    │   └── HealthProbeError
    ├── ConfigurationError - config issues
    │   └── InvalidConfigError
    └── ValidationError - input validation
        └── InvalidInputError
"""

from typing import Any, Dict, List, Optional


class DispatchrError(Exception):
    """Base exception for all Dispatchr errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code (e.g., "NO_COMPATIBLE_PROVIDER")
        details: Optional dict with additional context
    """

    error_code: str = "DISPATCHR_ERROR"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        if error_code:
            self.error_code = error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dict for reports and CLI output."""
        return {
            "error": True,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details
        }


# Routing Errors
class RoutingError(DispatchrError):
    """Base class for provider selection errors."""
    error_code = "ROUTING_ERROR"


class NoProvidersAvailableError(RoutingError):
    """Registry is empty or every provider reports unavailable."""
    error_code = "NO_PROVIDERS_AVAILABLE"

    def __init__(self, registered: int = 0):
        if registered:
            msg = f"No providers are available ({registered} registered, all unavailable)."
        else:
            msg = "No providers are registered."
        super().__init__(msg, details={"registered": registered})


class NoCompatibleProviderError(RoutingError):
    """Every available provider failed the capability filter."""
    error_code = "NO_COMPATIBLE_PROVIDER"

    def __init__(self, reason: str, strategy: Optional[str] = None, candidates: Optional[List[str]] = None):
        msg = f"No compatible provider: {reason}"
        if strategy:
            msg += f" (strategy: {strategy})"
        super().__init__(
            msg,
            details={"reason": reason, "strategy": strategy, "candidates": candidates or []}
        )


class FallbackExhaustedError(RoutingError):
    """Every attempted provider failed or returned low confidence."""
    error_code = "FALLBACK_EXHAUSTED"

    def __init__(self, attempts: List[Dict[str, Any]]):
        providers = [a.get("provider") for a in attempts]
        super().__init__(
            f"All providers failed or returned low confidence "
            f"({len(attempts)} attempted: {', '.join(p for p in providers if p)})",
            details={"attempts": attempts}
        )

    @classmethod
    def from_attempts(cls, attempts) -> "FallbackExhaustedError":
        """Build from AttemptRecord objects (anything with to_dict())."""
        return cls([a.to_dict() for a in attempts])


# Provider Errors
class ProviderError(DispatchrError):
    """Base class for errors raised by a single provider.

    Attributes:
        provider: Name of the provider that failed
        original_error: Underlying exception, if any
    """
    error_code = "PROVIDER_ERROR"

    def __init__(
        self,
        message: str,
        provider: str = "",
        original_error: Optional[BaseException] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.provider = provider
        self.original_error = original_error
        merged = {"provider": provider}
        if details:
            merged.update(details)
        super().__init__(message, details=merged)


class ProviderExecutionError(ProviderError):
    """A single execution attempt raised."""
    error_code = "PROVIDER_EXECUTION_FAILED"


class LowConfidenceError(ProviderError):
    """Attempt succeeded but its confidence is below the threshold."""
    error_code = "LOW_CONFIDENCE_RESULT"

    def __init__(self, provider: str, confidence: float, threshold: float):
        super().__init__(
            f"{provider} returned low confidence: {confidence:.2f} < {threshold:.2f}",
            provider=provider,
            details={"confidence": confidence, "threshold": threshold}
        )


class HealthProbeError(ProviderError):
    """A provider's health probe raised. Never fatal."""
    error_code = "HEALTH_PROBE_FAILED"


# Configuration Errors
class ConfigurationError(DispatchrError):
    """Base class for configuration errors."""
    error_code = "CONFIG_ERROR"


class InvalidConfigError(ConfigurationError):
    """Configuration value is invalid."""
    error_code = "INVALID_CONFIG"

    def __init__(self, config_key: str, value: Any, reason: str):
        super().__init__(
            f"Invalid value for '{config_key}': {reason}",
            details={"config_key": config_key, "value": str(value), "reason": reason}
        )


# Validation Errors
class ValidationError(DispatchrError):
    """Base class for validation errors."""
    error_code = "VALIDATION_ERROR"


class InvalidInputError(ValidationError):
    """Caller input is invalid."""
    error_code = "INVALID_INPUT"

    def __init__(self, field: str, reason: str):
        super().__init__(
            f"Invalid input for '{field}': {reason}",
            details={"field": field, "reason": reason}
        )
