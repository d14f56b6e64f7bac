"""Tests for core error hierarchy."""

from dispatchr.core.errors import (
    ConfigurationError,
    DispatchrError,
    FallbackExhaustedError,
    HealthProbeError,
    InvalidConfigError,
    InvalidInputError,
    LowConfidenceError,
    NoCompatibleProviderError,
    NoProvidersAvailableError,
    ProviderError,
    ProviderExecutionError,
    RoutingError,
    ValidationError,
)
from dispatchr.routing.models import AttemptOutcome, AttemptRecord


class TestErrorHierarchy:
    """Test exception inheritance."""

    def test_all_errors_inherit_from_dispatchr_error(self):
        """All custom errors should inherit from DispatchrError."""
        errors = [
            RoutingError("test"),
            NoProvidersAvailableError(),
            NoCompatibleProviderError("too large"),
            FallbackExhaustedError([]),
            ProviderError("test", provider="a"),
            ProviderExecutionError("boom", provider="a"),
            LowConfidenceError("a", 0.4, 0.7),
            HealthProbeError("probe failed", provider="a"),
            ConfigurationError("test"),
            InvalidConfigError("timeout", -1, "must be positive"),
            ValidationError("test"),
            InvalidInputError("request", "must not be None"),
        ]

        for error in errors:
            assert isinstance(error, DispatchrError)

    def test_routing_errors_inherit_from_routing_error(self):
        for error in [NoProvidersAvailableError(), NoCompatibleProviderError("x"), FallbackExhaustedError([])]:
            assert isinstance(error, RoutingError)

    def test_provider_errors_inherit_from_provider_error(self):
        for error in [
            ProviderExecutionError("boom", provider="a"),
            LowConfidenceError("a", 0.1, 0.5),
            HealthProbeError("x", provider="a"),
        ]:
            assert isinstance(error, ProviderError)


class TestErrorCodes:
    """Test error codes are set correctly."""

    def test_base_error_code(self):
        assert DispatchrError("x").error_code == "DISPATCHR_ERROR"

    def test_custom_error_code_overrides_class_default(self):
        assert DispatchrError("x", error_code="CUSTOM").error_code == "CUSTOM"

    def test_taxonomy_codes(self):
        assert NoProvidersAvailableError().error_code == "NO_PROVIDERS_AVAILABLE"
        assert NoCompatibleProviderError("x").error_code == "NO_COMPATIBLE_PROVIDER"
        assert FallbackExhaustedError([]).error_code == "FALLBACK_EXHAUSTED"
        assert ProviderExecutionError("x", provider="a").error_code == "PROVIDER_EXECUTION_FAILED"
        assert LowConfidenceError("a", 0.1, 0.5).error_code == "LOW_CONFIDENCE_RESULT"
        assert HealthProbeError("x", provider="a").error_code == "HEALTH_PROBE_FAILED"
        assert InvalidConfigError("k", 1, "bad").error_code == "INVALID_CONFIG"
        assert InvalidInputError("f", "bad").error_code == "INVALID_INPUT"


class TestErrorDetails:
    """Test messages and structured details."""

    def test_no_providers_message_distinguishes_empty_registry(self):
        assert "registered" in NoProvidersAvailableError().message
        error = NoProvidersAvailableError(registered=3)
        assert "3 registered" in error.message
        assert error.details["registered"] == 3

    def test_no_compatible_provider_includes_strategy(self):
        error = NoCompatibleProviderError("needs vision", strategy="capability_optimized", candidates=["a"])
        assert "needs vision" in error.message
        assert "capability_optimized" in error.message
        assert error.details["candidates"] == ["a"]

    def test_low_confidence_message_formats_both_values(self):
        error = LowConfidenceError("ocr-basic", 0.41, 0.7)
        assert "0.41 < 0.70" in error.message
        assert error.provider == "ocr-basic"
        assert error.details["threshold"] == 0.7

    def test_provider_error_keeps_original_error(self):
        cause = ConnectionError("refused")
        error = ProviderExecutionError("boom", provider="a", original_error=cause)
        assert error.original_error is cause
        assert error.details["provider"] == "a"

    def test_fallback_exhausted_from_attempts(self):
        attempts = [
            AttemptRecord("a", AttemptOutcome.LOW_CONFIDENCE, detail="low confidence: 0.41 < 0.70"),
            AttemptRecord("b", AttemptOutcome.PROVIDER_ERROR, detail="provider threw: ConnectionError: refused"),
        ]
        error = FallbackExhaustedError.from_attempts(attempts)

        assert "2 attempted" in error.message
        assert "a, b" in error.message
        assert [a["provider"] for a in error.details["attempts"]] == ["a", "b"]
        assert error.details["attempts"][0]["outcome"] == "low_confidence"

    def test_to_dict(self):
        result = InvalidInputError("timeout", "must be positive").to_dict()
        assert result == {
            "error": True,
            "error_code": "INVALID_INPUT",
            "message": "Invalid input for 'timeout': must be positive",
            "details": {"field": "timeout", "reason": "must be positive"},
        }
