"""Tests for routing request, attempt and result types."""

import pytest

from dispatchr.core.errors import InvalidInputError
from dispatchr.providers.base import Feature, ProviderResult
from dispatchr.routing.models import (
    AttemptOutcome,
    AttemptRecord,
    DispatchResult,
    RequestDescriptor,
    Strategy,
)


class TestStrategyParse:
    """Tests for strategy name parsing."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("balanced", Strategy.BALANCED),
            ("cost_optimized", Strategy.COST_OPTIMIZED),
            ("cost", Strategy.COST_OPTIMIZED),
            ("CostOptimized", Strategy.COST_OPTIMIZED),
            ("performance-optimized", Strategy.PERFORMANCE_OPTIMIZED),
            ("QUALITY_OPTIMIZED", Strategy.QUALITY_OPTIMIZED),
            ("LoadBalanced", Strategy.LOAD_BALANCED),
            (Strategy.CAPABILITY_OPTIMIZED, Strategy.CAPABILITY_OPTIMIZED),
        ],
    )
    def test_parse(self, text, expected):
        assert Strategy.parse(text) is expected

    def test_unknown_strategy(self):
        with pytest.raises(InvalidInputError, match="unknown strategy 'fastest'"):
            Strategy.parse("fastest")


class TestRequestDescriptor:
    """Tests for request construction and validation."""

    def test_defaults(self):
        request = RequestDescriptor(payload="x")
        assert request.estimated_units == 0
        assert request.required_features == frozenset()
        assert request.confidence_threshold is None
        request.validate()

    def test_features_normalized(self):
        request = RequestDescriptor(required_features=["vision", "Tables"])
        assert request.requires(Feature.VISION)
        assert request.requires(Feature.TABLES)
        assert not request.requires(Feature.FORMS)

    def test_from_text_estimates_units(self):
        assert RequestDescriptor.from_text("a" * 400).estimated_units == 100
        assert RequestDescriptor.from_text("").estimated_units == 1
        assert RequestDescriptor.from_text("abc", estimated_units=50).estimated_units == 50

    @pytest.mark.parametrize(
        "kwargs,field",
        [
            ({"estimated_units": -1}, "estimated_units"),
            ({"estimated_units": 1.5}, "estimated_units"),
            ({"estimated_units": True}, "estimated_units"),
            ({"confidence_threshold": 1.2}, "confidence_threshold"),
            ({"confidence_threshold": -0.1}, "confidence_threshold"),
            ({"max_fallback_attempts": -1}, "max_fallback_attempts"),
            ({"max_fallback_attempts": 1.0}, "max_fallback_attempts"),
            ({"max_fallback_attempts": True}, "max_fallback_attempts"),
            ({"timeout": 0}, "timeout"),
        ],
    )
    def test_validate_rejects(self, kwargs, field):
        with pytest.raises(InvalidInputError) as exc_info:
            RequestDescriptor(payload="x", **kwargs).validate()
        assert exc_info.value.details["field"] == field

    def test_threshold_bounds_inclusive(self):
        RequestDescriptor(confidence_threshold=0.0).validate()
        RequestDescriptor(confidence_threshold=1.0).validate()


class TestAttemptRecord:
    """Tests for attempt records."""

    def test_accepted_property(self):
        assert AttemptRecord("a", AttemptOutcome.ACCEPTED).accepted
        assert not AttemptRecord("a", AttemptOutcome.LOW_CONFIDENCE).accepted

    def test_to_dict(self):
        record = AttemptRecord(
            "a", AttemptOutcome.PROVIDER_ERROR, detail="provider threw: ValueError: bad", cost=0.0, duration=0.123456
        )
        data = record.to_dict()
        assert data["provider"] == "a"
        assert data["outcome"] == "provider_error"
        assert data["duration"] == 0.1235


class TestDispatchResult:
    """Tests for dispatch results."""

    def _attempts(self):
        return [
            AttemptRecord("ocr-basic", AttemptOutcome.LOW_CONFIDENCE, detail="low confidence: 0.41 < 0.70", cost=0.001),
            AttemptRecord("ocr-premium", AttemptOutcome.ACCEPTED, detail="confidence 0.93 >= 0.70", cost=0.01),
        ]

    def test_accepted(self):
        result = ProviderResult.ok("text", confidence=0.93, provider_name="ocr-premium")
        outcome = DispatchResult.accepted(result, self._attempts(), strategy="balanced")

        assert outcome.success
        assert outcome.provider_name == "ocr-premium"
        assert outcome.confidence == 0.93
        assert outcome.attempted_providers == ["ocr-basic", "ocr-premium"]
        assert outcome.total_cost == pytest.approx(0.011)
        assert outcome.message == "Accepted result from ocr-premium"

    def test_failed(self):
        outcome = DispatchResult.failed("FALLBACK_EXHAUSTED", "All providers failed", self._attempts()[:1])

        assert not outcome.success
        assert outcome.result is None
        assert outcome.provider_name is None
        assert outcome.confidence is None
        assert outcome.error_code == "FALLBACK_EXHAUSTED"

    def test_summary_lists_every_attempt(self):
        result = ProviderResult.ok("text", confidence=0.93, provider_name="ocr-premium")
        summary = DispatchResult.accepted(result, self._attempts()).summary()

        lines = summary.splitlines()
        assert lines[0] == "Accepted result from ocr-premium"
        assert lines[1] == "  1. ocr-basic: low_confidence (low confidence: 0.41 < 0.70)"
        assert lines[2].startswith("  2. ocr-premium: accepted")

    def test_to_dict(self):
        data = DispatchResult.failed("NO_PROVIDERS_AVAILABLE", "No providers are registered.").to_dict()
        assert data["success"] is False
        assert data["attempts"] == []
        assert data["total_cost"] == 0.0
