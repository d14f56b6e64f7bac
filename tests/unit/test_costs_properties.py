"""Property-based tests for the cost ledger."""

from typing import List, Tuple

import pytest
from hypothesis import HealthCheck, given, settings, strategies as st

from dispatchr.observability.costs import CostLedger

names = st.sampled_from(["fast", "careful", "ocr-basic", "ocr-premium", "local"])
amounts = st.floats(min_value=0.0, max_value=10.0, allow_nan=False, allow_infinity=False)


@st.composite
def cost_records(draw):
    count = draw(st.integers(min_value=0, max_value=50))
    return [(draw(names), draw(amounts)) for _ in range(count)]


class TestCostLedgerProperties:
    """Property-based tests for CostLedger."""

    @given(cost_records())
    @settings(max_examples=100, suppress_health_check=[HealthCheck.too_slow, HealthCheck.function_scoped_fixture])
    def test_total_equals_sum_of_records(self, records: List[Tuple[str, float]]):
        """Property: per-provider totals equal the sum of recorded amounts."""
        ledger = CostLedger()
        expected = {}
        for name, amount in records:
            ledger.record_cost(name, amount)
            expected[name] = expected.get(name, 0.0) + amount

        for name, total in expected.items():
            assert ledger.get_total_cost(name) == pytest.approx(total)
        assert ledger.get_total_cost() == pytest.approx(sum(a for _, a in records))
        assert ledger.get_request_count() == len(records)

    @given(cost_records())
    @settings(max_examples=100, suppress_health_check=[HealthCheck.too_slow, HealthCheck.function_scoped_fixture])
    def test_totals_never_negative(self, records: List[Tuple[str, float]]):
        """Property: totals stay non-negative even with negated inputs."""
        ledger = CostLedger()
        for name, amount in records:
            ledger.record_cost(name, -amount)
        assert ledger.get_total_cost() == 0.0

    @given(cost_records())
    @settings(max_examples=100, suppress_health_check=[HealthCheck.too_slow, HealthCheck.function_scoped_fixture])
    def test_report_matches_ledger(self, records: List[Tuple[str, float]]):
        """Property: a report agrees with the ledger it was generated from."""
        ledger = CostLedger()
        for name, amount in records:
            ledger.record_cost(name, amount)

        report = ledger.generate_report()

        assert report.total_requests == ledger.get_request_count()
        assert report.total_cost == pytest.approx(ledger.get_total_cost())
        assert set(report.providers) == set(ledger.get_breakdown())

    @given(cost_records(), cost_records())
    @settings(max_examples=100, suppress_health_check=[HealthCheck.too_slow, HealthCheck.function_scoped_fixture])
    def test_reset_starts_from_zero(self, before, after):
        """Property: after reset only later records count."""
        ledger = CostLedger()
        for name, amount in before:
            ledger.record_cost(name, amount)
        ledger.reset()
        for name, amount in after:
            ledger.record_cost(name, amount)

        assert ledger.get_request_count() == len(after)
        assert ledger.get_total_cost() == pytest.approx(sum(a for _, a in after))
