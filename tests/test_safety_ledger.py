"""SafetyLedger 单元测试"""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from evaluators.safety_ledger import SafetyLedger


class TestSafetyLedger:
    def test_initial(self):
        ledger = SafetyLedger()
        assert ledger.safety_score == 100
        assert ledger.intervention_count == 0

    def test_deduct(self):
        ledger = SafetyLedger()
        assert ledger.deduct(10, "hard_braking") == 90

    def test_floor_at_zero(self):
        ledger = SafetyLedger()
        ledger.deduct(80)
        assert ledger.deduct(50) == 0

    def test_negative_cost_rejected(self):
        ledger = SafetyLedger()
        with pytest.raises(ValueError):
            ledger.deduct(-5)
        assert ledger.safety_score == 100

    def test_interventions_separate_from_score(self):
        ledger = SafetyLedger()
        ledger.record_intervention("yawn")
        ledger.record_intervention("yawn")
        assert ledger.intervention_count == 2
        assert ledger.safety_score == 100

    def test_reset(self):
        ledger = SafetyLedger()
        ledger.deduct(30)
        ledger.record_intervention()
        ledger.reset()
        assert ledger.safety_score == 100
        assert ledger.intervention_count == 0

    @given(st.lists(st.integers(min_value=0, max_value=50), max_size=100))
    def test_score_bounded_and_monotonic(self, costs):
        ledger = SafetyLedger()
        previous = ledger.safety_score
        for cost in costs:
            score = ledger.deduct(cost)
            assert 0 <= score <= 100
            assert score <= previous
            previous = score
