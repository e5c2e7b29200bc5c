"""
Tests for deterministic plan repair and check computation.
"""

import copy

import pytest

from business_logic.plan_finalizer import PlanFinalizer, creative_fallback_id, sum_budget
from business_logic.plan_validator import BriefValidator, ValidationError


class TestPlanFinalizer:
    """Test cases for PlanFinalizer."""

    @pytest.fixture(autouse=True)
    def setup(self, brief_data, raw_plan):
        self.finalizer = PlanFinalizer()
        self.brief = BriefValidator().validate(brief_data)
        self.raw_plan = raw_plan

    def test_fills_missing_ids(self):
        self.raw_plan['ad_groups'][0]['creatives'].append(copy.deepcopy(self.raw_plan['ad_groups'][0]['creatives'][0]))

        plan = self.finalizer.finalize_plan(self.brief, self.raw_plan)

        assert [group.id for group in plan.ad_groups] == ["ag_1", "ag_2"]
        assert [creative.id for _, creative in plan.iter_creatives()] == ["c_1a", "c_1b", "c_2a"]

    def test_keeps_existing_ids(self):
        self.raw_plan['ad_groups'][0]['id'] = "brand_search"
        self.raw_plan['ad_groups'][0]['creatives'][0]['id'] = "hero"

        plan = self.finalizer.finalize_plan(self.brief, self.raw_plan)

        assert plan.ad_groups[0].id == "brand_search"
        assert plan.ad_groups[0].creatives[0].id == "hero"

    def test_assigns_channels_round_robin_from_brief(self):
        template = copy.deepcopy(self.raw_plan['ad_groups'][0])
        del template['channel']
        self.raw_plan['ad_groups'] = [copy.deepcopy(template) for _ in range(3)]

        plan = self.finalizer.finalize_plan(self.brief, self.raw_plan)

        assert [group.channel for group in plan.ad_groups] == ["search", "social", "search"]

    def test_forces_total_budget_to_brief_budget(self):
        self.raw_plan['total_budget'] = 4000

        plan = self.finalizer.finalize_plan(self.brief, self.raw_plan)

        assert plan.total_budget == 5000
        assert plan.checks.budget_sum_ok is True

    def test_budget_sum_ok(self):
        plan = self.finalizer.finalize_plan(self.brief, self.raw_plan)

        assert plan.checks.budget_sum_ok is True
        assert plan.checks.channel_valid is True
        assert plan.checks.required_fields_present is True

    def test_budget_sum_mismatch(self):
        self.raw_plan['budget_breakdown'] = {"search": 2500, "social": 2400}

        plan = self.finalizer.finalize_plan(self.brief, self.raw_plan)

        assert plan.checks.budget_sum_ok is False

    def test_checks_from_generator_are_recomputed(self):
        self.raw_plan['budget_breakdown'] = {"search": 2500, "social": 2400}
        self.raw_plan['checks'] = {"budget_sum_ok": True, "required_fields_present": True, "channel_valid": True}

        plan = self.finalizer.finalize_plan(self.brief, self.raw_plan)

        assert plan.checks.budget_sum_ok is False

    def test_invalid_breakdown_channel(self):
        self.raw_plan['budget_breakdown'] = {"search": 2500, "email": 2500}

        plan = self.finalizer.finalize_plan(self.brief, self.raw_plan)

        assert plan.checks.channel_valid is False
        assert plan.checks.budget_sum_ok is True

    def test_tolerance_allows_rounding_noise(self):
        self.raw_plan['budget_breakdown'] = {"search": 2500.0, "social": 2499.995}

        exact = self.finalizer.finalize_plan(self.brief, copy.deepcopy(self.raw_plan))
        tolerant = PlanFinalizer(budget_tolerance=0.01).finalize_plan(self.brief, self.raw_plan)

        assert exact.checks.budget_sum_ok is False
        assert tolerant.checks.budget_sum_ok is True

    def test_invalid_raw_plan_raises(self):
        self.raw_plan['ad_groups'][0]['creatives'] = []

        with pytest.raises(ValidationError):
            self.finalizer.finalize_plan(self.brief, self.raw_plan)

    def test_invalid_ad_group_channel_raises(self):
        self.raw_plan['ad_groups'][0]['channel'] = "email"

        with pytest.raises(ValidationError):
            self.finalizer.finalize_plan(self.brief, self.raw_plan)

    def test_raw_plan_not_mutated(self):
        original = copy.deepcopy(self.raw_plan)

        self.finalizer.finalize_plan(self.brief, self.raw_plan)

        assert self.raw_plan == original


class TestHelpers:
    """Test cases for finalizer helpers."""

    def test_creative_fallback_ids(self):
        assert creative_fallback_id(0, 0) == "c_1a"
        assert creative_fallback_id(2, 1) == "c_3b"
        assert creative_fallback_id(0, 26) == "c_1aa"

    def test_sum_budget_ignores_non_finite(self):
        assert sum_budget({"search": 100, "social": float('inf'), "display": 50.5}) == 150.5
