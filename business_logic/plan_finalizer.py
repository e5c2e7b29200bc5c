"""
Deterministic repair of generated plans.

The finalizer fills in identifiers and channels the generator left out,
forces the total budget to the brief's budget, re-validates the repaired
shape, and recomputes the plan checks. Budget and channel problems are
reported through the checks, never raised.
"""

import copy
import logging
import math
import string
from typing import Any, Dict, List, Mapping, Optional

from models.data_models import ALLOWED_CHANNELS, Brief, Plan, PlanChecks
from .plan_validator import PlanValidator

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def sum_budget(budget_breakdown: Mapping[str, Any]) -> float:
    """Sum breakdown amounts, counting non-finite values as zero."""
    total = 0.0
    for value in budget_breakdown.values():
        if isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value):
            total += value
    return total


def creative_fallback_id(group_index: int, creative_index: int) -> str:
    """Fallback creative id: c_1a, c_1b, ... for the first group."""
    letters = string.ascii_lowercase
    suffix = letters[creative_index % len(letters)]
    if creative_index >= len(letters):
        suffix = letters[creative_index // len(letters) - 1] + suffix
    return f"c_{group_index + 1}{suffix}"


class PlanFinalizer:
    """
    Repairs and normalizes a raw generated plan against its brief.
    """

    def __init__(self, plan_validator: Optional[PlanValidator] = None, budget_tolerance: float = 0.0):
        """
        Initialize the finalizer.

        Args:
            plan_validator: Validator used before and after repair
            budget_tolerance: Allowed absolute difference between the budget
                breakdown sum and the total budget (0.0 means exact equality)
        """
        self.plan_validator = plan_validator or PlanValidator()
        self.budget_tolerance = budget_tolerance
        self.allowed_channels = set(ALLOWED_CHANNELS)

    def finalize_plan(self, brief: Brief, raw_plan: Dict[str, Any]) -> Plan:
        """
        Finalize a raw plan document.

        Args:
            brief: Validated campaign brief
            raw_plan: Plan document parsed from the model output

        Returns:
            Finalized Plan with fresh checks

        Raises:
            ValidationError: If the raw plan, or the repaired plan, violates the schema
        """
        # Shape is enforced before any repair
        self.plan_validator.validate(raw_plan)

        repaired = self.ensure_ids_and_channels(raw_plan, brief)
        repaired['total_budget'] = brief.budget

        plan = self.plan_validator.validate(repaired)
        plan.checks = self.compute_checks(plan)

        if not plan.checks.budget_sum_ok:
            logger.warning(
                f"Budget breakdown sums to {sum_budget(plan.budget_breakdown):,.2f}, "
                f"expected {plan.total_budget:,.2f}"
            )
        if not plan.checks.channel_valid:
            logger.warning(f"Budget breakdown uses non-standard channels: {list(plan.budget_breakdown)}")

        return plan

    def ensure_ids_and_channels(self, raw_plan: Dict[str, Any], brief: Brief) -> Dict[str, Any]:
        """
        Fill missing ad group ids, channels and creative ids.

        Channels are assigned round-robin from the brief's channels, or from
        the budget breakdown keys when the brief has none. Returns a copy.
        """
        plan = copy.deepcopy(raw_plan)
        ad_groups = plan.get('ad_groups')
        if not isinstance(ad_groups, list):
            return plan

        channels: List[str] = [str(channel) for channel in brief.channels]
        if not channels:
            channels = list((plan.get('budget_breakdown') or {}).keys())

        repaired_groups = []
        for i, ad_group in enumerate(ad_groups):
            ad_group = dict(ad_group) if isinstance(ad_group, dict) else {}
            ad_group['id'] = ad_group.get('id') or f"ag_{i + 1}"
            if not ad_group.get('channel') and channels:
                ad_group['channel'] = channels[i % len(channels)]

            creatives = ad_group.get('creatives')
            repaired_creatives = []
            if isinstance(creatives, list):
                for j, creative in enumerate(creatives):
                    creative = creative if isinstance(creative, dict) else {}
                    repaired = dict(creative)
                    repaired['id'] = creative.get('id') or creative_fallback_id(i, j)
                    repaired_creatives.append(repaired)
            ad_group['creatives'] = repaired_creatives

            repaired_groups.append(ad_group)

        plan['ad_groups'] = repaired_groups
        return plan

    def compute_checks(self, plan: Plan) -> PlanChecks:
        """Recompute the plan checks from its budget breakdown."""
        breakdown_sum = sum_budget(plan.budget_breakdown)
        if self.budget_tolerance > 0:
            budget_sum_ok = abs(breakdown_sum - plan.total_budget) <= self.budget_tolerance
        else:
            budget_sum_ok = breakdown_sum == plan.total_budget

        return PlanChecks(
            budget_sum_ok=budget_sum_ok,
            required_fields_present=True,
            channel_valid=all(channel in self.allowed_channels for channel in plan.budget_breakdown)
        )
