"""
Brief and plan validation for AI-generated campaign plans.

This module enforces the brief/plan JSON contract, converts validated data
into model objects, and parses raw completion text into a plan document.
"""

import logging
import json
import math
import re
from typing import Dict, List, Optional, Any
from dataclasses import dataclass
from enum import Enum

from models.data_models import (
    ALLOWED_CHANNELS, AdGroup, Brief, Creative, Plan, PlanChecks, ProductBrief, ScoreFactors
)
from .error_handler import NonJSONContentError

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

KNOWN_OBJECTIVES = ('trial_signups', 'conversions', 'awareness')
SCORE_FACTOR_KEYS = ('keywordMatch', 'headlineTypeMatch', 'bestPractices', 'channelPerformance')


class ValidationSeverity(Enum):
    """Severity levels for validation issues."""
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass
class ValidationIssue:
    """Represents a validation issue found in a brief or plan."""
    severity: ValidationSeverity
    message: str
    field: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.field}: {self.message}" if self.field else self.message


@dataclass
class ValidationResult:
    """Result of a validation pass."""
    is_valid: bool
    issues: List[ValidationIssue]
    total_errors: int
    total_warnings: int

    @property
    def errors(self) -> List[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == ValidationSeverity.ERROR]


class ValidationError(ValueError):
    """Raised when a brief or plan violates its schema."""

    def __init__(self, subject: str, issues: List[ValidationIssue]):
        self.subject = subject
        self.issues = issues
        details = "; ".join(str(issue) for issue in issues if issue.severity == ValidationSeverity.ERROR)
        super().__init__(f"{subject} validation failed: {details}")


class _SchemaChecker:
    """Shared field checks that collect issues instead of raising."""

    def __init__(self):
        self.issues: List[ValidationIssue] = []

    def error(self, field: str, message: str):
        self.issues.append(ValidationIssue(ValidationSeverity.ERROR, message, field))

    def warning(self, field: str, message: str):
        self.issues.append(ValidationIssue(ValidationSeverity.WARNING, message, field))

    def object(self, value: Any, field: str) -> bool:
        if not isinstance(value, dict):
            self.error(field, "must be an object")
            return False
        return True

    def non_empty_string(self, value: Any, field: str) -> bool:
        if not isinstance(value, str) or not value:
            self.error(field, "must be a non-empty string")
            return False
        return True

    def string(self, value: Any, field: str) -> bool:
        if not isinstance(value, str):
            self.error(field, "must be a string")
            return False
        return True

    def boolean(self, value: Any, field: str) -> bool:
        if not isinstance(value, bool):
            self.error(field, "must be a boolean")
            return False
        return True

    def number(self, value: Any, field: str, minimum: float = None, exclusive: bool = False) -> bool:
        if isinstance(value, bool) or not isinstance(value, (int, float)) or (
                isinstance(value, float) and math.isnan(value)):
            self.error(field, "must be a number")
            return False
        if minimum is not None:
            if exclusive and not value > minimum:
                self.error(field, f"must be greater than {minimum}")
                return False
            if not exclusive and value < minimum:
                self.error(field, f"must be at least {minimum}")
                return False
        return True

    def integer(self, value: Any, field: str, minimum: int = None) -> bool:
        """Whole numbers only; integral floats such as 2.0 are accepted."""
        if isinstance(value, bool) or not (
                isinstance(value, int) or (isinstance(value, float) and value.is_integer())):
            self.error(field, "must be an integer")
            return False
        if minimum is not None and value < minimum:
            self.error(field, f"must be at least {minimum}")
            return False
        return True

    def string_list(self, value: Any, field: str, min_items: int = 0, non_empty_items: bool = False) -> bool:
        if not isinstance(value, list):
            self.error(field, "must be a list")
            return False
        if len(value) < min_items:
            self.error(field, f"must contain at least {min_items} item(s)")
            return False
        ok = True
        for i, item in enumerate(value):
            if non_empty_items:
                ok = self.non_empty_string(item, f"{field}[{i}]") and ok
            else:
                ok = self.string(item, f"{field}[{i}]") and ok
        return ok

    def optional(self, data: Dict[str, Any], key: str) -> Any:
        """Optional fields treat JSON null the same as an absent key."""
        return data.get(key)

    def result(self) -> ValidationResult:
        errors = sum(1 for issue in self.issues if issue.severity == ValidationSeverity.ERROR)
        warnings = sum(1 for issue in self.issues if issue.severity == ValidationSeverity.WARNING)
        return ValidationResult(
            is_valid=errors == 0,
            issues=list(self.issues),
            total_errors=errors,
            total_warnings=warnings
        )


class BriefValidator:
    """
    Validates campaign briefs.

    Channels outside the standard set are tolerated with a warning.
    """

    def check(self, data: Any) -> ValidationResult:
        """Collect validation issues for a raw brief."""
        checker = _SchemaChecker()

        if not checker.object(data, 'brief'):
            return checker.result()

        checker.non_empty_string(data.get('campaign_id'), 'campaign_id')
        checker.non_empty_string(data.get('goal'), 'goal')

        product = data.get('product')
        if checker.object(product, 'product'):
            checker.non_empty_string(product.get('name'), 'product.name')
            checker.non_empty_string(product.get('category'), 'product.category')
            checker.string_list(product.get('key_features'), 'product.key_features',
                                min_items=1, non_empty_items=True)
            checker.non_empty_string(product.get('price'), 'product.price')

        checker.number(data.get('budget'), 'budget', minimum=0, exclusive=True)

        channels = data.get('channels')
        if checker.string_list(channels, 'channels', min_items=1):
            for channel in channels:
                if channel not in ALLOWED_CHANNELS:
                    checker.warning('channels', f"'{channel}' is not one of {', '.join(ALLOWED_CHANNELS)}")

        audience_hints = checker.optional(data, 'audience_hints')
        if audience_hints is not None:
            checker.string_list(audience_hints, 'audience_hints')

        tone = checker.optional(data, 'tone')
        if tone is not None:
            checker.string(tone, 'tone')

        return checker.result()

    def validate(self, data: Any) -> Brief:
        """
        Validate a raw brief and build the immutable Brief.

        Raises:
            ValidationError: If the brief violates the schema
        """
        result = self.check(data)
        if not result.is_valid:
            raise ValidationError("Brief", result.issues)

        for issue in result.issues:
            logger.warning(f"Brief warning: {issue}")

        product = data['product']
        return Brief(
            campaign_id=data['campaign_id'],
            goal=data['goal'],
            product=ProductBrief(
                name=product['name'],
                category=product['category'],
                key_features=tuple(product['key_features']),
                price=product['price']
            ),
            budget=data['budget'],
            channels=tuple(data['channels']),
            audience_hints=tuple(data.get('audience_hints') or ()),
            tone=data.get('tone') if data.get('tone') is not None else "neutral"
        )


class PlanValidator:
    """
    Validates generated plans against the plan contract.

    Accepts both raw generator output and previously finalized plans, so a
    plan carrying checks and scoring annotations round-trips without loss.
    """

    def __init__(self):
        """Initialize the plan validator."""
        self.required_plan_fields = ['campaign_id', 'campaign_name', 'objective', 'total_budget',
                                     'budget_breakdown', 'ad_groups', 'checks']
        self.required_creative_fields = ['headline', 'body', 'cta', 'justification']

    def check(self, data: Any) -> ValidationResult:
        """Collect validation issues for a raw plan."""
        checker = _SchemaChecker()

        if not checker.object(data, 'plan'):
            return checker.result()

        for field in self.required_plan_fields:
            if field not in data:
                checker.error(field, "missing required field")

        if 'campaign_id' in data:
            checker.non_empty_string(data['campaign_id'], 'campaign_id')
        if 'campaign_name' in data:
            checker.non_empty_string(data['campaign_name'], 'campaign_name')
        if 'objective' in data and checker.string(data['objective'], 'objective'):
            if data['objective'] not in KNOWN_OBJECTIVES:
                checker.warning('objective', f"'{data['objective']}' is not a standard objective")
        if 'total_budget' in data:
            checker.number(data['total_budget'], 'total_budget', minimum=0)

        breakdown = data.get('budget_breakdown')
        if 'budget_breakdown' in data and checker.object(breakdown, 'budget_breakdown'):
            for channel, amount in breakdown.items():
                checker.number(amount, f"budget_breakdown.{channel}", minimum=0)

        ad_groups = data.get('ad_groups')
        if 'ad_groups' in data:
            if not isinstance(ad_groups, list) or len(ad_groups) == 0:
                checker.error('ad_groups', "plan must have at least one ad group")
            else:
                for i, ad_group in enumerate(ad_groups):
                    self._check_ad_group(checker, ad_group, f"ad_groups[{i}]")

        checks = data.get('checks')
        if 'checks' in data and checker.object(checks, 'checks'):
            checker.boolean(checks.get('budget_sum_ok'), 'checks.budget_sum_ok')
            checker.boolean(checks.get('required_fields_present'), 'checks.required_fields_present')
            if checks.get('channel_valid') is not None:
                checker.boolean(checks['channel_valid'], 'checks.channel_valid')

        return checker.result()

    def _check_ad_group(self, checker: _SchemaChecker, ad_group: Any, location: str):
        if not checker.object(ad_group, location):
            return

        group_id = checker.optional(ad_group, 'id')
        if group_id is not None:
            checker.non_empty_string(group_id, f"{location}.id")

        channel = checker.optional(ad_group, 'channel')
        if channel is not None and channel not in ALLOWED_CHANNELS:
            checker.error(f"{location}.channel", f"must be one of {', '.join(ALLOWED_CHANNELS)}, got {channel!r}")

        checker.object(ad_group.get('target'), f"{location}.target")

        creatives = ad_group.get('creatives')
        if not isinstance(creatives, list) or len(creatives) == 0:
            checker.error(f"{location}.creatives", "ad group must have at least one creative")
            return

        for j, creative in enumerate(creatives):
            creative_location = f"{location}.creatives[{j}]"
            if not checker.object(creative, creative_location):
                continue

            creative_id = checker.optional(creative, 'id')
            if creative_id is not None:
                checker.non_empty_string(creative_id, f"{creative_location}.id")

            for field in self.required_creative_fields:
                checker.non_empty_string(creative.get(field), f"{creative_location}.{field}")

            if creative.get('relative_score') is not None:
                checker.number(creative['relative_score'], f"{creative_location}.relative_score")
            if creative.get('performance_rank') is not None:
                checker.integer(creative['performance_rank'], f"{creative_location}.performance_rank", minimum=1)
            score_factors = creative.get('score_factors')
            if score_factors is not None and checker.object(score_factors, f"{creative_location}.score_factors"):
                for key in SCORE_FACTOR_KEYS:
                    if key in score_factors:
                        checker.number(score_factors[key], f"{creative_location}.score_factors.{key}")

    def validate(self, data: Any) -> Plan:
        """
        Validate a raw plan and build the Plan object.

        Unknown keys are dropped.

        Raises:
            ValidationError: If the plan violates the schema
        """
        result = self.check(data)
        if not result.is_valid:
            raise ValidationError("Plan", result.issues)

        checks = data['checks']
        return Plan(
            campaign_id=data['campaign_id'],
            campaign_name=data['campaign_name'],
            objective=data['objective'],
            total_budget=data['total_budget'],
            budget_breakdown=dict(data['budget_breakdown']),
            ad_groups=[self._build_ad_group(ad_group) for ad_group in data['ad_groups']],
            checks=PlanChecks(
                budget_sum_ok=checks['budget_sum_ok'],
                required_fields_present=checks['required_fields_present'],
                channel_valid=checks['channel_valid'] if checks.get('channel_valid') is not None else True
            )
        )

    def _build_ad_group(self, data: Dict[str, Any]) -> AdGroup:
        return AdGroup(
            id=data.get('id'),
            channel=data.get('channel'),
            target=dict(data['target']),
            creatives=[self._build_creative(creative) for creative in data['creatives']]
        )

    def _build_creative(self, data: Dict[str, Any]) -> Creative:
        score_factors = data.get('score_factors')
        performance_rank = data.get('performance_rank')
        return Creative(
            id=data.get('id'),
            headline=data['headline'],
            body=data['body'],
            cta=data['cta'],
            justification=data['justification'],
            relative_score=data.get('relative_score'),
            performance_rank=int(performance_rank) if performance_rank is not None else None,
            score_factors=ScoreFactors.from_dict(score_factors) if score_factors is not None else None
        )


def parse_plan_json(content: str) -> Dict[str, Any]:
    """
    Parse completion text into a plan document.

    Markdown code fences around the JSON are tolerated; anything else that
    is not a JSON object is rejected.

    Raises:
        NonJSONContentError: If the content is empty or not a JSON object
    """
    if not content or not content.strip():
        raise NonJSONContentError("Model returned non-JSON content (empty completion)")

    cleaned = re.sub(r'^```(?:json)?\s*', '', content.strip())
    cleaned = re.sub(r'\s*```$', '', cleaned)

    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse model output as JSON: {content[:500]}...")
        raise NonJSONContentError(f"Model returned non-JSON content: {str(e)}")

    if not isinstance(parsed, dict):
        raise NonJSONContentError("Model returned non-JSON content: expected a JSON object")

    return parsed
