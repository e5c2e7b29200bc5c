"""
Shared fixtures for the campaign planner tests.
"""

import copy
from pathlib import Path

import pytest

from data.manager import KnowledgeBaseManager
from models.data_models import AdMetric, KnowledgeBase, ProductFact

KNOWLEDGE_BASE_PATH = str(Path(__file__).resolve().parent.parent / "data" / "knowledge_base.json")

BRIEF = {
    "campaign_id": "cmp_focusflow_001",
    "goal": "trial_signups",
    "product": {
        "name": "FocusFlow",
        "category": "productivity",
        "key_features": ["AI-assisted task prioritization"],
        "price": "$9.99/mo"
    },
    "budget": 5000,
    "channels": ["search", "social"],
    "audience_hints": ["remote workers"],
    "tone": "friendly"
}

RAW_PLAN = {
    "campaign_id": "cmp_focusflow_001",
    "campaign_name": "FocusFlow Trial Push",
    "objective": "trial_signups",
    "total_budget": 5000,
    "budget_breakdown": {"search": 2500, "social": 2500},
    "ad_groups": [
        {
            "channel": "search",
            "target": {"audience": "remote workers"},
            "creatives": [
                {
                    "headline": "Try FocusFlow free today",
                    "body": "Start a free trial and let AI prioritize your tasks so you can focus on work.",
                    "cta": "Start Free Trial",
                    "justification": "Trial-focused copy performed best on search."
                }
            ]
        },
        {
            "channel": "social",
            "target": {"audience": "freelancers"},
            "creatives": [
                {
                    "headline": "Deep work made simple",
                    "body": "Plan less.",
                    "cta": "Learn more",
                    "justification": "Short benefit copy for feeds."
                }
            ]
        }
    ],
    "checks": {"budget_sum_ok": True, "required_fields_present": True}
}


@pytest.fixture
def knowledge_base_path():
    return KNOWLEDGE_BASE_PATH


@pytest.fixture
def kb_manager():
    """Manager reading the bundled knowledge base file."""
    return KnowledgeBaseManager(KNOWLEDGE_BASE_PATH)


@pytest.fixture
def small_knowledge_base():
    """In-memory knowledge base with one product and two productivity metrics."""
    return KnowledgeBase(
        products=(
            ProductFact(
                product_id="productivity_focusflow",
                product_name="FocusFlow",
                verified_features=("AI-assisted task prioritization", "Calendar integration"),
                official_price="$9.99/mo",
                official_description="Productivity app that prioritizes your tasks.",
                trial_length="14-day free trial"
            ),
        ),
        ad_metrics=(
            AdMetric(
                campaign_id="hist_search",
                product_category="productivity",
                channel="search",
                headline_type="trial-focused",
                headline_keywords=("free", "trial", "try"),
                ctr=0.05,
                conversion_rate=0.08,
                avg_cost_per_conversion=20.0
            ),
            AdMetric(
                campaign_id="hist_social",
                product_category="productivity",
                channel="social",
                headline_type="benefit-focused",
                headline_keywords=("focus", "save", "time"),
                ctr=0.02,
                conversion_rate=0.04,
                avg_cost_per_conversion=30.0
            ),
        )
    )


@pytest.fixture
def brief_data():
    return copy.deepcopy(BRIEF)


@pytest.fixture
def raw_plan():
    return copy.deepcopy(RAW_PLAN)
