"""
End-to-end tests for the campaign planning pipeline.

The text-generation API is mocked; everything else (knowledge base file,
retrieval, finalization, scoring, detection and metrics) runs for real.
"""

import copy
import json
from unittest.mock import Mock

import pytest

from business_logic.ai_plan_generator import AIPlanGenerator
from business_logic.error_handler import NonJSONContentError
from business_logic.plan_controller import CampaignPlanController, PlanResult
from business_logic.plan_validator import PlanValidator
from config.settings import AppConfig


def completion(content, prompt_tokens=900, completion_tokens=600):
    response = Mock()
    response.choices = [Mock(message=Mock(content=content))]
    response.usage = Mock(prompt_tokens=prompt_tokens, completion_tokens=completion_tokens)
    return response


class TestCampaignPlanWorkflow:
    """Complete workflow tests through CampaignPlanController."""

    @pytest.fixture(autouse=True)
    def setup(self, kb_manager, brief_data, raw_plan):
        self.client = Mock()
        generator = AIPlanGenerator(config=AppConfig(fallback_provider=None, fallback_model=None),
                                    skip_client_init=True)
        generator.clients = {'groq': self.client}
        self.controller = CampaignPlanController(kb_manager, generator=generator)
        self.brief = brief_data
        self.raw_plan = raw_plan

    def respond_with(self, plan):
        self.client.chat.completions.create.return_value = completion(json.dumps(plan))

    def user_prompt(self):
        return self.client.chat.completions.create.call_args.kwargs['messages'][1]['content']

    def test_grounded_plan_generation(self):
        self.respond_with(self.raw_plan)

        result = self.controller.generate_plan(self.brief)

        assert isinstance(result, PlanResult)
        assert result.grounded is True
        assert "VERIFIED PRODUCT FACTS:" in self.user_prompt()
        assert "- Official Price: $9.99/mo" in self.user_prompt()

        plan = result.plan
        assert plan.total_budget == 5000
        assert plan.checks.budget_sum_ok is True
        assert plan.checks.channel_valid is True
        assert [group.id for group in plan.ad_groups] == ["ag_1", "ag_2"]

        assert [score.rank for score in result.scores] == [1, 2]
        assert result.scores[0].creative_id == "c_1a"
        assert all(0 <= score.score <= 100 for score in result.scores)

        metrics = result.metrics
        assert metrics.campaign_id == "cmp_focusflow_001"
        assert metrics.tokens.total == 1500
        assert metrics.latency_ms >= 0
        assert metrics.validation_errors == []
        assert metrics.hallucination_flags.score == 0.0

    def test_invented_feature_detected(self):
        self.raw_plan['ad_groups'][0]['creatives'][0]['body'] = "Real-time collaboration for your whole team."
        self.respond_with(self.raw_plan)

        flags = self.controller.generate_plan(self.brief).metrics.hallucination_flags

        assert flags.product_features_invented is True
        assert flags.score >= 0.1

    def test_budget_sum_checks(self):
        self.respond_with(self.raw_plan)
        assert self.controller.generate_plan(self.brief).plan.checks.budget_sum_ok is True

        self.raw_plan['budget_breakdown'] = {"search": 2500, "social": 2400}
        self.respond_with(self.raw_plan)
        result = self.controller.generate_plan(self.brief)

        assert result.plan.checks.budget_sum_ok is False
        assert "Budget breakdown does not sum to total budget" in result.metrics.validation_errors

    def test_invalid_channel(self):
        self.raw_plan['budget_breakdown'] = {"search": 2500, "email": 2500}
        self.respond_with(self.raw_plan)

        result = self.controller.generate_plan(self.brief)

        assert result.plan.checks.channel_valid is False
        assert result.metrics.hallucination_flags.invalid_channels is True

    def test_matching_kb_price(self):
        self.raw_plan['ad_groups'][0]['creatives'][0]['body'] = "Only $9.99/month after your trial."
        self.respond_with(self.raw_plan)

        result = self.controller.generate_plan(self.brief)

        assert result.metrics.validation_errors == []

    def test_mismatched_kb_price(self):
        self.raw_plan['ad_groups'][0]['creatives'][0]['body'] = "Only $14.99/month after your trial."
        self.respond_with(self.raw_plan)

        errors = self.controller.generate_plan(self.brief).metrics.validation_errors

        assert len(errors) == 1
        assert "doesn't match KB price ($9.99/mo)" in errors[0]

    def test_ungrounded_when_no_match(self):
        self.brief['product'].update({"name": "Zebra Paint", "category": "art supplies",
                                      "key_features": ["acrylic colors"]})
        self.respond_with(self.raw_plan)

        result = self.controller.generate_plan(self.brief)

        assert result.grounded is False
        assert "VERIFIED PRODUCT FACTS" not in self.user_prompt()

    def test_model_override_passed_through(self):
        self.respond_with(self.raw_plan)

        self.controller.generate_plan(self.brief, model="llama-3.3-70b-versatile")

        assert self.client.chat.completions.create.call_args.kwargs['model'] == "llama-3.3-70b-versatile"

    def test_non_json_completion(self):
        self.client.chat.completions.create.return_value = completion("Sure! Here is your plan.")

        with pytest.raises(NonJSONContentError):
            self.controller.generate_plan(self.brief)

    def test_scored_plan_round_trips(self):
        self.respond_with(self.raw_plan)

        plan = self.controller.generate_plan(self.brief).plan
        again = PlanValidator().validate(plan.to_dict())

        assert again.to_dict() == plan.to_dict()

    def test_result_serializes(self):
        self.respond_with(self.raw_plan)

        data = self.controller.generate_plan(self.brief).to_dict()

        assert json.loads(json.dumps(data))['metrics']['campaignId'] == "cmp_focusflow_001"
        assert data['scores'][0]['rank'] == 1


class TestHandleRequest:
    """Error paths through CampaignPlanController.handle_request."""

    @pytest.fixture(autouse=True)
    def setup(self, kb_manager, brief_data, raw_plan):
        self.client = Mock()
        generator = AIPlanGenerator(config=AppConfig(fallback_provider=None, fallback_model=None),
                                    skip_client_init=True)
        generator.clients = {'groq': self.client}
        self.controller = CampaignPlanController(kb_manager, generator=generator)
        self.brief = brief_data
        self.raw_plan = raw_plan

    def test_success(self):
        self.client.chat.completions.create.return_value = completion(json.dumps(self.raw_plan))

        success, result, notification = self.controller.handle_request(self.brief)

        assert success is True
        assert result.plan.campaign_id == "cmp_focusflow_001"
        assert notification is None

    def test_invalid_brief_fails_before_generation(self):
        self.brief['budget'] = -5

        success, result, notification = self.controller.handle_request(self.brief)

        assert success is False
        assert result is None
        assert notification['title'] == "Validation Error"
        self.client.chat.completions.create.assert_not_called()

    def test_non_json_completion(self):
        self.client.chat.completions.create.return_value = completion("not json at all")

        success, result, notification = self.controller.handle_request(self.brief)

        assert success is False
        assert notification['title'] == "Plan Generation Error"

    def test_invalid_generated_plan(self):
        broken = copy.deepcopy(self.raw_plan)
        del broken['ad_groups']
        self.client.chat.completions.create.return_value = completion(json.dumps(broken))

        success, _, notification = self.controller.handle_request(self.brief)

        assert success is False
        assert notification['title'] == "Validation Error"
        assert "ad_groups" in notification['message']

    def test_malformed_score_annotation(self):
        self.raw_plan['ad_groups'][0]['creatives'][0]['score_factors'] = {"keywordMatch": "high"}
        self.client.chat.completions.create.return_value = completion(json.dumps(self.raw_plan))

        success, _, notification = self.controller.handle_request(self.brief)

        assert success is False
        assert notification['title'] == "Validation Error"
        assert "score_factors.keywordMatch" in notification['message']

    def test_generation_failure(self):
        self.client.chat.completions.create.side_effect = RuntimeError("provider exploded")

        success, result, notification = self.controller.handle_request(self.brief)

        assert success is False
        assert result is None
        assert notification['type'] == 'error'

    def test_missing_knowledge_base(self, tmp_path):
        from data.manager import KnowledgeBaseManager
        self.controller = CampaignPlanController(KnowledgeBaseManager(str(tmp_path / "missing.json")),
                                                 generator=self.controller.generator)

        success, _, notification = self.controller.handle_request(self.brief)

        assert success is False
        assert notification['title'] == "Knowledge Base Error"

    def test_system_status(self):
        status = self.controller.get_system_status()

        assert status['knowledge_base']['products'] == 3
        assert 'usage' in status
