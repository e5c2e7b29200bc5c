"""
Campaign Plan Controller - Orchestrates the complete planning workflow.

This module wires retrieval, generation, finalization, scoring and
hallucination checks into a single request pipeline.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from models.data_models import CreativeScore, Plan, RequestMetrics
from data.manager import KnowledgeBaseManager
from config.settings import config_manager
from .ai_plan_generator import AIPlanGenerator
from .creative_scorer import CreativeScorer
from .error_handler import error_handler
from .hallucination_detector import HallucinationDetector
from .plan_finalizer import PlanFinalizer
from .plan_validator import BriefValidator, parse_plan_json
from .request_metrics import build_request_metrics, check_failure_messages, log_metrics
from .retrieval import KnowledgeRetriever

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@dataclass
class PlanResult:
    """Finalized, scored plan together with its request metrics."""
    plan: Plan
    metrics: RequestMetrics
    scores: List[CreativeScore]
    grounded: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            'plan': self.plan.to_dict(),
            'metrics': self.metrics.to_dict(),
            'scores': [score.to_dict() for score in self.scores],
            'grounded': self.grounded
        }


class CampaignPlanController:
    """
    Main controller for the campaign planning workflow.

    Validates the brief, grounds the prompt in the knowledge base, calls the
    generator, then repairs, scores and audits the resulting plan.
    """

    def __init__(self, knowledge_base_manager: Optional[KnowledgeBaseManager] = None,
                 generator: Optional[AIPlanGenerator] = None,
                 testing_mode: bool = False):
        """
        Initialize the campaign plan controller.

        Args:
            knowledge_base_manager: Optional KnowledgeBaseManager instance
            generator: Optional AIPlanGenerator instance
            testing_mode: Skip API client initialization for testing
        """
        self.knowledge_base_manager = knowledge_base_manager or KnowledgeBaseManager()
        self.retriever = KnowledgeRetriever(self.knowledge_base_manager)
        self.generator = generator or AIPlanGenerator(skip_client_init=testing_mode)
        self.brief_validator = BriefValidator()
        self.finalizer = PlanFinalizer(budget_tolerance=config_manager.get_budget_tolerance())
        self.scorer = CreativeScorer(self.retriever)
        self.detector = HallucinationDetector()

        logger.info("CampaignPlanController initialized")

    def generate_plan(self, brief_input: Any, model: Optional[str] = None) -> PlanResult:
        """
        Run the full pipeline for one brief.

        Args:
            brief_input: Raw brief document (e.g. parsed request JSON)
            model: Optional model overriding the primary generation model

        Returns:
            PlanResult with the scored plan and request metrics

        Raises:
            ValidationError: If the brief or the generated plan violates the schema
            PlanGenerationError: If generation failed or returned non-JSON content
            FileNotFoundError: If the knowledge base file is missing
            KnowledgeBaseError: If the knowledge base file is malformed
        """
        start_time = time.time()

        brief = self.brief_validator.validate(brief_input)
        logger.info(f"Starting plan generation for {brief.campaign_id} ({brief.product.name})")

        grounding_context = self.retriever.format_retrieved_context(brief)
        if grounding_context:
            logger.info(f"[Grounding] Injected knowledge base context for {brief.product.name}")
        else:
            logger.info(f"[Grounding] No knowledge base match for {brief.product.name}, generating ungrounded")

        messages = self.generator.build_messages(brief, grounding_context)
        generation = self.generator.generate(messages, model=model)
        logger.info(f"Plan generated by {generation.provider}:{generation.model}")

        raw_plan = parse_plan_json(generation.content)
        plan = self.finalizer.finalize_plan(brief, raw_plan)

        scored_plan = self.scorer.add_scores_to_plan(plan, brief)
        scores = self._collect_scores(scored_plan)

        hallucination_flags = self.detector.detect_hallucinations(brief, scored_plan)
        validation_errors = self.retriever.validate_against_kb(brief, scored_plan)
        validation_errors.extend(check_failure_messages(scored_plan))

        latency_ms = int((time.time() - start_time) * 1000)
        metrics = build_request_metrics(
            campaign_id=brief.campaign_id,
            tokens=generation.usage,
            latency_ms=latency_ms,
            hallucination_flags=hallucination_flags,
            validation_errors=validation_errors
        )
        log_metrics(metrics)

        return PlanResult(
            plan=scored_plan,
            metrics=metrics,
            scores=scores,
            grounded=bool(grounding_context)
        )

    def handle_request(self, brief_input: Any,
                       model: Optional[str] = None) -> Tuple[bool, Optional[PlanResult], Optional[Dict[str, Any]]]:
        """
        Run the pipeline and turn any failure into a user notification.

        Returns:
            Tuple of (success, PlanResult or None, user_notification or None)
        """
        try:
            return True, self.generate_plan(brief_input, model=model), None
        except Exception as e:
            error_info = error_handler.classify_error(e, "campaign plan generation")
            error_handler.log_error(error_info, "Campaign Plan")
            return False, None, error_handler.create_user_notification(error_info)

    def _collect_scores(self, plan: Plan) -> List[CreativeScore]:
        """Score records of an annotated plan, best first."""
        scores = [
            CreativeScore(
                creative_id=creative.id or 'unknown',
                score=creative.relative_score,
                factors=creative.score_factors,
                rank=creative.performance_rank
            )
            for _, creative in plan.iter_creatives()
        ]
        return sorted(scores, key=lambda score: score.rank)

    def get_system_status(self) -> Dict[str, Any]:
        """Knowledge base and generator status for display."""
        return {
            'knowledge_base': self.knowledge_base_manager.get_status(),
            'generation': config_manager.describe(),
            'usage': dict(self.generator.usage_tracker),
            'errors': error_handler.get_error_statistics()
        }
