"""
Creative performance scoring heuristic.

A rule-based model that ranks creatives by expected relative performance
using historical ad metrics and copywriting best practices. Scores are
relative within a plan; they are not predictions of real CTR.
"""

import dataclasses
import logging
import math
import re
from typing import List, Optional, Sequence, Tuple

from models.data_models import AdMetric, Brief, Creative, CreativeScore, Plan, ScoreFactors
from .retrieval import KnowledgeRetriever
from .scoring_policy import CreativeScoringPolicy, DEFAULT_SCORING_POLICY

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

_DIGITS = re.compile(r'\d+')


def round2(value: float) -> float:
    """Round half up to two decimals."""
    return math.floor(value * 100 + 0.5) / 100


class CreativeScorer:
    """
    Scores and ranks the creatives of a plan.

    Each creative gets four independent factors (keyword match, headline
    type match, best practices, channel performance) computed against the
    historical metrics retrieved for the brief.
    """

    def __init__(self, retriever: Optional[KnowledgeRetriever] = None,
                 policy: CreativeScoringPolicy = DEFAULT_SCORING_POLICY):
        """
        Initialize the scorer.

        Args:
            retriever: Source of historical ad metrics
            policy: Keyword lists and point weights
        """
        self.retriever = retriever or KnowledgeRetriever()
        self.policy = policy

    def score_creative(self, creative: Creative, channel: Optional[str],
                       historical_metrics: Sequence[AdMetric]) -> ScoreFactors:
        """
        Compute the factor breakdown for one creative.

        Args:
            creative: Creative to score
            channel: Channel of the creative's ad group, if any
            historical_metrics: Metrics retrieved for the brief

        Returns:
            ScoreFactors with each factor rounded to two decimals
        """
        headline = creative.headline.lower()
        full_text = f"{headline} {creative.body.lower()}"

        channel_metrics = [
            metric for metric in historical_metrics
            if not channel or metric.channel.lower() == channel.lower()
        ]

        return ScoreFactors(
            keyword_match=round2(self._keyword_match(full_text, channel_metrics)),
            headline_type_match=round2(self._headline_type_match(headline, channel_metrics)),
            best_practices=round2(self._best_practices(creative, headline, full_text)),
            channel_performance=round2(self._channel_performance(channel, historical_metrics))
        )

    def _keyword_match(self, full_text: str, channel_metrics: List[AdMetric]) -> float:
        if not channel_metrics:
            return 0.0

        # max() keeps the first of equally performing metrics
        best_metric = max(channel_metrics, key=lambda metric: metric.performance)
        keywords = best_metric.headline_keywords
        if not keywords:
            return 0.0

        matching = [keyword for keyword in keywords if keyword.lower() in full_text]
        return len(matching) / len(keywords) * self.policy.keyword_match_max

    def _headline_type_match(self, headline: str, channel_metrics: List[AdMetric]) -> float:
        for archetype in self.policy.archetypes:
            hits = [keyword for keyword in archetype.keywords if keyword in headline]
            if not hits:
                continue

            # Only the first archetype with a keyword hit counts
            type_metrics = [
                metric for metric in channel_metrics
                if archetype.name.lower() in metric.headline_type.lower()
            ]
            if not type_metrics:
                return 0.0

            avg_performance = sum(metric.performance for metric in type_metrics) / len(type_metrics)
            return min(
                self.policy.headline_type_max,
                len(hits) * self.policy.headline_hit_points +
                avg_performance * self.policy.historical_performance_weight
            )

        return 0.0

    def _best_practices(self, creative: Creative, headline: str, full_text: str) -> float:
        policy = self.policy
        points = 0.0

        if any(verb in headline for verb in policy.action_verbs):
            points += policy.action_verb_points

        has_number = _DIGITS.search(headline) is not None
        has_urgency = any(word in full_text for word in policy.urgency_words)
        if has_number or has_urgency:
            points += policy.urgency_points

        cta = creative.cta.lower()
        if any(word in cta for word in policy.cta_words):
            points += policy.cta_points

        headline_min, headline_max = policy.headline_length_range
        if headline_min <= len(creative.headline) <= headline_max:
            points += policy.headline_length_points

        body_min, body_max = policy.body_length_range
        if body_min <= len(creative.body) <= body_max:
            points += policy.body_length_points

        if any(word in full_text for word in policy.value_words):
            points += policy.value_points

        return points

    def _channel_performance(self, channel: Optional[str], historical_metrics: Sequence[AdMetric]) -> float:
        if not channel:
            return self.policy.default_channel_performance

        metrics = [metric for metric in historical_metrics if metric.channel.lower() == channel.lower()]
        if not metrics:
            return self.policy.default_channel_performance

        avg_ctr = sum(metric.ctr for metric in metrics) / len(metrics)
        avg_conversion = sum(metric.conversion_rate for metric in metrics) / len(metrics)
        return min(self.policy.channel_performance_max,
                   avg_ctr * avg_conversion * self.policy.channel_performance_scale)

    def _score_positions(self, plan: Plan, brief: Brief) -> List[Tuple[Tuple[int, int], CreativeScore]]:
        historical_metrics = self.retriever.retrieve_ad_metrics(brief, brief.channels)

        scored = []
        for i, ad_group in enumerate(plan.ad_groups):
            for j, creative in enumerate(ad_group.creatives):
                factors = self.score_creative(creative, ad_group.channel, historical_metrics)
                total = min(self.policy.max_total, max(0.0, factors.total))
                scored.append(((i, j), CreativeScore(
                    creative_id=creative.id or 'unknown',
                    score=round2(total),
                    factors=factors
                )))

        # Stable sort, equal scores keep plan order
        scored = sorted(scored, key=lambda item: item[1].score, reverse=True)
        for rank, (_, creative_score) in enumerate(scored, start=1):
            creative_score.rank = rank

        return scored

    def score_creatives(self, plan: Plan, brief: Brief) -> List[CreativeScore]:
        """
        Score and rank all creatives in a plan.

        Args:
            plan: Finalized plan
            brief: Validated campaign brief

        Returns:
            CreativeScores sorted best first, ranks 1..N
        """
        return [creative_score for _, creative_score in self._score_positions(plan, brief)]

    def add_scores_to_plan(self, plan: Plan, brief: Brief) -> Plan:
        """
        Return a copy of the plan with score annotations on every creative.

        The input plan is left untouched. Scores are attached by position,
        so creatives sharing an id still receive their own scores.
        """
        scored = dict(self._score_positions(plan, brief))

        ad_groups = []
        for i, ad_group in enumerate(plan.ad_groups):
            creatives = []
            for j, creative in enumerate(ad_group.creatives):
                creative_score = scored[(i, j)]
                creatives.append(dataclasses.replace(
                    creative,
                    relative_score=creative_score.score,
                    performance_rank=creative_score.rank,
                    score_factors=dataclasses.replace(creative_score.factors)
                ))
            ad_groups.append(dataclasses.replace(ad_group, target=dict(ad_group.target), creatives=creatives))

        logger.info(f"Scored {len(scored)} creatives for {plan.campaign_id}")
        return dataclasses.replace(
            plan,
            budget_breakdown=dict(plan.budget_breakdown),
            ad_groups=ad_groups,
            checks=dataclasses.replace(plan.checks)
        )
