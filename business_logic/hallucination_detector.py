"""
Detection of invented product claims and illegal channels in generated plans.
"""

import logging
import re
from typing import Iterable, Set

from models.data_models import Brief, HallucinationFlags, Plan
from .scoring_policy import HallucinationPolicy, DEFAULT_HALLUCINATION_POLICY

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

_FEATURE_SEPARATORS = re.compile(r'[\s\-_,]+')
_KEYWORD_SEPARATORS = re.compile(r'[\s\-_]+')


def feature_vocabulary(key_features: Iterable[str]) -> Set[str]:
    """Words (longer than two characters) and full phrases of the brief's features."""
    vocabulary = set()
    for feature in key_features:
        feature = feature.lower()
        for word in _FEATURE_SEPARATORS.split(feature):
            if len(word) > 2:
                vocabulary.add(word)
        vocabulary.add(feature)
    return vocabulary


class HallucinationDetector:
    """
    Flags feature-sounding claims the brief does not support and budget
    channels outside the allowed set.
    """

    def __init__(self, policy: HallucinationPolicy = DEFAULT_HALLUCINATION_POLICY):
        self.policy = policy

    def _is_supported(self, keyword: str, vocabulary: Set[str]) -> bool:
        """A keyword is supported if any of its words fuzzy-matches a feature word."""
        return any(
            feature_word in part or part in feature_word
            for part in _KEYWORD_SEPARATORS.split(keyword)
            for feature_word in vocabulary
        )

    def detect_hallucinations(self, brief: Brief, plan: Plan) -> HallucinationFlags:
        """
        Inspect a plan for invented features and invalid channels.

        Args:
            brief: Validated campaign brief
            plan: Finalized plan

        Returns:
            HallucinationFlags with a score clamped to [0, 1]
        """
        policy = self.policy
        flags = HallucinationFlags()
        vocabulary = feature_vocabulary(brief.product.key_features)
        score = 0.0

        for _, creative in plan.iter_creatives():
            text = f"{creative.headline or ''} {creative.body or ''}".lower()

            for keyword in policy.suspicious_keywords:
                if keyword in policy.allowed_descriptors or keyword not in text:
                    continue
                if not self._is_supported(keyword, vocabulary):
                    logger.info(f"Unsupported feature claim '{keyword}' in creative {creative.id}")
                    flags.product_features_invented = True
                    score += policy.feature_penalty

        allowed_channels = {channel.lower() for channel in policy.allowed_channels}
        for channel in plan.budget_breakdown:
            if channel.lower() not in allowed_channels:
                flags.invalid_channels = True
                score += policy.channel_penalty

        flags.score = min(policy.max_score, score)
        return flags
