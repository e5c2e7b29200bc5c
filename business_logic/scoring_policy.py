"""
Heuristic tables for creative scoring and hallucination detection.

Keeping the keyword lists and point weights in one place lets the scoring
policy be reviewed and swapped in tests without touching the scorers.
"""

from dataclasses import dataclass
from typing import Tuple

from models.data_models import ALLOWED_CHANNELS


@dataclass(frozen=True)
class HeadlineArchetype:
    """Named headline style and the keywords that signal it."""
    name: str
    keywords: Tuple[str, ...]


DEFAULT_ARCHETYPES = (
    HeadlineArchetype('trial-focused', ('trial', 'try', 'free', 'start', 'begin')),
    HeadlineArchetype('feature-focused', ('ai', 'automation', 'smart', 'integrat', 'sync')),
    HeadlineArchetype('benefit-focused', ('productivity', 'efficiency', 'time', 'save', 'boost')),
    HeadlineArchetype('sustainability-focused', ('eco', 'sustainable', 'green', 'environment')),
)


@dataclass(frozen=True)
class CreativeScoringPolicy:
    """Weights and keyword lists for the creative performance heuristic."""
    # Factor caps
    keyword_match_max: float = 40.0
    headline_type_max: float = 20.0
    channel_performance_max: float = 15.0
    max_total: float = 100.0

    # Headline archetypes in priority order
    archetypes: Tuple[HeadlineArchetype, ...] = DEFAULT_ARCHETYPES
    headline_hit_points: float = 5.0
    historical_performance_weight: float = 10.0

    # Best practices
    action_verbs: Tuple[str, ...] = ('get', 'try', 'start', 'discover', 'join', 'claim', 'save', 'boost')
    action_verb_points: float = 5.0
    urgency_words: Tuple[str, ...] = ('now', 'today', 'limited', 'new', 'free')
    urgency_points: float = 5.0
    cta_words: Tuple[str, ...] = ('start', 'try', 'get', 'claim', 'sign up', 'download')
    cta_points: float = 5.0
    headline_length_range: Tuple[int, int] = (20, 60)
    headline_length_points: float = 3.0
    body_length_range: Tuple[int, int] = (50, 200)
    body_length_points: float = 2.0
    value_words: Tuple[str, ...] = ('free', 'save', 'boost', 'improve', 'better', 'faster', 'easier')
    value_points: float = 5.0

    # Channel baseline
    default_channel_performance: float = 5.0
    channel_performance_scale: float = 3000.0


@dataclass(frozen=True)
class HallucinationPolicy:
    """Keyword lists and penalties for invented-claim detection."""
    suspicious_keywords: Tuple[str, ...] = (
        'analytics', 'reporting', 'automation', 'ml', 'machine learning',
        'encryption', 'backup', 'collaboration', 'real-time', 'sync'
    )
    # Generic descriptors, never treated as invented features
    allowed_descriptors: Tuple[str, ...] = ('ai', 'cloud', 'secure', 'integration', 'offline', 'api')
    allowed_channels: Tuple[str, ...] = ALLOWED_CHANNELS
    feature_penalty: float = 0.1
    channel_penalty: float = 0.1
    max_score: float = 1.0


DEFAULT_SCORING_POLICY = CreativeScoringPolicy()
DEFAULT_HALLUCINATION_POLICY = HallucinationPolicy()
