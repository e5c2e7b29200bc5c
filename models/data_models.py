"""
Core data models for the campaign planner.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Any, Tuple


ALLOWED_CHANNELS = ("search", "social", "display")


@dataclass(frozen=True)
class ProductBrief:
    """Product section of a campaign brief."""
    name: str
    category: str
    key_features: Tuple[str, ...]
    price: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'category': self.category,
            'key_features': list(self.key_features),
            'price': self.price
        }


@dataclass(frozen=True)
class Brief:
    """Validated campaign brief. Read-only for the lifetime of a request."""
    campaign_id: str
    goal: str
    product: ProductBrief
    budget: float
    channels: Tuple[str, ...]
    audience_hints: Tuple[str, ...] = ()
    tone: str = "neutral"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'campaign_id': self.campaign_id,
            'goal': self.goal,
            'product': self.product.to_dict(),
            'budget': self.budget,
            'channels': list(self.channels),
            'audience_hints': list(self.audience_hints),
            'tone': self.tone
        }


@dataclass(frozen=True)
class ProductFact:
    """Verified product entry from the knowledge base."""
    product_id: str
    product_name: str
    verified_features: Tuple[str, ...]
    official_price: str
    official_description: str
    trial_length: Optional[str] = None
    target_audience: Tuple[str, ...] = ()
    key_benefits: Tuple[str, ...] = ()


@dataclass(frozen=True)
class AdMetric:
    """Historical ad performance record from the knowledge base."""
    campaign_id: str
    product_category: str
    channel: str
    headline_type: str
    headline_keywords: Tuple[str, ...]
    ctr: float
    conversion_rate: float
    avg_cost_per_conversion: float

    @property
    def performance(self) -> float:
        return self.ctr * self.conversion_rate


@dataclass(frozen=True)
class KnowledgeBase:
    """Immutable snapshot of the knowledge base file."""
    products: Tuple[ProductFact, ...]
    ad_metrics: Tuple[AdMetric, ...]


@dataclass
class ScoreFactors:
    """Breakdown of a creative's heuristic score."""
    keyword_match: float
    headline_type_match: float
    best_practices: float
    channel_performance: float

    @property
    def total(self) -> float:
        return (self.keyword_match + self.headline_type_match +
                self.best_practices + self.channel_performance)

    def to_dict(self) -> Dict[str, float]:
        return {
            'keywordMatch': self.keyword_match,
            'headlineTypeMatch': self.headline_type_match,
            'bestPractices': self.best_practices,
            'channelPerformance': self.channel_performance
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ScoreFactors':
        return cls(
            keyword_match=float(data.get('keywordMatch', 0)),
            headline_type_match=float(data.get('headlineTypeMatch', 0)),
            best_practices=float(data.get('bestPractices', 0)),
            channel_performance=float(data.get('channelPerformance', 0))
        )


@dataclass
class CreativeScore:
    """Score and rank of a single creative."""
    creative_id: str
    score: float
    factors: ScoreFactors
    rank: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'creativeId': self.creative_id,
            'score': self.score,
            'factors': self.factors.to_dict(),
            'rank': self.rank
        }


@dataclass
class Creative:
    """One candidate ad within an ad group."""
    headline: str
    body: str
    cta: str
    justification: str
    id: Optional[str] = None
    relative_score: Optional[float] = None
    performance_rank: Optional[int] = None
    score_factors: Optional[ScoreFactors] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.id is not None:
            data['id'] = self.id
        data.update({
            'headline': self.headline,
            'body': self.body,
            'cta': self.cta,
            'justification': self.justification
        })
        if self.relative_score is not None:
            data['relative_score'] = self.relative_score
        if self.performance_rank is not None:
            data['performance_rank'] = self.performance_rank
        if self.score_factors is not None:
            data['score_factors'] = self.score_factors.to_dict()
        return data


@dataclass
class AdGroup:
    """Targeting unit holding one or more creatives."""
    target: Dict[str, Any]
    creatives: List[Creative]
    id: Optional[str] = None
    channel: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.id is not None:
            data['id'] = self.id
        if self.channel is not None:
            data['channel'] = self.channel
        data['target'] = dict(self.target)
        data['creatives'] = [creative.to_dict() for creative in self.creatives]
        return data


@dataclass
class PlanChecks:
    """Validation flags recomputed on every finalized plan."""
    budget_sum_ok: bool
    required_fields_present: bool
    channel_valid: bool = True

    def to_dict(self) -> Dict[str, bool]:
        return {
            'budget_sum_ok': self.budget_sum_ok,
            'required_fields_present': self.required_fields_present,
            'channel_valid': self.channel_valid
        }


@dataclass
class Plan:
    """Generated campaign plan."""
    campaign_id: str
    campaign_name: str
    objective: str
    total_budget: float
    budget_breakdown: Dict[str, float]
    ad_groups: List[AdGroup]
    checks: PlanChecks

    def iter_creatives(self):
        """Yield (ad_group, creative) pairs in plan order."""
        for ad_group in self.ad_groups:
            for creative in ad_group.creatives:
                yield ad_group, creative

    def to_dict(self) -> Dict[str, Any]:
        return {
            'campaign_id': self.campaign_id,
            'campaign_name': self.campaign_name,
            'objective': self.objective,
            'total_budget': self.total_budget,
            'budget_breakdown': dict(self.budget_breakdown),
            'ad_groups': [ad_group.to_dict() for ad_group in self.ad_groups],
            'checks': self.checks.to_dict()
        }


@dataclass
class TokenUsage:
    """Token counters reported by the generation call."""
    prompt: int = 0
    completion: int = 0

    @property
    def total(self) -> int:
        return self.prompt + self.completion

    def to_dict(self) -> Dict[str, int]:
        return {'prompt': self.prompt, 'completion': self.completion, 'total': self.total}


@dataclass
class HallucinationFlags:
    """Indicators of invented claims in a plan."""
    product_features_invented: bool = False
    invalid_channels: bool = False
    score: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'productFeaturesInvented': self.product_features_invented,
            'invalidChannels': self.invalid_channels,
            'score': self.score
        }


@dataclass
class RequestMetrics:
    """Per-request observability record."""
    campaign_id: str
    timestamp: datetime
    tokens: TokenUsage
    latency_ms: int
    hallucination_flags: HallucinationFlags
    validation_errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'campaignId': self.campaign_id,
            'timestamp': self.timestamp.isoformat(),
            'tokens': self.tokens.to_dict(),
            'latency': self.latency_ms,
            'hallucinationFlags': self.hallucination_flags.to_dict(),
            'validationErrors': list(self.validation_errors)
        }


@dataclass
class GenerationResult:
    """Completion text and usage returned by the text-generation call."""
    content: str
    provider: str
    model: str
    prompt_tokens: int = 0
    completion_tokens: int = 0

    @property
    def usage(self) -> TokenUsage:
        return TokenUsage(prompt=self.prompt_tokens, completion=self.completion_tokens)
