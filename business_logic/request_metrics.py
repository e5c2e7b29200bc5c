"""
Per-request metrics: token usage, latency, hallucination flags and
validation errors, logged as a readable summary plus a JSON record.
"""

import json
import logging
from datetime import datetime
from typing import List, Optional

from models.data_models import HallucinationFlags, Plan, RequestMetrics, TokenUsage

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def check_failure_messages(plan: Plan) -> List[str]:
    """Human-readable messages for failed plan checks."""
    messages = []
    if not plan.checks.budget_sum_ok:
        messages.append("Budget breakdown does not sum to total budget")
    if not plan.checks.channel_valid:
        messages.append("Budget breakdown contains channels outside search, social, display")
    if not plan.checks.required_fields_present:
        messages.append("Plan is missing required fields")
    return messages


def build_request_metrics(campaign_id: str, tokens: TokenUsage, latency_ms: int,
                          hallucination_flags: HallucinationFlags,
                          validation_errors: List[str],
                          timestamp: Optional[datetime] = None) -> RequestMetrics:
    """Assemble the metrics record for a completed request."""
    return RequestMetrics(
        campaign_id=campaign_id,
        timestamp=timestamp or datetime.now(),
        tokens=tokens,
        latency_ms=latency_ms,
        hallucination_flags=hallucination_flags,
        validation_errors=list(validation_errors)
    )


def format_metrics_summary(metrics: RequestMetrics) -> List[str]:
    """Summary lines for a metrics record."""
    flags = metrics.hallucination_flags
    lines = [
        "=== Request Metrics Summary ===",
        f"Campaign: {metrics.campaign_id}",
        f"Tokens: {metrics.tokens.total} ({metrics.tokens.prompt} prompt + {metrics.tokens.completion} completion)",
        f"Latency: {metrics.latency_ms}ms",
        f"Hallucination Score: {flags.score * 100:.1f}%",
    ]
    if flags.score > 0:
        lines.append(f"  - Features invented: {'YES' if flags.product_features_invented else 'NO'}")
        lines.append(f"  - Invalid channels: {'YES' if flags.invalid_channels else 'NO'}")
    if metrics.validation_errors:
        lines.append(f"Validation Errors: {', '.join(metrics.validation_errors)}")
    lines.append("==============================")
    return lines


def log_metrics(metrics: RequestMetrics):
    """Log the summary followed by the full JSON record."""
    for line in format_metrics_summary(metrics):
        logger.info(line)

    record = {'type': 'request_metrics'}
    record.update(metrics.to_dict())
    logger.info(json.dumps(record, indent=2))
