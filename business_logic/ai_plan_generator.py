"""
AI Plan Generator for turning campaign briefs into plan JSON.

This module builds the generation prompt (optionally grounded in verified
knowledge base facts) and calls an OpenAI-compatible chat completions API,
with an explicit primary-then-fallback attempt policy and a per-request
deadline.
"""

import logging
import json
import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Any
from openai import OpenAI

from models.data_models import Brief, GenerationResult
from config.settings import config_manager, AppConfig
from .error_handler import error_handler, PlanGenerationError

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

PROVIDER_BASE_URLS = {
    'groq': "https://api.groq.com/openai/v1",
    'openai': None
}

GROUNDING_INSTRUCTION = (
    "IMPORTANT: Use ONLY the verified product facts above. Do not invent features, "
    "prices, trial lengths or claims that are not listed. Prefer the headline styles "
    "and keywords that performed well historically."
)

SYSTEM_PROMPT = """You are an expert performance marketer. You turn a structured campaign brief into a concrete paid-media campaign plan.

RULES:
- Only use the channels "search", "social" and "display".
- The budget_breakdown values must add up exactly to the brief's budget.
- Only mention product features that appear in the brief or in the verified facts you are given.
- Every ad group needs at least one creative; every creative needs a headline, body, cta and justification.

OUTPUT FORMAT:
Return a single JSON object with this exact structure and nothing else:
{
    "campaign_id": "same as the brief",
    "campaign_name": "Short descriptive name",
    "objective": "trial_signups | conversions | awareness",
    "total_budget": budget_number,
    "budget_breakdown": {"search": amount, "social": amount},
    "ad_groups": [
        {
            "id": "ag_1",
            "channel": "search | social | display",
            "target": {"audience": "who this group targets"},
            "creatives": [
                {
                    "id": "c_1a",
                    "headline": "Headline text",
                    "body": "Body copy",
                    "cta": "Call to action",
                    "justification": "Why this creative should work"
                }
            ]
        }
    ],
    "checks": {"budget_sum_ok": true, "required_fields_present": true, "channel_valid": true}
}"""


@dataclass(frozen=True)
class GenerationAttempt:
    """One provider/model combination to try."""
    provider: str
    model: str

    @property
    def label(self) -> str:
        return f"{self.provider}:{self.model}"


class GenerationPolicy:
    """
    Ordered attempts for the generation call: primary, then at most one fallback.
    """

    def __init__(self, primary: GenerationAttempt, fallback: Optional[GenerationAttempt] = None):
        self.primary = primary
        self.fallback = fallback

    @classmethod
    def from_config(cls, config: AppConfig) -> 'GenerationPolicy':
        fallback = None
        if config.fallback_provider and config.fallback_model:
            fallback = GenerationAttempt(config.fallback_provider, config.fallback_model)
        return cls(GenerationAttempt(config.primary_provider, config.primary_model), fallback)

    def attempts(self, model_override: Optional[str] = None) -> List[GenerationAttempt]:
        """Attempts in order; a caller-supplied model replaces the primary model."""
        primary = self.primary
        if model_override:
            primary = GenerationAttempt(primary.provider, model_override)

        attempts = [primary]
        if self.fallback and self.fallback != primary:
            attempts.append(self.fallback)
        return attempts


class AIPlanGenerator:
    """
    Generates campaign plan JSON using OpenAI-compatible chat models.

    Handles prompt construction, client setup per provider, the
    primary/fallback attempt policy and token usage tracking.
    """

    def __init__(self, config: Optional[AppConfig] = None, policy: Optional[GenerationPolicy] = None,
                 skip_client_init: bool = False):
        """
        Initialize the AI Plan Generator.

        Args:
            config: Application configuration (loaded from settings if None)
            policy: Attempt policy (built from config if None)
            skip_client_init: Skip API client initialization (for testing)
        """
        self.config = config or config_manager.load_config()
        self.policy = policy or GenerationPolicy.from_config(self.config)
        self.clients: Dict[str, Any] = {}
        self.temperature = self.config.temperature
        self.timeout = self.config.request_timeout_seconds

        self.usage_tracker = {
            'calls': 0,
            'failed_calls': 0,
            'fallback_calls': 0,
            'prompt_tokens': 0,
            'completion_tokens': 0
        }

        if not skip_client_init:
            self._initialize_client(self.policy.primary.provider)

    def _initialize_client(self, provider: str):
        """Initialize the API client for a provider."""
        if provider not in PROVIDER_BASE_URLS:
            raise ValueError(f"Unsupported provider: {provider}")

        try:
            api_key = config_manager.get_api_key(provider)
            base_url = PROVIDER_BASE_URLS[provider]
            if base_url:
                self.clients[provider] = OpenAI(api_key=api_key, base_url=base_url)
            else:
                self.clients[provider] = OpenAI(api_key=api_key)
            logger.info(f"{provider} client initialized successfully")
        except Exception as e:
            logger.error(f"Failed to initialize {provider} client: {str(e)}")
            raise

    def _get_client(self, provider: str):
        if provider not in self.clients:
            self._initialize_client(provider)
        return self.clients[provider]

    def create_user_prompt(self, brief: Brief, grounding_context: str = "") -> str:
        """
        Create the user prompt for a brief.

        Args:
            brief: Validated campaign brief
            grounding_context: Verified facts block (empty when nothing matched)

        Returns:
            Formatted user prompt string
        """
        prompt = f"""Create a campaign plan for this brief:

{json.dumps(brief.to_dict(), indent=2)}

Return the plan in the specified JSON format."""

        if grounding_context:
            prompt = f"{prompt}\n\n{grounding_context}\n\n{GROUNDING_INSTRUCTION}"

        return prompt

    def build_messages(self, brief: Brief, grounding_context: str = "") -> List[Dict[str, str]]:
        """Ordered chat messages for the generation call."""
        return [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": self.create_user_prompt(brief, grounding_context)}
        ]

    def generate(self, messages: List[Dict[str, str]], model: Optional[str] = None) -> GenerationResult:
        """
        Run the generation call under the attempt policy.

        Args:
            messages: Ordered chat messages
            model: Optional model overriding the primary attempt's model

        Returns:
            GenerationResult from the first successful attempt

        Raises:
            PlanGenerationError: If every attempt failed (chained to the last error)
        """
        attempts = self.policy.attempts(model)
        outcome = error_handler.run_with_fallback(
            [(attempt.label, lambda attempt=attempt: self._call_api(attempt, messages)) for attempt in attempts],
            "plan generation"
        )

        if not outcome.success:
            self.usage_tracker['failed_calls'] += 1
            error_handler.log_error(outcome.error_info, "AI Plan Generation")
            raise PlanGenerationError(
                f"AI plan generation failed: {outcome.error_info.message}",
                error_info=outcome.error_info
            ) from outcome.error

        if outcome.attempts_made > 1:
            self.usage_tracker['fallback_calls'] += 1

        return outcome.result

    def _call_api(self, attempt: GenerationAttempt, messages: List[Dict[str, str]]) -> GenerationResult:
        """
        Call a chat completions API once.

        Raises:
            PlanGenerationError: If the response carries no content
            openai.OpenAIError: For API, connection and timeout failures
        """
        start_time = time.time()
        logger.info(f"Calling {attempt.provider} for plan generation using model: {attempt.model}")

        client = self._get_client(attempt.provider)
        response = client.chat.completions.create(
            model=attempt.model,
            messages=messages,
            temperature=self.temperature,
            response_format={"type": "json_object"},
            timeout=self.timeout
        )

        if not response.choices:
            raise PlanGenerationError(f"Empty response from model ({attempt.label})")

        content = response.choices[0].message.content
        if not content:
            raise PlanGenerationError(f"Empty response from model ({attempt.label})")

        prompt_tokens = 0
        completion_tokens = 0
        if getattr(response, 'usage', None):
            prompt_tokens = response.usage.prompt_tokens or 0
            completion_tokens = response.usage.completion_tokens or 0

        self.track_usage(prompt_tokens, completion_tokens)
        logger.info(f"{attempt.provider} call succeeded in {time.time() - start_time:.2f}s "
                    f"({prompt_tokens + completion_tokens} tokens)")

        return GenerationResult(
            content=content,
            provider=attempt.provider,
            model=attempt.model,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens
        )

    def track_usage(self, prompt_tokens: int, completion_tokens: int):
        """Accumulate token usage across calls."""
        self.usage_tracker['calls'] += 1
        self.usage_tracker['prompt_tokens'] += prompt_tokens
        self.usage_tracker['completion_tokens'] += completion_tokens
