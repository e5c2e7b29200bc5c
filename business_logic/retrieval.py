"""
Grounding retrieval against the product knowledge base.

This module resolves a brief's product to a verified knowledge base entry,
ranks historical ad metrics, renders the grounding block injected into the
generation prompt, and cross-checks prices quoted in a generated plan.
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional, Sequence, Union

from models.data_models import AdMetric, Brief, Plan, ProductFact
from data.manager import KnowledgeBaseManager
from .text_similarity import Corpus, combined_similarity, name_match_boost, category_match_boost

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

SIMILARITY_THRESHOLD = 0.1
CONTEXT_METRIC_LIMIT = 3
PRICE_TOLERANCE = 0.11

_KB_PRICE_PATTERN = re.compile(r'\$?(\d+\.?\d*)')
_PLAN_PRICE_PATTERN = re.compile(r'\$?\s*(\d+\.?\d{0,2})\s*(?:per|/|month|mo)', re.IGNORECASE)


def product_document(product: ProductFact) -> str:
    """Text used to match a product against a brief."""
    return (f"{product.product_name} {product.product_id} "
            f"{product.official_description} {' '.join(product.verified_features)}")


def brief_query(brief: Brief) -> str:
    """Query text built from the brief's product section."""
    name = brief.product.name.lower().strip()
    category = brief.product.category.lower()
    features = " ".join(brief.product.key_features).lower()
    return f"{name} {category} {features}"


class KnowledgeRetriever:
    """
    Retrieves verified product facts and historical metrics for a brief.

    The knowledge base is read through the injected manager, which loads
    the file once and serves the same snapshot afterwards.
    """

    def __init__(self, knowledge_base_manager: Optional[KnowledgeBaseManager] = None):
        """
        Initialize the retriever.

        Args:
            knowledge_base_manager: Repository providing the knowledge base
        """
        self.knowledge_base_manager = knowledge_base_manager or KnowledgeBaseManager()
        self.similarity_threshold = SIMILARITY_THRESHOLD

    def retrieve_product_facts(self, brief: Brief) -> Optional[ProductFact]:
        """
        Find the knowledge base product matching the brief.

        An exact case-insensitive name match wins outright. Otherwise every
        product is scored and the best one is returned if it clears the
        similarity threshold.

        Args:
            brief: Validated campaign brief

        Returns:
            Matching ProductFact, or None when nothing is close enough
        """
        knowledge_base = self.knowledge_base_manager.get_knowledge_base()
        product_name = brief.product.name.lower().strip()

        for product in knowledge_base.products:
            if product.product_name.lower() == product_name:
                logger.info(f"[Retrieval] Exact match: {product.product_name}")
                return product

        if not knowledge_base.products:
            return None

        query = brief_query(brief)
        corpus = Corpus([product_document(product) for product in knowledge_base.products])

        scored = []
        for product in knowledge_base.products:
            score = combined_similarity(query, product_document(product), corpus)
            score += name_match_boost(product_name, product.product_name)
            score += category_match_boost(brief.product.category, product.product_id)
            scored.append((score, product))

        # sorted() is stable, ties keep knowledge base order
        scored = sorted(scored, key=lambda item: item[0], reverse=True)
        best_score, best_product = scored[0]

        if best_score > self.similarity_threshold:
            logger.info(f"[Retrieval] Best match: {best_product.product_name} (score: {best_score:.3f})")
            return best_product

        logger.info(f"[Retrieval] No product above threshold (best score: {best_score:.3f})")
        return None

    def retrieve_ad_metrics(self, brief: Brief, channels: Sequence[str]) -> List[AdMetric]:
        """
        Select historical metrics relevant to the brief's category and channels.

        Args:
            brief: Validated campaign brief
            channels: Requested channels; empty means any channel

        Returns:
            Metrics ordered by ctr * conversion_rate, best first
        """
        knowledge_base = self.knowledge_base_manager.get_knowledge_base()
        category = brief.product.category.lower()
        wanted = {channel.lower() for channel in channels}

        relevant = []
        for metric in knowledge_base.ad_metrics:
            metric_category = metric.product_category.lower()
            category_match = metric_category == category or metric_category in category
            channel_match = not wanted or metric.channel.lower() in wanted
            if category_match and channel_match:
                relevant.append(metric)

        return sorted(relevant, key=lambda metric: metric.performance, reverse=True)

    def format_retrieved_context(self, brief: Brief) -> str:
        """
        Render verified facts and top historical metrics as prompt text.

        Returns:
            Grounding block, or an empty string when nothing was retrieved
        """
        product = self.retrieve_product_facts(brief)
        metrics = self.retrieve_ad_metrics(brief, brief.channels)

        parts = []

        if product:
            parts.append("VERIFIED PRODUCT FACTS:")
            parts.append(f"- Product: {product.product_name}")
            parts.append(f"- Verified Features: {', '.join(product.verified_features)}")
            parts.append(f"- Official Price: {product.official_price}")
            if product.trial_length:
                parts.append(f"- Trial: {product.trial_length}")
            parts.append(f"- Description: {product.official_description}")
            if product.key_benefits:
                parts.append(f"- Key Benefits: {', '.join(product.key_benefits)}")

        if metrics:
            parts.append("\nHISTORICAL AD PERFORMANCE:")
            for metric in metrics[:CONTEXT_METRIC_LIMIT]:
                parts.append(f"- Channel: {metric.channel} | Headline Type: {metric.headline_type}")
                parts.append(f"  CTR: {metric.ctr * 100:.2f}% | Conversion: {metric.conversion_rate * 100:.2f}%")
                parts.append(f"  Effective Keywords: {', '.join(metric.headline_keywords)}")

        return "\n".join(parts)

    def validate_against_kb(self, brief: Brief, plan: Union[Plan, Dict[str, Any]]) -> List[str]:
        """
        Cross-check per-period prices quoted in the plan against the knowledge base.

        Args:
            brief: Validated campaign brief
            plan: Finalized plan (or its dict form)

        Returns:
            List of mismatch messages; empty when there is no product match,
            no quoted period price, or a quoted price agrees with the KB
        """
        errors = []
        product = self.retrieve_product_facts(brief)

        if not product:
            return errors

        kb_price_match = _KB_PRICE_PATTERN.search(product.official_price.lower())
        if not kb_price_match:
            return errors

        kb_price = float(kb_price_match.group(1))
        plan_data = plan.to_dict() if isinstance(plan, Plan) else plan
        plan_text = json.dumps(plan_data, separators=(',', ':'), ensure_ascii=False).lower()

        quoted = list(_PLAN_PRICE_PATTERN.finditer(plan_text))
        has_matching_price = any(
            abs(float(match.group(1)) - kb_price) < PRICE_TOLERANCE for match in quoted
        )

        if quoted and not has_matching_price:
            found = ", ".join(match.group(0) for match in quoted)
            errors.append(f"Price in plan ({found}) doesn't match KB price ({product.official_price})")

        return errors
