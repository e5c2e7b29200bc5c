"""
Parser for the knowledge base JSON file holding verified product facts
and historical ad metrics.
"""

import json
import logging
from typing import Dict, List, Any, Tuple
from datetime import datetime
from pathlib import Path

from models.data_models import KnowledgeBase, ProductFact, AdMetric

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class KnowledgeBaseError(ValueError):
    """Raised when the knowledge base file is malformed."""
    pass


class KnowledgeBaseParser:
    """
    Parser for knowledge base files.

    Converts the raw `{products, ad_metrics}` document into immutable
    ProductFact and AdMetric records, rejecting malformed entries.
    """

    required_product_fields = ['product_id', 'product_name', 'verified_features',
                               'official_price', 'official_description']
    required_metric_fields = ['campaign_id', 'product_category', 'channel', 'headline_type',
                              'headline_keywords', 'ctr', 'conversion_rate']

    def __init__(self, file_path: str):
        """
        Initialize the parser with a knowledge base file path.

        Args:
            file_path: Path to the knowledge base JSON file
        """
        self.file_path = Path(file_path)
        self.last_updated = None

        if not self.file_path.exists():
            raise FileNotFoundError(f"Knowledge base file not found: {file_path}")

    def parse(self) -> KnowledgeBase:
        """
        Read and convert the knowledge base file.

        Returns:
            KnowledgeBase snapshot

        Raises:
            KnowledgeBaseError: If the file is not valid JSON or entries are malformed
        """
        try:
            with open(self.file_path, 'r', encoding='utf-8') as f:
                raw = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.error(f"Error parsing knowledge base JSON: {str(e)}")
            raise KnowledgeBaseError(f"Malformed knowledge base JSON in {self.file_path}: {str(e)}")

        knowledge_base = self.parse_document(raw)
        self.last_updated = datetime.now()
        logger.info(
            f"Parsed {len(knowledge_base.products)} products and "
            f"{len(knowledge_base.ad_metrics)} ad metrics from knowledge base"
        )
        return knowledge_base

    def parse_document(self, raw: Any) -> KnowledgeBase:
        """Convert an already-decoded knowledge base document."""
        if not isinstance(raw, dict):
            raise KnowledgeBaseError("Knowledge base must be a JSON object")

        products = raw.get('products')
        metrics = raw.get('ad_metrics')
        if not isinstance(products, list):
            raise KnowledgeBaseError("Knowledge base 'products' must be a list")
        if not isinstance(metrics, list):
            raise KnowledgeBaseError("Knowledge base 'ad_metrics' must be a list")

        return KnowledgeBase(
            products=tuple(self._parse_product(entry, i) for i, entry in enumerate(products)),
            ad_metrics=tuple(self._parse_metric(entry, i) for i, entry in enumerate(metrics))
        )

    def _parse_product(self, entry: Any, index: int) -> ProductFact:
        self._require_fields(entry, self.required_product_fields, f"products[{index}]")

        trial_length = entry.get('trial_length')
        return ProductFact(
            product_id=str(entry['product_id']),
            product_name=str(entry['product_name']),
            verified_features=self._string_tuple(entry['verified_features'], f"products[{index}].verified_features"),
            official_price=str(entry['official_price']),
            official_description=str(entry['official_description']),
            trial_length=str(trial_length) if trial_length else None,
            target_audience=self._string_tuple(entry.get('target_audience', []), f"products[{index}].target_audience"),
            key_benefits=self._string_tuple(entry.get('key_benefits', []), f"products[{index}].key_benefits")
        )

    def _parse_metric(self, entry: Any, index: int) -> AdMetric:
        location = f"ad_metrics[{index}]"
        self._require_fields(entry, self.required_metric_fields, location)

        return AdMetric(
            campaign_id=str(entry['campaign_id']),
            product_category=str(entry['product_category']),
            channel=str(entry['channel']),
            headline_type=str(entry['headline_type']),
            headline_keywords=self._string_tuple(entry['headline_keywords'], f"{location}.headline_keywords"),
            ctr=self._number(entry['ctr'], f"{location}.ctr"),
            conversion_rate=self._number(entry['conversion_rate'], f"{location}.conversion_rate"),
            avg_cost_per_conversion=self._number(entry.get('avg_cost_per_conversion', 0), f"{location}.avg_cost_per_conversion")
        )

    def _require_fields(self, entry: Any, fields: List[str], location: str):
        if not isinstance(entry, dict):
            raise KnowledgeBaseError(f"{location} must be an object")
        missing = [name for name in fields if name not in entry]
        if missing:
            raise KnowledgeBaseError(f"{location} missing required fields: {', '.join(missing)}")

    def _string_tuple(self, value: Any, location: str) -> Tuple[str, ...]:
        if not isinstance(value, list):
            raise KnowledgeBaseError(f"{location} must be a list")
        return tuple(str(item) for item in value)

    def _number(self, value: Any, location: str) -> float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise KnowledgeBaseError(f"{location} must be a number, got {value!r}")
        return float(value)

    def get_summary(self, knowledge_base: KnowledgeBase) -> Dict[str, Any]:
        """Summarize a parsed knowledge base for status displays."""
        return {
            'file_path': str(self.file_path),
            'products': [product.product_name for product in knowledge_base.products],
            'metric_count': len(knowledge_base.ad_metrics),
            'channels': sorted({metric.channel for metric in knowledge_base.ad_metrics}),
            'categories': sorted({metric.product_category for metric in knowledge_base.ad_metrics}),
            'last_updated': self.last_updated.isoformat() if self.last_updated else None
        }
