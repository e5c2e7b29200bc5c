"""
Knowledge base access with load-once semantics.
"""

import logging
import threading
from datetime import datetime
from typing import Dict, Optional, Any

from models.data_models import KnowledgeBase
from .parsers import KnowledgeBaseParser

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class KnowledgeBaseManager:
    """
    Read-only repository for the knowledge base.

    The file is parsed on first access and the resulting snapshot is served
    for the lifetime of the manager. Loading is single-flight: concurrent
    first callers block on a lock and exactly one of them reads the file.
    There is no reload path.
    """

    def __init__(self, knowledge_base_path: Optional[str] = None,
                 knowledge_base: Optional[KnowledgeBase] = None):
        """
        Initialize the KnowledgeBaseManager.

        Args:
            knowledge_base_path: Path to the knowledge base JSON file. Uses the
                configured path if None.
            knowledge_base: Preloaded snapshot (skips file loading entirely)
        """
        if knowledge_base_path is None and knowledge_base is None:
            from config.settings import config_manager
            knowledge_base_path = config_manager.get_knowledge_base_path()

        self.knowledge_base_path = knowledge_base_path
        self._knowledge_base: Optional[KnowledgeBase] = knowledge_base
        self._lock = threading.Lock()
        self._loaded_at: Optional[datetime] = datetime.now() if knowledge_base is not None else None
        self.load_count = 0

    @classmethod
    def from_knowledge_base(cls, knowledge_base: KnowledgeBase) -> 'KnowledgeBaseManager':
        """Build a manager around an in-memory snapshot."""
        return cls(knowledge_base=knowledge_base)

    @property
    def is_loaded(self) -> bool:
        return self._knowledge_base is not None

    def get_knowledge_base(self) -> KnowledgeBase:
        """
        Get the knowledge base, loading it on first access.

        Returns:
            KnowledgeBase snapshot

        Raises:
            FileNotFoundError: If the knowledge base file is missing
            KnowledgeBaseError: If the file is malformed
        """
        knowledge_base = self._knowledge_base
        if knowledge_base is not None:
            return knowledge_base

        with self._lock:
            if self._knowledge_base is None:
                logger.info(f"Loading knowledge base from: {self.knowledge_base_path}")
                parser = KnowledgeBaseParser(self.knowledge_base_path)
                self._knowledge_base = parser.parse()
                self._loaded_at = datetime.now()
                self.load_count += 1
            return self._knowledge_base

    def get_status(self) -> Dict[str, Any]:
        """
        Report knowledge base availability without raising.

        Returns:
            Dictionary with load status and counts
        """
        status = {
            'path': self.knowledge_base_path,
            'loaded': self.is_loaded,
            'loaded_at': self._loaded_at.isoformat() if self._loaded_at else None,
            'products': 0,
            'ad_metrics': 0,
            'error': None
        }

        try:
            knowledge_base = self.get_knowledge_base()
            status['loaded'] = True
            status['loaded_at'] = self._loaded_at.isoformat() if self._loaded_at else None
            status['products'] = len(knowledge_base.products)
            status['ad_metrics'] = len(knowledge_base.ad_metrics)
        except (FileNotFoundError, ValueError) as e:
            logger.error(f"Knowledge base unavailable: {str(e)}")
            status['error'] = str(e)

        return status
