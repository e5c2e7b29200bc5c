# Data layer for the campaign planner knowledge base

from .parsers import KnowledgeBaseParser, KnowledgeBaseError
from .manager import KnowledgeBaseManager

__all__ = ['KnowledgeBaseParser', 'KnowledgeBaseError', 'KnowledgeBaseManager']
