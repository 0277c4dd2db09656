"""
Feedwire Storage Layer
=====================

Persistence contract consumed by the ingestion engine and its SQLite
implementation.
"""

from .article_store import ArticleStore
from .article_repository import ArticleRepository

__all__ = [
    "ArticleStore",
    "ArticleRepository",
]
