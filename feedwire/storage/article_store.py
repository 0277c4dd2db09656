"""
Article Store Contract
======================

Narrow persistence interface the ingestion engine consumes. The engine never
talks to storage except through these four operations, so any backend that
implements them (SQLite, an ORM, a remote CMS API) can host the drafts.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, Optional


class ArticleStore(ABC):
    """Persistence collaborator for imported draft articles."""

    @abstractmethod
    def create_draft_article(
        self,
        source_feed_name: str,
        external_id: str,
        title: str,
        body: str,
        excerpt: str,
        category: str,
        external_url: Optional[str] = None,
        published_at: Optional[datetime] = None,
    ) -> str:
        """Create an unpublished article and return its ID.

        Raises:
            PersistError: On storage failure, including an existing
                ``(source_feed_name, external_id)`` pair
        """

    @abstractmethod
    def exists_by_source(self, source_feed_name: str, external_id: str) -> bool:
        """Whether an article was already imported for this feed entry."""

    @abstractmethod
    def count_by_source(self) -> Dict[str, int]:
        """Number of stored articles per source feed name."""

    @abstractmethod
    def delete_by_source(self, source_feed_name: str) -> int:
        """Delete every article imported from a feed, returning the count."""
