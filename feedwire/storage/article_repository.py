"""
Article Repository
==================

SQLite implementation of the article store used by the ingestion engine.
"""

import re
import sqlite3
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Dict

from ..database.models import ImportedArticle, ArticleStatus
from ..database.connection import DatabaseConnection
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import DatabaseError, PersistError, ErrorCode
from .article_store import ArticleStore


def generate_slug(title: str, max_length: int = 50) -> str:
    """URL slug from a title: lower-case alphanumerics joined by hyphens."""
    slug = title.lower()
    slug = re.sub(r'[^a-z0-9\s-]', '', slug)
    slug = re.sub(r'\s+', '-', slug)
    slug = re.sub(r'-+', '-', slug).strip('-')
    return slug[:max_length].rstrip('-') or "article"


class ArticleRepository(ArticleStore):
    """Repository for imported draft articles."""

    def __init__(self, db_connection: DatabaseConnection):
        """Initialize article repository.

        Args:
            db_connection: Database connection manager
        """
        self.db = db_connection
        self.logger = get_logger_for_component("article_repository")

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
        """Insert a draft article.

        Returns:
            Created article ID

        Raises:
            PersistError: If the insert fails or the entry was already imported
        """
        article_id = str(uuid.uuid4())
        created_at = datetime.now(timezone.utc)

        try:
            with self.db.transaction() as conn:
                slug = self._unique_slug(conn, generate_slug(title))
                conn.execute(
                    """
                    INSERT INTO articles (id, slug, title, content, excerpt, status, category,
                                          source_feed_name, external_id, external_url,
                                          published_at, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        article_id, slug, title, body, excerpt, ArticleStatus.DRAFT.value,
                        category, source_feed_name, external_id, external_url,
                        published_at.isoformat() if published_at else None,
                        created_at.isoformat(),
                    )
                )

        except sqlite3.IntegrityError as e:
            raise PersistError(
                f"Article already stored for {source_feed_name}/{external_id}: {e}",
                feed_name=source_feed_name,
                external_id=external_id,
                error_code=ErrorCode.DATABASE_CONSTRAINT,
                recoverable=False,
            ) from e
        except sqlite3.Error as e:
            raise PersistError(
                f"Failed to create draft article: {e}",
                feed_name=source_feed_name,
                external_id=external_id,
            ) from e

        self.logger.debug(f"Created draft article {article_id} ({slug})")
        return article_id

    def _unique_slug(self, conn: sqlite3.Connection, base_slug: str) -> str:
        slug = base_slug
        while conn.execute("SELECT 1 FROM articles WHERE slug = ?", (slug,)).fetchone():
            slug = f"{base_slug}-{uuid.uuid4().hex[:6]}"
        return slug

    def exists_by_source(self, source_feed_name: str, external_id: str) -> bool:
        try:
            row = self.db.execute_one(
                "SELECT 1 FROM articles WHERE source_feed_name = ? AND external_id = ? LIMIT 1",
                (source_feed_name, external_id)
            )
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Existence check failed: {e}",
                error_code=ErrorCode.DATABASE_ERROR
            ) from e
        return row is not None

    def count_by_source(self) -> Dict[str, int]:
        try:
            rows = self.db.execute_query(
                """
                SELECT source_feed_name, COUNT(*) AS total
                FROM articles
                GROUP BY source_feed_name
                ORDER BY source_feed_name
                """
            )
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to count articles by source: {e}",
                error_code=ErrorCode.DATABASE_ERROR
            ) from e
        return {row['source_feed_name']: row['total'] for row in rows}

    def delete_by_source(self, source_feed_name: str) -> int:
        try:
            deleted = self.db.execute_update(
                "DELETE FROM articles WHERE source_feed_name = ?",
                (source_feed_name,)
            )
        except sqlite3.Error as e:
            raise PersistError(
                f"Failed to delete articles for {source_feed_name}: {e}",
                feed_name=source_feed_name,
            ) from e

        self.logger.info(f"Deleted {deleted} articles from {source_feed_name}")
        return deleted

    def get_article(self, article_id: str) -> Optional[ImportedArticle]:
        row = self.db.execute_one("SELECT * FROM articles WHERE id = ?", (article_id,))
        return ImportedArticle.from_db_row(row) if row else None

    def get_articles_by_source(self, source_feed_name: str, limit: int = 100) -> List[ImportedArticle]:
        """Stored articles for a feed, newest first."""
        rows = self.db.execute_query(
            """
            SELECT * FROM articles
            WHERE source_feed_name = ?
            ORDER BY created_at DESC
            LIMIT ?
            """,
            (source_feed_name, limit)
        )
        return [ImportedArticle.from_db_row(row) for row in rows]
