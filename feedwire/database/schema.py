"""
Feedwire Database Schema
========================

SQLite schema for the reference article store. One table holds every
draft created by the ingestion engine; ``(source_feed_name, external_id)``
is unique so a feed entry can only ever be imported once.
"""

import sqlite3
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class DatabaseSchema:
    """Database schema manager for the Feedwire SQLite database."""

    EXPECTED_TABLES = {"articles"}

    def __init__(self, db_path: str = "data/feedwire.db"):
        """Initialize database schema manager.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def create_tables(self) -> None:
        """Create all database tables and indexes."""
        with sqlite3.connect(self.db_path) as conn:
            self._create_articles_table(conn)
            self._create_indexes(conn)
            conn.commit()
            logger.info("Database schema created successfully")

    def _create_articles_table(self, conn: sqlite3.Connection) -> None:
        """Create articles table for imported drafts."""
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS articles (
                id TEXT PRIMARY KEY,
                slug TEXT UNIQUE NOT NULL,
                title TEXT NOT NULL,
                content TEXT NOT NULL DEFAULT '',
                excerpt TEXT NOT NULL DEFAULT '',
                status TEXT NOT NULL DEFAULT 'draft' CHECK (status IN ('draft')),
                category TEXT NOT NULL DEFAULT 'news',
                source_feed_name TEXT NOT NULL,
                external_id TEXT NOT NULL,
                external_url TEXT,
                published_at TIMESTAMP,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                UNIQUE(source_feed_name, external_id)
            )
        """
        )

    def _create_indexes(self, conn: sqlite3.Connection) -> None:
        indexes = [
            "CREATE INDEX IF NOT EXISTS idx_articles_source ON articles(source_feed_name)",
            "CREATE INDEX IF NOT EXISTS idx_articles_status ON articles(status)",
            "CREATE INDEX IF NOT EXISTS idx_articles_created ON articles(created_at)",
        ]

        for index_sql in indexes:
            conn.execute(index_sql)

    def get_connection(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def verify_schema(self) -> bool:
        """Verify database schema is correctly created."""
        try:
            conn = self.get_connection()
            try:
                cursor = conn.execute(
                    """
                    SELECT name FROM sqlite_master
                    WHERE type='table' AND name NOT LIKE 'sqlite_%'
                """
                )
                tables = {row[0] for row in cursor.fetchall()}
            finally:
                conn.close()

            missing = self.EXPECTED_TABLES - tables
            if missing:
                logger.error(f"Missing tables: {missing}")
                return False

            logger.info("Database schema verification passed")
            return True

        except sqlite3.Error as e:
            logger.error(f"Schema verification failed: {e}")
            return False
