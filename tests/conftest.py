"""
PyTest Configuration and Fixtures
=================================

Shared fixtures for Feedwire tests: temporary SQLite databases, explicit
settings objects and an RSS document builder for fetcher-level fakes.
"""

import pytest
import tempfile
import os
import sys
from datetime import datetime, timezone
from email.utils import format_datetime
from html import escape
from pathlib import Path

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Set test environment variables before any imports
os.environ["FEEDWIRE_LOGGING__FILE_PATH"] = ""
os.environ["FEEDWIRE_LOGGING__CONSOLE_LOGGING"] = "false"


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
def test_database():
    """Temporary database file with the Feedwire schema."""
    from feedwire.database.schema import DatabaseSchema

    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name

    schema = DatabaseSchema(db_path)
    schema.create_tables()

    yield db_path

    for suffix in ("", "-wal", "-shm"):
        try:
            os.unlink(db_path + suffix)
        except FileNotFoundError:
            pass


@pytest.fixture
def db_connection(test_database):
    """Create a database connection manager for testing."""
    from feedwire.database.connection import DatabaseConnection

    connection = DatabaseConnection(test_database, pool_size=2)
    yield connection

    connection.close_all_connections()


@pytest.fixture
def article_store(db_connection):
    """SQLite article repository over the temporary database."""
    from feedwire.storage.article_repository import ArticleRepository

    return ArticleRepository(db_connection)


# ============================================================================
# Settings Fixtures
# ============================================================================


@pytest.fixture
def test_settings(test_database):
    """Settings with no caching, no rate limiting and no retry delay."""
    from feedwire.config.settings import (
        FeedwireSettings,
        IngestionSettings,
        SchedulerSettings,
        DatabaseSettings,
        LoggingSettings,
    )

    return FeedwireSettings(
        ingestion=IngestionSettings(
            request_timeout=5,
            parallel_feeds=2,
            cache_ttl_seconds=0,
            min_request_interval=0.0,
        ),
        scheduler=SchedulerSettings(interval_minutes=60, max_retries=2, retry_delay_seconds=0.0),
        database=DatabaseSettings(path=test_database, pool_size=2),
        logging=LoggingSettings(file_path=None, console_logging=False),
        feeds=[],
    )


# ============================================================================
# Feed Fixtures
# ============================================================================


def _build_rss(items, title="Test Feed"):
    parts = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<rss version="2.0"><channel>',
        f"<title>{escape(title)}</title>",
        "<link>https://news.example.com/</link>",
        "<description>Test feed</description>",
    ]
    for item in items:
        parts.append("<item>")
        if item.get("title") is not None:
            parts.append(f"<title>{escape(item['title'])}</title>")
        if item.get("link"):
            parts.append(f"<link>{escape(item['link'])}</link>")
        if item.get("guid"):
            parts.append(f'<guid isPermaLink="false">{escape(item["guid"])}</guid>')
        if item.get("description") is not None:
            parts.append(f"<description>{escape(item['description'])}</description>")
        if item.get("published"):
            parts.append(f"<pubDate>{format_datetime(item['published'])}</pubDate>")
        parts.append("</item>")
    parts.append("</channel></rss>")
    return "\n".join(parts).encode("utf-8")


@pytest.fixture
def rss_builder():
    """Build an RSS 2.0 document (bytes) from item dicts.

    Item keys: title, link, guid, description, published (aware datetime).
    """
    return _build_rss


@pytest.fixture
def make_entry():
    """Factory for RawEntry objects."""
    from feedwire.database.models import RawEntry

    def _make(external_id, title="Untitled", summary="", published_at=None, **kwargs):
        return RawEntry(
            external_id=external_id,
            title=title,
            summary=summary,
            link=kwargs.pop("link", f"https://news.example.com/{external_id}"),
            published_at=published_at,
            **kwargs,
        )

    return _make


@pytest.fixture
def utc():
    """Shorthand for building aware datetimes."""
    def _utc(*args):
        return datetime(*args, tzinfo=timezone.utc)

    return _utc
