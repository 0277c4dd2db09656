"""
Feedwire - RSS Ingestion Engine
===============================

Polls configured news feeds and stores new entries as draft articles for
human review.

Main Components:
- Configuration: environment variables with Pydantic validation
- Ingestion: feed registry, async fetcher, content cleaning
- Processing: keyword filter, deduplication, import pipeline
- Scheduler: single-flight run coordinator with recurring timer
- Storage: article store contract with a pooled SQLite implementation
"""

__version__ = "1.0.0"
__author__ = "Feedwire Development Team"
__description__ = "RSS ingestion engine importing feed entries as draft articles"

from .config.settings import get_settings
from .database.schema import DatabaseSchema
from .services.ingestion_service import IngestionService, create_ingestion_service
from .utils.logging import configure_application_logging, get_logger_for_component
from .utils.exceptions import FeedwireError

__all__ = [
    "get_settings",
    "DatabaseSchema",
    "IngestionService",
    "create_ingestion_service",
    "configure_application_logging",
    "get_logger_for_component",
    "FeedwireError",
]
