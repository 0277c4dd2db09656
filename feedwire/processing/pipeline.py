"""
Import Pipeline
===============

Fetch -> Filter -> Dedup -> Persist for one feed, and the same across every
enabled feed for a batch.

Failures never escape a feed: fetch and parse errors fail that feed's
result, a persist error fails one entry, and anything unexpected is caught
at the feed boundary and recorded in the result.
"""

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

from ..config.settings import FeedwireSettings, get_settings
from ..database.models import FeedConfig, RawEntry
from ..ingestion.content_cleaner import ContentCleaner
from ..ingestion.feed_fetcher import FeedFetcher
from ..ingestion.feed_registry import FeedRegistry
from ..storage.article_store import ArticleStore
from ..utils.logging import get_logger_for_component, PerformanceLogger
from ..utils.exceptions import FeedError, PersistError, ValidationError, handle_exception
from ..utils.validators import FeedValidator, URLValidator

from .deduplicator import Deduplicator
from .entry_filter import EntryFilter


@dataclass
class FeedImportResult:
    """Outcome of importing one feed."""
    feed_name: str
    success: bool
    imported: int = 0
    skipped: int = 0
    errors: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0
    skip_reasons: Dict[str, int] = field(default_factory=dict)

    @classmethod
    def failed(cls, feed_name: str, error: str, duration_seconds: float = 0.0) -> "FeedImportResult":
        return cls(feed_name=feed_name, success=False, errors=[error], duration_seconds=duration_seconds)


@dataclass
class BatchSummary:
    """Roll-up of one batch run."""
    total_feeds: int = 0
    successful_feeds: int = 0
    total_imported: int = 0
    results: List[FeedImportResult] = field(default_factory=list)
    total_skipped: int = 0
    total_duration_seconds: float = 0.0
    success: bool = True
    error: Optional[str] = None
    completed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_results(cls, results: List[FeedImportResult], duration_seconds: float) -> "BatchSummary":
        return cls(
            total_feeds=len(results),
            successful_feeds=sum(1 for r in results if r.success),
            total_imported=sum(r.imported for r in results),
            results=list(results),
            total_skipped=sum(r.skipped for r in results),
            total_duration_seconds=duration_seconds,
        )

    @property
    def failed_feeds(self) -> List[str]:
        return [r.feed_name for r in self.results if not r.success]


class ImportPipeline:
    """Orchestrates feed imports into draft articles."""

    def __init__(
        self,
        store: ArticleStore,
        fetcher: Optional[FeedFetcher] = None,
        settings: Optional[FeedwireSettings] = None,
    ):
        """Initialize import pipeline.

        Args:
            store: Article store drafts are written to
            fetcher: Feed fetcher (default: built from settings)
            settings: Application settings (default: global settings)
        """
        self.settings = settings or get_settings()
        self.store = store
        self.fetcher = fetcher or FeedFetcher(self.settings)
        self.entry_filter = EntryFilter()
        self.deduplicator = Deduplicator(store)
        self.cleaner = ContentCleaner()
        self.logger = get_logger_for_component("pipeline")

    async def import_feed(self, config: FeedConfig) -> FeedImportResult:
        """Run the full pipeline for one feed. Never raises."""
        started = time.monotonic()
        try:
            with PerformanceLogger(self.logger, f"import of {config.name}", feed=config.name):
                result = await self._import_feed(config)
        except Exception as e:
            error = handle_exception(e, self.logger, f"import of {config.name}", {"feed": config.name})
            result = FeedImportResult.failed(config.name, str(error))

        result.duration_seconds = time.monotonic() - started
        return result

    async def _import_feed(self, config: FeedConfig) -> FeedImportResult:
        logger = get_logger_for_component("pipeline", feed_name=config.name)

        try:
            entries = await self.fetcher.fetch(config.url, feed_name=config.name)
        except FeedError as e:
            logger.warning(f"Fetch failed for {config.name}: {e}")
            return FeedImportResult.failed(config.name, str(e))

        if not entries:
            logger.info(f"No items found in {config.name}")
            return FeedImportResult.failed(config.name, "No items found in feed")

        outcome = self.entry_filter.evaluate(entries, config)
        new_entries, duplicates = self.deduplicator.partition(outcome.kept, config.name)

        result = FeedImportResult(
            feed_name=config.name,
            success=True,
            skipped=(len(entries) - len(outcome.kept)) + duplicates,
            skip_reasons={
                "filtered": outcome.filtered_count,
                "capped": outcome.capped_count,
                "duplicates": duplicates,
            },
        )

        for entry in new_entries:
            try:
                self._persist(entry, config)
                result.imported += 1
                logger.debug(f"Imported: {entry.title[:60]}")
            except PersistError as e:
                logger.error(f"Persist failed for {entry.external_id}: {e}")
                result.errors.append(f"{entry.title[:60]}: {e}")

        logger.info(
            f"{config.name}: {result.imported} imported, {result.skipped} skipped, "
            f"{len(result.errors)} errors"
        )
        return result

    def _persist(self, entry: RawEntry, config: FeedConfig) -> str:
        title, body, excerpt = self.cleaner.build_draft_fields(entry, config.name)
        return self.store.create_draft_article(
            source_feed_name=config.name,
            external_id=entry.external_id,
            title=title,
            body=body,
            excerpt=excerpt,
            category=config.category,
            external_url=entry.link or None,
            published_at=entry.published_at,
        )

    async def import_all(self, registry: FeedRegistry) -> BatchSummary:
        """Import every enabled feed, results in registry order."""
        feeds = registry.list_enabled_feeds()
        started = time.monotonic()

        if not feeds:
            self.logger.warning("No enabled feeds to import")
            return BatchSummary.from_results([], 0.0)

        self.logger.info(f"Starting batch import of {len(feeds)} feeds")

        semaphore = asyncio.Semaphore(self.settings.ingestion.parallel_feeds)

        async def import_with_semaphore(config: FeedConfig) -> FeedImportResult:
            async with semaphore:
                return await self.import_feed(config)

        outcomes = await asyncio.gather(
            *(import_with_semaphore(feed) for feed in feeds), return_exceptions=True
        )

        results = []
        for feed, outcome in zip(feeds, outcomes):
            if isinstance(outcome, Exception):
                self.logger.error(f"Feed {feed.name} import raised: {outcome}", exc_info=outcome)
                results.append(FeedImportResult.failed(feed.name, f"Processing exception: {outcome}"))
            else:
                results.append(outcome)

        summary = BatchSummary.from_results(results, time.monotonic() - started)

        self.logger.info(
            f"Batch complete: {summary.successful_feeds}/{summary.total_feeds} feeds, "
            f"{summary.total_imported} imported, {summary.total_skipped} skipped "
            f"in {summary.total_duration_seconds:.2f}s"
        )
        return summary

    async def import_from_url(
        self,
        url: str,
        feed_name: str,
        max_items: Optional[int] = None,
        category: str = "news",
    ) -> FeedImportResult:
        """One-off import of a URL that need not be registered. No keyword filtering."""
        try:
            feed_name = FeedValidator.validate_feed_name(feed_name)
            config = FeedConfig(
                name=feed_name,
                url=URLValidator.validate_feed_url(url),
                max_items=max_items or self.settings.ingestion.adhoc_max_items,
                category=category,
            )
        except (ValidationError, ValueError) as e:
            self.logger.warning(f"Rejected ad-hoc import of {url}: {e}")
            return FeedImportResult.failed(feed_name, f"Invalid feed definition: {e}")

        return await self.import_feed(config)

    def get_feed_post_counts(self) -> Dict[str, int]:
        """Stored article count per source feed. Empty on storage failure."""
        try:
            return self.store.count_by_source()
        except Exception as e:
            self.logger.error(f"Failed to count articles by feed: {e}")
            return {}

    def clear_feed_posts(self, feed_name: str) -> int:
        """Delete every stored article from a feed.

        Raises:
            PersistError: If the deletion fails
        """
        try:
            deleted = self.store.delete_by_source(feed_name)
        except PersistError:
            raise
        except Exception as e:
            raise PersistError(f"Failed to clear articles for {feed_name}: {e}", feed_name=feed_name) from e

        self.logger.info(f"Cleared {deleted} articles from {feed_name}")
        return deleted
