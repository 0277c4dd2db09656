"""
Ingestion Service
=================

Operational surface of the ingestion engine as one object, used by the CLI
and by any web layer wrapped around it. The service owns one RunCoordinator;
construct it once per process with ``create_ingestion_service``.
"""

from typing import Dict, List, Optional

from ..config.settings import FeedwireSettings, get_settings
from ..database.connection import DatabaseConnection
from ..database.models import FeedConfig
from ..database.schema import DatabaseSchema
from ..ingestion.feed_fetcher import FeedFetcher
from ..ingestion.feed_registry import FeedRegistry
from ..processing.pipeline import BatchSummary, FeedImportResult, ImportPipeline
from ..scheduler.run_coordinator import RunCoordinator, SchedulerStats
from ..storage.article_repository import ArticleRepository
from ..utils.logging import get_logger_for_component


class IngestionService:
    """Facade over registry, pipeline and run coordinator."""

    def __init__(
        self,
        registry: FeedRegistry,
        pipeline: ImportPipeline,
        coordinator: RunCoordinator,
        db_connection: Optional[DatabaseConnection] = None,
        auto_start: bool = False,
    ):
        self.registry = registry
        self.pipeline = pipeline
        self.coordinator = coordinator
        self.db = db_connection
        self.auto_start = auto_start
        self.logger = get_logger_for_component("ingestion_service")

    async def __aenter__(self) -> "IngestionService":
        if self.auto_start:
            await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.shutdown()

    # Feeds

    def list_feeds(self) -> List[FeedConfig]:
        return self.registry.list_feeds()

    # Imports

    async def import_all(self) -> BatchSummary:
        """Manual batch run, subject to the single-flight guard.

        Raises:
            AlreadyRunningError: If a batch is already executing
        """
        return await self.coordinator.trigger_import()

    async def trigger_import(self) -> BatchSummary:
        return await self.coordinator.trigger_import()

    async def import_feed(self, name: str) -> FeedImportResult:
        """Import one registered feed by name.

        Raises:
            FeedNotFoundError: If no feed has this name
        """
        config = self.registry.get_feed(name)
        return await self.pipeline.import_feed(config)

    async def import_from_url(
        self, url: str, name: str, max_items: Optional[int] = None
    ) -> FeedImportResult:
        return await self.pipeline.import_from_url(url, name, max_items=max_items)

    # Stored articles

    def get_feed_post_counts(self) -> Dict[str, int]:
        return self.pipeline.get_feed_post_counts()

    def clear_feed_posts(self, name: str) -> int:
        """Delete stored articles for a feed, registered or ad-hoc.

        Returns:
            Number of articles deleted, 0 when none match

        Raises:
            PersistError: If the deletion fails
        """
        return self.pipeline.clear_feed_posts(name)

    # Scheduler

    async def start(self) -> None:
        await self.coordinator.start()

    async def stop(self) -> None:
        await self.coordinator.stop()

    def is_scheduler_running(self) -> bool:
        return self.coordinator.is_scheduler_running()

    def get_stats(self) -> SchedulerStats:
        return self.coordinator.get_stats()

    async def shutdown(self) -> None:
        """Stop the scheduler and release database connections."""
        await self.coordinator.stop()
        if self.db is not None:
            self.db.close_all_connections()


def create_ingestion_service(settings: Optional[FeedwireSettings] = None) -> IngestionService:
    """Wire every engine component from settings.

    Creates the database schema when missing.
    """
    settings = settings or get_settings()

    DatabaseSchema(settings.database.path).create_tables()
    db = DatabaseConnection(settings.database.path, pool_size=settings.database.pool_size)

    registry = FeedRegistry.from_settings(settings)
    pipeline = ImportPipeline(ArticleRepository(db), FeedFetcher(settings), settings=settings)
    coordinator = RunCoordinator(pipeline, registry, settings=settings)

    return IngestionService(
        registry,
        pipeline,
        coordinator,
        db_connection=db,
        auto_start=settings.scheduler.auto_start,
    )
