"""
Run Coordinator
===============

Owns the recurring import timer and the single-flight run lock.

States:
- stopped: no timer task
- running: timer task armed, waiting for the next tick
- executing: a batch holds the run lock (timer tick or manual trigger)

Every batch, scheduled or manual, goes through ``trigger_import`` and
therefore through the same ``asyncio.Lock``. ``stop()`` disarms the timer and
waits for a batch the timer already started; it never cancels a batch.

All methods must be called from the event loop that runs the coordinator.
"""

import asyncio
import time
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Optional

from ..config.settings import FeedwireSettings, get_settings
from ..ingestion.feed_registry import FeedRegistry
from ..processing.pipeline import BatchSummary, ImportPipeline
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import AlreadyRunningError, FeedwireError, is_retryable_error


@dataclass(frozen=True)
class SchedulerStats:
    """Point-in-time snapshot of scheduler state. Replaced whole, never mutated."""
    is_running: bool = False
    last_run_at: Optional[datetime] = None
    last_run_summary: Optional[BatchSummary] = None
    total_runs_executed: int = 0
    total_items_imported: int = 0
    successful_runs: int = 0
    failed_runs: int = 0
    average_run_seconds: float = 0.0
    last_error: Optional[str] = None


class RunCoordinator:
    """Timer lifecycle plus at-most-one batch in flight."""

    def __init__(
        self,
        pipeline: ImportPipeline,
        registry: FeedRegistry,
        settings: Optional[FeedwireSettings] = None,
        interval_seconds: Optional[float] = None,
    ):
        """Initialize run coordinator.

        Args:
            pipeline: Pipeline executing the batches
            registry: Feeds imported by each batch
            settings: Application settings (default: global settings)
            interval_seconds: Timer cadence (default: scheduler.interval_minutes)
        """
        self.settings = settings or get_settings()
        self.pipeline = pipeline
        self.registry = registry
        self.logger = get_logger_for_component("run_coordinator")

        scheduler = self.settings.scheduler
        self.interval_seconds = (
            interval_seconds if interval_seconds is not None else scheduler.interval_minutes * 60
        )
        self.max_retries = scheduler.max_retries
        self.retry_delay = scheduler.retry_delay_seconds

        self._run_lock = asyncio.Lock()
        self._stop_event: Optional[asyncio.Event] = None
        self._timer_task: Optional[asyncio.Task] = None
        self._stats = SchedulerStats()

    async def start(self) -> None:
        """Arm the recurring timer. No-op when already armed."""
        if self._timer_task is not None:
            self.logger.debug("Scheduler already running")
            return

        self._stop_event = asyncio.Event()
        self._timer_task = asyncio.create_task(self._timer_loop(self._stop_event))
        self.logger.info(f"Scheduler started, importing every {self.interval_seconds:.0f}s")

    async def stop(self) -> None:
        """Disarm the timer, waiting for a batch it already started. No-op when stopped."""
        task = self._timer_task
        if task is None:
            return

        self._timer_task = None
        self._stop_event.set()
        # Cancelling the caller must not cancel a batch the timer started
        await asyncio.shield(task)
        self.logger.info("Scheduler stopped")

    def is_scheduler_running(self) -> bool:
        return self._timer_task is not None

    @property
    def is_executing(self) -> bool:
        """Whether a batch currently holds the run lock."""
        return self._run_lock.locked()

    def get_stats(self) -> SchedulerStats:
        return replace(self._stats, is_running=self.is_scheduler_running())

    async def trigger_import(self) -> BatchSummary:
        """Run one batch now.

        Raises:
            AlreadyRunningError: If a batch is already executing
        """
        # No await between the check and the acquire, so this cannot race
        if self._run_lock.locked():
            raise AlreadyRunningError()

        async with self._run_lock:
            return await self._execute_batch()

    async def _timer_loop(self, stop_event: asyncio.Event) -> None:
        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.interval_seconds)
                break
            except asyncio.TimeoutError:
                pass

            try:
                await self.trigger_import()
            except AlreadyRunningError:
                self.logger.info("Scheduled import skipped, a batch is already running")
            except Exception as e:
                self.logger.error(f"Scheduled import failed: {e}", exc_info=True)

    async def _execute_batch(self) -> BatchSummary:
        run_at = datetime.now(timezone.utc)
        started = time.monotonic()
        last_error: Optional[Exception] = None

        for attempt in range(1, self.max_retries + 1):
            try:
                summary = await self.pipeline.import_all(self.registry)
                self._record_run(run_at, summary)
                return summary
            except Exception as e:
                last_error = e
                self.logger.warning(
                    f"Batch attempt {attempt}/{self.max_retries} failed: {e}", exc_info=True
                )
                if isinstance(e, FeedwireError) and not is_retryable_error(e):
                    break
                if attempt < self.max_retries:
                    await asyncio.sleep(self.retry_delay)

        summary = BatchSummary(
            success=False,
            error=f"Batch failed after {attempt} attempt(s): {last_error}",
            total_duration_seconds=time.monotonic() - started,
        )
        self.logger.error(summary.error)
        self._record_run(run_at, summary)
        return summary

    def _record_run(self, run_at: datetime, summary: BatchSummary) -> None:
        previous = self._stats
        runs = previous.total_runs_executed + 1
        average = (
            previous.average_run_seconds * previous.total_runs_executed
            + summary.total_duration_seconds
        ) / runs

        self._stats = replace(
            previous,
            last_run_at=run_at,
            last_run_summary=summary,
            total_runs_executed=runs,
            total_items_imported=previous.total_items_imported + summary.total_imported,
            successful_runs=previous.successful_runs + (1 if summary.success else 0),
            failed_runs=previous.failed_runs + (0 if summary.success else 1),
            average_run_seconds=average,
            last_error=summary.error if not summary.success else previous.last_error,
        )
