"""Import run coordination."""

from .run_coordinator import RunCoordinator, SchedulerStats

__all__ = ["RunCoordinator", "SchedulerStats"]
