"""
Feedwire Processing Module
=========================

Import pipeline components: keyword filtering, deduplication and the
per-feed and batch orchestration.
"""

from .entry_filter import EntryFilter
from .deduplicator import Deduplicator
from .pipeline import ImportPipeline, FeedImportResult, BatchSummary

__all__ = [
    'EntryFilter',
    'Deduplicator',
    'ImportPipeline',
    'FeedImportResult',
    'BatchSummary',
]
