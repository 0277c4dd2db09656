"""
Deduplicator
============

Splits entries into those not yet imported and a duplicate count, asking the
article store whether each ``(feed, external_id)`` pair already exists.

A failed existence check counts the entry as a duplicate. Skipping an entry
can be repaired by the next run; importing it twice cannot.
"""

from typing import List, Sequence, Tuple

from ..database.models import RawEntry
from ..storage.article_store import ArticleStore
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import DedupCheckError


class Deduplicator:
    """Existence-check coordinator over an ArticleStore."""

    def __init__(self, store: ArticleStore):
        self.store = store
        self.logger = get_logger_for_component("deduplicator")

    def partition(self, entries: Sequence[RawEntry], feed_name: str) -> Tuple[List[RawEntry], int]:
        """Separate new entries from already imported ones.

        Args:
            entries: Candidate entries in import order
            feed_name: Source feed the entries belong to

        Returns:
            Tuple of (new entries in input order, duplicate count)
        """
        new_entries: List[RawEntry] = []
        duplicates = 0
        seen = set()

        for entry in entries:
            if entry.external_id in seen:
                duplicates += 1
                continue
            seen.add(entry.external_id)

            if self._already_imported(entry, feed_name):
                self.logger.debug(f"Skipped duplicate: {entry.title[:50]}")
                duplicates += 1
            else:
                new_entries.append(entry)

        return new_entries, duplicates

    def _already_imported(self, entry: RawEntry, feed_name: str) -> bool:
        try:
            return self.store.exists_by_source(feed_name, entry.external_id)
        except Exception as e:
            error = DedupCheckError(
                f"Existence check failed, skipping entry: {e}",
                feed_name=feed_name,
                external_id=entry.external_id,
            )
            self.logger.error(str(error), extra=error.to_dict())
            return True
