"""
Entry Filter
============

Per-feed keyword policy and item cap. Matching is a case-insensitive
substring test against the entry title and the text of its summary, with
markup stripped.

Policy, per entry:
1. Any exclude keyword present: drop. Nothing overrides this.
2. Any priority keyword present: keep.
3. Include keywords configured and none present: drop.
4. Otherwise keep.

The cap is applied after the policy so it counts qualifying entries only.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from ..database.models import FeedConfig, RawEntry
from ..ingestion.content_cleaner import ContentCleaner
from ..utils.logging import get_logger_for_component


@dataclass
class FilterOutcome:
    """Entries kept by the policy, before and after the cap."""
    eligible: List[RawEntry]
    kept: List[RawEntry] = field(default_factory=list)
    excluded: int = 0
    not_matching: int = 0

    @property
    def filtered_count(self) -> int:
        return self.excluded + self.not_matching

    @property
    def capped_count(self) -> int:
        return len(self.eligible) - len(self.kept)


def _first_match(text: str, keywords: Sequence[str]) -> Optional[str]:
    for keyword in keywords:
        if keyword and keyword in text:
            return keyword
    return None


class EntryFilter:
    """Keyword inclusion/exclusion policy plus max-items truncation."""

    def __init__(self):
        self.cleaner = ContentCleaner()
        self.logger = get_logger_for_component("entry_filter")

    def apply(self, entries: Sequence[RawEntry], config: FeedConfig) -> List[RawEntry]:
        """Filter entries for a feed, preserving order, capped to max_items."""
        return self.evaluate(entries, config).kept

    def evaluate(self, entries: Sequence[RawEntry], config: FeedConfig) -> FilterOutcome:
        outcome = FilterOutcome(eligible=[])

        for entry in entries:
            if self.is_eligible(entry, config, outcome):
                outcome.eligible.append(entry)

        outcome.kept = outcome.eligible[:config.max_items]

        self.logger.debug(
            f"{config.name}: {len(entries)} entries, {outcome.excluded} excluded, "
            f"{outcome.not_matching} without keywords, {outcome.capped_count} over cap"
        )
        return outcome

    def match_text(self, entry: RawEntry) -> str:
        """Lower-cased title and summary text the keywords are matched against."""
        return f"{entry.title} {self.cleaner.plain_text(entry.summary)}".lower()

    def is_eligible(
        self,
        entry: RawEntry,
        config: FeedConfig,
        outcome: Optional[FilterOutcome] = None,
    ) -> bool:
        text = self.match_text(entry)

        excluded_by = _first_match(text, config.exclude_keywords)
        if excluded_by:
            self.logger.debug(f"Excluded by keyword '{excluded_by}': {entry.title[:50]}")
            if outcome is not None:
                outcome.excluded += 1
            return False

        if _first_match(text, config.priority_keywords):
            self.logger.debug(f"Priority content: {entry.title[:50]}")
            return True

        if config.keywords and not _first_match(text, config.keywords):
            if outcome is not None:
                outcome.not_matching += 1
            return False

        return True
