"""
Feed Registry
=============

Read-only view over the configured feeds. Order is the configuration order
and is preserved by every accessor.
"""

from typing import Iterable, List, Optional, Tuple

from ..config.settings import FeedwireSettings, get_settings
from ..database.models import FeedConfig
from ..utils.exceptions import ConfigurationError, FeedNotFoundError, ErrorCode


class FeedRegistry:
    """Static registry of feed definitions."""

    def __init__(self, feeds: Iterable[FeedConfig]):
        """Build a registry.

        Args:
            feeds: Feed definitions in the order they should be processed

        Raises:
            ConfigurationError: If two feeds share a name
        """
        self._feeds: Tuple[FeedConfig, ...] = tuple(feeds)

        seen = set()
        for feed in self._feeds:
            if feed.name in seen:
                raise ConfigurationError(
                    f"Duplicate feed name: {feed.name}",
                    config_key="feeds",
                    error_code=ErrorCode.CONFIG_DUPLICATE_FEED,
                )
            seen.add(feed.name)

    @classmethod
    def from_settings(cls, settings: Optional[FeedwireSettings] = None) -> "FeedRegistry":
        settings = settings or get_settings()
        return cls(settings.feeds)

    def list_feeds(self) -> List[FeedConfig]:
        """All configured feeds, including disabled ones."""
        return list(self._feeds)

    def list_enabled_feeds(self) -> List[FeedConfig]:
        """Feeds that take part in batch runs."""
        return [feed for feed in self._feeds if feed.enabled]

    def get_feed(self, name: str) -> FeedConfig:
        for feed in self._feeds:
            if feed.name == name:
                return feed
        raise FeedNotFoundError(name)

    def __len__(self) -> int:
        return len(self._feeds)

    def __contains__(self, name: object) -> bool:
        return any(feed.name == name for feed in self._feeds)
