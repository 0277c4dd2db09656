"""
RSS Feed Fetcher
===============

Retrieves a feed document over HTTP with a bounded timeout and parses it
into RawEntry models. Parsed documents are cached per URL for a short TTL,
and consecutive requests to one URL are spaced out.
"""

import asyncio
import calendar
import ssl
import time
from collections import OrderedDict
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import aiohttp
import certifi
import feedparser

from ..config.settings import FeedwireSettings, get_settings
from ..database.models import RawEntry
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import FetchError, ParseError, ErrorCode


class FeedFetcher:
    """Async RSS/Atom fetcher with TTL cache and per-URL rate limiting."""

    def __init__(
        self,
        settings: Optional[FeedwireSettings] = None,
        timeout: Optional[float] = None,
        cache_ttl: Optional[float] = None,
        min_request_interval: Optional[float] = None,
    ):
        """Initialize feed fetcher.

        Args:
            settings: Application settings (default: global settings)
            timeout: Request timeout in seconds (default from config)
            cache_ttl: Seconds a parsed document stays fresh (default from config)
            min_request_interval: Minimum seconds between requests to one URL
        """
        settings = settings or get_settings()
        ingestion = settings.ingestion

        self.timeout = timeout if timeout is not None else ingestion.request_timeout
        self.cache_ttl = cache_ttl if cache_ttl is not None else ingestion.cache_ttl_seconds
        self.min_request_interval = (
            min_request_interval if min_request_interval is not None
            else ingestion.min_request_interval
        )
        self.max_cache_entries = ingestion.max_cache_entries
        self.max_redirects = ingestion.max_redirects
        self.user_agent = ingestion.user_agent
        self.logger = get_logger_for_component("feed_fetcher")

        self.ssl_context = ssl.create_default_context(cafile=certifi.where())

        # url -> (monotonic fetch time, parsed entries)
        self._cache: "OrderedDict[str, Tuple[float, Tuple[RawEntry, ...]]]" = OrderedDict()
        self._last_request: Dict[str, float] = {}

    @asynccontextmanager
    async def get_session(self):
        """Get configured aiohttp session."""
        connector = aiohttp.TCPConnector(ssl=self.ssl_context, enable_cleanup_closed=True)
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        headers = {
            "User-Agent": self.user_agent,
            "Accept": "application/rss+xml, application/atom+xml, application/xml, text/xml, */*",
        }

        async with aiohttp.ClientSession(
            connector=connector, timeout=timeout, headers=headers
        ) as session:
            yield session

    async def fetch(self, url: str, feed_name: str = "") -> List[RawEntry]:
        """Fetch and parse one feed.

        Args:
            url: Feed URL
            feed_name: Name stamped on every returned entry

        Returns:
            Entries newest first, undated entries last

        Raises:
            FetchError: Network failure, HTTP error status or timeout with no
                cached copy to fall back on
            ParseError: Document is not a feed
        """
        cached = self._cache.get(url)
        if cached and self.cache_ttl > 0 and time.monotonic() - cached[0] < self.cache_ttl:
            self.logger.debug(f"Using cached document for {url}")
            return self._stamp(cached[1], feed_name)

        try:
            await self._respect_rate_limit(url)
            content = await self._download(url)
        except FetchError as e:
            if cached:
                self.logger.warning(f"Using stale cached document for {url} after fetch failure: {e}")
                return self._stamp(cached[1], feed_name)
            raise

        entries = self.parse(content, url)
        self._store(url, entries)

        self.logger.info(f"Fetched {len(entries)} entries from {url}")
        return self._stamp(entries, feed_name)

    async def _download(self, url: str) -> bytes:
        """Perform the network retrieval."""
        try:
            async with self.get_session() as session:
                async with session.get(url, max_redirects=self.max_redirects) as response:
                    if response.status != 200:
                        raise FetchError(
                            f"HTTP {response.status}: {response.reason}",
                            feed_url=url,
                            error_code=ErrorCode.FEED_HTTP_ERROR,
                        )
                    return await response.read()

        except asyncio.TimeoutError as e:
            raise FetchError(
                f"Request timeout after {self.timeout}s",
                feed_url=url,
                error_code=ErrorCode.FEED_FETCH_TIMEOUT,
            ) from e
        except aiohttp.ClientError as e:
            raise FetchError(f"Network error: {e}", feed_url=url) from e

    async def _respect_rate_limit(self, url: str) -> None:
        if self.min_request_interval <= 0:
            return

        now = time.monotonic()
        self._prune_request_times(now)

        last = self._last_request.get(url)
        wait = 0.0
        if last is not None:
            wait = max(0.0, self.min_request_interval - (now - last))

        # Reserve the slot before sleeping so concurrent callers queue behind it
        self._last_request[url] = now + wait

        if wait > 0:
            self.logger.debug(f"Rate limiting {url}: waiting {wait:.1f}s")
            await asyncio.sleep(wait)

    def _prune_request_times(self, now: float) -> None:
        # Requests older than the interval no longer delay anything
        horizon = now - self.min_request_interval
        for url in [u for u, at in self._last_request.items() if at <= horizon]:
            del self._last_request[url]

    def parse(self, content: Any, url: str = "") -> List[RawEntry]:
        """Parse a feed document into entries sorted newest first.

        Raises:
            ParseError: If the document is not RSS/Atom
        """
        feed_data = feedparser.parse(content)

        if not feed_data.entries and not feed_data.get("version"):
            reason = feed_data.get("bozo_exception") or "unrecognized document"
            raise ParseError(f"Feed parse error: {reason}", feed_url=url)

        if feed_data.get("bozo"):
            self.logger.info(f"Feed has parse warnings but is usable: {url}")

        entries = []
        for entry in feed_data.entries:
            external_id = entry.get("id") or entry.get("link")
            if not external_id:
                self.logger.warning(f"Entry without id or link in {url}, skipping")
                continue

            entries.append(
                RawEntry(
                    external_id=external_id.strip(),
                    title=(entry.get("title") or "").strip() or "Untitled",
                    link=entry.get("link", ""),
                    summary=entry.get("summary", "") or "",
                    content=self._extract_content(entry),
                    published_at=self._parse_date(entry),
                )
            )

        entries.sort(key=self._recency_key)
        return entries

    @staticmethod
    def _recency_key(entry: RawEntry):
        if entry.published_at is None:
            return (1, 0.0)
        return (0, -entry.published_at.timestamp())

    def _extract_content(self, entry: Any) -> Optional[str]:
        """Full body from an Atom content / RSS content:encoded element."""
        content = entry.get("content")
        if content and isinstance(content, list):
            value = content[0].get("value")
            if value:
                return value
        return None

    def _parse_date(self, entry: Any) -> Optional[datetime]:
        for field in ("published_parsed", "updated_parsed"):
            date_tuple = entry.get(field)
            if date_tuple:
                try:
                    return datetime.fromtimestamp(calendar.timegm(date_tuple), tz=timezone.utc)
                except (ValueError, OverflowError):
                    continue
        return None

    def _store(self, url: str, entries: List[RawEntry]) -> None:
        if self.cache_ttl <= 0:
            return
        self._cache[url] = (time.monotonic(), tuple(entries))
        self._cache.move_to_end(url)
        while len(self._cache) > self.max_cache_entries:
            evicted, _ = self._cache.popitem(last=False)
            self.logger.debug(f"Evicted cached document for {evicted}")

    @staticmethod
    def _stamp(entries, feed_name: str) -> List[RawEntry]:
        return [entry.model_copy(update={"source_feed_name": feed_name}) for entry in entries]

    def clear_cache(self) -> None:
        """Drop every cached document."""
        self._cache.clear()
        self.logger.debug("Feed cache cleared")

    @property
    def cache_size(self) -> int:
        return len(self._cache)
