"""
Unit tests for FeedFetcher.

Tests RSS/Atom parsing into RawEntry models, error mapping of the network
layer, the TTL cache with stale fallback, and per-URL rate limiting.
Network access is replaced by patching ``_download`` or ``get_session``.
"""

import asyncio
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, Mock, patch

import aiohttp
import pytest

from feedwire.ingestion.feed_fetcher import FeedFetcher
from feedwire.utils.exceptions import FetchError, ParseError, ErrorCode

FEED_URL = "https://news.example.com/feed"

ATOM_DOCUMENT = b"""<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>Atom Test</title>
  <id>urn:feed</id>
  <updated>2024-03-02T10:00:00Z</updated>
  <entry>
    <title>Atom entry</title>
    <id>urn:entry:1</id>
    <link href="https://news.example.com/atom-1"/>
    <updated>2024-03-02T10:00:00Z</updated>
    <summary>Short summary</summary>
    <content type="html">&lt;p&gt;Full body text&lt;/p&gt;</content>
  </entry>
</feed>
"""


def _session_returning(response=None, error=None):
    """Fake aiohttp session whose get() yields a response or raises."""
    session = Mock()
    if error is not None:
        session.get = Mock(side_effect=error)
    else:
        context = MagicMock()
        context.__aenter__ = AsyncMock(return_value=response)
        context.__aexit__ = AsyncMock(return_value=False)
        session.get = Mock(return_value=context)

    @asynccontextmanager
    async def fake_session():
        yield session

    return fake_session


class TestFeedParsing:
    """Test parse() conversion of feed documents."""

    @pytest.fixture
    def fetcher(self, test_settings):
        return FeedFetcher(test_settings)

    def test_parses_rss_items(self, fetcher, rss_builder, utc):
        document = rss_builder([
            {
                "title": "Council meets",
                "link": "https://news.example.com/council",
                "guid": "guid-1",
                "description": "The council met on Tuesday.",
                "published": utc(2024, 3, 1, 12, 0),
            }
        ])

        entries = fetcher.parse(document, FEED_URL)

        assert len(entries) == 1
        entry = entries[0]
        assert entry.external_id == "guid-1"
        assert entry.title == "Council meets"
        assert entry.link == "https://news.example.com/council"
        assert entry.summary == "The council met on Tuesday."
        assert entry.published_at == datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)

    def test_link_used_when_guid_missing(self, fetcher, rss_builder):
        document = rss_builder([{"title": "No guid", "link": "https://news.example.com/no-guid"}])

        entries = fetcher.parse(document, FEED_URL)

        assert entries[0].external_id == "https://news.example.com/no-guid"

    def test_entry_without_guid_or_link_dropped(self, fetcher, rss_builder):
        document = rss_builder([
            {"title": "Orphan", "description": "Nothing to key on"},
            {"title": "Keyed", "guid": "k-1"},
        ])

        entries = fetcher.parse(document, FEED_URL)

        assert [e.external_id for e in entries] == ["k-1"]

    def test_missing_optional_fields_get_defaults(self, fetcher, rss_builder):
        document = rss_builder([{"guid": "bare-1"}])

        entry = fetcher.parse(document, FEED_URL)[0]

        assert entry.title == "Untitled"
        assert entry.summary == ""
        assert entry.published_at is None
        assert entry.content is None

    def test_sorted_newest_first_with_undated_last(self, fetcher, rss_builder, utc):
        document = rss_builder([
            {"guid": "undated-1", "title": "Undated one"},
            {"guid": "old", "title": "Old", "published": utc(2024, 1, 1)},
            {"guid": "undated-2", "title": "Undated two"},
            {"guid": "new", "title": "New", "published": utc(2024, 2, 1)},
        ])

        entries = fetcher.parse(document, FEED_URL)

        assert [e.external_id for e in entries] == ["new", "old", "undated-1", "undated-2"]

    def test_atom_content_extracted(self, fetcher):
        entry = fetcher.parse(ATOM_DOCUMENT, FEED_URL)[0]

        assert entry.external_id == "urn:entry:1"
        assert entry.link == "https://news.example.com/atom-1"
        assert entry.content == "<p>Full body text</p>"
        assert entry.published_at == datetime(2024, 3, 2, 10, 0, tzinfo=timezone.utc)

    def test_empty_but_valid_feed_returns_no_entries(self, fetcher, rss_builder):
        assert fetcher.parse(rss_builder([]), FEED_URL) == []

    def test_non_feed_document_raises_parse_error(self, fetcher):
        with pytest.raises(ParseError) as exc_info:
            fetcher.parse(b"this is not xml at all", FEED_URL)

        assert exc_info.value.error_code == ErrorCode.FEED_PARSE_ERROR


class TestFeedFetching:
    """Test fetch() network handling, caching and rate limiting."""

    @pytest.mark.asyncio
    async def test_fetch_stamps_feed_name(self, test_settings, rss_builder):
        fetcher = FeedFetcher(test_settings)
        fetcher._download = AsyncMock(return_value=rss_builder([{"guid": "g1", "title": "One"}]))

        entries = await fetcher.fetch(FEED_URL, feed_name="KRQE News")

        assert entries[0].source_feed_name == "KRQE News"
        fetcher._download.assert_awaited_once_with(FEED_URL)

    @pytest.mark.asyncio
    async def test_http_error_status_raises_fetch_error(self, test_settings):
        fetcher = FeedFetcher(test_settings)
        response = Mock(status=404, reason="Not Found")
        fetcher.get_session = _session_returning(response=response)

        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch(FEED_URL)

        assert "404" in str(exc_info.value)
        assert exc_info.value.error_code == ErrorCode.FEED_HTTP_ERROR

    @pytest.mark.asyncio
    async def test_timeout_raises_fetch_error(self, test_settings):
        fetcher = FeedFetcher(test_settings)
        fetcher.get_session = _session_returning(error=asyncio.TimeoutError())

        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch(FEED_URL)

        assert exc_info.value.error_code == ErrorCode.FEED_FETCH_TIMEOUT

    @pytest.mark.asyncio
    async def test_client_error_raises_fetch_error(self, test_settings):
        fetcher = FeedFetcher(test_settings)
        fetcher.get_session = _session_returning(error=aiohttp.ClientConnectionError("refused"))

        with pytest.raises(FetchError):
            await fetcher.fetch(FEED_URL)

    @pytest.mark.asyncio
    async def test_successful_download_reads_body(self, test_settings, rss_builder):
        fetcher = FeedFetcher(test_settings)
        response = Mock(status=200, reason="OK")
        response.read = AsyncMock(return_value=rss_builder([{"guid": "g1"}]))
        fetcher.get_session = _session_returning(response=response)

        entries = await fetcher.fetch(FEED_URL)

        assert [e.external_id for e in entries] == ["g1"]

    @pytest.mark.asyncio
    async def test_cache_serves_fresh_document(self, test_settings, rss_builder):
        fetcher = FeedFetcher(test_settings, cache_ttl=300)
        fetcher._download = AsyncMock(return_value=rss_builder([{"guid": "g1"}]))

        await fetcher.fetch(FEED_URL)
        await fetcher.fetch(FEED_URL)

        assert fetcher._download.await_count == 1
        assert fetcher.cache_size == 1

    @pytest.mark.asyncio
    async def test_stale_cache_used_after_fetch_error(self, test_settings, rss_builder):
        fetcher = FeedFetcher(test_settings, cache_ttl=300)
        fetcher._download = AsyncMock(side_effect=[
            rss_builder([{"guid": "cached"}]),
            FetchError("Request timeout after 5s", feed_url=FEED_URL),
        ])

        await fetcher.fetch(FEED_URL)
        # Expire the cached copy without sleeping
        fetched_at, entries = fetcher._cache[FEED_URL]
        fetcher._cache[FEED_URL] = (fetched_at - 1000, entries)

        stale = await fetcher.fetch(FEED_URL, feed_name="Feed A")

        assert [e.external_id for e in stale] == ["cached"]
        assert stale[0].source_feed_name == "Feed A"

    @pytest.mark.asyncio
    async def test_clear_cache(self, test_settings, rss_builder):
        fetcher = FeedFetcher(test_settings, cache_ttl=300)
        fetcher._download = AsyncMock(return_value=rss_builder([{"guid": "g1"}]))

        await fetcher.fetch(FEED_URL)
        fetcher.clear_cache()
        await fetcher.fetch(FEED_URL)

        assert fetcher.cache_size == 1
        assert fetcher._download.await_count == 2

    @pytest.mark.asyncio
    async def test_cache_evicts_oldest_entry(self, test_settings, rss_builder):
        fetcher = FeedFetcher(test_settings, cache_ttl=300)
        fetcher.max_cache_entries = 2
        fetcher._download = AsyncMock(return_value=rss_builder([{"guid": "g1"}]))

        for path in ("a", "b", "c"):
            await fetcher.fetch(f"https://news.example.com/{path}")

        assert list(fetcher._cache) == ["https://news.example.com/b", "https://news.example.com/c"]

    @pytest.mark.asyncio
    async def test_fetch_error_without_cache_propagates(self, test_settings):
        fetcher = FeedFetcher(test_settings, cache_ttl=300)
        fetcher._download = AsyncMock(side_effect=FetchError("HTTP 500: Server Error"))

        with pytest.raises(FetchError):
            await fetcher.fetch(FEED_URL)

    @pytest.mark.asyncio
    async def test_rate_limit_spaces_requests_to_same_url(self, test_settings, rss_builder):
        fetcher = FeedFetcher(test_settings, min_request_interval=30)
        fetcher._download = AsyncMock(return_value=rss_builder([{"guid": "g1"}]))

        with patch("feedwire.ingestion.feed_fetcher.asyncio.sleep", new=AsyncMock()) as sleep:
            await fetcher.fetch(FEED_URL)
            sleep.assert_not_awaited()

            await fetcher.fetch(FEED_URL)
            sleep.assert_awaited_once()
            assert 0 < sleep.await_args.args[0] <= 30

            await fetcher.fetch("https://other.example.com/feed")
            assert sleep.await_count == 1

    @pytest.mark.asyncio
    async def test_expired_request_times_pruned(self, test_settings, rss_builder):
        fetcher = FeedFetcher(test_settings, min_request_interval=30)
        fetcher._download = AsyncMock(return_value=rss_builder([{"guid": "g1"}]))
        fetcher._last_request["https://old.example.com/feed"] = time.monotonic() - 60

        await fetcher.fetch(FEED_URL)

        assert list(fetcher._last_request) == [FEED_URL]

    @pytest.mark.asyncio
    async def test_request_times_not_tracked_without_interval(self, test_settings, rss_builder):
        fetcher = FeedFetcher(test_settings, min_request_interval=0)
        fetcher._download = AsyncMock(return_value=rss_builder([{"guid": "g1"}]))

        for path in ("a", "b", "c"):
            await fetcher.fetch(f"https://news.example.com/{path}")

        assert fetcher._last_request == {}
