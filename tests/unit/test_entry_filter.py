"""
Unit tests for EntryFilter keyword policy and item cap.

Covers:
- Exclusion always wins over inclusion and priority keywords
- Empty include list means no restriction
- Case-insensitive substring matching on title and summary
- Cap applied after filtering, order preserved
"""

import pytest

from feedwire.database.models import FeedConfig
from feedwire.processing.entry_filter import EntryFilter


def _config(**overrides):
    values = {"name": "Test Feed", "url": "https://news.example.com/feed"}
    values.update(overrides)
    return FeedConfig(**values)


class TestEntryFilter:
    """Test EntryFilter.apply / evaluate."""

    @pytest.fixture
    def entry_filter(self):
        return EntryFilter()

    def test_no_keywords_keeps_everything(self, entry_filter, make_entry):
        entries = [make_entry(f"e{i}", title=f"Story {i}") for i in range(3)]

        kept = entry_filter.apply(entries, _config(max_items=10))

        assert [e.external_id for e in kept] == ["e0", "e1", "e2"]

    def test_include_keywords_case_insensitive(self, entry_filter, make_entry):
        entries = [
            make_entry("a", title="ALBUQUERQUE council votes"),
            make_entry("b", title="Weather in Denver"),
            make_entry("c", title="Road work", summary="Crews in albuquerque today"),
        ]

        kept = entry_filter.apply(entries, _config(keywords=["Albuquerque"]))

        assert [e.external_id for e in kept] == ["a", "c"]

    def test_exclude_wins_over_include(self, entry_filter, make_entry):
        entries = [
            make_entry("a", title="Albuquerque lottery results"),
            make_entry("b", title="Albuquerque schools reopen"),
        ]
        config = _config(keywords=["albuquerque"], exclude_keywords=["lottery"])

        kept = entry_filter.apply(entries, config)

        assert [e.external_id for e in kept] == ["b"]

    def test_exclude_applies_without_include_list(self, entry_filter, make_entry):
        entries = [
            make_entry("a", title="Sponsored: buy now"),
            make_entry("b", title="City news"),
        ]

        kept = entry_filter.apply(entries, _config(exclude_keywords=["sponsored"]))

        assert [e.external_id for e in kept] == ["b"]

    def test_priority_keyword_bypasses_include(self, entry_filter, make_entry):
        entries = [
            make_entry("a", title="BREAKING: highway closed"),
            make_entry("b", title="Highway repaved"),
        ]
        config = _config(keywords=["albuquerque"], priority_keywords=["breaking"])

        kept = entry_filter.apply(entries, config)

        assert [e.external_id for e in kept] == ["a"]

    def test_priority_keyword_cannot_override_exclude(self, entry_filter, make_entry):
        entries = [make_entry("a", title="Breaking: sponsored giveaway")]
        config = _config(exclude_keywords=["sponsored"], priority_keywords=["breaking"])

        assert entry_filter.apply(entries, config) == []

    def test_cap_applies_after_filtering(self, entry_filter, make_entry):
        entries = [
            make_entry("x1", title="Unrelated"),
            make_entry("x2", title="Unrelated too"),
            make_entry("a1", title="Albuquerque one"),
            make_entry("a2", title="Albuquerque two"),
            make_entry("a3", title="Albuquerque three"),
        ]
        config = _config(keywords=["albuquerque"], max_items=2)

        outcome = entry_filter.evaluate(entries, config)

        assert [e.external_id for e in outcome.kept] == ["a1", "a2"]
        assert outcome.filtered_count == 2
        assert outcome.capped_count == 1

    def test_outcome_counts_exclusions_separately(self, entry_filter, make_entry):
        entries = [
            make_entry("a", title="Horoscope for today"),
            make_entry("b", title="Denver news"),
            make_entry("c", title="Santa Fe news"),
        ]
        config = _config(keywords=["santa fe"], exclude_keywords=["horoscope"])

        outcome = entry_filter.evaluate(entries, config)

        assert outcome.excluded == 1
        assert outcome.not_matching == 1
        assert [e.external_id for e in outcome.kept] == ["c"]

    def test_empty_input(self, entry_filter):
        outcome = entry_filter.evaluate([], _config())

        assert outcome.kept == []
        assert outcome.filtered_count == 0

    def test_keywords_inside_markup_ignored(self, entry_filter, make_entry):
        entries = [
            make_entry(
                "a",
                title="Albuquerque parks reopen",
                summary='<p>Parks reopen <img src="https://cdn.example.com/sponsored-banner.png"></p>',
            ),
            make_entry("b", title="Albuquerque deals", summary="<p>A <b>sponsored</b> listing</p>"),
        ]
        config = _config(exclude_keywords=["sponsored"])

        kept = entry_filter.apply(entries, config)

        assert [e.external_id for e in kept] == ["a"]

    def test_match_text_strips_tags(self, entry_filter, make_entry):
        entry = make_entry("a", title="Albuquerque News", summary="<p>Council <em>MEETS</em></p>")

        assert entry_filter.match_text(entry) == "albuquerque news council meets"
