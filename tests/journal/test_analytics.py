"""Tests for mood timeline, theme breakdown and search."""

from __future__ import annotations

import asyncio
from datetime import UTC, date, datetime

import pytest

from mindful.analysis.fallbacks import DEFAULT_THEMES, FALLBACK_SUGGESTIONS
from mindful.analysis.models import Mood
from mindful.errors import ValidationError
from mindful.journal.models import Entry


def _make_entry(
    content: str,
    when: datetime,
    *,
    mood: Mood | None = None,
    score: float | None = None,
    title: str | None = None,
    themes: list[str] | None = None,
    completed: bool = True,
) -> Entry:
    return Entry(
        user_id="u1",
        content=content,
        title=title,
        mood=mood,
        sentiment_score=score,
        themes=themes or [],
        is_completed=completed,
        created_at=when,
    )


def _add(store, *entries: Entry) -> None:
    for entry in entries:
        asyncio.run(store.create_entry(entry))


class TestMoodTimeline:
    @pytest.fixture
    def seeded(self, store):
        _add(
            store,
            _make_entry("morning", datetime(2024, 1, 3, 8, tzinfo=UTC), mood=Mood.HAPPY, score=0.5),
            _make_entry("evening", datetime(2024, 1, 2, 20, tzinfo=UTC), mood=Mood.SAD, score=-0.2),
            _make_entry("older", datetime(2023, 12, 30, 9, tzinfo=UTC), mood=Mood.CALM, score=0.1),
            _make_entry("draft", datetime(2024, 1, 3, 9, tzinfo=UTC), mood=Mood.ANXIOUS, completed=False),
        )
        return store

    def test_single_day_with_summary(self, service, seeded) -> None:
        timeline = asyncio.run(service.mood_timeline("u1", days=1))

        assert [p.mood for p in timeline.points] == ["sad", "happy"]
        assert timeline.points[0].day == date(2024, 1, 2)
        assert timeline.summary.period == "today"
        assert timeline.summary.total_entries == 2
        assert timeline.summary.average_sentiment == pytest.approx(0.15)
        # Tie goes to the earlier entry
        assert timeline.summary.dominant_mood == "sad"

    def test_three_days_summary_period(self, service, seeded) -> None:
        timeline = asyncio.run(service.mood_timeline("u1", days=3))
        assert timeline.summary.period == "past 3 days"

    def test_week_has_no_summary(self, service, seeded) -> None:
        timeline = asyncio.run(service.mood_timeline("u1", days=7))

        assert [p.mood for p in timeline.points] == ["calm", "sad", "happy"]
        assert timeline.summary is None

    def test_missing_analysis_defaults(self, service, store) -> None:
        _add(store, _make_entry("short", datetime(2024, 1, 3, 8, tzinfo=UTC)))
        point = asyncio.run(service.mood_timeline("u1", days=1)).points[0]

        assert point.sentiment == 0.0
        assert point.mood == "neutral"

    def test_empty_window(self, service) -> None:
        timeline = asyncio.run(service.mood_timeline("u1", days=2))

        assert timeline.points == []
        assert timeline.summary is None

    def test_days_must_be_positive(self, service) -> None:
        with pytest.raises(ValidationError):
            asyncio.run(service.mood_timeline("u1", days=0))


class TestThemeBreakdown:
    @pytest.fixture
    def seeded(self, store):
        _add(
            store,
            _make_entry("Busy day at work", datetime(2024, 1, 1, 9, tzinfo=UTC)),
            _make_entry("Dinner with family", datetime(2024, 1, 2, 9, tzinfo=UTC)),
            _make_entry("Work and family time", datetime(2024, 1, 3, 9, tzinfo=UTC)),
        )
        return store

    def test_no_entries(self, service, provider) -> None:
        assert asyncio.run(service.theme_breakdown("u1")) == []
        assert provider.count() == 0

    def test_explained_themes(self, service, provider, seeded) -> None:
        provider.script("themes", {"themes": ["work", "family", "health"]})
        provider.script("theme ", {"explanation": "It keeps coming up.", "suggestions": ["Write more"]})

        stats = asyncio.run(service.theme_breakdown("u1"))

        assert [(s.theme, s.count) for s in stats] == [("work", 2), ("family", 2), ("health", 1)]
        assert all(s.explanation == "It keeps coming up." for s in stats)
        assert not any(s.is_fallback for s in stats)
        assert provider.count("theme ") == 3

    def test_too_few_themes_uses_keyword_breakdown(self, service, provider, seeded) -> None:
        provider.script("themes", {"themes": ["work"]})
        provider.script("theme ", {"explanation": "Noted.", "suggestions": []})

        stats = asyncio.run(service.theme_breakdown("u1"))

        assert [s.theme for s in stats] == list(DEFAULT_THEMES)
        assert all(s.is_fallback for s in stats)
        assert provider.count("theme ") == 0

    def test_each_explanation_degrades_independently(self, service, provider, seeded) -> None:
        provider.script("themes", {"themes": ["work", "family", "health"]})
        provider.script("theme work", {"explanation": "Work matters to you.", "suggestions": []})

        stats = asyncio.run(service.theme_breakdown("u1"))

        assert stats[0].explanation == "Work matters to you."
        assert not stats[0].is_fallback
        assert stats[1].is_fallback
        assert stats[1].explanation.startswith("'family' shows up in 2 recent entries")
        assert stats[2].suggestions == list(FALLBACK_SUGGESTIONS)

    def test_keyword_fallback_when_extraction_fails(self, service, provider, seeded) -> None:
        stats = asyncio.run(service.theme_breakdown("u1"))

        assert [s.theme for s in stats] == list(DEFAULT_THEMES)
        assert all(s.is_fallback and s.count == 1 for s in stats)
        assert provider.count("theme ") == 0


class TestSearchEntries:
    @pytest.fixture
    def seeded(self, store):
        _add(
            store,
            _make_entry("Went hiking with Sam", datetime(2024, 1, 1, 9, tzinfo=UTC)),
            _make_entry("Quiet evening", datetime(2024, 1, 2, 9, tzinfo=UTC), title="Hiking plans"),
            _make_entry("Reading", datetime(2024, 1, 3, 9, tzinfo=UTC), themes=["outdoors hiking"]),
            _make_entry("Hiking draft", datetime(2024, 1, 3, 10, tzinfo=UTC), completed=False),
            _make_entry("Nothing relevant", datetime(2024, 1, 3, 11, tzinfo=UTC)),
        )
        return store

    def test_matches_content_title_and_themes(self, service, seeded) -> None:
        found = asyncio.run(service.search_entries("u1", "HIKING"))
        assert [e.content for e in found] == ["Reading", "Quiet evening", "Went hiking with Sam"]

    def test_no_match(self, service, seeded) -> None:
        assert asyncio.run(service.search_entries("u1", "kayak")) == []

    def test_other_users_invisible(self, service, seeded) -> None:
        assert asyncio.run(service.search_entries("u2", "hiking")) == []

    def test_blank_query_rejected(self, service) -> None:
        with pytest.raises(ValidationError):
            asyncio.run(service.search_entries("u1", "   "))
