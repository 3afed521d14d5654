"""Read-only analytics over a user's journal: mood timeline, themes, search."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta

from mindful.analysis.client import AnalysisClient
from mindful.analysis.fallbacks import (
    fallback_theme_explanation,
    keyword_theme_counts,
    keyword_theme_explanation,
)
from mindful.config import MindfulConfig
from mindful.errors import ProviderError, ValidationError
from mindful.journal.insights import average_sentiment, dominant_mood
from mindful.journal.models import Entry, MoodPoint, MoodSummary, MoodTimeline, ThemeStat, utcnow
from mindful.journal.store import JournalStore

logger = logging.getLogger(__name__)

THEME_WINDOW = 20
SEARCH_WINDOW = 100
SUMMARY_MAX_DAYS = 3
EXCERPT_LENGTH = 150


def _matches_theme(entry: Entry, theme: str) -> bool:
    theme = theme.lower()
    content = entry.content.lower()
    if any(theme in t.lower() or t.lower() in theme for t in entry.themes):
        return True
    if theme in content:
        return True
    return any(word in content for word in theme.split())


def _period_label(days: int) -> str:
    return "today" if days == 1 else f"past {days} days"


class JournalAnalytics:
    def __init__(
        self,
        store: JournalStore,
        client: AnalysisClient,
        config: MindfulConfig | None = None,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._client = client
        self._config = config or MindfulConfig()
        self._clock = clock

    async def mood_timeline(self, user_id: str, days: int = 7, now: datetime | None = None) -> MoodTimeline:
        """Completed entries from the last ``days`` days, oldest first.

        Short windows (three days or fewer) also carry a summary.

        Raises:
            ValidationError: If ``days`` is less than 1.
        """
        if days < 1:
            raise ValidationError("days must be at least 1")

        now = now or self._clock()
        entries = await self._store.get_entries_in_range(user_id, now - timedelta(days=days), now)
        entries = sorted((e for e in entries if e.is_completed), key=lambda e: e.created_at)

        tz = self._config.calendar.tz
        points = [
            MoodPoint(
                day=e.created_at.astimezone(tz).date(),
                sentiment=e.sentiment_score or 0.0,
                mood=(e.mood.value if e.mood else "neutral"),
            )
            for e in entries
        ]

        summary = None
        if days <= SUMMARY_MAX_DAYS and entries:
            summary = MoodSummary(
                average_sentiment=round(average_sentiment(entries), 2),
                dominant_mood=dominant_mood(entries),
                total_entries=len(entries),
                period=_period_label(days),
            )
        return MoodTimeline(points=points, summary=summary)

    async def theme_breakdown(self, user_id: str) -> list[ThemeStat]:
        """Recurring themes across recent entries, each with an explanation.

        Extraction yields three to five themes. Each explanation degrades on
        its own; if theme extraction fails, or returns too few themes, the
        whole breakdown falls back to keyword counts over the default themes.
        """
        recent = await self._store.get_recent_entries(user_id, THEME_WINDOW)
        if not recent:
            return []

        try:
            themes = await self._client.extract_themes(recent, limit=THEME_WINDOW)
        except ProviderError as exc:
            logger.warning("AI theme analysis failed, using keyword fallback: %s", exc)
            stats = []
            for theme, count in keyword_theme_counts([e.content for e in recent]):
                explanation, suggestions = keyword_theme_explanation(theme)
                stats.append(
                    ThemeStat(
                        theme=theme,
                        count=count,
                        explanation=explanation,
                        suggestions=suggestions,
                        is_fallback=True,
                    )
                )
            return stats

        return list(await asyncio.gather(*(self._explain(theme, recent) for theme in themes)))

    async def _explain(self, theme: str, recent: Sequence[Entry]) -> ThemeStat:
        relevant = [e for e in recent if _matches_theme(e, theme)]
        count = max(1, len(relevant))
        excerpts = [e.content[:EXCERPT_LENGTH] for e in (relevant or recent)]

        try:
            result = await self._client.explain_theme(theme, excerpts)
        except ProviderError as exc:
            logger.debug("Theme explanation failed for %r: %s", theme, exc)
            explanation, suggestions = fallback_theme_explanation(theme, count)
            return ThemeStat(
                theme=theme,
                count=count,
                explanation=explanation,
                suggestions=suggestions,
                is_fallback=True,
            )
        return ThemeStat(
            theme=theme,
            count=count,
            explanation=result.explanation,
            suggestions=result.suggestions,
        )

    async def search_entries(self, user_id: str, query: str) -> list[Entry]:
        """Case-insensitive substring search over recent completed entries.

        Raises:
            ValidationError: If ``query`` is blank.
        """
        needle = (query or "").strip().lower()
        if not needle:
            raise ValidationError("Search query is required")

        recent = await self._store.get_recent_entries(user_id, SEARCH_WINDOW)
        return [
            e
            for e in recent
            if needle in e.content.lower()
            or (e.title and needle in e.title.lower())
            or any(needle in t.lower() for t in e.themes)
        ]
