"""Weekly insight aggregation.

An insight is cached per (user, week_start) and rebuilt from scratch when
the week has more completed entries than the insight was built from.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable, Sequence
from datetime import UTC, datetime, time, timedelta, tzinfo

from mindful.analysis.client import AnalysisClient
from mindful.analysis.models import Analysis, Mood
from mindful.config import MindfulConfig
from mindful.errors import ProviderError
from mindful.journal.models import Entry, WeeklyInsight, utcnow
from mindful.journal.store import JournalStore

logger = logging.getLogger(__name__)

FALLBACK_THEMES = ["personal reflection", "self-awareness"]
FALLBACK_MOOD_TREND = "Reflective"
FALLBACK_RECOMMENDATIONS = ["Keep writing regularly to track your growth."]


def week_bounds(now: datetime, *, first_weekday: int, tz: tzinfo = UTC) -> tuple[datetime, datetime]:
    """Return the UTC bounds of the week containing ``now``.

    The week starts on the most recent ``first_weekday`` (``date.weekday()``
    numbering, Monday is 0) at 00:00 in ``tz`` and ends six days later at
    23:59:59.999999.
    """
    local = now.astimezone(tz)
    offset = (local.weekday() - first_weekday) % 7
    start_day = local.date() - timedelta(days=offset)
    start = datetime.combine(start_day, time.min, tzinfo=tz)
    end = datetime.combine(start_day + timedelta(days=6), time.max, tzinfo=tz)
    return start.astimezone(UTC), end.astimezone(UTC)


def average_sentiment(entries: Sequence[Entry]) -> float:
    """Mean sentiment score; entries without a score count as 0."""
    if not entries:
        return 0.0
    return sum(e.sentiment_score or 0.0 for e in entries) / len(entries)


def dominant_mood(entries: Sequence[Entry]) -> str:
    """Most frequent mood; entries without a mood count as neutral.

    Ties go to the mood of the earliest-written entry among the tied moods.
    """
    if not entries:
        return Mood.NEUTRAL.value
    ordered = sorted(entries, key=lambda e: e.created_at)
    moods = [(e.mood or Mood.NEUTRAL).value for e in ordered]
    counts = Counter(moods)
    best = max(counts.values())
    return next(m for m in moods if counts[m] == best)


def fallback_summary(entries: Sequence[Entry]) -> str:
    count = len(entries)
    avg_words = round(sum(e.word_count for e in entries) / count) if count else 0
    noun = "entry" if count == 1 else "entries"
    return (
        f"You wrote {count} {noun} this week with an average of {avg_words} words. "
        "Your journaling shows thoughtful reflection on your experiences."
    )


class WeeklyInsightAggregator:
    """Serves the current week's insight, regenerating it when stale."""

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

    def current_week(self, now: datetime | None = None) -> tuple[datetime, datetime]:
        calendar = self._config.calendar
        return week_bounds(
            now or self._clock(),
            first_weekday=calendar.first_weekday_index,
            tz=calendar.tz,
        )

    async def get_weekly_insight(self, user_id: str, now: datetime | None = None) -> WeeklyInsight | None:
        """Return this week's insight, building or rebuilding it when needed.

        Returns ``None`` when the week has no completed entries and nothing
        has been built yet. A stored insight is returned unchanged (same id)
        unless the week now has more completed entries than it covers.
        """
        week_start, week_end = self.current_week(now)

        existing = await self._store.get_weekly_insight(user_id, week_start)
        week_entries = await self._store.get_entries_in_range(user_id, week_start, week_end)
        completed = [e for e in week_entries if e.is_completed]

        if existing is not None and len(completed) <= existing.entry_count:
            return existing
        if not completed:
            return existing

        analysis = await self.build_insight(user_id, week_start, week_end, completed)
        insight = analysis.value

        if existing is not None:
            logger.info(
                "Regenerating weekly insight for %s week %s with %d entries",
                user_id,
                week_start.date().isoformat(),
                len(completed),
            )
            return await self._store.replace_weekly_insight(existing.id, insight)

        logger.info(
            "Generated weekly insight for %s week %s with %d entries",
            user_id,
            week_start.date().isoformat(),
            len(completed),
        )
        return await self._store.create_weekly_insight(insight)

    async def build_insight(
        self,
        user_id: str,
        week_start: datetime,
        week_end: datetime,
        entries: Sequence[Entry],
    ) -> Analysis[WeeklyInsight]:
        """Build a fresh insight from the week's completed entries."""
        avg = average_sentiment(entries)

        try:
            themes = await self._client.extract_themes(entries)
            result = await self._client.generate_weekly_insight(entries, themes)
        except ProviderError as exc:
            logger.warning("AI weekly insight failed, creating simple summary: %s", exc)
            return Analysis[WeeklyInsight].degraded(
                WeeklyInsight(
                    user_id=user_id,
                    week_start=week_start,
                    week_end=week_end,
                    summary=fallback_summary(entries),
                    key_themes=list(FALLBACK_THEMES),
                    recommendations=list(FALLBACK_RECOMMENDATIONS),
                    mood_trend=FALLBACK_MOOD_TREND,
                    average_sentiment=avg,
                    entry_count=len(entries),
                    is_fallback=True,
                ),
                str(exc),
            )

        return Analysis[WeeklyInsight].ok(
            WeeklyInsight(
                user_id=user_id,
                week_start=week_start,
                week_end=week_end,
                summary=result.summary,
                key_themes=themes or result.key_themes,
                patterns=result.patterns,
                recommendations=result.recommendations,
                mood_trend=dominant_mood(entries),
                average_sentiment=avg,
                entry_count=len(entries),
            )
        )

    async def list_weekly_insights(self, user_id: str, limit: int = 5) -> list[WeeklyInsight]:
        """Stored insight history, newest week first."""
        return await self._store.list_weekly_insights(user_id, limit)
