"""User statistics recomputation.

Aggregates are always derived from the full, authoritative entry set.
Nothing here reads the previously cached counters.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import UTC, date, datetime, timedelta, tzinfo

from mindful.journal.models import Entry, User, UserStats
from mindful.journal.store import JournalStore

logger = logging.getLogger(__name__)


def compute_user_stats(entries: Iterable[Entry], *, today: date, tz: tzinfo = UTC) -> UserStats:
    """Derive streaks and totals from a user's entries.

    Only completed entries count. Entries are walked newest first, each
    reduced to its calendar day in ``tz``:

    - a day exactly one before the previous day extends the run;
    - a further gap breaks it (the run is folded into ``longest_streak``);
    - another entry on the same day changes nothing.

    ``current_streak`` is the length of the newest run if that run ends
    today or yesterday, otherwise 0.
    """
    completed = sorted(
        (e for e in entries if e.is_completed),
        key=lambda e: e.created_at,
        reverse=True,
    )
    if not completed:
        return UserStats()

    yesterday = today - timedelta(days=1)

    current_streak = 0
    longest_streak = 0
    streak_count = 0
    anchored = False
    first_run = True
    previous_day: date | None = None

    for entry in completed:
        day = entry.created_at.astimezone(tz).date()

        if previous_day is None:
            streak_count = 1
            anchored = day in (today, yesterday)
            if anchored:
                current_streak = 1
        elif day == previous_day:
            continue
        elif (previous_day - day).days == 1:
            streak_count += 1
            if anchored and first_run:
                current_streak = streak_count
        else:
            longest_streak = max(longest_streak, streak_count)
            streak_count = 1
            first_run = False

        previous_day = day

    longest_streak = max(longest_streak, streak_count)

    return UserStats(
        current_streak=current_streak,
        longest_streak=longest_streak,
        total_entries=len(completed),
        words_written=sum(e.word_count for e in completed),
        last_entry_date=completed[0].created_at,
    )


async def recompute_user_stats(
    store: JournalStore,
    user_id: str,
    *,
    now: datetime | None = None,
    tz: tzinfo = UTC,
) -> User:
    """Recompute and persist a user's aggregates from their stored entries.

    Must be awaited after the entry mutation that triggered it so the
    read below observes that write.
    """
    now = now or datetime.now(tz=UTC)
    entries = await store.get_entries(user_id)
    stats = compute_user_stats(entries, today=now.astimezone(tz).date(), tz=tz)
    user = await store.update_user_aggregates(user_id, stats)
    logger.debug(
        "Recomputed stats for %s: streak=%d longest=%d entries=%d words=%d",
        user_id,
        stats.current_streak,
        stats.longest_streak,
        stats.total_entries,
        stats.words_written,
    )
    return user
