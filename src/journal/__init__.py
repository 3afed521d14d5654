"""Journal domain: entries, prompts, statistics and weekly insights.

Entries flow through a pipeline that enriches them with sentiment, mood
and themes, then keeps the owner's streaks and totals in sync. Prompts
and weekly insights are generated on demand and cached in the store.
"""

from mindful.journal.analytics import JournalAnalytics
from mindful.journal.insights import WeeklyInsightAggregator, week_bounds
from mindful.journal.models import (
    Entry,
    MoodPoint,
    MoodSummary,
    MoodTimeline,
    Prompt,
    PromptSource,
    ThemeStat,
    User,
    UserStats,
    WeeklyInsight,
)
from mindful.journal.pipeline import EntryPipeline, count_words
from mindful.journal.prompting import PromptService
from mindful.journal.services import JournalService
from mindful.journal.stats import compute_user_stats, recompute_user_stats
from mindful.journal.store import JournalStore, JsonJournalStore

__all__ = [
    "Entry",
    "EntryPipeline",
    "JournalAnalytics",
    "JournalService",
    "JournalStore",
    "JsonJournalStore",
    "MoodPoint",
    "MoodSummary",
    "MoodTimeline",
    "Prompt",
    "PromptService",
    "PromptSource",
    "ThemeStat",
    "User",
    "UserStats",
    "WeeklyInsight",
    "WeeklyInsightAggregator",
    "compute_user_stats",
    "count_words",
    "recompute_user_stats",
    "week_bounds",
]
