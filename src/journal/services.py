"""Journal service façade.

Wires one store, one analysis client and one configuration into the
entry pipeline, prompt service, weekly insights and analytics, and
exposes the operations callers (the CLI, tests) use.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

from mindful.analysis.client import AnalysisClient
from mindful.config import MindfulConfig
from mindful.errors import NotFoundError
from mindful.journal.analytics import JournalAnalytics
from mindful.journal.insights import WeeklyInsightAggregator
from mindful.journal.models import Entry, MoodTimeline, Prompt, ThemeStat, User, WeeklyInsight, utcnow
from mindful.journal.pipeline import EntryPipeline
from mindful.journal.prompting import PromptService
from mindful.journal.stats import recompute_user_stats
from mindful.journal.store import JournalStore, JsonJournalStore
from mindful.llm import ClaudeProvider, TextProvider


class JournalService:
    """Entry point for every journal operation."""

    def __init__(
        self,
        store: JournalStore,
        client: AnalysisClient,
        config: MindfulConfig | None = None,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.config = config or MindfulConfig()
        self.store = store
        self.client = client
        self._clock = clock
        self.entries = EntryPipeline(store, client, self.config, clock=clock)
        self.prompts = PromptService(store, client, self.config, clock=clock)
        self.insights = WeeklyInsightAggregator(store, client, self.config, clock=clock)
        self.analytics = JournalAnalytics(store, client, self.config, clock=clock)

    @classmethod
    def from_config(
        cls,
        config: MindfulConfig,
        provider: TextProvider | None = None,
        store: JournalStore | None = None,
    ) -> JournalService:
        """Build a service with a Claude provider and the configured JSON store."""
        analysis = config.analysis
        provider = provider or ClaudeProvider(model=analysis.model, timeout=analysis.timeout)
        client = AnalysisClient(provider, timeout=analysis.timeout)
        store = store or JsonJournalStore(config.store_path)
        return cls(store, client, config)

    # -- Entries -------------------------------------------------------------

    async def submit_entry(
        self,
        user_id: str,
        content: str,
        *,
        title: str | None = None,
        prompt_id: str | None = None,
        is_completed: bool = True,
    ) -> Entry:
        return await self.entries.submit_entry(
            user_id, content, title=title, prompt_id=prompt_id, is_completed=is_completed
        )

    async def update_entry(
        self,
        user_id: str,
        entry_id: str,
        *,
        content: str | None = None,
        title: str | None = None,
        is_completed: bool | None = None,
    ) -> Entry:
        return await self.entries.update_entry(
            user_id, entry_id, content=content, title=title, is_completed=is_completed
        )

    async def delete_entry(self, user_id: str, entry_id: str) -> None:
        await self.entries.delete_entry(user_id, entry_id)

    async def get_entry(self, user_id: str, entry_id: str) -> Entry:
        return await self.entries.get_entry(user_id, entry_id)

    async def list_entries(self, user_id: str, limit: int = 10, *, include_drafts: bool = False) -> list[Entry]:
        return await self.entries.list_entries(user_id, limit, include_drafts=include_drafts)

    # -- Users ---------------------------------------------------------------

    async def get_user(self, user_id: str) -> User:
        """Return the user's cached aggregates.

        Raises:
            NotFoundError: If the user has never written or requested anything.
        """
        user = await self.store.get_user(user_id)
        if user is None:
            raise NotFoundError("user", user_id)
        return user

    async def recompute_stats(self, user_id: str) -> User:
        """Rebuild the user's aggregates from their entries."""
        await self.get_user(user_id)
        return await recompute_user_stats(
            self.store, user_id, now=self._clock(), tz=self.config.calendar.tz
        )

    # -- Prompts -------------------------------------------------------------

    async def get_active_prompt(self, user_id: str) -> Prompt:
        return await self.prompts.get_active_prompt(user_id)

    async def refresh_prompt(self, user_id: str) -> Prompt:
        return await self.prompts.refresh_prompt(user_id)

    async def mark_prompt_used(self, user_id: str, prompt_id: str) -> None:
        await self.prompts.mark_prompt_used(user_id, prompt_id)

    # -- Insights & analytics ------------------------------------------------

    async def get_weekly_insight(self, user_id: str) -> WeeklyInsight | None:
        return await self.insights.get_weekly_insight(user_id)

    async def list_weekly_insights(self, user_id: str, limit: int = 5) -> list[WeeklyInsight]:
        return await self.insights.list_weekly_insights(user_id, limit)

    async def mood_timeline(self, user_id: str, days: int = 7) -> MoodTimeline:
        return await self.analytics.mood_timeline(user_id, days)

    async def theme_breakdown(self, user_id: str) -> list[ThemeStat]:
        return await self.analytics.theme_breakdown(user_id)

    async def search_entries(self, user_id: str, query: str) -> list[Entry]:
        return await self.analytics.search_entries(user_id, query)
