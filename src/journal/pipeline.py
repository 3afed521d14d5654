"""Entry pipeline: submitted or edited text becomes an enriched, persisted entry.

Per entry: Draft → WordCounted → (AnalysisAttempted | AnalysisSkipped)
→ Persisted, followed by a synchronous statistics recomputation so a
read of the user's aggregates right after any write is consistent.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field

from mindful.analysis.client import AnalysisClient
from mindful.analysis.fallbacks import classify_mood
from mindful.analysis.models import Analysis, Mood
from mindful.config import MindfulConfig
from mindful.errors import NotFoundError, ProviderError, ValidationError
from mindful.journal.models import Entry, Prompt, utcnow
from mindful.journal.stats import recompute_user_stats
from mindful.journal.store import JournalStore

logger = logging.getLogger(__name__)

MAX_ENTRY_LENGTH = 50_000  # characters


def count_words(text: str) -> int:
    """Whitespace-separated token count; empty tokens are discarded."""
    return len(text.split())


class EntryAnalysis(BaseModel):
    """The derived fields an analysis pass writes onto an entry."""

    sentiment_score: float | None = None
    sentiment_label: str | None = None
    mood: Mood | None = None
    themes: list[str] = Field(default_factory=list)


CLEARED_ANALYSIS = EntryAnalysis()


def _validate_content(content: str | None) -> str:
    if content is None or not content.strip():
        raise ValidationError("Entry content is required")
    if len(content) > MAX_ENTRY_LENGTH:
        raise ValidationError(f"Entry content exceeds {MAX_ENTRY_LENGTH} characters")
    return content


class EntryPipeline:
    """Creates, edits and deletes entries, keeping derived data in sync."""

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

    @property
    def min_words(self) -> int:
        return self._config.analysis.min_words_for_analysis

    # -- Analysis ------------------------------------------------------------

    async def analyze_content(
        self,
        user_id: str,
        content: str,
        *,
        created_at: datetime,
        exclude_id: str | None = None,
    ) -> Analysis[EntryAnalysis]:
        """Run sentiment and theme analysis, degrading to the keyword classifier.

        Themes cover this content plus the user's most recent prior completed
        entries (``theme_context_entries`` of them, ``exclude_id`` skipped).
        A ``ProviderError`` from either call replaces the whole result with
        the fallback: keyword mood, score 0, label = mood, no themes.
        """
        context_size = self._config.analysis.theme_context_entries
        try:
            sentiment = await self._client.analyze_sentiment(content)
            prior = await self._store.get_recent_entries(user_id, context_size + 1)
            prior = [e for e in prior if e.id != exclude_id][:context_size]
            draft = Entry(user_id=user_id, content=content, created_at=created_at)
            themes = await self._client.extract_themes([draft, *prior])
        except ProviderError as exc:
            logger.warning("AI analysis failed, using keyword fallback: %s", exc)
            mood = classify_mood(content)
            return Analysis[EntryAnalysis].degraded(
                EntryAnalysis(
                    sentiment_score=0.0,
                    sentiment_label=mood.value,
                    mood=mood,
                    themes=[],
                ),
                str(exc),
            )

        return Analysis[EntryAnalysis].ok(
            EntryAnalysis(
                sentiment_score=sentiment.score,
                sentiment_label=sentiment.label.value,
                mood=sentiment.mood,
                themes=themes,
            )
        )

    # -- Lookups -------------------------------------------------------------

    async def get_entry(self, user_id: str, entry_id: str) -> Entry:
        """Return an entry the user owns.

        Raises:
            NotFoundError: If it is missing or belongs to another user.
        """
        entry = await self._store.get_entry(entry_id)
        if entry is None or entry.user_id != user_id:
            raise NotFoundError("entry", entry_id)
        return entry

    async def list_entries(
        self, user_id: str, limit: int = 10, *, include_drafts: bool = False
    ) -> list[Entry]:
        """Newest-first entries for the user."""
        return await self._store.get_recent_entries(
            user_id, limit, completed_only=not include_drafts
        )

    async def _resolve_prompt(self, user_id: str, prompt_id: str) -> Prompt:
        prompt = await self._store.get_prompt(prompt_id)
        if prompt is None or prompt.user_id != user_id:
            raise NotFoundError("prompt", prompt_id)
        return prompt

    # -- Mutations -----------------------------------------------------------

    async def submit_entry(
        self,
        user_id: str,
        content: str,
        *,
        title: str | None = None,
        prompt_id: str | None = None,
        is_completed: bool = True,
        created_at: datetime | None = None,
    ) -> Entry:
        """Create an entry, analyze it if it is long enough, and persist it.

        Entry submission succeeds regardless of provider health: analysis
        quality degrades to the keyword fallback instead.

        Raises:
            ValidationError: If ``content`` is blank or too long.
            NotFoundError: If ``prompt_id`` is not one of the user's prompts.
        """
        content = _validate_content(content)
        await self._store.ensure_user(user_id)

        prompt = await self._resolve_prompt(user_id, prompt_id) if prompt_id else None

        created_at = created_at or self._clock()
        word_count = count_words(content)
        entry = Entry(
            user_id=user_id,
            content=content,
            title=title,
            ai_prompt=prompt.prompt_text if prompt else None,
            word_count=word_count,
            is_completed=is_completed,
            created_at=created_at,
            updated_at=created_at,
        )

        if word_count > self.min_words:
            analysis = await self.analyze_content(user_id, content, created_at=created_at)
            entry = entry.model_copy(update=analysis.value.model_dump())
        else:
            logger.debug("Skipping analysis for short entry (%d words)", word_count)

        stored = await self._store.create_entry(entry)

        if prompt is not None and not prompt.is_used:
            await self._store.mark_prompt_used(prompt.id)

        await self._recompute(user_id)
        return stored

    async def update_entry(
        self,
        user_id: str,
        entry_id: str,
        *,
        content: str | None = None,
        title: str | None = None,
        is_completed: bool | None = None,
    ) -> Entry:
        """Apply an edit. Derived fields are recomputed only if the text changed.

        Raises:
            ValidationError: If ``content`` is given but blank or too long.
            NotFoundError: If the entry is missing or belongs to another user.
        """
        existing = await self.get_entry(user_id, entry_id)
        changes: dict[str, Any] = {}

        if title is not None:
            changes["title"] = title
        if is_completed is not None:
            changes["is_completed"] = is_completed

        if content is not None:
            content = _validate_content(content)
            if content != existing.content:
                word_count = count_words(content)
                changes["content"] = content
                changes["word_count"] = word_count
                if word_count > self.min_words:
                    analysis = await self.analyze_content(
                        user_id,
                        content,
                        created_at=existing.created_at,
                        exclude_id=existing.id,
                    )
                    changes.update(analysis.value.model_dump())
                else:
                    changes.update(CLEARED_ANALYSIS.model_dump())

        if not changes:
            return existing

        updated = await self._store.update_entry(entry_id, changes)
        await self._recompute(user_id)
        return updated

    async def delete_entry(self, user_id: str, entry_id: str) -> None:
        """Delete an entry and recompute its owner's statistics.

        Raises:
            NotFoundError: If the entry is missing or belongs to another user.
        """
        await self.get_entry(user_id, entry_id)
        await self._store.delete_entry(entry_id)
        await self._recompute(user_id)

    async def _recompute(self, user_id: str) -> None:
        calendar = self._config.calendar
        await recompute_user_stats(
            self._store,
            user_id,
            now=self._clock().astimezone(UTC),
            tz=calendar.tz,
        )
