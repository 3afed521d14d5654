"""Writing-prompt lifecycle: one active unused prompt per user.

An unused prompt is reused until the user writes against it; a refresh
always creates a new one. When the provider is unavailable the curated
prompt of the day is stored instead.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from mindful.analysis.client import AnalysisClient
from mindful.analysis.fallbacks import get_daily_prompt
from mindful.analysis.models import Analysis, PromptType
from mindful.config import MindfulConfig
from mindful.errors import NotFoundError, ProviderError
from mindful.journal.models import Prompt, PromptSource, utcnow
from mindful.journal.store import JournalStore

logger = logging.getLogger(__name__)

RECENT_ENTRY_LIMIT = 5
THEME_LIMIT = 10


class PromptService:
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

    async def get_active_prompt(self, user_id: str) -> Prompt:
        """Return the user's unused prompt, generating one if there is none."""
        await self._store.ensure_user(user_id)
        existing = await self._store.get_unused_prompt(user_id)
        if existing is not None:
            return existing
        analysis = await self.generate(user_id)
        return await self._store.create_prompt(analysis.value)

    async def refresh_prompt(self, user_id: str) -> Prompt:
        """Generate and store a new prompt regardless of existing ones."""
        await self._store.ensure_user(user_id)
        analysis = await self.generate(user_id)
        return await self._store.create_prompt(analysis.value)

    async def mark_prompt_used(self, user_id: str, prompt_id: str) -> None:
        """Raises NotFoundError if the prompt is missing or someone else's."""
        prompt = await self._store.get_prompt(prompt_id)
        if prompt is None or prompt.user_id != user_id:
            raise NotFoundError("prompt", prompt_id)
        await self._store.mark_prompt_used(prompt_id)

    async def generate(self, user_id: str) -> Analysis[Prompt]:
        """Build (but do not store) a prompt personalized from recent entries."""
        recent = await self._store.get_recent_entries(user_id, RECENT_ENTRY_LIMIT)

        themes: list[str] = []
        for entry in recent:
            for theme in entry.themes:
                if theme not in themes:
                    themes.append(theme)
        current_mood = next((e.mood.value for e in recent if e.mood), None)

        try:
            generated = await self._client.generate_prompt(recent, themes[:THEME_LIMIT], current_mood)
        except ProviderError as exc:
            logger.warning("AI prompt generation failed, using curated prompt: %s", exc)
            today = self._clock().astimezone(self._config.calendar.tz).date()
            curated = get_daily_prompt(today)
            return Analysis[Prompt].degraded(
                Prompt(
                    user_id=user_id,
                    prompt_text=curated.prompt_text,
                    context=curated.context,
                    prompt_type=PromptType.REFLECTION,
                    source=PromptSource.CURATED,
                    created_at=self._clock(),
                ),
                str(exc),
            )

        return Analysis[Prompt].ok(
            Prompt(
                user_id=user_id,
                prompt_text=generated.prompt,
                context=generated.context,
                prompt_type=generated.type,
                source=PromptSource.AI,
                created_at=self._clock(),
            )
        )
