"""Journal storage: the protocol the core consumes and a JSON-backed store.

``JsonJournalStore`` keeps every row in memory and, when given a path,
saves the whole store to a single JSON file after every write. Saves go
through a sibling ``.tmp`` file and ``os.replace``, off the event loop.
An unreadable file raises ``StorageError`` and is never overwritten.
Reads return copies so callers cannot mutate stored rows in place.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Protocol

from pydantic import BaseModel, Field

from mindful.errors import StorageError
from mindful.journal.models import Entry, Prompt, User, UserStats, WeeklyInsight, utcnow

logger = logging.getLogger(__name__)


class JournalStore(Protocol):
    """Per-row async storage operations. No multi-row transactions."""

    async def ensure_user(self, user_id: str) -> User: ...
    async def get_user(self, user_id: str) -> User | None: ...
    async def delete_user(self, user_id: str) -> None: ...
    async def update_user_aggregates(self, user_id: str, stats: UserStats) -> User: ...

    async def get_entry(self, entry_id: str) -> Entry | None: ...
    async def get_entries(self, user_id: str) -> list[Entry]: ...
    async def get_recent_entries(
        self, user_id: str, limit: int = 10, *, completed_only: bool = True
    ) -> list[Entry]: ...
    async def get_entries_in_range(
        self, user_id: str, start: datetime, end: datetime
    ) -> list[Entry]: ...
    async def create_entry(self, entry: Entry) -> Entry: ...
    async def update_entry(self, entry_id: str, changes: dict[str, Any]) -> Entry: ...
    async def delete_entry(self, entry_id: str) -> None: ...

    async def create_prompt(self, prompt: Prompt) -> Prompt: ...
    async def get_prompt(self, prompt_id: str) -> Prompt | None: ...
    async def get_unused_prompt(self, user_id: str) -> Prompt | None: ...
    async def mark_prompt_used(self, prompt_id: str) -> None: ...

    async def create_weekly_insight(self, insight: WeeklyInsight) -> WeeklyInsight: ...
    async def get_weekly_insight(self, user_id: str, week_start: datetime) -> WeeklyInsight | None: ...
    async def delete_weekly_insight(self, insight_id: str) -> None: ...
    async def replace_weekly_insight(self, stale_id: str, insight: WeeklyInsight) -> WeeklyInsight: ...
    async def list_weekly_insights(self, user_id: str, limit: int = 5) -> list[WeeklyInsight]: ...


class _StoreData(BaseModel):
    """Internal wrapper for JSON serialization."""

    users: list[User] = Field(default_factory=list)
    entries: list[Entry] = Field(default_factory=list)
    prompts: list[Prompt] = Field(default_factory=list)
    insights: list[WeeklyInsight] = Field(default_factory=list)


class JsonJournalStore:
    """In-memory journal store with optional JSON persistence."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path
        self._data = self._load()
        self._version = 0
        self._written_version = 0
        self._write_lock = threading.Lock()

    # ── Private helpers ──────────────────────────────────────────

    def _load(self) -> _StoreData:
        if self._path is None or not self._path.exists():
            return _StoreData()
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            return _StoreData.model_validate(raw)
        except (OSError, ValueError) as exc:
            logger.error("Cannot read journal store at %s: %s", self._path, exc)
            raise StorageError(f"Cannot read journal store at {self._path}: {exc}") from exc

    async def _save(self) -> None:
        if self._path is None:
            return
        self._version += 1
        payload = self._data.model_dump_json(indent=2)
        await asyncio.to_thread(self._write, payload, self._version)

    def _write(self, payload: str, version: int) -> None:
        assert self._path is not None
        with self._write_lock:
            # A newer snapshot already landed
            if version <= self._written_version:
                return
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self._path.with_name(f"{self._path.name}.tmp")
            tmp_path.write_text(payload, encoding="utf-8")
            os.replace(tmp_path, self._path)
            self._written_version = version

    def _find_user(self, user_id: str) -> User | None:
        for user in self._data.users:
            if user.id == user_id:
                return user
        return None

    def _find_entry(self, entry_id: str) -> Entry | None:
        for entry in self._data.entries:
            if entry.id == entry_id:
                return entry
        return None

    def _find_prompt(self, prompt_id: str) -> Prompt | None:
        for prompt in self._data.prompts:
            if prompt.id == prompt_id:
                return prompt
        return None

    def _user_entries(self, user_id: str) -> list[Entry]:
        return [e for e in self._data.entries if e.user_id == user_id]

    # ── Users ────────────────────────────────────────────────────

    async def ensure_user(self, user_id: str) -> User:
        """Return the user, creating it on first sight."""
        user = self._find_user(user_id)
        if user is None:
            user = User(id=user_id)
            self._data.users.append(user)
            await self._save()
            logger.info("Created user %s", user_id)
        return user.model_copy(deep=True)

    async def get_user(self, user_id: str) -> User | None:
        user = self._find_user(user_id)
        return user.model_copy(deep=True) if user else None

    async def delete_user(self, user_id: str) -> None:
        """Delete a user and every row they own."""
        self._data.users = [u for u in self._data.users if u.id != user_id]
        self._data.entries = [e for e in self._data.entries if e.user_id != user_id]
        self._data.prompts = [p for p in self._data.prompts if p.user_id != user_id]
        self._data.insights = [i for i in self._data.insights if i.user_id != user_id]
        await self._save()

    async def update_user_aggregates(self, user_id: str, stats: UserStats) -> User:
        """Overwrite the cached aggregates on a user.

        Raises KeyError if the user does not exist.
        """
        user = self._find_user(user_id)
        if user is None:
            raise KeyError(user_id)
        for field, value in stats.model_dump().items():
            setattr(user, field, value)
        user.updated_at = utcnow()
        await self._save()
        return user.model_copy(deep=True)

    # ── Entries ──────────────────────────────────────────────────

    async def get_entry(self, entry_id: str) -> Entry | None:
        entry = self._find_entry(entry_id)
        return entry.model_copy(deep=True) if entry else None

    async def get_entries(self, user_id: str) -> list[Entry]:
        """Every entry the user owns, drafts included, in insertion order."""
        return [e.model_copy(deep=True) for e in self._user_entries(user_id)]

    async def get_recent_entries(
        self, user_id: str, limit: int = 10, *, completed_only: bool = True
    ) -> list[Entry]:
        """Newest-first entries, completed ones only by default."""
        entries = self._user_entries(user_id)
        if completed_only:
            entries = [e for e in entries if e.is_completed]
        entries.sort(key=lambda e: e.created_at, reverse=True)
        return [e.model_copy(deep=True) for e in entries[:limit]]

    async def get_entries_in_range(
        self, user_id: str, start: datetime, end: datetime
    ) -> list[Entry]:
        """Newest-first entries with ``start <= created_at <= end``."""
        entries = [e for e in self._user_entries(user_id) if start <= e.created_at <= end]
        entries.sort(key=lambda e: e.created_at, reverse=True)
        return [e.model_copy(deep=True) for e in entries]

    async def create_entry(self, entry: Entry) -> Entry:
        if self._find_entry(entry.id) is not None:
            raise ValueError(f"duplicate entry id: {entry.id}")
        self._data.entries.append(entry.model_copy(deep=True))
        await self._save()
        return entry.model_copy(deep=True)

    async def update_entry(self, entry_id: str, changes: dict[str, Any]) -> Entry:
        """Apply a partial update and bump ``updated_at``.

        Raises KeyError if the entry does not exist.
        """
        entry = self._find_entry(entry_id)
        if entry is None:
            raise KeyError(entry_id)
        updated = Entry.model_validate(
            {**entry.model_dump(), **changes, "updated_at": utcnow()}
        )
        self._data.entries = [updated if e.id == entry_id else e for e in self._data.entries]
        await self._save()
        return updated.model_copy(deep=True)

    async def delete_entry(self, entry_id: str) -> None:
        self._data.entries = [e for e in self._data.entries if e.id != entry_id]
        await self._save()

    # ── Prompts ──────────────────────────────────────────────────

    async def create_prompt(self, prompt: Prompt) -> Prompt:
        self._data.prompts.append(prompt.model_copy(deep=True))
        await self._save()
        return prompt.model_copy(deep=True)

    async def get_prompt(self, prompt_id: str) -> Prompt | None:
        prompt = self._find_prompt(prompt_id)
        return prompt.model_copy(deep=True) if prompt else None

    async def get_unused_prompt(self, user_id: str) -> Prompt | None:
        """The newest unused prompt for the user, if any."""
        unused = [p for p in self._data.prompts if p.user_id == user_id and not p.is_used]
        if not unused:
            return None
        # Latest insertion wins a created_at tie
        return max(reversed(unused), key=lambda p: p.created_at).model_copy(deep=True)

    async def mark_prompt_used(self, prompt_id: str) -> None:
        """Raises KeyError if the prompt does not exist."""
        prompt = self._find_prompt(prompt_id)
        if prompt is None:
            raise KeyError(prompt_id)
        prompt.is_used = True
        await self._save()

    # ── Weekly insights ──────────────────────────────────────────

    def _find_insight(self, user_id: str, week_start: datetime) -> WeeklyInsight | None:
        for insight in self._data.insights:
            if insight.user_id == user_id and insight.week_start == week_start:
                return insight
        return None

    async def create_weekly_insight(self, insight: WeeklyInsight) -> WeeklyInsight:
        """Insert an insight.

        Raises ValueError if the user already has one for that week.
        """
        if self._find_insight(insight.user_id, insight.week_start) is not None:
            raise ValueError(
                f"weekly insight already exists for {insight.user_id} at {insight.week_start}"
            )
        self._data.insights.append(insight.model_copy(deep=True))
        await self._save()
        return insight.model_copy(deep=True)

    async def get_weekly_insight(self, user_id: str, week_start: datetime) -> WeeklyInsight | None:
        insight = self._find_insight(user_id, week_start)
        return insight.model_copy(deep=True) if insight else None

    async def delete_weekly_insight(self, insight_id: str) -> None:
        self._data.insights = [i for i in self._data.insights if i.id != insight_id]
        await self._save()

    async def replace_weekly_insight(self, stale_id: str, insight: WeeklyInsight) -> WeeklyInsight:
        """Delete ``stale_id`` and insert ``insight`` under a single save."""
        remaining = [i for i in self._data.insights if i.id != stale_id]
        for other in remaining:
            if other.user_id == insight.user_id and other.week_start == insight.week_start:
                raise ValueError(
                    f"weekly insight already exists for {insight.user_id} at {insight.week_start}"
                )
        remaining.append(insight.model_copy(deep=True))
        self._data.insights = remaining
        await self._save()
        return insight.model_copy(deep=True)

    async def list_weekly_insights(self, user_id: str, limit: int = 5) -> list[WeeklyInsight]:
        """Newest-week-first insight history."""
        insights = [i for i in self._data.insights if i.user_id == user_id]
        insights.sort(key=lambda i: i.week_start, reverse=True)
        return [i.model_copy(deep=True) for i in insights[:limit]]
