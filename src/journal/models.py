"""Journal domain models: pure Pydantic v2 data types.

A user owns entries, prompts and weekly insights. The aggregates on
``User`` are caches over the completed entry set: only statistics
recomputation writes them.
"""

from __future__ import annotations

import uuid
from datetime import UTC, date, datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from mindful.analysis.models import Mood, PromptType


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(tz=UTC)


class User(BaseModel):
    id: str
    current_streak: int = 0
    longest_streak: int = 0
    total_entries: int = 0
    words_written: int = 0
    last_entry_date: datetime | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class UserStats(BaseModel):
    """Aggregates derived from a user's completed entries."""

    current_streak: int = 0
    longest_streak: int = 0
    total_entries: int = 0
    words_written: int = 0
    last_entry_date: datetime | None = None


class Entry(BaseModel):
    """A journal entry plus its derived analysis fields.

    ``sentiment_score``, ``sentiment_label``, ``mood`` and ``themes`` are
    only set when ``word_count`` is above the analysis threshold.
    """

    id: str = Field(default_factory=new_id)
    user_id: str
    content: str
    title: str | None = None
    ai_prompt: str | None = None
    word_count: int = 0
    sentiment_score: float | None = Field(default=None, ge=-1.0, le=1.0)
    sentiment_label: str | None = None
    mood: Mood | None = None
    themes: list[str] = Field(default_factory=list, max_length=5)
    is_completed: bool = True
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class PromptSource(StrEnum):
    AI = "ai"
    CURATED = "curated"


class Prompt(BaseModel):
    id: str = Field(default_factory=new_id)
    user_id: str
    prompt_text: str
    context: str = ""
    prompt_type: PromptType = PromptType.REFLECTION
    source: PromptSource = PromptSource.AI
    is_used: bool = False
    created_at: datetime = Field(default_factory=utcnow)


class WeeklyInsight(BaseModel):
    """Summary of one user's week. One per (user_id, week_start)."""

    id: str = Field(default_factory=new_id)
    user_id: str
    week_start: datetime
    week_end: datetime
    summary: str
    key_themes: list[str] = Field(default_factory=list)
    patterns: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    mood_trend: str
    average_sentiment: float = 0.0
    entry_count: int = 0
    is_fallback: bool = False
    created_at: datetime = Field(default_factory=utcnow)


class MoodPoint(BaseModel):
    day: date
    sentiment: float
    mood: str


class MoodSummary(BaseModel):
    average_sentiment: float
    dominant_mood: str
    total_entries: int
    period: str


class MoodTimeline(BaseModel):
    points: list[MoodPoint] = Field(default_factory=list)
    summary: MoodSummary | None = None


class ThemeStat(BaseModel):
    theme: str
    count: int
    explanation: str
    suggestions: list[str] = Field(default_factory=list)
    is_fallback: bool = False
