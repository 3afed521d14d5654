"""Typed results for the AI analysis tasks: pure Pydantic v2 data types."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Generic, Protocol, TypeVar

from pydantic import BaseModel, Field


class Mood(StrEnum):
    """Closed vocabulary of mood tags."""

    HAPPY = "happy"
    SAD = "sad"
    ANXIOUS = "anxious"
    CALM = "calm"
    CONTENT = "content"
    NEUTRAL = "neutral"
    ENERGETIC = "energetic"
    REFLECTIVE = "reflective"
    FRUSTRATED = "frustrated"
    GRATEFUL = "grateful"
    HOPEFUL = "hopeful"
    EXCITED = "excited"
    PEACEFUL = "peaceful"
    # Produced by the keyword fallback
    POSITIVE = "positive"
    NEGATIVE = "negative"


class SentimentLabel(StrEnum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class PromptType(StrEnum):
    REFLECTION = "reflection"
    GRATITUDE = "gratitude"
    GOAL_SETTING = "goal-setting"
    EMOTIONAL_CHECK = "emotional-check"


class SentimentResult(BaseModel):
    """Sentiment of a single entry."""

    score: float = Field(ge=-1.0, le=1.0)
    confidence: float = Field(ge=0.0, le=1.0)
    label: SentimentLabel
    mood: Mood


class GeneratedPrompt(BaseModel):
    """A writing prompt produced for a user."""

    prompt: str
    context: str
    type: PromptType = PromptType.REFLECTION


class WeeklyInsightResult(BaseModel):
    """Narrative summary of one week of entries."""

    summary: str
    key_themes: list[str] = Field(default_factory=list)
    patterns: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)


class ThemeExplanation(BaseModel):
    """Why a theme recurs, and what to do with it."""

    explanation: str
    suggestions: list[str] = Field(default_factory=list)


class Outcome(StrEnum):
    OK = "ok"
    DEGRADED = "degraded"


T = TypeVar("T")


class Analysis(BaseModel, Generic[T]):
    """A value tagged with whether it came from the provider or a fallback.

    Callers use ``value`` either way; ``outcome`` tells them (and tests)
    whether degradation happened.
    """

    value: T
    outcome: Outcome = Outcome.OK
    error: str = ""

    @classmethod
    def ok(cls, value: T) -> Analysis[T]:
        return cls(value=value)

    @classmethod
    def degraded(cls, value: T, error: str = "") -> Analysis[T]:
        return cls(value=value, outcome=Outcome.DEGRADED, error=error)

    @property
    def is_degraded(self) -> bool:
        return self.outcome == Outcome.DEGRADED


class EntryLike(Protocol):
    """What the analysis tasks read from a journal entry."""

    content: str
    created_at: datetime
    mood: str | None
