"""AI analysis client for sentiment, themes, prompts and weekly insights.

Every operation has the same shape: build an instruction with a strict
output schema, call the provider under a timeout, extract the JSON
payload, validate and clamp. Any failure along that path is raised as
``ProviderError``; callers decide how to fall back. This module never
touches storage.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as SchemaError

from mindful.analysis import prompts
from mindful.analysis.models import (
    EntryLike,
    GeneratedPrompt,
    Mood,
    PromptType,
    SentimentLabel,
    SentimentResult,
    ThemeExplanation,
    WeeklyInsightResult,
)
from mindful.errors import ProviderError
from mindful.llm import DEFAULT_TIMEOUT, TextProvider, call_provider, extract_json_payload

logger = logging.getLogger(__name__)

MAX_THEME_ENTRIES = 10
MIN_THEMES = 3
MAX_THEMES = 5
MAX_THEME_LENGTH = 40
MAX_PROMPT_LENGTH = 400

NO_ENTRIES_INSIGHT = WeeklyInsightResult(
    summary="No entries this week to analyze.",
    key_themes=[],
    patterns=[],
    recommendations=["Start journaling to track your progress!"],
)


# ---------------------------------------------------------------------------
# Raw response shapes (lenient; clamping happens afterwards)
# ---------------------------------------------------------------------------


class _RawSentiment(BaseModel):
    score: float
    confidence: float = 0.5
    label: str = ""
    mood: str = ""


class _RawThemes(BaseModel):
    themes: list[str]


class _RawPrompt(BaseModel):
    prompt: str
    context: str = ""
    type: str = ""


class _RawWeekly(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    summary: str
    key_themes: list[str] = Field(default_factory=list, alias="keyThemes")
    patterns: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)


class _RawExplanation(BaseModel):
    explanation: str
    suggestions: list[str] = Field(default_factory=list)


_M = TypeVar("_M", bound=BaseModel)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _label_from_score(score: float) -> SentimentLabel:
    if score > 0.1:
        return SentimentLabel.POSITIVE
    if score < -0.1:
        return SentimentLabel.NEGATIVE
    return SentimentLabel.NEUTRAL


def _clean_strings(values: Sequence[str], *, limit: int, max_length: int | None = None) -> list[str]:
    """Strip, drop blanks, de-duplicate case-insensitively, keep order."""
    seen: set[str] = set()
    cleaned: list[str] = []
    for value in values:
        text = value.strip().strip(".")
        if max_length is not None:
            text = text[:max_length].strip()
        if not text or text.lower() in seen:
            continue
        seen.add(text.lower())
        cleaned.append(text)
        if len(cleaned) == limit:
            break
    return cleaned


class AnalysisClient:
    """Wraps the text provider for the journal's analysis tasks."""

    def __init__(self, provider: TextProvider, *, timeout: float = DEFAULT_TIMEOUT) -> None:
        self._provider = provider
        self._timeout = timeout

    async def _ask(
        self,
        system_prompt: str,
        user_prompt: str,
        shape: type[_M],
        *,
        label: str,
    ) -> _M:
        raw = await call_provider(
            self._provider,
            system_prompt,
            user_prompt,
            schema=shape.model_json_schema(),
            timeout=self._timeout,
            label=label,
        )
        payload: Any = extract_json_payload(raw, label=label)
        try:
            return shape.model_validate(payload)
        except SchemaError as exc:
            raise ProviderError(f"Response does not match expected shape (label={label}): {exc}") from exc

    # -- Sentiment -----------------------------------------------------------

    async def analyze_sentiment(self, text: str) -> SentimentResult:
        """Score the sentiment and mood of one entry.

        Out-of-range numbers are clamped; an unknown label is derived from
        the score; an unknown mood becomes ``neutral``.

        Raises:
            ProviderError: If the call fails or the payload is non-conforming.
        """
        system_prompt, user_prompt = prompts.sentiment_prompt(text)
        raw = await self._ask(system_prompt, user_prompt, _RawSentiment, label="sentiment")

        if not (math.isfinite(raw.score) and math.isfinite(raw.confidence)):
            raise ProviderError("Sentiment response contained a non-finite number")

        score = _clamp(raw.score, -1.0, 1.0)
        confidence = _clamp(raw.confidence, 0.0, 1.0)

        try:
            label = SentimentLabel(raw.label.strip().lower())
        except ValueError:
            label = _label_from_score(score)

        try:
            mood = Mood(raw.mood.strip().lower())
        except ValueError:
            logger.debug("Unknown mood %r from provider, using neutral", raw.mood)
            mood = Mood.NEUTRAL

        return SentimentResult(score=score, confidence=confidence, label=label, mood=mood)

    # -- Themes --------------------------------------------------------------

    async def extract_themes(
        self,
        entries: Sequence[EntryLike],
        limit: int = MAX_THEME_ENTRIES,
    ) -> list[str]:
        """Identify 3-5 broad themes across the most recent ``limit`` entries.

        Returns an empty list, without calling the provider, when there are
        no entries.

        Raises:
            ProviderError: If the call fails or yields fewer than
                ``MIN_THEMES`` usable themes.
        """
        if not entries:
            return []

        recent = sorted(entries, key=lambda e: e.created_at, reverse=True)[:limit]
        system_prompt, user_prompt = prompts.themes_prompt(recent)
        raw = await self._ask(system_prompt, user_prompt, _RawThemes, label="themes")

        themes = _clean_strings(raw.themes, limit=MAX_THEMES, max_length=MAX_THEME_LENGTH)
        if not themes:
            raise ProviderError("Theme response contained no usable themes")
        if len(themes) < MIN_THEMES:
            raise ProviderError(
                f"Theme response contained {len(themes)} usable themes, expected at least {MIN_THEMES}"
            )
        return [t.lower() for t in themes]

    # -- Prompts -------------------------------------------------------------

    async def generate_prompt(
        self,
        recent_entries: Sequence[EntryLike],
        themes: Sequence[str],
        current_mood: str | None = None,
    ) -> GeneratedPrompt:
        """Generate a personalized writing prompt.

        Raises:
            ProviderError: If the call fails, the prompt is empty or too
                long, or the provider echoed the instruction back.
        """
        system_prompt, user_prompt = prompts.writing_prompt(recent_entries, themes, current_mood)
        raw = await self._ask(system_prompt, user_prompt, _RawPrompt, label="prompt")

        text = raw.prompt.strip()
        if not text:
            raise ProviderError("Prompt response was empty")
        if len(text) > MAX_PROMPT_LENGTH:
            raise ProviderError(f"Prompt response too long ({len(text)} chars)")
        lowered = text.lower()
        if lowered in system_prompt.lower() or lowered in user_prompt.lower():
            raise ProviderError("Prompt response echoed the instruction")

        try:
            prompt_type = PromptType(raw.type.strip().lower())
        except ValueError:
            prompt_type = PromptType.REFLECTION

        return GeneratedPrompt(
            prompt=text,
            context=raw.context.strip() or "General reflection",
            type=prompt_type,
        )

    # -- Weekly insight ------------------------------------------------------

    async def generate_weekly_insight(
        self,
        week_entries: Sequence[EntryLike],
        themes: Sequence[str] = (),
    ) -> WeeklyInsightResult:
        """Summarize a week of entries.

        Short-circuits to a fixed "no entries" result for an empty week.

        Raises:
            ProviderError: If the call fails or the summary is missing.
        """
        if not week_entries:
            return NO_ENTRIES_INSIGHT.model_copy(deep=True)

        ordered = sorted(week_entries, key=lambda e: e.created_at)
        system_prompt, user_prompt = prompts.weekly_prompt(ordered, themes)
        raw = await self._ask(system_prompt, user_prompt, _RawWeekly, label="weekly-insight")

        summary = raw.summary.strip()
        if not summary:
            raise ProviderError("Weekly insight response had an empty summary")

        return WeeklyInsightResult(
            summary=summary,
            key_themes=_clean_strings(raw.key_themes, limit=MAX_THEMES, max_length=MAX_THEME_LENGTH),
            patterns=_clean_strings(raw.patterns, limit=5),
            recommendations=_clean_strings(raw.recommendations, limit=5),
        )

    # -- Theme explanation ---------------------------------------------------

    async def explain_theme(self, theme: str, excerpts: Sequence[str]) -> ThemeExplanation:
        """Explain why a theme recurs across the given entry excerpts.

        Raises:
            ProviderError: If the call fails or the explanation is missing.
        """
        system_prompt, user_prompt = prompts.theme_explanation_prompt(theme, excerpts)
        raw = await self._ask(system_prompt, user_prompt, _RawExplanation, label=f"theme {theme}")

        explanation = raw.explanation.strip()
        if not explanation:
            raise ProviderError("Theme explanation was empty")
        return ThemeExplanation(
            explanation=explanation,
            suggestions=_clean_strings(raw.suggestions, limit=3),
        )
