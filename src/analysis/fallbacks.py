"""Deterministic, local fallbacks used when the provider path fails.

Nothing here touches the network or storage, and nothing here raises.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date

from mindful.analysis.models import Mood

POSITIVE_WORDS = (
    "happy", "excited", "good", "great", "amazing", "wonderful", "love", "joy",
    "grateful", "blessed", "awesome", "fantastic", "pleased", "delighted", "optimistic",
)
NEGATIVE_WORDS = (
    "sad", "angry", "frustrated", "upset", "disappointed", "worried", "anxious",
    "stressed", "terrible", "awful", "hate", "depressed", "annoyed", "irritated",
    "overwhelmed", "nervous",
)
# Subset of NEGATIVE_WORDS
ANXIETY_WORDS = ("worried", "anxious", "stressed", "overwhelmed", "nervous")
NEUTRAL_WORDS = ("okay", "fine", "normal", "regular", "usual", "average")


def _hits(text: str, lexicon: tuple[str, ...]) -> set[str]:
    return {word for word in lexicon if re.search(rf"\b{word}", text)}


def classify_mood(text: str) -> Mood:
    """Classify an entry's mood from keyword lexicons.

    Counts the distinct lexicon words present (a word matches at the start
    of any token, so "loved" counts as "love") and applies ordered rules.
    """
    text = text.lower()
    positive = _hits(text, POSITIVE_WORDS)
    negative = _hits(text, NEGATIVE_WORDS)
    neutral = _hits(text, NEUTRAL_WORDS)

    pos, neg, neu = len(positive), len(negative), len(neutral)

    if pos > neg and pos > neu:
        return Mood.POSITIVE
    if neg and not pos and negative <= set(ANXIETY_WORDS):
        return Mood.ANXIOUS
    if neg > pos and neg > neu:
        return Mood.NEGATIVE
    if neg and not pos:
        return Mood.ANXIOUS
    if pos and not neg:
        return Mood.CONTENT
    return Mood.NEUTRAL


@dataclass(frozen=True)
class CuratedPrompt:
    id: str
    prompt_text: str
    context: str


CURATED_PROMPTS: tuple[CuratedPrompt, ...] = (
    CuratedPrompt(
        "prompt-1",
        "What moment from today am I most grateful for, and why did it stand out to me?",
        "Gratitude and reflection",
    ),
    CuratedPrompt(
        "prompt-2",
        "What challenge did I face today, and what did I learn about myself in dealing with it?",
        "Growth and resilience",
    ),
    CuratedPrompt(
        "prompt-3",
        "Describe a conversation I had today that made me think differently about something.",
        "Perspective and connection",
    ),
    CuratedPrompt(
        "prompt-4",
        "What emotions am I carrying from today, and what might be causing them?",
        "Emotional awareness",
    ),
    CuratedPrompt(
        "prompt-5",
        "If I could give advice to someone having a day like mine, what would I tell them?",
        "Self-compassion and wisdom",
    ),
    CuratedPrompt(
        "prompt-6",
        "What small moment today brought me joy or peace, even if it was brief?",
        "Mindfulness and appreciation",
    ),
    CuratedPrompt(
        "prompt-7",
        "What am I looking forward to tomorrow, and how does that make me feel right now?",
        "Hope and anticipation",
    ),
    CuratedPrompt(
        "prompt-8",
        "Describe a pattern I've noticed in my thoughts or behaviors lately. Is it serving me?",
        "Self-awareness and growth",
    ),
    CuratedPrompt(
        "prompt-9",
        "What would I want to remember about this day five years from now?",
        "Perspective and significance",
    ),
    CuratedPrompt(
        "prompt-10",
        "How did I show kindness to myself or others today? How did it feel?",
        "Compassion and connection",
    ),
)


def get_daily_prompt(today: date | None = None) -> CuratedPrompt:
    """Pick the curated prompt for a calendar day.

    ``CURATED_PROMPTS[day_of_year % len(CURATED_PROMPTS)]``: stateless,
    identical for every caller on the same day, and cycles through the
    whole list before repeating. The index follows the day of the year, so
    the cycle restarts on January 1.
    """
    today = today or date.today()
    day_of_year = today.timetuple().tm_yday
    return CURATED_PROMPTS[day_of_year % len(CURATED_PROMPTS)]


# ---------------------------------------------------------------------------
# Theme analytics fallback
# ---------------------------------------------------------------------------

DEFAULT_THEMES = ("personal reflection", "daily experiences", "emotional well-being")

FALLBACK_SUGGESTIONS = (
    "Dedicate a full entry to exploring this theme deeper",
    "Notice what triggers thoughts about this topic",
    "Reflect on how your perspective has evolved",
)


def fallback_theme_explanation(theme: str, count: int) -> tuple[str, list[str]]:
    """Canned explanation for a theme the provider could not explain."""
    plural = "entry" if count == 1 else "entries"
    explanation = (
        f"'{theme}' shows up in {count} recent {plural}, "
        "suggesting it's important in your current life."
    )
    return explanation, list(FALLBACK_SUGGESTIONS)


# Keyword breakdown leads with the default themes
KEYWORD_THEMES = (
    *DEFAULT_THEMES,
    "work",
    "relationships",
    "personal growth",
)


def keyword_theme_counts(contents: Sequence[str], limit: int = 3) -> list[tuple[str, int]]:
    """Count how many texts mention each default theme (minimum 1 per theme)."""
    lowered = [text.lower() for text in contents]
    counts: list[tuple[str, int]] = []
    for theme in KEYWORD_THEMES[:limit]:
        count = sum(1 for text in lowered if theme in text)
        counts.append((theme, max(1, count)))
    return counts


def keyword_theme_explanation(theme: str) -> tuple[str, list[str]]:
    """Canned explanation used when theme extraction itself failed."""
    return (
        "This theme appears in your recent writing, indicating it's on your mind.",
        [
            f"Explore your feelings about {theme} more deeply",
            "Consider what changes you'd like to make",
            "Notice patterns in your thoughts",
        ],
    )
