"""Entry analysis: provider-backed tasks and their deterministic fallbacks."""

from mindful.analysis.client import AnalysisClient
from mindful.analysis.fallbacks import CURATED_PROMPTS, CuratedPrompt, classify_mood, get_daily_prompt
from mindful.analysis.models import (
    Analysis,
    GeneratedPrompt,
    Mood,
    Outcome,
    PromptType,
    SentimentLabel,
    SentimentResult,
    ThemeExplanation,
    WeeklyInsightResult,
)

__all__ = [
    "CURATED_PROMPTS",
    "Analysis",
    "AnalysisClient",
    "CuratedPrompt",
    "GeneratedPrompt",
    "Mood",
    "Outcome",
    "PromptType",
    "SentimentLabel",
    "SentimentResult",
    "ThemeExplanation",
    "WeeklyInsightResult",
    "classify_mood",
    "get_daily_prompt",
]
