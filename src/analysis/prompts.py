"""Instruction builders for the four analysis tasks (plus theme explanations).

Each builder returns ``(system_prompt, user_prompt)``. The system prompt
carries the strict output shape; the user prompt carries the journal text.
"""

from __future__ import annotations

from collections.abc import Sequence

from mindful.analysis.models import EntryLike, Mood, PromptType

_MOODS = ", ".join(f'"{m.value}"' for m in Mood if m not in (Mood.POSITIVE, Mood.NEGATIVE))
_PROMPT_TYPES = ", ".join(f'"{t.value}"' for t in PromptType)

SENTIMENT_SYSTEM_PROMPT = f"""\
You are a sentiment analysis expert specializing in journal entries. \
Analyze the emotional tone and mood of the entry you are given.

Return ONLY valid JSON with this exact structure (no markdown fences, no commentary):
{{
  "score": number between -1 and 1,
  "confidence": number between 0 and 1,
  "label": one of "positive", "negative", "neutral",
  "mood": one of {_MOODS}
}}"""

THEMES_SYSTEM_PROMPT = """\
Analyze these journal entries and identify the main themes, topics, and \
patterns. Focus on broad life areas and general categories.

Make themes broad and general (e.g. "work", "relationships", "personal growth", \
"health", "family", "hobbies", "emotions", "goals") rather than specific \
descriptions or quotes from the text.

Return ONLY valid JSON with this exact structure (no markdown fences, no commentary):
{
  "themes": ["3-5 short theme strings"]
}"""

PROMPT_SYSTEM_PROMPT = f"""\
You are a thoughtful journaling companion. Based on the user's recent \
journal entries and patterns, write ONE writing prompt that encourages \
deeper reflection.

The prompt must:
- Build on their recent thoughts without repeating them
- Encourage emotional growth
- Be open-ended, 1-2 sentences, and conversational, like a question from a close friend
- Avoid generic questions like "How was your day?"

Return ONLY valid JSON with this exact structure (no markdown fences, no commentary):
{{
  "prompt": "the writing prompt",
  "context": "one line on why this prompt fits their current state",
  "type": one of {_PROMPT_TYPES}
}}"""

WEEKLY_SYSTEM_PROMPT = """\
Analyze this week's journal entries and provide insights about patterns, \
growth, and recommendations. Speak to the writer directly ("you").

Return ONLY valid JSON with this exact structure (no markdown fences, no commentary):
{
  "summary": "2-3 sentences about their week and emotional journey",
  "keyThemes": ["main themes that emerged"],
  "patterns": ["recurring patterns in thoughts, moods, or behavior"],
  "recommendations": ["2-3 personalized recommendations for growth"]
}"""

THEME_EXPLANATION_SYSTEM_PROMPT = """\
You help a journal writer understand a recurring theme in their writing.

Return ONLY valid JSON with this exact structure (no markdown fences, no commentary):
{
  "explanation": "why this theme appears, 2-3 sentences about the pattern",
  "suggestions": ["3 actionable suggestions"]
}"""


def sentiment_prompt(text: str) -> tuple[str, str]:
    return SENTIMENT_SYSTEM_PROMPT, f"Journal entry:\n\n{text}"


def themes_prompt(entries: Sequence[EntryLike]) -> tuple[str, str]:
    all_content = ". ".join(e.content.strip() for e in entries)
    return THEMES_SYSTEM_PROMPT, f"Journal entries:\n\n{all_content}"


def writing_prompt(
    recent_entries: Sequence[EntryLike],
    themes: Sequence[str],
    current_mood: str | None,
) -> tuple[str, str]:
    """Build the prompt-generation instruction.

    Entry excerpts are truncated to 300 characters each.
    """
    if recent_entries:
        recent = "\n".join(f"- {e.content.strip()[:300]}" for e in recent_entries)
    else:
        recent = "(no entries yet: this is a new writer)"
    user_prompt = (
        f"Recent entries:\n{recent}\n\n"
        f"Current themes: {', '.join(themes) if themes else '(none yet)'}\n"
        f"Current mood: {current_mood or 'unknown'}"
    )
    return PROMPT_SYSTEM_PROMPT, user_prompt


def weekly_prompt(
    week_entries: Sequence[EntryLike],
    themes: Sequence[str],
) -> tuple[str, str]:
    lines: list[str] = []
    for entry in week_entries:
        day = entry.created_at.strftime("%A %b %d")
        lines.append(f"{day}: {entry.content.strip()} (mood: {entry.mood or 'unknown'})")
    user_prompt = "This week's entries:\n" + "\n".join(lines)
    if themes:
        user_prompt += f"\n\nThemes detected so far: {', '.join(themes)}"
    return WEEKLY_SYSTEM_PROMPT, user_prompt


def theme_explanation_prompt(theme: str, excerpts: Sequence[str]) -> tuple[str, str]:
    context = "\n".join(f"- {text[:150]}" for text in excerpts)
    return (
        THEME_EXPLANATION_SYSTEM_PROMPT,
        f'Recurring theme: "{theme}"\n\nContext from journal entries:\n{context}',
    )
