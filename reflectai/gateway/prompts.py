"""Prompt builders for each request kind.

The primary provider receives a single prompt string per request. The
secondary provider gets its own, shorter variants built from the request
subject (prior companion turns travel as chat messages instead).
"""

from __future__ import annotations

from collections.abc import Sequence

from reflectai.gateway.types import ChatTurn, RequestKind

ASSISTANT_NAME = "SoulSpeak AI"

_COMPANION_GUIDELINES = """STRICT GUIDELINES:
- Stay focused on mental health, emotions, and psychological wellbeing
- If asked about non-mental health topics, gently redirect: "I'm here to support your emotional wellbeing. How are you feeling about that?"
- Be empathetic, non-judgmental, and supportive
- Use warm, caring language but remain professional
- Encourage healthy coping strategies
- Never provide medical advice or diagnose
- Keep responses concise but meaningful (2-4 sentences)
- Ask thoughtful follow-up questions to deepen emotional exploration"""


def build_empathic_prompt(journal_text: str) -> str:
    return (
        "You are a caring, empathetic friend responding to someone's personal journal entry. "
        "Be supportive and understanding.\n\n"
        f'Journal entry: "{journal_text}"\n\n'
        "Respond with empathy and care in 2-3 sentences. Be genuine and offer gentle "
        "encouragement. No medical advice."
    )


def build_companion_prompt(message: str, history: Sequence[ChatTurn] = ()) -> str:
    """Companion prompt with prior turns interpolated, most recent last."""
    context = ""
    if history:
        lines = ["", "", "CONVERSATION HISTORY:"]
        for turn in history:
            speaker = "User" if turn.is_user else "You (AI)"
            lines.append(f'{speaker}: "{turn.content}"')
        lines.append("")
        lines.append("Please consider this conversation history to provide contextual, continuous support.")
        context = "\n".join(lines) + "\n"

    return (
        f"You are a compassionate mental health companion AI (Namely {ASSISTANT_NAME}). "
        "You provide emotional support, active listening, and gentle guidance focused ONLY on "
        "mental health and emotional wellbeing.\n\n"
        f"{_COMPANION_GUIDELINES}\n"
        "- Reference previous conversation when relevant to show continuity and understanding"
        f"{context}\n\n"
        f'CURRENT MESSAGE: "{message}"\n\n'
        "Respond as a caring mental health companion:"
    )


def mood_average(mood_level: int, recent_levels: Sequence[int]) -> str:
    if not recent_levels:
        return str(mood_level)
    return f"{sum(recent_levels) / len(recent_levels):.1f}"


def build_mood_insight_prompt(
    mood_level: int,
    recent_levels: Sequence[int],
    notes: str | None = None,
    time_range_days: int | None = None,
) -> str:
    time_range = f"over the last {time_range_days} days" if time_range_days else "recently"
    history = ", ".join(str(level) for level in recent_levels)
    notes_line = f'- Notes: "{notes}"' if notes else ""

    return (
        "You are providing gentle, encouraging insights about someone's emotional wellbeing "
        "based on their mood tracking data.\n\n"
        "MOOD DATA:\n"
        f"- Current/Average mood: {mood_level}/10\n"
        f"- Time period: {time_range}\n"
        f"- Recent average: {mood_average(mood_level, recent_levels)}/10\n"
        f"- Mood history: [{history}]\n"
        f"{notes_line}\n\n"
        "GUIDELINES:\n"
        "- Be encouraging and supportive\n"
        "- Acknowledge patterns with kindness\n"
        "- Offer gentle perspective and hope\n"
        "- Keep response under 100 words\n"
        "- Focus on emotional wellness and self-compassion\n"
        "- Reference the time period appropriately\n"
        "- Never provide medical advice\n\n"
        "INSIGHT:"
    )


def describe_mood(mood_level: int, recent_levels: Sequence[int], notes: str | None = None) -> str:
    """Compact mood summary used as the request subject."""
    summary = f"Level: {mood_level}/10, Recent: [{', '.join(str(level) for level in recent_levels)}]"
    if notes:
        summary += f', Notes: "{notes}"'
    return summary


def build_backup_prompt(content: str, kind: RequestKind) -> str:
    """Prompt for the secondary provider."""
    if kind == RequestKind.EMPATHIC:
        return (
            f"You are a caring, empathetic friend (Namely {ASSISTANT_NAME}) responding to "
            "someone's personal journal entry. Be supportive and understanding.\n\n"
            f'Journal entry: "{content}"\n\n'
            "Respond with empathy and care in 2-3 sentences. Be genuine and offer gentle "
            "encouragement. No medical advice."
        )

    if kind == RequestKind.COMPANION:
        return (
            "You are a compassionate mental health companion AI. You provide emotional support, "
            "active listening, and gentle guidance focused ONLY on mental health and emotional "
            "wellbeing.\n\n"
            f"{_COMPANION_GUIDELINES}\n\n"
            f'CURRENT MESSAGE: "{content}"\n\n'
            "Respond as a caring mental health companion:"
        )

    return (
        "You are providing gentle, encouraging insights about someone's emotional wellbeing "
        "based on their mood information.\n\n"
        f"MOOD INFORMATION: {content}\n\n"
        "GUIDELINES:\n"
        "- Be encouraging and supportive\n"
        "- Acknowledge patterns with kindness\n"
        "- Offer gentle perspective and hope\n"
        "- Keep response under 100 words\n"
        "- Focus on emotional wellness and self-compassion\n"
        "- Never provide medical advice\n\n"
        "INSIGHT:"
    )
