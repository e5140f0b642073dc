"""Contextual Fallback Generator — canned responses when no provider can answer.

Deterministic: the subject text is lower-cased and matched against keyword
cues in a fixed order; the first matching category wins. Mood insights use
the mood level instead of keywords.

Never raises.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FallbackCategory:
    """A sentiment cue and the message answering it."""

    name: str
    keywords: tuple[str, ...]  # Substrings matched against the lower-cased text
    message: str


# Order matters: the first category with a matching keyword wins
FALLBACK_CATEGORIES: tuple[FallbackCategory, ...] = (
    FallbackCategory(
        name="overwhelm",
        keywords=("overwhelm", "stress", "anxio"),
        message=(
            "I can feel the weight you're carrying in these words. When everything feels "
            "overwhelming, it's okay to take things one breath at a time. Your feelings are "
            "completely valid, and you're showing such strength by reaching out. Remember, you "
            "don't have to carry everything alone. 🌙"
        ),
    ),
    FallbackCategory(
        name="sadness",
        keywords=("sad", "depress", "down"),
        message=(
            "I hear the sadness in your words, and I want you to know that it's okay to feel "
            "this way. These difficult emotions are part of your human experience, and they "
            "don't define your worth. You have the courage to share your pain, which shows "
            "incredible strength. Healing takes time, and you're not alone in this journey. 💙"
        ),
    ),
    FallbackCategory(
        name="gratitude",
        keywords=("grateful", "happy", "good", "thank"),
        message=(
            "There's something beautiful about the gratitude and positivity I sense in your "
            "words. These moments of joy and appreciation are precious gifts that you're "
            "choosing to notice and share. Your ability to find light, even in small things, "
            "is a testament to your resilience and wisdom. ✨"
        ),
    ),
    FallbackCategory(
        name="anger",
        keywords=("angry", "frustrat", "mad"),
        message=(
            "I can feel the intensity of your emotions, and anger is such a valid response to "
            "the challenges you're facing. These strong feelings often carry important "
            "messages about what matters to you. It's okay to feel this way, and expressing it "
            "here shows wisdom in finding healthy outlets. 🔥"
        ),
    ),
    FallbackCategory(
        name="confusion",
        keywords=("confused", "uncertain", "don't know"),
        message=(
            "Uncertainty can feel so unsettling, and I hear that confusion in your words. Not "
            "knowing what comes next is one of the most human experiences we all share. Your "
            "willingness to sit with uncertainty and explore your feelings shows incredible "
            "emotional maturity. Trust that clarity will come in its own time. 🌱"
        ),
    ),
)

GENERIC_FALLBACK = (
    "Thank you for sharing something so personal with me. I can feel the sincerity in your "
    "words, and your willingness to be vulnerable here shows remarkable courage. Whatever "
    "you're experiencing right now is valid and important. You're taking meaningful steps in "
    "your healing journey simply by expressing yourself. 💜"
)

MOOD_LOW_FALLBACK = (
    "I see you're going through a difficult time. These challenging moments are part of the "
    "human experience. Your feelings are valid. Small steps toward self-care can make a "
    "difference. 💙"
)
MOOD_MID_FALLBACK = (
    "You're navigating through some mixed emotions, and that's perfectly okay. Every day has "
    "its ups and downs. Being mindful of your wellbeing shows strength. 🌟"
)
MOOD_HIGH_FALLBACK = (
    "It's beautiful to see you experiencing some positive moments. These brighter feelings "
    "are just as important to acknowledge. Celebrate these moments of light. ✨"
)


class ContextualFallbackGenerator:
    """Keyword-matched canned responses."""

    def __init__(self, categories: tuple[FallbackCategory, ...] = FALLBACK_CATEGORIES):
        self.categories = categories

    def classify(self, text: str) -> str | None:
        """Name of the first matching category, or None for unmatched text."""
        lowered = (text or "").lower()
        for category in self.categories:
            if any(keyword in lowered for keyword in category.keywords):
                return category.name
        return None

    def generate(self, text: str) -> str:
        """Canned empathic message matching the sentiment cues in ``text``."""
        name = self.classify(text)
        for category in self.categories:
            if category.name == name:
                logger.debug("Contextual fallback matched category %s", name)
                return category.message
        return GENERIC_FALLBACK

    @staticmethod
    def for_mood(mood_level: int) -> str:
        """Canned mood insight for a 1-10 mood level."""
        if mood_level <= 3:
            return MOOD_LOW_FALLBACK
        if mood_level <= 6:
            return MOOD_MID_FALLBACK
        return MOOD_HIGH_FALLBACK
