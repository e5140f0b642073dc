"""Response Sanitizer — strips markdown artifacts and bounds response length.

Applied to every provider response before it leaves the gateway:
  - removes bold/italic asterisks and markdown heading markers
  - trims surrounding whitespace
  - truncates overlong text at the last sentence end, or at a word
    boundary with an ellipsis when no sentence end is close enough
"""

from __future__ import annotations

import re

_ASTERISKS = re.compile(r"\*+")
_HEADING_MARKERS = re.compile(r"#{1,6}\s")
_SENTENCE_ENDS = ".!?"

MAX_RESPONSE_LENGTH = 1000
MIN_SENTENCE_END = 500

# Bounds used by the secondary provider client
BACKUP_MAX_RESPONSE_LENGTH = 800
BACKUP_MIN_SENTENCE_END = 400


def sanitize_response(
    text: str,
    max_length: int = MAX_RESPONSE_LENGTH,
    min_sentence_end: int = MIN_SENTENCE_END,
) -> str:
    """Clean a generated response.

    This is idempotent — sanitizing already-sanitized text returns it unchanged.
    """
    if not text:
        return ""

    cleaned = _strip_markdown(text).strip()
    if len(cleaned) <= max_length:
        return cleaned

    return _truncate(cleaned, max_length, min_sentence_end)


def _strip_markdown(text: str) -> str:
    # Asterisks go first so "#* Title" collapses to a heading marker that is then removed
    text = _ASTERISKS.sub("", text)
    # Removing a marker can expose another one ("####### x" -> "# x")
    while True:
        stripped = _HEADING_MARKERS.sub("", text)
        if stripped == text:
            return stripped
        text = stripped


def _truncate(text: str, max_length: int, min_sentence_end: int) -> str:
    """Cut ``text`` to at most ``max_length`` characters."""
    # Leave room for the ellipsis
    window = text[: max_length - 3]
    last_sentence_end = max(window.rfind(ch) for ch in _SENTENCE_ENDS)

    if last_sentence_end > min_sentence_end:
        return window[: last_sentence_end + 1]

    last_space = window.rfind(" ")
    if last_space <= 0:
        return window + "..."
    return window[:last_space].rstrip() + "..."
