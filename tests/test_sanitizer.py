"""Tests for the Response Sanitizer."""

import pytest

from reflectai.gateway.sanitizer import (
    BACKUP_MAX_RESPONSE_LENGTH,
    BACKUP_MIN_SENTENCE_END,
    MAX_RESPONSE_LENGTH,
    sanitize_response,
)

SENTENCES = "This is a sentence. " * 60
WORDS = "word " * 300


class TestMarkdown:
    def test_strips_bold_and_italics(self):
        assert sanitize_response("**Hello** *dear* world") == "Hello dear world"

    def test_strips_headings(self):
        assert sanitize_response("## Title\n### Sub\nBody") == "Title\nSub\nBody"

    def test_keeps_hash_without_space(self):
        assert sanitize_response("#hashtag stays") == "#hashtag stays"

    def test_trims_whitespace(self):
        assert sanitize_response("  \n hello \n ") == "hello"

    def test_empty(self):
        assert sanitize_response("") == ""


class TestTruncation:
    def test_short_text_untouched(self):
        text = "A calm, short reply."
        assert sanitize_response(text) == text

    def test_cuts_at_sentence_end(self):
        result = sanitize_response(SENTENCES)
        assert len(result) <= MAX_RESPONSE_LENGTH
        assert result.endswith(".")
        assert SENTENCES.startswith(result)

    def test_cuts_at_word_when_no_late_sentence_end(self):
        result = sanitize_response("Short. " + WORDS)
        assert len(result) <= MAX_RESPONSE_LENGTH
        assert result.endswith("word...")

    def test_no_spaces_hard_cut(self):
        result = sanitize_response("x" * 2000)
        assert result == "x" * 997 + "..."

    def test_backup_bounds(self):
        result = sanitize_response(
            SENTENCES,
            max_length=BACKUP_MAX_RESPONSE_LENGTH,
            min_sentence_end=BACKUP_MIN_SENTENCE_END,
        )
        assert len(result) <= BACKUP_MAX_RESPONSE_LENGTH
        assert result.endswith(".")


@pytest.mark.parametrize(
    "text",
    [
        "**Bold** and ## heading",
        "####### deep heading",
        "#* Starred heading",
        SENTENCES,
        "Short. " + WORDS,
        "x" * 2000,
        "## " + SENTENCES,
    ],
)
def test_idempotent(text):
    once = sanitize_response(text)
    assert sanitize_response(once) == once
