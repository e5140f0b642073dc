"""Tests for the Contextual Fallback Generator."""

import pytest

from reflectai.gateway.fallback import (
    FALLBACK_CATEGORIES,
    GENERIC_FALLBACK,
    MOOD_HIGH_FALLBACK,
    MOOD_LOW_FALLBACK,
    MOOD_MID_FALLBACK,
    ContextualFallbackGenerator,
)

MESSAGES = {category.name: category.message for category in FALLBACK_CATEGORIES}


@pytest.fixture
def generator():
    return ContextualFallbackGenerator()


@pytest.mark.parametrize(
    "text,category",
    [
        ("I feel so overwhelmed by work", "overwhelm"),
        ("Exams are STRESSING me out", "overwhelm"),
        ("I feel anxious about tomorrow", "overwhelm"),
        ("I've been sad all week", "sadness"),
        ("Feeling depressed lately", "sadness"),
        ("I'm really down today", "sadness"),
        ("So grateful for my friends", "gratitude"),
        ("Today was a good day", "gratitude"),
        ("Thank you for listening", "gratitude"),
        ("I'm angry at my brother", "anger"),
        ("This is so frustrating", "anger"),
        ("I'm confused about my future", "confusion"),
        ("I don't know what to do", "confusion"),
    ],
)
def test_categories(generator, text, category):
    assert generator.classify(text) == category
    assert generator.generate(text) == MESSAGES[category]


def test_first_match_wins(generator):
    # overwhelm is checked before sadness
    assert generator.classify("stressed and sad") == "overwhelm"


def test_unmatched_text_gets_generic(generator):
    assert generator.classify("The weather was cloudy") is None
    assert generator.generate("The weather was cloudy") == GENERIC_FALLBACK


def test_empty_text_gets_generic(generator):
    assert generator.generate("") == GENERIC_FALLBACK


def test_five_categories_in_order():
    assert [c.name for c in FALLBACK_CATEGORIES] == ["overwhelm", "sadness", "gratitude", "anger", "confusion"]


@pytest.mark.parametrize(
    "level,expected",
    [
        (1, MOOD_LOW_FALLBACK),
        (3, MOOD_LOW_FALLBACK),
        (4, MOOD_MID_FALLBACK),
        (6, MOOD_MID_FALLBACK),
        (7, MOOD_HIGH_FALLBACK),
        (10, MOOD_HIGH_FALLBACK),
    ],
)
def test_for_mood(level, expected):
    assert ContextualFallbackGenerator.for_mood(level) == expected
