"""Tests for tone and topic signal extraction."""

import pytest

from sage.signals import STRAIN_TONES, analyze_tone, extract_topic_tag


def test_unmatched_text_is_clear() -> None:
    reading = analyze_tone("The weather report mentions rain.")
    assert reading.tone == "Clear"
    assert reading.energy == 50


@pytest.mark.parametrize(
    ("text", "tone", "energy"),
    [
        ("I feel stuck at work", "Anxious", 30),
        ("Today was great", "Motivated", 80),
        ("I am so tired", "Drained", 10),
        ("Everything feels easy", "Flowing", 70),
    ],
)
def test_keyword_groups(text: str, tone: str, energy: int) -> None:
    reading = analyze_tone(text)
    assert (reading.tone, reading.energy) == (tone, energy)


def test_later_group_wins() -> None:
    """Anxious and Drained both match; Drained comes later in the table."""
    reading = analyze_tone("I'm stuck and tired")
    assert reading.tone == "Drained"


@pytest.mark.parametrize(
    "text",
    [
        "I want to die",
        "Today was great but I cannot cope",
        "Happy, hopeful, easy flow... and overwhelmed",
        "EMERGENCY",
    ],
)
def test_crisis_keywords_always_win(text: str) -> None:
    reading = analyze_tone(text)
    assert reading.tone == "Crisis"
    assert reading.energy == 0
    assert reading.is_crisis


@pytest.mark.parametrize("value", [None, 42, "", ["list"]])
def test_never_raises(value: object) -> None:
    assert analyze_tone(value).tone == "Clear"


def test_strain_tones() -> None:
    assert {"Drained", "Anxious"} <= STRAIN_TONES
    assert "Motivated" not in STRAIN_TONES


class TestTopicTag:
    def test_career(self):
        assert extract_topic_tag("Thinking about a career move") == "Career_Change"

    def test_first_topic_wins(self):
        assert extract_topic_tag("health and relationship") == "Relationship_Change"

    def test_default(self):
        assert extract_topic_tag("hello there") == "General_Reflection"

    def test_none(self):
        assert extract_topic_tag(None) == "General_Reflection"
