"""Tests for splitting model replies into guidance."""

from sage.acf import extract_guidance


def test_plain_reply_uses_defaults() -> None:
    guidance = extract_guidance("  Take it one step at a time.  ")
    assert guidance.stance == "Take it one step at a time."
    assert guidance.tone == "neutral"
    assert guidance.action == {"label": "Reflection", "cost": 0}


def test_trailing_json_block() -> None:
    text = (
        "Maybe a short walk would help.\n\n"
        '```json\n{"tone": "calm", "action": {"label": "Walk"}}\n```'
    )
    guidance = extract_guidance(text)
    assert guidance.stance == "Maybe a short walk would help."
    assert guidance.tone == "calm"
    assert guidance.action == {"label": "Walk", "cost": 0}


def test_unlabelled_fence() -> None:
    guidance = extract_guidance('Noted.\n```\n{"tone": "encouraging"}\n```\n')
    assert guidance.stance == "Noted."
    assert guidance.tone == "encouraging"


def test_malformed_json_keeps_stance() -> None:
    guidance = extract_guidance("Noted.\n```json\n{tone: calm}\n```")
    assert guidance.stance == "Noted."
    assert guidance.tone == "neutral"


def test_block_not_at_end_is_text() -> None:
    text = '```json\n{"tone": "calm"}\n```\nAnd then more text.'
    assert extract_guidance(text).stance == text


def test_empty_reply() -> None:
    assert extract_guidance("").stance == ""
