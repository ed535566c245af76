"""Tests for export redaction."""

from sage.memory.redaction import EMAIL_MARKER, redact

RULES = ["email", "phone", "ssn", "password"]


def test_replaces_matching_keys() -> None:
    record = {"name": "Sam", "Email": "sam@example.com", "home_phone": "5551234567"}
    out = redact(record, RULES)
    assert out == {"name": "Sam", "Email": "[REDACTED]", "home_phone": "[REDACTED]"}


def test_recurses_into_nested_structures() -> None:
    record = {
        "profile": {"user_password": "hunter2", "tags": [{"ssn_last4": "1234"}, "ok"]},
        "items": ({"phone": "1"},),
    }
    out = redact(record, RULES)
    assert out["profile"]["user_password"] == "[REDACTED]"
    assert out["profile"]["tags"] == [{"ssn_last4": "[REDACTED]"}, "ok"]
    assert out["items"] == [{"phone": "[REDACTED]"}]


def test_scrubs_emails_inside_strings() -> None:
    out = redact({"content": "Reach me at a.b+c@mail.example.org soon"}, RULES)
    assert out["content"] == f"Reach me at {EMAIL_MARKER} soon"


def test_does_not_mutate_input() -> None:
    record = {"email": "x@y.com", "nested": {"phone": "1"}}
    redact(record, RULES)
    assert record == {"email": "x@y.com", "nested": {"phone": "1"}}


def test_idempotent() -> None:
    record = {
        "email": "x@y.com",
        "notes": ["contact z@w.io", {"password": ["a", "b"]}],
        "count": 3,
    }
    once = redact(record, RULES)
    assert redact(once, RULES) == once


def test_custom_marker() -> None:
    assert redact({"ssn": "123-45-6789"}, RULES, marker="***") == {"ssn": "***"}


def test_no_rules_only_scrubs_emails() -> None:
    assert redact({"email": "plain"}, []) == {"email": "plain"}
