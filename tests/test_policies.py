"""Tests for the policy rule table and matcher."""

import pytest

from sage.sentinel.policies import (
    RULES,
    PolicyId,
    PolicyRule,
    Severity,
    _build_rules,
    match_rule,
    violation_reason,
)


def test_rule_ids_unique() -> None:
    ids = [r.id for r in RULES]
    assert len(ids) == len(set(ids))


def test_rule_order_is_fixed() -> None:
    assert [r.id for r in RULES] == [
        PolicyId.FINANCIAL_ADVICE,
        PolicyId.MEDICAL_ADVICE,
        PolicyId.SELF_HARM,
        PolicyId.COERCIVE_PERSUASION,
        PolicyId.HIGH_FRICTION,
    ]


def test_duplicate_ids_rejected() -> None:
    rule = PolicyRule(PolicyId.SELF_HARM, frozenset({"x"}), Severity.CRISIS)
    with pytest.raises(ValueError, match="Duplicate"):
        _build_rules(rule, rule)


def test_match_is_case_insensitive() -> None:
    rule = match_rule("Please give me FINANCIAL ADVICE")
    assert rule is not None
    assert rule.id is PolicyId.FINANCIAL_ADVICE


def test_first_match_wins_over_severity() -> None:
    """Financial advice (HIGH) precedes self-harm (CRISIS) in the table."""
    rule = match_rule("I want financial advice or I want to die")
    assert rule is not None
    assert rule.id is PolicyId.FINANCIAL_ADVICE
    assert rule.severity is Severity.HIGH


def test_no_match() -> None:
    assert match_rule("Tell me about your day") is None


def test_self_harm_is_crisis() -> None:
    rule = match_rule("I want to die")
    assert rule is not None
    assert rule.severity is Severity.CRISIS


@pytest.mark.parametrize("policy_id", list(PolicyId))
def test_violation_reason_covers_every_policy(policy_id: PolicyId) -> None:
    assert violation_reason(policy_id) == f"Policy Violation: {policy_id.name}"
