"""Hard-coded governance policies and the deterministic rule matcher."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class PolicyId(StrEnum):
    FINANCIAL_ADVICE = "P001"
    MEDICAL_ADVICE = "P002"
    SELF_HARM = "P003"
    COERCIVE_PERSUASION = "P004"
    HIGH_FRICTION = "P005"


class Severity(StrEnum):
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRISIS = "CRISIS"


@dataclass(frozen=True)
class PolicyRule:
    """A fixed rule: any trigger substring (case-insensitive) matches."""

    id: PolicyId
    triggers: frozenset[str]
    severity: Severity

    @property
    def name(self) -> str:
        return self.id.name

    def matches(self, lowered_text: str) -> bool:
        return any(trigger in lowered_text for trigger in self.triggers)


@dataclass(frozen=True)
class PolicyFlag:
    """Returned by the Sentinel when a rule fires."""

    policy_id: PolicyId
    reason: str
    severity: Severity

    @property
    def is_crisis(self) -> bool:
        return self.severity is Severity.CRISIS


def _build_rules(*rules: PolicyRule) -> tuple[PolicyRule, ...]:
    seen: set[PolicyId] = set()
    for rule in rules:
        if rule.id in seen:
            msg = f"Duplicate policy id {rule.id}"
            raise ValueError(msg)
        seen.add(rule.id)
    return rules


# Evaluation order is significant: first match wins.
RULES: tuple[PolicyRule, ...] = _build_rules(
    PolicyRule(
        PolicyId.FINANCIAL_ADVICE,
        frozenset({"invest in x", "sell my stock", "financial advice"}),
        Severity.HIGH,
    ),
    PolicyRule(
        PolicyId.MEDICAL_ADVICE,
        frozenset({"what pill to take", "diagnose this pain", "medical advice"}),
        Severity.HIGH,
    ),
    PolicyRule(
        PolicyId.SELF_HARM,
        frozenset({"i want to die", "end it all", "self-harm"}),
        Severity.CRISIS,
    ),
    PolicyRule(
        PolicyId.COERCIVE_PERSUASION,
        frozenset({"make me buy x", "force me to do y"}),
        Severity.HIGH,
    ),
    PolicyRule(
        PolicyId.HIGH_FRICTION,
        frozenset({"cognitive overload", "high strain pattern"}),
        Severity.MEDIUM,
    ),
)

CRISIS_POLICY = PolicyId.SELF_HARM


def match_rule(text: str, rules: tuple[PolicyRule, ...] = RULES) -> PolicyRule | None:
    """Return the first rule whose triggers occur in *text*, or None."""
    lowered = str(text).lower()
    for rule in rules:
        if rule.matches(lowered):
            return rule
    return None


def violation_reason(policy_id: PolicyId) -> str:
    """Human-readable reason for a policy violation."""
    match policy_id:
        case PolicyId.FINANCIAL_ADVICE:
            return "Policy Violation: FINANCIAL_ADVICE"
        case PolicyId.MEDICAL_ADVICE:
            return "Policy Violation: MEDICAL_ADVICE"
        case PolicyId.SELF_HARM:
            return "Policy Violation: SELF_HARM"
        case PolicyId.COERCIVE_PERSUASION:
            return "Policy Violation: COERCIVE_PERSUASION"
        case PolicyId.HIGH_FRICTION:
            return "Policy Violation: HIGH_FRICTION"
