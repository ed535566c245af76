"""Dignity checkpoints: heuristic PII detectors and tone/constraint rules."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from sage.acf.models import CheckpointResult, DignityFinding, DignitySeverity

if TYPE_CHECKING:
    from sage.acf.models import Guidance, UserSignals

# Order matters only for reporting.
PII_PATTERNS: dict[str, re.Pattern[str]] = {
    "ssn": re.compile(r"\b\d{3}-\d{2}-\d{4}\b"),
    "phone": re.compile(r"\b\d{10}\b|\b\d{3}[-.\s]\d{3}[-.\s]\d{4}\b"),
    "zip": re.compile(r"\b\d{5}(?:-\d{4})?\b"),
    "email": re.compile(r"[\w.+-]+@[\w-]+\.[\w.-]+"),
    "name": re.compile(r"\b[A-Z][a-z]+ [A-Z][a-z]+\b"),
}

FINANCIAL_CONSTRAINT_THRESHOLD = 0.6


def detect_pii(text: str | None) -> list[str]:
    """Return the names of PII patterns found in *text*."""
    if not text:
        return []
    return [kind for kind, pattern in PII_PATTERNS.items() if pattern.search(text)]


def contains_pii(*texts: str | None) -> bool:
    return any(detect_pii(t) for t in texts)


# -- Rules --------------------------------------------------------------------


def _respect_constraints(guidance: Guidance, signals: UserSignals) -> DignityFinding | None:
    financial = signals.constraints.get("financial", 0) or 0
    cost = guidance.action.get("cost", 0) or 0
    if financial >= FINANCIAL_CONSTRAINT_THRESHOLD and cost > 0:
        return DignityFinding(
            "respect_constraints",
            DignitySeverity.WARN,
            "Suggestion ignores user's financial constraint.",
        )
    return None


def _avoid_pressure(guidance: Guidance, signals: UserSignals) -> DignityFinding | None:
    if signals.emotion.lower() == "anxious" and guidance.tone.lower() == "urgent":
        return DignityFinding(
            "avoid_pressure",
            DignitySeverity.WARN,
            "Urgent tone when user is anxious may increase distress.",
        )
    return None


def _pii_findings(guidance: Guidance, user_text: str) -> list[DignityFinding]:
    findings: list[DignityFinding] = []
    in_output = detect_pii(guidance.stance)
    if "ssn" in in_output:
        findings.append(
            DignityFinding(
                "pii_in_output",
                DignitySeverity.FAIL,
                "Reply contains an identifier that looks like a social security number.",
            )
        )
    # An SSN in the user's own text is reported but does not block the reply.
    other = sorted((set(in_output) - {"ssn"}) | set(detect_pii(user_text)))
    if other:
        findings.append(
            DignityFinding(
                "pii_present",
                DignitySeverity.WARN,
                f"Possible personal details detected: {', '.join(other)}.",
            )
        )
    return findings


def run_checkpoints(guidance: Guidance, signals: UserSignals, user_text: str = "") -> CheckpointResult:
    """Run every dignity rule against the model's guidance and the user's text.

    Confidence drops by 0.15 per finding with a floor of 0.2.
    """
    findings = [
        f
        for f in (_respect_constraints(guidance, signals), _avoid_pressure(guidance, signals))
        if f is not None
    ]
    findings.extend(_pii_findings(guidance, user_text))
    confidence = max(0.2, 1 - 0.15 * len(findings))
    return CheckpointResult(findings=findings, confidence=round(confidence, 2))
