"""Sentinel: policy enforcement and crisis escalation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sage.memory.models import MemoryInsight
from sage.sentinel.policies import (
    CRISIS_POLICY,
    RULES,
    PolicyFlag,
    PolicyId,
    PolicyRule,
    Severity,
    match_rule,
    violation_reason,
)
from sage.signals.tone import CRISIS_TONE, STRAIN_TONES

if TYPE_CHECKING:
    from sage.memory.store import MemoryStore

logger = logging.getLogger(__name__)

CRISIS_SIGNAL_REASON = "Critical Distress/Crisis Signal (EIC)"
OVERLOAD_REASON = "Cognitive Overload/High Strain Pattern"


@dataclass(frozen=True)
class CrisisEscalation:
    success: bool
    policy_enforced: PolicyId


def assess_signals(tone: str, friction_count: int) -> str | None:
    """Passive rules over ambient signals alone. Returns a crisis reason or None."""
    if tone == CRISIS_TONE:
        return CRISIS_SIGNAL_REASON
    if tone in STRAIN_TONES and friction_count > 1:
        return OVERLOAD_REASON
    return None


class Sentinel:
    """Stateless policy evaluator.

    Every flagged decision is written to the audit trail and mirrored as a
    governance insight before the caller sees the result. A failed audit
    write propagates as ``StorageFault``.
    """

    def __init__(self, store: MemoryStore, rules: tuple[PolicyRule, ...] = RULES) -> None:
        self._store = store
        self._rules = rules

    async def evaluate(self, text: str) -> PolicyFlag | None:
        """Check *text* against the rule table. First matching rule wins."""
        rule = match_rule(text, self._rules)
        if rule is None:
            return None

        reason = violation_reason(rule.id)
        await self.log_decision(reason, str(text).lower(), rule.id, rule.severity)
        return PolicyFlag(policy_id=rule.id, reason=reason, severity=rule.severity)

    async def escalate_crisis(self, reason: str) -> CrisisEscalation:
        """Dedicated crisis path. Always logged under CRISIS severity."""
        await self.log_decision(f"CRISIS: {reason}", reason, CRISIS_POLICY, Severity.CRISIS)
        return CrisisEscalation(success=True, policy_enforced=CRISIS_POLICY)

    async def log_decision(
        self,
        description: str,
        content: str,
        policy_id: PolicyId,
        severity: Severity,
    ) -> None:
        """Record a flagged decision: one audit event plus one governance insight."""
        logger.warning("Sentinel flag %s (%s): %s", policy_id.value, severity.value, description)
        await self._store.audit(
            "governance_flagged_event",
            actor="sentinel",
            details={
                "policy_id": policy_id.value,
                "severity": severity.value,
                "description": description,
                "trigger_content": content,
            },
        )
        await self._store.add_insight(
            MemoryInsight(
                type="governance_alert",
                title=f"Sentinel Flag: {policy_id.value} ({severity.value})",
                content=description,
                confidence=1.0,
                tags={"#governance", "#sentinel", f"#{severity.value.lower()}"},
            )
        )
