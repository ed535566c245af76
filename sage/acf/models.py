"""Ephemeral types passed between the ACF phases and the orchestrator.

None of these are persisted directly; decisions derived from them are
recorded through the memory store's audit trail.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from sage.memory.models import MemoryInsight

MEMORY_SCOPE = "memory"


class TrajectoryStance(StrEnum):
    CONFIDENCE_UP = "ConfidenceUp"
    RESILIENCE_FRAGILE = "ResilienceFragile"
    STALLED = "Stalled"
    REGRESSING = "Regressing"
    BREAKTHROUGH = "Breakthrough"


class DignitySeverity(StrEnum):
    WARN = "warn"
    FAIL = "fail"


@dataclass
class UserSignals:
    """What the orchestrator knows about the user going into a turn.

    Attributes:
        emotion: Tone label from the signal extractor (e.g. ``"Anxious"``).
        energy: Energy level 0-100.
        constraints: Self-reported pressures, e.g. ``{"financial": 0.8}``.
    """

    emotion: str = "neutral"
    energy: int = 50
    constraints: dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class DignityFinding:
    rule_id: str
    severity: DignitySeverity
    message: str


@dataclass
class CheckpointResult:
    findings: list[DignityFinding] = field(default_factory=list)
    confidence: float = 1.0

    @property
    def passed(self) -> bool:
        return not any(f.severity is DignitySeverity.FAIL for f in self.findings)

    @property
    def warnings(self) -> list[DignityFinding]:
        return [f for f in self.findings if f.severity is DignitySeverity.WARN]


@dataclass
class TrajectorySnapshot:
    stance: TrajectoryStance = TrajectoryStance.STALLED
    evidence: dict[str, Any] = field(default_factory=dict)
    t: str = field(default_factory=lambda: datetime.now(UTC).isoformat())

    @property
    def is_fragile(self) -> bool:
        return self.stance is TrajectoryStance.RESILIENCE_FRAGILE


@dataclass
class Guidance:
    """The model's reply split into conversational text and structured hints."""

    stance: str
    tone: str = "neutral"
    action: dict[str, Any] = field(default_factory=lambda: {"label": "Reflection", "cost": 0})


@dataclass
class ConsentRequest:
    """A pending request for the user to authorize a memory write."""

    scope: str
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class Preparation:
    topic: str
    trajectory: TrajectorySnapshot
    prior: list[MemoryInsight]
    preamble: str


@dataclass
class FinalizeResult:
    """Outcome of the consent/dignity gate.

    ``reason`` is ``None`` on success, otherwise ``"checkpoint_fail"`` or
    ``"consent_required"`` (with ``needed`` set).
    """

    ok: bool
    check: CheckpointResult
    reason: str | None = None
    needed: ConsentRequest | None = None
    stored: MemoryInsight | None = None
