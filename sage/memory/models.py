"""Data models owned by the memory store."""

import uuid
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer


def _now() -> str:
    return datetime.now(UTC).isoformat()


class AuditEvent(BaseModel):
    """One append-only entry in the audit trail."""

    timestamp: str = Field(default_factory=_now)
    action: str
    actor: str = "kernel"
    details: dict[str, Any] = Field(default_factory=dict)


class MemoryInsight(BaseModel):
    """A stored insight: a governance alert or a consented conversational memory."""

    id: str = Field(default_factory=lambda: f"insight-{uuid.uuid4().hex[:12]}")
    type: str = "insight"
    title: str = ""
    content: str = ""
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    tags: set[str] = Field(default_factory=set)
    timestamp: str = Field(default_factory=_now)

    @field_serializer("tags")
    def _sorted_tags(self, tags: set[str]) -> list[str]:
        return sorted(tags)


class AmbientContext(BaseModel):
    """The live summary of the user's inferred state."""

    model_config = ConfigDict(extra="forbid")

    emotional_tone: str = "Clear"
    energy: int = 50
    last_topic: str = ""
    logistical_friction: list[str] = Field(default_factory=list)
    identity_signals: list[str] = Field(default_factory=list)
    location: str = ""
    recent_energy: list[int] = Field(default_factory=list)

    @property
    def friction_count(self) -> int:
        return len(self.logistical_friction)


class Manifest(BaseModel):
    """What the memory store may hold and what must be scrubbed on export."""

    schema_version: str = "1.0"
    allowed_fields: list[str] = Field(
        default_factory=lambda: ["ambient", "insights"]
    )
    redaction_rules: list[str] = Field(
        default_factory=lambda: ["email", "phone", "address", "ssn", "password"]
    )
