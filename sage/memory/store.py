"""MemoryStore: single owner of ambient context, insights, audit trail and manifest.

Every mutation is write-through: the new document is persisted to the
key-value backend first and only then swapped into memory, so the in-memory
view never claims something the durable store does not hold. A failed
write surfaces as ``StorageFault``.

Components never hold private mutable copies: getters return copies, and
changes go through ``append``/``add_insight``/``update_ambient``/
``update_manifest``.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from sage.config import settings
from sage.errors import StorageFault
from sage.memory.kv import (
    AUDIT_ARCHIVE_KEY,
    AUDIT_TRAIL_KEY,
    LOCAL_CONTEXT_KEY,
    MANIFEST_KEY,
)
from sage.memory.models import AmbientContext, AuditEvent, Manifest, MemoryInsight
from sage.memory.redaction import redact

if TYPE_CHECKING:
    from pathlib import Path

    from sage.memory.kv import KeyValueStore

logger = logging.getLogger(__name__)


class ExportKind(StrEnum):
    STATE = "state"
    AUDIT = "audit"
    MANIFEST = "manifest"


class MemoryStore:
    """Durable local memory for one user.

    Construct explicitly and pass the same instance to every component
    that needs it. Call ``await load()`` once before use.
    """

    def __init__(
        self,
        kv: KeyValueStore,
        *,
        audit_limit: int | None = None,
        archive_evicted: bool | None = None,
        redaction_marker: str | None = None,
    ) -> None:
        limit = settings.audit_log_limit if audit_limit is None else audit_limit
        if limit < 1:
            msg = f"audit_limit must be at least 1, got {limit}"
            raise ValueError(msg)
        self._kv = kv
        self._audit_limit = limit
        self._archive_evicted = (
            settings.archive_evicted_audit if archive_evicted is None else archive_evicted
        )
        self._marker = redaction_marker or settings.redaction_marker

        self._ambient = AmbientContext()
        self._insights: list[MemoryInsight] = []
        self._audit: list[AuditEvent] = []
        self._manifest = Manifest(redaction_rules=settings.get_redaction_rules())
        self._subscribers: list[asyncio.Queue[AmbientContext]] = []

    @property
    def audit_limit(self) -> int:
        return self._audit_limit

    # -- Load ----------------------------------------------------------------

    async def load(self) -> None:
        """Restore state from the key-value backend. Missing keys keep defaults."""
        local = await self._kv.get(LOCAL_CONTEXT_KEY)
        trail = await self._kv.get(AUDIT_TRAIL_KEY)
        manifest = await self._kv.get(MANIFEST_KEY)

        try:
            if local:
                self._ambient = AmbientContext.model_validate(local.get("ambient") or {})
                self._insights = [
                    MemoryInsight.model_validate(i) for i in local.get("insights") or []
                ]
            if trail:
                events = [AuditEvent.model_validate(e) for e in trail.get("auditTrail") or []]
                self._audit = events[-self._audit_limit :]
            if manifest:
                self._manifest = Manifest.model_validate(manifest.get("manifest") or {})
        except (ValidationError, AttributeError) as exc:
            msg = "Persisted memory state does not match the current schema"
            raise StorageFault(msg) from exc

        logger.info(
            "Memory loaded: %d insights, %d audit events, schema %s",
            len(self._insights),
            len(self._audit),
            self._manifest.schema_version,
        )

    # -- Audit trail ---------------------------------------------------------

    async def append(self, event: AuditEvent) -> AuditEvent:
        """Append an event, evicting the oldest entries beyond the limit."""
        trail = [*self._audit, event]
        evicted = trail[: -self._audit_limit] if len(trail) > self._audit_limit else []
        kept = trail[-self._audit_limit :]

        if evicted and self._archive_evicted:
            archive = await self._kv.get(AUDIT_ARCHIVE_KEY) or []
            archive.extend(e.model_dump(mode="json") for e in evicted)
            await self._kv.set(AUDIT_ARCHIVE_KEY, archive)

        await self._kv.set(
            AUDIT_TRAIL_KEY,
            {"auditTrail": [e.model_dump(mode="json") for e in kept]},
        )
        self._audit = kept
        if evicted:
            logger.debug("Evicted %d audit event(s)", len(evicted))
        return event

    async def audit(
        self,
        action: str,
        *,
        actor: str = "kernel",
        details: dict[str, Any] | None = None,
    ) -> AuditEvent:
        """Build and append an AuditEvent."""
        return await self.append(AuditEvent(action=action, actor=actor, details=details or {}))

    def get_audit_trail(self) -> list[AuditEvent]:
        """Return a copy of the retained audit trail, oldest first."""
        return [e.model_copy(deep=True) for e in self._audit]

    async def get_audit_archive(self) -> list[AuditEvent]:
        """Return events evicted into the archive (empty unless archiving is on)."""
        raw = await self._kv.get(AUDIT_ARCHIVE_KEY) or []
        return [AuditEvent.model_validate(e) for e in raw]

    # -- Insights ------------------------------------------------------------

    async def add_insight(self, insight: MemoryInsight) -> MemoryInsight:
        """Persist a new insight."""
        insights = [*self._insights, insight]
        await self._save_local(self._ambient, insights)
        self._insights = insights
        logger.debug("Stored insight %s [%s]", insight.id, ", ".join(sorted(insight.tags)))
        return insight

    async def delete_insight(self, insight_id: str) -> bool:
        """Delete an insight by ID (user-initiated). Returns True if removed."""
        remaining = [i for i in self._insights if i.id != insight_id]
        if len(remaining) == len(self._insights):
            return False
        await self._save_local(self._ambient, remaining)
        self._insights = remaining
        await self.audit("insight_deleted", actor="user", details={"id": insight_id})
        logger.info("Deleted insight: %s", insight_id)
        return True

    def get_insights(self, tag: str | None = None, limit: int | None = None) -> list[MemoryInsight]:
        """Return insights, newest first, optionally filtered by tag (case-insensitive)."""
        rows = self._insights
        if tag:
            wanted = tag.lower()
            rows = [i for i in rows if wanted in {t.lower() for t in i.tags}]
        if limit is not None:
            rows = rows[-limit:] if limit > 0 else []
        return [i.model_copy(deep=True) for i in reversed(rows)]

    # -- Ambient context -----------------------------------------------------

    @property
    def ambient(self) -> AmbientContext:
        """A snapshot of the current ambient context."""
        return self._ambient.model_copy(deep=True)

    async def update_ambient(self, **partial: Any) -> AmbientContext:
        """Merge *partial* into the ambient context and notify subscribers.

        Raises ``ValueError`` (pydantic ``ValidationError``) on unknown or
        ill-typed fields.
        """
        updated = AmbientContext.model_validate({**self._ambient.model_dump(), **partial})
        await self._save_local(updated, self._insights)
        self._ambient = updated

        for queue in self._subscribers:
            queue.put_nowait(updated.model_copy(deep=True))
        return self.ambient

    def subscribe(self) -> asyncio.Queue[AmbientContext]:
        """Return a queue that receives a snapshot after every ambient change."""
        queue: asyncio.Queue[AmbientContext] = asyncio.Queue()
        self._subscribers.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue[AmbientContext]) -> None:
        if queue in self._subscribers:
            self._subscribers.remove(queue)

    # -- Manifest ------------------------------------------------------------

    def get_manifest(self) -> Manifest:
        return self._manifest.model_copy(deep=True)

    async def update_manifest(self, **partial: Any) -> Manifest:
        """Explicitly update the manifest. Audited."""
        updated = Manifest.model_validate({**self._manifest.model_dump(), **partial})
        await self._kv.set(MANIFEST_KEY, {"manifest": updated.model_dump(mode="json")})
        self._manifest = updated
        await self.audit(
            "manifest_updated",
            actor="user",
            details={"fields": sorted(partial), "schema_version": updated.schema_version},
        )
        return self.get_manifest()

    # -- Redaction & export --------------------------------------------------

    def redact(self, record: Any) -> Any:
        """Redact *record* using the manifest's redaction rules."""
        return redact(record, self._manifest.redaction_rules, marker=self._marker)

    def export_state(self, which: ExportKind | str = ExportKind.STATE) -> bytes:
        """Serialize one export document as UTF-8 JSON bytes.

        ``state`` is redacted; ``audit`` and ``manifest`` are exported as held.
        """
        kind = ExportKind(which)
        version = self._manifest.schema_version
        if kind is ExportKind.STATE:
            doc: dict[str, Any] = self.redact({
                "schemaVersion": version,
                "localContext": {
                    "ambient": self._ambient.model_dump(mode="json"),
                    "insights": [i.model_dump(mode="json") for i in self._insights],
                },
            })
        elif kind is ExportKind.AUDIT:
            doc = {
                "schemaVersion": version,
                "auditTrail": [e.model_dump(mode="json") for e in self._audit],
            }
        else:
            doc = {"manifest": self._manifest.model_dump(mode="json")}
        return json.dumps(doc, indent=2).encode("utf-8")

    def export_filename(self, which: ExportKind | str, ts: int | None = None) -> str:
        """Return the download name: ``<prefix>-state-<ts>.json`` etc."""
        kind = ExportKind(which)
        if kind is ExportKind.MANIFEST:
            return f"{settings.export_prefix}-manifest.json"
        stamp = ts if ts is not None else int(time.time() * 1000)
        return f"{settings.export_prefix}-{kind.value}-{stamp}.json"

    async def write_export(self, which: ExportKind | str, directory: Path | None = None) -> Path:
        """Write one export document to *directory* and audit the export."""
        kind = ExportKind(which)
        target_dir = directory or settings.export_dir
        payload = self.export_state(kind)
        path = target_dir / self.export_filename(kind)
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            path.write_bytes(payload)
        except OSError as exc:
            msg = f"Failed to write export to {path}"
            raise StorageFault(msg) from exc
        await self.audit("export_written", actor="user", details={"kind": kind.value, "file": path.name})
        logger.info("Exported %s to %s", kind.value, path)
        return path

    # -- Internal helpers ----------------------------------------------------

    async def _save_local(self, ambient: AmbientContext, insights: list[MemoryInsight]) -> None:
        await self._kv.set(
            LOCAL_CONTEXT_KEY,
            {
                "ambient": ambient.model_dump(mode="json"),
                "insights": [i.model_dump(mode="json") for i in insights],
            },
        )
