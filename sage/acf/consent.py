"""Consent decisions for memory writes.

Grants and denials are recorded only in the memory store's audit trail, so
the trail is the single source of truth for whether a session may persist
personal details.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

from sage.acf.models import MEMORY_SCOPE, ConsentRequest
from sage.config import settings

if TYPE_CHECKING:
    from sage.memory.models import AuditEvent
    from sage.memory.store import MemoryStore

logger = logging.getLogger(__name__)

GRANTED = "consent_granted"
DENIED = "consent_denied"


class ConsentEngine:
    """Records consent decisions and answers whether a write is authorized."""

    def __init__(self, store: MemoryStore, review_days: int | None = None) -> None:
        self._store = store
        self._review_days = settings.consent_review_days if review_days is None else review_days

    async def require_consent(self, scope: str, details: dict[str, Any]) -> ConsentRequest:
        await self._store.audit("consent_required", details={"scope": scope, **details})
        logger.info("Consent required for scope %s", scope)
        return ConsentRequest(scope=scope, details=dict(details))

    async def grant_consent(
        self,
        scope: str = MEMORY_SCOPE,
        details: dict[str, Any] | None = None,
        *,
        session_id: str,
    ) -> None:
        await self._store.audit(
            GRANTED,
            actor="user",
            details={"scope": scope, "session_id": session_id, **(details or {})},
        )
        logger.info("Consent granted: scope=%s session=%s", scope, session_id)

    async def deny_consent(
        self,
        scope: str = MEMORY_SCOPE,
        details: dict[str, Any] | None = None,
        *,
        session_id: str,
    ) -> None:
        await self._store.audit(
            DENIED,
            actor="user",
            details={"scope": scope, "session_id": session_id, **(details or {})},
        )
        logger.info("Consent denied: scope=%s session=%s", scope, session_id)

    def has_consent(self, scope: str, session_id: str) -> bool:
        """True if the latest decision for *scope* in this session is a grant."""
        for event in reversed(self._store.get_audit_trail()):
            if event.action not in (GRANTED, DENIED):
                continue
            if event.details.get("scope") != scope or event.details.get("session_id") != session_id:
                continue
            return event.action == GRANTED
        return False

    def last_grant(self, scope: str = MEMORY_SCOPE) -> AuditEvent | None:
        """The most recent grant for *scope*, from any session."""
        for event in reversed(self._store.get_audit_trail()):
            if event.action == GRANTED and event.details.get("scope") == scope:
                return event
        return None

    async def review_due(self, scope: str = MEMORY_SCOPE, now: datetime | None = None) -> bool:
        """Whether a standing grant is old enough that the user should re-confirm it.

        Audits ``consent_drift_scan_due`` when a review is due.
        """
        grant = self.last_grant(scope)
        if grant is None:
            return False
        now = now or datetime.now(UTC)
        age = now - datetime.fromisoformat(grant.timestamp)
        if age < timedelta(days=self._review_days):
            return False
        await self._store.audit(
            "consent_drift_scan_due",
            details={"scope": scope, "period_days": self._review_days, "days_since": age.days},
        )
        logger.info("Consent review due for %s (%d days since last grant)", scope, age.days)
        return True
