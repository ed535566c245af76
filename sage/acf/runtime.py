"""ContinuityEngine: the two-phase context/consent pipeline around a model call.

``prepare`` is a read-only projection of memory into a preamble for the
model. ``finalize`` is the gate that decides whether the turn's reply may
be shown and whether it may be written to memory.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from sage.acf.checkpoints import run_checkpoints
from sage.acf.models import MEMORY_SCOPE, FinalizeResult, Preparation
from sage.acf.trajectory import compute_trajectory
from sage.config import settings
from sage.memory.models import MemoryInsight
from sage.signals.topics import extract_topic_tag

if TYPE_CHECKING:
    from sage.acf.consent import ConsentEngine
    from sage.acf.models import Guidance, UserSignals
    from sage.memory.models import AmbientContext
    from sage.memory.store import MemoryStore

logger = logging.getLogger(__name__)

_PERSONA = (
    "You are Sage, a continuous companion that remembers context over time.",
    "Use prior reflections to guide your reasoning, but do not repeat them.",
    "Acknowledge changes in tone, energy, and user confidence since the last exchange.",
    "Your goal: sustain dignity, agency, and continuity.",
)


def topic_tag(topic: str) -> str:
    return f"#{topic.lower()}"


def describe_ambient(ambient: AmbientContext) -> str:
    """Compact one-line description of ambient state for the preamble."""
    parts = [f"tone={ambient.emotional_tone}", f"energy={ambient.energy}"]
    if ambient.last_topic:
        parts.append(f"last_topic={ambient.last_topic}")
    if ambient.logistical_friction:
        parts.append(f"friction={'; '.join(ambient.logistical_friction)}")
    if ambient.identity_signals:
        parts.append(f"identity={', '.join(ambient.identity_signals)}")
    if ambient.location:
        parts.append(f"location={ambient.location}")
    return ", ".join(parts)


class ContinuityEngine:
    def __init__(
        self,
        store: MemoryStore,
        consent: ConsentEngine,
        *,
        prior_limit: int | None = None,
        trajectory_window: int | None = None,
    ) -> None:
        self._store = store
        self._consent = consent
        self._prior_limit = settings.prior_insight_limit if prior_limit is None else prior_limit
        self._window = settings.trajectory_window if trajectory_window is None else trajectory_window

    # -- Prepare -------------------------------------------------------------

    def prepare(self, user_input: str, signals: UserSignals) -> Preparation:
        """Build the model preamble. Never mutates the store."""
        topic = extract_topic_tag(user_input)
        ambient = self._store.ambient
        trajectory = compute_trajectory(ambient.recent_energy[-self._window :])
        prior = self._store.get_insights(tag=topic_tag(topic), limit=self._prior_limit)

        preamble = "\n".join([
            f"ACF: Topic={topic}",
            f"ACF: Trajectory={trajectory.stance.value}",
            f"ACF: EmotionalState={signals.emotion or 'neutral'}",
            f"ACF: Constraints={json.dumps(signals.constraints, sort_keys=True)}",
            f"ACF: PriorCount={len(prior)}",
            f"ACF: Ambient={describe_ambient(ambient)}",
            *_PERSONA,
        ])
        logger.debug("Prepared topic=%s trajectory=%s prior=%d", topic, trajectory.stance, len(prior))
        return Preparation(topic=topic, trajectory=trajectory, prior=prior, preamble=preamble)

    # -- Finalize ------------------------------------------------------------

    async def finalize(
        self,
        *,
        topic: str,
        guidance: Guidance,
        store_memory: bool,
        about_to_store_pii: bool,
        signals: UserSignals,
        user_text: str = "",
        session_id: str,
        post_consent: bool = False,
    ) -> FinalizeResult:
        """Run dignity checkpoints, then the consent gate, then persist.

        A ``fail`` finding blocks output and storage outright. PII is only
        written on the post-consent replay of a turn, and only if the
        session's latest memory-scope decision is a grant.
        """
        check = run_checkpoints(guidance, signals, user_text)

        if not check.passed:
            await self._store.audit(
                "acf_finalize_fail",
                details={
                    "reason": "checkpoint_fail",
                    "topic": topic,
                    "findings": [f.rule_id for f in check.findings],
                },
            )
            logger.warning("Checkpoint failed for topic %s", topic)
            return FinalizeResult(ok=False, check=check, reason="checkpoint_fail")

        if store_memory and about_to_store_pii:
            authorized = post_consent and self._consent.has_consent(MEMORY_SCOPE, session_id)
            if not authorized:
                needed = await self._consent.require_consent(
                    MEMORY_SCOPE,
                    {
                        "pii": True,
                        "topic": topic,
                        "description": "This reply may include personal details. Store it in memory?",
                    },
                )
                return FinalizeResult(ok=False, check=check, reason="consent_required", needed=needed)

        stored = None
        if store_memory and guidance.stance:
            stored = await self._store.add_insight(
                MemoryInsight(
                    type="conversation_insight",
                    title=f"Reflection: {topic.replace('_', ' ')}",
                    content=guidance.stance,
                    confidence=check.confidence,
                    tags={topic_tag(topic), "#acf"},
                )
            )
            await self._store.audit(
                "memory_stored",
                details={
                    "insight_id": stored.id,
                    "topic": topic,
                    "pii": about_to_store_pii,
                    "session_id": session_id,
                    "confidence": check.confidence,
                },
            )
            logger.info("Stored insight %s for topic %s", stored.id, topic)

        return FinalizeResult(ok=True, check=check, stored=stored)
