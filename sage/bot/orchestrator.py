"""Turn state machine.

Drives one conversational turn end-to-end::

    Idle -> Sending -> PolicyCheck -> {PausedCrisis | Preparing}
         -> AwaitingModel -> PostProcess -> {PausedConsent | Idle}

Turns are serialized per conversation: a message submitted while another
turn is in flight is rejected. The crisis pause is tracked separately from
the pipeline state so that a pause raised by the passive monitor while a
turn is awaiting the model wins the race. The in-flight reply is still
delivered, but nothing from it is stored.
"""

from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from sage.acf import UserSignals, contains_pii, extract_guidance
from sage.config import settings
from sage.errors import ModelError, StorageFault
from sage.llm.prompt import build_system_prompt
from sage.sentinel import assess_signals
from sage.signals import STRAIN_TONES, analyze_tone, extract_topic_tag

if TYPE_CHECKING:
    from sage.acf import ConsentEngine, ConsentRequest, ContinuityEngine, DignityFinding
    from sage.bot.session import Conversation
    from sage.llm.client import ModelClient
    from sage.memory.models import AmbientContext
    from sage.memory.store import MemoryStore
    from sage.sentinel import Sentinel

logger = logging.getLogger(__name__)

STRAIN_FRICTION = "Conversation Strain"

PAUSE_NOTICE = (
    "Sentinel Agent Activated: Dialogue paused due to detected pattern: {reason}. "
    "Please review the alert."
)
PAUSE_REMINDER = "Agent paused: {reason}. Review the alert and override to continue."
CONSENT_PENDING_REMINDER = "Please respond to the pending memory consent request first."
CONSENT_PROMPT = "Sage would like to remember this exchange. {description}"
CONSENT_DENIED_NOTE = "Action paused: Memory update requires user consent."
CONSENT_UNCONFIRMED_NOTE = "Memory update skipped: consent could not be confirmed for this turn."
WITHHELD_NOTE = "Sage withheld this output due to dignity or privacy constraints."
MODEL_FALLBACK = "An error occurred while connecting to the intelligence network. Please try again."
STORAGE_WARNING = "Local storage unavailable. This turn was not recorded."
OVERRIDE_NOTE = "User-initiated override: Conversation unpaused."
RECOVERY_NOTE = "Sage suggests a recovery pause before your next step."

_CONTEXT_QUERY = re.compile(
    r"\b(what do you (know|remember) about me|what have you learned about me"
    r"|what('s| is) my (context|profile))\b",
    re.IGNORECASE,
)


class TurnState(StrEnum):
    IDLE = "Idle"
    SENDING = "Sending"
    POLICY_CHECK = "PolicyCheck"
    PAUSED_CRISIS = "PausedCrisis"
    PREPARING = "Preparing"
    AWAITING_MODEL = "AwaitingModel"
    POST_PROCESS = "PostProcess"
    PAUSED_CONSENT = "PausedConsent"


class TurnOutcome(StrEnum):
    COMPLETED = "completed"
    CONTEXT_SUMMARY = "context_summary"
    GOVERNANCE_BLOCK = "governance_block"
    CONSENT_REQUIRED = "consent_required"
    CONSENT_DENIED = "consent_denied"
    CHECKPOINT_FAIL = "checkpoint_fail"
    MODEL_ERROR = "model_error"
    STORAGE_FAULT = "storage_fault"
    REJECTED = "rejected"


@dataclass
class TurnResult:
    outcome: TurnOutcome
    reply: str | None = None
    reason: str | None = None
    findings: list[DignityFinding] = field(default_factory=list)
    consent: ConsentRequest | None = None


@dataclass
class PendingConsent:
    """Continuation carried in PausedConsent. Resumed at most once."""

    text: str
    signals: UserSignals
    history: list[dict[str, str]]
    request: ConsentRequest
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    consumed: bool = False


def is_context_query(text: str) -> bool:
    return bool(_CONTEXT_QUERY.search(text or ""))


def summarize_context(ambient: AmbientContext, insight_count: int) -> str:
    """Plain-language summary of what is held locally about the user."""
    lines = [
        "Here is what I'm holding in local memory:",
        f"- Emotional tone: {ambient.emotional_tone} (energy {ambient.energy})",
        f"- Last topic: {ambient.last_topic or 'none yet'}",
    ]
    if ambient.logistical_friction:
        lines.append(f"- Friction: {', '.join(ambient.logistical_friction)}")
    if ambient.identity_signals:
        lines.append(f"- Identity signals: {', '.join(ambient.identity_signals)}")
    if ambient.location:
        lines.append(f"- Location: {ambient.location}")
    lines.append(f"- Stored insights: {insight_count}")
    return "\n".join(lines)


class TurnOrchestrator:
    """Owns the turn state for one conversation.

    ``submit_message``, ``grant_consent``, ``deny_consent`` and
    ``override_pause`` are the UI-facing entry points;
    ``handle_crisis_signal`` is the passive monitor's callback.
    """

    def __init__(
        self,
        store: MemoryStore,
        sentinel: Sentinel,
        acf: ContinuityEngine,
        consent: ConsentEngine,
        model: ModelClient,
        conversation: Conversation,
        *,
        session_id: str | None = None,
        constraints: dict[str, float] | None = None,
        trajectory_window: int | None = None,
    ) -> None:
        self._store = store
        self._sentinel = sentinel
        self._acf = acf
        self._consent = consent
        self._model = model
        self._conversation = conversation
        self.session_id = session_id or uuid.uuid4().hex
        self._constraints = dict(constraints or {})
        self._window = settings.trajectory_window if trajectory_window is None else trajectory_window

        self._state = TurnState.IDLE
        self._pause_reason: str | None = None
        self._pending: PendingConsent | None = None

    # -- State -----------------------------------------------------------------

    @property
    def state(self) -> TurnState:
        """Pipeline state as seen by the UI. A crisis pause masks everything else."""
        if self._pause_reason is not None:
            return TurnState.PAUSED_CRISIS
        return self._state

    @property
    def paused(self) -> bool:
        return self._pause_reason is not None

    @property
    def pause_reason(self) -> str | None:
        return self._pause_reason

    @property
    def pending_consent(self) -> PendingConsent | None:
        return self._pending

    def _set(self, state: TurnState) -> None:
        logger.debug("Turn state %s -> %s", self._state, state)
        self._state = state

    # -- Entry points ----------------------------------------------------------

    async def submit_message(self, text: str) -> TurnResult:
        """Run one turn for *text*. Rejected unless the conversation is Idle."""
        if self.paused:
            self._conversation.system(PAUSE_REMINDER.format(reason=self._pause_reason))
            return TurnResult(TurnOutcome.REJECTED, reason="paused")
        if self._state is TurnState.PAUSED_CONSENT:
            self._conversation.system(CONSENT_PENDING_REMINDER)
            return TurnResult(TurnOutcome.REJECTED, reason="consent_pending")
        if self._state is not TurnState.IDLE:
            logger.info("Rejecting message: turn already in progress (%s)", self._state)
            return TurnResult(TurnOutcome.REJECTED, reason="busy")
        if not text or not text.strip():
            return TurnResult(TurnOutcome.REJECTED, reason="empty")

        # Claimed before the first await so a concurrent submit sees the turn.
        self._set(TurnState.SENDING)
        logger.info("Turn started: %s", text[:80])
        return await self._guarded(self._start_turn(text))

    async def grant_consent(self) -> TurnResult:
        """Record the grant and replay the paused turn once with post-consent."""
        pending = self._pending
        if self._state is not TurnState.PAUSED_CONSENT or pending is None or pending.consumed:
            return TurnResult(TurnOutcome.REJECTED, reason="no_pending_consent")
        if self.paused:
            # The request stays pending until the pause is overridden.
            self._conversation.system(PAUSE_REMINDER.format(reason=self._pause_reason))
            return TurnResult(TurnOutcome.REJECTED, reason="paused")
        pending.consumed = True
        self._pending = None
        self._set(TurnState.PREPARING)
        return await self._guarded(self._grant_and_replay(pending))

    async def deny_consent(self) -> TurnResult:
        pending = self._pending
        if self._state is not TurnState.PAUSED_CONSENT or pending is None or pending.consumed:
            return TurnResult(TurnOutcome.REJECTED, reason="no_pending_consent")
        pending.consumed = True
        self._pending = None
        self._set(TurnState.POST_PROCESS)
        return await self._guarded(self._deny(pending))

    async def override_pause(self) -> bool:
        """Explicit user override of a crisis pause. Audited."""
        if not self.paused:
            return False
        reason = self._pause_reason
        await self._store.audit("sentinel_override", actor="user", details={"reason": reason})
        self._pause_reason = None
        self._conversation.system(OVERRIDE_NOTE)
        logger.info("Crisis pause overridden by user")
        return True

    async def handle_crisis_signal(self, reason: str) -> None:
        """Passive monitor callback: escalate and pause unless already paused.

        The pause holds even when the escalation cannot be recorded.
        """
        try:
            await self._pause(reason, escalate=True)
        except StorageFault:
            logger.exception("Storage fault while escalating crisis")
            self._conversation.system(STORAGE_WARNING)

    # -- Turn pipeline ---------------------------------------------------------

    async def _guarded(self, turn: Any) -> TurnResult:
        try:
            return await turn
        except StorageFault:
            logger.exception("Storage fault during turn")
            self._pending = None
            self._conversation.system(STORAGE_WARNING)
            return TurnResult(TurnOutcome.STORAGE_FAULT, reason="storage_fault")
        finally:
            if self._state is not TurnState.PAUSED_CONSENT:
                self._set(TurnState.IDLE)

    async def _start_turn(self, text: str) -> TurnResult:
        history = self._conversation.to_api_messages()
        self._conversation.add("user", text)

        self._set(TurnState.POLICY_CHECK)
        reading = analyze_tone(text)
        flag = await self._sentinel.evaluate(text)

        ambient = self._store.ambient
        friction = [f for f in ambient.logistical_friction if f != STRAIN_FRICTION]
        if reading.tone in STRAIN_TONES:
            friction.append(STRAIN_FRICTION)
        passive = assess_signals(reading.tone, len(friction)) if flag is None else None

        # Only a turn with nothing to escalate may be answered from local context.
        if flag is None and passive is None and is_context_query(text):
            return self._answer_context_query()

        if flag is not None:
            await self._pause(flag.reason, escalate=False)
        elif passive is not None:
            await self._pause(passive, escalate=True)

        await self._store.update_ambient(
            emotional_tone=reading.tone,
            energy=reading.energy,
            last_topic=extract_topic_tag(text),
            logistical_friction=friction,
            recent_energy=[*ambient.recent_energy, reading.energy][-self._window :],
        )

        if self.paused:
            return TurnResult(TurnOutcome.GOVERNANCE_BLOCK, reason=self._pause_reason)

        signals = UserSignals(
            emotion=reading.tone,
            energy=reading.energy,
            constraints=dict(self._constraints),
        )
        return await self._complete_turn(text, signals, history, post_consent=False)

    async def _grant_and_replay(self, pending: PendingConsent) -> TurnResult:
        await self._consent.grant_consent(
            pending.request.scope,
            pending.request.details,
            session_id=self.session_id,
        )
        return await self._complete_turn(
            pending.text, pending.signals, pending.history, post_consent=True
        )

    async def _deny(self, pending: PendingConsent) -> TurnResult:
        await self._consent.deny_consent(
            pending.request.scope,
            pending.request.details,
            session_id=self.session_id,
        )
        self._conversation.system(CONSENT_DENIED_NOTE)
        return TurnResult(TurnOutcome.CONSENT_DENIED, reason="consent_denied")

    async def _complete_turn(
        self,
        text: str,
        signals: UserSignals,
        history: list[dict[str, str]],
        *,
        post_consent: bool,
    ) -> TurnResult:
        """Preparing -> AwaitingModel -> PostProcess."""
        self._set(TurnState.PREPARING)
        preparation = self._acf.prepare(text, signals)

        self._set(TurnState.AWAITING_MODEL)
        try:
            reply = await self._model.call_model(build_system_prompt(preparation), text, history)
        except ModelError as exc:
            await self._store.audit(
                "llm_error",
                details={"error": str(exc), "topic": preparation.topic, "post_consent": post_consent},
            )
            self._conversation.system(MODEL_FALLBACK)
            return TurnResult(TurnOutcome.MODEL_ERROR, reason=str(exc))

        self._set(TurnState.POST_PROCESS)
        guidance = extract_guidance(reply.text)
        # A pause raised while the model was working blocks storage for this turn.
        store_memory = not self.paused
        result = await self._acf.finalize(
            topic=preparation.topic,
            guidance=guidance,
            store_memory=store_memory,
            about_to_store_pii=contains_pii(text, guidance.stance),
            signals=signals,
            user_text=text,
            session_id=self.session_id,
            post_consent=post_consent,
        )

        if result.reason == "checkpoint_fail":
            self._conversation.system(WITHHELD_NOTE)
            return TurnResult(TurnOutcome.CHECKPOINT_FAIL, reason=result.reason, findings=result.check.findings)

        if result.reason == "consent_required":
            if post_consent:
                self._conversation.system(CONSENT_UNCONFIRMED_NOTE)
                return TurnResult(TurnOutcome.CONSENT_DENIED, reason=result.reason)
            self._pending = PendingConsent(
                text=text, signals=signals, history=history, request=result.needed
            )
            self._set(TurnState.PAUSED_CONSENT)
            description = result.needed.details.get("description", "")
            self._conversation.system(
                CONSENT_PROMPT.format(description=description).strip(),
                consent_id=self._pending.id,
                scope=result.needed.scope,
            )
            return TurnResult(TurnOutcome.CONSENT_REQUIRED, reason=result.reason, consent=result.needed)

        self._conversation.add(
            "assistant",
            guidance.stance,
            {
                "tone": guidance.tone,
                "trajectory": preparation.trajectory.stance.value,
                "checkpoints": [f.rule_id for f in result.check.findings],
                "model": reply.model,
                "stored": result.stored.id if result.stored else None,
            },
        )
        for finding in result.check.warnings:
            self._conversation.system(f"Dignity Flag: {finding.message}")
        if preparation.trajectory.is_fragile:
            self._conversation.system(RECOVERY_NOTE)

        logger.info("Turn completed (stored=%s)", result.stored is not None)
        return TurnResult(
            TurnOutcome.COMPLETED,
            reply=guidance.stance,
            findings=result.check.findings,
        )

    # -- Helpers ---------------------------------------------------------------

    def _answer_context_query(self) -> TurnResult:
        summary = summarize_context(self._store.ambient, len(self._store.get_insights()))
        self._conversation.add("assistant", summary, {"source": "local_context"})
        return TurnResult(TurnOutcome.CONTEXT_SUMMARY, reply=summary)

    async def _pause(self, reason: str, *, escalate: bool) -> bool:
        """Enter the crisis pause. Returns False if already paused."""
        if self._pause_reason is not None:
            return False
        # Set before awaiting so a concurrent signal cannot escalate twice.
        self._pause_reason = reason
        try:
            if escalate:
                await self._sentinel.escalate_crisis(reason)
        finally:
            self._conversation.system(PAUSE_NOTICE.format(reason=reason), policy_reason=reason)
            logger.warning("Conversation paused: %s", reason)
        return True
