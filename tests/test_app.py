"""Tests for the core factory and the monitor wiring."""

from unittest.mock import AsyncMock

from sage.bot.app import build_core
from sage.bot.orchestrator import TurnOutcome, TurnState
from sage.llm.client import ModelReply
from sage.memory import InMemoryKeyValueStore


def _model() -> AsyncMock:
    client = AsyncMock()
    client.call_model.return_value = ModelReply(text="Noted, gently.", model="claude-test-model")
    return client


async def test_build_core_shares_one_store() -> None:
    core = await build_core(InMemoryKeyValueStore(), _model(), session_id="s-1")
    try:
        assert core.monitor.running
        assert core.orchestrator.session_id == "s-1"
        assert core.orchestrator.state is TurnState.IDLE

        result = await core.orchestrator.submit_message("thinking about growth")
        assert result.outcome is TurnOutcome.COMPLETED
        assert len(core.store.get_insights("#growth_change")) == 1
    finally:
        await core.shutdown()

    assert not core.monitor.running


async def test_build_core_without_monitor() -> None:
    core = await build_core(InMemoryKeyValueStore(), _model(), start_monitor=False)
    assert not core.monitor.running
    await core.shutdown()


async def test_build_core_reloads_persisted_state() -> None:
    kv = InMemoryKeyValueStore()
    first = await build_core(kv, _model())
    await first.orchestrator.submit_message("thinking about growth")
    await first.shutdown()

    second = await build_core(kv, _model())
    try:
        assert len(second.store.get_insights()) == 1
        assert second.store.ambient.last_topic == "Growth_Change"
    finally:
        await second.shutdown()


async def test_ambient_crisis_pauses_without_a_message() -> None:
    model = _model()
    core = await build_core(InMemoryKeyValueStore(), model)
    try:
        await core.store.update_ambient(emotional_tone="Crisis", energy=0)
        await core.monitor.drain()

        assert core.orchestrator.state is TurnState.PAUSED_CRISIS
        assert core.orchestrator.pause_reason == "Critical Distress/Crisis Signal (EIC)"
        result = await core.orchestrator.submit_message("hello")
        assert result.outcome is TurnOutcome.REJECTED
        model.call_model.assert_not_awaited()
    finally:
        await core.shutdown()


async def test_inline_and_passive_detection_escalate_once() -> None:
    core = await build_core(InMemoryKeyValueStore(), _model())
    try:
        result = await core.orchestrator.submit_message("I'm overwhelmed")
        await core.monitor.drain()

        assert result.outcome is TurnOutcome.GOVERNANCE_BLOCK
        events = [
            e for e in core.store.get_audit_trail() if e.action == "governance_flagged_event"
        ]
        assert len(events) == 1
    finally:
        await core.shutdown()
