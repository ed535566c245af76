"""Tests for the console collaborator's slash commands."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from sage.bot.orchestrator import TurnOutcome, TurnResult
from sage.main import _handle_command
from sage.memory import ExportKind, MemoryInsight

# -- Helpers -----------------------------------------------------------------


def _make_core() -> MagicMock:
    core = MagicMock()
    core.orchestrator.grant_consent = AsyncMock(
        return_value=TurnResult(TurnOutcome.REJECTED, reason="no_pending_consent")
    )
    core.orchestrator.deny_consent = AsyncMock(
        return_value=TurnResult(TurnOutcome.CONSENT_DENIED, reason="consent_denied")
    )
    core.orchestrator.override_pause = AsyncMock(return_value=False)
    core.store.write_export = AsyncMock(side_effect=lambda kind: f"/tmp/{kind.value}.json")
    core.store.delete_insight = AsyncMock(return_value=True)
    core.store.get_insights = MagicMock(
        return_value=[MemoryInsight(id="insight-1", title="Reflection: x", tags={"#acf"})]
    )
    return core


# -- Commands ----------------------------------------------------------------


async def test_quit_stops_loop() -> None:
    assert await _handle_command("/quit", _make_core()) is False


async def test_consent_without_pending(capsys: pytest.CaptureFixture[str]) -> None:
    core = _make_core()
    assert await _handle_command("/consent", core) is True
    core.orchestrator.grant_consent.assert_awaited_once()
    assert "No consent request is pending" in capsys.readouterr().out


async def test_deny_forwards(capsys: pytest.CaptureFixture[str]) -> None:
    core = _make_core()
    await _handle_command("/deny", core)
    core.orchestrator.deny_consent.assert_awaited_once()
    assert capsys.readouterr().out == ""


async def test_override_when_not_paused(capsys: pytest.CaptureFixture[str]) -> None:
    await _handle_command("/override", _make_core())
    assert "not paused" in capsys.readouterr().out


async def test_export_all_kinds() -> None:
    core = _make_core()
    await _handle_command("/export", core)
    kinds = [c.args[0] for c in core.store.write_export.await_args_list]
    assert kinds == list(ExportKind)


async def test_export_single_kind() -> None:
    core = _make_core()
    await _handle_command("/export audit", core)
    core.store.write_export.assert_awaited_once_with(ExportKind.AUDIT)


async def test_export_unknown_kind_raises() -> None:
    with pytest.raises(ValueError):
        await _handle_command("/export everything", _make_core())


async def test_forget(capsys: pytest.CaptureFixture[str]) -> None:
    core = _make_core()
    await _handle_command("/forget insight-1", core)
    core.store.delete_insight.assert_awaited_once_with("insight-1")
    assert "Deleted insight-1" in capsys.readouterr().out


async def test_forget_requires_id(capsys: pytest.CaptureFixture[str]) -> None:
    core = _make_core()
    await _handle_command("/forget", core)
    core.store.delete_insight.assert_not_awaited()
    assert "Usage" in capsys.readouterr().out


async def test_insights_listing(capsys: pytest.CaptureFixture[str]) -> None:
    await _handle_command("/insights", _make_core())
    assert "insight-1  Reflection: x  [#acf]" in capsys.readouterr().out


async def test_unknown_command(capsys: pytest.CaptureFixture[str]) -> None:
    assert await _handle_command("/dance", _make_core()) is True
    assert "Unknown command /dance" in capsys.readouterr().out
