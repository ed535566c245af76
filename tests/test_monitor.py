"""Tests for the passive crisis monitor."""

from unittest.mock import AsyncMock

import pytest

from sage.memory import MemoryStore
from sage.sentinel import CrisisMonitor


async def test_monitor_fires_on_crisis_tone(store: MemoryStore) -> None:
    on_crisis = AsyncMock()
    monitor = CrisisMonitor(store, on_crisis)
    monitor.start()
    try:
        await store.update_ambient(emotional_tone="Crisis", energy=0)
        await monitor.drain()
    finally:
        await monitor.stop()

    on_crisis.assert_awaited_once_with("Critical Distress/Crisis Signal (EIC)")


async def test_monitor_fires_on_strain_and_friction(store: MemoryStore) -> None:
    on_crisis = AsyncMock()
    monitor = CrisisMonitor(store, on_crisis)
    monitor.start()
    try:
        await store.update_ambient(
            emotional_tone="Drained",
            logistical_friction=["Commute", "Childcare"],
        )
        await monitor.drain()
    finally:
        await monitor.stop()

    on_crisis.assert_awaited_once_with("Cognitive Overload/High Strain Pattern")


async def test_monitor_ignores_calm_changes(store: MemoryStore) -> None:
    on_crisis = AsyncMock()
    monitor = CrisisMonitor(store, on_crisis)
    monitor.start()
    try:
        await store.update_ambient(emotional_tone="Motivated", energy=80)
        await store.update_ambient(last_topic="Career_Change")
        await monitor.drain()
    finally:
        await monitor.stop()

    on_crisis.assert_not_awaited()


async def test_monitor_survives_callback_error(store: MemoryStore) -> None:
    on_crisis = AsyncMock(side_effect=[RuntimeError("boom"), None])
    monitor = CrisisMonitor(store, on_crisis)
    monitor.start()
    try:
        await store.update_ambient(emotional_tone="Crisis")
        await store.update_ambient(emotional_tone="Crisis", energy=0)
        await monitor.drain()
        assert monitor.running
    finally:
        await monitor.stop()

    assert on_crisis.await_count == 2


async def test_stop_unsubscribes(store: MemoryStore) -> None:
    monitor = CrisisMonitor(store, AsyncMock())
    monitor.start()
    await monitor.stop()

    assert not monitor.running
    assert store._subscribers == []


async def test_start_twice_raises(store: MemoryStore) -> None:
    monitor = CrisisMonitor(store, AsyncMock())
    monitor.start()
    try:
        with pytest.raises(RuntimeError):
            monitor.start()
    finally:
        await monitor.stop()


async def test_check_runs_rules_once(store: MemoryStore) -> None:
    on_crisis = AsyncMock()
    monitor = CrisisMonitor(store, on_crisis)

    ambient = store.ambient.model_copy(update={"emotional_tone": "Crisis"})
    assert await monitor.check(ambient) == "Critical Distress/Crisis Signal (EIC)"
    on_crisis.assert_awaited_once()
