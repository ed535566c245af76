"""Core factory: wires the store, Sentinel, ACF, orchestrator and crisis monitor."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sage.acf import ConsentEngine, ContinuityEngine
from sage.bot.orchestrator import TurnOrchestrator
from sage.bot.session import Conversation
from sage.llm.client import AnthropicModelClient
from sage.memory import MemoryStore, SqliteKeyValueStore
from sage.sentinel import CrisisMonitor, Sentinel

if TYPE_CHECKING:
    from sage.llm.client import ModelClient
    from sage.memory import KeyValueStore

logger = logging.getLogger(__name__)


@dataclass
class SageCore:
    """Everything a UI collaborator needs, built around one shared store."""

    store: MemoryStore
    sentinel: Sentinel
    consent: ConsentEngine
    acf: ContinuityEngine
    conversation: Conversation
    orchestrator: TurnOrchestrator
    monitor: CrisisMonitor

    async def shutdown(self) -> None:
        await self.monitor.stop()


async def build_core(
    kv: KeyValueStore | None = None,
    model: ModelClient | None = None,
    *,
    session_id: str | None = None,
    constraints: dict[str, float] | None = None,
    start_monitor: bool = True,
) -> SageCore:
    """Construct and load the core.

    Defaults to the SQLite store at ``settings.database_path`` and the
    Anthropic model client. Must be called with an event loop running.
    """
    store = MemoryStore(kv or SqliteKeyValueStore())
    await store.load()

    sentinel = Sentinel(store)
    consent = ConsentEngine(store)
    acf = ContinuityEngine(store, consent)
    conversation = Conversation()
    orchestrator = TurnOrchestrator(
        store,
        sentinel,
        acf,
        consent,
        model or AnthropicModelClient(),
        conversation,
        session_id=session_id,
        constraints=constraints,
    )
    monitor = CrisisMonitor(store, orchestrator.handle_crisis_signal)
    if start_monitor:
        monitor.start()

    logger.info("Sage core ready (session %s)", orchestrator.session_id)
    return SageCore(
        store=store,
        sentinel=sentinel,
        consent=consent,
        acf=acf,
        conversation=conversation,
        orchestrator=orchestrator,
        monitor=monitor,
    )
