"""Shared test fixtures."""

from typing import Any
from unittest.mock import AsyncMock

import pytest

from sage.acf import ConsentEngine, ContinuityEngine
from sage.bot.orchestrator import TurnOrchestrator
from sage.bot.session import Conversation
from sage.errors import StorageFault
from sage.llm.client import ModelReply
from sage.memory import InMemoryKeyValueStore, MemoryStore
from sage.sentinel import Sentinel


class FlakyKeyValueStore(InMemoryKeyValueStore):
    """In-memory store whose writes can be switched to fail."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_writes = False

    async def set(self, key: str, value: Any) -> None:
        if self.fail_writes:
            msg = f"disk full writing {key}"
            raise StorageFault(msg)
        await super().set(key, value)


@pytest.fixture
def kv() -> FlakyKeyValueStore:
    return FlakyKeyValueStore()


@pytest.fixture
async def store(kv: FlakyKeyValueStore) -> MemoryStore:
    """A loaded MemoryStore over an in-memory backend."""
    s = MemoryStore(kv, audit_limit=200)
    await s.load()
    return s


@pytest.fixture
def sentinel(store: MemoryStore) -> Sentinel:
    return Sentinel(store)


@pytest.fixture
def consent(store: MemoryStore) -> ConsentEngine:
    return ConsentEngine(store, review_days=90)


@pytest.fixture
def acf(store: MemoryStore, consent: ConsentEngine) -> ContinuityEngine:
    return ContinuityEngine(store, consent, prior_limit=8, trajectory_window=10)


@pytest.fixture
def model() -> AsyncMock:
    """A ModelClient whose reply can be changed per test."""
    client = AsyncMock()
    client.call_model.return_value = ModelReply(
        text='That sounds like a meaningful step.\n\n```json\n{"tone": "calm"}\n```',
        model="claude-test-model",
    )
    return client


@pytest.fixture
def conversation() -> Conversation:
    return Conversation(window_size=50)


@pytest.fixture
def orchestrator(
    store: MemoryStore,
    sentinel: Sentinel,
    acf: ContinuityEngine,
    consent: ConsentEngine,
    model: AsyncMock,
    conversation: Conversation,
) -> TurnOrchestrator:
    return TurnOrchestrator(
        store,
        sentinel,
        acf,
        consent,
        model,
        conversation,
        session_id="session-1",
        trajectory_window=10,
    )
