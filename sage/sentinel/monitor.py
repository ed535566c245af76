"""Passive crisis monitor.

Consumes ambient-context change notifications from the memory store and
re-runs the Sentinel's passive rules on every snapshot, independent of
whether the user is sending a message. Risk can rise without new text,
e.g. tone degrading across repeated turns.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING

from sage.sentinel.agent import assess_signals

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from sage.memory.models import AmbientContext
    from sage.memory.store import MemoryStore

logger = logging.getLogger(__name__)


class CrisisMonitor:
    """Background task that turns ambient snapshots into crisis signals.

    ``on_crisis`` receives the crisis reason; deciding whether to escalate
    (e.g. skipping when the conversation is already paused) is the
    callback's job.
    """

    def __init__(
        self,
        store: MemoryStore,
        on_crisis: Callable[[str], Awaitable[None]],
    ) -> None:
        self._store = store
        self._on_crisis = on_crisis
        self._queue: asyncio.Queue[AmbientContext] | None = None
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        """Subscribe to the store and spawn the monitor loop."""
        if self.running:
            msg = "CrisisMonitor is already running"
            raise RuntimeError(msg)
        self._queue = self._store.subscribe()
        self._task = asyncio.ensure_future(self._run(self._queue))
        logger.info("Crisis monitor started")
        return self._task

    async def stop(self) -> None:
        """Cancel the loop and unsubscribe."""
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        if self._queue is not None:
            self._store.unsubscribe(self._queue)
            self._queue = None
        logger.info("Crisis monitor stopped")

    async def drain(self) -> None:
        """Wait until every snapshot queued so far has been processed."""
        if self._queue is not None:
            await self._queue.join()

    async def check(self, ambient: AmbientContext) -> str | None:
        """Run the passive rules once and fire ``on_crisis`` on a match."""
        reason = assess_signals(ambient.emotional_tone, ambient.friction_count)
        if reason is not None:
            logger.warning("Passive monitor detected: %s", reason)
            await self._on_crisis(reason)
        return reason

    async def _run(self, queue: asyncio.Queue[AmbientContext]) -> None:
        while True:
            ambient = await queue.get()
            try:
                await self.check(ambient)
            except Exception:
                logger.exception("Crisis monitor check failed")
            finally:
                queue.task_done()
