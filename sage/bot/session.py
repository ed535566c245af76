"""In-memory conversation record with sliding window and UI listeners."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sage.config import settings

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

API_ROLES = ("user", "assistant")


@dataclass
class ConversationEntry:
    """A single conversation entry as rendered by the UI."""

    role: str  # "user", "assistant" or "system"
    content: str
    timestamp: str = field(default_factory=lambda: datetime.now(UTC).isoformat())
    meta: dict[str, Any] = field(default_factory=dict)


@dataclass
class Conversation:
    """Conversation record for one session.

    ``entries`` keeps everything the UI has been shown, system notes
    included. Only user and assistant turns go to the model, trimmed to
    the sliding window.
    """

    entries: list[ConversationEntry] = field(default_factory=list)
    window_size: int = field(default_factory=lambda: settings.conversation_window_size)
    _listeners: list[Callable[[ConversationEntry], None]] = field(default_factory=list, repr=False)

    def add(self, role: str, content: str, meta: dict[str, Any] | None = None) -> ConversationEntry:
        """Append an entry and notify listeners."""
        entry = ConversationEntry(role=role, content=content, meta=meta or {})
        self.entries.append(entry)
        for listener in list(self._listeners):
            listener(entry)
        return entry

    def system(self, content: str, **meta: Any) -> ConversationEntry:
        return self.add("system", content, meta)

    def subscribe(self, listener: Callable[[ConversationEntry], None]) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Callable[[ConversationEntry], None]) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def clear(self) -> int:
        """Clear all entries. Returns the count of cleared entries."""
        count = len(self.entries)
        self.entries.clear()
        return count

    def system_notes(self) -> list[str]:
        return [e.content for e in self.entries if e.role == "system"]

    def to_api_messages(self) -> list[dict[str, str]]:
        """Format the windowed user/assistant history for the Claude API.

        Consecutive entries with the same role (e.g. a user message whose
        reply was withheld) are merged, and the history always starts with
        a user turn.
        """
        turns = [e for e in self.entries if e.role in API_ROLES]
        if len(turns) > self.window_size:
            turns = turns[-self.window_size :]

        messages: list[dict[str, str]] = []
        for entry in turns:
            if not messages and entry.role != "user":
                continue
            if messages and messages[-1]["role"] == entry.role:
                messages[-1]["content"] += f"\n\n{entry.content}"
            else:
                messages.append({"role": entry.role, "content": entry.content})
        return messages
