"""Single request/response model call.

The model is an opaque, fallible dependency: one call per turn, no tools,
no streaming, no retries. Every failure surfaces as ``ModelError``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

import anthropic

from sage.config import settings
from sage.errors import ModelError

logger = logging.getLogger(__name__)

_client: anthropic.AsyncAnthropic | None = None


@dataclass
class ModelReply:
    text: str
    model: str


class ModelClient(Protocol):
    async def call_model(
        self,
        system: str | list[dict[str, Any]],
        user: str,
        history: list[dict[str, str]],
    ) -> ModelReply: ...


def _get_client() -> anthropic.AsyncAnthropic:
    """Lazily initialize the Anthropic client."""
    global _client  # noqa: PLW0603
    if _client is None:
        _client = anthropic.AsyncAnthropic(api_key=settings.anthropic_api_key)
    return _client


def _reply_text(content: list[Any]) -> str:
    return "".join(block.text for block in content if getattr(block, "type", "text") == "text")


class AnthropicModelClient:
    """ModelClient backed by the Claude Messages API."""

    def __init__(self, model: str | None = None, max_tokens: int | None = None) -> None:
        self._model = model or settings.claude_model
        self._max_tokens = max_tokens or settings.model_max_tokens

    async def call_model(
        self,
        system: str | list[dict[str, Any]],
        user: str,
        history: list[dict[str, str]],
    ) -> ModelReply:
        """Send *history* plus the new *user* message and return the reply text.

        History entries must already be in Claude API format
        (``{"role": "user" | "assistant", "content": str}``).
        """
        messages = [dict(m) for m in history]
        if messages and messages[-1]["role"] == "user":
            messages[-1]["content"] += f"\n\n{user}"
        else:
            messages.append({"role": "user", "content": user})
        try:
            response = await _get_client().messages.create(
                model=self._model,
                max_tokens=self._max_tokens,
                system=system,
                messages=messages,
            )
        except Exception as exc:
            logger.exception("Model call failed")
            raise ModelError(f"Model call failed: {exc}") from exc

        text = _reply_text(response.content)
        logger.debug("Model reply (%d chars) from %s", len(text), response.model)
        return ModelReply(text=text, model=response.model)
