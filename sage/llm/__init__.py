"""External language-model call."""

from sage.llm.client import AnthropicModelClient, ModelClient, ModelReply
from sage.llm.prompt import build_system_prompt

__all__ = ["AnthropicModelClient", "ModelClient", "ModelReply", "build_system_prompt"]
