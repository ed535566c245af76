"""System prompt assembly from an ACF preparation."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sage.acf.models import Preparation
    from sage.memory.models import MemoryInsight

OUTPUT_INSTRUCTIONS = """# Reply Format

Reply conversationally in plain prose. Offer reflection, not directives.
Never give financial, medical, or legal advice, and never pressure the user.
Do not repeat personal details (emails, phone numbers, ID numbers) back to the user.

End every reply with a fenced JSON block describing your stance:

```json
{"tone": "calm", "action": {"label": "Reflection", "cost": 0}}
```

`tone` is one of calm, encouraging, neutral, urgent. `action.cost` is the
monetary cost of what you suggest, 0 if nothing needs to be bought."""

_MAX_ANCHOR = 200


def _format_anchors(prior: list[MemoryInsight]) -> str:
    """Format recalled insights as anchors for the model."""
    if not prior:
        return ""
    lines = ["## Prior Reflections\n"]
    for insight in prior:
        content = insight.content
        if len(content) > _MAX_ANCHOR:
            content = content[:_MAX_ANCHOR] + "…"
        lines.append(f"- [{insight.timestamp[:10]}] {content}")
    return "\n".join(lines)


def build_system_prompt(preparation: Preparation) -> list[dict]:
    """Assemble the system prompt as Claude content blocks.

    The static output instructions get ``cache_control``; the per-turn ACF
    preamble and recalled anchors follow as separate uncached blocks.
    """
    blocks: list[dict] = [
        {
            "type": "text",
            "text": OUTPUT_INSTRUCTIONS,
            "cache_control": {"type": "ephemeral"},
        },
        {"type": "text", "text": preparation.preamble},
    ]
    anchors = _format_anchors(preparation.prior)
    if anchors:
        blocks.append({"type": "text", "text": anchors})
    return blocks
