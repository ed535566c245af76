"""Split a model reply into conversational text and a trailing JSON hint block."""

from __future__ import annotations

import json
import logging
import re

from sage.acf.models import Guidance

logger = logging.getLogger(__name__)

_FENCED_JSON = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```\s*$", re.DOTALL)


def extract_guidance(text: str) -> Guidance:
    """Parse *text* into a Guidance.

    The model is asked to end its reply with a fenced JSON object carrying
    ``tone`` and ``action``. A missing or malformed block leaves the
    defaults in place and keeps the whole text as the stance.
    """
    text = (text or "").strip()
    match = _FENCED_JSON.search(text)
    if not match:
        return Guidance(stance=text)

    stance = text[: match.start()].strip()
    try:
        data = json.loads(match.group(1))
    except json.JSONDecodeError:
        logger.debug("Ignoring malformed guidance block")
        return Guidance(stance=stance)
    if not isinstance(data, dict):
        return Guidance(stance=stance)

    guidance = Guidance(stance=stance)
    if isinstance(data.get("tone"), str):
        guidance.tone = data["tone"]
    action = data.get("action")
    if isinstance(action, dict):
        guidance.action = {"label": "Reflection", "cost": 0, **action}
    return guidance
