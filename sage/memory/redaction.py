"""Redaction of sensitive fields before export."""

from __future__ import annotations

import copy
import re
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable

DEFAULT_MARKER = "[REDACTED]"
EMAIL_MARKER = "[REDACTED_EMAIL]"

_EMAIL_RE = re.compile(r"[\w.+-]+@[\w-]+(?:\.[\w-]+)+")


def _redact(value: Any, rules: tuple[str, ...], marker: str) -> Any:
    if isinstance(value, dict):
        out: dict[Any, Any] = {}
        for key, inner in value.items():
            if any(rule in str(key).lower() for rule in rules):
                out[key] = marker
            else:
                out[key] = _redact(inner, rules, marker)
        return out
    if isinstance(value, list | tuple):
        return [_redact(item, rules, marker) for item in value]
    if isinstance(value, str):
        return _EMAIL_RE.sub(EMAIL_MARKER, value)
    return value


def redact(
    record: Any,
    rules: Iterable[str],
    *,
    marker: str = DEFAULT_MARKER,
) -> Any:
    """Return a redacted deep copy of *record*.

    Any mapping key containing one of *rules* (case-insensitive) has its
    value replaced by *marker*. E-mail addresses inside string values are
    replaced by ``[REDACTED_EMAIL]``. Recurses into dicts and lists; the
    input is never mutated. Idempotent: ``redact(redact(x)) == redact(x)``.
    """
    normalized = tuple(r.lower() for r in rules if r)
    return _redact(copy.deepcopy(record), normalized, marker)
