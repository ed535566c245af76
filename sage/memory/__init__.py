"""Memory store: audit trail, ambient context, insights, manifest and export."""

from sage.memory.kv import InMemoryKeyValueStore, KeyValueStore, SqliteKeyValueStore
from sage.memory.models import AmbientContext, AuditEvent, Manifest, MemoryInsight
from sage.memory.redaction import redact
from sage.memory.store import ExportKind, MemoryStore

__all__ = [
    "AmbientContext",
    "AuditEvent",
    "ExportKind",
    "InMemoryKeyValueStore",
    "KeyValueStore",
    "Manifest",
    "MemoryInsight",
    "MemoryStore",
    "SqliteKeyValueStore",
    "redact",
]
