"""Exception types raised by the governance and memory core."""

from __future__ import annotations


class SageError(Exception):
    """Base class for core errors."""


class StorageFault(SageError):
    """A durable audit or memory write (or read) failed.

    Fatal for the current turn: the core must not claim a safety or memory
    action happened if it could not be recorded.
    """


class ModelError(SageError):
    """The external language model could not produce a reply."""
