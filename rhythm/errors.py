"""Exception types raised by the scheduling engine."""

from __future__ import annotations


class RhythmError(Exception):
    """Base class for all engine errors."""


class ValidationError(RhythmError, ValueError):
    """Input rejected before any side effect (bad time range, limits, ...)."""


class NotFoundError(RhythmError, LookupError):
    """Record absent, or not owned by the caller.

    Both cases produce the same error.
    """

    def __init__(self, kind: str, record_id: str) -> None:
        super().__init__(f"{kind} not found: {record_id}")
        self.kind = kind
        self.record_id = record_id


class CorruptRecordError(RhythmError):
    """Stored metadata does not parse into its typed projection."""

    def __init__(self, record_id: str, reason: str) -> None:
        super().__init__(f"record {record_id} has malformed metadata: {reason}")
        self.record_id = record_id
        self.reason = reason
