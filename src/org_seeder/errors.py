"""
Exceptions raised by the hierarchy generator.

Every error carries the partial Summary reached before the failure
(``summary`` is None for errors raised before any write).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import Summary


class SeedError(Exception):
    """Base class for generation failures."""

    def __init__(self, message: str, summary: Summary | None = None):
        super().__init__(message)
        self.summary = summary


class ConfigError(SeedError, ValueError):
    """Raised when a generation config is invalid. No writes have happened."""

    pass


class SinkError(SeedError):
    """
    Raised when the storage sink fails to write a chunk.

    Attributes:
        kind: Entity kind (or edge kind) being written
        chunk_index: Zero-based index of the failing chunk within its level
    """

    def __init__(
        self,
        kind: str,
        chunk_index: int,
        reason: str,
        summary: Summary | None = None,
    ):
        self.kind = kind
        self.chunk_index = chunk_index
        self.reason = reason
        super().__init__(
            f"Bulk insert of {kind} chunk {chunk_index} failed: {reason}", summary
        )


class GenerationCancelled(SeedError):
    """
    Raised when the run deadline passes or the cancel event is set.

    No further entity flushes are issued; data already written stays in
    place. The edges of a child chunk that was stored before the check are
    still written, so no stored child is left without its parent edge.
    """

    def __init__(self, kind: str, reason: str, summary: Summary | None = None):
        self.kind = kind
        self.reason = reason
        super().__init__(f"Generation cancelled while writing {kind}: {reason}", summary)
