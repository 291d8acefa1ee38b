"""
Relationship binders - how a child is tied to its parent.

Two strategies share one interface so the generator never branches on the
storage mode:

- ReferenceBinder: sets the parent id field on the draft before insert
- EdgeBinder: writes one edge per (parent, child) pair after the child
  chunk is stored

The generator calls prepare() on every draft before it is written and
link() on every flushed chunk.
"""

from abc import ABC, abstractmethod
from typing import Sequence

from .errors import ConfigError
from .models import Edge, Identifier, LevelSpec, Record
from .writer import ChunkedBulkWriter


class RelationshipBinder(ABC):
    """Strategy for encoding parent -> child relationships."""

    #: True when the binder writes edge records
    writes_edges: bool = False

    @abstractmethod
    def prepare(self, level: LevelSpec, parent_id: Identifier, draft: Record) -> Record:
        """Pre-insert hook. Returns the draft to write."""
        pass

    @abstractmethod
    def link(
        self,
        level: LevelSpec,
        pairs: Sequence[tuple[Identifier, Identifier]],
    ) -> int:
        """
        Post-insert hook for one flushed chunk.

        Args:
            level: Child level
            pairs: (parent_id, child_id) for every child in the chunk

        Returns:
            Number of edges written
        """
        pass


class ReferenceBinder(RelationshipBinder):
    """Stores the parent id in the child's parent field (FK style)."""

    def bind(self, parent_id: Identifier, draft: Record, level: LevelSpec) -> Record:
        if level.parent_field is None:
            raise ValueError(f"{level.kind} has no parent field")
        draft[level.parent_field] = parent_id
        return draft

    def prepare(self, level: LevelSpec, parent_id: Identifier, draft: Record) -> Record:
        return self.bind(parent_id, draft, level)

    def link(
        self,
        level: LevelSpec,
        pairs: Sequence[tuple[Identifier, Identifier]],
    ) -> int:
        return 0


class EdgeBinder(RelationshipBinder):
    """Writes Edge records through the chunked writer (graph style)."""

    writes_edges = True

    def __init__(self, writer: ChunkedBulkWriter) -> None:
        self.writer = writer

    def bind(self, parent_id: Identifier, child_id: Identifier, kind: str) -> Edge:
        return Edge(from_id=parent_id, to_id=child_id, kind=kind)

    def prepare(self, level: LevelSpec, parent_id: Identifier, draft: Record) -> Record:
        return draft

    def link(
        self,
        level: LevelSpec,
        pairs: Sequence[tuple[Identifier, Identifier]],
    ) -> int:
        if level.edge_kind is None:
            raise ValueError(f"{level.kind} has no parent to link to")
        edges = [self.bind(parent_id, child_id, level.edge_kind) for parent_id, child_id in pairs]
        return self.writer.write_edges(level.edge_kind, edges)


def make_binder(mode: str, writer: ChunkedBulkWriter) -> RelationshipBinder:
    """
    Select the binder for a storage mode.

    Args:
        mode: "reference" or "edge"
        writer: Writer used by EdgeBinder to flush edges

    Returns:
        RelationshipBinder instance
    """
    if mode == "reference":
        return ReferenceBinder()
    if mode == "edge":
        return EdgeBinder(writer)
    raise ConfigError(f"Unknown relationship mode: {mode!r}")
