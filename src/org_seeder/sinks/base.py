"""
Storage sink interface consumed by ChunkedBulkWriter.

A sink exposes exactly two bulk operations. Connection handling, schema
and retries are the sink's own business.
"""

from abc import ABC, abstractmethod
from typing import Any, Sequence

from ..models import Identifier, Record


class Sink(ABC):
    """
    Abstract storage sink.

    Subclasses must:
    1. Insert a whole chunk in bulk_insert() as one batch and return ids
       in input order, or raise so that no id of the chunk is assumed stored
    2. Implement bulk_insert_edges() if they support edge mode
    """

    @abstractmethod
    def bulk_insert(self, kind: str, records: Sequence[Record]) -> list[Identifier]:
        """
        Insert records of one entity kind as one batch.

        Args:
            kind: Entity kind (Company, Branch, Department, Employee)
            records: Entity drafts

        Returns:
            Assigned identifiers, one per record, in input order
        """
        pass

    def bulk_insert_edges(self, edge_kind: str, edges: Sequence[dict[str, Any]]) -> None:
        """
        Insert edges of one kind as one batch.

        Args:
            edge_kind: e.g. "Company_Branch"
            edges: Dicts with "from" and "to" identifiers
        """
        raise NotImplementedError(f"{type(self).__name__} does not support edges")

    def close(self) -> None:
        """Release connections. No-op by default."""
        pass

    def __enter__(self) -> "Sink":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
