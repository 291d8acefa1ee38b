"""
In-memory sink for dry runs and tests.

Assigns serial integer ids per kind, like a PostgreSQL SERIAL column.
"""

from typing import Any, Sequence

from ..models import Identifier, Record
from .base import Sink


class InMemorySink(Sink):
    """
    Keeps every inserted record and edge in process memory.

    Attributes:
        records: Stored records per kind (each with its assigned "id")
        edges: Stored (from_id, to_id) pairs per edge kind
        batches: (kind, batch size) for every bulk call, in call order
    """

    def __init__(self, keep_records: bool = True) -> None:
        """
        Args:
            keep_records: Store record payloads. When False only counts
                are kept, which keeps dry runs of large configs small.
        """
        self.keep_records = keep_records
        self.records: dict[str, list[Record]] = {}
        self.edges: dict[str, list[tuple[Identifier, Identifier]]] = {}
        self.batches: list[tuple[str, int]] = []
        self._next_id: dict[str, int] = {}
        self._counts: dict[str, int] = {}

    def bulk_insert(self, kind: str, records: Sequence[Record]) -> list[Identifier]:
        start = self._next_id.get(kind, 1)
        ids = list(range(start, start + len(records)))
        self._next_id[kind] = start + len(records)
        self._counts[kind] = self._counts.get(kind, 0) + len(records)
        self.batches.append((kind, len(records)))

        if self.keep_records:
            stored = self.records.setdefault(kind, [])
            for record_id, record in zip(ids, records):
                stored.append({"id": record_id, **record})
        return ids

    def bulk_insert_edges(self, edge_kind: str, edges: Sequence[dict[str, Any]]) -> None:
        self._counts[edge_kind] = self._counts.get(edge_kind, 0) + len(edges)
        self.batches.append((edge_kind, len(edges)))

        if self.keep_records:
            self.edges.setdefault(edge_kind, []).extend(
                (edge["from"], edge["to"]) for edge in edges
            )

    def count(self, kind: str) -> int:
        """Number of records (or edges) stored under kind."""
        return self._counts.get(kind, 0)

    def get_stats(self) -> dict[str, int]:
        """Return counts for every kind seen."""
        return dict(self._counts)
