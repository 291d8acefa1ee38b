"""
ChunkedBulkWriter - Memory-bounded bulk inserts through a storage sink.

Records are consumed lazily and flushed in contiguous chunks of at most
chunk_size, one sink call per chunk. Only the current chunk is held in
memory, so a level with millions of entities never materializes at once.

Usage:
    writer = ChunkedBulkWriter(sink, chunk_size=1000, progress=print)
    ids = writer.write_all("Company", drafts)
    writer.write_edges("Company_Branch", edges)

Failure contract: a failing chunk raises SinkError immediately. Chunks
flushed before it stay persisted (no rollback).
"""

import logging
from itertools import islice
from typing import Callable, Iterable, Iterator, Sequence, TypeVar

from .config import DEFAULT_CHUNK_SIZE
from .errors import ConfigError, SinkError
from .models import Edge, Identifier, ProgressEvent, Record
from .sinks.base import Sink

logger = logging.getLogger(__name__)

T = TypeVar("T")

ProgressCallback = Callable[[ProgressEvent], None]

# Called with (offset of the chunk within the stream, ids of the chunk)
FlushCallback = Callable[[int, list[Identifier]], None]

# Called with the kind about to be flushed; raises to stop the run
Checkpoint = Callable[[str], None]


def chunked(items: Iterable[T], size: int) -> Iterator[list[T]]:
    """Yield contiguous lists of at most size items."""
    iterator = iter(items)
    while True:
        chunk = list(islice(iterator, size))
        if not chunk:
            return
        yield chunk


class ChunkedBulkWriter:
    """
    Partitions entity streams into chunks and flushes them through a Sink.

    Attributes:
        sink: Storage sink receiving bulk inserts
        chunk_size: Max records per sink call
        written: Running totals per entity kind and edge kind
    """

    def __init__(
        self,
        sink: Sink,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        progress: ProgressCallback | None = None,
        checkpoint: Checkpoint | None = None,
    ) -> None:
        """
        Initialize writer.

        Args:
            sink: Storage sink
            chunk_size: Max records per flush (>= 1)
            progress: Called once per flushed chunk
            checkpoint: Called before every entity flush; may raise GenerationCancelled
        """
        if isinstance(chunk_size, bool) or not isinstance(chunk_size, int) or chunk_size < 1:
            raise ConfigError(f"chunk_size must be an integer >= 1, got {chunk_size!r}")
        self.sink = sink
        self.chunk_size = chunk_size
        self.progress = progress
        self.checkpoint = checkpoint
        self.written: dict[str, int] = {}
        self.chunks: dict[str, int] = {}

    def write_all(
        self,
        kind: str,
        records: Iterable[Record],
        on_flush: FlushCallback | None = None,
        keep_ids: bool = True,
    ) -> list[Identifier]:
        """
        Insert all records, chunk by chunk.

        Args:
            kind: Entity kind passed to the sink
            records: Entity drafts, consumed lazily
            on_flush: Called after each chunk with (offset, chunk ids)
            keep_ids: Collect ids for the return value. When False the ids
                are only handed to on_flush and an empty list is returned.

        Returns:
            Sink-assigned ids in input order (one per record)

        Raises:
            SinkError: If a chunk insert fails or returns the wrong id count
            GenerationCancelled: If the checkpoint stops the run
        """
        all_ids: list[Identifier] = []
        offset = 0

        for chunk in chunked(records, self.chunk_size):
            chunk_index = self._next_chunk_index(kind)
            ids = self._flush(kind, chunk_index, chunk)
            self._record_progress(kind, chunk_index, len(chunk), is_edge=False)

            if on_flush is not None:
                on_flush(offset, ids)
            if keep_ids:
                all_ids.extend(ids)
            offset += len(chunk)

        logger.debug("Wrote %d %s records", offset, kind)
        return all_ids

    def write_edges(self, edge_kind: str, edges: Sequence[Edge]) -> int:
        """
        Insert edges chunk by chunk.

        Edges link children that are already stored, so the checkpoint is
        not consulted here; cancellation takes effect at the next entity
        flush and never leaves a stored child without its parent edge.

        Args:
            edge_kind: Edge kind, e.g. "Company_Branch"
            edges: Edges to insert

        Returns:
            Number of edges written
        """
        count = 0
        for chunk in chunked(edges, self.chunk_size):
            chunk_index = self._next_chunk_index(edge_kind)
            try:
                self.sink.bulk_insert_edges(edge_kind, [edge.as_record() for edge in chunk])
            except Exception as e:
                logger.error("Edge chunk %d of %s failed: %s", chunk_index, edge_kind, e)
                raise SinkError(edge_kind, chunk_index, str(e)) from e

            count += len(chunk)
            self._record_progress(edge_kind, chunk_index, len(chunk), is_edge=True)
        return count

    def _next_chunk_index(self, kind: str) -> int:
        """Chunk indexes count per kind across all calls on this writer."""
        index = self.chunks.get(kind, 0)
        self.chunks[kind] = index + 1
        return index

    def _flush(self, kind: str, chunk_index: int, chunk: list[Record]) -> list[Identifier]:
        """Send one chunk to the sink and check the returned ids."""
        if self.checkpoint is not None:
            self.checkpoint(kind)

        try:
            ids = list(self.sink.bulk_insert(kind, chunk))
        except Exception as e:
            logger.error("Chunk %d of %s failed: %s", chunk_index, kind, e)
            raise SinkError(kind, chunk_index, str(e)) from e

        if len(ids) != len(chunk):
            raise SinkError(
                kind,
                chunk_index,
                f"sink returned {len(ids)} ids for {len(chunk)} records",
            )
        return ids

    def _record_progress(self, kind: str, chunk_index: int, rows: int, is_edge: bool) -> None:
        total = self.written.get(kind, 0) + rows
        self.written[kind] = total
        logger.debug("Flushed %s chunk %d (%d rows, %d total)", kind, chunk_index, rows, total)
        if self.progress is not None:
            self.progress(
                ProgressEvent(
                    kind=kind,
                    chunk_index=chunk_index,
                    chunk_rows=rows,
                    written=total,
                    is_edge=is_edge,
                )
            )
