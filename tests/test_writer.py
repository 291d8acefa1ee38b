"""
Tests for ChunkedBulkWriter.

Verifies chunk partitioning, id ordering, lazy consumption, progress
reporting and the no-rollback failure contract.
"""

import pytest

from conftest import FailingSink, SinkFailure
from org_seeder import ChunkedBulkWriter, ConfigError, Edge, GenerationCancelled, InMemorySink, SinkError
from org_seeder.writer import chunked


def records(n: int) -> list[dict]:
    return [{"name": f"c{i}"} for i in range(n)]


class TestChunked:
    """Tests for the chunked() helper."""

    def test_partitions_contiguously(self):
        """Items are split into contiguous chunks, last one short."""
        assert list(chunked(range(7), 3)) == [[0, 1, 2], [3, 4, 5], [6]]

    def test_empty_input(self):
        """Empty input yields no chunks."""
        assert list(chunked([], 3)) == []


class TestWriteAll:
    """Tests for ChunkedBulkWriter.write_all."""

    def test_one_sink_call_per_chunk(self, sink):
        """2,500 records with chunk size 1,000 make three sink calls."""
        writer = ChunkedBulkWriter(sink, chunk_size=1000)
        ids = writer.write_all("Company", records(2500))

        assert sink.batches == [("Company", 1000), ("Company", 1000), ("Company", 500)]
        assert len(ids) == 2500

    def test_ids_in_input_order(self, sink):
        """Returned ids line up with the input records."""
        writer = ChunkedBulkWriter(sink, chunk_size=3)
        ids = writer.write_all("Company", records(8))

        stored = {r["id"]: r["name"] for r in sink.records["Company"]}
        assert [stored[i] for i in ids] == [f"c{i}" for i in range(8)]

    def test_consumes_lazily(self):
        """Only one chunk of the input is pulled before each flush."""
        pulled = 0

        def stream():
            nonlocal pulled
            for record in records(10):
                pulled += 1
                yield record

        pulled_at_flush = []

        class RecordingSink(InMemorySink):
            def bulk_insert(self, kind, recs):
                pulled_at_flush.append(pulled)
                return super().bulk_insert(kind, recs)

        ChunkedBulkWriter(RecordingSink(), chunk_size=4).write_all("Company", stream())
        assert pulled_at_flush == [4, 8, 10]

    def test_on_flush_receives_offsets(self, sink):
        """on_flush gets each chunk's offset and ids."""
        seen = []
        writer = ChunkedBulkWriter(sink, chunk_size=4)
        writer.write_all("Company", records(10), on_flush=lambda off, ids: seen.append((off, len(ids))))
        assert seen == [(0, 4), (4, 4), (8, 2)]

    def test_keep_ids_false(self, sink):
        """keep_ids=False returns no ids but still writes everything."""
        writer = ChunkedBulkWriter(sink, chunk_size=4)
        assert writer.write_all("Employee", records(10), keep_ids=False) == []
        assert sink.count("Employee") == 10

    def test_empty_input_writes_nothing(self, sink):
        """No records means no sink calls."""
        writer = ChunkedBulkWriter(sink)
        assert writer.write_all("Company", []) == []
        assert sink.batches == []

    def test_progress_per_chunk(self, sink):
        """Progress is published once per chunk with a running total."""
        events = []
        writer = ChunkedBulkWriter(sink, chunk_size=4, progress=events.append)
        writer.write_all("Branch", records(10))

        assert [(e.chunk_index, e.chunk_rows, e.written) for e in events] == [
            (0, 4, 4),
            (1, 4, 8),
            (2, 2, 10),
        ]
        assert all(e.kind == "Branch" and not e.is_edge for e in events)
        assert writer.written == {"Branch": 10}

    @pytest.mark.parametrize("chunk_size", [0, -1, 2.5, True])
    def test_invalid_chunk_size(self, sink, chunk_size):
        """chunk_size must be an integer >= 1."""
        with pytest.raises(ConfigError):
            ChunkedBulkWriter(sink, chunk_size=chunk_size)


class TestFailures:
    """Tests for the abort-without-rollback contract."""

    def test_failing_chunk_raises_sink_error(self):
        """Failure on the 2nd chunk names the kind and chunk index."""
        sink = FailingSink("Employee", fail_on_call=1)
        writer = ChunkedBulkWriter(sink, chunk_size=3)

        with pytest.raises(SinkError) as exc_info:
            writer.write_all("Employee", records(10))

        err = exc_info.value
        assert err.kind == "Employee"
        assert err.chunk_index == 1
        assert isinstance(err.__cause__, SinkFailure)

    def test_prior_chunks_stay_persisted(self):
        """Chunks flushed before the failure are not rolled back."""
        sink = FailingSink("Employee", fail_on_call=2)
        writer = ChunkedBulkWriter(sink, chunk_size=3)

        with pytest.raises(SinkError):
            writer.write_all("Employee", records(10))
        assert sink.count("Employee") == 6

    def test_wrong_id_count(self):
        """A sink returning fewer ids than records is a SinkError."""

        class ShortSink(InMemorySink):
            def bulk_insert(self, kind, recs):
                return super().bulk_insert(kind, recs)[:-1]

        with pytest.raises(SinkError, match="returned 2 ids for 3 records"):
            ChunkedBulkWriter(ShortSink(), chunk_size=3).write_all("Company", records(3))

    def test_checkpoint_stops_before_flush(self, sink):
        """A raising checkpoint prevents the next flush."""
        calls = []

        def checkpoint(kind):
            calls.append(kind)
            if len(calls) == 2:
                raise GenerationCancelled(kind, "test")

        writer = ChunkedBulkWriter(sink, chunk_size=2, checkpoint=checkpoint)
        with pytest.raises(GenerationCancelled):
            writer.write_all("Company", records(6))
        assert sink.count("Company") == 2


class TestWriteEdges:
    """Tests for ChunkedBulkWriter.write_edges."""

    def test_edges_are_chunked(self, sink):
        """Edges go through the sink in chunks and are counted."""
        edges = [Edge(1, i, "Company_Branch") for i in range(5)]
        writer = ChunkedBulkWriter(sink, chunk_size=2)

        assert writer.write_edges("Company_Branch", edges) == 5
        assert sink.batches == [("Company_Branch", 2), ("Company_Branch", 2), ("Company_Branch", 1)]
        assert sink.edges["Company_Branch"][0] == (1, 0)

    def test_edge_chunk_index_spans_calls(self):
        """Edge chunk indexes keep counting across write_edges calls."""
        sink = FailingSink("Company_Branch", fail_on_call=2)
        writer = ChunkedBulkWriter(sink, chunk_size=2)
        writer.write_edges("Company_Branch", [Edge(1, 1, "Company_Branch")] * 2)
        writer.write_edges("Company_Branch", [Edge(1, 2, "Company_Branch")] * 2)

        with pytest.raises(SinkError) as exc_info:
            writer.write_edges("Company_Branch", [Edge(1, 3, "Company_Branch")])
        assert exc_info.value.chunk_index == 2

    def test_edges_skip_checkpoint(self, sink):
        """Edges of a stored chunk are written even once the run is cancelled."""

        def checkpoint(kind):
            raise GenerationCancelled(kind, "test")

        writer = ChunkedBulkWriter(sink, chunk_size=2, checkpoint=checkpoint)
        assert writer.write_edges("Company_Branch", [Edge(1, i, "Company_Branch") for i in range(3)]) == 3
        assert sink.count("Company_Branch") == 3
