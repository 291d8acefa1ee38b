"""
HierarchyGenerator - Drives the Company -> Branch -> Department -> Employee run.

Generation walks the fixed level table (models.LEVELS) breadth-first. Each
level keeps only the dense list of its stored ids; child n of a level
belongs to parent n // fanout, so parents are resolved by index and no
entity objects are retained between levels.

Per level:
1. Drafts are synthesized lazily parent by parent and prepared by the
   binder (reference mode sets the parent id field)
2. The writer flushes them in chunks through the sink
3. After each chunk the binder links (parent, child) pairs (edge mode
   writes edges) and counts are accumulated from the flush results

A level starts only after every id of its parent level is known. Zero
fan-out at any level leaves every level beneath it empty.

Usage:
    generator = HierarchyGenerator(InMemorySink())
    summary = generator.generate_all({"companyCount": 10})
"""

import logging
import threading
import time
from typing import Any, Iterator, Mapping, Sequence

from .binders import RelationshipBinder, make_binder
from .config import GenerationConfig
from .errors import ConfigError, GenerationCancelled, SeedError
from .factory import EntityFactory
from .models import LEVELS, Identifier, LevelSpec, Record, Summary
from .sinks.base import Sink
from .writer import Checkpoint, ChunkedBulkWriter, ProgressCallback

logger = logging.getLogger(__name__)


class HierarchyGenerator:
    """
    Orchestrates one hierarchy generation run per generate_all() call.

    The generator keeps no state between runs; a failed run must be
    restarted from scratch by the caller.

    Attributes:
        sink: Storage sink shared by every run
        factory: Entity factory (None = build a seeded one per run)
        progress: Called once per flushed chunk
        levels: Level table, root first
    """

    def __init__(
        self,
        sink: Sink,
        factory: EntityFactory | None = None,
        progress: ProgressCallback | None = None,
        levels: Sequence[LevelSpec] = LEVELS,
    ) -> None:
        self.sink = sink
        self.factory = factory
        self.progress = progress
        self.levels = tuple(levels)

    def generate_all(
        self,
        config: GenerationConfig | Mapping[str, Any] | None = None,
        timeout: float | None = None,
        cancel_event: threading.Event | None = None,
    ) -> Summary:
        """
        Generate and store the full hierarchy.

        Args:
            config: GenerationConfig or request-style mapping (None = defaults)
            timeout: Overall deadline in seconds; checked before every entity flush
            cancel_event: When set, the run stops before its next entity flush

        Returns:
            Summary with per-kind counts, edge count (edge mode) and elapsed ms

        Raises:
            ConfigError: Invalid config, raised before any write
            SinkError: A chunk failed; ``summary`` holds the partial counts
            GenerationCancelled: Deadline or cancel event; ``summary`` holds
                the partial counts
        """
        if not isinstance(config, GenerationConfig):
            config = GenerationConfig.from_mapping(config)
        if timeout is not None and timeout < 0:
            raise ConfigError(f"timeout must be >= 0, got {timeout}")

        factory = self.factory or EntityFactory(seed=config.seed)
        writer = ChunkedBulkWriter(
            self.sink,
            chunk_size=config.chunk_size,
            progress=self.progress,
            checkpoint=_make_checkpoint(timeout, cancel_event),
        )
        binder = make_binder(config.mode, writer)
        summary = Summary(edges=0 if binder.writes_edges else None)

        logger.info(
            "Generating hierarchy (%s mode): %s",
            config.mode,
            config.expected_counts(),
        )
        start = time.perf_counter()
        try:
            parent_ids: list[Identifier] = [None]
            for depth, level in enumerate(self.levels):
                keep_ids = depth < len(self.levels) - 1
                parent_ids = self._generate_level(
                    level,
                    parent_ids,
                    config.fanout(level.fanout_field),
                    factory,
                    writer,
                    binder,
                    summary,
                    keep_ids,
                )
        except SeedError as e:
            summary.elapsed_ms = (time.perf_counter() - start) * 1000
            e.summary = summary
            logger.error("Generation stopped: %s (partial: %s)", e, summary.as_dict()["stats"])
            raise

        summary.elapsed_ms = (time.perf_counter() - start) * 1000
        summary.completed = True
        logger.info("Generation complete in %.1f ms: %s", summary.elapsed_ms, summary.as_dict()["stats"])
        return summary

    def _generate_level(
        self,
        level: LevelSpec,
        parent_ids: list[Identifier],
        fanout: int,
        factory: EntityFactory,
        writer: ChunkedBulkWriter,
        binder: RelationshipBinder,
        summary: Summary,
        keep_ids: bool,
    ) -> list[Identifier]:
        """Write one level and return its ids (empty when keep_ids is False)."""
        if not parent_ids or fanout == 0:
            logger.info("Skipping %s: nothing to generate", level.label)
            return []

        logger.info("Generating %s (%d x %d)...", level.label, len(parent_ids), fanout)

        def on_flush(offset: int, ids: list[Identifier]) -> None:
            summary.counts[level.kind] = summary.counts.get(level.kind, 0) + len(ids)
            if level.is_root:
                return
            pairs = [
                (parent_ids[(offset + i) // fanout], child_id)
                for i, child_id in enumerate(ids)
            ]
            edges_written = binder.link(level, pairs)
            if summary.edges is not None:
                summary.edges += edges_written

        drafts = self._drafts(level, parent_ids, fanout, factory, binder)
        return writer.write_all(level.kind, drafts, on_flush=on_flush, keep_ids=keep_ids)

    @staticmethod
    def _drafts(
        level: LevelSpec,
        parent_ids: list[Identifier],
        fanout: int,
        factory: EntityFactory,
        binder: RelationshipBinder,
    ) -> Iterator[Record]:
        for parent_id in parent_ids:
            for index in range(fanout):
                draft = factory.create(level.kind, index=index, owner_id=parent_id)
                if not level.is_root:
                    draft = binder.prepare(level, parent_id, draft)
                yield draft


def _make_checkpoint(
    timeout: float | None,
    cancel_event: threading.Event | None,
) -> Checkpoint | None:
    """Build the pre-flush check for a run, or None when nothing can cancel it."""
    if timeout is None and cancel_event is None:
        return None
    deadline = time.monotonic() + timeout if timeout is not None else None

    def checkpoint(kind: str) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise GenerationCancelled(kind, "cancel event set")
        if deadline is not None and time.monotonic() >= deadline:
            raise GenerationCancelled(kind, f"deadline of {timeout}s exceeded")

    return checkpoint


def generate_all(
    sink: Sink,
    config: GenerationConfig | Mapping[str, Any] | None = None,
    **kwargs: Any,
) -> Summary:
    """Run a HierarchyGenerator once against sink."""
    return HierarchyGenerator(sink).generate_all(config, **kwargs)
