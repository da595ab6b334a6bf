from __future__ import annotations

import logging
import time
from typing import List, Optional

from models.record import TaggedRecord
from pipelines.runner import RunContext
from ports.sink import SinkPort
from services.checkpoint_store import CheckpointStore
from utils.batch_logger import log_batch
from utils.errors import CheckpointIOError, SinkIOError


logger = logging.getLogger(__name__)


def filter_unprocessed(ctx: RunContext, records: List[TaggedRecord]) -> List[TaggedRecord]:
    """Drop records already in the checkpoint or repeated earlier in the batch."""
    fresh: List[TaggedRecord] = []
    batch_seen = set()
    for rec in records:
        if ctx.checkpoint.has(rec.fingerprint) or rec.fingerprint in batch_seen:
            continue
        batch_seen.add(rec.fingerprint)
        fresh.append(rec)
    return fresh


class CommitBatch:
    """Append surviving records to the sink, then mark them processed and save.

    Fingerprints and `last_index` are only updated after the sink append
    succeeded. On a sink failure nothing is marked and the probe window is
    left where it was, so the same cards are retried on the next iteration.
    """

    def __init__(self, sink: SinkPort, store: Optional[CheckpointStore] = None) -> None:
        self.sink = sink
        self.store = store

    def run(self, ctx: RunContext) -> RunContext:
        fresh = filter_unprocessed(ctx, ctx.records)
        skipped = len(ctx.records) - len(fresh)
        if skipped:
            logger.info("Skipped %d already processed profiles", skipped, extra={"step": "commit"})
        ctx.new_items = len(fresh)

        if not fresh:
            ctx.known_count = max(ctx.known_count, ctx.visible_count)
            return ctx

        ctx.committing = True
        started = time.monotonic()
        try:
            try:
                self.sink.append(ctx.sink_id, [r.record for r in fresh])
            except SinkIOError as e:
                ctx.commit_failed = True
                ctx.meta["sink_failures"] = int(ctx.meta.get("sink_failures") or 0) + 1
                ctx.meta["consecutive_sink_failures"] = int(ctx.meta.get("consecutive_sink_failures") or 0) + 1
                logger.error(
                    "Sink append failed; batch of %d left unprocessed", len(fresh),
                    extra={"step": "commit", "status": "sink_failed", "batch": len(fresh), "error": str(e)},
                )
                log_batch(
                    sink_id=ctx.sink_id, indices=[r.index for r in fresh], status="sink_failed",
                    duration_ms=int((time.monotonic() - started) * 1000), error=str(e),
                )
                return ctx

            ctx.checkpoint.remember(r.fingerprint for r in fresh)
            ctx.checkpoint.advance(max(ctx.delta))
            ctx.known_count = max(ctx.known_count, ctx.visible_count)
            ctx.meta["consecutive_sink_failures"] = 0
            ctx.meta["records_written"] = int(ctx.meta.get("records_written") or 0) + len(fresh)

            if self.store is not None:
                try:
                    self.store.save(ctx.checkpoint)
                except CheckpointIOError as e:
                    logger.warning(
                        "Checkpoint save failed; continuing with in-memory progress",
                        extra={"step": "commit", "status": "checkpoint_failed", "error": str(e)},
                    )

            logger.info(
                "Appended %d profiles to %s (total so far: %s)",
                len(fresh), ctx.sink_id, ctx.meta["records_written"],
                extra={"step": "commit", "status": "ok", "batch": len(fresh)},
            )
            log_batch(
                sink_id=ctx.sink_id, indices=[r.index for r in fresh], status="ok",
                duration_ms=int((time.monotonic() - started) * 1000), last_index=ctx.checkpoint.last_index,
            )
        finally:
            ctx.committing = False
        return ctx
