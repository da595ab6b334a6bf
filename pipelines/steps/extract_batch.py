from __future__ import annotations

import logging
from typing import List, Sequence

from models.record import Record, TaggedRecord
from pipelines.runner import RunContext
from ports.page_driver import PageDriverPort
from services import fingerprint
from utils.errors import PerItemExtractionError


logger = logging.getLogger(__name__)


class ExtractBatch:
    """Materialize records for a batch of card indices.

    A failure on one card never aborts the batch: it is logged and replaced
    with an `Error_Profile_<index>` placeholder, so the result always holds
    exactly one entry per requested index, in request order.
    """

    PROGRESS_EVERY = 5

    def __init__(self, driver: PageDriverPort) -> None:
        self.driver = driver

    def extract(self, indices: Sequence[int]) -> List[TaggedRecord]:
        total = len(indices)
        batch: List[TaggedRecord] = []

        for pos, index in enumerate(indices, start=1):
            try:
                raw = self.driver.extract_item(index)
                if raw is None:
                    raise PerItemExtractionError(index)
                record = raw.to_record()
                fp = fingerprint.compute(raw)
            except Exception as e:
                logger.error(
                    "Error extracting data from profile at index %d: %s", index, e,
                    extra={"step": "extract", "status": "placeholder", "index": index, "error": type(e).__name__},
                )
                record = Record.placeholder(index)
                # Tagged with its own identity; the real card stays unprocessed
                fp = fingerprint.compute(record)
            batch.append(TaggedRecord(index=index, fingerprint=fp, record=record))

            if total > 10 and pos % self.PROGRESS_EVERY == 0:
                logger.info("Processed %d/%d profiles in current batch", pos, total, extra={"step": "extract"})

        return batch

    def run(self, ctx: RunContext) -> RunContext:
        if not ctx.delta:
            return ctx
        ctx.records = self.extract(ctx.delta)
        placeholders = sum(1 for r in ctx.records if r.record.is_placeholder)
        ctx.meta["placeholders"] = int(ctx.meta.get("placeholders") or 0) + placeholders
        return ctx
