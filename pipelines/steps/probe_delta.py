from __future__ import annotations

import logging

from pipelines.runner import RunContext
from ports.page_driver import PageDriverPort
from services import fingerprint


logger = logging.getLogger(__name__)


class ProbeDelta:
    """Find visible cards that still need extraction.

    Only cards at or beyond `ctx.known_count` are probed. A card is in the
    delta when its index is past the checkpoint's `last_index` or its
    fingerprint has not been processed yet.
    """

    def __init__(self, driver: PageDriverPort) -> None:
        self.driver = driver

    def run(self, ctx: RunContext) -> RunContext:
        ctx.reset_iteration()
        ctx.visible_count = self.driver.query_item_count()
        probed = self.driver.query_item_fingerprint_batch(ctx.known_count)

        checkpoint = ctx.checkpoint
        delta = []
        for raw in probed:
            fp = fingerprint.compute(raw)
            if raw.index > checkpoint.last_index or not checkpoint.has(fp):
                delta.append(raw.index)
        ctx.delta = sorted(set(delta))

        logger.info(
            "Found %d new profiles to scrape in this batch (%d visible)",
            len(ctx.delta), ctx.visible_count,
            extra={"step": "probe", "batch": len(ctx.delta)},
        )
        return ctx
