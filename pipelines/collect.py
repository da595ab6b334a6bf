"""
Incremental collection loop.

Each iteration runs the step pipeline probe -> extract -> commit -> load more
over one shared `RunContext`, then feeds the iteration facts to the
convergence detector. Progress is checkpointed after every committed batch,
so an interrupted run resumes without re-appending saved profiles.
"""
from __future__ import annotations

import logging
import random
import time
from typing import Any, Callable, Dict, Optional

from config.settings import Settings, get_settings
from models.checkpoint import Checkpoint
from models.credentials import Credentials
from models.record import COLUMNS
from pipelines.runner import Pipeline, RunContext
from pipelines.steps.commit_batch import CommitBatch
from pipelines.steps.extract_batch import ExtractBatch
from pipelines.steps.load_more import LoadMore
from pipelines.steps.probe_delta import ProbeDelta
from ports.page_driver import PageDriverPort
from ports.sink import SinkPort
from services.checkpoint_store import CheckpointStore
from services.convergence import ConvergenceDetector, ScanState
from utils.errors import FATAL_ERRORS, CheckpointIOError, SinkIOError


logger = logging.getLogger(__name__)


class IncrementalCollector:
    def __init__(
        self,
        driver: PageDriverPort,
        sink: SinkPort,
        store: CheckpointStore,
        settings: Optional[Settings] = None,
        ctx: Optional[RunContext] = None,
        sleep: Callable[[float], None] = time.sleep,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.driver = driver
        self.sink = sink
        self.store = store
        self.ctx = ctx or RunContext()
        self.sleep = sleep
        self.detector = ConvergenceDetector(max_stalls=self.settings.max_stall_count)
        self.pipeline = Pipeline([
            ProbeDelta(driver),
            ExtractBatch(driver),
            CommitBatch(sink, store),
            LoadMore(
                driver,
                render_wait=self.settings.render_wait_seconds,
                jitter_base=self.settings.jitter_base_seconds,
                jitter_spread=self.settings.jitter_spread_seconds,
                sleep=sleep,
                rng=rng,
            ),
        ])

    # -- setup -----------------------------------------------------------

    def open_listing(self, url: str, credentials: Optional[Credentials] = None) -> None:
        """Log in (when credentials are given), open the listing and wait for its container."""
        if credentials is not None:
            logger.info("Navigating to login page...", extra={"step": "login"})
            self.driver.navigate(self.settings.login_url)
            self.driver.login(credentials)
        logger.info("Navigating to directory: %s", url, extra={"step": "navigate"})
        self.driver.navigate(url)
        self.driver.wait_for_element(self.settings.container_selector, self.settings.container_timeout_ms)
        try:
            if self.driver.dismiss_notification():
                logger.info("Notification popup detected and closed", extra={"step": "navigate"})
                self.sleep(1.0)
        except Exception as e:
            logger.info("No notification popup or error handling it: %s", e, extra={"step": "navigate"})

    def load_checkpoint(self) -> Checkpoint:
        self.ctx.checkpoint = self.store.load()
        return self.ctx.checkpoint

    def prepare_sink(self) -> str:
        """Reuse the sink named by the checkpoint, or start a new one.

        A checkpoint pointing at a sink that no longer exists is discarded:
        its fingerprints describe records that are gone.
        """
        ctx = self.ctx
        recorded = ctx.checkpoint.sink_id
        if recorded and self.sink.exists(recorded):
            logger.info("Resuming into existing output %s", recorded, extra={"step": "prepare", "status": "resume"})
            ctx.sink_id = recorded
            return recorded

        if recorded:
            logger.warning(
                "Output %s from checkpoint no longer exists; starting fresh", recorded,
                extra={"step": "prepare", "status": "reset"},
            )
            ctx.checkpoint = Checkpoint().with_limit(self.store.history_limit)

        ctx.sink_id = self.sink.create_with_header(COLUMNS)
        ctx.checkpoint.sink_id = ctx.sink_id
        self._save_quietly()
        return ctx.sink_id

    def catch_up(self) -> int:
        """Re-scroll towards the previous position after a resume. Best effort only."""
        last_index = self.ctx.checkpoint.last_index
        if last_index <= 0:
            return 0
        per_scroll = max(1, self.settings.resume_items_per_scroll)
        budget = min(self.settings.resume_max_scrolls, last_index // per_scroll + 1)
        logger.info(
            "Resuming from index %d, catching up with up to %d scrolls", last_index, budget,
            extra={"step": "catch_up"},
        )
        scrolls = 0
        for _ in range(budget):
            if self.ctx.cancelled:
                break
            if self.driver.query_item_count() > last_index:
                break
            self.driver.trigger_load_more()
            self.sleep(self.settings.render_wait_seconds)
            scrolls += 1
        visible = self.driver.query_item_count()
        if visible <= last_index:
            logger.warning(
                "Catch-up ended with %d visible profiles (checkpoint at %d); continuing anyway", visible, last_index,
                extra={"step": "catch_up", "status": "misaligned"},
            )
        return scrolls

    # -- main loop -------------------------------------------------------

    def scan(self) -> ScanState:
        ctx = self.ctx
        iterations = int(ctx.meta.get("iterations") or 0)
        while not ctx.cancelled:
            ctx = self.pipeline.run(ctx)
            iterations += 1
            ctx.meta["iterations"] = iterations

            if int(ctx.meta.get("consecutive_sink_failures") or 0) >= self.settings.max_sink_failures:
                raise SinkIOError(
                    f"Sink append failed {ctx.meta['consecutive_sink_failures']} times in a row; aborting"
                )

            state = self.detector.observe(ctx.height_changed, ctx.new_items)
            if state is ScanState.DONE:
                break
        self.ctx = ctx
        return self.detector.state

    def run(self, url: Optional[str] = None, credentials: Optional[Credentials] = None) -> Dict[str, Any]:
        ctx = self.ctx
        self.load_checkpoint()
        try:
            if url:
                self.open_listing(url, credentials)
            self.prepare_sink()
            self.catch_up()
            logger.info("Beginning incremental scroll, scrape, and save...", extra={"step": "scan"})
            state = self.scan()
        except Exception as e:
            extra = {"step": "run", "status": "fatal", "error": type(e).__name__}
            if isinstance(e, FATAL_ERRORS):
                logger.error("Collection aborted: %s", e, extra=extra)
            else:
                # Driver/browser failures outside the typed taxonomy are fatal as well
                logger.exception("Unexpected error during collection", extra=extra)
            if not ctx.checkpoint.is_pristine():
                self._save_quietly()
            raise

        if state is ScanState.DONE:
            ctx.finished = True
            try:
                self.store.clear()
            except CheckpointIOError as e:
                logger.warning("Could not remove checkpoint", extra={"step": "run", "error": str(e)})
            logger.info(
                "Scraping completed successfully! Total profiles scraped: %s", ctx.meta.get("records_written") or 0,
                extra={"step": "run", "status": "done"},
            )
        return self.summary()

    def summary(self) -> Dict[str, Any]:
        ctx = self.ctx
        return {
            "state": self.detector.state.value,
            "cancelled": ctx.cancelled,
            "sink_id": ctx.sink_id,
            "records_written": int(ctx.meta.get("records_written") or 0),
            "placeholders": int(ctx.meta.get("placeholders") or 0),
            "sink_failures": int(ctx.meta.get("sink_failures") or 0),
            "iterations": int(ctx.meta.get("iterations") or 0),
            "scrolls": int(ctx.meta.get("scrolls") or 0),
            "last_index": ctx.checkpoint.last_index,
        }

    def _save_quietly(self) -> None:
        try:
            self.store.save(self.ctx.checkpoint)
        except CheckpointIOError as e:
            logger.warning(
                "Checkpoint save failed; continuing with in-memory progress",
                extra={"step": "checkpoint", "status": "save_failed", "error": str(e)},
            )
