from __future__ import annotations

import logging
import random
import time
from typing import Callable, Optional

from pipelines.runner import RunContext
from ports.page_driver import PageDriverPort


logger = logging.getLogger(__name__)


class LoadMore:
    """Scroll to the bottom, wait for rendering and record whether the page grew.

    After the height comparison a short randomized pause follows
    (`jitter_base + uniform(0, jitter_spread)` seconds).
    """

    def __init__(
        self,
        driver: PageDriverPort,
        render_wait: float = 2.0,
        jitter_base: float = 1.0,
        jitter_spread: float = 0.5,
        sleep: Callable[[float], None] = time.sleep,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.driver = driver
        self.render_wait = render_wait
        self.jitter_base = jitter_base
        self.jitter_spread = jitter_spread
        self.sleep = sleep
        self.rng = rng or random.Random()

    def jitter(self) -> float:
        return self.jitter_base + self.rng.uniform(0, self.jitter_spread)

    def run(self, ctx: RunContext) -> RunContext:
        previous_height = self.driver.current_height()
        self.driver.trigger_load_more()
        self.sleep(self.render_wait)
        new_height = self.driver.current_height()
        ctx.height_changed = new_height != previous_height

        scrolls = int(ctx.meta.get("scrolls") or 0) + 1
        ctx.meta["scrolls"] = scrolls
        logger.info(
            "Scroll #%d, total profiles processed: %s", scrolls, ctx.meta.get("records_written") or 0,
            extra={"step": "load_more", "status": "grew" if ctx.height_changed else "unchanged"},
        )

        self.sleep(self.jitter())
        return ctx
