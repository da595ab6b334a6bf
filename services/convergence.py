from __future__ import annotations

import logging
from enum import Enum


logger = logging.getLogger(__name__)


class ScanState(str, Enum):
    SCANNING = "scanning"
    STALLED = "stalled"
    DONE = "done"


class ConvergenceDetector:
    """Decides when the listing has stopped producing content.

    An iteration stalls when the page height did not change and no new items
    were found. `max_stalls` consecutive stalls end the scan; any progress
    resets the counter.
    """

    def __init__(self, max_stalls: int = 5) -> None:
        self.max_stalls = max_stalls
        self.stall_count = 0
        self.state = ScanState.SCANNING

    @property
    def done(self) -> bool:
        return self.state is ScanState.DONE

    def observe(self, height_changed: bool, new_items: int) -> ScanState:
        if self.done:
            return self.state
        if not height_changed and new_items == 0:
            self.stall_count += 1
            logger.info(
                "No new content loaded (%d/%d)", self.stall_count, self.max_stalls,
                extra={"step": "convergence", "status": "stalled"},
            )
        else:
            self.stall_count = 0

        if self.stall_count >= self.max_stalls:
            self.state = ScanState.DONE
        elif self.stall_count > 0:
            self.state = ScanState.STALLED
        else:
            self.state = ScanState.SCANNING
        return self.state
