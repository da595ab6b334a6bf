from __future__ import annotations

import logging
import signal
import sys
from typing import Any, Callable, Dict, Optional

from pipelines.runner import RunContext
from services.checkpoint_store import CheckpointStore
from utils.errors import CheckpointIOError


logger = logging.getLogger(__name__)


def _exit_gracefully() -> None:
    sys.exit(0)


class ShutdownCoordinator:
    """Turns SIGINT/SIGTERM into a checkpoint flush followed by a clean exit.

    The handler runs at most once per coordinator. If the signal lands while a
    batch is being committed, the save is left to that commit and the loop
    stops after it instead of exiting immediately. Once the run has finished
    the checkpoint is not written again.
    """

    SIGNALS = (signal.SIGINT, signal.SIGTERM)

    def __init__(
        self,
        ctx: RunContext,
        store: CheckpointStore,
        terminate: Optional[Callable[[], None]] = None,
    ) -> None:
        self.ctx = ctx
        self.store = store
        self.terminate = terminate or _exit_gracefully
        self.triggered = False
        self._previous: Dict[int, Any] = {}

    def install(self) -> "ShutdownCoordinator":
        for sig in self.SIGNALS:
            self._previous[sig] = signal.getsignal(sig)
            signal.signal(sig, self._handle_signal)
        return self

    def uninstall(self) -> None:
        for sig, handler in self._previous.items():
            signal.signal(sig, handler)
        self._previous = {}

    def __enter__(self) -> "ShutdownCoordinator":
        return self.install()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.uninstall()

    def _handle_signal(self, signum, frame) -> None:
        logger.warning(
            "Received %s - saving checkpoint and shutting down", signal.Signals(signum).name,
            extra={"step": "shutdown"},
        )
        self.trigger()

    def trigger(self) -> None:
        if self.triggered:
            return
        self.triggered = True
        self.ctx.cancelled = True

        if self.ctx.finished:
            logger.info(
                "Collection already finished; nothing to save", extra={"step": "shutdown", "status": "finished"},
            )
            self.terminate()
            return

        if self.ctx.committing:
            logger.info(
                "Commit in progress; stopping after it completes", extra={"step": "shutdown", "status": "deferred"},
            )
            return

        try:
            self.store.save(self.ctx.checkpoint)
            logger.info("Checkpoint saved. Safe to restart.", extra={"step": "shutdown", "status": "saved"})
        except CheckpointIOError as e:
            logger.error("Final checkpoint save failed", extra={"step": "shutdown", "error": str(e)})
        self.terminate()
