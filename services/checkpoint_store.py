from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from pydantic import ValidationError

from models.checkpoint import DEFAULT_HISTORY_LIMIT, Checkpoint
from utils.errors import CheckpointIOError


logger = logging.getLogger(__name__)


class CheckpointStore:
    """JSON file holding collection progress.

    Every save overwrites the whole document (via a temporary sibling and an
    atomic rename); the last successful save wins.
    """

    def __init__(self, path: str | Path, history_limit: int = DEFAULT_HISTORY_LIMIT) -> None:
        self.path = Path(path)
        self.history_limit = history_limit

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> Checkpoint:
        if not self.path.exists():
            return Checkpoint().with_limit(self.history_limit)
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            checkpoint = Checkpoint.model_validate(data)
        except (OSError, ValueError, ValidationError) as e:
            logger.warning(
                "Could not read checkpoint %s, starting fresh", self.path,
                extra={"step": "checkpoint", "status": "load_failed", "error": str(e)},
            )
            return Checkpoint().with_limit(self.history_limit)
        logger.info(
            "Loaded checkpoint: last index %d, %d known profiles",
            checkpoint.last_index, len(checkpoint.processed_fingerprints),
            extra={"step": "checkpoint", "status": "loaded"},
        )
        return checkpoint.with_limit(self.history_limit)

    def save(self, checkpoint: Checkpoint) -> None:
        checkpoint.with_limit(self.history_limit)
        payload = json.dumps(checkpoint.to_document(), ensure_ascii=False, indent=2)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            if not self.path.parent.exists():
                self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(payload, encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise CheckpointIOError(f"Failed to save checkpoint {self.path}: {e}") from e
        logger.debug(
            "Checkpoint saved", extra={"step": "checkpoint", "status": "saved"},
        )

    def clear(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            raise CheckpointIOError(f"Failed to remove checkpoint {self.path}: {e}") from e
        logger.info("Checkpoint cleared", extra={"step": "checkpoint", "status": "cleared"})
