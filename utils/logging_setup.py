from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Any

from config.settings import get_settings


_INITIALIZED: bool = False

_FORMAT = (
    "%(asctime)s %(levelname)s %(name)s %(message)s "
    "step=%(step)s status=%(status)s index=%(index)s batch=%(batch)s "
    "error=%(error)s run_id=%(run_id)s"
)


class SafeExtraFormatter(logging.Formatter):
    """Formatter that tolerates missing extra fields by injecting defaults."""

    DEFAULTS: dict[str, Any] = {
        "step": "-",
        "status": "-",
        "index": "-",
        "batch": "-",
        "error": "-",
    }

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        for key, value in self.DEFAULTS.items():
            if not hasattr(record, key):
                setattr(record, key, value)
        if not hasattr(record, "run_id"):
            record.run_id = os.getenv("RUN_ID") or "-"
        return super().format(record)


def init_logging(level: str | None = None) -> None:
    global _INITIALIZED
    if _INITIALIZED:
        return

    settings = get_settings()
    log_level_str = (level or settings.log_level).upper()
    log_level = getattr(logging, log_level_str, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    formatter = SafeExtraFormatter(fmt=_FORMAT)
    if not root_logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    if settings.log_file:
        log_path = Path(settings.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # Browser automation libraries log every wire call at DEBUG
    for noisy in ("selenium", "urllib3"):
        logging.getLogger(noisy).setLevel(max(log_level, logging.INFO))

    _INITIALIZED = True
