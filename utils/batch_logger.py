from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional


def _ensure_parent_dir(path: Path) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError:
        pass


def log_batch(
    *,
    sink_id: Optional[str],
    indices: List[int],
    status: str = "ok",
    duration_ms: Optional[int] = None,
    last_index: Optional[int] = None,
    error: Optional[str] = None,
    extras: Optional[Dict[str, Any]] = None,
) -> None:
    """Append a single JSON line describing a committed (or failed) batch if tracing is enabled.

    Controlled by BATCH_TRACE / BATCH_LOG_PATH in config/settings.py
    """
    from config.settings import get_settings
    settings = get_settings()
    if not settings.batch_trace:
        return

    log_path = Path(settings.batch_log_path)
    _ensure_parent_dir(log_path)

    payload: Dict[str, Any] = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "sink_id": sink_id,
        "size": len(indices),
        "first_index": min(indices) if indices else None,
        "last_index_in_batch": max(indices) if indices else None,
        "checkpoint_last_index": last_index,
        "status": status,
        "duration_ms": duration_ms,
        "error": error,
    }
    run_id = os.getenv("RUN_ID")
    if run_id:
        payload["run_id"] = run_id
    if extras:
        # Shallow merge extras under a dedicated key to avoid collisions
        payload["extras"] = extras

    try:
        with log_path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(payload, ensure_ascii=False) + "\n")
    except OSError:
        # Tracing never breaks a run
        return
