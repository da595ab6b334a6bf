from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Dict, Optional


logger = logging.getLogger(__name__)


def _batch_stats_for_run(run_id: str, log_path: Path) -> Dict[str, int]:
    """Aggregate the batch trace (JSONL) for the given run_id.

    Returns dict like {'batches': N, 'failed': F, 'rows': R}
    """
    result = {"batches": 0, "failed": 0, "rows": 0}
    if not log_path.exists():
        return result
    with log_path.open("r", encoding="utf-8") as f:
        for line in f:
            try:
                rec = json.loads(line)
            except ValueError:
                continue
            if not isinstance(rec, dict) or rec.get("run_id") != run_id:
                continue
            result["batches"] += 1
            if rec.get("status") == "ok":
                result["rows"] += int(rec.get("size") or 0)
            else:
                result["failed"] += 1
    return result


def print_summary(summary: dict, checkpoint_path: Optional[Path] = None) -> None:
    """Print summary of the collection run."""
    print("\n" + "="*60)
    print("DIRECTORY HARVEST - SUMMARY")
    print("="*60)
    state = summary.get("state", "N/A")
    if summary.get("cancelled"):
        state = f"{state} (interrupted)"
    print(f"Final State: {state}")
    print(f"Output: {summary.get('sink_id') or 'N/A'}")
    print()
    print("Collection Statistics:")
    print(f"  Profiles Written: {summary.get('records_written', 0)}")
    print(f"  Placeholder Rows: {summary.get('placeholders', 0)}")
    print(f"  Sink Failures: {summary.get('sink_failures', 0)}")
    print(f"  Iterations: {summary.get('iterations', 0)}")
    print(f"  Last Index: {summary.get('last_index', -1)}")
    try:
        from config.settings import get_settings
        settings = get_settings()
        run_id = os.getenv("RUN_ID")
        if run_id and settings.batch_trace:
            stats = _batch_stats_for_run(run_id, Path(settings.batch_log_path))
            print(f"  Traced Batches: {stats['batches']} (failed={stats['failed']}, rows={stats['rows']})")
    except (OSError, ValueError) as e:
        logger.debug("Batch trace could not be summarized: %s", e, extra={"step": "report", "error": type(e).__name__})
    if checkpoint_path is not None:
        if checkpoint_path.exists():
            print(f"Checkpoint: {checkpoint_path} (resume with the same command)")
        else:
            print("Checkpoint: cleared")
    print("="*60)
