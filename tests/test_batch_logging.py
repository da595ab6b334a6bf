from __future__ import annotations

import json

from utils.batch_logger import log_batch


def test_batch_trace_writes_jsonl(tmp_path, monkeypatch):
    log_file = tmp_path / "batches.jsonl"
    monkeypatch.setenv("BATCH_TRACE", "true")
    monkeypatch.setenv("BATCH_LOG_PATH", str(log_file))
    monkeypatch.setenv("RUN_ID", "test-run-123")

    log_batch(
        sink_id="results.csv",
        indices=[3, 4, 5],
        status="ok",
        duration_ms=12,
        last_index=5,
        extras={"driver": "static"},
    )

    assert log_file.exists()
    lines = log_file.read_text(encoding="utf-8").strip().splitlines()
    assert len(lines) == 1
    rec = json.loads(lines[-1])
    assert rec["sink_id"] == "results.csv"
    assert rec["size"] == 3
    assert rec["first_index"] == 3 and rec["last_index_in_batch"] == 5
    assert rec["run_id"] == "test-run-123"
    assert rec["extras"] == {"driver": "static"}


def test_batch_trace_disabled_writes_nothing(tmp_path, monkeypatch):
    log_file = tmp_path / "batches.jsonl"
    monkeypatch.setenv("BATCH_TRACE", "false")
    monkeypatch.setenv("BATCH_LOG_PATH", str(log_file))

    log_batch(sink_id="x", indices=[1])

    assert not log_file.exists()


def test_formatter_fills_missing_extras(monkeypatch):
    import logging
    from utils.logging_setup import SafeExtraFormatter, _FORMAT

    monkeypatch.setenv("RUN_ID", "fmt-run")
    record = logging.LogRecord("harvest", logging.INFO, __file__, 1, "Scroll #%d", (3,), None)
    record.step = "load_more"
    line = SafeExtraFormatter(fmt=_FORMAT).format(record)
    assert "Scroll #3" in line
    assert "step=load_more" in line
    assert "index=-" in line
    assert "run_id=fmt-run" in line


def test_batch_stats_skip_malformed_lines(tmp_path):
    from services.reporting import _batch_stats_for_run

    log_file = tmp_path / "batches.jsonl"
    log_file.write_text("\n".join([
        json.dumps({"run_id": "r1", "status": "ok", "size": 5}),
        "not json",
        json.dumps({"run_id": "r1", "status": "sink_failed", "size": 3}),
        json.dumps({"run_id": "r2", "status": "ok", "size": 9}),
    ]) + "\n", encoding="utf-8")

    assert _batch_stats_for_run("r1", log_file) == {"batches": 2, "failed": 1, "rows": 5}


def test_summary_survives_unreadable_trace(tmp_path, monkeypatch, capsys):
    from services.reporting import print_summary

    bad = tmp_path / "batches.jsonl"
    bad.write_text(json.dumps({"run_id": "r1", "status": "ok", "size": "lots"}) + "\n", encoding="utf-8")
    monkeypatch.setenv("RUN_ID", "r1")
    monkeypatch.setenv("BATCH_TRACE", "true")
    monkeypatch.setenv("BATCH_LOG_PATH", str(bad))

    print_summary({"state": "done", "records_written": 3})
    out = capsys.readouterr().out
    assert "Profiles Written: 3" in out
    assert "Traced Batches" not in out

    # A directory in place of the trace file is an OSError, also tolerated
    monkeypatch.setenv("BATCH_LOG_PATH", str(tmp_path))
    from config.settings import get_settings
    get_settings.cache_clear()
    print_summary({"state": "done", "records_written": 3})
    assert "Profiles Written: 3" in capsys.readouterr().out
