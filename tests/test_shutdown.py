from __future__ import annotations

import json
import signal

from models.checkpoint import Checkpoint
from pipelines.runner import RunContext
from services.checkpoint_store import CheckpointStore
from services.shutdown import ShutdownCoordinator


class _CountingStore(CheckpointStore):
    def __init__(self, path):
        super().__init__(path)
        self.saves = 0

    def save(self, checkpoint):
        self.saves += 1
        super().save(checkpoint)


def _ctx(last_index=4):
    ctx = RunContext(sink_id="out.csv")
    ctx.checkpoint = Checkpoint(last_index=last_index, sink_id="out.csv")
    ctx.checkpoint.remember(["a|b|c"])
    return ctx


def test_trigger_saves_then_terminates_once(tmp_path):
    store = _CountingStore(tmp_path / "ckpt.json")
    exits = []
    coordinator = ShutdownCoordinator(_ctx(), store, terminate=lambda: exits.append(True))

    coordinator.trigger()
    coordinator.trigger()

    assert store.saves == 1
    assert exits == [True]
    assert coordinator.ctx.cancelled
    doc = json.loads(store.path.read_text(encoding="utf-8"))
    assert doc["lastProfileIndex"] == 4
    assert doc["processedProfileIds"] == ["a|b|c"]


def test_trigger_during_commit_defers_to_the_commit(tmp_path):
    store = _CountingStore(tmp_path / "ckpt.json")
    exits = []
    ctx = _ctx()
    ctx.committing = True
    coordinator = ShutdownCoordinator(ctx, store, terminate=lambda: exits.append(True))

    coordinator.trigger()

    assert ctx.cancelled
    assert store.saves == 0
    assert exits == []


def test_save_failure_still_terminates(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x", encoding="utf-8")
    exits = []
    coordinator = ShutdownCoordinator(_ctx(), CheckpointStore(blocker / "ckpt.json"), terminate=lambda: exits.append(True))
    coordinator.trigger()
    assert exits == [True]


def test_signal_handler_triggers(tmp_path):
    store = _CountingStore(tmp_path / "ckpt.json")
    exits = []
    coordinator = ShutdownCoordinator(_ctx(), store, terminate=lambda: exits.append(True))
    coordinator._handle_signal(signal.SIGTERM, None)
    assert store.saves == 1
    assert exits == [True]


def test_install_and_uninstall_restore_handlers(tmp_path):
    before = {sig: signal.getsignal(sig) for sig in ShutdownCoordinator.SIGNALS}
    coordinator = ShutdownCoordinator(_ctx(), CheckpointStore(tmp_path / "ckpt.json"), terminate=lambda: None)

    with coordinator:
        for sig in ShutdownCoordinator.SIGNALS:
            assert signal.getsignal(sig) == coordinator._handle_signal

    for sig in ShutdownCoordinator.SIGNALS:
        assert signal.getsignal(sig) == before[sig]


def test_default_terminate_exits_zero(tmp_path):
    coordinator = ShutdownCoordinator(_ctx(), CheckpointStore(tmp_path / "ckpt.json"))
    try:
        coordinator.trigger()
    except SystemExit as e:
        assert e.code == 0
    else:
        raise AssertionError("expected SystemExit")


def test_trigger_after_finish_skips_save(tmp_path):
    store = _CountingStore(tmp_path / "ckpt.json")
    exits = []
    ctx = _ctx()
    ctx.finished = True
    ShutdownCoordinator(ctx, store, terminate=lambda: exits.append(True)).trigger()

    assert store.saves == 0
    assert not store.exists()
    assert exits == [True]
