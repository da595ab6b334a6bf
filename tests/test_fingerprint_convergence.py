from __future__ import annotations

from models.record import RawItem, Record
from services import fingerprint
from services.convergence import ConvergenceDetector, ScanState


def test_fingerprint_strips_whitespace_only():
    a = RawItem(index=0, name="  Alice Example ", occupation="Searcher\n", linkedin_url=" https://linkedin.com/in/alice")
    b = RawItem(index=9, name="Alice Example", occupation="Searcher", linkedin_url="https://linkedin.com/in/alice")
    assert fingerprint.compute(a) == fingerprint.compute(b)
    assert fingerprint.compute(a) == "Alice Example|Searcher|https://linkedin.com/in/alice"


def test_fingerprint_is_case_sensitive():
    a = {"name": "Alice", "occupation": "CEO", "linkedin_url": None}
    b = {"name": "alice", "occupation": "CEO", "linkedin_url": None}
    assert fingerprint.compute(a) != fingerprint.compute(b)


def test_fingerprint_missing_fields_are_empty_segments():
    assert fingerprint.compute({"name": "Bob"}) == "Bob||"
    assert fingerprint.compute(Record()) == "||"


def test_fingerprint_ignores_non_identity_fields():
    a = RawItem(index=1, name="Carol", location="Boston", website_url="https://a.example")
    b = RawItem(index=2, name="Carol", location="NYC")
    assert fingerprint.compute(a) == fingerprint.compute(b)


def test_detector_done_after_five_consecutive_stalls():
    det = ConvergenceDetector(max_stalls=5)
    states = [det.observe(False, 0) for _ in range(5)]
    assert states[:4] == [ScanState.STALLED] * 4
    assert states[4] is ScanState.DONE
    assert det.done


def test_detector_resets_on_new_item():
    det = ConvergenceDetector(max_stalls=5)
    for _ in range(4):
        det.observe(False, 0)
    assert det.observe(False, 1) is ScanState.SCANNING
    assert det.stall_count == 0
    for _ in range(4):
        assert det.observe(False, 0) is not ScanState.DONE
    assert det.observe(False, 0) is ScanState.DONE


def test_detector_resets_on_height_change():
    det = ConvergenceDetector(max_stalls=5)
    for _ in range(3):
        det.observe(False, 0)
    det.observe(True, 0)
    assert det.stall_count == 0
    assert det.state is ScanState.SCANNING


def test_detector_done_is_terminal():
    det = ConvergenceDetector(max_stalls=1)
    assert det.observe(False, 0) is ScanState.DONE
    assert det.observe(True, 10) is ScanState.DONE
