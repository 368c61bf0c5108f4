# tests/unit/services/test_progress.py
from catalog_sync.services.progress import FailureLedger, ProgressTracker, RunContext


def test_progress_accumulates_and_clamps():
    tracker = ProgressTracker()

    assert tracker.advance(10) == 10
    assert tracker.advance(85) == 95
    assert tracker.advance(20) == 100
    assert tracker.advance(5) == 100


def test_progress_never_decreases():
    tracker = ProgressTracker()
    tracker.advance(40)

    assert tracker.advance(-15) == 40
    assert tracker.advance(0) == 40


def test_progress_fractional_shares_add_up():
    """Three batches splitting 80% still land on exactly 80"""
    tracker = ProgressTracker()
    for size in (50, 50, 20):
        tracker.advance(80 * size / 120)
    assert tracker.value == 80


def test_progress_callback_receives_running_total():
    seen = []
    tracker = ProgressTracker(on_progress=seen.append)
    tracker.advance(10)
    tracker.advance(30)
    tracker.complete()

    assert seen == [10, 40, 100]


def test_ledger_is_ordered_and_append_only():
    ledger = FailureLedger()
    ledger.record("first")
    ledger.record("second")

    entries = ledger.entries
    entries.append("tampered")

    assert ledger.entries == ["first", "second"]
    assert len(ledger) == 2


def test_run_context_warnings_stay_out_of_ledger():
    ctx = RunContext.create()
    ctx.warn("row skipped")

    assert ctx.warnings == ["row skipped"]
    assert len(ctx.ledger) == 0
