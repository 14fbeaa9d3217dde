"""Tests for per-frame callback coalescing."""

from relation_canvas.frames import FrameScheduler


def test_same_key_runs_once() -> None:
    scheduler = FrameScheduler()
    calls = []
    assert scheduler.request_frame(lambda: calls.append("a"), key="redraw")
    assert not scheduler.request_frame(lambda: calls.append("b"), key="redraw")
    assert scheduler.pending
    assert scheduler.run_frame() == 1
    assert calls == ["a"]
    assert not scheduler.pending


def test_requests_during_frame_wait_for_next() -> None:
    scheduler = FrameScheduler()
    calls = []

    def again():
        calls.append(len(calls))
        if len(calls) < 3:
            scheduler.request_frame(again)

    scheduler.request_frame(again)
    scheduler.run_frame()
    assert calls == [0]
    scheduler.flush()
    assert calls == [0, 1, 2]


def test_cancel() -> None:
    scheduler = FrameScheduler()
    scheduler.request_frame(lambda: None, key="flush")
    scheduler.cancel("flush")
    scheduler.cancel("missing")
    assert scheduler.run_frame() == 0
