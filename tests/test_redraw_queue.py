from __future__ import annotations

import logging

from curveplot import RedrawQueue


def test_idle_call_runs_immediately() -> None:
    calls = []
    queue = RedrawQueue(lambda *a, **k: calls.append((a, k)))
    queue(1, reason="edit")
    assert calls == [((1,), {"reason": "edit"})]
    assert queue.completed == 1
    assert not queue.running
    assert queue.pending == 0


def test_requests_made_while_drawing_are_coalesced() -> None:
    seen = []

    def redraw(tag: str) -> None:
        seen.append(tag)
        if tag == "first":
            # Input arriving between bands of the first redraw.
            assert queue.running
            queue("second")
            queue("third")
            queue("fourth")
            assert seen == ["first"]

    queue = RedrawQueue(redraw)
    queue("first")
    assert seen == ["first", "fourth"]
    assert queue.completed == 2


def test_without_dropping_every_request_runs_in_order() -> None:
    seen = []

    def redraw(tag: str) -> None:
        seen.append(tag)
        if tag == "a":
            queue("b")
            queue("c")

    queue = RedrawQueue(redraw, drop_overflow=False)
    queue("a")
    assert seen == ["a", "b", "c"]


def test_failed_redraw_is_logged_and_queue_recovers(caplog) -> None:
    outcomes = []

    def redraw(fail: bool) -> None:
        if fail:
            raise RuntimeError("boom")
        outcomes.append("ok")

    queue = RedrawQueue(redraw)
    with caplog.at_level(logging.ERROR, logger="curveplot.redraw"):
        queue(True)
    assert "redraw callback failed" in caplog.text
    assert not queue.running
    queue(False)
    assert outcomes == ["ok"]
    assert queue.completed == 2
