"""Serialized redraw requests."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Deque, Tuple

__all__ = ["RedrawQueue"]

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


@dataclass
class _QueuedCall:
    args: Tuple[Any, ...]
    kwargs: dict[str, Any]


class RedrawQueue:
    """Run redraw callbacks one at a time, coalescing requests made mid-redraw.

    Calling the queue while idle runs the callback immediately. A call made
    while the callback is running (for example from an input handler invoked
    between mask bands) is queued instead; when the running redraw finishes,
    only the most recent queued request is executed. A running redraw is never
    interrupted.

    Parameters
    ----------
    callback:
        Callable performing one full redraw.
    drop_overflow:
        If ``True`` (default), pending requests collapse to the last one.
    """

    def __init__(self, callback: Callable[..., Any], *, drop_overflow: bool = True) -> None:
        self._callback = callback
        self._drop_overflow = bool(drop_overflow)
        self._queue: Deque[_QueuedCall] = deque()
        self._running = False
        self._completed = 0

    @property
    def running(self) -> bool:
        """True while a redraw callback is executing."""
        return self._running

    @property
    def pending(self) -> int:
        """Number of queued requests not yet executed."""
        return len(self._queue)

    @property
    def completed(self) -> int:
        """Number of callback invocations finished so far (failed ones included)."""
        return self._completed

    def __call__(self, *args: Any, **kwargs: Any) -> None:
        self._queue.append(_QueuedCall(args=args, kwargs=dict(kwargs)))
        if self._running:
            logger.debug("redraw requested while drawing; %d pending", len(self._queue))
            return
        self._drain()

    def _drain(self) -> None:
        self._running = True
        try:
            while self._queue:
                if self._drop_overflow and len(self._queue) > 1:
                    last = self._queue[-1]
                    self._queue.clear()
                    self._queue.append(last)
                call = self._queue.popleft()
                try:
                    self._callback(*call.args, **call.kwargs)
                except Exception:
                    logger.exception("redraw callback failed")
                finally:
                    self._completed += 1
        finally:
            self._running = False
