"""Pointer and wheel handling that drives the viewport.

``ViewController`` is a two-state machine (:class:`InteractionMode`): a drag
pans the viewport using the scale in effect at each move, the wheel zooms
around the cursor, and every state transition ends with a call to the
injected ``request_redraw`` callable. The controller never draws.
"""

from __future__ import annotations

import enum
import logging
import math
from typing import Callable, Optional

from .config import DEFAULT_CONFIG, PlotterConfig
from .viewport import Viewport

__all__ = ["InteractionMode", "ViewController"]

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


class InteractionMode(str, enum.Enum):
    IDLE = "idle"
    DRAGGING = "dragging"


class ViewController:
    """Translate raw input events into viewport mutations.

    Parameters
    ----------
    viewport : Viewport
        Viewport to mutate.
    request_redraw : callable, optional
        Called with no arguments after each handled event.
    config : PlotterConfig, optional
        Source of the wheel zoom factors.

    Examples
    --------
    >>> vp = Viewport()
    >>> ctl = ViewController(vp)
    >>> ctl.pointer_down(400, 300)
    >>> ctl.pointer_move(440, 300)
    >>> vp.x_range
    (-11.0, 9.0)
    """

    def __init__(
        self,
        viewport: Viewport,
        request_redraw: Optional[Callable[[], None]] = None,
        *,
        config: PlotterConfig = DEFAULT_CONFIG,
    ) -> None:
        self.viewport = viewport
        self._request_redraw = request_redraw or (lambda: None)
        self._zoom_in = config.zoom_in_factor
        self._zoom_out = config.zoom_out_factor
        self._mode = InteractionMode.IDLE
        self._last: Optional[tuple[float, float]] = None
        self._drag_distance = 0.0

    @property
    def mode(self) -> InteractionMode:
        return self._mode

    @property
    def drag_distance(self) -> float:
        """Screen distance travelled by the current (or last) drag, in pixels."""
        return self._drag_distance

    # --- Events ---

    def pointer_down(self, px: float, py: float) -> None:
        """Start a drag at ``(px, py)``."""
        self._mode = InteractionMode.DRAGGING
        self._last = (float(px), float(py))
        self._drag_distance = 0.0
        self._request_redraw()

    def pointer_move(self, px: float, py: float) -> None:
        """Pan by the screen delta since the previous event; ignored while idle."""
        if self._mode is not InteractionMode.DRAGGING or self._last is None:
            return
        px, py = float(px), float(py)
        dx = px - self._last[0]
        dy = py - self._last[1]
        self._last = (px, py)
        if dx == 0.0 and dy == 0.0:
            return
        self._drag_distance += math.hypot(dx, dy)
        vp = self.viewport
        # Screen y grows downward, world y upward.
        vp.pan_by(-dx / vp.scale_x, dy / vp.scale_y)
        self._request_redraw()

    def pointer_up(self, px: Optional[float] = None, py: Optional[float] = None) -> None:
        """End the drag; a final position, if given, is applied first."""
        if self._mode is not InteractionMode.DRAGGING:
            return
        if px is not None and py is not None:
            self.pointer_move(px, py)
        self._mode = InteractionMode.IDLE
        self._last = None
        logger.debug("drag finished after %.1f px", self._drag_distance)
        self._request_redraw()

    def wheel(self, px: float, py: float, delta_y: float) -> bool:
        """Zoom around ``(px, py)``: negative delta zooms in, positive zooms out.

        Returns
        -------
        bool
            True if the viewport changed.
        """
        if delta_y < 0:
            factor = self._zoom_in
        elif delta_y > 0:
            factor = self._zoom_out
        else:
            return False
        changed = self.viewport.zoom_at(px, py, factor)
        self._request_redraw()
        return changed

    def reset(self) -> None:
        """Restore the default extent."""
        self.viewport.reset()
        self._request_redraw()
