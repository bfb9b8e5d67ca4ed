"""World/screen coordinate model for one drawing surface.

Purpose
-------
This module defines ``Viewport``, the state container for the visible world
rectangle and the pixel size of the surface it is drawn on. It owns the affine
world<->screen transforms used by the sampler and renderer, and the zoom/pan/
reset mutations driven by :class:`~curveplot.controller.ViewController`.

Notes
-----
Screen rows grow downward, so the y transform is inverted. Transforms accept
Python floats or NumPy arrays and broadcast like NumPy arithmetic.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Optional, Tuple

import numpy as np

from .config import DEFAULT_CONFIG, PlotterConfig
from .convert import RangeLike, to_range
from .errors import ViewportDegenerateError

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

Extent = Tuple[float, float, float, float]


class Viewport:
    """Visible world rectangle plus its pixel-space mapping.

    Parameters
    ----------
    pixel_width, pixel_height : int, optional
        Surface size in pixels. Defaults come from ``config``.
    x_range, y_range : RangeLike, optional
        Default (and initial) world extent. Defaults come from ``config``.
    min_extent, max_extent : float, optional
        Bounds for the world width/height reachable through :meth:`zoom_at`.
    config : PlotterConfig, optional
        Source of defaults for the arguments above.

    Raises
    ------
    ViewportDegenerateError
        If an extent is empty, inverted or non-finite, or the pixel size is
        not positive.
    """

    __slots__ = (
        "_x_min",
        "_x_max",
        "_y_min",
        "_y_max",
        "_pixel_width",
        "_pixel_height",
        "_default",
        "_min_extent",
        "_max_extent",
    )

    def __init__(
        self,
        pixel_width: Optional[int] = None,
        pixel_height: Optional[int] = None,
        *,
        x_range: Optional[RangeLike] = None,
        y_range: Optional[RangeLike] = None,
        min_extent: Optional[float] = None,
        max_extent: Optional[float] = None,
        config: PlotterConfig = DEFAULT_CONFIG,
    ) -> None:
        width = config.pixel_width if pixel_width is None else int(pixel_width)
        height = config.pixel_height if pixel_height is None else int(pixel_height)
        if width < 1 or height < 1:
            raise ViewportDegenerateError(f"Pixel size must be positive, got {width}x{height}")
        self._pixel_width = width
        self._pixel_height = height
        self._min_extent = float(config.min_extent if min_extent is None else min_extent)
        self._max_extent = float(config.max_extent if max_extent is None else max_extent)

        try:
            xr = config.default_x_range if x_range is None else to_range(x_range)
            yr = config.default_y_range if y_range is None else to_range(y_range)
        except ValueError as e:
            raise ViewportDegenerateError(str(e)) from e
        self._default: Extent = (xr[0], xr[1], yr[0], yr[1])
        self._x_min, self._x_max, self._y_min, self._y_max = self._default

    @classmethod
    def from_config(cls, config: PlotterConfig) -> "Viewport":
        """Create a viewport using every default from ``config``."""
        return cls(config=config)

    # --- State ---

    @property
    def x_min(self) -> float:
        return self._x_min

    @property
    def x_max(self) -> float:
        return self._x_max

    @property
    def y_min(self) -> float:
        return self._y_min

    @property
    def y_max(self) -> float:
        return self._y_max

    @property
    def pixel_width(self) -> int:
        return self._pixel_width

    @property
    def pixel_height(self) -> int:
        return self._pixel_height

    @property
    def extent(self) -> Extent:
        """Return ``(x_min, x_max, y_min, y_max)``."""
        return (self._x_min, self._x_max, self._y_min, self._y_max)

    @property
    def default_extent(self) -> Extent:
        """Return the extent restored by :meth:`reset`."""
        return self._default

    @property
    def x_range(self) -> Tuple[float, float]:
        return (self._x_min, self._x_max)

    @property
    def y_range(self) -> Tuple[float, float]:
        return (self._y_min, self._y_max)

    @property
    def scale_x(self) -> float:
        """Pixels per world unit along x."""
        return self._pixel_width / (self._x_max - self._x_min)

    @property
    def scale_y(self) -> float:
        """Pixels per world unit along y."""
        return self._pixel_height / (self._y_max - self._y_min)

    def state_key(self) -> tuple[float, float, float, float, int, int]:
        """Return a hashable key identifying the full transform state."""
        return (*self.extent, self._pixel_width, self._pixel_height)

    def contains(self, wx: float, wy: float) -> bool:
        """Return True when the world point lies inside the visible rectangle."""
        return self._x_min <= wx <= self._x_max and self._y_min <= wy <= self._y_max

    # --- Transforms ---

    def to_screen(self, wx: Any, wy: Any) -> Tuple[Any, Any]:
        """Map world coordinates to pixel coordinates."""
        px = (wx - self._x_min) * self._pixel_width / (self._x_max - self._x_min)
        py = self._pixel_height - (wy - self._y_min) * self._pixel_height / (self._y_max - self._y_min)
        return px, py

    def to_world(self, px: Any, py: Any) -> Tuple[Any, Any]:
        """Map pixel coordinates to world coordinates (inverse of :meth:`to_screen`)."""
        wx = self._x_min + px * (self._x_max - self._x_min) / self._pixel_width
        wy = self._y_min + (self._pixel_height - py) * (self._y_max - self._y_min) / self._pixel_height
        return wx, wy

    def column_centers(self, stride: int = 1) -> np.ndarray:
        """Return pixel x-coordinates of column centres, every ``stride`` columns."""
        return np.arange(0, self._pixel_width, stride, dtype=float) + 0.5 * stride

    def row_centers(self, stride: int = 1) -> np.ndarray:
        """Return pixel y-coordinates of row centres, every ``stride`` rows."""
        return np.arange(0, self._pixel_height, stride, dtype=float) + 0.5 * stride

    # --- Mutations ---

    def zoom_at(self, px: float, py: float, factor: float) -> bool:
        """Scale both extents by ``factor`` around the world point under ``(px, py)``.

        Parameters
        ----------
        px, py : float
            Pixel position that must stay fixed.
        factor : float
            ``< 1`` zooms in, ``> 1`` zooms out. Clamped so both extents stay
            within ``[min_extent, max_extent]``.

        Returns
        -------
        bool
            True if the viewport changed.
        """
        try:
            factor = float(factor)
        except (TypeError, ValueError):
            logger.debug("zoom rejected: non-numeric factor %r", factor)
            return False
        if not math.isfinite(factor) or factor <= 0:
            logger.debug("zoom rejected: factor %r outside (0, inf)", factor)
            return False

        width = self._x_max - self._x_min
        height = self._y_max - self._y_min
        lo = max(self._min_extent / width, self._min_extent / height)
        hi = min(self._max_extent / width, self._max_extent / height)
        if lo > hi:
            logger.debug("zoom rejected: extent %sx%s cannot satisfy bounds", width, height)
            return False
        clamped = min(max(factor, lo), hi)
        # A clamp never turns a zoom-out into a zoom-in or the reverse.
        if factor > 1.0:
            clamped = max(clamped, 1.0)
        elif factor < 1.0:
            clamped = min(clamped, 1.0)
        if clamped != factor:
            logger.debug("zoom factor %r clamped to %r", factor, clamped)
        if clamped == 1.0:
            return False

        wx, wy = self.to_world(px, py)
        x_min = wx - (wx - self._x_min) * clamped
        x_max = wx + (self._x_max - wx) * clamped
        y_min = wy - (wy - self._y_min) * clamped
        y_max = wy + (self._y_max - wy) * clamped
        if not (x_min < x_max and y_min < y_max) or not all(map(math.isfinite, (x_min, x_max, y_min, y_max))):
            logger.debug("zoom rejected: result would be degenerate")
            return False
        self._x_min, self._x_max, self._y_min, self._y_max = x_min, x_max, y_min, y_max
        return True

    def pan_by(self, dx_world: float, dy_world: float) -> bool:
        """Translate the visible rectangle by a world-space delta.

        Returns
        -------
        bool
            True if the viewport changed; non-finite deltas are rejected.
        """
        dx, dy = float(dx_world), float(dy_world)
        if not (math.isfinite(dx) and math.isfinite(dy)):
            logger.debug("pan rejected: non-finite delta (%r, %r)", dx, dy)
            return False
        if dx == 0.0 and dy == 0.0:
            return False
        x_min, x_max = self._x_min + dx, self._x_max + dx
        y_min, y_max = self._y_min + dy, self._y_max + dy
        if not (x_min < x_max and y_min < y_max) or not all(map(math.isfinite, (x_min, x_max, y_min, y_max))):
            # Far from the origin the extent can collapse in floating point.
            logger.debug("pan rejected: result would be degenerate")
            return False
        self._x_min, self._x_max, self._y_min, self._y_max = x_min, x_max, y_min, y_max
        return True

    def reset(self) -> None:
        """Restore the default extent exactly."""
        self._x_min, self._x_max, self._y_min, self._y_max = self._default

    def copy(self) -> "Viewport":
        """Return an independent viewport with the same state and defaults."""
        out = Viewport.__new__(Viewport)
        for name in Viewport.__slots__:
            setattr(out, name, getattr(self, name))
        return out

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Viewport):
            return NotImplemented
        return self.state_key() == other.state_key()

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f"Viewport(x=({self._x_min:g}, {self._x_max:g}), y=({self._y_min:g}, {self._y_max:g}), "
            f"pixels={self._pixel_width}x{self._pixel_height})"
        )
