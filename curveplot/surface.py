"""Drawing-surface capability and its two backends.

Purpose
-------
The renderer only talks to :class:`DrawingSurface`, a minimal canvas-like
interface (clear, colours, paths, rectangles, bulk mask writes). Two
implementations are provided:

- :class:`RasterSurface` rasterizes into a NumPy RGBA buffer. Output is fully
  deterministic, which makes it the reference backend for tests.
- :class:`PlotlySurface` records the same calls as traces on a
  :class:`plotly.graph_objects.Figure` laid out in pixel space, for notebook
  display and export by external tools.

Colours are CSS-like strings: ``#rgb``, ``#rrggbb``, ``rgb(r, g, b)`` or a
small set of names.
"""

from __future__ import annotations

import abc
import logging
import math
from typing import Any, Optional, Sequence, Tuple

import numpy as np
import plotly.graph_objects as go
from plotly.colors import hex_to_rgb, unlabel_rgb

__all__ = [
    "RGB",
    "parse_color",
    "DrawingSurface",
    "RasterSurface",
    "PlotlySurface",
]

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

RGB = Tuple[int, int, int]

_NAMED_COLORS: dict[str, RGB] = {
    "black": (0, 0, 0),
    "white": (255, 255, 255),
    "red": (255, 0, 0),
    "green": (0, 128, 0),
    "blue": (0, 0, 255),
    "orange": (255, 165, 0),
    "purple": (128, 0, 128),
    "gray": (128, 128, 128),
    "grey": (128, 128, 128),
}


def parse_color(color: str) -> RGB:
    """Convert a CSS-like colour string to an ``(r, g, b)`` tuple.

    Raises
    ------
    ValueError
        If the colour format is not recognized.
    """
    text = str(color).strip()
    lowered = text.lower()
    if lowered in _NAMED_COLORS:
        return _NAMED_COLORS[lowered]
    if text.startswith("#"):
        digits = text[1:]
        if len(digits) == 3:
            digits = "".join(ch * 2 for ch in digits)
        if len(digits) != 6:
            raise ValueError(f"Unsupported hex colour: {color!r}")
        try:
            r, g, b = hex_to_rgb("#" + digits)
        except ValueError as e:
            raise ValueError(f"Unsupported hex colour: {color!r}") from e
        return int(r), int(g), int(b)
    if lowered.startswith("rgb"):
        try:
            values = unlabel_rgb(text)
        except Exception as e:
            raise ValueError(f"Unsupported rgb colour: {color!r}") from e
        r, g, b = (int(round(float(v))) for v in tuple(values)[:3])
        return r, g, b
    raise ValueError(f"Unsupported colour: {color!r}")


class DrawingSurface(abc.ABC):
    """Abstract 2-D drawing context in pixel coordinates (y grows downward).

    Parameters
    ----------
    width, height : int
        Surface size in pixels.
    """

    def __init__(self, width: int, height: int) -> None:
        if int(width) < 1 or int(height) < 1:
            raise ValueError(f"Surface size must be positive, got {width}x{height}")
        self.width = int(width)
        self.height = int(height)
        self._stroke_color: RGB = (0, 0, 0)
        self._fill_color: RGB = (0, 0, 0)
        self._line_width: float = 1.0
        self._path: list[list[Tuple[float, float]]] = []

    # --- State ---

    def set_stroke_color(self, color: str) -> None:
        self._stroke_color = parse_color(color)

    def set_fill_color(self, color: str) -> None:
        self._fill_color = parse_color(color)

    def set_line_width(self, width: float) -> None:
        if width <= 0:
            raise ValueError("line width must be > 0")
        self._line_width = float(width)

    # --- Paths ---

    def begin_path(self) -> None:
        self._path = []

    def move_to(self, px: float, py: float) -> None:
        self._path.append([(float(px), float(py))])

    def line_to(self, px: float, py: float) -> None:
        if not self._path:
            self.move_to(px, py)
            return
        self._path[-1].append((float(px), float(py)))

    def stroke(self) -> None:
        """Draw the current path with the stroke colour and line width."""
        subpaths = [sp for sp in self._path if len(sp) > 1]
        if subpaths:
            self._stroke_subpaths(subpaths)

    # --- Backend hooks ---

    @abc.abstractmethod
    def clear(self, color: str) -> None:
        """Fill the whole surface with ``color`` and drop the current path."""

    @abc.abstractmethod
    def fill_rect(self, x: float, y: float, w: float, h: float) -> None:
        """Fill an axis-aligned rectangle with the fill colour."""

    @abc.abstractmethod
    def put_mask(self, mask: np.ndarray, color: str, alpha: float = 1.0) -> None:
        """Blend ``color`` into every pixel where ``mask`` is True."""

    @abc.abstractmethod
    def _stroke_subpaths(self, subpaths: Sequence[Sequence[Tuple[float, float]]]) -> None:
        """Draw connected polylines."""

    def _check_mask(self, mask: np.ndarray) -> np.ndarray:
        arr = np.asarray(mask, dtype=bool)
        if arr.shape != (self.height, self.width):
            raise ValueError(f"Mask shape {arr.shape} does not match surface {(self.height, self.width)}")
        return arr


def _clip_segment(
    x0: float, y0: float, x1: float, y1: float, xmin: float, ymin: float, xmax: float, ymax: float
) -> Optional[Tuple[float, float, float, float]]:
    """Liang-Barsky clipping; returns ``None`` when the segment is outside."""
    dx, dy = x1 - x0, y1 - y0
    t0, t1 = 0.0, 1.0
    for p, q in ((-dx, x0 - xmin), (dx, xmax - x0), (-dy, y0 - ymin), (dy, ymax - y0)):
        if p == 0:
            if q < 0:
                return None
            continue
        r = q / p
        if p < 0:
            if r > t1:
                return None
            t0 = max(t0, r)
        else:
            if r < t0:
                return None
            t1 = min(t1, r)
    return x0 + t0 * dx, y0 + t0 * dy, x0 + t1 * dx, y0 + t1 * dy


class RasterSurface(DrawingSurface):
    """Deterministic RGBA raster backed by a ``(height, width, 4)`` uint8 array.

    Examples
    --------
    >>> surface = RasterSurface(4, 3)
    >>> surface.clear("#ffffff")
    >>> surface.pixels.shape
    (3, 4, 4)
    """

    def __init__(self, width: int, height: int) -> None:
        super().__init__(width, height)
        self._buffer = np.zeros((self.height, self.width, 4), dtype=np.uint8)
        self._buffer[..., 3] = 255

    @property
    def pixels(self) -> np.ndarray:
        """Return a read-only view of the RGBA buffer."""
        view = self._buffer.view()
        view.flags.writeable = False
        return view

    def to_array(self) -> np.ndarray:
        """Return a copy of the RGBA buffer."""
        return self._buffer.copy()

    def clear(self, color: str) -> None:
        r, g, b = parse_color(color)
        self._buffer[..., 0] = r
        self._buffer[..., 1] = g
        self._buffer[..., 2] = b
        self._buffer[..., 3] = 255
        self._path = []

    def fill_rect(self, x: float, y: float, w: float, h: float) -> None:
        x0 = max(int(math.floor(x)), 0)
        y0 = max(int(math.floor(y)), 0)
        x1 = min(int(math.ceil(x + w)), self.width)
        y1 = min(int(math.ceil(y + h)), self.height)
        if x0 >= x1 or y0 >= y1:
            return
        self._buffer[y0:y1, x0:x1, :3] = self._fill_color

    def put_mask(self, mask: np.ndarray, color: str, alpha: float = 1.0) -> None:
        arr = self._check_mask(mask)
        if not arr.any():
            return
        alpha = min(max(float(alpha), 0.0), 1.0)
        rgb = np.asarray(parse_color(color), dtype=float)
        current = self._buffer[arr, :3].astype(float)
        blended = np.rint((1.0 - alpha) * current + alpha * rgb)
        self._buffer[arr, :3] = blended.astype(np.uint8)

    def _stroke_subpaths(self, subpaths: Sequence[Sequence[Tuple[float, float]]]) -> None:
        half = max(int(round((self._line_width - 1.0) / 2.0)), 0)
        # Clip against the surface grown by the pen radius.
        xmin, ymin = -0.5 - half, -0.5 - half
        xmax, ymax = self.width - 0.5 + half, self.height - 0.5 + half
        xs: list[np.ndarray] = []
        ys: list[np.ndarray] = []
        for pts in subpaths:
            for (x0, y0), (x1, y1) in zip(pts[:-1], pts[1:]):
                clipped = _clip_segment(x0, y0, x1, y1, xmin, ymin, xmax, ymax)
                if clipped is None:
                    continue
                cx0, cy0, cx1, cy1 = clipped
                steps = int(math.ceil(max(abs(cx1 - cx0), abs(cy1 - cy0)))) + 1
                t = np.linspace(0.0, 1.0, steps)
                xs.append(np.floor(cx0 + t * (cx1 - cx0) + 0.5))
                ys.append(np.floor(cy0 + t * (cy1 - cy0) + 0.5))
        if not xs:
            return
        px = np.concatenate(xs).astype(np.int64)
        py = np.concatenate(ys).astype(np.int64)
        if half:
            offsets = np.arange(-half, half + 1)
            ox, oy = np.meshgrid(offsets, offsets)
            px = (px[:, None] + ox.ravel()[None, :]).ravel()
            py = (py[:, None] + oy.ravel()[None, :]).ravel()
        inside = (px >= 0) & (px < self.width) & (py >= 0) & (py < self.height)
        self._buffer[py[inside], px[inside], :3] = self._stroke_color


def _rgb_css(rgb: RGB) -> str:
    return "rgb({}, {}, {})".format(*rgb)


class PlotlySurface(DrawingSurface):
    """Record drawing calls as a Plotly figure in pixel coordinates.

    Paths become line traces (``None`` separates subpaths), rectangles become
    layout shapes and masks become RGBA image traces. The y axis is reversed
    so pixel row 0 is at the top, matching :class:`RasterSurface`.
    """

    def __init__(self, width: int, height: int) -> None:
        super().__init__(width, height)
        self._figure = go.Figure()
        self.clear("#ffffff")

    @property
    def figure(self) -> go.Figure:
        """Return the recorded figure."""
        return self._figure

    def clear(self, color: str) -> None:
        css = _rgb_css(parse_color(color))
        self._figure = go.Figure()
        self._figure.update_layout(
            width=self.width,
            height=self.height,
            margin=dict(l=0, r=0, t=0, b=0),
            plot_bgcolor=css,
            paper_bgcolor=css,
            showlegend=False,
            shapes=[],
        )
        self._figure.update_xaxes(range=[0, self.width], visible=False, fixedrange=True)
        self._figure.update_yaxes(range=[self.height, 0], visible=False, fixedrange=True)
        self._path = []

    def fill_rect(self, x: float, y: float, w: float, h: float) -> None:
        self._figure.add_shape(
            type="rect",
            x0=x,
            y0=y,
            x1=x + w,
            y1=y + h,
            line=dict(width=0),
            fillcolor=_rgb_css(self._fill_color),
            layer="below",
        )

    def put_mask(self, mask: np.ndarray, color: str, alpha: float = 1.0) -> None:
        arr = self._check_mask(mask)
        if not arr.any():
            return
        r, g, b = parse_color(color)
        z = np.zeros((self.height, self.width, 4), dtype=float)
        z[arr] = (r, g, b, min(max(float(alpha), 0.0), 1.0))
        self._figure.add_trace(go.Image(z=z, colormodel="rgba", x0=0, y0=0, dx=1, dy=1, hoverinfo="skip"))

    def _stroke_subpaths(self, subpaths: Sequence[Sequence[Tuple[float, float]]]) -> None:
        xs: list[Any] = []
        ys: list[Any] = []
        for pts in subpaths:
            if xs:
                xs.append(None)
                ys.append(None)
            xs.extend(p[0] for p in pts)
            ys.extend(p[1] for p in pts)
        self._figure.add_trace(
            go.Scatter(
                x=xs,
                y=ys,
                mode="lines",
                line=dict(color=_rgb_css(self._stroke_color), width=self._line_width),
                hoverinfo="skip",
                connectgaps=False,
            )
        )
