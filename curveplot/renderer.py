"""Draw a registry of equations onto a drawing surface.

Purpose
-------
``PlotRenderer`` performs one full redraw: background, grid, axes and then
every drawable registry entry in registration order, each sampled through a
:class:`~curveplot.sampling.CurveSampler`. Later entries draw on top.

Concepts and structure
----------------------
- :meth:`PlotRenderer.render` draws synchronously and returns ``None``.
- :meth:`PlotRenderer.iter_render` is the same redraw as a generator. It
  yields after every mask band and after every entry so a host loop can
  handle input while an implicit curve is still being evaluated.
- :class:`Theme` holds the background, grid and axis colours.

Important gotchas
-----------------
- The surface size must equal the viewport's pixel size.
- Entries are read, never mutated. Each entry's equation and colour, and the
  viewport, are captured when a redraw starts, so edits and pans made between
  bands apply to the next redraw.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import Any, Generator, Iterable, Optional

import numpy as np

from .config import DEFAULT_CONFIG, PlotterConfig
from .context import PlotContext
from .registry import FunctionEntry
from .sampling import CurveSampler, MaskSample, PathSample, SampleResult
from .surface import DrawingSurface
from .viewport import Viewport

__all__ = ["Theme", "LIGHT_THEME", "DARK_THEME", "PlotRenderer", "nice_step", "grid_values"]

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


@dataclass(frozen=True)
class Theme:
    """Colours for everything the renderer draws besides the curves."""

    name: str
    background: str
    grid: str
    axis: str
    grid_line_width: float = 1.0
    axis_line_width: float = 2.0


LIGHT_THEME = Theme(name="light", background="#ffffff", grid="#e6e6e6", axis="#404040")
DARK_THEME = Theme(name="dark", background="#1e1e1e", grid="#3a3a3a", axis="#c8c8c8")


def nice_step(span: float, pixels: int, min_spacing_px: float) -> float:
    """Return the smallest 1/2/5 x 10^n step at least ``min_spacing_px`` wide.

    Examples
    --------
    >>> nice_step(20.0, 800, 40.0)
    1.0
    >>> nice_step(2.0, 800, 40.0)
    0.1
    """
    raw = span * min_spacing_px / pixels
    base = 10.0 ** math.floor(math.log10(raw))
    for mult in (1.0, 2.0, 5.0, 10.0):
        step = mult * base
        if step >= raw * (1.0 - 1e-12):
            return step
    return 10.0 * base


def grid_values(low: float, high: float, step: float) -> np.ndarray:
    """World coordinates of grid lines ``k * step`` inside ``[low, high]``."""
    k0 = math.ceil(low / step)
    k1 = math.floor(high / step)
    if k1 < k0:
        return np.empty(0)
    return np.arange(k0, k1 + 1, dtype=float) * step


class PlotRenderer:
    """Render registry entries onto a :class:`~curveplot.surface.DrawingSurface`.

    Parameters
    ----------
    surface : DrawingSurface
        Target surface; its size must match the viewports rendered.
    sampler : CurveSampler, optional
        Shared sampler (and its caches). Created from ``config`` if omitted.
    config : PlotterConfig, optional
        Line width, region opacity and grid settings.
    theme : Theme, optional
        Background/grid/axis colours.
    """

    def __init__(
        self,
        surface: DrawingSurface,
        sampler: Optional[CurveSampler] = None,
        *,
        config: PlotterConfig = DEFAULT_CONFIG,
        theme: Theme = LIGHT_THEME,
    ) -> None:
        self.surface = surface
        self.config = config
        self.sampler = sampler if sampler is not None else CurveSampler(config)
        self.theme = theme
        self.render_count = 0
        self._render_info_last_log_t = 0.0
        self._render_debug_last_log_t = 0.0

    # --- Public API ---

    def render(self, viewport: Viewport, registry: Iterable[FunctionEntry]) -> None:
        """Redraw everything synchronously."""
        for _ in self.iter_render(viewport, registry):
            pass

    def render_context(self, ctx: PlotContext) -> None:
        """Redraw ``ctx.viewport`` and ``ctx.registry``."""
        self.render(ctx.viewport, ctx.registry)

    def iter_render(
        self, viewport: Viewport, registry: Iterable[FunctionEntry]
    ) -> Generator[str, None, None]:
        """Cooperative redraw; yields the id of the entry being drawn.

        A value is yielded after every mask band of a grid family and once
        after each entry is fully drawn.
        """
        surface = self.surface
        if (surface.width, surface.height) != (viewport.pixel_width, viewport.pixel_height):
            raise ValueError(
                f"Surface {surface.width}x{surface.height} does not match viewport "
                f"{viewport.pixel_width}x{viewport.pixel_height}"
            )
        # Captured up front: registry edits replace equation and color in place.
        view = viewport.copy()
        entries = [(e.id, e.equation, e.color) for e in registry if e.drawable]
        self._log_render(view, entries)
        started = time.perf_counter()

        surface.clear(self.theme.background)
        self._draw_grid(view)
        self._draw_axes(view)

        for entry_id, equation, color in entries:
            steps = self.sampler.sample_steps(equation, view)
            while True:
                try:
                    next(steps)
                except StopIteration as stop:
                    result = stop.value
                    break
                yield entry_id
            self._draw_sample(color, result)
            yield entry_id

        self.render_count += 1
        logger.debug("render #%d done in %.1f ms", self.render_count, (time.perf_counter() - started) * 1e3)

    # --- Drawing ---

    def _axis_step(self, span: float, pixels: int) -> float:
        if self.config.grid_step is not None:
            return float(self.config.grid_step)
        return nice_step(span, pixels, self.config.grid_min_spacing_px)

    def _draw_grid(self, viewport: Viewport) -> None:
        cfg = self.config
        xs = grid_values(viewport.x_min, viewport.x_max, self._axis_step(viewport.x_max - viewport.x_min, viewport.pixel_width))
        ys = grid_values(viewport.y_min, viewport.y_max, self._axis_step(viewport.y_max - viewport.y_min, viewport.pixel_height))
        if xs.size > cfg.max_grid_lines:
            logger.debug("skipping %d vertical grid lines", xs.size)
            xs = xs[:0]
        if ys.size > cfg.max_grid_lines:
            logger.debug("skipping %d horizontal grid lines", ys.size)
            ys = ys[:0]
        if xs.size == 0 and ys.size == 0:
            return

        s = self.surface
        width, height = viewport.pixel_width, viewport.pixel_height
        s.set_stroke_color(self.theme.grid)
        s.set_line_width(self.theme.grid_line_width)
        s.begin_path()
        px, _ = viewport.to_screen(xs, 0.0)
        for x in np.atleast_1d(px).tolist():
            s.move_to(x, 0.0)
            s.line_to(x, height)
        _, py = viewport.to_screen(0.0, ys)
        for y in np.atleast_1d(py).tolist():
            s.move_to(0.0, y)
            s.line_to(width, y)
        s.stroke()

    def _draw_axes(self, viewport: Viewport) -> None:
        s = self.surface
        show_x_axis = viewport.y_min <= 0.0 <= viewport.y_max
        show_y_axis = viewport.x_min <= 0.0 <= viewport.x_max
        if not (show_x_axis or show_y_axis):
            return
        origin_px, origin_py = viewport.to_screen(0.0, 0.0)
        s.set_stroke_color(self.theme.axis)
        s.set_line_width(self.theme.axis_line_width)
        s.begin_path()
        if show_x_axis:
            s.move_to(0.0, origin_py)
            s.line_to(viewport.pixel_width, origin_py)
        if show_y_axis:
            s.move_to(origin_px, 0.0)
            s.line_to(origin_px, viewport.pixel_height)
        s.stroke()

    def _draw_sample(self, color: str, result: Optional[SampleResult]) -> None:
        s = self.surface
        if isinstance(result, PathSample):
            s.set_stroke_color(color)
            s.set_line_width(self.config.line_width)
            s.begin_path()
            for px, py in result.segments():
                s.move_to(float(px[0]), float(py[0]))
                for x, y in zip(px[1:].tolist(), py[1:].tolist()):
                    s.line_to(x, y)
            s.stroke()
        elif isinstance(result, MaskSample):
            alpha = 1.0 if result.kind == "curve" else self.config.region_alpha
            s.put_mask(result.mask, color, alpha)

    # --- Logging ---

    def _log_render(self, viewport: Viewport, entries: list[Any]) -> None:
        # Rate-limited so continuous drags do not flood the log.
        now = time.monotonic()
        if logger.isEnabledFor(logging.INFO) and (now - self._render_info_last_log_t) > 1.0:
            self._render_info_last_log_t = now
            logger.info("render entries=%d theme=%s", len(entries), self.theme.name)
        if logger.isEnabledFor(logging.DEBUG) and (now - self._render_debug_last_log_t) > 0.5:
            self._render_debug_last_log_t = now
            logger.debug("viewport %r", viewport)
