"""High-level plotting facade.

Purpose
-------
``Plotter`` wires together one :class:`~curveplot.context.PlotContext`, a
shared :class:`~curveplot.sampling.CurveSampler`, a
:class:`~curveplot.renderer.PlotRenderer` with its drawing surface, a
:class:`~curveplot.controller.ViewController` and a
:class:`~curveplot.redraw.RedrawQueue`. Every mutation (adding or editing an
equation, toggling visibility, panning, zooming) funnels into the redraw
queue, so redraws never overlap.

Examples
--------
>>> p = Plotter()  # doctest: +SKIP
>>> f = p.add("y = sin(x)")  # doctest: +SKIP
>>> p.add("x^2 + y^2 = 9")  # doctest: +SKIP
>>> p.controller.wheel(400, 300, -1)  # doctest: +SKIP
>>> p.figure()  # doctest: +SKIP
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Union

import numpy as np
import plotly.graph_objects as go
from IPython.display import display

from .config import PlotterConfig
from .context import PlotContext
from .controller import ViewController
from .expression import ExpressionEvaluator
from .redraw import RedrawQueue
from .registry import FunctionEntry, FunctionRegistry
from .renderer import DARK_THEME, LIGHT_THEME, PlotRenderer, Theme
from .sampling import CurveSampler
from .snapshot import EntrySnapshot, PlotterSnapshot
from .surface import DrawingSurface, PlotlySurface, RasterSurface
from .viewport import Viewport

__all__ = ["Plotter", "THEMES"]

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

THEMES: dict[str, Theme] = {LIGHT_THEME.name: LIGHT_THEME, DARK_THEME.name: DARK_THEME}


class Plotter:
    """Interactive equation plotter.

    Parameters
    ----------
    config : PlotterConfig, optional
        Engine settings; defaults to :meth:`PlotterConfig.from_env`.
    surface : DrawingSurface, optional
        Primary drawing target. Defaults to a :class:`RasterSurface` of the
        configured pixel size.
    theme : Theme or str, optional
        ``"light"`` (default), ``"dark"`` or a :class:`Theme`.
    evaluator : ExpressionEvaluator, optional
        Expression compiler used for classification.
    auto_redraw : bool, optional
        Redraw after every mutation (default ``True``).
    """

    def __init__(
        self,
        config: Optional[PlotterConfig] = None,
        *,
        surface: Optional[DrawingSurface] = None,
        theme: Union[Theme, str] = LIGHT_THEME,
        evaluator: Optional[ExpressionEvaluator] = None,
        auto_redraw: bool = True,
    ) -> None:
        cfg = config if config is not None else PlotterConfig.from_env()
        self._context = PlotContext.create(cfg, evaluator=evaluator)
        self._sampler = CurveSampler(cfg)
        self._surface = surface if surface is not None else RasterSurface(cfg.pixel_width, cfg.pixel_height)
        self._renderer = PlotRenderer(self._surface, self._sampler, config=cfg, theme=_resolve_theme(theme))
        self._queue = RedrawQueue(self._redraw)
        self._controller = ViewController(self._context.viewport, self._request_redraw, config=cfg)
        self.auto_redraw = bool(auto_redraw)

    # --- Components ---

    @property
    def context(self) -> PlotContext:
        return self._context

    @property
    def config(self) -> PlotterConfig:
        return self._context.config

    @property
    def viewport(self) -> Viewport:
        return self._context.viewport

    @property
    def registry(self) -> FunctionRegistry:
        return self._context.registry

    @property
    def controller(self) -> ViewController:
        return self._controller

    @property
    def renderer(self) -> PlotRenderer:
        return self._renderer

    @property
    def surface(self) -> DrawingSurface:
        return self._surface

    @property
    def theme(self) -> Theme:
        return self._renderer.theme

    # --- Equations ---

    def add(self, text: str, *, color: Optional[str] = None, visible: bool = True) -> FunctionEntry:
        """Register an equation and redraw.

        Invalid equations are kept with ``error_state=True`` and skipped when
        drawing; inspect ``entry.error_message`` for the reason.
        """
        entry = self.registry.add(text, color=color, visible=visible)
        if entry.error_state:
            logger.info("equation %s is invalid: %s", entry.id, entry.error_message)
        self._request_redraw()
        return entry

    def edit(self, entry_id: str, text: str) -> FunctionEntry:
        """Replace an entry's text; classification re-runs before the redraw."""
        entry = self.registry.update(entry_id, text)
        self._request_redraw()
        return entry

    def remove(self, entry_id: str) -> None:
        self.registry.remove(entry_id)
        self._request_redraw()

    def set_visible(self, entry_id: str, visible: bool) -> None:
        self.registry.set_visible(entry_id, visible)
        self._request_redraw()

    def set_color(self, entry_id: str, color: str) -> None:
        self.registry.set_color(entry_id, color)
        self._request_redraw()

    def set_theme(self, theme: Union[Theme, str]) -> None:
        """Switch the light/dark theme and redraw."""
        self._renderer.theme = _resolve_theme(theme)
        self._request_redraw()

    # --- Drawing ---

    def draw(self) -> None:
        """Redraw now through the queue, regardless of ``auto_redraw``."""
        self._queue()

    def _request_redraw(self) -> None:
        if self.auto_redraw:
            self._queue()

    def _redraw(self) -> None:
        self._renderer.render_context(self._context)

    def to_array(self) -> np.ndarray:
        """Return a copy of the primary surface pixels (raster surfaces only)."""
        if not isinstance(self._surface, RasterSurface):
            raise TypeError(f"to_array() needs a RasterSurface, not {type(self._surface).__name__}")
        return self._surface.to_array()

    def figure(self) -> go.Figure:
        """Render the current state into a new Plotly figure.

        The figure shares the sampler caches with the primary surface.
        """
        vp = self.viewport
        surface = PlotlySurface(vp.pixel_width, vp.pixel_height)
        renderer = PlotRenderer(surface, self._sampler, config=self.config, theme=self.theme)
        renderer.render_context(self._context)
        return surface.figure

    # --- Export ---

    def snapshot(self) -> PlotterSnapshot:
        """Return an immutable snapshot of the viewport and registry."""
        vp = self.viewport
        default = vp.default_extent
        return PlotterSnapshot(
            x_range=vp.x_range,
            y_range=vp.y_range,
            default_x_range=(default[0], default[1]),
            default_y_range=(default[2], default[3]),
            pixel_size=(vp.pixel_width, vp.pixel_height),
            theme=self.theme.name,
            entries=tuple(
                EntrySnapshot(
                    id=e.id,
                    raw_input=e.raw_input,
                    family=e.equation.family.value,
                    color=e.color,
                    visible=e.visible,
                    error_message=e.error_message,
                )
                for e in self.registry
            ),
        )

    def _ipython_display_(self, **kwargs: Any) -> None:
        """Display the Plotly rendering of the current state in IPython."""
        display(self.figure())

    def __repr__(self) -> str:
        return f"Plotter({self.viewport!r}, entries={len(self.registry)}, theme={self.theme.name!r})"


def _resolve_theme(theme: Union[Theme, str]) -> Theme:
    if isinstance(theme, Theme):
        return theme
    try:
        return THEMES[str(theme).lower()]
    except KeyError:
        raise ValueError(f"Unknown theme {theme!r}; expected one of {sorted(THEMES)}") from None
