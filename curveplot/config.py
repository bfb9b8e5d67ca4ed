"""Tunable configuration for the plotting engine.

This module defines :class:`PlotterConfig`, a frozen record of every knob the
engine exposes:

- default viewport extent and surface size,
- zoom factors and extent clamps,
- sampling densities for the parametric, polar and grid families,
- the implicit-curve tolerance and grid stride,
- grid/axis drawing limits.

The implicit tolerance and grid stride have no principled derivation; they are
plain settings so callers can trade precision for speed.

Configuration can be overridden via environment variables prefixed with
``CURVEPLOT_`` (see :meth:`PlotterConfig.from_env`), for example::

    CURVEPLOT_GRID_STRIDE=1 CURVEPLOT_IMPLICIT_TOLERANCE=0.02 python app.py
"""

from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass, fields, replace
from typing import Any, Mapping, Optional, Tuple

from .convert import to_float, to_range

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

ENV_PREFIX = "CURVEPLOT_"

_TRUE_STRINGS = {"1", "true", "yes", "on"}
_FALSE_STRINGS = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class PlotterConfig:
    """Immutable engine settings.

    Parameters
    ----------
    default_x_range, default_y_range : tuple[float, float]
        Extent restored by ``Viewport.reset``.
    pixel_width, pixel_height : int
        Drawing-surface size in pixels.
    min_extent, max_extent : float
        Bounds for the world width/height reachable by zooming.
    zoom_in_factor, zoom_out_factor : float
        Extent multipliers applied per wheel notch.
    parametric_range : tuple[float, float]
        Parameter sweep for parametric curves.
    parametric_step, polar_step : float
        Sweep steps for parametric ``t`` and polar ``theta``.
    implicit_tolerance : float
        A grid point is on an implicit curve when ``|g| <`` this value.
    implicit_sign_change : bool
        Also mark grid cells where ``g`` changes sign between neighbours.
    grid_stride : int
        Pixel stride of the implicit/inequality evaluation grid.
    band_rows : int
        Grid rows evaluated per band before yielding.
    region_alpha : float
        Opacity of inequality regions.
    line_width : float
        Stroke width for curves, in pixels.
    grid_step : float or None
        Fixed world spacing of grid lines; ``None`` picks a 1/2/5 step.
    grid_min_spacing_px : float
        Target minimum pixel distance between automatic grid lines.
    max_grid_lines : int
        Grid lines are skipped when one axis would need more than this.
    """

    default_x_range: Tuple[float, float] = (-10.0, 10.0)
    default_y_range: Tuple[float, float] = (-7.5, 7.5)
    pixel_width: int = 800
    pixel_height: int = 600
    min_extent: float = 1e-6
    max_extent: float = 1e6
    zoom_in_factor: float = 0.9
    zoom_out_factor: float = 1.1
    parametric_range: Tuple[float, float] = (-10.0, 10.0)
    parametric_step: float = 0.01
    polar_step: float = 0.01
    implicit_tolerance: float = 0.05
    implicit_sign_change: bool = True
    grid_stride: int = 2
    band_rows: int = 16
    region_alpha: float = 0.3
    line_width: float = 2.0
    grid_step: Optional[float] = None
    grid_min_spacing_px: float = 40.0
    max_grid_lines: int = 100

    def __post_init__(self) -> None:
        # Frozen dataclass: normalize through object.__setattr__.
        object.__setattr__(self, "default_x_range", to_range(self.default_x_range))
        object.__setattr__(self, "default_y_range", to_range(self.default_y_range))
        object.__setattr__(self, "parametric_range", to_range(self.parametric_range))

        if int(self.pixel_width) < 1 or int(self.pixel_height) < 1:
            raise ValueError("pixel_width and pixel_height must be >= 1")
        object.__setattr__(self, "pixel_width", int(self.pixel_width))
        object.__setattr__(self, "pixel_height", int(self.pixel_height))

        if not 0 < self.min_extent < self.max_extent or not math.isfinite(self.max_extent):
            raise ValueError("extent bounds must satisfy 0 < min_extent < max_extent < inf")
        for name in ("default_x_range", "default_y_range"):
            low, high = getattr(self, name)
            if not self.min_extent <= high - low <= self.max_extent:
                raise ValueError(f"{name} width must lie within [min_extent, max_extent]")
        if not 0 < self.zoom_in_factor < 1:
            raise ValueError("zoom_in_factor must be in (0, 1)")
        if not self.zoom_out_factor > 1 or not math.isfinite(self.zoom_out_factor):
            raise ValueError("zoom_out_factor must be a finite value > 1")
        if self.parametric_step <= 0 or self.polar_step <= 0:
            raise ValueError("parametric_step and polar_step must be > 0")
        if self.implicit_tolerance <= 0:
            raise ValueError("implicit_tolerance must be > 0")
        if int(self.grid_stride) < 1:
            raise ValueError("grid_stride must be >= 1")
        object.__setattr__(self, "grid_stride", int(self.grid_stride))
        if int(self.band_rows) < 1:
            raise ValueError("band_rows must be >= 1")
        object.__setattr__(self, "band_rows", int(self.band_rows))
        if not 0.0 <= self.region_alpha <= 1.0:
            raise ValueError("region_alpha must be between 0.0 and 1.0")
        if self.grid_step is not None and self.grid_step <= 0:
            raise ValueError("grid_step must be > 0 or None")
        if int(self.max_grid_lines) < 1:
            raise ValueError("max_grid_lines must be >= 1")

    @property
    def default_extent(self) -> tuple[float, float, float, float]:
        """Return ``(x_min, x_max, y_min, y_max)`` of the default viewport."""
        return (*self.default_x_range, *self.default_y_range)

    def with_overrides(self, **overrides: Any) -> "PlotterConfig":
        """Return a copy with ``overrides`` applied (validated again)."""
        return replace(self, **overrides)

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        **overrides: Any,
    ) -> "PlotterConfig":
        """Build a config from ``CURVEPLOT_*`` environment variables.

        Parameters
        ----------
        environ : mapping, optional
            Source mapping; defaults to :data:`os.environ`.
        **overrides : Any
            Explicit values that win over the environment.

        Returns
        -------
        PlotterConfig

        Notes
        -----
        Range fields take two comma-separated values
        (``CURVEPLOT_DEFAULT_X_RANGE="-2*pi,2*pi"``); ``CURVEPLOT_GRID_STEP=none``
        restores the automatic grid step.
        """
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        for f in fields(cls):
            raw = env.get(ENV_PREFIX + f.name.upper())
            if raw is None:
                continue
            try:
                values[f.name] = _parse_env_value(f.name, raw, getattr(cls, f.name))
            except ValueError as e:
                raise ValueError(f"Invalid value for {ENV_PREFIX}{f.name.upper()}: {raw!r}") from e
            logger.debug("config override from env: %s=%r", f.name, values[f.name])
        values.update(overrides)
        return cls(**values)


def _parse_env_value(name: str, raw: str, default: Any) -> Any:
    text = raw.strip()
    if isinstance(default, bool):
        lowered = text.lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
        raise ValueError(f"not a boolean: {raw!r}")
    if isinstance(default, tuple):
        parts = [p for p in text.split(",")]
        if len(parts) != 2:
            raise ValueError("expected two comma-separated values")
        return to_range((parts[0], parts[1]))
    if isinstance(default, int):
        return int(to_float(text))
    if name == "grid_step" and text.lower() in {"", "none"}:
        return None
    return to_float(text)


DEFAULT_CONFIG = PlotterConfig()
