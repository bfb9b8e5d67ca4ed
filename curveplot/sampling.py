"""Per-family sampling strategies: classified equation + viewport -> geometry.

Purpose
-------
Turn one :mod:`~curveplot.classifier` variant into drawable data for the
current :class:`~curveplot.viewport.Viewport`:

- explicit, parametric and polar equations become a :class:`PathSample`
  (screen-space points with explicit breaks),
- implicit equations and inequalities become a :class:`MaskSample`
  (boolean pixel grid).

Concepts and structure
----------------------
Sampling is vectorized with NumPy. Invalid points are data, not exceptions:
a failing or non-finite sample is stored as ``nan`` in the path arrays and
read back as :data:`GAP` through :meth:`PathSample.samples`. When a vectorized
evaluation raises, the strategy falls back to point-by-point evaluation where
each failure is one gap.

Grid families are evaluated in row bands. :meth:`CurveSampler.sample_steps`
is a generator that yields after every band so a host loop can interleave
input handling; :meth:`CurveSampler.sample` runs it to completion.

Important gotchas
-----------------
- Explicit sampling uses integer pixel columns ``0 .. W-1``.
- Between two finite explicit samples that leave the screen on opposite
  edges, the midpoint is evaluated; a non-finite or out-of-range midpoint
  means an asymptote and a break is inserted.
- An implicit sign flip between neighbouring cells counts as a crossing only
  when the midpoint value behaves like a root; flips across a pole are dropped.
- Parametric/polar world paths depend only on the equation and the sweep
  settings, so they are cached and only re-projected on pan/zoom.
- Masks are cached per equation object and viewport state. Replacing the
  equation object (an edit) drops its cache entries.
"""

from __future__ import annotations

import logging
import math
import weakref
from dataclasses import dataclass
from typing import Any, Generator, Iterator, Optional, Tuple, Union

import numpy as np

from .classifier import ClassificationResult, Explicit, Implicit, Inequality, Invalid, Parametric, Polar
from .config import DEFAULT_CONFIG, PlotterConfig
from .errors import EvaluationError
from .expression import CompiledExpression
from .viewport import Viewport

__all__ = [
    "Ok",
    "Gap",
    "GAP",
    "Sample",
    "PathSample",
    "MaskSample",
    "MaskBand",
    "SampleResult",
    "CurveSampler",
]

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


@dataclass(frozen=True)
class Ok:
    """A drawable screen point."""

    px: float
    py: float


class Gap:
    __slots__ = ()

    def __repr__(self) -> str:
        return "GAP"


GAP = Gap()

Sample = Union[Ok, Gap]


@dataclass(frozen=True, eq=False)
class PathSample:
    """Ordered screen-space points; ``nan`` entries are breaks.

    Parameters
    ----------
    px, py : numpy.ndarray
        Screen coordinates of equal length. A ``nan`` in either array marks a
        break: the path is not connected across it.
    """

    px: np.ndarray
    py: np.ndarray

    def __post_init__(self) -> None:
        gaps = ~(np.isfinite(self.px) & np.isfinite(self.py))
        px = np.where(gaps, np.nan, self.px)
        py = np.where(gaps, np.nan, self.py)
        px.flags.writeable = False
        py.flags.writeable = False
        object.__setattr__(self, "px", px)
        object.__setattr__(self, "py", py)

    def __len__(self) -> int:
        return int(self.px.shape[0])

    @property
    def gap_mask(self) -> np.ndarray:
        """Boolean array, True where the sample is a break."""
        return np.isnan(self.px)

    @property
    def break_count(self) -> int:
        """Number of maximal runs of breaks."""
        gaps = self.gap_mask
        if gaps.size == 0:
            return 0
        starts = gaps & ~np.concatenate(([False], gaps[:-1]))
        return int(starts.sum())

    @property
    def point_count(self) -> int:
        """Number of drawable points."""
        return int((~self.gap_mask).sum())

    def samples(self) -> Iterator[Sample]:
        """Iterate samples as :class:`Ok` points or :data:`GAP`."""
        for px, py in zip(self.px.tolist(), self.py.tolist()):
            if math.isnan(px):
                yield GAP
            else:
                yield Ok(px, py)

    def segments(self) -> list[Tuple[np.ndarray, np.ndarray]]:
        """Return the connected runs as ``(px, py)`` array pairs."""
        gaps = self.gap_mask
        out: list[Tuple[np.ndarray, np.ndarray]] = []
        if gaps.size == 0:
            return out
        idx = np.flatnonzero(~gaps)
        if idx.size == 0:
            return out
        splits = np.flatnonzero(np.diff(idx) > 1) + 1
        for run in np.split(idx, splits):
            out.append((self.px[run], self.py[run]))
        return out


@dataclass(frozen=True, eq=False)
class MaskSample:
    """Boolean pixel grid produced by grid-based families.

    Parameters
    ----------
    mask : numpy.ndarray
        ``(pixel_height, pixel_width)`` booleans; row 0 is the top of the screen.
    kind : str
        ``"curve"`` for implicit equations, ``"region"`` for inequalities.
    stride : int
        Grid stride the mask was computed with.
    """

    mask: np.ndarray
    kind: str
    stride: int

    def __post_init__(self) -> None:
        self.mask.flags.writeable = False

    @property
    def count(self) -> int:
        """Number of marked pixels."""
        return int(self.mask.sum())


@dataclass(frozen=True)
class MaskBand:
    """One evaluated band of a mask (pixel rows ``row_start:row_stop``)."""

    row_start: int
    row_stop: int
    mask: np.ndarray


SampleResult = Union[PathSample, MaskSample]


def _evaluate_vector(fn: CompiledExpression, shape: Tuple[int, ...], **arrays: np.ndarray) -> np.ndarray:
    """Evaluate ``fn`` on arrays; failures become ``nan``, never exceptions."""
    try:
        values = fn.evaluate_array(**arrays)
        return np.array(np.broadcast_to(values, shape), dtype=float)
    except Exception as exc:
        logger.debug("vectorized evaluation of %r failed (%s); falling back to points", fn.text, exc)

    flat = {name: np.broadcast_to(arr, shape).ravel() for name, arr in arrays.items()}
    out = np.full(int(np.prod(shape)), np.nan)
    for i in range(out.size):
        try:
            out[i] = fn.evaluate({name: float(arr[i]) for name, arr in flat.items()})
        except EvaluationError:
            out[i] = np.nan
    return out.reshape(shape)


def _root_between(
    fn: CompiledExpression, g_a: np.ndarray, g_b: np.ndarray, **midpoints: np.ndarray
) -> np.ndarray:
    """Tell a root from a pole between neighbours of opposite sign.

    Near a root the midpoint value is no larger than the endpoint on its own
    side; next to a pole it is larger, or not finite.
    """
    g_mid = _evaluate_vector(fn, g_a.shape, **midpoints)
    same_side = np.where(np.sign(g_mid) == np.sign(g_a), np.abs(g_a), np.abs(g_b))
    with np.errstate(invalid="ignore"):
        return np.isfinite(g_mid) & (np.abs(g_mid) <= same_side)


class CurveSampler:
    """Sample classified equations against a viewport.

    Parameters
    ----------
    config : PlotterConfig, optional
        Sweep steps, grid stride, tolerance and band size.
    """

    def __init__(self, config: PlotterConfig = DEFAULT_CONFIG) -> None:
        self._config = config
        self._world_paths: "weakref.WeakKeyDictionary[Any, tuple[tuple, np.ndarray, np.ndarray]]" = weakref.WeakKeyDictionary()
        self._masks: "weakref.WeakKeyDictionary[Any, tuple[tuple, MaskSample]]" = weakref.WeakKeyDictionary()

    @property
    def config(self) -> PlotterConfig:
        return self._config

    @config.setter
    def config(self, value: PlotterConfig) -> None:
        self._config = value
        self.clear_cache()

    def clear_cache(self) -> None:
        """Drop every cached world path and mask."""
        self._world_paths.clear()
        self._masks.clear()

    # --- Public API ---

    def sample(self, equation: ClassificationResult, viewport: Viewport) -> Optional[SampleResult]:
        """Sample ``equation`` synchronously.

        Returns
        -------
        PathSample, MaskSample or None
            ``None`` for :class:`~curveplot.classifier.Invalid` input.
        """
        steps = self.sample_steps(equation, viewport)
        while True:
            try:
                next(steps)
            except StopIteration as stop:
                return stop.value

    def sample_steps(
        self, equation: ClassificationResult, viewport: Viewport
    ) -> Generator[int, None, Optional[SampleResult]]:
        """Cooperative form of :meth:`sample`.

        Yields the number of completed mask bands after each band (path
        families complete without yielding); the generator's return value is
        the sample result.
        """
        if isinstance(equation, Invalid):
            return None
        if isinstance(equation, Explicit):
            return self._sample_explicit(equation, viewport)
        if isinstance(equation, Parametric):
            return self._sample_parametric(equation, viewport)
        if isinstance(equation, Polar):
            return self._sample_polar(equation, viewport)
        if isinstance(equation, (Implicit, Inequality)):
            key = self._mask_key(viewport)
            cached = self._masks.get(equation)
            if cached is not None and cached[0] == key:
                logger.debug("mask cache hit for %r", equation.text)
                return cached[1]
            mask = np.zeros((viewport.pixel_height, viewport.pixel_width), dtype=bool)
            done = 0
            for band in self.iter_mask_bands(equation, viewport):
                mask[band.row_start:band.row_stop] = band.mask
                done += 1
                yield done
            result = MaskSample(
                mask=mask,
                kind="curve" if isinstance(equation, Implicit) else "region",
                stride=self._config.grid_stride,
            )
            self._masks[equation] = (key, result)
            logger.debug("sampled %s %r: %d pixels marked", result.kind, equation.text, result.count)
            return result
        raise TypeError(f"Unsupported equation type: {type(equation).__name__}")

    # --- Path families ---

    def _sample_explicit(self, equation: Explicit, viewport: Viewport) -> PathSample:
        columns = np.arange(viewport.pixel_width, dtype=float)
        xs, _ = viewport.to_world(columns, 0.0)
        ys = _evaluate_vector(equation.f, xs.shape, x=xs)
        px, py = viewport.to_screen(xs, ys)
        px, py = self._break_asymptotes(equation.f, viewport, xs, ys, px, py)
        path = PathSample(px=px, py=py)
        logger.debug("sampled explicit %r: %d points, %d breaks", equation.text, path.point_count, path.break_count)
        return path

    def _break_asymptotes(
        self,
        f: CompiledExpression,
        viewport: Viewport,
        xs: np.ndarray,
        ys: np.ndarray,
        px: np.ndarray,
        py: np.ndarray,
    ) -> Tuple[np.ndarray, np.ndarray]:
        """Insert breaks between neighbours that jump across the screen through a pole."""
        height = viewport.pixel_height
        finite = np.isfinite(py)
        pair_ok = finite[:-1] & finite[1:]
        crossing = pair_ok & (
            ((py[:-1] < 0) & (py[1:] > height)) | ((py[:-1] > height) & (py[1:] < 0))
        )
        idx = np.flatnonzero(crossing)
        if idx.size == 0:
            return px, py

        mids = 0.5 * (xs[idx] + xs[idx + 1])
        y_mid = _evaluate_vector(f, mids.shape, x=mids)
        lo = np.minimum(ys[idx], ys[idx + 1])
        hi = np.maximum(ys[idx], ys[idx + 1])
        pole = ~np.isfinite(y_mid) | (y_mid < lo) | (y_mid > hi)
        insert_at = idx[pole] + 1
        if insert_at.size == 0:
            return px, py
        return np.insert(px, insert_at, np.nan), np.insert(py, insert_at, np.nan)

    def _sweep(self, low: float, high: float, step: float) -> np.ndarray:
        count = max(int(round((high - low) / step)) + 1, 2)
        return np.linspace(low, high, count)

    def _sample_parametric(self, equation: Parametric, viewport: Viewport) -> PathSample:
        key = ("parametric", self._config.parametric_range, self._config.parametric_step)
        cached = self._world_paths.get(equation)
        if cached is not None and cached[0] == key:
            wx, wy = cached[1], cached[2]
        else:
            ts = self._sweep(*self._config.parametric_range, self._config.parametric_step)
            wx = _evaluate_vector(equation.fx, ts.shape, t=ts)
            wy = _evaluate_vector(equation.fy, ts.shape, t=ts)
            self._world_paths[equation] = (key, wx, wy)
        px, py = viewport.to_screen(wx, wy)
        return PathSample(px=px, py=py)

    def _sample_polar(self, equation: Polar, viewport: Viewport) -> PathSample:
        key = ("polar", self._config.polar_step)
        cached = self._world_paths.get(equation)
        if cached is not None and cached[0] == key:
            wx, wy = cached[1], cached[2]
        else:
            thetas = self._sweep(0.0, 2.0 * math.pi, self._config.polar_step)
            rs = _evaluate_vector(equation.fr, thetas.shape, theta=thetas)
            with np.errstate(all="ignore"):
                wx = rs * np.cos(thetas)
                wy = rs * np.sin(thetas)
            self._world_paths[equation] = (key, wx, wy)
        px, py = viewport.to_screen(wx, wy)
        return PathSample(px=px, py=py)

    # --- Grid families ---

    def _mask_key(self, viewport: Viewport) -> tuple:
        cfg = self._config
        return (viewport.state_key(), cfg.grid_stride, cfg.implicit_tolerance, cfg.implicit_sign_change)

    def iter_mask_bands(self, equation: Union[Implicit, Inequality], viewport: Viewport) -> Iterator[MaskBand]:
        """Evaluate the grid band by band, yielding pixel-resolution rows.

        Each grid cell covers ``stride x stride`` pixels and is evaluated at
        its centre. Bands never overlap and cover the whole surface in order.
        """
        stride = self._config.grid_stride
        width, height = viewport.pixel_width, viewport.pixel_height
        cell_px = viewport.column_centers(stride)
        cell_py = viewport.row_centers(stride)
        wx, _ = viewport.to_world(cell_px, 0.0)
        _, wy_all = viewport.to_world(0.0, cell_py)

        previous_row: Optional[np.ndarray] = None
        band_rows = self._config.band_rows
        for start in range(0, cell_py.size, band_rows):
            wy = wy_all[start:start + band_rows]
            X, Y = np.meshgrid(wx, wy)
            if isinstance(equation, Implicit):
                g = _evaluate_vector(equation.g, X.shape, x=X, y=Y)
                previous_y = wy_all[start - 1] if start else None
                cells = self._curve_cells(equation, g, wx, wy, previous_row, previous_y)
                previous_row = g[-1]
            else:
                lhs = _evaluate_vector(equation.lhs, X.shape, x=X, y=Y)
                rhs = _evaluate_vector(equation.rhs, X.shape, x=X, y=Y)
                with np.errstate(invalid="ignore"):
                    cells = np.asarray(equation.test(lhs, rhs), dtype=bool)
                cells &= ~(np.isnan(lhs) | np.isnan(rhs))

            pixels = np.repeat(np.repeat(cells, stride, axis=0), stride, axis=1)
            row_start = start * stride
            row_stop = min(row_start + pixels.shape[0], height)
            yield MaskBand(row_start=row_start, row_stop=row_stop, mask=pixels[: row_stop - row_start, :width])

    def _curve_cells(
        self,
        equation: Implicit,
        g: np.ndarray,
        wx: np.ndarray,
        wy: np.ndarray,
        previous_row: Optional[np.ndarray],
        previous_y: Optional[float],
    ) -> np.ndarray:
        finite = np.isfinite(g)
        with np.errstate(invalid="ignore"):
            cells = finite & (np.abs(g) < self._config.implicit_tolerance)
        if not self._config.implicit_sign_change:
            return cells

        sign = np.sign(g)
        # Horizontal neighbours; the right-hand cell is marked.
        flips = finite[:, 1:] & finite[:, :-1] & (sign[:, 1:] * sign[:, :-1] < 0)
        rows, cols = np.nonzero(flips)
        if rows.size:
            keep = _root_between(
                equation.g,
                g[rows, cols],
                g[rows, cols + 1],
                x=0.5 * (wx[cols] + wx[cols + 1]),
                y=wy[rows],
            )
            cells[rows[keep], cols[keep] + 1] = True

        # Vertical neighbours, including the last row of the previous band.
        if previous_row is None:
            above, above_y, offset = g[:-1], wy[:-1], 1
        else:
            above = np.vstack([previous_row[np.newaxis, :], g[:-1]])
            above_y, offset = np.concatenate([[previous_y], wy[:-1]]), 0
        current = g[offset:]
        vflips = np.isfinite(above) & np.isfinite(current) & (np.sign(above) * np.sign(current) < 0)
        rows, cols = np.nonzero(vflips)
        if rows.size:
            keep = _root_between(
                equation.g,
                above[rows, cols],
                current[rows, cols],
                x=wx[cols],
                y=0.5 * (above_y[rows] + wy[offset:][rows]),
            )
            cells[rows[keep] + offset, cols[keep]] = True
        return cells
