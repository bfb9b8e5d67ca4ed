"""Top-level public API for the ``curveplot`` package.

``curveplot`` classifies free-form equations (explicit, parametric, polar,
implicit and inequality), samples them against a pannable/zoomable viewport and
draws them onto a NumPy raster or a Plotly figure:

>>> from curveplot import Plotter  # doctest: +SKIP
>>> p = Plotter()  # doctest: +SKIP
>>> p.add("y = 1/x")  # doctest: +SKIP

Lower-level building blocks (classifier, sampler, renderer, surfaces) are
re-exported for hosts that drive their own event loop.
"""

from .classifier import (
    ClassificationResult,
    ClassifiedEquation,
    Explicit,
    Family,
    Implicit,
    Inequality,
    Invalid,
    Parametric,
    Polar,
    classify,
)
from .config import DEFAULT_CONFIG, PlotterConfig
from .context import PlotContext
from .controller import InteractionMode, ViewController
from .errors import (
    ClassificationError,
    CompileError,
    CurveplotError,
    EvaluationError,
    ViewportDegenerateError,
)
from .expression import CompiledExpression, ExpressionEvaluator, compile_expression
from .numpify import NumpifiedFunction, numpify, numpify_cached
from .plotter import Plotter
from .redraw import RedrawQueue
from .registry import FunctionEntry, FunctionRegistry
from .renderer import DARK_THEME, LIGHT_THEME, PlotRenderer, Theme
from .sampling import GAP, CurveSampler, Gap, MaskSample, Ok, PathSample
from .snapshot import EntrySnapshot, PlotterSnapshot
from .surface import DrawingSurface, PlotlySurface, RasterSurface
from .viewport import Viewport

__version__ = "0.1.0"
