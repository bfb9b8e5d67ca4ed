"""Exception taxonomy shared by the plotting engine.

All errors raised by :mod:`curveplot` derive from :class:`CurveplotError` so
callers embedding the engine can catch one base class. Most of them never reach
a caller: the classifier turns classification and compile failures into
:class:`~curveplot.classifier.Invalid` results and the sampler turns evaluation
failures into gaps.
"""

from __future__ import annotations

__all__ = [
    "CurveplotError",
    "ClassificationError",
    "CompileError",
    "EvaluationError",
    "ViewportDegenerateError",
]


class CurveplotError(Exception):
    """Base class for all engine errors."""


class ClassificationError(CurveplotError):
    """Raised when raw input matches no equation family or a part is missing."""


class CompileError(CurveplotError):
    """Raised when an expression string cannot be parsed or compiled.

    Parameters
    ----------
    message : str
        Human-readable description.
    text : str, optional
        The expression text that failed.
    """

    def __init__(self, message: str, *, text: str = "") -> None:
        super().__init__(message)
        self.text = text


class EvaluationError(CurveplotError):
    """Raised when a compiled expression fails at one set of bindings."""


class ViewportDegenerateError(CurveplotError, ValueError):
    """Raised when a viewport extent would be empty, inverted or non-finite."""
