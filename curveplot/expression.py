"""Text-to-callable expression compiler used by the equation classifier.

Purpose
-------
Parse one user-typed expression (``"2x^2 + sin(theta)"``) with SymPy and
compile it through :func:`curveplot.numpify.numpify_cached` into a
:class:`CompiledExpression` bound to an explicit variable list.

Concepts and structure
----------------------
- :class:`ExpressionEvaluator` holds the parsing namespace and transformations.
- :meth:`ExpressionEvaluator.compile` returns a :class:`CompiledExpression` or
  raises :class:`~curveplot.errors.CompileError`.
- :meth:`CompiledExpression.evaluate` evaluates at one binding and raises
  :class:`~curveplot.errors.EvaluationError` on failure;
  :meth:`CompiledExpression.evaluate_array` is the vectorized form used by the
  sampler, returning ``nan``/``inf`` for invalid points.

Important gotchas
-----------------
- ``^`` means power and ``2x`` means ``2*x`` (implicit multiplication).
- Names not in the variable list are rejected at compile time, so ``y = z``
  is a compile error rather than a per-sample failure.
- ``θ``/``theta`` and ``π``/``pi`` are accepted interchangeably.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping, Sequence
from typing import Any, Optional

import numpy as np
import sympy as sp
from sympy.logic.boolalg import Boolean
from sympy.parsing.sympy_parser import (
    convert_xor,
    implicit_multiplication_application,
    parse_expr,
    standard_transformations,
)

from .errors import CompileError, EvaluationError
from .numpify import NumpifiedFunction, numpify_cached

__all__ = [
    "CompiledExpression",
    "ExpressionEvaluator",
    "compile_expression",
    "DEFAULT_EVALUATOR",
    "normalize_text",
]

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


TRANSFORMATIONS = standard_transformations + (
    implicit_multiplication_application,
    convert_xor,
)

_UNICODE_REPLACEMENTS = {
    "θ": "theta",
    "π": "pi",
    "−": "-",
    "·": "*",
    "×": "*",
    "÷": "/",
    "²": "^2",
    "³": "^3",
}

# Function and constant names available inside expressions.
ALLOWED_NAMES: dict[str, Any] = {
    "pi": sp.pi,
    "e": sp.E,
    "E": sp.E,
    "sqrt": sp.sqrt,
    "cbrt": sp.cbrt,
    "sin": sp.sin,
    "cos": sp.cos,
    "tan": sp.tan,
    # Reciprocal trig goes through cos/sin/tan, which NumPy can print.
    "sec": lambda a: 1 / sp.cos(a),
    "csc": lambda a: 1 / sp.sin(a),
    "cot": lambda a: 1 / sp.tan(a),
    "asin": sp.asin,
    "acos": sp.acos,
    "atan": sp.atan,
    "arcsin": sp.asin,
    "arccos": sp.acos,
    "arctan": sp.atan,
    "atan2": sp.atan2,
    "sinh": sp.sinh,
    "cosh": sp.cosh,
    "tanh": sp.tanh,
    "asinh": sp.asinh,
    "acosh": sp.acosh,
    "atanh": sp.atanh,
    "exp": sp.exp,
    "log": sp.log,
    "ln": sp.log,
    "abs": sp.Abs,
    "Abs": sp.Abs,
    "floor": sp.floor,
    "ceil": sp.ceiling,
    "ceiling": sp.ceiling,
    "sign": sp.sign,
    "min": sp.Min,
    "max": sp.Max,
    "mod": sp.Mod,
}


def normalize_text(text: str) -> str:
    """Replace the unicode math characters users commonly paste."""
    out = text
    for src, dst in _UNICODE_REPLACEMENTS.items():
        out = out.replace(src, dst)
    return out


class CompiledExpression:
    """A compiled expression bound to an ordered variable list.

    Parameters
    ----------
    text : str
        Source text, kept for diagnostics.
    variables : tuple[str, ...]
        Variable names in call order.
    symbolic : sympy.Basic
        Parsed expression.
    numeric : NumpifiedFunction
        Vectorized callable taking one argument per variable.
    """

    __slots__ = ("text", "variables", "symbolic", "_numeric")

    def __init__(
        self,
        text: str,
        variables: tuple[str, ...],
        symbolic: sp.Basic,
        numeric: NumpifiedFunction,
    ) -> None:
        self.text = text
        self.variables = variables
        self.symbolic = symbolic
        self._numeric = numeric

    @property
    def source(self) -> str:
        """Generated NumPy source (for debugging)."""
        return self._numeric.source

    def _ordered(self, bindings: Mapping[str, Any]) -> list[Any]:
        missing = [name for name in self.variables if name not in bindings]
        if missing:
            raise EvaluationError(f"Missing binding(s) for {', '.join(missing)} in {self.text!r}")
        return [bindings[name] for name in self.variables]

    def evaluate_array(self, bindings: Optional[Mapping[str, Any]] = None, /, **arrays: Any) -> np.ndarray:
        """Evaluate on NumPy arrays, returning a float array.

        Invalid points come back as ``nan`` or ``inf``; exceptions raised by
        the generated code (e.g. a function that cannot broadcast) propagate
        so callers can fall back to scalar evaluation.
        """
        merged = dict(bindings or {})
        merged.update(arrays)
        values = self._numeric(*self._ordered(merged))
        out = np.asarray(values)
        if np.iscomplexobj(out):
            # Keep real results, drop genuinely complex ones.
            real = np.where(np.abs(out.imag) > 0, np.nan, out.real)
            return np.asarray(real, dtype=float)
        return out.astype(float, copy=False)

    def evaluate(self, bindings: Optional[Mapping[str, Any]] = None, /, **values: Any) -> float:
        """Evaluate at one point.

        Returns
        -------
        float
            May be ``nan`` or ``inf`` for points outside the real domain.

        Raises
        ------
        EvaluationError
            If evaluation fails or produces a non-numeric result.
        """
        merged = dict(bindings or {})
        merged.update(values)
        try:
            result = self.evaluate_array(merged)
            if result.size != 1:
                raise EvaluationError(f"Expected a scalar result from {self.text!r}, got shape {result.shape}")
            return float(result.reshape(()))
        except EvaluationError:
            raise
        except Exception as e:
            raise EvaluationError(f"Failed to evaluate {self.text!r} at {merged!r}: {e}") from e

    def is_finite_at(self, **values: float) -> bool:
        """Return True when :meth:`evaluate` succeeds with a finite value."""
        try:
            return math.isfinite(self.evaluate(values))
        except EvaluationError:
            return False

    def __repr__(self) -> str:
        return f"CompiledExpression({self.text!r}, variables={self.variables!r})"


class ExpressionEvaluator:
    """Parse and compile expression text with a fixed function namespace.

    Parameters
    ----------
    names : mapping, optional
        Extra names (functions or constants) made available to expressions.
    """

    def __init__(self, names: Optional[Mapping[str, Any]] = None) -> None:
        self._names = dict(ALLOWED_NAMES)
        if names:
            self._names.update(names)

    def parse(self, text: str, variables: Sequence[str]) -> sp.Basic:
        """Parse ``text`` into a SymPy expression over ``variables``.

        Raises
        ------
        CompileError
            On syntax errors or non-numeric results (e.g. relations or tuples).
        """
        source = normalize_text(text).strip()
        if not source:
            raise CompileError("Empty expression", text=text)
        local_dict: dict[str, Any] = dict(self._names)
        for name in variables:
            local_dict[name] = sp.Symbol(name, real=True)
        try:
            expr = parse_expr(source, local_dict=local_dict, transformations=TRANSFORMATIONS)
        except Exception as e:
            raise CompileError(f"Could not parse {text!r}: {type(e).__name__}: {e}", text=text) from e
        # Relations evaluate to booleans (1.0/0.0); tuples, sets etc. are rejected.
        if not isinstance(expr, (sp.Expr, Boolean)):
            raise CompileError(f"{text!r} is not a numeric expression ({type(expr).__name__})", text=text)
        return expr

    def compile(self, text: str, variables: Sequence[str]) -> CompiledExpression:
        """Compile ``text`` into a :class:`CompiledExpression`.

        Parameters
        ----------
        text : str
            Expression text (one side of an equation).
        variables : sequence of str
            Allowed variable names, in call order.

        Raises
        ------
        CompileError
            If parsing fails, unknown names remain, or a function has no NumPy
            translation.
        """
        names = tuple(variables)
        expr = self.parse(text, names)
        symbols = tuple(sp.Symbol(name, real=True) for name in names)
        try:
            numeric = numpify_cached(expr, vars=symbols)
        except (TypeError, ValueError) as e:
            raise CompileError(f"Could not compile {text!r}: {e}", text=text) from e
        logger.debug("compiled %r over %s", text, names)
        return CompiledExpression(text=text, variables=names, symbolic=expr, numeric=numeric)


DEFAULT_EVALUATOR = ExpressionEvaluator()


def compile_expression(text: str, variables: Sequence[str]) -> CompiledExpression:
    """Compile ``text`` with the default evaluator."""
    return DEFAULT_EVALUATOR.compile(text, variables)
