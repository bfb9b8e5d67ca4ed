"""Compile SymPy expressions into vectorized NumPy callables.

A curve is evaluated at every pixel column, every parameter step or every
grid cell in one call, so each expression is turned into a small generated
Python function whose body is SymPy's NumPy rendering of the expression::

    def _generated(x, y):
        x = numpy.asarray(x, dtype=float)
        y = numpy.asarray(y, dtype=float)
        return x**2 + y**2 - 4

Floating-point warnings are silenced at call time; points outside the real
domain come back as ``nan`` or ``inf`` and the samplers turn them into gaps.

Compilation is rejected up front (``ValueError``) when the expression has a
free symbol that is not an argument, or calls a function SymPy cannot print
for NumPy. Both would otherwise only fail once drawing starts.

Examples
--------
>>> import numpy as np
>>> import sympy as sp
>>> x = sp.Symbol("x")
>>> numpify(1 / x, vars=x)(np.array([0.0, 2.0]))
array([inf, 0.5])
>>> numpify(5, vars=x)(np.array([1, 2, 3]))
array([5., 5., 5.])

Compile timings are logged at DEBUG level on ``curveplot.numpify``.
"""

from __future__ import annotations

import builtins
import importlib
import keyword
import logging
import time
from functools import lru_cache
from typing import Any, Callable, Iterable, Optional, Tuple, Union

import numpy as np
import sympy as sp
from sympy.printing.numpy import NumPyPrinter

__all__ = ["NumpifiedFunction", "numpify", "numpify_cached"]

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

VarsLike = Optional[Union[sp.Symbol, Iterable[sp.Symbol]]]

_RESERVED = frozenset(keyword.kwlist) | frozenset(dir(builtins)) | {"numpy", "functools", "_shape"}
_CACHE_SIZE = 256


class NumpifiedFunction:
    """Generated NumPy callable plus the expression it came from.

    Attributes
    ----------
    symbolic : sympy.Basic
        Compiled expression.
    vars : tuple of sympy.Symbol
        Positional argument order.
    source : str
        Generated Python source.
    """

    __slots__ = ("_fn", "symbolic", "vars", "var_names", "source")

    def __init__(
        self,
        fn: Callable[..., Any],
        symbolic: sp.Basic,
        vars: Tuple[sp.Symbol, ...],
        var_names: Tuple[str, ...],
        source: str,
    ) -> None:
        self._fn = fn
        self.symbolic = symbolic
        self.vars = vars
        self.var_names = var_names
        self.source = source

    def __call__(self, *args: Any) -> Any:
        if len(args) != len(self.vars):
            raise TypeError(
                f"Expected {len(self.vars)} argument(s) ({', '.join(self.var_names)}), got {len(args)}"
            )
        with np.errstate(all="ignore"):
            return self._fn(*args)

    def __repr__(self) -> str:
        return f"NumpifiedFunction({self.symbolic!r}, vars=({', '.join(self.var_names)}))"


def numpify(expr: Any, *, vars: VarsLike = None, cache: bool = True) -> NumpifiedFunction:
    """Compile ``expr`` into a :class:`NumpifiedFunction`.

    Parameters
    ----------
    expr : sympy.Basic or sympifiable
        Expression to compile.
    vars : Symbol or iterable of Symbol, optional
        Argument order. Defaults to the free symbols in SymPy's sort order.
    cache : bool, optional
        Reuse compiled functions through :func:`numpify_cached` (default).

    Raises
    ------
    TypeError
        If ``expr`` is not SymPy-compatible or ``vars`` holds non-symbols.
    ValueError
        If a free symbol is not in ``vars`` or a function has no NumPy
        translation.
    """
    expr_sym = _sympify(expr)
    vars_tuple = _normalize_vars(expr_sym, vars)
    if cache:
        return _compile_cached(expr_sym, vars_tuple)
    return _compile(expr_sym, vars_tuple)


def numpify_cached(expr: Any, *, vars: VarsLike = None) -> NumpifiedFunction:
    """LRU-cached :func:`numpify`; re-typing an equation reuses its callable."""
    return numpify(expr, vars=vars, cache=True)


def _sympify(expr: Any) -> sp.Basic:
    try:
        out = sp.sympify(expr)
    except (sp.SympifyError, TypeError, ValueError) as e:
        raise TypeError(f"numpify expects a SymPy-compatible expression, got {type(expr).__name__}") from e
    if not isinstance(out, sp.Basic):
        raise TypeError(f"numpify expects a SymPy expression, got {type(out).__name__}")
    return out


def _normalize_vars(expr: sp.Basic, vars: VarsLike) -> Tuple[sp.Symbol, ...]:
    if vars is None:
        return tuple(sorted(expr.free_symbols, key=sp.default_sort_key))
    if isinstance(vars, sp.Symbol):
        return (vars,)
    try:
        out = tuple(vars)
    except TypeError as e:
        raise TypeError("vars must be a Symbol or an iterable of Symbols") from e
    for sym in out:
        if not isinstance(sym, sp.Symbol):
            raise TypeError(f"vars must contain only Symbols, got {type(sym).__name__}")
    return out


def _argument_names(vars_tuple: Tuple[sp.Symbol, ...]) -> Tuple[str, ...]:
    names: list[str] = []
    for i, sym in enumerate(vars_tuple):
        name = sym.name
        if not name.isidentifier() or name in _RESERVED or name in names:
            name = f"_a{i}"
        names.append(name)
    return tuple(names)


def _unprintable_functions(expr: sp.Basic, printer: NumPyPrinter) -> set[str]:
    # With allow_unknown_functions, an unsupported call prints as ``name(...)``.
    missing: set[str] = set()
    for call in expr.atoms(sp.Function):
        name = call.func.__name__
        try:
            code = printer.doprint(call).strip()
        except Exception:
            missing.add(name)
            continue
        if code.startswith(f"{name}("):
            missing.add(name)
    return missing


def _compile(expr: sp.Basic, vars_tuple: Tuple[sp.Symbol, ...]) -> NumpifiedFunction:
    start = time.perf_counter()
    unbound = {s.name for s in expr.free_symbols} - {s.name for s in vars_tuple}
    if unbound:
        raise ValueError(
            f"Expression contains unbound symbols: {', '.join(sorted(unbound))}. "
            f"Allowed variables: ({', '.join(s.name for s in vars_tuple)})."
        )

    printer = NumPyPrinter(settings={"user_functions": {}, "allow_unknown_functions": True})
    missing = _unprintable_functions(expr, printer)
    if missing:
        raise ValueError(f"Expression uses function(s) without a NumPy implementation: {', '.join(sorted(missing))}.")

    names = _argument_names(vars_tuple)
    body = printer.doprint(expr.xreplace({s: sp.Symbol(n) for s, n in zip(vars_tuple, names)}))

    lines = [f"def _generated({', '.join(names)}):"]
    lines += [f"    {n} = numpy.asarray({n}, dtype=float)" for n in names]
    if names and not expr.free_symbols:
        # Constants still broadcast to the argument shape.
        lines.append(f"    _shape = numpy.broadcast({', '.join(names)}).shape")
        lines.append(f"    return ({body}) + numpy.zeros(_shape)")
    else:
        lines.append(f"    return {body}")
    source = "\n".join(lines)

    namespace: dict[str, Any] = {"numpy": np}
    # Min/Max print as functools.reduce(numpy.maximum, ...), among others.
    for module in printer.module_imports:
        importlib.import_module(module)
        top = module.split(".")[0]
        namespace.setdefault(top, importlib.import_module(top))
    exec(source, namespace)
    fn = namespace["_generated"]

    logger.debug("numpify %s over %s in %.2f ms", expr, names, 1000.0 * (time.perf_counter() - start))
    return NumpifiedFunction(fn, expr, vars_tuple, names, source)


@lru_cache(maxsize=_CACHE_SIZE)
def _compile_cached(expr: sp.Basic, vars_tuple: Tuple[sp.Symbol, ...]) -> NumpifiedFunction:
    logger.debug("numpify cache miss for %s", expr)
    return _compile(expr, vars_tuple)


numpify_cached.cache_clear = _compile_cached.cache_clear  # type: ignore[attr-defined]
numpify_cached.cache_info = _compile_cached.cache_info  # type: ignore[attr-defined]
