from __future__ import annotations

import math

import numpy as np
import pytest
import sympy as sp

from curveplot import CompileError, EvaluationError, ExpressionEvaluator, compile_expression
from curveplot.numpify import numpify, numpify_cached


def test_implicit_multiplication_and_caret_power() -> None:
    f = compile_expression("2x^2 + 1", ["x"])
    assert f.evaluate(x=3.0) == pytest.approx(19.0)


def test_unicode_theta_and_pi() -> None:
    f = compile_expression("2θ + π", ["theta"])
    assert f.evaluate(theta=1.5) == pytest.approx(3.0 + math.pi)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("sin(pi/2)", 1.0),
        ("ln(e)", 1.0),
        ("sec(0)", 1.0),
        ("abs(-3)", 3.0),
        ("floor(2.7) + ceil(0.2)", 3.0),
        ("max(1, 4)", 4.0),
        ("sqrt(16)", 4.0),
    ],
)
def test_constant_expressions(text: str, expected: float) -> None:
    assert compile_expression(text, []).evaluate() == pytest.approx(expected)


def test_vectorized_evaluation_returns_float_array() -> None:
    f = compile_expression("1/x", ["x"])
    out = f.evaluate_array(x=np.array([-2.0, 0.0, 4.0]))
    assert out.dtype == float
    assert out[0] == pytest.approx(-0.5)
    assert not np.isfinite(out[1])
    assert out[2] == pytest.approx(0.25)


def test_min_and_max_of_variables_evaluate() -> None:
    hi = compile_expression("max(x, 0)", ["x"])
    lo = compile_expression("min(x, 1)", ["x"])
    assert hi.evaluate(x=-2.0) == 0.0
    assert lo.evaluate(x=3.0) == 1.0
    xs = np.array([-1.0, 0.5, 2.0])
    np.testing.assert_allclose(hi.evaluate_array(x=xs), [0.0, 0.5, 2.0])
    np.testing.assert_allclose(lo.evaluate_array(x=xs), [-1.0, 0.5, 1.0])


def test_domain_errors_become_nan_not_exceptions() -> None:
    f = compile_expression("sqrt(x) + log(x)", ["x"])
    assert math.isnan(f.evaluate(x=-1.0))
    assert f.is_finite_at(x=-1.0) is False
    assert f.is_finite_at(x=1.0) is True


def test_relations_evaluate_to_one_or_zero() -> None:
    f = compile_expression("x > 1", ["x"])
    assert f.evaluate(x=2.0) == 1.0
    assert f.evaluate(x=0.0) == 0.0


def test_missing_binding_raises_evaluation_error() -> None:
    f = compile_expression("x + y", ["x", "y"])
    with pytest.raises(EvaluationError, match="y"):
        f.evaluate(x=1.0)


@pytest.mark.parametrize("text", ["", "   ", "(", "x +", "z + x", "(1, 2)"])
def test_compile_errors(text: str) -> None:
    with pytest.raises(CompileError):
        compile_expression(text, ["x"])


def test_compile_error_keeps_text() -> None:
    with pytest.raises(CompileError) as info:
        compile_expression("q*x", ["x"])
    assert info.value.text == "q*x"


def test_custom_names_extend_namespace() -> None:
    ev = ExpressionEvaluator(names={"k": sp.Integer(3)})
    assert ev.compile("k*x", ["x"]).evaluate(x=2.0) == pytest.approx(6.0)


def test_generated_source_is_inspectable() -> None:
    f = compile_expression("sin(x)", ["x"])
    assert "numpy.sin" in f.source


def test_numpify_uses_cache_by_default() -> None:
    x = sp.Symbol("x")
    numpify_cached.cache_clear()
    f1 = numpify(x + 1, vars=x)
    f2 = numpify(x + 1, vars=x)
    assert f1 is f2
    assert numpify_cached.cache_info().hits >= 1


def test_numpify_cache_false_forces_recompile() -> None:
    x = sp.Symbol("x")
    f1 = numpify(x + 1, vars=x, cache=False)
    f2 = numpify(x + 1, vars=x, cache=False)
    assert f1 is not f2


def test_numpify_constant_broadcasts_to_argument_shape() -> None:
    x = sp.Symbol("x")
    f = numpify(5, vars=x)
    np.testing.assert_array_equal(f(np.array([1.0, 2.0, 3.0])), [5.0, 5.0, 5.0])


def test_numpify_rejects_unbound_symbols_and_wrong_arity() -> None:
    x, y = sp.symbols("x y")
    with pytest.raises(ValueError, match="unbound"):
        numpify(x + y, vars=x)
    f = numpify(x * y, vars=(x, y))
    with pytest.raises(TypeError):
        f(1.0)


def test_numpify_rejects_functions_without_numpy_translation() -> None:
    x = sp.Symbol("x")
    g = sp.Function("g")
    with pytest.raises(ValueError, match="g"):
        numpify(g(x), vars=x)


def test_package_exports_numpify_function() -> None:
    import curveplot

    assert curveplot.numpify is numpify
    assert not hasattr(curveplot, "numpify_module")
