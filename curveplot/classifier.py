"""Equation classification: raw text -> tagged, compiled equation variant.

Purpose
-------
Decide which of the five supported families an input belongs to, extract the
sub-expressions that family needs, and compile each one.

Families are tried in a fixed order and the first match wins:

1. parametric  ``x(t) = ..., y(t) = ...`` (``,`` or ``;`` between the two)
2. polar       ``r = ...`` (``r(theta) = ...`` also accepted)
3. inequality  any of ``< > <= >= ≤ ≥``
4. implicit    ``lhs = rhs`` unless it is a plain ``y = ...``
5. explicit    everything else; a leading ``y =`` / ``f(x) =`` is stripped

This precedence is what keeps a parametric pair containing relational
characters from being read as an inequality, and an inequality containing
``<=`` from being read as an implicit equation.

The result is one of :class:`Explicit`, :class:`Parametric`, :class:`Polar`,
:class:`Implicit`, :class:`Inequality` (collectively ``ClassifiedEquation``)
or :class:`Invalid`. :func:`classify` never raises for bad input.
"""

from __future__ import annotations

import enum
import logging
import operator
import re
from dataclasses import dataclass, field
from typing import Callable, Optional, Union

from .errors import ClassificationError, CompileError
from .expression import DEFAULT_EVALUATOR, CompiledExpression, ExpressionEvaluator, normalize_text

__all__ = [
    "Family",
    "Explicit",
    "Parametric",
    "Polar",
    "Implicit",
    "Inequality",
    "Invalid",
    "ClassifiedEquation",
    "ClassificationResult",
    "RELATIONAL_OPERATORS",
    "classify",
]

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


class Family(str, enum.Enum):
    """Equation family tag."""

    EXPLICIT = "explicit"
    PARAMETRIC = "parametric"
    POLAR = "polar"
    IMPLICIT = "implicit"
    INEQUALITY = "inequality"
    INVALID = "invalid"


# Normalized operator token -> comparison on NumPy arrays.
RELATIONAL_OPERATORS: dict[str, Callable] = {
    "<": operator.lt,
    ">": operator.gt,
    "<=": operator.le,
    ">=": operator.ge,
}


# eq=False keeps identity hashing: samplers cache per equation object.
@dataclass(frozen=True, eq=False)
class Explicit:
    """``y = f(x)``."""

    text: str
    f: CompiledExpression
    family: Family = field(default=Family.EXPLICIT, init=False)


@dataclass(frozen=True, eq=False)
class Parametric:
    """``x = fx(t), y = fy(t)``."""

    text: str
    fx: CompiledExpression
    fy: CompiledExpression
    family: Family = field(default=Family.PARAMETRIC, init=False)


@dataclass(frozen=True, eq=False)
class Polar:
    """``r = fr(theta)``."""

    text: str
    fr: CompiledExpression
    family: Family = field(default=Family.POLAR, init=False)


@dataclass(frozen=True, eq=False)
class Implicit:
    """``g(x, y) = lhs - rhs = 0``."""

    text: str
    g: CompiledExpression
    family: Family = field(default=Family.IMPLICIT, init=False)


@dataclass(frozen=True, eq=False)
class Inequality:
    """``lhs(x, y) <op> rhs(x, y)``."""

    text: str
    lhs: CompiledExpression
    rhs: CompiledExpression
    op: str
    family: Family = field(default=Family.INEQUALITY, init=False)

    def test(self, lhs_values, rhs_values):
        """Apply the relation element-wise."""
        return RELATIONAL_OPERATORS[self.op](lhs_values, rhs_values)


@dataclass(frozen=True, eq=False)
class Invalid:
    """Classification or compilation failure.

    Parameters
    ----------
    text : str
        Raw input.
    reason : str
        Human-readable failure description.
    partial_family : Family or None
        Family recognized before the failure, kept for diagnostics.
    """

    text: str
    reason: str
    partial_family: Optional[Family] = None
    family: Family = field(default=Family.INVALID, init=False)


ClassifiedEquation = Union[Explicit, Parametric, Polar, Implicit, Inequality]
ClassificationResult = Union[ClassifiedEquation, Invalid]


_PARAM_DECL = re.compile(r"^\s*([xy])\s*(?:\(\s*t\s*\))?\s*=(?!=)\s*(.*)$", re.DOTALL)
_POLAR_DECL = re.compile(r"^\s*r\s*(?:\(\s*(?:theta|t)\s*\))?\s*=(?!=)\s*(.*)$", re.DOTALL)
_EXPLICIT_DECL = re.compile(r"^\s*(?:y|f\s*\(\s*x\s*\))\s*=(?!=)\s*(.*)$", re.DOTALL)
_RELATION = re.compile(r"<=|>=|≤|≥|<|>")
_T_TOKEN = re.compile(r"(?<![A-Za-z_])t(?![A-Za-z_])")
_ANGLE_ALIAS = re.compile(r"(?<![A-Za-z_])[tx](?![A-Za-z_])")
_OP_ALIASES = {"≤": "<=", "≥": ">="}


def classify(text: str, evaluator: Optional[ExpressionEvaluator] = None) -> ClassificationResult:
    """Classify and compile one equation.

    Parameters
    ----------
    text : str
        Raw user input.
    evaluator : ExpressionEvaluator, optional
        Compiler for the extracted expressions; defaults to the shared one.

    Returns
    -------
    ClassifiedEquation or Invalid

    Examples
    --------
    >>> classify("y=x^2").family
    <Family.EXPLICIT: 'explicit'>
    >>> classify("x^2+y^2=4").family
    <Family.IMPLICIT: 'implicit'>
    >>> classify("").family
    <Family.INVALID: 'invalid'>
    """
    ev = evaluator or DEFAULT_EVALUATOR
    raw = "" if text is None else str(text)
    source = normalize_text(raw).strip()
    if not source:
        return Invalid(text=raw, reason="Empty input")

    family: Optional[Family] = None
    try:
        family = _detect_family(source)
        result = _compile_family(family, raw, source, ev)
    except (ClassificationError, CompileError) as e:
        logger.debug("classify(%r) -> invalid (%s): %s", raw, family, e)
        return Invalid(text=raw, reason=str(e), partial_family=family)
    logger.debug("classify(%r) -> %s", raw, result.family.value)
    return result


def _split_top_level(source: str, delimiter: str) -> list[str]:
    """Split on ``delimiter`` outside parentheses/brackets."""
    parts: list[str] = []
    depth = 0
    current: list[str] = []
    for ch in source:
        if ch in "([{":
            depth += 1
        elif ch in ")]}":
            depth = max(depth - 1, 0)
        if ch == delimiter and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(ch)
    parts.append("".join(current))
    return parts


def _split_declarations(source: str) -> Optional[list[str]]:
    for delimiter in (";", ","):
        if delimiter not in source:
            continue
        parts = [p.strip() for p in _split_top_level(source, delimiter)]
        parts = [p for p in parts if p]
        if len(parts) != 2:
            continue
        if all(_PARAM_DECL.match(p) for p in parts):
            return parts
    return None


def _parametric_parts(source: str) -> Optional[dict[str, str]]:
    """Return ``{"x": ..., "y": ...}`` when ``source`` is a parametric pair."""
    parts = _split_declarations(source)
    if parts is None:
        return None
    decls: dict[str, str] = {}
    explicit_t = False
    for part in parts:
        m = _PARAM_DECL.match(part)
        assert m is not None
        name, body = m.group(1), m.group(2)
        if name in decls:
            return None
        if "(" in part.split("=", 1)[0]:
            explicit_t = True
        decls[name] = body.strip()
    if set(decls) != {"x", "y"}:
        return None
    # ``x = ..., y = ...`` without ``(t)`` must mention the parameter.
    if not explicit_t and not any(_T_TOKEN.search(body) for body in decls.values()):
        return None
    return decls


def _detect_family(source: str) -> Family:
    if _parametric_parts(source) is not None:
        return Family.PARAMETRIC
    if _POLAR_DECL.match(source):
        return Family.POLAR
    if _RELATION.search(source):
        return Family.INEQUALITY
    if "=" in source and not _EXPLICIT_DECL.match(source):
        return Family.IMPLICIT
    return Family.EXPLICIT


def _require(body: str, what: str) -> str:
    body = body.strip()
    if not body:
        raise ClassificationError(f"Missing {what}")
    return body


def _compile_family(family: Family, raw: str, source: str, ev: ExpressionEvaluator) -> ClassifiedEquation:
    if family is Family.PARAMETRIC:
        decls = _parametric_parts(source)
        assert decls is not None
        fx = ev.compile(_require(decls["x"], "x(t) expression"), ("t",))
        fy = ev.compile(_require(decls["y"], "y(t) expression"), ("t",))
        return Parametric(text=raw, fx=fx, fy=fy)

    if family is Family.POLAR:
        m = _POLAR_DECL.match(source)
        assert m is not None
        body = _require(m.group(1), "r(theta) expression")
        if "=" in body:
            raise ClassificationError("Polar equations take a single '='")
        # ``t`` and ``x`` are accepted as aliases for theta.
        body = _ANGLE_ALIAS.sub("theta", body)
        return Polar(text=raw, fr=ev.compile(body, ("theta",)))

    if family is Family.INEQUALITY:
        tokens = _RELATION.split(source)
        ops = _RELATION.findall(source)
        if len(ops) != 1:
            raise ClassificationError("Chained relations are not supported")
        lhs_text = _require(tokens[0], "left-hand side")
        rhs_text = _require(tokens[1], "right-hand side")
        if "=" in lhs_text or "=" in rhs_text:
            raise ClassificationError("Mixed '=' and relational operator")
        op = _OP_ALIASES.get(ops[0], ops[0])
        lhs = ev.compile(lhs_text, ("x", "y"))
        rhs = ev.compile(rhs_text, ("x", "y"))
        return Inequality(text=raw, lhs=lhs, rhs=rhs, op=op)

    if family is Family.IMPLICIT:
        sides = source.split("=")
        if len(sides) != 2:
            raise ClassificationError("Implicit equations need exactly one '='")
        lhs_text = _require(sides[0], "left-hand side")
        rhs_text = _require(sides[1], "right-hand side")
        g = ev.compile(f"({lhs_text}) - ({rhs_text})", ("x", "y"))
        return Implicit(text=raw, g=g)

    m = _EXPLICIT_DECL.match(source)
    body = _require(m.group(1), "right-hand side of y =") if m else source
    if "=" in body:
        raise ClassificationError("Explicit equations take a single '='")
    return Explicit(text=raw, f=ev.compile(body, ("x",)))
