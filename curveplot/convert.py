# === SECTION: convert [id: convert]===
"""Coercion of user-facing numeric settings (ranges, steps, tolerances)."""

from __future__ import annotations

import math
from typing import Any, Tuple

import sympy as sp

NumberLikeOrStr = int | float | str
RangeLike = Tuple[NumberLikeOrStr, NumberLikeOrStr]


def to_float(obj: Any, *, allow_nonfinite: bool = False) -> float:
    """
    Convert `obj` to a real float.

    Rules:
    - bool is rejected (``True`` is almost always a mistake for a range bound).
    - numbers are cast with ``float``; complex values must have a zero
      imaginary part.
    - strings are tried as ``float(s)`` first, then parsed with SymPy and
      evaluated, so ``"-2*pi"`` and ``"1e3"`` both work.

    Raises
    ------
    ValueError
        If conversion fails, the value is non-real, or it is non-finite while
        ``allow_nonfinite`` is False.
    """
    if isinstance(obj, bool):
        raise ValueError(f"Could not convert {obj!r} to float: booleans are not numbers here.")

    if isinstance(obj, str):
        s = obj.strip()
        if s == "":
            raise ValueError("Cannot convert empty string to float.")
        try:
            value = float(s)
        except ValueError:
            try:
                value = complex(sp.sympify(s).evalf())
            except Exception as e:
                raise ValueError(f"Could not convert {obj!r} to float (neither directly nor via SymPy).") from e
    else:
        try:
            value = complex(obj)
        except Exception as e:
            raise ValueError(f"Could not convert {obj!r} to float.") from e

    if isinstance(value, complex):
        if value.imag != 0:
            raise ValueError(f"Could not convert non-real {obj!r} to float: imaginary part is non-zero.")
        value = value.real

    result = float(value)
    if not allow_nonfinite and not math.isfinite(result):
        raise ValueError(f"Expected a finite number, got {obj!r}.")
    return result


def to_range(value: RangeLike) -> tuple[float, float]:
    """Convert a ``(low, high)`` pair to floats, requiring ``low < high``."""
    try:
        raw_min, raw_max = value
    except (TypeError, ValueError) as e:
        raise ValueError(f"Expected a (min, max) pair, got {value!r}.") from e
    low, high = to_float(raw_min), to_float(raw_max)
    if not low < high:
        raise ValueError(f"Range minimum must be < maximum, got ({low}, {high}).")
    return low, high

# === END OF SECTION: convert [id: convert]===
