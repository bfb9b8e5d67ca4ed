"""Ordered store of user equations and their cached classifications.

Purpose
-------
``FunctionRegistry`` owns every :class:`FunctionEntry`. Entries keep the raw
text, the classified equation produced by :func:`curveplot.classifier.classify`,
a colour and a visibility flag. Classification runs when an entry is added and
again only when its text changes, so drawing never re-parses input.

Entries whose classification failed stay in the registry with
``error_state == True``; the renderer skips them.

Examples
--------
>>> reg = FunctionRegistry()
>>> entry = reg.add("y = x^2")
>>> entry.id, entry.error_state
('f0', False)
>>> reg.add("y = (").error_state
True
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from typing import Iterator, Optional

from plotly.colors import qualitative

from .classifier import ClassificationResult, Invalid, classify
from .expression import ExpressionEvaluator
from .surface import parse_color

__all__ = ["FunctionEntry", "FunctionRegistry", "DEFAULT_PALETTE"]

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

DEFAULT_PALETTE: tuple[str, ...] = tuple(qualitative.Plotly)


def _checked_color(color: str) -> str:
    # Raises ValueError for colours the surfaces cannot draw.
    parse_color(color)
    return str(color)


@dataclass(eq=False)
class FunctionEntry:
    """One registered equation.

    Parameters
    ----------
    id : str
        Registry-assigned identifier (``"f0"``, ``"f1"``, ...).
    raw_input : str
        Text as typed by the user.
    equation : ClassificationResult
        Cached classification of ``raw_input``.
    color : str
        Stroke/fill colour.
    visible : bool
        Whether the entry is drawn.
    """

    id: str
    raw_input: str
    equation: ClassificationResult
    color: str
    visible: bool = True
    revision: int = field(default=0)

    @property
    def error_state(self) -> bool:
        """True when classification or compilation failed."""
        return isinstance(self.equation, Invalid)

    @property
    def error_message(self) -> Optional[str]:
        return self.equation.reason if isinstance(self.equation, Invalid) else None

    @property
    def family(self):
        return self.equation.family

    @property
    def drawable(self) -> bool:
        """True when the renderer should sample this entry."""
        return self.visible and not self.error_state

    def __repr__(self) -> str:
        state = "error" if self.error_state else self.equation.family.value
        return f"FunctionEntry(id={self.id!r}, raw_input={self.raw_input!r}, {state}, visible={self.visible})"


class FunctionRegistry:
    """Insertion-ordered collection of :class:`FunctionEntry` objects.

    Parameters
    ----------
    evaluator : ExpressionEvaluator, optional
        Compiler handed to :func:`classify`.
    palette : sequence of str, optional
        Colours assigned round-robin to entries added without one.
    """

    def __init__(
        self,
        evaluator: Optional[ExpressionEvaluator] = None,
        palette: Optional[tuple[str, ...]] = None,
    ) -> None:
        self._evaluator = evaluator
        self._palette = tuple(palette) if palette else DEFAULT_PALETTE
        self._entries: dict[str, FunctionEntry] = {}
        self._ids = itertools.count()
        self._colors = itertools.cycle(self._palette)
        self._history: list[str] = []

    # --- Mutations ---

    def add(self, text: str, *, color: Optional[str] = None, visible: bool = True) -> FunctionEntry:
        """Classify ``text`` and append a new entry.

        Invalid input is still added, flagged with ``error_state``.
        """
        raw = str(text)
        entry = FunctionEntry(
            id=f"f{next(self._ids)}",
            raw_input=raw,
            equation=classify(raw, self._evaluator),
            color=_checked_color(color) if color is not None else next(self._colors),
            visible=bool(visible),
        )
        self._entries[entry.id] = entry
        self._history.append(raw)
        logger.debug("added %r", entry)
        return entry

    def update(self, entry_id: str, text: str) -> FunctionEntry:
        """Replace the text of an entry, re-classifying only if it changed.

        Raises
        ------
        KeyError
            If ``entry_id`` is unknown.
        """
        entry = self.get(entry_id)
        raw = str(text)
        if raw == entry.raw_input:
            return entry
        entry.raw_input = raw
        entry.equation = classify(raw, self._evaluator)
        entry.revision += 1
        self._history.append(raw)
        logger.debug("updated %r", entry)
        return entry

    def remove(self, entry_id: str) -> FunctionEntry:
        """Remove and return an entry.

        Raises
        ------
        KeyError
            If ``entry_id`` is unknown.
        """
        entry = self._entries.pop(entry_id, None)
        if entry is None:
            raise KeyError(f"Unknown function id: {entry_id!r}")
        logger.debug("removed %r", entry)
        return entry

    def set_visible(self, entry_id: str, visible: bool) -> FunctionEntry:
        entry = self.get(entry_id)
        entry.visible = bool(visible)
        return entry

    def set_color(self, entry_id: str, color: str) -> FunctionEntry:
        entry = self.get(entry_id)
        entry.color = _checked_color(color)
        return entry

    def clear(self) -> None:
        """Remove every entry (history is kept)."""
        self._entries.clear()

    # --- Queries ---

    def get(self, entry_id: str) -> FunctionEntry:
        try:
            return self._entries[entry_id]
        except KeyError:
            raise KeyError(f"Unknown function id: {entry_id!r}") from None

    @property
    def history(self) -> tuple[str, ...]:
        """Every text submitted through :meth:`add`/:meth:`update`, oldest first."""
        return tuple(self._history)

    def drawable(self) -> list[FunctionEntry]:
        """Entries the renderer should draw, in registration order."""
        return [e for e in self._entries.values() if e.drawable]

    def __iter__(self) -> Iterator[FunctionEntry]:
        return iter(list(self._entries.values()))

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, entry_id: object) -> bool:
        return entry_id in self._entries

    def __repr__(self) -> str:
        return f"FunctionRegistry({len(self)} entries)"
