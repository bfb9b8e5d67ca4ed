"""Immutable snapshots of a plotter's reproducible state.

A ``PlotterSnapshot`` captures the viewport extent, the theme name and one
``EntrySnapshot`` per registered equation, in registration order. Replaying
the entry texts into a fresh :class:`~curveplot.plotter.Plotter` rebuilds the
registry; the extent fields describe what was on screen.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class EntrySnapshot:
    """Immutable record of one registry entry.

    Parameters
    ----------
    id : str
        Entry identifier.
    raw_input : str
        Equation text.
    family : str
        Classified family name (``"invalid"`` on error).
    color : str
        Stroke/fill colour.
    visible : bool
        Visibility flag.
    error_message : str or None
        Classification failure reason, if any.
    """

    id: str
    raw_input: str
    family: str
    color: str
    visible: bool
    error_message: Optional[str] = None

    @property
    def error_state(self) -> bool:
        return self.error_message is not None


@dataclass(frozen=True)
class PlotterSnapshot:
    """Immutable record of a plotter.

    Parameters
    ----------
    x_range, y_range : tuple[float, float]
        Current viewport extent.
    default_x_range, default_y_range : tuple[float, float]
        Extent restored by a reset.
    pixel_size : tuple[int, int]
        ``(width, height)`` of the drawing surface.
    theme : str
        Theme name.
    entries : tuple[EntrySnapshot, ...]
        Registry entries in registration order.
    """

    x_range: Tuple[float, float]
    y_range: Tuple[float, float]
    default_x_range: Tuple[float, float]
    default_y_range: Tuple[float, float]
    pixel_size: Tuple[int, int]
    theme: str
    entries: tuple[EntrySnapshot, ...] = ()

    def __repr__(self) -> str:
        return (
            f"PlotterSnapshot(x_range={self.x_range}, y_range={self.y_range}, "
            f"entries={len(self.entries)}, theme={self.theme!r})"
        )
