"""Explicit plotting context passed to the renderer and controller."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from .config import DEFAULT_CONFIG, PlotterConfig
from .expression import ExpressionEvaluator
from .registry import FunctionRegistry
from .viewport import Viewport

__all__ = ["PlotContext"]


@dataclass
class PlotContext:
    """Viewport, registry and configuration shared by one plot.

    Parameters
    ----------
    viewport : Viewport
        Visible world rectangle; mutated by the controller.
    registry : FunctionRegistry
        Equations to draw.
    config : PlotterConfig
        Settings the viewport and sampler were built with.
    """

    viewport: Viewport
    registry: FunctionRegistry = field(default_factory=FunctionRegistry)
    config: PlotterConfig = DEFAULT_CONFIG

    @classmethod
    def create(
        cls,
        config: Optional[PlotterConfig] = None,
        *,
        evaluator: Optional[ExpressionEvaluator] = None,
    ) -> "PlotContext":
        """Build a fresh context with a default viewport and an empty registry."""
        cfg = config or DEFAULT_CONFIG
        return cls(
            viewport=Viewport.from_config(cfg),
            registry=FunctionRegistry(evaluator=evaluator),
            config=cfg,
        )
