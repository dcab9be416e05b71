from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Optional, Protocol, Sequence

from causewaypulse.processing.traffic import LineDrawable, TrafficLayers, WeightedPoint


logger = logging.getLogger(__name__)

LINES_LAYER = "traffic-lines"
HEAT_LAYER = "traffic-heat"


class ViewMode(str, Enum):
    LINES = "lines"
    HEAT = "heat"


class DisplaySurface(Protocol):
    """What the core needs from the map widget."""

    def has_layer(self, name: str) -> bool: ...

    def attach_layer(self, name: str) -> None: ...

    def detach_layer(self, name: str) -> None: ...

    def replace_lines(self, name: str, lines: Sequence[LineDrawable]) -> None: ...

    def replace_heat(self, name: str, points: Sequence[WeightedPoint]) -> None: ...

    def add_overlay(self, position: str, render: Callable[[], Optional[str]]) -> Any: ...


_LAYER_FOR_MODE = {ViewMode.LINES: LINES_LAYER, ViewMode.HEAT: HEAT_LAYER}


class ViewStateController:
    """Keep exactly one of the two traffic layers attached to the surface."""

    def __init__(self, surface: DisplaySurface, mode: ViewMode = ViewMode.LINES) -> None:
        self.surface = surface
        self._mode = ViewMode(mode)
        self.apply()

    @property
    def mode(self) -> ViewMode:
        return self._mode

    def toggle(self) -> ViewMode:
        target = ViewMode.HEAT if self._mode is ViewMode.LINES else ViewMode.LINES
        logger.info("Toggling to: %s", target.value)
        self.apply(target)
        return self._mode

    def apply(self, mode: Optional[ViewMode] = None) -> None:
        if mode is not None:
            self._mode = ViewMode(mode)
        wanted = _LAYER_FOR_MODE[self._mode]
        other = HEAT_LAYER if wanted == LINES_LAYER else LINES_LAYER
        # Detach first so the two collections are never attached together.
        if self.surface.has_layer(other):
            self.surface.detach_layer(other)
        if not self.surface.has_layer(wanted):
            self.surface.attach_layer(wanted)

    def render(self, layers: TrafficLayers) -> None:
        """Replace both collections wholesale, then re-assert the current mode."""

        self.surface.replace_lines(LINES_LAYER, layers.lines)
        self.surface.replace_heat(HEAT_LAYER, layers.heat_points)
        if not layers.heat_points:
            logger.warning("No heat points to display")
        self.apply()

    def toggle_label(self) -> str:
        return "Show Heatmap" if self._mode is ViewMode.LINES else "Show Polylines"
