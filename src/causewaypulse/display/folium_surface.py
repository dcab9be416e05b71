from __future__ import annotations

import html
import itertools
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

import folium
from folium import plugins

from causewaypulse.processing.traffic import LineDrawable, WeightedPoint
from causewaypulse.settings import MapSection


_POSITION_CSS = {
    "topcenter": "top: 10px; left: 50%; transform: translateX(-50%);",
    "topright": "top: 10px; right: 10px;",
    "bottomright": "bottom: 24px; right: 10px;",
    "bottomleft": "bottom: 24px; left: 10px;",
}


@dataclass
class LayerCollection:
    name: str
    lines: list[LineDrawable] = field(default_factory=list)
    heat_points: list[WeightedPoint] = field(default_factory=list)


@dataclass
class Overlay:
    overlay_id: int
    position: str
    render: Callable[[], Optional[str]]


def _popup_html(text: str) -> str:
    lines = [html.escape(part) for part in text.split("\n")]
    if not lines:
        return ""
    return "<br>".join([f"<strong>{lines[0]}</strong>", *lines[1:]])


class FoliumSurface:
    """In-memory map state that renders to a Leaflet page on demand."""

    def __init__(self, map_config: Optional[MapSection] = None) -> None:
        self.map_config = map_config or MapSection()
        self._collections: dict[str, LayerCollection] = {}
        self._attached: list[str] = []
        self._overlays: list[Overlay] = []
        self._scripts: list[Callable[[], Optional[str]]] = []
        self._overlay_ids = itertools.count(1)
        # Attach calls are counted so double attachment is observable.
        self.attach_count: dict[str, int] = {}

    def collection(self, name: str) -> LayerCollection:
        if name not in self._collections:
            self._collections[name] = LayerCollection(name=name)
        return self._collections[name]

    @property
    def attached_layers(self) -> tuple[str, ...]:
        return tuple(self._attached)

    def has_layer(self, name: str) -> bool:
        return name in self._attached

    def attach_layer(self, name: str) -> None:
        self.collection(name)
        if name not in self._attached:
            self._attached.append(name)
            self.attach_count[name] = self.attach_count.get(name, 0) + 1

    def detach_layer(self, name: str) -> None:
        if name in self._attached:
            self._attached.remove(name)

    def replace_lines(self, name: str, lines: Sequence[LineDrawable]) -> None:
        self.collection(name).lines = list(lines)

    def replace_heat(self, name: str, points: Sequence[WeightedPoint]) -> None:
        self.collection(name).heat_points = list(points)

    def add_overlay(self, position: str, render: Callable[[], Optional[str]]) -> Overlay:
        if position not in _POSITION_CSS:
            raise ValueError(f"Unknown overlay position: {position!r}")
        overlay = Overlay(overlay_id=next(self._overlay_ids), position=position, render=render)
        self._overlays.append(overlay)
        return overlay

    def add_script(self, render: Callable[[], Optional[str]]) -> None:
        """Register page JavaScript, rendered fresh on every page build."""

        self._scripts.append(render)

    def remove_overlay(self, overlay: Overlay) -> None:
        self._overlays = [item for item in self._overlays if item.overlay_id != overlay.overlay_id]

    def build_map(self) -> folium.Map:
        cfg = self.map_config
        fmap = folium.Map(
            location=[cfg.center_lat, cfg.center_lon],
            zoom_start=cfg.zoom,
            tiles=None,
        )
        folium.TileLayer(
            "OpenStreetMap", max_zoom=cfg.tiles_max_zoom, attr="© OpenStreetMap"
        ).add_to(fmap)

        for name in self._attached:
            self._feature_group(self._collections[name]).add_to(fmap)

        for landmark in cfg.landmarks:
            folium.Marker([landmark.lat, landmark.lon], popup=landmark.name).add_to(fmap)

        for overlay in self._overlays:
            body = overlay.render()
            if not body:
                continue
            style = (
                "position: absolute; z-index: 1000; background: white; padding: 6px 8px; "
                f"border-radius: 4px; {_POSITION_CSS[overlay.position]}"
            )
            fmap.get_root().html.add_child(
                folium.Element(
                    f'<div class="overlay overlay-{overlay.position}" style="{style}">{body}</div>'
                )
            )

        for script in self._scripts:
            source = script()
            if source:
                fmap.get_root().script.add_child(folium.Element(source))
        return fmap

    def _feature_group(self, collection: LayerCollection) -> folium.FeatureGroup:
        cfg = self.map_config
        group = folium.FeatureGroup(name=collection.name)
        for line in collection.lines:
            folium.PolyLine(
                locations=[list(line.start), list(line.end)],
                color=line.color.hex,
                weight=line.weight,
                opacity=line.opacity,
                popup=folium.Popup(_popup_html(line.popup_text)),
            ).add_to(group)
        if collection.heat_points:
            plugins.HeatMap(
                [point.as_triple() for point in collection.heat_points],
                radius=cfg.heat.radius,
                blur=cfg.heat.blur,
                max_zoom=cfg.heat.max_zoom,
                min_opacity=cfg.heat.min_opacity,
            ).add_to(group)
        return group

    def render_html(self) -> str:
        return self.build_map().get_root().render()
