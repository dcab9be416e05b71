from __future__ import annotations

from causewaypulse.display.folium_surface import FoliumSurface
from causewaypulse.display.view_state import HEAT_LAYER, LINES_LAYER, ViewMode, ViewStateController
from causewaypulse.processing.traffic import TrafficLayers, process


DATASET = {
    "value": [
        {
            "RoadName": "WOODLANDS CAUSEWAY",
            "StartLat": 1.443,
            "StartLon": 103.767,
            "EndLat": 1.444,
            "EndLon": 103.768,
            "SpeedBand": 2,
            "MinimumSpeed": 10,
            "MaximumSpeed": 19,
        }
    ]
}


def test_initial_mode_attaches_lines_only() -> None:
    surface = FoliumSurface()
    view = ViewStateController(surface)

    assert view.mode is ViewMode.LINES
    assert surface.attached_layers == (LINES_LAYER,)
    assert view.toggle_label() == "Show Heatmap"


def test_toggle_swaps_layers_and_back() -> None:
    surface = FoliumSurface()
    view = ViewStateController(surface)

    assert view.toggle() is ViewMode.HEAT
    assert surface.attached_layers == (HEAT_LAYER,)
    assert view.toggle_label() == "Show Polylines"

    assert view.toggle() is ViewMode.LINES
    assert surface.attached_layers == (LINES_LAYER,)


def test_apply_same_mode_twice_is_idempotent() -> None:
    surface = FoliumSurface()
    view = ViewStateController(surface)

    view.apply(ViewMode.HEAT)
    view.apply(ViewMode.HEAT)

    assert surface.attached_layers == (HEAT_LAYER,)
    assert surface.attach_count[HEAT_LAYER] == 1


def test_render_fills_both_collections_regardless_of_mode() -> None:
    surface = FoliumSurface()
    view = ViewStateController(surface)

    view.render(process(DATASET))

    assert len(surface.collection(LINES_LAYER).lines) == 1
    assert len(surface.collection(HEAT_LAYER).heat_points) == 1
    assert surface.attached_layers == (LINES_LAYER,)

    # Next cycle replaces wholesale.
    view.render(TrafficLayers())
    assert surface.collection(LINES_LAYER).lines == []
    assert surface.collection(HEAT_LAYER).heat_points == []


def test_rendered_page_contains_attached_layer_and_overlays() -> None:
    surface = FoliumSurface()
    view = ViewStateController(surface)
    view.render(process(DATASET))
    surface.add_overlay("bottomleft", lambda: "<div id='map-timestamp'>Last updated</div>")
    surface.add_overlay("topcenter", lambda: None)

    page = surface.render_html()
    assert "#f27e57" in page
    assert "WOODLANDS CAUSEWAY" in page
    assert "map-timestamp" in page
    assert "Woodlands Checkpoint" in page

    view.toggle()
    page = surface.render_html()
    assert "heatLayer" in page
