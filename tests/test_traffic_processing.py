from __future__ import annotations

import pytest

from causewaypulse.ingestion.errors import InvalidShape
from causewaypulse.processing.bands import ColorBucket
from causewaypulse.processing.traffic import heat_intensity, process


def _record(lat: float, lon: float, band: int, road: str = "WOODLANDS CAUSEWAY") -> dict:
    return {
        "RoadName": road,
        "StartLat": str(lat),
        "StartLon": str(lon),
        "EndLat": str(lat + 0.001),
        "EndLon": str(lon + 0.001),
        "SpeedBand": band,
        "MinimumSpeed": "0",
        "MaximumSpeed": "9",
    }


INSIDE = (1.443, 103.767)
OUTSIDE = (1.30, 103.80)


def test_empty_value_yields_two_empty_layers() -> None:
    layers = process({"value": []})
    assert layers.lines == []
    assert layers.heat_points == []
    assert layers.total_segments == 0


@pytest.mark.parametrize("dataset", [{}, {"value": None}, {"value": {"a": 1}}, {"value": "x"}, [], None])
def test_missing_or_non_list_value_is_invalid_shape(dataset) -> None:
    with pytest.raises(InvalidShape):
        process(dataset)


def test_only_in_region_segments_are_kept_in_order() -> None:
    records = [
        _record(*INSIDE, band=2, road="A"),
        _record(*OUTSIDE, band=3, road="B"),
        _record(1.444, 103.768, band=6, road="C"),
        _record(*OUTSIDE, band=1, road="D"),
        _record(1.441, 103.766, band=4, road="E"),
    ]
    layers = process({"value": records})

    assert len(layers.lines) == len(layers.heat_points) == 3
    assert [line.popup_text.split("\n")[0] for line in layers.lines] == ["A", "C", "E"]
    assert [point.lat for point in layers.heat_points] == [1.443, 1.444, 1.441]
    assert layers.total_segments == 5


def test_line_drawable_carries_style_and_popup() -> None:
    layers = process({"value": [_record(*INSIDE, band=5, road="BKE")]})
    line = layers.lines[0]
    assert line.start == INSIDE
    assert line.end == pytest.approx((1.444, 103.768))
    assert line.color is ColorBucket.YELLOW
    assert line.weight == 6
    assert line.opacity == 0.8
    assert line.popup_text == "BKE\nSpeed: 0–9 km/h\nSpeed Band: 5"


def test_heat_intensity_is_unclamped() -> None:
    assert heat_intensity(1) == pytest.approx(2.1)
    assert heat_intensity(8) == pytest.approx(0.0)
    assert heat_intensity(4) == pytest.approx(1.2)
    assert heat_intensity(None) == 0.0


def test_non_object_records_are_skipped() -> None:
    layers = process({"value": ["garbage", 42, _record(*INSIDE, band=7)]})
    assert len(layers.lines) == 1
    assert layers.lines[0].color is ColorBucket.GREEN


def test_inside_red_and_outside_green_end_to_end() -> None:
    dataset = {"value": [_record(*INSIDE, band=1), _record(*OUTSIDE, band=7)]}
    layers = process(dataset)

    assert len(layers.lines) == 1
    assert layers.lines[0].color is ColorBucket.RED
    assert len(layers.heat_points) == 1
    assert layers.heat_points[0].intensity == pytest.approx(2.1)
    assert (layers.heat_points[0].lat, layers.heat_points[0].lon) == INSIDE
