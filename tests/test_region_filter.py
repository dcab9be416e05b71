from __future__ import annotations

import pytest

from causewaypulse.ingestion.schemas import RawSegment
from causewaypulse.processing.region import CAUSEWAY_REGION, BoundingRegion, includes
from causewaypulse.settings import RegionSection


def _segment(start_lat, start_lon, end_lat=1.443, end_lon=103.767) -> RawSegment:
    return RawSegment.model_validate(
        {"StartLat": start_lat, "StartLon": start_lon, "EndLat": end_lat, "EndLon": end_lon}
    )


def test_start_point_inside_region_is_included() -> None:
    assert includes(_segment(1.443, 103.767))
    assert includes(_segment("1.443", "103.767"))


@pytest.mark.parametrize(
    "lat, lon",
    [
        (1.44, 103.767),  # min_lat edge
        (1.446, 103.767),  # max_lat edge
        (1.443, 103.765),  # min_lon edge
        (1.443, 103.77),  # max_lon edge
        (1.5, 103.767),
        (1.443, 103.8),
    ],
)
def test_boundary_and_outside_points_are_excluded(lat, lon) -> None:
    assert not includes(_segment(lat, lon))


def test_only_start_point_is_tested() -> None:
    # Start outside, end inside: excluded.
    assert not includes(_segment(1.45, 103.767, end_lat=1.443, end_lon=103.767))
    # Start inside, end far away: included.
    assert includes(_segment(1.443, 103.767, end_lat=1.6, end_lon=104.0))


def test_unparseable_start_is_excluded() -> None:
    assert not includes(_segment("n/a", 103.767))
    assert not includes(_segment(None, None))


def test_region_rejects_inverted_bounds() -> None:
    with pytest.raises(ValueError):
        BoundingRegion(min_lat=1.5, max_lat=1.4, min_lon=103.0, max_lon=104.0)
    with pytest.raises(ValueError):
        BoundingRegion(min_lat=1.4, max_lat=1.5, min_lon=104.0, max_lon=104.0)


def test_default_region_section_matches_causeway_constant() -> None:
    assert BoundingRegion.from_config(RegionSection()) == CAUSEWAY_REGION
