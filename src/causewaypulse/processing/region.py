from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from causewaypulse.ingestion.schemas import RawSegment
from causewaypulse.settings import RegionSection


@dataclass(frozen=True)
class BoundingRegion:
    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float

    def __post_init__(self) -> None:
        if not (self.min_lat < self.max_lat and self.min_lon < self.max_lon):
            raise ValueError(
                "BoundingRegion requires min_lat < max_lat and min_lon < max_lon, got "
                f"lat=({self.min_lat}, {self.max_lat}) lon=({self.min_lon}, {self.max_lon})."
            )

    @classmethod
    def from_config(cls, section: RegionSection) -> "BoundingRegion":
        return cls(
            min_lat=section.min_lat,
            max_lat=section.max_lat,
            min_lon=section.min_lon,
            max_lon=section.max_lon,
        )

    def contains(self, lat: Optional[float], lon: Optional[float]) -> bool:
        """Strict containment: points on any edge are outside."""

        if lat is None or lon is None or math.isnan(lat) or math.isnan(lon):
            return False
        return self.min_lat < lat < self.max_lat and self.min_lon < lon < self.max_lon


# Woodlands Checkpoint end of the causeway.
CAUSEWAY_REGION = BoundingRegion(min_lat=1.44, max_lat=1.446, min_lon=103.765, max_lon=103.77)


def includes(segment: RawSegment, region: BoundingRegion = CAUSEWAY_REGION) -> bool:
    # Only the start point decides; the end point may lie anywhere.
    return region.contains(segment.StartLat, segment.StartLon)
