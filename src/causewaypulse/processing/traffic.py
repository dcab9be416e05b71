"""Turn a raw DataMall speed-band document into drawable map layers.

One pass over `dataset["value"]` produces two lists that always have the same length and order:
- `lines`: one colored segment per in-region record (start -> end, popup with speeds).
- `heat_points`: one weighted point per in-region record, at the segment start.

The heat intensity is `(8 - SpeedBand) * 0.3` and is intentionally not clamped: band 1 gives
2.1, which the heat renderer simply saturates.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

from pydantic import ValidationError

from causewaypulse.ingestion.errors import InvalidShape
from causewaypulse.ingestion.schemas import RawSegment
from causewaypulse.processing.bands import ColorBucket, classify
from causewaypulse.processing.region import CAUSEWAY_REGION, BoundingRegion, includes


logger = logging.getLogger(__name__)

LINE_WEIGHT = 6
LINE_OPACITY = 0.8
# Band 8 is the top of the published scale, so it maps to zero heat.
HEAT_BAND_CEILING = 8
HEAT_STEP = 0.3


@dataclass(frozen=True)
class LineDrawable:
    start: tuple[float, float]
    end: tuple[float, float]
    color: ColorBucket
    popup_text: str
    weight: int = LINE_WEIGHT
    opacity: float = LINE_OPACITY


@dataclass(frozen=True)
class WeightedPoint:
    lat: float
    lon: float
    intensity: float

    def as_triple(self) -> list[float]:
        return [self.lat, self.lon, self.intensity]


@dataclass
class TrafficLayers:
    lines: list[LineDrawable] = field(default_factory=list)
    heat_points: list[WeightedPoint] = field(default_factory=list)
    total_segments: int = 0

    def __len__(self) -> int:
        return len(self.lines)


def heat_intensity(speed_band: Any) -> float:
    if isinstance(speed_band, bool) or not isinstance(speed_band, int):
        return 0.0
    return (HEAT_BAND_CEILING - speed_band) * HEAT_STEP


def popup_text(segment: RawSegment) -> str:
    return (
        f"{segment.RoadName}\n"
        f"Speed: {segment.MinimumSpeed}–{segment.MaximumSpeed} km/h\n"
        f"Speed Band: {segment.SpeedBand}"
    )


def _records(dataset: Any) -> list[Any]:
    if not isinstance(dataset, Mapping):
        raise InvalidShape("Received invalid data format from server.")
    records = dataset.get("value")
    if not isinstance(records, list):
        raise InvalidShape("Received invalid data format from server.")
    return records


def process(dataset: Any, region: BoundingRegion = CAUSEWAY_REGION) -> TrafficLayers:
    """Validate `dataset` and build both layers; raises InvalidShape before touching anything."""

    records = _records(dataset)
    layers = TrafficLayers(total_segments=len(records))

    for index, record in enumerate(records):
        if not isinstance(record, Mapping):
            logger.warning("Skipping segment #%s: expected an object, got %s.", index, type(record).__name__)
            continue
        try:
            segment = RawSegment.model_validate(dict(record))
        except ValidationError as exc:
            logger.warning("Skipping segment #%s: %s", index, exc)
            continue

        if not includes(segment, region):
            continue

        start = (segment.StartLat, segment.StartLon)
        # The end point is drawn as given, even outside the region; an unparseable end collapses
        # the line onto its start.
        end = (
            segment.EndLat if segment.EndLat is not None else segment.StartLat,
            segment.EndLon if segment.EndLon is not None else segment.StartLon,
        )
        layers.lines.append(
            LineDrawable(
                start=start,
                end=end,
                color=classify(segment.SpeedBand),
                popup_text=popup_text(segment),
            )
        )
        layers.heat_points.append(
            WeightedPoint(lat=start[0], lon=start[1], intensity=heat_intensity(segment.SpeedBand))
        )

    logger.info("Traffic data received: %s segments", layers.total_segments)
    logger.info("Segments in view area: %s", len(layers.lines))
    return layers
