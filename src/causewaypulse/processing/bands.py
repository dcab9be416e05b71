from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ColorBucket(str, Enum):
    """Display colors of the published DataMall speed-band legend."""

    RED = "#ab1121"
    ORANGE = "#f27e57"
    YELLOW = "#fafaa2"
    GREEN = "#82e681"
    NEUTRAL = "#999"

    @property
    def hex(self) -> str:
        return self.value


_BAND_TO_BUCKET: dict[int, ColorBucket] = {
    1: ColorBucket.RED,
    2: ColorBucket.ORANGE,
    3: ColorBucket.ORANGE,
    4: ColorBucket.YELLOW,
    5: ColorBucket.YELLOW,
    6: ColorBucket.GREEN,
    7: ColorBucket.GREEN,
}

_LEGEND_LABELS: dict[ColorBucket, str] = {
    ColorBucket.RED: "0–10 km/h",
    ColorBucket.ORANGE: "11–30 km/h",
    ColorBucket.YELLOW: "31–50 km/h",
    ColorBucket.GREEN: ">51 km/h",
}


@dataclass(frozen=True)
class LegendEntry:
    label: str
    color: str


def classify(speed_band: Any) -> ColorBucket:
    # bool is an int subclass; True must not read as band 1.
    if isinstance(speed_band, bool) or not isinstance(speed_band, int):
        return ColorBucket.NEUTRAL
    return _BAND_TO_BUCKET.get(speed_band, ColorBucket.NEUTRAL)


def legend_entries() -> list[LegendEntry]:
    return [LegendEntry(label=label, color=bucket.hex) for bucket, label in _LEGEND_LABELS.items()]
