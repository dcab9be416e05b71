from __future__ import annotations

import math
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator


def _coerce_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(number) else number


def _coerce_int(value: Any) -> Optional[int]:
    number = _coerce_float(value)
    if number is None or math.isinf(number):
        return None
    return int(number) if number.is_integer() else None


class RawSegment(BaseModel):
    """One record of the DataMall `TrafficSpeedBands` dataset (wire field names kept)."""

    model_config = ConfigDict(extra="ignore")

    RoadName: str = ""
    StartLat: Optional[float] = None
    StartLon: Optional[float] = None
    EndLat: Optional[float] = None
    EndLon: Optional[float] = None
    SpeedBand: Optional[int] = None
    MinimumSpeed: Optional[int] = None
    MaximumSpeed: Optional[int] = None

    @field_validator("RoadName", mode="before")
    @classmethod
    def _road_name(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("StartLat", "StartLon", "EndLat", "EndLon", mode="before")
    @classmethod
    def _coordinate(cls, value: Any) -> Optional[float]:
        return _coerce_float(value)

    @field_validator("SpeedBand", "MinimumSpeed", "MaximumSpeed", mode="before")
    @classmethod
    def _integer(cls, value: Any) -> Optional[int]:
        return _coerce_int(value)

    @property
    def start(self) -> tuple[Optional[float], Optional[float]]:
        return (self.StartLat, self.StartLon)

    @property
    def end(self) -> tuple[Optional[float], Optional[float]]:
        return (self.EndLat, self.EndLon)
