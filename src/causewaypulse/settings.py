from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field


def project_root() -> Path:
    return Path(__file__).resolve().parents[2]


def _resolve_path(root: Path, value: str | Path) -> Path:
    path = Path(value)
    return path if path.is_absolute() else (root / path)


class AppSection(BaseModel):
    name: str = "causewaypulse"
    timezone: str = "Asia/Singapore"


class DataMallSection(BaseModel):
    base_url: str = "https://datamall2.mytransport.sg/ltaodataservice"
    dataset: str = "TrafficSpeedBands"
    relay_url: str = "https://api.allorigins.win/raw"
    request_timeout_seconds: float = 30.0
    # Empty means "read DATAMALL_ACCOUNT_KEY from the environment".
    account_key: str = ""

    def target_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/{self.dataset.lstrip('/')}"


class RegionSection(BaseModel):
    min_lat: float = 1.44
    max_lat: float = 1.446
    min_lon: float = 103.765
    max_lon: float = 103.77


class RefreshSection(BaseModel):
    period_seconds: float = 60.0
    initial_delay_seconds: float = 0.1
    error_dismiss_seconds: float = 10.0
    autostart: bool = True


class Landmark(BaseModel):
    name: str
    lat: float
    lon: float


class HeatSection(BaseModel):
    radius: int = 40
    blur: int = 20
    max_zoom: int = 17
    min_opacity: float = 0.3


class MapSection(BaseModel):
    center_lat: float = 1.445
    center_lon: float = 103.768
    zoom: int = 15
    tiles_max_zoom: int = 19
    heat: HeatSection = Field(default_factory=HeatSection)
    landmarks: list[Landmark] = Field(
        default_factory=lambda: [
            Landmark(name="Woodlands Checkpoint", lat=1.445, lon=103.768),
            Landmark(name="Johor Bahru CIQ", lat=1.462, lon=103.763),
        ]
    )


class ApiSection(BaseModel):
    host: str = "127.0.0.1"
    port: int = 8000


class AppConfig(BaseModel):
    app: AppSection = Field(default_factory=AppSection)
    datamall: DataMallSection = Field(default_factory=DataMallSection)
    region: RegionSection = Field(default_factory=RegionSection)
    refresh: RefreshSection = Field(default_factory=RefreshSection)
    map: MapSection = Field(default_factory=MapSection)
    api: ApiSection = Field(default_factory=ApiSection)


def _maybe_load_dotenv() -> None:
    try:
        from dotenv import load_dotenv  # type: ignore
    except Exception:
        return

    load_dotenv()


def load_config(config_path: str | Path | None = None) -> AppConfig:
    _maybe_load_dotenv()

    root = project_root()
    candidate = config_path or os.getenv("CAUSEWAYPULSE_CONFIG", "configs/config.yaml")
    path = _resolve_path(root, candidate)
    if not path.exists():
        path = root / "configs/config.example.yaml"

    data: dict[str, Any] = {}
    if path.exists():
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    return AppConfig.model_validate(data)


def resolve_account_key(config: Optional[AppConfig] = None) -> str:
    resolved = config or get_config()
    key = resolved.datamall.account_key.strip()
    if key:
        return key
    return os.getenv("DATAMALL_ACCOUNT_KEY", "").strip()


_CONFIG: AppConfig | None = None


def get_config() -> AppConfig:
    global _CONFIG
    if _CONFIG is None:
        _CONFIG = load_config()
    return _CONFIG
