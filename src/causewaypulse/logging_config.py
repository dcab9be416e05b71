from __future__ import annotations

import logging.config
import os
from pathlib import Path
from typing import Any

import yaml

from causewaypulse.settings import project_root


def default_logging_dict(level: str = "INFO") -> dict[str, Any]:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {"format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s"}
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "standard",
                "stream": "ext://sys.stderr",
            }
        },
        # httpx logs every request at INFO; one line per refresh cycle is plenty.
        "loggers": {
            "httpx": {"level": "WARNING"},
            "httpcore": {"level": "WARNING"},
        },
        "root": {"level": level, "handlers": ["console"]},
    }


def configure_logging(
    logging_config_path: str | Path | None = None, level: str | None = None
) -> None:
    candidate = logging_config_path or os.getenv(
        "CAUSEWAYPULSE_LOGGING_CONFIG", "configs/logging.yaml"
    )
    path = Path(candidate)
    if not path.is_absolute():
        path = project_root() / path

    resolved_level = (level or os.getenv("CAUSEWAYPULSE_LOG_LEVEL", "INFO")).upper()
    if not path.exists():
        logging.config.dictConfig(default_logging_dict(resolved_level))
        return

    config: dict[str, Any] = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    logging.config.dictConfig(config)
