"""Application configuration utilities."""
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict

from pydantic import BaseModel, Field


class AppConfig(BaseModel):
    """Strongly typed configuration loaded from config.json."""

    database_path: str = Field(default="./data/nestlog.db")
    default_timezone: str = Field(default="UTC", description="IANA zone used for calendar-day bucketing")
    health_log_limit: int = Field(default=10, ge=1)
    health_log_days: int = Field(default=30, ge=1)
    trailing_window_days: int = Field(default=7, ge=1)
    point_event_max_minutes: int = Field(default=30, ge=1)
    sleep_min_display_minutes: int = Field(default=15, ge=1)
    pixels_per_minute: float = Field(default=2.0, gt=0)
    min_block_px: float = Field(default=40.0, ge=0)

    @property
    def resolved_database_path(self) -> Path:
        """Return the absolute path for the SQLite database file."""
        return (Path(__file__).resolve().parents[1] / self.database_path).resolve()


def _config_path() -> Path:
    override = os.getenv("NESTLOG_CONFIG")
    if override:
        return Path(override)
    return Path(__file__).resolve().parents[1] / "config.json"


def load_config() -> AppConfig:
    """Load configuration from config.json, falling back to defaults when absent."""

    config_file = _config_path()
    if not config_file.exists():
        return AppConfig()

    contents: Dict[str, Any] = json.loads(config_file.read_text())
    return AppConfig(**contents)


CONFIG = load_config()
