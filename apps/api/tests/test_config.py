from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from nestlog.config import AppConfig, load_config


def test_missing_config_file_uses_defaults(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("NESTLOG_CONFIG", str(tmp_path / "absent.json"))
    config = load_config()
    assert config == AppConfig()
    assert config.health_log_days == 30
    assert config.point_event_max_minutes == 30


def test_config_file_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps({"health_log_limit": 5, "default_timezone": "Europe/Berlin"}))
    monkeypatch.setenv("NESTLOG_CONFIG", str(config_file))
    config = load_config()
    assert config.health_log_limit == 5
    assert config.default_timezone == "Europe/Berlin"
    assert config.trailing_window_days == 7


def test_invalid_config_raises(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps({"pixels_per_minute": 0}))
    monkeypatch.setenv("NESTLOG_CONFIG", str(config_file))
    with pytest.raises(ValidationError):
        load_config()
