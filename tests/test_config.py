from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from artifact_audit.config import AppConfig, load_config


def test_load_config_defaults(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text("{}", encoding="utf-8")

    cfg = load_config(config_path)

    assert cfg.report.days == 7
    assert cfg.report.end_date is None
    assert cfg.report.mode == "table"
    assert cfg.report.verbose is False
    assert cfg.metering.min_expected_entries == 500
    assert cfg.metering.missing_hours_shown == 4
    assert cfg.errors.max_shown == 5
    assert cfg.time.timezone == "UTC"


def test_load_config_overrides_and_resolves_paths(tmp_path: Path) -> None:
    config_data = {
        "report": {
            "end_date": "2024-01-10",
            "days": 3,
            "shards": ["2.moray", "1.moray"],
            "mode": "gnuplot",
        },
        "dumps": {"deadline_minutes": 90},
        "input": {"dumps_path": "inventory/dumps.csv"},
    }
    config_path = tmp_path / "config.yaml"
    config_path.write_text(yaml.safe_dump(config_data), encoding="utf-8")

    cfg = load_config(config_path)

    assert cfg.report.end_date == date(2024, 1, 10)
    assert cfg.report.days == 3
    assert cfg.report.shards == ["2.moray", "1.moray"]
    assert cfg.report.mode == "gnuplot"
    assert cfg.dumps.deadline_minutes == 90
    assert Path(cfg.input.dumps_path or "").is_absolute()
    assert cfg.input.metering_path is None


def test_load_config_uses_env_shards(monkeypatch, tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text("{}", encoding="utf-8")
    monkeypatch.setenv("ARTIFACT_AUDIT_SHARDS", "1.moray, 2.moray,,")

    cfg = load_config(config_path)

    assert cfg.report.shards == ["1.moray", "2.moray"]


def test_config_rejects_unknown_sections_and_bad_values() -> None:
    with pytest.raises(ValidationError):
        AppConfig.model_validate({"unknown": {}})
    with pytest.raises(ValidationError):
        AppConfig.model_validate({"report": {"days": 0}})
    with pytest.raises(ValidationError):
        AppConfig.model_validate({"report": {"mode": "html"}})
    with pytest.raises(ValidationError):
        AppConfig.model_validate({"time": {"timezone": "Mars/Olympus_Mons"}})
