from __future__ import annotations

import os
from datetime import date
from pathlib import Path
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

OutputMode = Literal["table", "gnuplot"]

SHARDS_ENV_VAR = "ARTIFACT_AUDIT_SHARDS"


class ReportOptions(BaseModel):
    end_date: date | None = None
    days: int = Field(default=7, ge=1)
    shards: list[str] = Field(default_factory=list)
    verbose: bool = False
    mode: OutputMode = "table"


class TimeConfig(BaseModel):
    timezone: str = "UTC"

    @field_validator("timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"invalid timezone: {value}") from exc
        return value


class DumpsConfig(BaseModel):
    deadline_minutes: int = Field(default=60, ge=1)


class MeteringConfig(BaseModel):
    min_expected_entries: int = Field(default=500, ge=0)
    missing_hours_shown: int = Field(default=4, ge=0)


class ErrorsConfig(BaseModel):
    max_shown: int = Field(default=5, ge=0)


class PlotConfig(BaseModel):
    terminal: str = "pngcairo size 1200,900"
    figures_format: str = "png"


class InputConfig(BaseModel):
    dumps_path: str | None = None
    metering_path: str | None = None


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    report: ReportOptions = Field(default_factory=ReportOptions)
    time: TimeConfig = Field(default_factory=TimeConfig)
    dumps: DumpsConfig = Field(default_factory=DumpsConfig)
    metering: MeteringConfig = Field(default_factory=MeteringConfig)
    errors: ErrorsConfig = Field(default_factory=ErrorsConfig)
    plot: PlotConfig = Field(default_factory=PlotConfig)
    input: InputConfig = Field(default_factory=InputConfig)


DEFAULT_CONFIG_PATH = Path("configs/default.yaml")


def _resolve_optional_path(path_value: str | None, base_dir: Path) -> str | None:
    if not path_value:
        return None
    candidate = Path(path_value)
    if candidate.is_absolute():
        return str(candidate)
    return str((base_dir / candidate).resolve())


def shards_from_env() -> list[str]:
    raw = os.getenv(SHARDS_ENV_VAR) or ""
    return [value.strip() for value in raw.split(",") if value.strip()]


def load_config(path: Path) -> AppConfig:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    config = AppConfig.model_validate(data)
    base_dir = path.resolve().parent

    config.input.dumps_path = _resolve_optional_path(config.input.dumps_path, base_dir)
    config.input.metering_path = _resolve_optional_path(config.input.metering_path, base_dir)
    if not config.report.shards:
        config.report.shards = shards_from_env()
    return config


def default_config() -> AppConfig:
    if DEFAULT_CONFIG_PATH.exists():
        return load_config(DEFAULT_CONFIG_PATH)
    config = AppConfig()
    config.report.shards = shards_from_env()
    return config
