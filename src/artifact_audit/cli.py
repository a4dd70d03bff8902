from __future__ import annotations

import io
from datetime import datetime
from enum import Enum
from pathlib import Path

import typer

from artifact_audit.config import AppConfig, default_config, load_config
from artifact_audit.io.read import load_dump_inventory, load_metering_inventory
from artifact_audit.logging import configure_logging
from artifact_audit.pipeline.dumps import run_dump_audit
from artifact_audit.pipeline.metering import run_metering_audit

app = typer.Typer(no_args_is_help=True, add_completion=False)


class OutputFormat(str, Enum):
    table = "table"
    gnuplot = "gnuplot"


def _load_app_config(config_path: Path | None) -> AppConfig:
    if config_path is None:
        return default_config()
    return load_config(config_path)


def _apply_report_overrides(
    cfg: AppConfig,
    *,
    end_date: datetime | None,
    days: int | None,
    shards: list[str] | None = None,
    verbose: bool = False,
    output_format: OutputFormat | None = None,
) -> None:
    if end_date is not None:
        cfg.report.end_date = end_date.date()
    if days is not None:
        cfg.report.days = days
    if shards:
        cfg.report.shards = list(shards)
    if verbose:
        cfg.report.verbose = True
    if output_format is not None:
        cfg.report.mode = output_format.value


def _require_inventory(inventory: Path | None, configured: str | None, kind: str) -> Path:
    if inventory is not None:
        return inventory
    if configured:
        return Path(configured)
    raise typer.BadParameter(
        f"Missing --inventory. Pass it or set input.{kind}_path in the config file."
    )


@app.command()
def dumps(
    inventory: Path | None = typer.Option(None, exists=True, readable=True, resolve_path=True),
    config: Path | None = typer.Option(None, exists=True, readable=True, resolve_path=True),
    end_date: datetime | None = typer.Option(None, formats=["%Y-%m-%d"]),
    days: int | None = typer.Option(None, min=1),
    shard: list[str] | None = typer.Option(
        None,
        help="Expected shard; repeat for each shard. Overrides report.shards.",
    ),
    output_format: OutputFormat | None = typer.Option(None, "--format"),
    figure: Path | None = typer.Option(
        None,
        resolve_path=True,
        help="Also write the elapsed/size chart as an image.",
    ),
    summary: Path | None = typer.Option(None, resolve_path=True),
    verbose: bool = typer.Option(False, "--verbose"),
    log_level: str = typer.Option("INFO"),
) -> None:
    """Report missing, late and inconsistent shard dumps over a trailing window."""
    configure_logging(log_level)
    cfg = _load_app_config(config)
    _apply_report_overrides(
        cfg,
        end_date=end_date,
        days=days,
        shards=shard,
        verbose=verbose,
        output_format=output_format,
    )
    inventory_path = _require_inventory(inventory, cfg.input.dumps_path, "dumps")
    try:
        records, errors = load_dump_inventory(inventory_path, timezone=cfg.time.timezone)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--inventory") from exc

    buffer = io.StringIO()
    run_dump_audit(
        records,
        cfg,
        buffer,
        errors=errors,
        figure_path=figure,
        summary_path=summary,
    )
    typer.echo(buffer.getvalue(), nl=False)


@app.command()
def metering(
    inventory: Path | None = typer.Option(None, exists=True, readable=True, resolve_path=True),
    config: Path | None = typer.Option(None, exists=True, readable=True, resolve_path=True),
    end_date: datetime | None = typer.Option(None, formats=["%Y-%m-%d"]),
    days: int | None = typer.Option(None, min=1),
    summary: Path | None = typer.Option(None, resolve_path=True),
    verbose: bool = typer.Option(False, "--verbose", help="List every missing hour."),
    log_level: str = typer.Option("INFO"),
) -> None:
    """Report missing or undersized metering reports over a trailing window."""
    configure_logging(log_level)
    cfg = _load_app_config(config)
    _apply_report_overrides(cfg, end_date=end_date, days=days, verbose=verbose)
    if cfg.report.mode != OutputFormat.table.value:
        raise typer.BadParameter("Metering reports only support report.mode='table'.")
    inventory_path = _require_inventory(inventory, cfg.input.metering_path, "metering")
    try:
        observations, errors = load_metering_inventory(inventory_path)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--inventory") from exc

    buffer = io.StringIO()
    run_metering_audit(observations, cfg, buffer, errors=errors, summary_path=summary)
    typer.echo(buffer.getvalue(), nl=False)


if __name__ == "__main__":
    app()
