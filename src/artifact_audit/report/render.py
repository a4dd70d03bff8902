from __future__ import annotations

from typing import TextIO

from artifact_audit.config import AppConfig
from artifact_audit.detectors.dumps import DumpAudit
from artifact_audit.report.base import DumpReportRenderer
from artifact_audit.report.gnuplot import GnuplotDumpRenderer
from artifact_audit.report.tables import DumpTableRenderer, MeteringTableRenderer


def build_dump_renderer(config: AppConfig) -> DumpReportRenderer:
    mode = config.report.mode
    if mode == "gnuplot":
        return GnuplotDumpRenderer(
            deadline_seconds=config.dumps.deadline_minutes * 60,
            terminal=config.plot.terminal,
        )
    if mode == "table":
        return DumpTableRenderer(
            timezone=config.time.timezone,
            errors_shown=config.errors.max_shown,
            verbose=config.report.verbose,
        )
    raise ValueError(f"Unsupported dump report mode: {mode}")


def build_metering_renderer(config: AppConfig) -> MeteringTableRenderer:
    if config.report.mode != "table":
        raise ValueError(f"Metering reports only support table output, got: {config.report.mode}")
    return MeteringTableRenderer(
        verbose=config.report.verbose,
        missing_hours_shown=config.metering.missing_hours_shown,
        errors_shown=config.errors.max_shown,
    )


def render_dump_report(audit: DumpAudit, stream: TextIO, config: AppConfig) -> None:
    build_dump_renderer(config).render(audit, stream)
