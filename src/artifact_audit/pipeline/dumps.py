from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, TextIO

from artifact_audit.config import AppConfig
from artifact_audit.detectors.dumps import DumpAnomalyDetector, DumpAudit
from artifact_audit.features.day_index import index_dumps
from artifact_audit.io.schema import ArtifactRecord, ReconciliationError
from artifact_audit.io.write import write_summary
from artifact_audit.preprocess.time import resolve_end_date
from artifact_audit.report.render import render_dump_report
from artifact_audit.viz.dumps import plot_dump_panels

LOGGER = logging.getLogger(__name__)


def run_dump_audit(
    records: Iterable[ArtifactRecord],
    config: AppConfig,
    stream: TextIO,
    *,
    errors: Iterable[ReconciliationError] = (),
    figure_path: Path | None = None,
    summary_path: Path | None = None,
) -> DumpAudit:
    options = config.report
    end_date = resolve_end_date(options.end_date, config.time.timezone)
    index = index_dumps(
        records,
        end_date=end_date,
        days=options.days,
        shards=options.shards,
        errors=errors,
    )
    detector = DumpAnomalyDetector(timezone=config.time.timezone)
    audit = detector.run(index)

    summary = audit.summary()
    LOGGER.info(
        "Dump audit through %s: %d missing, %d problem, %d late across %d shards",
        end_date.isoformat(),
        summary["n_missing"],
        summary["n_problem"],
        summary["n_late"],
        summary["n_shards"],
    )
    if audit.errors:
        LOGGER.warning("%d errors while assembling dump data", len(audit.errors))
    if not options.shards:
        LOGGER.warning("No expected shards configured; the dump report will have no rows")

    render_dump_report(audit, stream=stream, config=config)

    if figure_path is not None:
        if not figure_path.suffix:
            figure_path = figure_path.with_suffix(f".{config.plot.figures_format}")
        written = plot_dump_panels(
            audit,
            output_path=figure_path,
            deadline_seconds=config.dumps.deadline_minutes * 60,
        )
        if written is None:
            LOGGER.warning("No dump values to plot; skipped figure %s", figure_path)
    if summary_path is not None:
        write_summary(
            {**summary, "end_date": end_date.isoformat()},
            summary_path,
            detector=detector.name,
        )
    return audit
