from __future__ import annotations

import logging
from datetime import date
from pathlib import Path
from typing import Iterable, Mapping, TextIO

from artifact_audit.config import AppConfig
from artifact_audit.detectors.metering import MeteringAggregator, MeteringAudit
from artifact_audit.io.schema import MeteringObservations, ReconciliationError
from artifact_audit.io.write import write_summary
from artifact_audit.preprocess.time import resolve_end_date
from artifact_audit.report.render import build_metering_renderer

LOGGER = logging.getLogger(__name__)


def run_metering_audit(
    observations: Mapping[date, MeteringObservations],
    config: AppConfig,
    stream: TextIO,
    *,
    errors: Iterable[ReconciliationError] = (),
    summary_path: Path | None = None,
) -> MeteringAudit:
    # Fail on an unsupported output mode before doing any work.
    renderer = build_metering_renderer(config)
    options = config.report
    end_date = resolve_end_date(options.end_date, config.time.timezone)
    aggregator = MeteringAggregator(min_expected_entries=config.metering.min_expected_entries)
    audit = aggregator.run(observations, end_date=end_date, days=options.days, errors=errors)

    summary = audit.summary()
    LOGGER.info(
        "Metering audit through %s: %d compute and %d request hours missing",
        end_date.isoformat(),
        summary["n_compute_hours_missing"],
        summary["n_request_hours_missing"],
    )
    if audit.errors:
        LOGGER.warning("%d errors while assembling metering data", len(audit.errors))

    renderer.render(audit, stream)

    if summary_path is not None:
        write_summary(
            {**summary, "end_date": end_date.isoformat()},
            summary_path,
            detector=aggregator.name,
        )
    return audit
