from __future__ import annotations

from pathlib import Path

import matplotlib.pyplot as plt
import pandas as pd

from artifact_audit.detectors.dumps import DumpAudit, elapsed_seconds, size_megabytes
from artifact_audit.preprocess.keys import sort_subkeys
from artifact_audit.viz.common import save_figure


def dump_values_frame(audit: DumpAudit) -> pd.DataFrame:
    rows = []
    for day in sorted(audit.days):
        for shard in audit.shards:
            record = audit.status(day, shard).record
            if record is None:
                continue
            rows.append(
                {
                    "day": pd.Timestamp(day),
                    "shard": shard,
                    "elapsed_seconds": elapsed_seconds(record),
                    "size_mb": size_megabytes(record),
                }
            )
    return pd.DataFrame(rows, columns=["day", "shard", "elapsed_seconds", "size_mb"])


def plot_dump_panels(
    audit: DumpAudit,
    output_path: Path,
    deadline_seconds: float = 3600,
) -> Path | None:
    values = dump_values_frame(audit)
    if values.empty:
        return None

    fig, (elapsed_ax, size_ax) = plt.subplots(2, 1, figsize=(12, 8), sharex=True)
    for shard in sort_subkeys(audit.shards):
        shard_values = values[values["shard"] == shard]
        if shard_values.empty:
            continue
        elapsed_ax.plot(
            shard_values["day"], shard_values["elapsed_seconds"], marker="o", label=shard
        )
        size_ax.plot(shard_values["day"], shard_values["size_mb"], marker="o", label=shard)

    elapsed_ax.axhline(deadline_seconds, color="#D55E00", linestyle="--", label="deadline")
    elapsed_ax.set_title("Elapsed time")
    elapsed_ax.set_ylabel("seconds")
    elapsed_ax.set_ylim(bottom=0)
    elapsed_ax.legend(loc="upper left", bbox_to_anchor=(1.0, 1.0))
    size_ax.set_title("Dump size")
    size_ax.set_ylabel("MB")
    size_ax.set_ylim(bottom=0)
    size_ax.legend(loc="upper left", bbox_to_anchor=(1.0, 1.0))
    fig.autofmt_xdate()
    return save_figure(fig, output_path)
