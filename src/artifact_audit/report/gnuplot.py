from __future__ import annotations

from datetime import date, timedelta
from typing import Callable, Sequence, TextIO

from artifact_audit.detectors.dumps import DumpAudit, elapsed_seconds, size_megabytes
from artifact_audit.io.schema import ArtifactRecord
from artifact_audit.preprocess.keys import sort_subkeys
from artifact_audit.report.base import DumpReportRenderer

DEFAULT_TERMINAL = "pngcairo size 1200,900"
DEFAULT_DEADLINE_SECONDS = 3600

ValueExtractor = Callable[[ArtifactRecord], float]


def gnuplot_quote(text: str) -> str:
    return "'" + text.replace("'", "''") + "'"


def _number(value: float) -> str:
    return f"{value:.3f}".rstrip("0").rstrip(".")


class GnuplotDumpRenderer(DumpReportRenderer):
    """Emit a self-contained gnuplot script with the data inlined as datablocks.

    The script draws two stacked panels: elapsed seconds per shard against a deadline line,
    and dump size per shard.
    """

    name = "gnuplot"

    def __init__(
        self,
        deadline_seconds: float = DEFAULT_DEADLINE_SECONDS,
        terminal: str = DEFAULT_TERMINAL,
    ) -> None:
        self.deadline_seconds = deadline_seconds
        self.terminal = terminal

    def _preamble(self, days: Sequence[date]) -> list[str]:
        lines = []
        if days:
            lines.append(f"# dump report {days[0].isoformat()} to {days[-1].isoformat()}")
        lines.extend(
            [
                f"set terminal {self.terminal}",
                "set xdata time",
                "set timefmt '%Y-%m-%d'",
                "set format x '%m/%d'",
            ]
        )
        if days:
            # One day of padding on each side so a single-day window is not an empty range.
            low = (days[0] - timedelta(days=1)).isoformat()
            high = (days[-1] + timedelta(days=1)).isoformat()
            lines.append(f"set xrange ['{low}':'{high}']")
        lines.extend(
            [
                "set yrange [0:*]",
                "set key outside right top",
                "set grid",
                "set multiplot layout 2,1 title 'Dump summary'",
            ]
        )
        return lines

    def _datasets(
        self,
        audit: DumpAudit,
        days: Sequence[date],
        shards: Sequence[str],
        prefix: str,
        value_of: ValueExtractor,
    ) -> tuple[list[str], list[str]]:
        lines: list[str] = []
        series: list[str] = []
        for position, shard in enumerate(shards, start=1):
            block = f"${prefix}_{position}"
            lines.append(f"# shard {shard}")
            lines.append(f"{block} << EOD")
            for day in days:
                record = audit.status(day, shard).record
                if record is not None:
                    lines.append(f"{day.isoformat()} {_number(value_of(record))}")
            lines.append("EOD")
            series.append(f"{block} using 1:2 title {gnuplot_quote(shard)} with linespoints")
        return lines, series

    def _panel(
        self,
        audit: DumpAudit,
        days: Sequence[date],
        shards: Sequence[str],
        *,
        prefix: str,
        title: str,
        ylabel: str,
        value_of: ValueExtractor,
        reference: list[str] | None = None,
    ) -> list[str]:
        lines = [f"set title {gnuplot_quote(title)}", f"set ylabel {gnuplot_quote(ylabel)}"]
        datasets, series = self._datasets(audit, days, shards, prefix, value_of)
        lines.extend(datasets)
        clauses = list(reference or []) + series
        if not clauses:
            clauses = ["NaN notitle"]
        lines.append("plot " + ", \\\n     ".join(clauses))
        return lines

    def render(self, audit: DumpAudit, stream: TextIO) -> None:
        days = sorted(audit.days)
        shards = sort_subkeys(audit.shards)
        lines = self._preamble(days)
        lines.append(f"deadline = {_number(self.deadline_seconds)}")
        lines.extend(
            self._panel(
                audit,
                days,
                shards,
                prefix="elapsed",
                title="Elapsed time",
                ylabel="seconds",
                value_of=elapsed_seconds,
                reference=["deadline title 'deadline' with lines dashtype 2"],
            )
        )
        lines.extend(
            self._panel(
                audit,
                days,
                shards,
                prefix="size",
                title="Dump size",
                ylabel="MB",
                value_of=size_megabytes,
            )
        )
        lines.append("unset multiplot")
        stream.write("\n".join(lines) + "\n")
