from __future__ import annotations

from typing import TextIO

from artifact_audit.detectors.dumps import DumpAudit


class DumpReportRenderer:
    name: str

    def render(self, audit: DumpAudit, stream: TextIO) -> None:
        raise NotImplementedError
