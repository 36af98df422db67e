"""
Discogs Value Tracker — Report sinks

The core hands pydantic report structures to a sink; it never formats
tables or colors itself. JsonReportSink is the only sink shipped.
"""

from __future__ import annotations

import json
import sys
from typing import Any, Protocol, Sequence, TextIO

from pydantic import BaseModel


class ReportSink(Protocol):
    def emit(self, name: str, report: BaseModel | Sequence[BaseModel]) -> None: ...


def report_to_dict(name: str, report: BaseModel | Sequence[BaseModel]) -> dict[str, Any]:
    """JSON-safe envelope; Decimals are rendered as strings, datetimes as ISO."""
    if isinstance(report, BaseModel):
        payload: Any = report.model_dump(mode="json")
    else:
        payload = [item.model_dump(mode="json") for item in report]
    return {"report": name, "data": payload}


class JsonReportSink:
    """Writes one JSON document per report to a text stream (stdout by default)."""

    def __init__(self, stream: TextIO | None = None, indent: int | None = 2):
        self._stream = stream
        self._indent = indent

    def emit(self, name: str, report: BaseModel | Sequence[BaseModel]) -> None:
        stream = self._stream or sys.stdout
        stream.write(json.dumps(report_to_dict(name, report), indent=self._indent))
        stream.write("\n")
        stream.flush()
