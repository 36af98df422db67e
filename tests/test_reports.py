"""Tests for reports.py — JSON report sink."""

from __future__ import annotations

import io
import json
from decimal import Decimal

from conftest import make_release
from discogs_tracker.config import SyncPhase
from discogs_tracker.reports import JsonReportSink, report_to_dict
from discogs_tracker.schemas import CollectionValueSummary, SyncReport


def test_single_model_serialized_with_decimal_strings() -> None:
    stream = io.StringIO()
    summary = CollectionValueSummary(
        total_records=2,
        priced_count=1,
        unpriced_release_ids=[2],
        total_value=Decimal("25.00"),
        average_value=Decimal("25.00"),
        median_value=Decimal("25.00"),
    )

    JsonReportSink(stream).emit("value", summary)

    document = json.loads(stream.getvalue())
    assert document["report"] == "value"
    assert document["data"]["total_value"] == "25.00"
    assert document["data"]["unpriced_release_ids"] == [2]


def test_model_list_serialized_in_order() -> None:
    payload = report_to_dict("list", [make_release(2), make_release(1)])
    assert [r["id"] for r in payload["data"]] == [2, 1]


def test_enum_rendered_as_value() -> None:
    payload = report_to_dict("sync", SyncReport(phase=SyncPhase.DONE, pricing_failures={7: "boom"}))
    assert payload["data"]["phase"] == "done"
    assert payload["data"]["pricing_failures"] == {"7": "boom"}
