"""Unit tests for derived views and their export."""

from __future__ import annotations

import json
from datetime import date, datetime, timezone

from app.schemas import Reading, Utility
from services.exporter import ViewExporter, cost_estimate, latest, monthly_rollup, recent_window
from storage.documents import DocumentStore

STAMP = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)
RATES = {Utility.gas: 0.5685, Utility.electric: 0.0929}


def _reading(utility: Utility, day: date, raw: float, canonical: float) -> Reading:
    return Reading(
        utility=utility,
        date=day,
        date_label=f"{day.month}/{day.day}",
        raw_quantity=raw,
        canonical_quantity=canonical,
        unit="CCF" if utility is Utility.gas else "kWh",
        source_timestamp=STAMP,
        recorded_at=STAMP,
    )


def test_monthly_rollup_gas_totals_and_averages() -> None:
    history = [
        _reading(Utility.gas, date(2024, 1, 1), 2.0, 2.074),
        _reading(Utility.gas, date(2024, 1, 2), 4.0, 4.148),
    ]

    [january] = monthly_rollup(history, Utility.gas)

    assert january.month == "2024-01"
    assert january.total_ccf == 6.000
    assert january.days == 2
    assert january.average_daily_ccf == 3.000
    assert january.total_therms == 6.222
    assert january.average_daily_therms == 3.111


def test_monthly_rollup_electric_sorted_by_month() -> None:
    history = [
        _reading(Utility.electric, date(2023, 12, 31), 10.0, 10.0),
        _reading(Utility.electric, date(2024, 1, 1), 20.1234, 20.1234),
        _reading(Utility.electric, date(2024, 1, 2), 10.0, 10.0),
        _reading(Utility.electric, date(2024, 2, 1), 5.0, 5.0),
    ]

    summaries = monthly_rollup(history, Utility.electric)

    assert [summary.month for summary in summaries] == ["2023-12", "2024-01", "2024-02"]
    assert summaries[1].total_kwh == 30.123
    assert summaries[1].average_daily_kwh == 15.062
    assert summaries[1].days == 2


def test_recent_window_keeps_last_thirty_days() -> None:
    history = [
        _reading(Utility.gas, date(2024, 2, 13), 1.0, 1.037),
        _reading(Utility.gas, date(2024, 2, 14), 1.0, 1.037),
        _reading(Utility.gas, date(2024, 3, 14), 1.0, 1.037),
    ]

    recent = recent_window(history, today=date(2024, 3, 15))

    assert [reading.date for reading in recent] == [date(2024, 2, 14), date(2024, 3, 14)]


def test_cost_estimate_uses_configured_rate() -> None:
    gas = cost_estimate([_reading(Utility.gas, date(2024, 3, 1), 4.0, 4.148)], Utility.gas, 0.5685)
    electric = cost_estimate(
        [_reading(Utility.electric, date(2024, 3, 1), 21.4, 21.4)], Utility.electric, 0.2
    )

    assert gas[0].ccf == 4.0
    assert gas[0].therms == 4.148
    assert gas[0].cost_estimate == 2.27
    assert electric[0].kwh == 21.4
    assert electric[0].cost_estimate == 4.28


def test_latest_of_empty_history_is_none() -> None:
    assert latest([]) is None


def test_export_writes_all_views(documents: DocumentStore) -> None:
    history = [
        _reading(Utility.gas, date(2024, 1, 1), 2.0, 2.074),
        _reading(Utility.gas, date(2024, 3, 14), 4.0, 4.148),
    ]
    exporter = ViewExporter(documents, RATES)

    summary = exporter.export(Utility.gas, history, today=date(2024, 3, 15))

    assert summary is not None
    assert summary.total_records == 2
    assert summary.recent_records == 1
    latest_doc = json.loads(documents.get_document(Utility.gas, "latest"))
    assert latest_doc["date"] == "2024-03-14"
    assert latest_doc["canonical_quantity"] == 4.148
    monthly_doc = json.loads(documents.get_document(Utility.gas, "monthly"))
    assert [item["month"] for item in monthly_doc] == ["2024-01", "2024-03"]
    stats_doc = json.loads(documents.get_document(Utility.gas, "energy-stats"))
    assert stats_doc[1] == {"date": "2024-03-14", "ccf": 4.0, "therms": 4.148, "cost_estimate": 2.27}
    assert len(json.loads(documents.get_document(Utility.gas, "recent"))) == 1


def test_export_with_empty_history_keeps_previous_documents(documents: DocumentStore) -> None:
    documents.put_document(Utility.electric, "latest", {"date": "2024-03-01"})
    exporter = ViewExporter(documents, RATES)

    assert exporter.export(Utility.electric, [], today=date(2024, 3, 15)) is None
    assert json.loads(documents.get_document(Utility.electric, "latest")) == {"date": "2024-03-01"}
    assert not documents.exists(Utility.electric, "monthly")
