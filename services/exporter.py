"""Derived views over a utility's history and their export to documents."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, List, Optional, Sequence, Union

from app.schemas import (
    ElectricEnergyStat,
    ElectricMonthlySummary,
    GasEnergyStat,
    GasMonthlySummary,
    Reading,
    Utility,
)
from services.normalizer import estimate_cost
from storage.documents import DocumentStore

logger = logging.getLogger(__name__)

RECENT_WINDOW_DAYS = 30

MonthlySummary = Union[GasMonthlySummary, ElectricMonthlySummary]
EnergyStat = Union[GasEnergyStat, ElectricEnergyStat]


def latest(history: Sequence[Reading]) -> Optional[Reading]:
    return history[-1] if history else None


def recent_window(
    history: Sequence[Reading], today: date, days: int = RECENT_WINDOW_DAYS
) -> List[Reading]:
    cutoff = today - timedelta(days=days)
    return [reading for reading in history if reading.date >= cutoff]


@dataclass
class _MonthTotals:
    raw: float = 0.0
    canonical: float = 0.0
    days: int = 0


def monthly_rollup(history: Sequence[Reading], utility: Utility) -> List[MonthlySummary]:
    """One summary per ``YYYY-MM``, ascending."""
    months: Dict[str, _MonthTotals] = {}
    for reading in history:
        totals = months.setdefault(reading.date.strftime("%Y-%m"), _MonthTotals())
        totals.raw += reading.raw_quantity
        totals.canonical += reading.canonical_quantity
        totals.days += 1

    summaries: List[MonthlySummary] = []
    for month in sorted(months):
        totals = months[month]
        if utility is Utility.gas:
            summaries.append(
                GasMonthlySummary(
                    month=month,
                    total_ccf=round(totals.raw, 3),
                    total_therms=round(totals.canonical, 3),
                    days=totals.days,
                    average_daily_ccf=round(totals.raw / totals.days, 3),
                    average_daily_therms=round(totals.canonical / totals.days, 3),
                )
            )
        else:
            summaries.append(
                ElectricMonthlySummary(
                    month=month,
                    total_kwh=round(totals.canonical, 3),
                    days=totals.days,
                    average_daily_kwh=round(totals.canonical / totals.days, 3),
                )
            )
    return summaries


def cost_estimate(history: Sequence[Reading], utility: Utility, rate: float) -> List[EnergyStat]:
    """Per-day cost at a flat ``rate`` per CCF (gas) or kWh (electric)."""
    if utility is Utility.gas:
        return [
            GasEnergyStat(
                date=reading.date,
                ccf=reading.raw_quantity,
                therms=reading.canonical_quantity,
                cost_estimate=estimate_cost(reading.raw_quantity, rate),
            )
            for reading in history
        ]
    return [
        ElectricEnergyStat(
            date=reading.date,
            kwh=reading.canonical_quantity,
            cost_estimate=estimate_cost(reading.canonical_quantity, rate),
        )
        for reading in history
    ]


@dataclass
class ExportSummary:
    utility: Utility
    total_records: int = 0
    recent_records: int = 0
    written: List[str] = field(default_factory=list)


class ViewExporter:
    """Writes the latest, recent, monthly and energy-stats documents for a utility."""

    def __init__(self, documents: DocumentStore, rates: Dict[Utility, float]) -> None:
        self.documents = documents
        self.rates = rates

    def export(
        self, utility: Utility, history: Sequence[Reading], today: Optional[date] = None
    ) -> Optional[ExportSummary]:
        newest = latest(history)
        if newest is None:
            logger.warning(
                "No historical data to export; leaving existing documents in place",
                extra={"utility": utility.value},
            )
            return None

        today = today or date.today()
        recent = recent_window(history, today)
        views = {
            "latest": newest.model_dump(mode="json"),
            "recent": [reading.model_dump(mode="json") for reading in recent],
            "monthly": [item.model_dump(mode="json") for item in monthly_rollup(history, utility)],
            "energy-stats": [
                item.model_dump(mode="json")
                for item in cost_estimate(history, utility, self.rates[utility])
            ],
        }

        summary = ExportSummary(
            utility=utility, total_records=len(history), recent_records=len(recent)
        )
        for view, payload in views.items():
            self.documents.put_document(utility, view, payload)
            summary.written.append(self.documents.relative_name(utility, view))

        logger.info(
            "Latest reading %s %s on %s",
            newest.raw_quantity,
            newest.unit,
            newest.date_label,
            extra={"utility": utility.value, "record_count": len(history)},
        )
        logger.info(
            "Exported %d views (%d recent records)",
            len(summary.written),
            summary.recent_records,
            extra={"utility": utility.value},
        )
        return summary
