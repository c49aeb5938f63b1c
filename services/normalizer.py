"""Unit conversion from decoded batches to canonical readings."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from app.schemas import Reading, Utility
from models.records import DecodedBatch, IntervalBatch, TabularBatch

THERMS_PER_CCF = 1.037


def therms_from_ccf(usage_ccf: float) -> float:
    return round(usage_ccf * THERMS_PER_CCF, 3)


def estimate_cost(quantity: float, rate: float) -> float:
    return round(quantity * rate, 2)


def normalize(
    batch: DecodedBatch,
    utility: Utility,
    fetched_at: Optional[datetime] = None,
) -> List[Reading]:
    """Convert a decoded batch into readings in the utility's canonical unit."""
    fetched_at = fetched_at or datetime.now(timezone.utc)

    if isinstance(batch, IntervalBatch):
        if utility is not Utility.electric:
            raise ValueError("Interval batches only carry electric usage.")
        return [
            Reading(
                utility=utility,
                date=day.date,
                date_label=day.date_label,
                raw_quantity=day.usage_kwh,
                canonical_quantity=day.usage_kwh,
                unit="kWh",
                source_timestamp=fetched_at,
                recorded_at=fetched_at,
            )
            for day in batch.days
        ]

    if not isinstance(batch, TabularBatch):
        raise TypeError(f"Unsupported batch type {type(batch).__name__}.")

    readings: List[Reading] = []
    for row in batch.rows:
        if utility is Utility.gas:
            reading = Reading(
                utility=utility,
                date=row.date,
                date_label=row.date_label,
                raw_quantity=row.primary,
                canonical_quantity=therms_from_ccf(row.primary),
                secondary_quantity=row.secondary,
                unit=batch.unit or "CCF",
                source_timestamp=fetched_at,
                recorded_at=fetched_at,
            )
        else:
            reading = Reading(
                utility=utility,
                date=row.date,
                date_label=row.date_label,
                raw_quantity=row.primary,
                canonical_quantity=row.primary,
                unit="kWh",
                source_timestamp=fetched_at,
                recorded_at=fetched_at,
            )
        readings.append(reading)
    return readings
