"""Upsert of fresh readings into a utility's history."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Dict, Iterable, List, Optional

from app.schemas import Reading, Utility

logger = logging.getLogger(__name__)

RETENTION_YEARS = 2


def retention_cutoff(today: date, years: int = RETENTION_YEARS) -> date:
    """Oldest date kept in history; Feb 29 falls back to Feb 28."""
    try:
        return today.replace(year=today.year - years)
    except ValueError:
        return today.replace(year=today.year - years, day=28)


def reconcile(
    history: Iterable[Reading],
    utility: Utility,
    new_readings: Iterable[Reading],
    now: Optional[datetime] = None,
    today: Optional[date] = None,
) -> List[Reading]:
    """Return ``history`` with ``new_readings`` upserted by date, sorted and trimmed.

    A reading for a date already present replaces the stored entry wholesale;
    only ``recorded_at`` is stamped with ``now``. Retention counts back from
    ``today``, which defaults to the date of ``now``.
    """
    now = now or datetime.now(timezone.utc)
    by_date: Dict[date, Reading] = {reading.date: reading for reading in history}

    added = updated = 0
    for reading in new_readings:
        if reading.utility is not utility:
            raise ValueError(
                f"Cannot reconcile a {reading.utility.value} reading into {utility.value} history."
            )
        if reading.date in by_date:
            updated += 1
            logger.debug(
                "Replacing existing record",
                extra={"utility": utility.value, "date": reading.date.isoformat()},
            )
        else:
            added += 1
            logger.debug(
                "Adding new record",
                extra={"utility": utility.value, "date": reading.date.isoformat()},
            )
        by_date[reading.date] = reading.model_copy(update={"recorded_at": now})

    cutoff = retention_cutoff(today or now.date())
    merged = sorted(
        (reading for reading in by_date.values() if reading.date >= cutoff),
        key=lambda reading: reading.date,
    )
    expired = len(by_date) - len(merged)

    logger.info(
        "Reconciled %d new and %d updated records, %d expired",
        added,
        updated,
        expired,
        extra={"utility": utility.value, "record_count": len(merged)},
    )
    return merged
