"""Decoding of portal usage responses into tagged batches.

The portal answers the same query in one of two encodings. Most responses
carry a JSON object with parallel arrays (``Series1`` usage, ``Series2``
average, ``TickSeries`` labels); some electric meters instead return an
ESPI interval document, which the browser renders inside an HTML shell.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import date, datetime, tzinfo
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup

from app.schemas import Utility
from models.records import (
    DecodedBatch,
    IntervalBatch,
    IntervalDay,
    TabularBatch,
    TabularRow,
)
from services.errors import DecodeError

logger = logging.getLogger(__name__)

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)
WH_PER_KWH = 1000.0


def parse_tick_label(label: Any, year: int) -> date:
    """Turn an ``M/D`` tick label into a date in ``year``."""
    if not isinstance(label, str) or "/" not in label:
        raise ValueError(f"Tick label {label!r} has no month/day separator.")
    parts = label.strip().split("/")
    month_text, day_text = parts[0].strip(), parts[1].strip()
    if not month_text or not day_text:
        raise ValueError(f"Tick label {label!r} is missing a month or day.")
    return date(year, int(month_text), int(day_text))


def _optional_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def decode_tabular(body: str, today: date, utility: Utility = Utility.gas) -> TabularBatch:
    match = _JSON_OBJECT.search(body)
    if match is None:
        raise DecodeError("No JSON object found in response body.")

    try:
        payload = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise DecodeError(f"Embedded JSON is malformed: {exc}") from exc

    if not isinstance(payload, dict):
        raise DecodeError("Embedded JSON is not an object.")

    primary = payload.get("Series1")
    labels = payload.get("TickSeries")
    if not isinstance(primary, list) or not isinstance(labels, list):
        raise DecodeError("JSON response is missing the Series1/TickSeries arrays.")
    secondary = payload.get("Series2")
    if not isinstance(secondary, list):
        secondary = []

    rows: List[TabularRow] = []
    for index, raw_value in enumerate(primary):
        label = labels[index] if index < len(labels) else None
        try:
            row_date = parse_tick_label(label, today.year)
        except ValueError as exc:
            logger.warning(
                "Skipping index with invalid date label",
                extra={"utility": utility.value, "date_label": label, "reason": str(exc)},
            )
            continue

        try:
            value = float(raw_value)
        except (TypeError, ValueError):
            logger.warning(
                "Skipping index with non-numeric usage",
                extra={"utility": utility.value, "date_label": label, "reason": repr(raw_value)},
            )
            continue

        rows.append(
            TabularRow(
                date=row_date,
                date_label=label,
                primary=value,
                secondary=_optional_float(secondary[index]) if index < len(secondary) else None,
            )
        )

    rows.sort(key=lambda row: row.date)
    unit = payload.get("UnitOfMeasure")
    return TabularBatch(rows=rows, unit=unit if isinstance(unit, str) and unit else None, raw=payload)


def _tag_text(parent: Any, name: str) -> Optional[str]:
    tag = parent.find(name)
    if tag is None:
        return None
    return tag.get_text(strip=True)


def decode_interval(body: str, tz: Optional[tzinfo] = None) -> IntervalBatch:
    """Sum ACTUAL interval readings per calendar day, converting Wh to kWh.

    Days are derived from each reading's start time in ``tz`` (local time when
    omitted).
    """
    soup = BeautifulSoup(body, "html.parser")
    block = soup.find("espi:intervalblock")
    if block is None:
        raise DecodeError("No interval block found in response body.")

    totals: Dict[date, float] = {}
    raw: List[Dict[str, Any]] = []
    for reading in block.find_all("espi:intervalreading"):
        if _tag_text(reading, "espi:readingquality") != "ACTUAL":
            continue
        start_text = _tag_text(reading, "espi:start")
        value_text = _tag_text(reading, "espi:value")
        try:
            start = int(start_text or "")
            value = float(value_text or "")
        except ValueError:
            logger.warning(
                "Skipping malformed interval reading",
                extra={"utility": Utility.electric.value, "reason": f"start={start_text} value={value_text}"},
            )
            continue

        day = datetime.fromtimestamp(start, tz).date()
        totals[day] = totals.get(day, 0.0) + value
        raw.append({"time": start, "value": value})

    days = [
        IntervalDay(
            date=day,
            date_label=day.strftime("%m/%d/%Y"),
            usage_kwh=round(total_wh / WH_PER_KWH, 3),
        )
        for day, total_wh in sorted(totals.items())
    ]
    return IntervalBatch(days=days, raw=raw)


def decode_response(
    body: str,
    utility: Utility,
    today: Optional[date] = None,
    tz: Optional[tzinfo] = None,
) -> DecodedBatch:
    """Decode ``body`` as tabular JSON, falling back to interval XML for electric."""
    today = today or date.today()
    try:
        batch = decode_tabular(body, today, utility)
    except DecodeError as exc:
        if utility is not Utility.electric:
            raise
        logger.info(
            "Tabular decode failed, trying interval XML",
            extra={"utility": utility.value, "reason": str(exc)},
        )
    else:
        logger.info(
            "Decoded tabular JSON response",
            extra={"utility": utility.value, "record_count": len(batch.rows)},
        )
        return batch

    try:
        batch = decode_interval(body, tz)
    except DecodeError as exc:
        raise DecodeError(f"Response is neither tabular JSON nor interval XML: {exc}") from exc
    logger.info(
        "Decoded interval XML response",
        extra={"utility": utility.value, "record_count": len(batch.days)},
    )
    return batch
