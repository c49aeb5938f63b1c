"""Decoded portal payloads, before normalization into readings."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Union


@dataclass(slots=True)
class TabularRow:
    """One index of the parallel-array JSON payload."""

    date: date
    date_label: str
    primary: float
    secondary: Optional[float] = None


@dataclass(slots=True)
class TabularBatch:
    """Rows decoded from the tabular JSON encoding."""

    rows: List[TabularRow] = field(default_factory=list)
    unit: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)
    kind: str = "tabular"


@dataclass(slots=True)
class IntervalDay:
    """Sum of the ACTUAL interval readings that started on one day, in kWh."""

    date: date
    date_label: str
    usage_kwh: float


@dataclass(slots=True)
class IntervalBatch:
    """Daily totals decoded from the interval XML encoding."""

    days: List[IntervalDay] = field(default_factory=list)
    raw: List[Dict[str, Any]] = field(default_factory=list)
    kind: str = "interval"


DecodedBatch = Union[TabularBatch, IntervalBatch]
