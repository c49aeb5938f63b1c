"""Pydantic schemas for persisted readings, derived views and the HTTP layer."""

from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class Utility(str, Enum):
    """Metered services the collector knows how to query."""

    gas = "gas"
    electric = "electric"


class Reading(BaseModel):
    """One calendar day of usage for one utility."""

    utility: Utility
    date: dt.date
    date_label: str
    raw_quantity: float = Field(..., description="Quantity as reported by the portal.")
    canonical_quantity: float = Field(
        ..., description="Therms for gas, kWh for electric."
    )
    secondary_quantity: Optional[float] = Field(
        default=None, description="Portal-reported average CCF, gas only."
    )
    unit: str
    source_timestamp: dt.datetime
    recorded_at: dt.datetime


class GasMonthlySummary(BaseModel):
    month: str
    total_ccf: float
    total_therms: float
    days: int = Field(..., ge=1)
    average_daily_ccf: float
    average_daily_therms: float


class ElectricMonthlySummary(BaseModel):
    month: str
    total_kwh: float
    days: int = Field(..., ge=1)
    average_daily_kwh: float


class GasEnergyStat(BaseModel):
    date: dt.date
    ccf: float
    therms: float
    cost_estimate: float


class ElectricEnergyStat(BaseModel):
    date: dt.date
    kwh: float
    cost_estimate: float


class DocumentInfo(BaseModel):
    """Metadata about an exported document on disk."""

    name: str
    utility: Utility
    view: str
    path: str
    size: int = Field(..., ge=0)
    last_modified: dt.datetime


class FileListing(BaseModel):
    data_directory: str
    total_files: int = Field(..., ge=0)
    files: List[DocumentInfo] = Field(default_factory=list)


class HealthReport(BaseModel):
    status: str
    timestamp: dt.datetime
    data_directory: str
    files_available: Dict[str, Dict[str, bool]]
    last_updated: Dict[str, Optional[dt.datetime]]


class ServiceInfo(BaseModel):
    service: str
    version: str
    data_directory: str
    endpoints: Dict[str, str]
