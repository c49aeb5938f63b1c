from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from services.errors import ConfigurationError


_EMAIL_ENV = "PORTAL_EMAIL"
_PASSWORD_ENV = "PORTAL_PASSWORD"
_ACCOUNT_ENV = "PORTAL_ACCOUNT_NUMBER"
_GAS_METER_ENV = "GAS_METER_NUMBER"
_ELECTRIC_METER_ENV = "ELECTRIC_METER_NUMBER"
_DATA_DIR_ENV = "DATA_DIRECTORY"
_GAS_RATE_ENV = "GAS_RATE_PER_CCF"
_ELECTRIC_RATE_ENV = "ELECTRIC_RATE_PER_KWH"
_HEADLESS_ENV = "BROWSER_HEADLESS"
_CACHE_MAX_AGE_ENV = "SERVER_CACHE_MAX_AGE"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    email: Optional[str]
    password: Optional[str]
    account_number: Optional[str]
    gas_meter: Optional[str]
    electric_meter: Optional[str]
    data_directory: str
    gas_rate_per_ccf: float
    electric_rate_per_kwh: float
    browser_headless: bool
    cache_max_age: int
    log_level: str

    def configured_utilities(self) -> list[str]:
        """Utilities with a meter number, in collection order."""
        utilities = []
        if self.gas_meter:
            utilities.append("gas")
        if self.electric_meter:
            utilities.append("electric")
        return utilities

    def meter_for(self, utility: str) -> Optional[str]:
        return self.gas_meter if utility == "gas" else self.electric_meter

    def rate_for(self, utility: str) -> float:
        return self.gas_rate_per_ccf if utility == "gas" else self.electric_rate_per_kwh


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_float_env(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed >= 0 else default


def _read_positive_int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip().lower()
    if candidate in {"1", "true", "yes", "on"}:
        return True
    if candidate in {"0", "false", "no", "off"}:
        return False
    return default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        email=_read_optional_env(_EMAIL_ENV),
        password=_read_optional_env(_PASSWORD_ENV),
        account_number=_read_optional_env(_ACCOUNT_ENV),
        gas_meter=_read_optional_env(_GAS_METER_ENV),
        electric_meter=_read_optional_env(_ELECTRIC_METER_ENV),
        data_directory=_read_str_env(_DATA_DIR_ENV, "./data"),
        gas_rate_per_ccf=_read_float_env(_GAS_RATE_ENV, 0.5685),
        electric_rate_per_kwh=_read_float_env(_ELECTRIC_RATE_ENV, 0.0929),
        browser_headless=_read_bool_env(_HEADLESS_ENV, True),
        cache_max_age=_read_positive_int_env(_CACHE_MAX_AGE_ENV, 900),
        log_level=_read_log_level("INFO"),
    )


def validate_collector_settings(settings: Settings) -> None:
    """Reject settings the collector cannot run with."""
    required = {
        _EMAIL_ENV: settings.email,
        _PASSWORD_ENV: settings.password,
        _ACCOUNT_ENV: settings.account_number,
    }
    missing = [name for name, value in required.items() if not value]
    if missing:
        raise ConfigurationError(f"Missing required settings: {', '.join(missing)}")
    if not settings.configured_utilities():
        raise ConfigurationError(
            f"At least one of {_GAS_METER_ENV} or {_ELECTRIC_METER_ENV} must be set."
        )
