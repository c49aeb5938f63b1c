"""Usage queries against the portal's energy usage endpoint."""

from __future__ import annotations

import json
import logging
from datetime import date, timedelta
from typing import Dict, Tuple

from app.schemas import Utility
from services.authenticator import Session

logger = logging.getLogger(__name__)

USAGE_URL = "https://p-auth.duke-energy.com/form/PlanRate/GetEnergyUsage"
REQUEST_TIMEOUT_MS = 60_000

_WINDOW_DAYS = {Utility.gas: 30, Utility.electric: 7}
_PERIOD_TYPES = {Utility.gas: "Month", Utility.electric: "Week"}
_SERVICE_TYPES = {Utility.gas: "GAS", Utility.electric: "ELECTRIC"}

_REQUEST_HEADERS = {
    "Accept": "application/json, text/plain, */*",
    "Content-Type": "application/json",
}


def usage_window(utility: Utility, today: date) -> Tuple[date, date]:
    """Trailing window ending yesterday; the portal lags about one day."""
    end = today - timedelta(days=1)
    return end - timedelta(days=_WINDOW_DAYS[utility]), end


def _portal_date(value: date) -> str:
    return value.strftime("%m/%d/%Y")


def build_usage_query(
    utility: Utility,
    meter_id: str,
    account_id: str,
    start_date: date,
    end_date: date,
) -> Dict[str, str]:
    """The portal expects the query JSON-encoded inside a ``request`` field."""
    query = {
        "SrcAcctId": account_id,
        "SrcAcctId2": "",
        "SrcSysCd": "ISU",
        "MeterSerialNumber": meter_id.strip(),
        "IntervalFrequency": "dailyEnergy",
        "Netmetering": "N",
        "PeriodType": _PERIOD_TYPES[utility],
        "ServiceType": _SERVICE_TYPES[utility],
        "StartDate": _portal_date(start_date),
        "EndDate": _portal_date(end_date),
        "Date": "",
        "AgrmtStartDt": "",
        "AgrmtEndDt": "",
        "MeterCertDt": "",
    }
    return {"request": json.dumps(query)}


class UsageFetcher:

    def __init__(self, usage_url: str = USAGE_URL, timeout_ms: int = REQUEST_TIMEOUT_MS) -> None:
        self.usage_url = usage_url
        self.timeout_ms = timeout_ms

    def fetch_usage(
        self,
        session: Session,
        utility: Utility,
        meter_id: str,
        account_id: str,
        start_date: date,
        end_date: date,
    ) -> str:
        """Return the raw response body; session errors propagate as ``FetchError``."""
        payload = build_usage_query(utility, meter_id, account_id, start_date, end_date)
        logger.info(
            "Requesting usage from %s to %s",
            start_date.isoformat(),
            end_date.isoformat(),
            extra={"utility": utility.value, "stage": "fetching"},
        )
        return session.request(
            self.usage_url,
            method="POST",
            body=json.dumps(payload),
            headers=_REQUEST_HEADERS,
            timeout_ms=self.timeout_ms,
        )
