from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Mapping, Optional

import pytest

from services.errors import FetchError
from settings import Settings
from storage.documents import DocumentStore

GAS_BODY = (
    '<html><head></head><body><pre style="word-wrap: break-word;">'
    + json.dumps(
        {
            "Series1": ["2.0", "4.0", "3.5"],
            "Series2": ["2.5", "2.5", ""],
            "TickSeries": ["3/12", "3/13", "3/14"],
            "UnitOfMeasure": "CCF",
        }
    )
    + "</pre></body></html>"
)

ELECTRIC_JSON_BODY = (
    "<html><body><pre>"
    + json.dumps(
        {
            "Series1": [21.4, 18.9],
            "TickSeries": ["3/13", "3/14"],
            "UnitOfMeasure": "kWh",
        }
    )
    + "</pre></body></html>"
)

# 2024-01-01T00:00:00Z = 1704067200, 2024-01-02T00:00:00Z = 1704153600
ELECTRIC_XML_BODY = """<html><head></head><body>
<ns3:entry><ns3:link><ns3:content>
<espi:IntervalBlock>
  <espi:interval><espi:duration>86400</espi:duration><espi:secondsPerInterval>900</espi:secondsPerInterval></espi:interval>
  <espi:IntervalReading>
    <espi:timePeriod><espi:duration>900</espi:duration><espi:start>1704067200</espi:start></espi:timePeriod>
    <espi:value>1500</espi:value>
    <espi:ReadingQuality>ACTUAL</espi:ReadingQuality>
  </espi:IntervalReading>
  <espi:IntervalReading>
    <espi:timePeriod><espi:duration>900</espi:duration><espi:start>1704068100</espi:start></espi:timePeriod>
    <espi:value>500</espi:value>
    <espi:ReadingQuality>ACTUAL</espi:ReadingQuality>
  </espi:IntervalReading>
  <espi:IntervalReading>
    <espi:timePeriod><espi:duration>900</espi:duration><espi:start>1704069000</espi:start></espi:timePeriod>
    <espi:value>9999</espi:value>
    <espi:ReadingQuality>ESTIMATED</espi:ReadingQuality>
  </espi:IntervalReading>
  <espi:IntervalReading>
    <espi:timePeriod><espi:duration>900</espi:duration><espi:start>1704153600</espi:start></espi:timePeriod>
    <espi:value>2250</espi:value>
    <espi:ReadingQuality>ACTUAL</espi:ReadingQuality>
  </espi:IntervalReading>
</espi:IntervalBlock>
</ns3:content></ns3:link></ns3:entry>
</body></html>"""


class FakeSession:
    """Returns canned bodies keyed by the query's ServiceType."""

    def __init__(self, bodies: Mapping[str, object]) -> None:
        self.bodies = dict(bodies)
        self.requests: List[Dict[str, object]] = []
        self.closed = False

    def request(self, url, method, body, headers, timeout_ms) -> str:
        query = json.loads(json.loads(body)["request"])
        self.requests.append({"url": url, "method": method, "query": query})
        response = self.bodies[query["ServiceType"]]
        if isinstance(response, Exception):
            raise response
        return response  # type: ignore[return-value]

    def close(self) -> None:
        self.closed = True


class FakeAuthenticator:
    def __init__(self, session: Optional[FakeSession] = None, error: Optional[Exception] = None) -> None:
        self.session = session
        self.error = error
        self.calls = 0

    def authenticate(self, credentials):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.session


@pytest.fixture()
def documents(tmp_path: Path) -> DocumentStore:
    return DocumentStore(root_path=tmp_path / "data")


@pytest.fixture()
def make_settings(tmp_path: Path):
    base = Settings(
        email="user@example.com",
        password="secret",
        account_number="910000000001",
        gas_meter="GAS123",
        electric_meter="ELEC456",
        data_directory=str(tmp_path / "data"),
        gas_rate_per_ccf=0.5685,
        electric_rate_per_kwh=0.0929,
        browser_headless=True,
        cache_max_age=900,
        log_level="INFO",
    )

    def factory(**overrides) -> Settings:
        return replace(base, **overrides)

    return factory


@pytest.fixture()
def fetch_failure() -> FetchError:
    return FetchError("Usage request timed out")
