from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from app.api import get_documents
from app.main import create_app
from app.schemas import Utility
from storage.documents import DocumentStore


@pytest.fixture
def api_client(documents: DocumentStore) -> Iterator[TestClient]:
    app = create_app()
    app.dependency_overrides[get_documents] = lambda: documents
    with TestClient(app) as client:
        yield client


def test_root_lists_endpoints(api_client: TestClient) -> None:
    response = api_client.get("/")

    assert response.status_code == 200
    endpoints = response.json()["endpoints"]
    assert "/health" in endpoints
    assert "/gas-latest" in endpoints
    assert "/electric-energy-stats" in endpoints


def test_document_served_verbatim_with_cache_headers(
    api_client: TestClient, documents: DocumentStore
) -> None:
    path = documents.put_document(Utility.gas, "latest", {"date": "2024-03-14", "raw_quantity": 2.0})

    response = api_client.get("/data/gas/latest")

    assert response.status_code == 200
    assert response.content == path.read_bytes()
    assert response.headers["content-type"].startswith("application/json")
    assert response.headers["cache-control"] == "public, max-age=900"
    assert response.headers["last-modified"].endswith("GMT")


def test_alias_and_default_view_routes(api_client: TestClient, documents: DocumentStore) -> None:
    documents.put_document(Utility.electric, "latest", {"date": "2024-03-14"})
    documents.put_document(Utility.electric, "energy-stats", [{"date": "2024-03-14"}])

    assert api_client.get("/electric-latest").json() == {"date": "2024-03-14"}
    assert api_client.get("/data/electric").json() == {"date": "2024-03-14"}
    assert api_client.get("/electric-energy-stats").json() == [{"date": "2024-03-14"}]


def test_missing_document_lists_available_files(
    api_client: TestClient, documents: DocumentStore
) -> None:
    documents.put_document(Utility.electric, "history", [])

    response = api_client.get("/gas-monthly")

    assert response.status_code == 404
    detail = response.json()["detail"]
    assert "gas/usage-gas-monthly.json" in detail["error"]
    assert detail["available_files"] == ["electric/usage-electric-history.json"]


def test_invalid_utility_and_view_are_rejected(api_client: TestClient) -> None:
    bad_utility = api_client.get("/data/water/latest")
    bad_view = api_client.get("/data/gas/weekly")

    assert bad_utility.status_code == 400
    assert bad_utility.json()["detail"]["valid_types"] == ["gas", "electric"]
    assert bad_view.status_code == 400
    assert "energy-stats" in bad_view.json()["detail"]["valid_formats"]


def test_files_listing(api_client: TestClient, documents: DocumentStore) -> None:
    documents.put_document(Utility.gas, "latest", {"date": "2024-03-14"})
    documents.put_document(Utility.gas, "history", [{"date": "2024-03-14"}])

    payload = api_client.get("/files").json()

    assert payload["total_files"] == 2
    names = {item["name"] for item in payload["files"]}
    assert names == {"gas/usage-gas-latest.json", "gas/usage-gas-history.json"}
    assert all(item["size"] > 0 and item["last_modified"] for item in payload["files"])


def test_health_reports_presence_per_view(api_client: TestClient, documents: DocumentStore) -> None:
    documents.put_document(Utility.gas, "latest", {"date": "2024-03-14"})

    payload = api_client.get("/health").json()

    assert payload["status"] == "healthy"
    assert payload["files_available"]["gas"]["latest"] is True
    assert payload["files_available"]["gas"]["monthly"] is False
    assert payload["files_available"]["electric"]["latest"] is False
    assert payload["last_updated"]["gas"] is not None
    assert payload["last_updated"]["electric"] is None


def test_cors_headers_on_get(api_client: TestClient) -> None:
    response = api_client.get("/health", headers={"Origin": "http://homeassistant.local:8123"})

    assert response.headers["access-control-allow-origin"] == "*"
