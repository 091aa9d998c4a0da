from __future__ import annotations

import httpx
import pytest
from fastapi.testclient import TestClient

from main import create_app, get_settings


@pytest.fixture
def make_client(test_settings):
    def factory(handler) -> TestClient:
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        app = create_app(http_client=http_client)
        app.dependency_overrides[get_settings] = lambda: test_settings
        return TestClient(app)

    return factory


def test_health_reports_the_coverage(make_client, test_settings):
    with make_client(lambda request: httpx.Response(200)) as client:
        response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {
        "status": "ok",
        "wcs_base_url": test_settings.wcs_base_url,
        "coverage_id": test_settings.coverage_id,
    }


def test_analysis_returns_population_statistics(make_client, inner_tiff):
    payload = inner_tiff(100.0)

    with make_client(lambda request: httpx.Response(200, content=payload)) as client:
        response = client.post(
            "/analysis",
            json={"latitude": 47.51, "longitude": 14.55, "radius_meters": 5000},
        )

    assert response.status_code == 200
    body = response.json()
    assert body["statistics"] == {"count": 16, "sum": 1600.0, "mean": 100.0, "min": 100.0, "max": 100.0}
    assert body["total_population"] == 1600
    assert body["radius_km"] == 5.0
    assert body["buffer"]["type"] == "Polygon"
    assert len(body["buffer"]["coordinates"][0]) == 65


@pytest.mark.parametrize(
    "handler, status, kind",
    [
        (lambda request: httpx.Response(500), 502, "service_error"),
        (lambda request: httpx.Response(200, content=b"not a tiff"), 502, "decode_error"),
    ],
)
def test_analysis_failures_map_to_http_errors(make_client, handler, status, kind):
    with make_client(handler) as client:
        response = client.post("/analysis", json={"latitude": 47.51, "longitude": 14.55})

    assert response.status_code == status
    assert response.json()["detail"]["kind"] == kind


def test_network_failure_is_a_gateway_timeout(make_client):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    with make_client(handler) as client:
        response = client.post("/analysis", json={"latitude": 47.51, "longitude": 14.55})

    assert response.status_code == 504
    assert response.json()["detail"]["kind"] == "network_error"


@pytest.mark.parametrize(
    "body",
    [
        {"latitude": 47.51, "longitude": 14.55, "radius_meters": 0},
        {"latitude": 91, "longitude": 14.55},
        {"longitude": 14.55},
    ],
)
def test_invalid_requests_are_rejected(make_client, body):
    with make_client(lambda request: httpx.Response(200)) as client:
        response = client.post("/analysis", json=body)

    assert response.status_code == 422
