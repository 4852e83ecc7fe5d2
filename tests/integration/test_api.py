"""
Integration Tests - Analytics API
"""
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from checkout_analytics.serving.api.main import create_api_app
from checkout_analytics.store.memory import InMemoryEventStore

ACCOUNT_ID = "acct-1"
HEADERS = {"X-Account-ID": ACCOUNT_ID}


class BrokenStore(InMemoryEventStore):
    """Store whose every fetch raises"""

    name = "broken"

    async def fetch_rows(self, account_id, event_types, start, end):
        raise ConnectionError("connection refused")


@pytest.fixture
def client(memory_store, now):
    """API client over the in-memory store"""
    app = create_api_app(event_store=memory_store, clock=lambda: now)
    with TestClient(app) as test_client:
        yield test_client


class TestAnalyticsEndpoints:
    """Tests for metric endpoints"""

    def test_ltv(self, client, memory_store, repeat_customer_rows):
        memory_store.add(ACCOUNT_ID, *repeat_customer_rows)

        response = client.get("/api/v1/analytics/ltv", params={"period": "week"}, headers=HEADERS)

        assert response.status_code == 200
        data = response.json()
        assert data["summary"]["totalCustomers"] == 1
        assert data["summary"]["avgLTV"] == 500.0
        assert data["customers"][0]["isRecurring"] is True
        assert data["ltvBySegment"]["new"]["customers"] == 0
        assert data["period"] == "week"

    def test_cac(self, client, memory_store, row_factory):
        memory_store.add(
            ACCOUNT_ID,
            row_factory("checkout_start", session_id="s1", days_ago=2, utm_source="google"),
            row_factory("checkout_complete", session_id="s1", days_ago=1, revenue=50),
        )

        response = client.get("/api/v1/analytics/cac", headers=HEADERS)

        assert response.status_code == 200
        data = response.json()
        assert data["channels"][0]["estimatedCAC"] == 45.0
        assert data["summary"]["avgCAC"] == 45.0
        assert "note" in data

    def test_segments_empty(self, client):
        response = client.get("/api/v1/analytics/segments", headers=HEADERS)

        assert response.status_code == 200
        assert response.json()["segments"] == []

    def test_browsers_and_shipping(self, client, memory_store, row_factory):
        memory_store.add(
            ACCOUNT_ID,
            row_factory("checkout_start", browserName="Chrome"),
            row_factory("shipping_method_selected", shippingMethod="express", shippingCost=10),
        )

        browsers = client.get("/api/v1/analytics/browsers", headers=HEADERS)
        shipping = client.get("/api/v1/analytics/shipping", headers=HEADERS)

        assert browsers.status_code == 200
        assert browsers.json()["browsers"][0]["marketShare"] == 100.0
        assert shipping.status_code == 200
        assert shipping.json()["shippingMethods"][0]["avgCost"] == 10.0


class TestErrorResponses:
    """Tests for error mapping"""

    def test_missing_tenant(self, client):
        response = client.get("/api/v1/analytics/ltv")

        assert response.status_code == 401
        assert response.json()["error"] == "Not authenticated"

    def test_range_over_plan_ceiling(self, client, now):
        response = client.get(
            "/api/v1/analytics/ltv",
            params={
                "period": "custom",
                "startDate": (now - timedelta(days=30)).isoformat(),
                "endDate": now.isoformat(),
            },
            headers={**HEADERS, "X-Plan-Code": "starter"},
        )

        assert response.status_code == 400
        assert "allowed 7 days" in response.json()["details"]

    def test_invalid_date(self, client):
        response = client.get(
            "/api/v1/analytics/cac",
            params={"period": "custom", "startDate": "yesterday", "endDate": "today"},
            headers=HEADERS,
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid date format. Use ISO 8601 format."

    def test_upstream_failure(self, now):
        app = create_api_app(event_store=BrokenStore(), clock=lambda: now)
        with TestClient(app) as client:
            response = client.get("/api/v1/analytics/ltv", headers=HEADERS)

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to fetch LTV data"}


class TestHealthEndpoints:
    """Tests for health checks"""

    def test_liveness(self, client):
        response = client.get("/api/v1/health/live")
        assert response.json() == {"status": "alive"}

    def test_readiness(self, client):
        response = client.get("/api/v1/health/ready")

        assert response.status_code == 200
        assert response.json() == {"status": "ready"}

    def test_health(self, client):
        data = client.get("/api/v1/health").json()

        assert data["status"] == "healthy"
        assert data["checks"]["event_store"]["backend"] == "memory"
