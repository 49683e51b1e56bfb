"""
Tests for the HTTP API.
"""
import os
import sqlite3
import tempfile
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from cloud_billing.api import create_app
from cloud_billing.config.loader import AppConfig


@pytest.fixture
def client():
    """API client backed by a fresh database."""
    with tempfile.TemporaryDirectory() as temp_dir:
        config = AppConfig(db_path=os.path.join(temp_dir, "api.db"), default_user_id="user123")
        with TestClient(create_app(config)) as test_client:
            yield test_client


def _payload(**overrides):
    payload = {
        "instanceType": "e2-standard-2",
        "storageType": "standard",
        "storageSize": 100,
        "hours": 730,
    }
    payload.update(overrides)
    return payload


class TestCatalogEndpoints:
    """Test read-only catalog endpoints."""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_instance_types(self, client):
        response = client.get("/api/instance-types")
        assert response.status_code == 200
        body = response.json()
        assert list(body) == ["e2-standard-2", "e2-standard-4", "n2-standard-2", "n2-standard-4"]
        assert body["e2-standard-2"] == {
            "name": "E2 Standard (2 vCPU)",
            "cpu": 2,
            "memory": 8,
            "pricePerHour": 0.067012,
            "pricePerMonth": 48.25,
        }

    def test_storage_types(self, client):
        response = client.get("/api/storage-types")
        assert response.json() == {"standard": 0.02, "ssd": 0.17, "network": 0.12}


class TestBillingEndpoints:
    """Test calculation submission and history."""

    def test_create_billing(self, client):
        """Verify a calculation is stored and returned with its cost."""
        response = client.post("/api/billing", json=_payload())

        assert response.status_code == 201
        body = response.json()
        assert body["id"] == 1
        assert body["instanceType"] == "e2-standard-2"
        assert body["cpu"] == 2
        assert body["memory"] == 8
        assert body["storageSize"] == 100
        assert body["hours"] == 730
        assert body["cost"] == pytest.approx(50.91876)
        assert body["userId"] == "user123"
        assert body["date"]

    def test_create_billing_with_user(self, client):
        response = client.post("/api/billing", json=_payload(userId="alice"))
        assert response.json()["userId"] == "alice"

    def test_list_billing(self, client):
        client.post("/api/billing", json=_payload())
        client.post("/api/billing", json=_payload(instanceType="n2-standard-4"))

        response = client.get("/api/billing")

        assert response.status_code == 200
        assert [r["instanceType"] for r in response.json()] == ["e2-standard-2", "n2-standard-4"]

    def test_list_billing_filters(self, client):
        """Verify history can be narrowed by instance type and owner."""
        client.post("/api/billing", json=_payload(userId="alice"))
        client.post("/api/billing", json=_payload(instanceType="n2-standard-4", userId="alice"))
        client.post("/api/billing", json=_payload(userId="bob"))

        by_user = client.get("/api/billing", params={"userId": "alice"}).json()
        assert [r["instanceType"] for r in by_user] == ["e2-standard-2", "n2-standard-4"]

        by_type = client.get("/api/billing", params={"instanceType": "e2-standard-2"}).json()
        assert [r["userId"] for r in by_type] == ["alice", "bob"]

        both = client.get("/api/billing", params={"instanceType": "e2-standard-2", "userId": "bob"}).json()
        assert len(both) == 1

    @pytest.mark.parametrize("overrides,message", [
        ({"instanceType": "m5.large"}, "Invalid instance type"),
        ({"storageType": "tape"}, "Invalid storage type"),
        ({"hours": -1}, "Invalid hours"),
        ({"storageSize": None}, "Invalid storage_size"),
    ])
    def test_invalid_selection_rejected(self, client, overrides, message):
        """Verify engine validation maps to a 400 with a message."""
        response = client.post("/api/billing", json=_payload(**overrides))

        assert response.status_code == 400
        assert message in response.json()["message"]
        assert client.get("/api/billing").json() == []

    def test_overflowing_cost_rejected(self, client):
        """Verify finite quantities whose cost overflows are rejected and not stored."""
        response = client.post(
            "/api/billing",
            json=_payload(storageType="ssd", storageSize=1e308, hours=1e308)
        )

        assert response.status_code == 400
        assert "storage_size" in response.json()["message"]
        assert client.get("/api/billing").json() == []

    def test_missing_fields_rejected(self, client):
        response = client.post("/api/billing", json={"instanceType": "e2-standard-2"})
        assert response.status_code == 400
        assert "message" in response.json()

    def test_non_numeric_quantity_rejected(self, client):
        response = client.post("/api/billing", json=_payload(hours="lots"))
        assert response.status_code == 400
        assert "hours" in response.json()["message"]

    def test_storage_failure_is_server_error(self, client):
        with patch(
            "cloud_billing.storage.repository.BillingRepository.insert",
            side_effect=sqlite3.OperationalError("database is locked")
        ):
            response = client.post("/api/billing", json=_payload())

        assert response.status_code == 500
        assert response.json() == {"message": "database is locked"}


class TestSummaryEndpoint:
    """Test the per-instance-type rollup."""

    def test_empty_summary(self, client):
        assert client.get("/api/billing/summary").json() == []

    def test_summary(self, client):
        client.post("/api/billing", json=_payload(storageSize=2, hours=5))
        client.post("/api/billing", json=_payload(instanceType="n2-standard-2", storageSize=1, hours=8))
        client.post("/api/billing", json=_payload(storageSize=3, hours=10))

        rows = client.get("/api/billing/summary").json()

        assert [row["instanceType"] for row in rows] == ["e2-standard-2", "n2-standard-2"]
        assert rows[0]["totalHours"] == 15
        assert rows[0]["totalStorage"] == 5
        assert rows[1]["totalCost"] == pytest.approx(0.097014 * 8 + 0.02 * 1 * (8 / 730))


class TestEstimateEndpoint:
    """Test the live preview endpoint."""

    def test_estimate(self, client):
        response = client.post("/api/estimate", json=_payload())
        assert response.status_code == 200
        body = response.json()
        assert body["instanceCost"] == pytest.approx(48.91876)
        assert body["storageCost"] == 2.0
        assert body["totalCost"] == pytest.approx(50.91876)

    @pytest.mark.parametrize("payload", [
        {},
        {"instanceType": "e2-standard-2"},
        _payload(instanceType="unknown"),
        _payload(hours="abc"),
        _payload(storageSize=10 ** 400),
        _payload(storageType="ssd", storageSize=1e308, hours=1e308),
    ])
    def test_invalid_estimate_is_zero(self, client, payload):
        """Verify previews never fail on incomplete input."""
        response = client.post("/api/estimate", json=payload)
        assert response.status_code == 200
        assert response.json() == {"instanceCost": 0.0, "storageCost": 0.0, "totalCost": 0.0}

    @pytest.mark.parametrize("body", [[1, 2], 5, "e2-standard-2", None])
    def test_non_object_body_is_zero(self, client, body):
        response = client.post("/api/estimate", json=body)
        assert response.status_code == 200
        assert response.json() == {"instanceCost": 0.0, "storageCost": 0.0, "totalCost": 0.0}

    def test_malformed_body_is_zero(self, client):
        response = client.post(
            "/api/estimate",
            content="not json",
            headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 200
        assert response.json()["totalCost"] == 0.0

    def test_estimate_does_not_save(self, client):
        client.post("/api/estimate", json=_payload())
        assert client.get("/api/billing").json() == []
