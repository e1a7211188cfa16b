"""Integration tests for API endpoints"""

import pytest
from decimal import Decimal
from unittest.mock import patch
from fastapi.testclient import TestClient
from accrual_gateway.api.dependencies import get_settings
from accrual_gateway.domain.exceptions import AccountWriteError, EnumerationError
from accrual_gateway.infrastructure.database.repositories import AccountRepository

TEST_SECRET = "test-cron-secret"


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert "X-Request-ID" in response.headers


def test_request_id_is_propagated(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "sched-42"})
    assert response.headers["X-Request-ID"] == "sched-42"


def test_metrics_endpoint(client: TestClient):
    """Test Prometheus metrics endpoint"""
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "accrual_interest_credited_total" in response.text


@pytest.mark.parametrize(
    "headers",
    [
        {},
        {"Authorization": "wrong"},
        {"Authorization": f"{TEST_SECRET}x"},
        {"Authorization": f"bearer {TEST_SECRET}"},
    ],
)
def test_daily_interest_rejects_bad_credential(client: TestClient, store, seed_account, make_investment, headers):
    """Wrong or missing credential: 401 and no account is mutated"""
    seed_account("user-1", investments=[make_investment()])

    response = client.post("/api/daily-interest", headers=headers)

    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}
    account = store.get_account("user-1", include_transactions=True)
    assert account.available_balance == Decimal("0.00")
    assert account.investments[0].days_processed == 0
    assert account.transactions == []


def test_daily_interest_rejects_when_no_secret_configured(client: TestClient, test_settings):
    client.app.dependency_overrides[get_settings] = lambda: test_settings.model_copy(update={"cron_secret_key": ""})

    response = client.post("/api/daily-interest", headers={"Authorization": ""})

    assert response.status_code == 401


def test_daily_interest_accrues(client: TestClient, store, seed_account, make_investment):
    """Authorized run: 200 with counts and per-account details"""
    seed_account("user-1", investments=[make_investment()])
    seed_account("user-2")

    response = client.post("/api/daily-interest", headers={"Authorization": TEST_SECRET})

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["message"] == "Daily interest processed for 1 accounts with 0 errors"
    assert data["results"]["processed"] == 1
    assert data["results"]["errors"] == 0
    assert data["results"]["details"] == [{"accountId": "user-1", "amount": 3530.0, "success": True}]
    assert store.get_account("user-1").available_balance == Decimal("3530.00")


def test_daily_interest_accepts_bearer_credential(client: TestClient, seed_account, make_investment):
    seed_account("user-1", investments=[make_investment()])

    response = client.post("/api/daily-interest", headers={"Authorization": f"Bearer {TEST_SECRET}"})

    assert response.status_code == 200
    assert response.json()["results"]["processed"] == 1


def test_daily_interest_flat_rate_policy(client: TestClient, store, seed_account, test_settings):
    client.app.dependency_overrides[get_settings] = lambda: test_settings.model_copy(
        update={"accrual_policy": "flat_rate"}
    )
    seed_account("user-1", available_balance="1000", total_funded_amount="50000")

    response = client.post("/api/daily-interest", headers={"Authorization": TEST_SECRET})

    assert response.status_code == 200
    assert response.json()["results"]["details"] == [{"accountId": "user-1", "amount": 2000.0, "success": True}]
    assert store.get_account("user-1").available_balance == Decimal("3000.00")


def test_daily_interest_partial_failure_is_still_200(client: TestClient, store, seed_account, make_investment):
    seed_account("user-a", investments=[make_investment("inv-a")])
    seed_account("user-b", investments=[make_investment("inv-b")])
    real_apply = AccountRepository.apply_update

    def flaky_apply(self, account_update):
        if account_update.account_id == "user-a":
            raise AccountWriteError("user-a", "write refused")
        return real_apply(self, account_update)

    with patch.object(AccountRepository, "apply_update", flaky_apply):
        response = client.post("/api/daily-interest", headers={"Authorization": TEST_SECRET})

    assert response.status_code == 200
    results = response.json()["results"]
    assert results["processed"] == 1
    assert results["errors"] == 1
    assert {"accountId": "user-a", "error": "write refused", "success": False} in results["details"]
    assert store.get_account("user-b").available_balance == Decimal("3530.00")


@patch("accrual_gateway.infrastructure.database.repositories.AccountRepository.list_account_ids")
def test_daily_interest_enumeration_failure_is_500(mock_list, client: TestClient):
    mock_list.side_effect = EnumerationError("Could not list accounts: database offline")

    response = client.post("/api/daily-interest", headers={"Authorization": TEST_SECRET})

    assert response.status_code == 500
    assert response.json() == {
        "success": False,
        "message": "An error occurred while processing daily interest",
        "error": "Could not list accounts: database offline",
    }
