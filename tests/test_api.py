"""HTTP API tests against the FastAPI app with an in-memory ledger."""

import pytest
from eth_abi import decode
from fastapi.testclient import TestClient
from web3 import Web3

from oracle.app.api.deps import (
    get_authorization_engine,
    get_write_preparer,
    reset_dependencies,
)
from oracle.app.core.config import ZERO_ADDRESS, settings
from oracle.app.ledger import abi
from oracle.app.ledger.writes import WritePreparer
from oracle.app.main import ENDPOINTS, app


@pytest.fixture
def client(engine, contract):
    app.dependency_overrides[get_authorization_engine] = lambda: engine
    app.dependency_overrides[get_write_preparer] = lambda: WritePreparer(contract)
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
    reset_dependencies()


@pytest.fixture
def unconfigured_client(monkeypatch):
    monkeypatch.setattr(settings, "access_contract_address", ZERO_ADDRESS)
    monkeypatch.setattr(settings, "ledger_mock_mode", False)
    reset_dependencies()
    with TestClient(app) as c:
        yield c
    reset_dependencies()


def test_root_lists_endpoints(client):
    resp = client.get("/")

    assert resp.status_code == 200
    assert resp.json()["endpoints"] == ENDPOINTS


def test_request_id_echoed(client):
    resp = client.get("/", headers={"X-Request-ID": "trace-me"})
    assert resp.headers["X-Request-ID"] == "trace-me"


class TestEstimate:

    def test_estimate(self, client):
        resp = client.post("/inference/estimate", json={"mode": "full", "quantity": 3})

        assert resp.status_code == 200
        assert resp.json() == {"mode": "full", "quantity": 3, "cost": 18}

    def test_quantity_defaults_to_one(self, client):
        resp = client.post("/inference/estimate", json={"mode": "tags"})
        assert resp.json()["cost"] == 2

    def test_unknown_mode(self, client):
        resp = client.post("/inference/estimate", json={"mode": "turbo"})

        assert resp.status_code == 400
        assert resp.json()["error"] == "unknown_mode"

    def test_zero_quantity(self, client):
        resp = client.post("/inference/estimate", json={"mode": "basic", "quantity": 0})

        assert resp.status_code == 400
        assert resp.json()["error"] == "invalid_quantity"

    def test_schema_error(self, client):
        resp = client.post("/inference/estimate", json={"quantity": 1})

        assert resp.status_code == 400
        body = resp.json()
        assert body["error"] == "validation_error"
        assert "body.mode" in body["message"]


class TestAuthorize:

    def test_new_user_gets_initial_grant(self, client, user):
        resp = client.post("/inference/authorize", json={"user": user, "mode": "basic"})

        assert resp.status_code == 200
        assert resp.json() == {
            "allowed": True,
            "method": "initial_grant",
            "reason": "initial_50_credits",
            "cost": 0,
        }

    def test_credits_charged(self, client, ledger, user):
        ledger.set_balance(user, 10)

        resp = client.post(
            "/inference/authorize", json={"user": user, "mode": "price_accuracy", "quantity": 2}
        )

        assert resp.json() == {
            "allowed": True,
            "method": "credits",
            "reason": "sufficient_credits",
            "cost": 8,
        }

    def test_subscription_covers(self, client, ledger, make_subscription, user):
        ledger.set_balance(user, 1)
        ledger.set_subscription(user, make_subscription(used=5))

        resp = client.post("/inference/authorize", json={"user": user, "mode": "full"})

        assert resp.json()["method"] == "subscription"
        assert resp.json()["cost"] == 0

    def test_denied(self, client, ledger, user):
        ledger.set_balance(user, 1)

        resp = client.post("/inference/authorize", json={"user": user, "mode": "full"})

        assert resp.status_code == 200
        assert resp.json() == {
            "allowed": False,
            "method": "deny",
            "reason": "insufficient_balance_and_cap",
            "cost": 6,
        }

    def test_invalid_address(self, client):
        resp = client.post("/inference/authorize", json={"user": "0x123", "mode": "basic"})

        assert resp.status_code == 400
        assert resp.json()["error"] == "invalid_address"


class TestCredits:

    @pytest.mark.parametrize(
        ("reason", "parameter", "expected"),
        [
            ("prompt_streak", 7, 3),
            ("referral", 2, 12),
            ("social_quest", 9, 10),
            ("custom", 42, 42),
        ],
    )
    def test_calculate(self, client, reason, parameter, expected):
        resp = client.post("/credits/calculate", json={"reason": reason, "parameter": parameter})

        assert resp.status_code == 200
        assert resp.json()["credits"] == expected

    def test_calculate_rejects_negative(self, client):
        resp = client.post("/credits/calculate", json={"reason": "prompt_streak", "parameter": -1})

        assert resp.status_code == 400
        assert resp.json()["error"] == "validation_error"

    def test_initial_grant_repeatable_until_confirmed(self, client, user, contract):
        resp = client.post("/credits/initial-grant", json={"user": user})

        assert resp.status_code == 200
        body = resp.json()
        assert body["to"] == Web3.to_checksum_address(contract)
        assert body["amount"] == 50
        assert body["data"].startswith("0x" + abi.AWARD_CREDITS.selector.hex())

        again = client.post("/credits/initial-grant", json={"user": user})
        assert again.status_code == 200
        assert again.json() == body

    def test_initial_grant_refused_after_confirmation(self, client, ledger, user):
        client.post("/credits/initial-grant", json={"user": user})
        ledger.set_balance(user, 50)

        confirmed = client.post("/credits/initial-grant/confirm", json={"user": user})
        assert confirmed.status_code == 200
        assert confirmed.json() == {"user": Web3.to_checksum_address(user), "confirmed": True}

        again = client.post("/credits/initial-grant", json={"user": user})
        assert again.status_code == 400
        assert again.json()["error"] == "not_eligible"

    def test_confirm_before_grant_lands(self, client, user):
        resp = client.post("/credits/initial-grant/confirm", json={"user": user})

        assert resp.status_code == 400
        assert resp.json()["error"] == "not_eligible"

        decision = client.post("/inference/authorize", json={"user": user, "mode": "basic"})
        assert decision.json()["method"] == "initial_grant"

    def test_initial_grant_ledger_unavailable(self, client, ledger, user):
        ledger.fail_balance_reads = True

        resp = client.post("/credits/initial-grant", json={"user": user})

        assert resp.status_code == 502
        assert resp.json()["error"] == "ledger_unavailable"


def test_memory_update(client, user):
    resp = client.post("/memory/update", json={"user": user, "memory_hash": "bafyhash"})

    assert resp.status_code == 200
    body = resp.json()
    assert "amount" not in body
    user_arg, memory_hash = decode(
        list(abi.UPDATE_USER_MEMORY_POINTER.inputs), bytes.fromhex(body["data"][10:])
    )
    assert user_arg == Web3.to_checksum_address(user)
    assert memory_hash == "bafyhash"


class TestUsers:

    def test_credits(self, client, ledger, user):
        ledger.set_balance(user, 77)

        resp = client.get(f"/users/{user}/credits")

        assert resp.json() == {"address": Web3.to_checksum_address(user), "credits": 77}

    def test_subscription(self, client, ledger, make_subscription, user):
        ledger.set_subscription(user, make_subscription(used=3))

        body = client.get(f"/users/{user}/subscription").json()

        assert body["plan_id"] == 1
        assert body["used_this_window"] == 3
        assert body["plan"]["monthly_cap"] == 20

    def test_no_subscription(self, client, user):
        assert client.get(f"/users/{user}/subscription").json() == {}

    def test_has_active_subscription(self, client, ledger, make_subscription, user):
        ledger.set_subscription(user, make_subscription(active=False))

        body = client.get(f"/users/{user}/has-active-subscription").json()
        assert body["has_active_subscription"] is False

    def test_eligibility(self, client, ledger, make_subscription, user):
        ledger.set_subscription(user, make_subscription(used=20, monthly_cap=20))

        body = client.get(f"/users/{user}/eligibility").json()

        assert body["eligible"] is False
        assert body["has_subscription"] is True
        assert body["has_reached_cap"] is True
        assert body["reason"] == "Monthly cap reached"

    def test_degraded_reads(self, client, ledger, user):
        ledger.fail_balance_reads = True
        assert client.get(f"/users/{user}/credits").json()["credits"] == 0

    def test_invalid_address(self, client):
        resp = client.get("/users/not-an-address/credits")

        assert resp.status_code == 400
        assert resp.json()["message"] == "valid user address required"


class TestUnconfigured:

    def test_health_reports_ledger_error(self, unconfigured_client):
        resp = unconfigured_client.get("/health")

        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "degraded"
        assert data["components"]["ledger"]["status"] == "error"

    def test_memory_update_not_configured(self, unconfigured_client, user):
        resp = unconfigured_client.post(
            "/memory/update", json={"user": user, "memory_hash": "h"}
        )

        assert resp.status_code == 503
        assert resp.json()["error"] == "not_configured"

    def test_malformed_contract_is_not_configured(self, monkeypatch, user):
        monkeypatch.setattr(settings, "access_contract_address", "0x...")
        monkeypatch.setattr(settings, "ledger_mock_mode", True)
        reset_dependencies()

        with TestClient(app) as c:
            authorized = c.post("/inference/authorize", json={"user": user, "mode": "basic"})
            memory = c.post("/memory/update", json={"user": user, "memory_hash": "h"})
        reset_dependencies()

        assert authorized.status_code == 200
        assert authorized.json()["method"] == "initial_grant"
        assert memory.status_code == 503
        assert memory.json()["error"] == "not_configured"

    def test_authorize_not_configured(self, unconfigured_client, user):
        resp = unconfigured_client.post(
            "/inference/authorize", json={"user": user, "mode": "basic"}
        )
        assert resp.status_code == 503


def test_health_mock_mode(monkeypatch):
    monkeypatch.setattr(settings, "ledger_mock_mode", True)
    reset_dependencies()

    with TestClient(app) as c:
        data = c.get("/health").json()
    reset_dependencies()

    assert data["status"] == "ok"
    assert data["components"]["ledger"] == {"status": "ok", "mode": "mock"}
