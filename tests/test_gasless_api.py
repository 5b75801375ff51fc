"""Tests for the HTTP surface."""

import pytest
from fastapi.testclient import TestClient

from conftest import TARGET_ADDRESS, ScriptedProvider
from gasless_api import create_app
from relay_errors import TransientError
from relay_service_core import RelayOrchestrator


@pytest.fixture
def client(orchestrator):
    with TestClient(create_app(orchestrator)) as c:
        yield c


class TestRoutes:
    """Happy paths through the API."""

    def test_root(self, client):
        """Liveness message."""
        assert client.get("/").json() == {"msg": "gasless relay server running"}

    def test_health(self, client):
        """Health reports the relayer."""
        body = client.get("/health").json()
        assert body["code"] == 0
        assert body["data"]["healthy"] is True

    def test_submit_and_status(self, client):
        """Submit returns a pending handle that can be looked up."""
        resp = client.post("/relay", json={"to": TARGET_ADDRESS, "data": "0xabcd", "paymentId": "p-1"})
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["status"] == "pending"
        assert data["transactionHash"].startswith("0x")

        status = client.get(f"/relay/{data['relayRequestId']}").json()
        assert status["code"] == 0
        assert status["data"]["relayRequestId"] == data["relayRequestId"]

    def test_integer_quantities(self, client):
        """Integer value / gasLimit are accepted like decimal strings."""
        resp = client.post(
            "/relay", json={"to": TARGET_ADDRESS, "data": "0xabcd", "value": 5, "gasLimit": 21000}
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["status"] == "pending"

    def test_cancel_pending(self, client):
        """Pending transactions cannot be cancelled."""
        data = client.post("/relay", json={"to": TARGET_ADDRESS, "data": "0xabcd"}).json()["data"]
        body = client.post(f"/relay/{data['relayRequestId']}/cancel").json()
        assert body["data"] == {"relayRequestId": data["relayRequestId"], "cancelled": False}

    def test_wait_confirmed(self, client, mock_provider):
        """wait returns once the simulated transaction settles."""
        data = client.post("/relay", json={"to": TARGET_ADDRESS, "data": "0xabcd"}).json()["data"]
        mock_provider.set_status(data["relayRequestId"], "confirmed")

        body = client.post(f"/relay/{data['relayRequestId']}/wait?timeout_ms=1000&poll_interval_ms=10").json()
        assert body["data"]["status"] == "confirmed"


class TestErrors:
    """Error envelopes and status codes."""

    def test_validation_error(self, client):
        """Odd-length data is a 400."""
        resp = client.post("/relay", json={"to": TARGET_ADDRESS, "data": "0xabc"})
        assert resp.status_code == 400
        assert resp.json()["code"] == 1
        assert resp.json()["error"] == "validation_error"

    def test_bad_speed(self, client):
        """Unknown speed values are validation errors."""
        resp = client.post("/relay", json={"to": TARGET_ADDRESS, "data": "0xabcd", "speed": "warp"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "validation_error"
        assert "speed" in resp.json()["msg"]

    def test_missing_field(self, client):
        """A body without `to` gets the error envelope, not FastAPI's default."""
        resp = client.post("/relay", json={"data": "0xabcd"})
        assert resp.status_code == 400
        assert resp.json()["code"] == 1
        assert resp.json()["error"] == "validation_error"
        assert "to" in resp.json()["msg"]

    def test_bad_query_param(self, client):
        """A non-numeric timeout is a validation error."""
        resp = client.post("/relay/tx-1/wait?timeout_ms=soon")
        assert resp.status_code == 400
        assert resp.json()["error"] == "validation_error"

    def test_not_found(self, client):
        """Unknown ids are a 404."""
        resp = client.get("/relay/never-issued")
        assert resp.status_code == 404
        assert resp.json()["error"] == "not_found"

    def test_timeout(self, client):
        """A wait that runs out is a 504 with the last status."""
        data = client.post("/relay", json={"to": TARGET_ADDRESS, "data": "0xabcd"}).json()["data"]
        resp = client.post(f"/relay/{data['relayRequestId']}/wait?timeout_ms=30&poll_interval_ms=10")
        assert resp.status_code == 504
        assert resp.json()["lastStatus"] == "pending"

    def test_transient(self):
        """An unreachable relay service is a 503."""
        orchestrator = RelayOrchestrator(ScriptedProvider(["pending"], error=TransientError("down")))
        with TestClient(create_app(orchestrator)) as c:
            resp = c.get("/relay/tx-1")
        assert resp.status_code == 503
        assert resp.json()["error"] == "transient_error"

    def test_health_unhealthy_is_200(self):
        """Health failures are reported, not raised."""
        orchestrator = RelayOrchestrator(ScriptedProvider(["pending"], error=TransientError("down")))
        with TestClient(create_app(orchestrator)) as c:
            body = c.get("/health").json()
        assert body["data"]["healthy"] is False
