# tests/test_api.py
"""HTTP + WebSocket tests against the FastAPI app (MQTT disabled, SQLite store)."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import time
import uuid

import pytest
from unittest.mock import MagicMock
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
from bintrack.database import SessionLocal, get_db
from bintrack.models.consumer import Consumer
from bintrack.main import app
from bintrack.services.event_dispatcher import TelemetryReceived

ALLOWED_ORIGIN = "https://elfifthsem.netlify.app"


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def broken_db():
    def _broken():
        db = MagicMock()
        db.commit.side_effect = OperationalError("INSERT", {}, Exception("db down"))
        db.query.return_value.filter.return_value.first.side_effect = OperationalError(
            "SELECT", {}, Exception("db down"))
        yield db
    app.dependency_overrides[get_db] = _broken


def unique_name():
    return f"consumer-{uuid.uuid4().hex[:8]}"


class TestBinData:
    def test_initial_snapshot(self, client):
        resp = client.get("/api/data")
        assert resp.status_code == 200
        assert resp.json() == [
            {"bin": "BIN 1", "level": 0, "latitude": 12.92351, "longitude": 77.49971,
             "address": "CURRENT", "lastEmpty": None},
            {"bin": "BIN 2", "level": 0, "latitude": 12.915872, "longitude": 77.49364,
             "address": "CAUVERY HOSTEL", "lastEmpty": None},
        ]

    def test_reflects_registry_updates(self, client):
        client.app.state.pipeline.registry.update("BIN 2", 55, "2026-01-01 10:00:00")
        assert client.get("/api/data").json()[1]["level"] == 55


class TestCors:
    def test_allowed_origin(self, client):
        resp = client.get("/api/data", headers={"Origin": ALLOWED_ORIGIN})
        assert resp.status_code == 200
        assert resp.headers["access-control-allow-origin"] == ALLOWED_ORIGIN

    def test_disallowed_origin_rejected(self, client):
        resp = client.get("/api/data", headers={"Origin": "https://evil.example"})
        assert resp.status_code == 403
        assert resp.json() == {"detail": "Not allowed by CORS"}

    def test_no_origin_allowed(self, client):
        assert client.get("/api/data").status_code == 200

    def test_preflight(self, client):
        resp = client.options("/api/register", headers={
            "Origin": ALLOWED_ORIGIN,
            "Access-Control-Request-Method": "POST",
        })
        assert resp.status_code == 200


class TestAccounts:
    def test_register_then_login(self, client):
        name = unique_name()
        resp = client.post("/api/register", json={
            "name": name, "address": "Block A", "contactNumber": "9999999999", "password": "pw123",
        })
        assert resp.status_code == 201
        body = resp.json()
        assert body["message"] == "Account created successfully"
        assert len(body["caNumber"]) == 10

        resp = client.post("/api/login", json={"name": name, "password": "pw123"})
        assert resp.status_code == 200
        assert resp.json() == {
            "message": "Login successful",
            "consumer": {"name": name, "address": "Block A", "caNumber": body["caNumber"]},
        }

    def test_login_unknown_name(self, client):
        resp = client.post("/api/login", json={"name": unique_name(), "password": "x"})
        assert resp.status_code == 404
        assert resp.json() == {"error": "Consumer not found"}

    def test_login_bad_password(self, client):
        name = unique_name()
        client.post("/api/register", json={
            "name": name, "address": "Block B", "contactNumber": "1", "password": "right",
        })
        resp = client.post("/api/login", json={"name": name, "password": "wrong"})
        assert resp.status_code == 401
        assert resp.json() == {"error": "Invalid password"}

    def test_login_with_corrupt_stored_hash_returns_500(self, client):
        name = unique_name()
        client.post("/api/register", json={
            "name": name, "address": "Block C", "contactNumber": "2", "password": "pw",
        })
        db = SessionLocal()
        try:
            db.query(Consumer).filter(Consumer.name == name).update({"password_hash": "not-a-bcrypt-hash"})
            db.commit()
        finally:
            db.close()

        resp = client.post("/api/login", json={"name": name, "password": "pw"})
        assert resp.status_code == 500
        assert resp.json() == {"error": "Error during login"}

    def test_support_request(self, client):
        resp = client.post("/api/support", json={
            "caNumber": "1234567890", "name": "Asha", "subject": "Bin 2 overflowing",
        })
        assert resp.status_code == 201
        assert resp.json() == {"message": "Support request submitted successfully"}

    def test_persistence_failures_return_500(self, client, broken_db):
        resp = client.post("/api/register", json={
            "name": "x", "address": "y", "contactNumber": "z", "password": "pw",
        })
        assert resp.status_code == 500
        assert resp.json() == {"error": "Error creating account"}

        resp = client.post("/api/login", json={"name": "x", "password": "pw"})
        assert resp.status_code == 500
        assert resp.json() == {"error": "Error during login"}

        resp = client.post("/api/support", json={"caNumber": "1", "name": "x", "subject": "s"})
        assert resp.status_code == 500
        assert resp.json() == {"error": "Error submitting support request"}


class TestHealth:
    def test_health_without_mqtt(self, client):
        body = client.get("/api/health").json()
        assert body["status"] == "ok"
        assert body["database"] == "ok"
        assert body["bus"] == "disabled"
        assert body["bins"] == ["BIN 1", "BIN 2"]


class TestLiveStream:
    def _wait_for_subscribers(self, pipeline, count):
        deadline = time.time() + 2
        while pipeline.hub.subscriber_count != count and time.time() < deadline:
            time.sleep(0.01)
        assert pipeline.hub.subscriber_count == count

    def test_snapshot_pushed_on_telemetry(self, client):
        pipeline = client.app.state.pipeline
        with client.websocket_connect("/ws") as ws:
            self._wait_for_subscribers(pipeline, 1)

            event = TelemetryReceived(topic="waste/bin/data", payload=b'{"bin1_level": 5}')
            client.portal.call(pipeline.dispatcher.submit, event)

            snapshot = ws.receive_json()
            assert [b["bin"] for b in snapshot] == ["BIN 1", "BIN 2"]
            assert snapshot[0]["level"] == 5
            assert snapshot[0]["lastEmpty"] is not None
            assert snapshot == client.get("/api/data").json()

        self._wait_for_subscribers(pipeline, 0)
