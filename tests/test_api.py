"""Tests for the Beacon endpoint API and server start-up."""

from __future__ import annotations

import sqlite3

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient

from beacon.api import get_store, router
from beacon.auth import create_token, decode_token
from beacon.discovery import EndpointDiscovery, ProbeError, ProbeSet
from beacon.models import Check, CheckType, DefaultProbeSet, PingSettings
from beacon.store import EndpointStore


async def _ping_ok(endpoint):
    return Check(
        type=CheckType.PING,
        frequency=60,
        settings=PingSettings(hostname=endpoint.host),
        enabled=True,
    )


async def _unreachable(endpoint):
    raise ProbeError("host unreachable")


@pytest.fixture()
def probe_ids(db):
    store = EndpointStore(db)
    return (store.add_probe("VNPT", org_id=1, public=True), store.add_probe("FPT", org_id=1))


@pytest.fixture()
def client(db_path, probe_ids):
    test_app = FastAPI()
    test_app.include_router(router)
    test_app.state.discovery = EndpointDiscovery(
        DefaultProbeSet(ids=probe_ids),
        probes=ProbeSet(ping=_ping_ok, http=_unreachable, https=_unreachable, dns=_unreachable),
    )

    def get_test_store():
        conn = sqlite3.connect(str(db_path), check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys=ON")
        return EndpointStore(conn)

    test_app.dependency_overrides[get_store] = get_test_store
    return TestClient(test_app)


@pytest.fixture()
def auth_header():
    return {"Authorization": f"Bearer {create_token(1)}"}


# ── Auth ──────────────────────────────────────────────────────────

class TestJWT:
    def test_create_and_decode(self):
        assert decode_token(create_token(3))["org_id"] == 3

    def test_token_claims(self):
        assert set(decode_token(create_token(5))) == {"org_id", "exp"}

    def test_invalid_token(self):
        with pytest.raises(HTTPException):
            decode_token("garbage.token.here")

    def test_unauthenticated_request(self, client):
        assert client.get("/api/v2/endpoints").status_code == 401


# ── Discovery routes ──────────────────────────────────────────────

class TestDiscoverEndpoint:
    def test_live_discovery(self, client, auth_header, probe_ids):
        resp = client.post("/api/v2/endpoints/discover", json={"name": "example.com"}, headers=auth_header)
        assert resp.status_code == 200
        endpoint = resp.json()["endpoint"]
        assert endpoint["name"] == "example.com"
        assert [c["type"] for c in endpoint["checks"]] == ["ping"]
        check = endpoint["checks"][0]
        assert check["route"] == {"type": "byIds", "config": {"ids": list(probe_ids)}}
        assert check["healthSettings"] == {"num_probes": 1, "steps": 1}

    def test_discovery_not_persisted(self, client, auth_header):
        client.post("/api/v2/endpoints/discover", json={"name": "example.com"}, headers=auth_header)
        assert client.get("/api/v2/endpoints", headers=auth_header).json()["endpoints"] == []

    def test_empty_name_rejected(self, client, auth_header):
        resp = client.post("/api/v2/endpoints/discover", json={"name": ""}, headers=auth_header)
        assert resp.status_code == 400

    def test_defaults(self, client, auth_header):
        resp = client.post("/api/v2/endpoints/defaults", json={"name": "example.com"}, headers=auth_header)
        assert resp.status_code == 200
        checks = resp.json()["endpoint"]["checks"]
        assert len(checks) == 7
        assert {c["type"] for c in checks if c["enabled"]} == {"http", "https"}


# ── CRUD routes ───────────────────────────────────────────────────

class TestEndpointCrud:
    def _discovered(self, client, auth_header):
        resp = client.post("/api/v2/endpoints/discover", json={"name": "example.com"}, headers=auth_header)
        return resp.json()["endpoint"]

    def test_save_discovered_endpoint(self, client, auth_header):
        body = self._discovered(client, auth_header)
        resp = client.post("/api/v2/endpoints", json=body, headers=auth_header)
        assert resp.status_code == 200
        saved = resp.json()["endpoint"]
        assert saved["id"] > 0

        got = client.get(f"/api/v2/endpoints/{saved['id']}", headers=auth_header)
        assert got.status_code == 200
        assert got.json()["endpoint"]["checks"][0]["type"] == "ping"

    def test_add_without_name_rejected(self, client, auth_header):
        resp = client.post("/api/v2/endpoints", json={"name": "", "checks": []}, headers=auth_header)
        assert resp.status_code == 400

    def test_add_with_unknown_probe_rejected(self, client, auth_header):
        body = self._discovered(client, auth_header)
        body["checks"][0]["route"]["config"]["ids"] = [999]
        resp = client.post("/api/v2/endpoints", json=body, headers=auth_header)
        assert resp.status_code == 400

    def test_add_with_bad_settings_rejected(self, client, auth_header):
        body = {"name": "example.com", "checks": [{"type": "ping", "frequency": 60, "settings": {}}]}
        resp = client.post("/api/v2/endpoints", json=body, headers=auth_header)
        assert resp.status_code == 400

    def test_update(self, client, auth_header):
        saved = client.post(
            "/api/v2/endpoints", json=self._discovered(client, auth_header), headers=auth_header
        ).json()["endpoint"]
        saved["name"] = "www.example.com"
        resp = client.put("/api/v2/endpoints", json=saved, headers=auth_header)
        assert resp.status_code == 200
        assert resp.json()["endpoint"]["name"] == "www.example.com"

    def test_update_without_id_rejected(self, client, auth_header):
        resp = client.put("/api/v2/endpoints", json={"name": "x", "checks": []}, headers=auth_header)
        assert resp.status_code == 400

    def test_update_missing_is_404(self, client, auth_header):
        resp = client.put("/api/v2/endpoints", json={"id": 42, "name": "x", "checks": []}, headers=auth_header)
        assert resp.status_code == 404

    def test_delete(self, client, auth_header):
        saved = client.post(
            "/api/v2/endpoints", json={"name": "example.com", "checks": []}, headers=auth_header
        ).json()["endpoint"]
        assert client.delete(f"/api/v2/endpoints/{saved['id']}", headers=auth_header).status_code == 200
        assert client.get(f"/api/v2/endpoints/{saved['id']}", headers=auth_header).status_code == 404

    def test_other_org_cannot_see_endpoint(self, client, auth_header):
        saved = client.post(
            "/api/v2/endpoints", json={"name": "example.com", "checks": []}, headers=auth_header
        ).json()["endpoint"]
        other = {"Authorization": f"Bearer {create_token(2)}"}
        assert client.get(f"/api/v2/endpoints/{saved['id']}", headers=other).status_code == 404


# ── Server start-up ───────────────────────────────────────────────

class TestServerLifespan:
    def test_default_probes_resolved_once(self, db_path, probe_ids):
        from beacon.server import app

        with TestClient(app) as client:
            resp = client.get("/health")
            assert resp.status_code == 200
            assert resp.json()["status"] == "ok"
            discovery = app.state.discovery
            assert discovery.probe_set.ids == (probe_ids[0], probe_ids[1])
