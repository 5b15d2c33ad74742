"""Tests for EndpointStore — probes, endpoints and checks in SQLite."""

from __future__ import annotations

import pytest

from beacon.discovery import generate_defaults, generate_routed_defaults
from beacon.models import Check, CheckRoute, CheckType, DefaultProbeSet, EndpointDTO, PingSettings
from beacon.store import (
    EndpointNotFoundError,
    EndpointStore,
    ProbeNotFoundError,
    ValidationError,
)


@pytest.fixture
def store(db):
    return EndpointStore(db)


class TestProbes:
    def test_get_probe_by_name(self, store):
        probe_id = store.add_probe("VNPT", org_id=1)
        probe = store.get_probe_by_name("VNPT", 1)
        assert probe["id"] == probe_id
        assert probe["name"] == "VNPT"

    def test_missing_probe_raises(self, store):
        with pytest.raises(ProbeNotFoundError):
            store.get_probe_by_name("nope", 1)

    def test_public_probe_visible_to_other_orgs(self, store):
        probe_id = store.add_probe("FPT", org_id=1, public=True)
        assert store.get_probe_by_name("FPT", 7)["id"] == probe_id

    def test_private_probe_hidden_from_other_orgs(self, store):
        store.add_probe("FPT", org_id=1)
        with pytest.raises(ProbeNotFoundError):
            store.get_probe_by_name("FPT", 7)


class TestValidateCheckRoute:
    def _check(self, ids):
        return Check(
            type=CheckType.PING,
            frequency=60,
            settings=PingSettings(hostname="example.com"),
            enabled=True,
            route=CheckRoute(ids=tuple(ids)),
        )

    def test_known_probes_pass(self, store):
        a = store.add_probe("A", org_id=1)
        b = store.add_probe("B", org_id=2, public=True)
        store.validate_check_route(self._check([a, b]), org_id=1)

    def test_unknown_probe_rejected(self, store):
        a = store.add_probe("A", org_id=1)
        with pytest.raises(ValidationError):
            store.validate_check_route(self._check([a, 999]), org_id=1)

    def test_other_org_private_probe_rejected(self, store):
        a = store.add_probe("A", org_id=2)
        with pytest.raises(ValidationError):
            store.validate_check_route(self._check([a]), org_id=1)

    def test_empty_route_rejected(self, store):
        with pytest.raises(ValidationError):
            store.validate_check_route(self._check([]), org_id=1)

    def test_no_route_is_fine(self, store):
        check = Check(type=CheckType.PING, frequency=60, settings=PingSettings(hostname="x"), enabled=True)
        store.validate_check_route(check, org_id=1)


class TestEndpoints:
    def test_add_and_get(self, store):
        saved = store.add_endpoint(1, generate_defaults("example.com"))
        assert saved.id is not None
        assert saved.org_id == 1
        assert len(saved.checks) == 7
        assert all(c.id is not None for c in saved.checks)

        loaded = store.get_endpoint_by_id(1, saved.id)
        assert loaded.name == "example.com"
        assert [c.to_dict() for c in loaded.checks] == [c.to_dict() for c in saved.checks]

    def test_routed_checks_persist_route_and_health(self, store):
        saved = store.add_endpoint(1, generate_routed_defaults("example.com", DefaultProbeSet(ids=(4, 5))))
        for check in saved.checks:
            assert check.route.ids == (4, 5)
            assert check.health_settings.num_probes == 1

    def test_duplicate_name_rejected(self, store):
        store.add_endpoint(1, EndpointDTO(name="example.com"))
        with pytest.raises(ValidationError):
            store.add_endpoint(1, EndpointDTO(name="example.com"))

    def test_same_name_in_other_org_allowed(self, store):
        store.add_endpoint(1, EndpointDTO(name="example.com"))
        assert store.add_endpoint(2, EndpointDTO(name="example.com")).org_id == 2

    def test_get_from_other_org_not_found(self, store):
        saved = store.add_endpoint(1, EndpointDTO(name="example.com"))
        with pytest.raises(EndpointNotFoundError):
            store.get_endpoint_by_id(2, saved.id)

    def test_update_replaces_checks(self, store):
        saved = store.add_endpoint(1, generate_defaults("example.com"))
        saved.name = "www.example.com"
        saved.checks = saved.checks[:2]
        updated = store.update_endpoint(1, saved)
        assert updated.name == "www.example.com"
        assert [c.type for c in updated.checks] == [CheckType.HTTP, CheckType.HTTPS]

    def test_update_missing_raises(self, store):
        with pytest.raises(EndpointNotFoundError):
            store.update_endpoint(1, EndpointDTO(name="x", id=42))

    def test_update_without_id_rejected(self, store):
        with pytest.raises(ValidationError):
            store.update_endpoint(1, EndpointDTO(name="x"))

    def test_delete(self, store, db):
        saved = store.add_endpoint(1, generate_defaults("example.com"))
        store.delete_endpoint(1, saved.id)
        with pytest.raises(EndpointNotFoundError):
            store.get_endpoint_by_id(1, saved.id)
        assert db.execute("SELECT COUNT(*) FROM checks").fetchone()[0] == 0

    def test_delete_missing_raises(self, store):
        with pytest.raises(EndpointNotFoundError):
            store.delete_endpoint(1, 42)

    def test_list_filters_and_pages(self, store):
        for name in ("a.example.com", "b.example.com", "c.other.org"):
            store.add_endpoint(1, EndpointDTO(name=name))
        store.add_endpoint(2, EndpointDTO(name="d.example.com"))

        assert [e.name for e in store.list_endpoints(1)] == [
            "a.example.com", "b.example.com", "c.other.org",
        ]
        assert [e.name for e in store.list_endpoints(1, name="example")] == [
            "a.example.com", "b.example.com",
        ]
        assert [e.name for e in store.list_endpoints(1, limit=2, page=2)] == ["c.other.org"]


class TestConnection:
    def test_get_db_enforces_foreign_keys(self, db_path):
        from beacon.db import get_db

        conn = get_db()
        assert conn.execute("PRAGMA foreign_keys").fetchone()[0] == 1
        assert get_db() is conn
