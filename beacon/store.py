"""Endpoint store — persists endpoints, their checks and probe agents to SQLite."""

from __future__ import annotations

import json
import logging
import sqlite3
from typing import Any

from beacon.models import Check, EndpointDTO, RouteType

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Base error for storage operations."""


class ProbeNotFoundError(StoreError):
    """No probe with the requested name is visible to the organisation."""


class EndpointNotFoundError(StoreError):
    """No endpoint with the requested id exists in the organisation."""


class ValidationError(StoreError):
    """The submitted endpoint or check cannot be stored as given."""


class EndpointStore:
    """CRUD wrapper around the ``probes`` / ``endpoints`` / ``checks`` tables.

    Every endpoint operation is scoped by ``org_id``; an id belonging to a
    different organisation behaves exactly like a missing one.

    Args:
        conn: An open :class:`sqlite3.Connection` with ``row_factory`` set to
              :class:`sqlite3.Row`.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    # ------------------------------------------------------------------ #
    # Probes                                                               #
    # ------------------------------------------------------------------ #

    def add_probe(self, name: str, org_id: int, public: bool = False) -> int:
        """Register a probe agent and return its id."""
        cur = self._conn.execute(
            "INSERT INTO probes (org_id, name, public) VALUES (?, ?, ?)",
            (org_id, name, public),
        )
        self._conn.commit()
        logger.debug("add_probe id=%d name=%s org=%d", cur.lastrowid, name, org_id)
        return int(cur.lastrowid)

    def get_probe_by_name(self, name: str, org_id: int) -> dict[str, Any]:
        """Return the probe row named *name* owned by *org_id* (or public).

        Raises:
            ProbeNotFoundError: if no such probe exists.
        """
        row = self._conn.execute(
            """
            SELECT * FROM probes
             WHERE name = ? AND (org_id = ? OR public = 1)
             ORDER BY org_id = ? DESC
             LIMIT 1
            """,
            (name, org_id, org_id),
        ).fetchone()
        if row is None:
            raise ProbeNotFoundError(f"Probe not found: {name}")
        return dict(row)

    def validate_check_route(self, check: Check, org_id: int) -> None:
        """Ensure every probe id in *check*'s route is visible to *org_id*."""
        if check.route is None:
            return
        if check.route.type is not RouteType.BY_IDS:
            raise ValidationError(f"Unsupported route type: {check.route.type}")
        ids = sorted(set(check.route.ids))
        if not ids:
            raise ValidationError("No probes defined in check route")
        placeholders = ",".join("?" for _ in ids)
        cur = self._conn.execute(
            f"SELECT id FROM probes WHERE id IN ({placeholders}) AND (org_id = ? OR public = 1)",
            (*ids, org_id),
        )
        found = {row["id"] for row in cur.fetchall()}
        missing = [i for i in ids if i not in found]
        if missing:
            raise ValidationError(f"Invalid probe ids in check route: {missing}")

    # ------------------------------------------------------------------ #
    # Endpoints                                                            #
    # ------------------------------------------------------------------ #

    def add_endpoint(self, org_id: int, endpoint: EndpointDTO) -> EndpointDTO:
        """Insert *endpoint* and its checks; returns it with ids assigned."""
        try:
            cur = self._conn.execute(
                "INSERT INTO endpoints (org_id, name) VALUES (?, ?)",
                (org_id, endpoint.name),
            )
        except sqlite3.IntegrityError as exc:
            self._conn.rollback()
            raise ValidationError(f"Endpoint already exists: {endpoint.name}") from exc
        endpoint_id = int(cur.lastrowid)
        self._insert_checks(org_id, endpoint_id, endpoint.checks)
        self._conn.commit()
        logger.info("add_endpoint id=%d name=%s org=%d", endpoint_id, endpoint.name, org_id)
        return self.get_endpoint_by_id(org_id, endpoint_id)

    def update_endpoint(self, org_id: int, endpoint: EndpointDTO) -> EndpointDTO:
        """Rename *endpoint* and replace its full check list."""
        if endpoint.id is None:
            raise ValidationError("Endpoint id not set.")
        try:
            cur = self._conn.execute(
                """
                UPDATE endpoints SET name = ?, updated_at = CURRENT_TIMESTAMP
                 WHERE id = ? AND org_id = ?
                """,
                (endpoint.name, endpoint.id, org_id),
            )
        except sqlite3.IntegrityError as exc:
            self._conn.rollback()
            raise ValidationError(f"Endpoint already exists: {endpoint.name}") from exc
        if cur.rowcount == 0:
            raise EndpointNotFoundError(f"Endpoint not found: {endpoint.id}")
        self._conn.execute("DELETE FROM checks WHERE endpoint_id = ?", (endpoint.id,))
        self._insert_checks(org_id, endpoint.id, endpoint.checks)
        self._conn.commit()
        return self.get_endpoint_by_id(org_id, endpoint.id)

    def delete_endpoint(self, org_id: int, endpoint_id: int) -> None:
        cur = self._conn.execute(
            "DELETE FROM endpoints WHERE id = ? AND org_id = ?",
            (endpoint_id, org_id),
        )
        self._conn.commit()
        if cur.rowcount == 0:
            raise EndpointNotFoundError(f"Endpoint not found: {endpoint_id}")
        logger.info("delete_endpoint id=%d org=%d", endpoint_id, org_id)

    def get_endpoint_by_id(self, org_id: int, endpoint_id: int) -> EndpointDTO:
        row = self._conn.execute(
            "SELECT * FROM endpoints WHERE id = ? AND org_id = ?",
            (endpoint_id, org_id),
        ).fetchone()
        if row is None:
            raise EndpointNotFoundError(f"Endpoint not found: {endpoint_id}")
        return self._hydrate(row)

    def list_endpoints(
        self,
        org_id: int,
        name: str | None = None,
        limit: int = 50,
        page: int = 1,
    ) -> list[EndpointDTO]:
        """Return the organisation's endpoints ordered by name.

        Args:
            name:  If given, only endpoints whose name contains this string.
            limit: Page size.
            page:  1-based page number.
        """
        offset = (max(page, 1) - 1) * limit
        if name:
            cur = self._conn.execute(
                """
                SELECT * FROM endpoints WHERE org_id = ? AND name LIKE ?
                 ORDER BY name LIMIT ? OFFSET ?
                """,
                (org_id, f"%{name}%", limit, offset),
            )
        else:
            cur = self._conn.execute(
                "SELECT * FROM endpoints WHERE org_id = ? ORDER BY name LIMIT ? OFFSET ?",
                (org_id, limit, offset),
            )
        return [self._hydrate(row) for row in cur.fetchall()]

    # ------------------------------------------------------------------ #
    # Helpers                                                              #
    # ------------------------------------------------------------------ #

    def _insert_checks(self, org_id: int, endpoint_id: int, checks: list[Check]) -> None:
        for check in checks:
            try:
                self._conn.execute(
                    """
                    INSERT INTO checks
                        (endpoint_id, org_id, type, frequency, enabled,
                         settings, route, health_settings)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        endpoint_id,
                        org_id,
                        check.type.value,
                        check.frequency,
                        check.enabled,
                        json.dumps(check.settings.to_dict()),
                        json.dumps(check.route.to_dict()) if check.route else None,
                        json.dumps(check.health_settings.to_dict()) if check.health_settings else None,
                    ),
                )
            except sqlite3.IntegrityError as exc:
                self._conn.rollback()
                raise ValidationError(f"Duplicate {check.type.value} check") from exc

    def _hydrate(self, row: sqlite3.Row) -> EndpointDTO:
        cur = self._conn.execute(
            "SELECT * FROM checks WHERE endpoint_id = ? ORDER BY id",
            (row["id"],),
        )
        checks = [
            Check.from_dict({
                "id": c["id"],
                "type": c["type"],
                "frequency": c["frequency"],
                "enabled": bool(c["enabled"]),
                "settings": json.loads(c["settings"]),
                "route": json.loads(c["route"]) if c["route"] else None,
                "healthSettings": json.loads(c["health_settings"]) if c["health_settings"] else None,
            })
            for c in cur.fetchall()
        ]
        return EndpointDTO(name=row["name"], checks=checks, id=row["id"], org_id=row["org_id"])
