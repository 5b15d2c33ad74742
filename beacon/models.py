"""Check and endpoint models shared by discovery, the fallback generator and storage.

Settings are a closed set of per-type dataclasses.  Each one serialises to the
wire field names the probe agents expect; optional fields left as ``None`` are
omitted from the output.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, fields
from typing import Any, Union


class CheckType(str, enum.Enum):
    HTTP = "http"
    HTTPS = "https"
    STATIC = "static"
    CLINK = "clink"
    CDN_INTEGRITY = "cdnintegrity"
    DNS = "dns"
    PING = "ping"
    TCP = "tcp"


class RouteType(str, enum.Enum):
    BY_IDS = "byIds"


def _wire(obj: Any) -> dict[str, Any]:
    """Serialise a settings dataclass using ``metadata["wire"]`` renames."""
    out: dict[str, Any] = {}
    for f in fields(obj):
        value = getattr(obj, f.name)
        if value is None:
            continue
        out[f.metadata.get("wire", f.name)] = value
    return out


def _unwire(cls: type, data: dict[str, Any]) -> Any:
    kwargs = {}
    for f in fields(cls):
        key = f.metadata.get("wire", f.name)
        if key in data:
            kwargs[f.name] = data[key]
    return cls(**kwargs)


# ── Settings ──────────────────────────────────────────────────────

@dataclass(frozen=True)
class HttpSettings:
    host: str
    port: int = 80
    path: str = "/"
    method: str = "GET"
    headers: str = ""
    timeout: int = 5
    getall: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        return _wire(self)


@dataclass(frozen=True)
class HttpsSettings(HttpSettings):
    port: int = 443
    validate_cert: bool | None = field(default=None, metadata={"wire": "validateCert"})


@dataclass(frozen=True)
class StaticSettings:
    host: str
    method: str = "GET"
    headers: str = ""
    timeout: int = 5
    total: int = 5
    getall: bool = True

    def to_dict(self) -> dict[str, Any]:
        return _wire(self)


@dataclass(frozen=True)
class ClinkSettings(StaticSettings):
    pass


@dataclass(frozen=True)
class CdnIntegritySettings:
    host: str
    headers: str = ""
    numfile: int = 5
    chunksize: int = 3145728

    def to_dict(self) -> dict[str, Any]:
        return _wire(self)


@dataclass(frozen=True)
class TcpSettings:
    host: str

    def to_dict(self) -> dict[str, Any]:
        return _wire(self)


@dataclass(frozen=True)
class DnsSettings:
    name: str
    record_type: str = field(default="A", metadata={"wire": "type"})
    port: int = 53
    server: str = ""
    timeout: int = 5
    protocol: str = "udp"

    def to_dict(self) -> dict[str, Any]:
        return _wire(self)


@dataclass(frozen=True)
class PingSettings:
    hostname: str
    timeout: int = 5

    def to_dict(self) -> dict[str, Any]:
        return _wire(self)


CheckSettings = Union[
    HttpSettings,
    HttpsSettings,
    StaticSettings,
    ClinkSettings,
    CdnIntegritySettings,
    TcpSettings,
    DnsSettings,
    PingSettings,
]

SETTINGS_BY_TYPE: dict[CheckType, type] = {
    CheckType.HTTP: HttpSettings,
    CheckType.HTTPS: HttpsSettings,
    CheckType.STATIC: StaticSettings,
    CheckType.CLINK: ClinkSettings,
    CheckType.CDN_INTEGRITY: CdnIntegritySettings,
    CheckType.TCP: TcpSettings,
    CheckType.DNS: DnsSettings,
    CheckType.PING: PingSettings,
}


# ── Routing / health ──────────────────────────────────────────────

@dataclass(frozen=True)
class CheckRoute:
    """Which probe agents execute a check.  Only explicit id lists are emitted."""

    ids: tuple[int, ...] = ()
    type: RouteType = RouteType.BY_IDS

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type.value, "config": {"ids": list(self.ids)}}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CheckRoute:
        config = data.get("config") or {}
        return cls(ids=tuple(int(i) for i in config.get("ids", [])), type=RouteType(data["type"]))


@dataclass(frozen=True)
class CheckHealthSettings:
    num_probes: int = 1
    steps: int = 1

    def to_dict(self) -> dict[str, Any]:
        return {"num_probes": self.num_probes, "steps": self.steps}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CheckHealthSettings:
        return cls(num_probes=int(data["num_probes"]), steps=int(data["steps"]))


# ── Checks / endpoints ────────────────────────────────────────────

@dataclass
class Check:
    type: CheckType
    frequency: int
    settings: CheckSettings
    enabled: bool
    route: CheckRoute | None = None
    health_settings: CheckHealthSettings | None = None
    id: int | None = None

    def __post_init__(self) -> None:
        self.type = CheckType(self.type)
        expected = SETTINGS_BY_TYPE[self.type]
        if type(self.settings) is not expected:
            raise ValueError(
                f"{self.type.value} check requires {expected.__name__}, "
                f"got {type(self.settings).__name__}"
            )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "type": self.type.value,
            "frequency": self.frequency,
            "settings": self.settings.to_dict(),
            "enabled": self.enabled,
            "route": self.route.to_dict() if self.route else None,
            "healthSettings": self.health_settings.to_dict() if self.health_settings else None,
        }
        if self.id is not None:
            data["id"] = self.id
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Check:
        check_type = CheckType(data["type"])
        route = data.get("route")
        health = data.get("healthSettings")
        return cls(
            type=check_type,
            frequency=int(data["frequency"]),
            settings=_unwire(SETTINGS_BY_TYPE[check_type], data.get("settings") or {}),
            enabled=bool(data.get("enabled", False)),
            route=CheckRoute.from_dict(route) if route else None,
            health_settings=CheckHealthSettings.from_dict(health) if health else None,
            id=data.get("id"),
        )


@dataclass
class EndpointDTO:
    name: str
    checks: list[Check] = field(default_factory=list)
    id: int | None = None
    org_id: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "checks": [c.to_dict() for c in self.checks],
        }
        if self.id is not None:
            data["id"] = self.id
        if self.org_id is not None:
            data["orgId"] = self.org_id
        return data


@dataclass(frozen=True)
class DefaultProbeSet:
    """Probe ids resolved once at start-up; read-only afterwards."""

    ids: tuple[int, ...] = ()

    def route(self) -> CheckRoute:
        return CheckRoute(ids=self.ids)
