"""Protocol probes used by endpoint discovery.

Each probe takes an :class:`~beacon.discovery.endpoint.Endpoint` and either
returns a :class:`~beacon.models.Check` describing a viable check or raises
:class:`ProbeError`.  A ``ProbeError`` means "leave this protocol out"; it is
never reported to the caller.  Probes do not retry.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

import dns.asyncresolver
import dns.exception
import httpx

from beacon.discovery.endpoint import Endpoint
from beacon.models import (
    Check,
    CheckType,
    DnsSettings,
    HttpSettings,
    HttpsSettings,
    PingSettings,
)

logger = logging.getLogger(__name__)

USER_AGENT = "beacon-api"
CHECK_HEADERS = f"User-Agent: {USER_AGENT}\nAccept-Encoding: gzip\n"

PING_COUNT = 3
PING_WAIT = 1  # seconds per echo
PING_DEADLINE = PING_COUNT * PING_WAIT + 0.5
HTTP_TIMEOUT = 5.0
DNS_TIMEOUT = 5.0
DNS_FALLBACK_SERVER = "8.8.8.8"


class ProbeError(Exception):
    """The protocol is not viable for this endpoint."""


Probe = Callable[[Endpoint], Awaitable[Check]]


# ── Reachability ──────────────────────────────────────────────────

async def probe_ping(endpoint: Endpoint) -> Check:
    """Send ``PING_COUNT`` ICMP echoes; any reply makes the host reachable.

    ``ping`` exits 0 when at least one echo was answered.  The process is
    killed if it outlives ``PING_DEADLINE`` (slow name resolution included).
    """
    try:
        proc = await asyncio.create_subprocess_exec(
            "ping", "-c", str(PING_COUNT), "-W", str(PING_WAIT), "-q", endpoint.host,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
        returncode = await asyncio.wait_for(proc.wait(), timeout=PING_DEADLINE)
    except OSError as exc:
        raise ProbeError("host unreachable") from exc
    except asyncio.TimeoutError as exc:
        try:
            proc.kill()
        except ProcessLookupError:
            pass
        await proc.wait()
        raise ProbeError("host unreachable") from exc
    if returncode != 0:
        raise ProbeError("host unreachable")

    return Check(
        type=CheckType.PING,
        frequency=60,
        settings=PingSettings(hostname=endpoint.host, timeout=5),
        enabled=True,
    )


# ── HTTP / HTTPS ──────────────────────────────────────────────────

def _target(endpoint: Endpoint, scheme: str) -> tuple[str, str]:
    """Return ``(host, path)`` to request for *scheme*.

    A parsed URL only overrides the host when its scheme matches; its path is
    used either way.
    """
    host = endpoint.host
    path = "/"
    if endpoint.url is not None:
        if endpoint.url.scheme == scheme:
            host = endpoint.url.host
            if endpoint.url.port is not None:
                host = f"{host}:{endpoint.url.port}"
        path = endpoint.url.path or "/"
    return host, path


async def _head(url: str, transport: httpx.AsyncBaseTransport | None) -> httpx.URL:
    """HEAD *url* following redirects; return the final URL."""
    try:
        async with httpx.AsyncClient(
            follow_redirects=True,
            timeout=HTTP_TIMEOUT,
            transport=transport,
        ) as client:
            resp = await client.head(url)
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        raise ProbeError(f"HEAD {url} failed: {exc}") from exc
    return resp.url


async def probe_http(
    endpoint: Endpoint,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Check:
    host, path = _target(endpoint, "http")
    final = await _head(f"http://{host}{path}", transport)
    if final.scheme != "http":
        raise ProbeError("HTTP redirects to HTTPS")

    return Check(
        type=CheckType.HTTP,
        frequency=120,
        settings=HttpSettings(
            host=final.host,
            port=final.port or 80,
            path=final.path,
            method="GET",
            headers=CHECK_HEADERS,
            timeout=5,
        ),
        enabled=True,
    )


async def probe_https(
    endpoint: Endpoint,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Check:
    host, path = _target(endpoint, "https")
    final = await _head(f"https://{host}{path}", transport)

    return Check(
        type=CheckType.HTTPS,
        frequency=120,
        settings=HttpsSettings(
            host=final.host,
            port=final.port or 443,
            path=final.path,
            method="GET",
            headers=CHECK_HEADERS,
            timeout=5,
            validate_cert=True,
        ),
        enabled=True,
    )


# ── DNS authority ─────────────────────────────────────────────────

async def find_nameservers(
    domain: str,
    resolver: dns.asyncresolver.Resolver | None = None,
) -> list[str]:
    """Walk up from *domain* until a zone with NS records is found.

    ``a.b.example.com`` → ``b.example.com`` → ``example.com`` → ``com``; the
    walk ends after querying a single-label name.  Returns ``[]`` if nothing
    answered, including when no resolver can be configured.
    """
    domain = domain.rstrip(".")
    if not domain:
        return []
    try:
        if resolver is None:
            resolver = dns.asyncresolver.Resolver()
    except dns.exception.DNSException as exc:
        logger.warning("no DNS resolver available: %s", exc)
        return []

    while True:
        try:
            answer = await resolver.resolve(domain, "NS", lifetime=DNS_TIMEOUT)
            servers = [str(rr.target).rstrip(".") for rr in answer]
        except dns.exception.DNSException as exc:
            logger.debug("NS lookup for %s failed: %s", domain, exc)
            servers = []
        if servers:
            return servers
        parts = domain.split(".")
        if len(parts) < 2:
            return []
        domain = ".".join(parts[1:])


async def probe_dns(
    endpoint: Endpoint,
    resolver: dns.asyncresolver.Resolver | None = None,
) -> Check:
    """Build a dns check against the host's authoritative servers.

    Never raises: with no authoritative servers the public fallback resolver
    is used, and the check is still emitted enabled.
    """
    server = DNS_FALLBACK_SERVER
    nameservers = await find_nameservers(endpoint.host, resolver)
    if nameservers:
        server = ",".join(nameservers)

    return Check(
        type=CheckType.DNS,
        frequency=120,
        settings=DnsSettings(
            name=endpoint.host,
            record_type="A",
            port=53,
            server=server,
            timeout=5,
            protocol="udp",
        ),
        enabled=True,
    )


@dataclass(frozen=True)
class ProbeSet:
    """The probes the orchestrator fans out to, keyed by protocol."""

    ping: Probe = probe_ping
    http: Probe = probe_http
    https: Probe = probe_https
    dns: Probe = probe_dns
