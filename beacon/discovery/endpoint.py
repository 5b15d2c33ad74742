"""Endpoint normalisation — turns a raw hostname into an :class:`Endpoint`.

Two normalisers share the :data:`Normalizer` signature:

* :func:`normalize` — the active one.  Passes the input through verbatim, so
  probes must cope with a host that still carries a scheme or port.
* :func:`parse_endpoint` — scheme / IP-literal / ``ip:port`` detection.
  Not wired in by default.

:func:`resolve_endpoint` is an optional DNS pre-flight with a ``www.``
fallback, also off by default.
"""

from __future__ import annotations

import ipaddress
import logging
from dataclasses import dataclass, replace
from typing import Callable

import dns.asyncresolver
import dns.exception
import httpx

logger = logging.getLogger(__name__)


class InvalidEndpointError(Exception):
    """The hostname could not be turned into a probe-able endpoint."""


@dataclass(frozen=True)
class Endpoint:
    host: str
    is_ip: bool = False
    url: httpx.URL | None = None
    port: int | None = None


Normalizer = Callable[[str], Endpoint]


def normalize(raw: str) -> Endpoint:
    return Endpoint(host=raw)


def _is_ip(value: str) -> bool:
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return False
    return True


def parse_endpoint(raw: str) -> Endpoint:
    """Parse *raw* as ``scheme://host[:port]/path``, an IP literal, ``ip:port`` or a bare host.

    Raises:
        InvalidEndpointError: if *raw* looks like a URL but cannot be parsed.
    """
    host = raw.strip()
    url: httpx.URL | None = None
    if "://" in host:
        try:
            url = httpx.URL(host)
        except httpx.InvalidURL as exc:
            raise InvalidEndpointError(f"Cannot parse endpoint URL {raw!r}: {exc}") from exc
        if not url.host:
            raise InvalidEndpointError(f"Endpoint URL {raw!r} has no host")
        host = url.host
    host = host.lower()

    if _is_ip(host):
        return Endpoint(host=host, is_ip=True, url=url)

    # tcp-style target: "<ip>:<port>"
    if url is None and host.count(":") == 1:
        ip, _, port = host.partition(":")
        if port.isdigit() and _is_ip(ip):
            return Endpoint(host=ip, is_ip=True, port=int(port))

    return Endpoint(host=host, url=url)


async def resolve_endpoint(endpoint: Endpoint, timeout: float = 5.0) -> Endpoint:
    """Confirm *endpoint* resolves, retrying on ``www.<host>`` if it does not."""
    if endpoint.is_ip:
        return endpoint
    resolver = dns.asyncresolver.Resolver()
    for candidate in (endpoint.host, f"www.{endpoint.host}"):
        try:
            answer = await resolver.resolve(candidate, "A", lifetime=timeout)
        except dns.exception.DNSException as exc:
            logger.debug("pre-flight lookup of %s failed: %s", candidate, exc)
            continue
        if len(answer) > 0:
            return replace(endpoint, host=candidate)
    raise InvalidEndpointError(f"failed to lookup IP of domain {endpoint.host}")
