"""Static check templates for a hostname — no network access.

Two variants:

* :func:`generate_defaults` — seven checks, no route or health settings;
  only http and https start enabled.  Returned by the API alongside endpoint
  creation.
* :func:`generate_routed_defaults` — eight checks (adds tcp), routed to the
  default probe set with ``{1, 1}`` health settings; static content is
  enabled as well.
"""

from __future__ import annotations

from dataclasses import replace

from beacon.discovery.endpoint import Normalizer, normalize
from beacon.models import (
    CdnIntegritySettings,
    Check,
    CheckHealthSettings,
    CheckType,
    ClinkSettings,
    DefaultProbeSet,
    DnsSettings,
    EndpointDTO,
    HttpSettings,
    HttpsSettings,
    PingSettings,
    StaticSettings,
    TcpSettings,
)

TEMPLATE_HEADERS = "User-Agent: Mozilla/5.0\nAccept-Encoding: gzip\n"


def _templates(
    hostname: str,
    normalizer: Normalizer,
    static_enabled: bool,
    with_tcp: bool,
) -> list[Check]:
    endpoint = normalizer(hostname)
    host = hostname
    path = "/"
    if endpoint.url is not None:
        host = str(endpoint.url)
        path = endpoint.url.path

    checks = [
        Check(
            type=CheckType.HTTP,
            frequency=60,
            settings=HttpSettings(
                host=host, port=80, path=path, method="GET",
                headers=TEMPLATE_HEADERS, timeout=5, getall=True,
            ),
            enabled=True,
        ),
        Check(
            type=CheckType.HTTPS,
            frequency=60,
            settings=HttpsSettings(
                host=host, port=443, path=path, method="GET",
                headers=TEMPLATE_HEADERS, timeout=5, getall=True,
            ),
            enabled=True,
        ),
        Check(
            type=CheckType.STATIC,
            frequency=60,
            settings=StaticSettings(host=host, headers=TEMPLATE_HEADERS),
            enabled=static_enabled,
        ),
        Check(
            type=CheckType.CLINK,
            frequency=1800,
            settings=ClinkSettings(host=host, headers=TEMPLATE_HEADERS),
            enabled=False,
        ),
    ]
    if with_tcp:
        checks.append(
            Check(type=CheckType.TCP, frequency=1800, settings=TcpSettings(host=host), enabled=False)
        )
    checks += [
        Check(
            type=CheckType.CDN_INTEGRITY,
            frequency=1800,
            settings=CdnIntegritySettings(host=host, headers=TEMPLATE_HEADERS),
            enabled=False,
        ),
        # name/type/server are left for the user to fill in
        Check(
            type=CheckType.DNS,
            frequency=60,
            settings=DnsSettings(name="", record_type="", port=53, server="", timeout=5),
            enabled=False,
        ),
        Check(
            type=CheckType.PING,
            frequency=10,
            settings=PingSettings(hostname=host, timeout=5),
            enabled=False,
        ),
    ]
    return checks


def generate_defaults(hostname: str, normalizer: Normalizer = normalize) -> EndpointDTO:
    """Return the unrouted template set for *hostname*."""
    checks = _templates(hostname, normalizer, static_enabled=False, with_tcp=False)
    return EndpointDTO(name=hostname, checks=checks)


def generate_routed_defaults(
    hostname: str,
    probe_set: DefaultProbeSet,
    normalizer: Normalizer = normalize,
) -> EndpointDTO:
    """Return the template set for *hostname* routed to *probe_set*."""
    route = probe_set.route()
    checks = [
        replace(c, route=route, health_settings=CheckHealthSettings(num_probes=1, steps=1))
        for c in _templates(hostname, normalizer, static_enabled=True, with_tcp=True)
    ]
    return EndpointDTO(name=hostname, checks=checks)
