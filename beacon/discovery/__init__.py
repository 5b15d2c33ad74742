"""beacon.discovery — endpoint discovery engine.

Exports:
    EndpointDiscovery        — concurrent live protocol discovery
    generate_defaults        — static, unrouted check templates
    generate_routed_defaults — static templates routed to the default probes
    resolve_default_probes   — one-shot start-up resolution of probe names
    Endpoint / normalize / parse_endpoint — hostname normalisation
"""

from __future__ import annotations

from beacon.discovery.defaults import generate_defaults, generate_routed_defaults
from beacon.discovery.endpoint import (
    Endpoint,
    InvalidEndpointError,
    normalize,
    parse_endpoint,
)
from beacon.discovery.probe_set import resolve_default_probes
from beacon.discovery.probes import ProbeError, ProbeSet
from beacon.discovery.scanner import EndpointDiscovery

__all__ = [
    "Endpoint",
    "EndpointDiscovery",
    "InvalidEndpointError",
    "ProbeError",
    "ProbeSet",
    "generate_defaults",
    "generate_routed_defaults",
    "normalize",
    "parse_endpoint",
    "resolve_default_probes",
]
