"""Endpoint discovery for Beacon.

Probes a hostname over four protocols concurrently and turns every protocol
that answered into a schedulable check:

  - ping   — ICMP echo via the system ``ping`` binary
  - http   — HEAD over plaintext, rejected if it redirects off ``http``
  - https  — HEAD over TLS, certificate validation enabled
  - dns    — authoritative name servers, walking up the domain

A probe that fails is left out of the result; it never fails the request.
An endpoint that answers on nothing yields an empty check list.
"""

from __future__ import annotations

import asyncio
import logging

from beacon.discovery.endpoint import Endpoint, Normalizer, normalize, resolve_endpoint
from beacon.discovery.probes import Probe, ProbeError, ProbeSet
from beacon.models import Check, CheckHealthSettings, DefaultProbeSet, EndpointDTO

logger = logging.getLogger(__name__)


class EndpointDiscovery:
    """Concurrent protocol discovery for a single hostname.

    Args:
        probe_set:  Default probe agents; every discovered check is routed to
                    them.  Resolved once at start-up and never mutated.
        probes:     Protocol probes to run (override in tests).
        normalizer: Turns the raw hostname into an :class:`Endpoint`.
        preflight:  Resolve the host (with ``www.`` fallback) before probing.
    """

    def __init__(
        self,
        probe_set: DefaultProbeSet,
        probes: ProbeSet | None = None,
        normalizer: Normalizer = normalize,
        preflight: bool = False,
    ) -> None:
        self.probe_set = probe_set
        self.probes = probes or ProbeSet()
        self._normalize = normalizer
        self._preflight = preflight

    # ------------------------------------------------------------------ #
    # Public API                                                           #
    # ------------------------------------------------------------------ #

    async def discover(self, hostname: str) -> EndpointDTO:
        """Probe *hostname* and return the checks that are viable.

        Checks appear in the order their probes finished; callers must not
        rely on protocol ordering.

        Raises:
            InvalidEndpointError: if the hostname cannot be normalised.
        """
        endpoint = self._normalize(hostname)
        if self._preflight:
            endpoint = await resolve_endpoint(endpoint)

        targets: dict[str, Probe] = {
            "ping": self.probes.ping,
            "http": self.probes.http,
            "https": self.probes.https,
        }
        # an NS walk on an IP literal means nothing
        if not endpoint.is_ip:
            targets["dns"] = self.probes.dns

        tasks = [
            asyncio.ensure_future(self._run_probe(name, probe, endpoint))
            for name, probe in targets.items()
        ]

        route = self.probe_set.route()
        checks: list[Check] = []
        for next_done in asyncio.as_completed(tasks):
            check = await next_done
            if check is None:
                continue
            check.health_settings = CheckHealthSettings(num_probes=1, steps=1)
            check.route = route
            checks.append(check)

        logger.info(
            "discovery of %s complete — %d check(s): %s",
            hostname, len(checks), ", ".join(c.type.value for c in checks) or "none",
        )
        return EndpointDTO(name=endpoint.host, checks=checks)

    # ------------------------------------------------------------------ #
    # Internal helpers                                                     #
    # ------------------------------------------------------------------ #

    async def _run_probe(self, name: str, probe: Probe, endpoint: Endpoint) -> Check | None:
        try:
            check = await probe(endpoint)
        except ProbeError as exc:
            logger.debug("%s not viable for %s: %s", name, endpoint.host, exc)
            return None
        except Exception:
            logger.exception("%s probe crashed for %s", name, endpoint.host)
            return None
        logger.debug("discovered %s for %s", name, endpoint.host)
        return check
