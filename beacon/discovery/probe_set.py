"""Default probe set — the probe agents every discovered check is routed to."""

from __future__ import annotations

import logging
import os

from beacon.models import DefaultProbeSet
from beacon.store import EndpointStore, ProbeNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_PROBE_NAMES: list[str] = [
    name.strip()
    for name in os.environ.get(
        "BEACON_DEFAULT_PROBES", "VNPT_HN,VNPT,FPT,VIETTEL,THANHPV,THANHPVWINDOW"
    ).split(",")
    if name.strip()
]
PROBE_ORG_ID = int(os.environ.get("BEACON_PROBE_ORG_ID", "1"))


def resolve_default_probes(
    store: EndpointStore,
    names: list[str] | None = None,
    org_id: int | None = None,
) -> DefaultProbeSet:
    """Look up each default probe name and return the ids that exist.

    Missing names are logged and skipped, so the set may be partial or empty.
    Any other storage error propagates.
    """
    if names is None:
        names = DEFAULT_PROBE_NAMES
    if org_id is None:
        org_id = PROBE_ORG_ID

    ids: list[int] = []
    for name in names:
        try:
            probe = store.get_probe_by_name(name, org_id)
        except ProbeNotFoundError:
            logger.warning("Default probe %s not found", name)
            continue
        ids.append(int(probe["id"]))

    logger.info("Resolved %d/%d default probe(s)", len(ids), len(names))
    return DefaultProbeSet(ids=tuple(ids))
