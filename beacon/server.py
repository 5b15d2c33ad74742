"""Beacon — standalone API server.

Exposes:
  /api/v2/endpoints...  — see :mod:`beacon.api`
  GET  /health          — liveness check

Start with::

    python -m beacon.server
    # or
    uvicorn beacon.server:app --host 0.0.0.0 --port 6060
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI

from beacon import __version__
from beacon.api import router
from beacon.db import get_db, init_db
from beacon.discovery import EndpointDiscovery, resolve_default_probes
from beacon.store import EndpointStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Default probes are resolved exactly once; a storage failure aborts start-up.
    init_db()
    probe_set = resolve_default_probes(EndpointStore(get_db()))
    app.state.probe_set = probe_set
    app.state.discovery = EndpointDiscovery(probe_set)
    logger.info("Endpoint discovery ready with default probes %s", list(probe_set.ids))
    yield


app = FastAPI(title="Beacon", version=__version__, lifespan=lifespan)
app.include_router(router)


@app.get("/health")
async def health():
    return {"status": "ok", "default_probes": len(app.state.probe_set.ids)}


# ──────────────────────────────────────────────────────────────────
# Entry point
# ──────────────────────────────────────────────────────────────────

def main():
    import uvicorn
    host = os.environ.get("BEACON_HOST", "0.0.0.0")
    port = int(os.environ.get("BEACON_PORT", "6060"))
    logging.basicConfig(level=logging.INFO)
    logger.info("Starting Beacon server on %s:%d", host, port)
    uvicorn.run("beacon.server:app", host=host, port=port, reload=False)


if __name__ == "__main__":
    main()
