"""Endpoint API router for Beacon.

Endpoint CRUD plus the two check-proposal routes:

  POST /api/v2/endpoints/discover  — live protocol discovery (not saved)
  POST /api/v2/endpoints/defaults  — static check templates (not saved)

All routes are scoped to the caller's organisation (see :mod:`beacon.auth`).
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel, Field

from beacon.auth import require_org
from beacon.db import get_db, init_db
from beacon.discovery import EndpointDiscovery, InvalidEndpointError, generate_defaults
from beacon.models import Check, CheckType, EndpointDTO
from beacon.store import EndpointNotFoundError, EndpointStore, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v2", tags=["endpoints"])


# ── Dependencies ──────────────────────────────────────────────────

def get_store() -> EndpointStore:
    init_db()
    return EndpointStore(get_db())


def get_discovery(request: Request) -> EndpointDiscovery:
    return request.app.state.discovery


# ── Request models ────────────────────────────────────────────────

class CheckIn(BaseModel):
    type: CheckType
    frequency: int
    settings: dict[str, Any] = Field(default_factory=dict)
    enabled: bool = True
    route: dict[str, Any] | None = None
    healthSettings: dict[str, Any] | None = None


class EndpointIn(BaseModel):
    id: int | None = None
    name: str = ""
    checks: list[CheckIn] = Field(default_factory=list)


class DiscoverRequest(BaseModel):
    name: str


def _to_dto(body: EndpointIn) -> EndpointDTO:
    if not body.name:
        raise HTTPException(status_code=400, detail="Endpoint name not set.")
    try:
        checks = [Check.from_dict(c.model_dump(mode="json")) for c in body.checks]
    except (KeyError, TypeError, ValueError) as exc:
        raise HTTPException(status_code=400, detail=f"Invalid check: {exc}") from exc
    return EndpointDTO(name=body.name, checks=checks, id=body.id)


# ══════════════════════════════════════════════════════════════════
# ENDPOINTS
# ══════════════════════════════════════════════════════════════════

@router.get("/endpoints")
async def list_endpoints(
    name: str | None = None,
    limit: int = Query(50, ge=1, le=500),
    page: int = Query(1, ge=1),
    org_id: int = Depends(require_org),
    store: EndpointStore = Depends(get_store),
):
    endpoints = store.list_endpoints(org_id, name=name, limit=limit, page=page)
    return {"endpoints": [e.to_dict() for e in endpoints]}


@router.get("/endpoints/{endpoint_id}")
async def get_endpoint(
    endpoint_id: int,
    org_id: int = Depends(require_org),
    store: EndpointStore = Depends(get_store),
):
    try:
        endpoint = store.get_endpoint_by_id(org_id, endpoint_id)
    except EndpointNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return {"endpoint": endpoint.to_dict()}


@router.post("/endpoints")
async def add_endpoint(
    body: EndpointIn,
    org_id: int = Depends(require_org),
    store: EndpointStore = Depends(get_store),
):
    endpoint = _to_dto(body)
    try:
        for check in endpoint.checks:
            store.validate_check_route(check, org_id)
        saved = store.add_endpoint(org_id, endpoint)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"endpoint": saved.to_dict()}


@router.put("/endpoints")
async def update_endpoint(
    body: EndpointIn,
    org_id: int = Depends(require_org),
    store: EndpointStore = Depends(get_store),
):
    endpoint = _to_dto(body)
    if endpoint.id is None:
        raise HTTPException(status_code=400, detail="Endpoint id not set.")
    try:
        for check in endpoint.checks:
            store.validate_check_route(check, org_id)
        saved = store.update_endpoint(org_id, endpoint)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except EndpointNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return {"endpoint": saved.to_dict()}


@router.delete("/endpoints/{endpoint_id}")
async def delete_endpoint(
    endpoint_id: int,
    org_id: int = Depends(require_org),
    store: EndpointStore = Depends(get_store),
):
    try:
        store.delete_endpoint(org_id, endpoint_id)
    except EndpointNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return {"ok": True}


# ══════════════════════════════════════════════════════════════════
# DISCOVERY
# ══════════════════════════════════════════════════════════════════

@router.post("/endpoints/discover")
async def discover_endpoint(
    req: DiscoverRequest,
    _: int = Depends(require_org),
    discovery: EndpointDiscovery = Depends(get_discovery),
):
    logger.debug("Discover endpoint checks of: %s", req.name)
    if not req.name:
        raise HTTPException(status_code=400, detail="Endpoint name not set.")
    try:
        endpoint = await discovery.discover(req.name)
    except InvalidEndpointError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"endpoint": endpoint.to_dict()}


@router.post("/endpoints/defaults")
async def default_endpoint_checks(req: DiscoverRequest, _: int = Depends(require_org)):
    if not req.name:
        raise HTTPException(status_code=400, detail="Endpoint name not set.")
    return {"endpoint": generate_defaults(req.name).to_dict()}
