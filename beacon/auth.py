"""Caller context for the Beacon API.

Requests carry an HS256 bearer token whose ``org_id`` claim scopes every
storage call.  Token issuing lives elsewhere; :func:`create_token` exists for
tooling and tests.
"""

from __future__ import annotations

import os
import time

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

# ── Configuration ─────────────────────────────────────────────────
JWT_SECRET = os.environ.get("BEACON_JWT_SECRET", "beacon-change-me")
JWT_ALGORITHM = "HS256"
JWT_EXPIRY_SECONDS = int(os.environ.get("BEACON_JWT_EXPIRY", "86400"))  # 24h

_bearer = HTTPBearer(auto_error=False)


# ── JWT helpers ───────────────────────────────────────────────────

def create_token(org_id: int) -> str:
    exp = int(time.time()) + JWT_EXPIRY_SECONDS
    return jwt.encode({"org_id": org_id, "exp": exp}, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")


# ── FastAPI dependency ────────────────────────────────────────────

async def require_org(
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> int:
    """Dependency that returns the caller's organisation id."""
    if creds is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    payload = decode_token(creds.credentials)
    org_id = payload.get("org_id")
    if not isinstance(org_id, int):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token has no organisation")
    return org_id
