"""Caller identity for the HTTP endpoints.

The bearer token is taken as the caller's opaque identity; establishing
that identity (sign-in, delegation) happens upstream.

Behavior matrix:
  token present                        → caller = token
  token missing + DEBUG + DEV_CALLER   → caller = DEV_CALLER (local dev convenience)
  token missing otherwise              → 401 Unauthorized
"""

from __future__ import annotations

import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from availability.config import settings

log = logging.getLogger("availability.auth")

_bearer_scheme = HTTPBearer(auto_error=False)


async def require_caller(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
) -> str:
    """FastAPI dependency — the caller's identity from the bearer token."""
    token = credentials.credentials.strip() if credentials is not None else ""
    if token:
        return token

    if settings.debug and settings.dev_caller:
        return settings.dev_caller

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Missing bearer token.",
        headers={"WWW-Authenticate": "Bearer"},
    )
