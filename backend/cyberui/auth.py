"""API key authentication for /api/v1.

The key is sent in the X-API-Key header. An empty ``server.api_key`` turns
authentication off entirely.
"""
from __future__ import annotations

import secrets

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import APIKeyHeader

from cyberui.config import Settings, get_settings
from cyberui.services.access_log import log_access

API_KEY_HEADER = "X-API-Key"

_api_key_header = APIKeyHeader(name=API_KEY_HEADER, auto_error=False)


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else ""


async def verify_api_key(
    request: Request,
    settings: Settings = Depends(get_settings),
    provided: str | None = Depends(_api_key_header),
) -> None:
    expected = settings.server.api_key
    if not expected:
        return

    if not provided:
        log_access(
            action="api", path=request.url.path, client_ip=_client_ip(request),
            result="denied", detail="missing_key",
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="API key is required",
        )

    if not secrets.compare_digest(provided, expected):
        log_access(
            action="api", path=request.url.path, client_ip=_client_ip(request),
            result="denied", detail="invalid_key",
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
        )
