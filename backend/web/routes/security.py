"""
Shared web security helpers for the reorder routes.

Drag-and-drop reorders are browser writes; these helpers reject cross-site
requests using the Origin/Referer headers before any position changes.
"""
from __future__ import annotations

import os
from typing import Tuple
from urllib.parse import urlparse

from fastapi import Request
from fastapi.responses import JSONResponse

from backend.ordering.config import is_prod_like


def _default_port(scheme: str) -> int:
    return 443 if scheme == "https" else 80


def _parse_origin(url: str) -> Tuple[str, str, int]:
    p = urlparse(url)
    if not p.scheme or not p.hostname:
        raise ValueError("invalid_origin")
    scheme = p.scheme.lower()
    port = p.port if p.port is not None else _default_port(scheme)
    return scheme, p.hostname.lower(), int(port)


def _parse_server(request: Request) -> Tuple[str, str, int]:
    """Origin of this server; X-Forwarded-* only when CLASSROOM_TRUST_PROXY=true."""
    trust_proxy = (os.getenv("CLASSROOM_TRUST_PROXY", "false") or "").lower() == "true"
    if trust_proxy:
        proto = (request.headers.get("x-forwarded-proto") or "").split(",")[0].strip()
        host = (request.headers.get("x-forwarded-host") or request.headers.get("host") or "").split(",")[0].strip()
        scheme = (proto or request.url.scheme or "http").lower()
        if host:
            parsed = urlparse(f"{scheme}://{host}")
            port = parsed.port if parsed.port is not None else _default_port(scheme)
            return scheme, (parsed.hostname or "").lower(), int(port)
    scheme = (request.url.scheme or "http").lower()
    host = (request.url.hostname or "").lower()
    port = int(request.url.port) if request.url.port else _default_port(scheme)
    return scheme, host, port


def _is_same_origin(request: Request) -> bool:
    """Verify same-origin using Origin or Referer headers.

    Behavior:
    - If Origin is present, require exact scheme/host/port match with server.
    - Else if Referer is present, validate its origin similarly.
    - Else (no headers): allow to not break non-browser clients.
    """
    try:
        server = _parse_server(request)
        origin_val = request.headers.get("origin")
        if origin_val:
            return _parse_origin(origin_val) == server
        referer_val = request.headers.get("referer")
        if referer_val:
            return _parse_origin(referer_val) == server
        return True
    except ValueError:
        return False


def _private_error(payload: dict, *, status_code: int) -> JSONResponse:
    return JSONResponse(content=payload, status_code=status_code, headers={"Cache-Control": "private, no-store"})


def _csrf_guard(request: Request) -> JSONResponse | None:
    """Enforce same-origin for browser write requests.

    In prod-like environments (or with STRICT_CSRF_ORDERING=true) an Origin or
    Referer header is mandatory; elsewhere requests without them pass.
    """
    strict_toggle = (os.getenv("STRICT_CSRF_ORDERING", "false") or "").lower() == "true"
    if is_prod_like() or strict_toggle:
        origin_present = request.headers.get("origin") or request.headers.get("referer")
        if not origin_present or not _is_same_origin(request):
            return _private_error({"error": "forbidden", "detail": "csrf_violation"}, status_code=403)
        return None
    if not _is_same_origin(request):
        return _private_error({"error": "forbidden", "detail": "csrf_violation"}, status_code=403)
    return None
