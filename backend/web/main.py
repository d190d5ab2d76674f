"Classroom ordering API"
from __future__ import annotations

import logging
import os

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from backend.ordering.config import load_ordering_config
from backend.web import config as _cfg
from backend.web.routes.ordering import StoreUnavailable, _get_store, ordering_router


def _should_load_dotenv() -> bool:
    """Decide if we should load a local .env file.

    - Never load under pytest to avoid contaminating test env.
    - Allow explicit opt-out via CLASSROOM_ENABLE_DOTENV (default true
      outside pytest).
    """
    import sys
    if "pytest" in sys.modules or os.getenv("PYTEST_CURRENT_TEST"):
        return False
    flag = (os.getenv("CLASSROOM_ENABLE_DOTENV", "true") or "").strip().lower()
    return flag in ("1", "true", "yes")


try:
    from dotenv import load_dotenv
    if _should_load_dotenv():
        load_dotenv()
except ImportError:
    pass

# Minimal production safety checks (fail-fast on insecure config)
_cfg.ensure_secure_config_on_startup()

logger = logging.getLogger("classroom.web")

app = FastAPI(title="Classroom ordering", description="Position reconciliation for ordered catalogue lists", version="0.1.0")


def _is_public_path(path: str) -> bool:
    return path in ("/health", "/favicon.ico")


def _parse_roles(raw: str) -> list[str]:
    return [r.strip().lower() for r in (raw or "").split(",") if r.strip()]


@app.middleware("http")
async def proxy_identity(request: Request, call_next):
    """Expose the proxy-authenticated caller as `request.state.user`.

    Identity headers are honoured only when ORDERING_TRUST_PROXY_HEADERS=true;
    otherwise API requests are rejected as unauthenticated.
    """
    path = request.url.path
    if _is_public_path(path):
        return await call_next(request)

    user = None
    sub = (request.headers.get("x-forwarded-user") or "").strip()
    if sub and load_ordering_config().trust_proxy_headers:
        user = {"sub": sub, "roles": _parse_roles(request.headers.get("x-forwarded-roles", ""))}
    elif sub:
        logger.debug("ignoring X-Forwarded-User on %s (ORDERING_TRUST_PROXY_HEADERS disabled)", path)

    if user is None and path.startswith("/api/"):
        return JSONResponse({"error": "unauthenticated"}, status_code=401, headers={"Cache-Control": "private, no-store"})
    request.state.user = user
    return await call_next(request)


@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "DENY")
    response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
    return response


@app.get("/health")
async def health():
    try:
        store = _get_store()
    except StoreUnavailable as exc:
        return JSONResponse({"status": "unhealthy", "detail": str(exc)}, status_code=503)
    return {"status": "healthy", "store": type(store).__name__}


app.include_router(ordering_router)
