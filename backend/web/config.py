"""
Configuration and startup security checks for the ordering web app.

Why: Position writes go straight to the catalogue tables. This module refuses
to boot a production process whose configuration would silently lose writes
(in-memory store), skip TLS, or trust identity headers it cannot verify.

Permissions: The caller needs no special privileges. The function reads
environment variables and raises `SystemExit` on fatal misconfiguration.
"""
from __future__ import annotations

from backend.ordering.config import is_prod_like, load_ordering_config


def ensure_secure_config_on_startup() -> None:
    """Fail fast on insecure production configuration.

    Checks (prod/staging only; development remains permissive):
    - The ordering backend must be `db`; the in-memory store forgets writes.
    - The DSN must not explicitly disable TLS.
    - Identity comes from the fronting proxy, so ORDERING_TRUST_PROXY_HEADERS
      must be enabled; otherwise every request is anonymous.
    """
    if not is_prod_like():
        return

    try:
        cfg = load_ordering_config()
    except ValueError as exc:
        raise SystemExit(f"Refusing to start: {exc}")

    if cfg.backend != "db":
        raise SystemExit("Refusing to start: ORDERING_BACKEND=memory is not allowed in production/staging.")

    if cfg.dsn and "sslmode=disable" in cfg.dsn:
        raise SystemExit(
            "Refusing to start: database DSN contains sslmode=disable in production. Use sslmode=require or verify TLS."
        )

    if not cfg.trust_proxy_headers:
        raise SystemExit(
            "Refusing to start: ORDERING_TRUST_PROXY_HEADERS must be true in production/staging "
            "(identity is injected by the authenticating proxy)."
        )
