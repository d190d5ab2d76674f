"""
Ordering configuration parsed from environment variables.

Intent:
    One place that decides which store backs the reorder API, which DSN it
    uses and how far the bump phase moves rows. Tests exercise the parsing
    without booting the web app.
"""
from __future__ import annotations

from dataclasses import dataclass
import os
from typing import Optional

_BACKENDS = {"db", "memory"}


@dataclass(frozen=True)
class OrderingConfig:
    backend: str  # "db" | "memory"
    dsn: Optional[str]
    bump_floor: int
    trust_proxy_headers: bool
    environment: str


def is_prod_like(env: Optional[str] = None) -> bool:
    env_l = (env if env is not None else os.getenv("CLASSROOM_ENV", "dev")).strip().lower()
    return env_l in {"prod", "production", "stage", "staging"}


def _bool_env(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes"}


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got: {raw!r}")
    if value < 1:
        raise ValueError(f"{name} must be >= 1, got: {value}")
    return value


def resolve_dsn() -> Optional[str]:
    """First configured DSN: ORDERING_DATABASE_URL, then DATABASE_URL."""
    for name in ("ORDERING_DATABASE_URL", "DATABASE_URL"):
        value = (os.getenv(name) or "").strip()
        if value:
            return value
    return None


def load_ordering_config() -> OrderingConfig:
    """
    Parse and validate ordering configuration.

    Behavior:
        - `ORDERING_BACKEND` defaults to `db` when a DSN is configured,
          otherwise `memory`.
        - `db` without any DSN is a configuration error.
        - `ORDERING_BUMP_FLOOR` must be a positive integer (default 1000).
    """
    env = (os.getenv("CLASSROOM_ENV") or "dev").strip().lower()
    dsn = resolve_dsn()
    backend = (os.getenv("ORDERING_BACKEND") or ("db" if dsn else "memory")).strip().lower()
    if backend not in _BACKENDS:
        raise ValueError("ORDERING_BACKEND must be 'db' or 'memory'")
    if backend == "db" and not dsn:
        raise ValueError("ORDERING_BACKEND=db requires ORDERING_DATABASE_URL or DATABASE_URL")
    return OrderingConfig(
        backend=backend,
        dsn=dsn,
        bump_floor=_int_env("ORDERING_BUMP_FLOOR", 1000),
        trust_proxy_headers=_bool_env("ORDERING_TRUST_PROXY_HEADERS"),
        environment=env,
    )


__all__ = ["OrderingConfig", "is_prod_like", "resolve_dsn", "load_ordering_config"]
