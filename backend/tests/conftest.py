"""
Pytest configuration for backend tests.

Why: Force AnyIO to use the asyncio backend to avoid sandbox restrictions
that can affect the Trio backend (e.g., socketpair permission errors).
"""
import os
import sys
from pathlib import Path

import pytest

# Load .env only when E2E suite is explicit enabled.
try:
    from dotenv import load_dotenv  # type: ignore
    if os.getenv("RUN_E2E", "0") == "1":
        load_dotenv()
except Exception:
    pass

# Ensure `backend.*` is importable when pytest runs from a subdirectory
REPO_ROOT = Path(__file__).resolve().parents[2]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _clear_ordering_env(monkeypatch: pytest.MonkeyPatch):
    """Clear env-driven toggles so every test starts from dev defaults.

    Why:
        Config, CSRF and proxy-trust decisions read the environment on each
        request. A developer shell with DATABASE_URL or CLASSROOM_ENV=prod
        would otherwise change the outcome of unrelated tests.
    """
    for var in (
        "CLASSROOM_ENV",
        "ORDERING_BACKEND",
        "ORDERING_DATABASE_URL",
        "DATABASE_URL",
        "ORDERING_BUMP_FLOOR",
        "ORDERING_TRUST_PROXY_HEADERS",
        "CLASSROOM_TRUST_PROXY",
        "STRICT_CSRF_ORDERING",
    ):
        monkeypatch.delenv(var, raising=False)
    yield


@pytest.fixture(autouse=True)
def _reset_ordering_store_between_tests():
    """Give each test a fresh in-memory store on the web routes.

    DB-backed tests build their own `DBOrderedItemStore` and skip when
    Postgres is not reachable.
    """
    try:
        from backend.ordering.repo_memory import InMemoryOrderedItemStore
        from backend.web.routes import ordering as ordering_routes
    except Exception:
        yield
        return
    ordering_routes.set_store(InMemoryOrderedItemStore())
    yield
    ordering_routes.set_store(None)
