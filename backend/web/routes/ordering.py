"""
Ordering API routes: bulk reorder and single-step moves for courses,
textbooks, lessons and teachers.

Why:
    Admin list pages reorder rows by drag-and-drop (full id list) or with
    up/down buttons. Each endpoint resolves and authorizes the scope, then
    hands off to `ReorderService`, which keeps `(scope, position)` unique at
    every write.

Notes:
    - Authentication happens upstream; handlers read `request.state.user`.
    - Persistence: Postgres when configured, otherwise the in-memory store.
      Tests call `set_store` to swap the implementation.
    - Error mapping: InvalidInput → 400, forbidden → 403, unknown scope or
      item → 404, ReconcileFailed → 500, a configured but unavailable DB
      store → 503. A failed reorder is never reported as success.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from backend.ordering.config import load_ordering_config
from backend.ordering.domain import COURSES, LESSONS, TEACHERS, TEXTBOOKS, EntityKind
from backend.ordering.errors import InvalidInput, ReconcileFailed
from backend.ordering.policy import normalize_desired_ids
from backend.ordering.repo_memory import InMemoryOrderedItemStore
from backend.ordering.scopes import ScopeResolver
from backend.ordering.service import ReorderService

from .security import _csrf_guard, _private_error

ordering_router = APIRouter(tags=["Ordering"])
logger = logging.getLogger("classroom.web.ordering")


# --- Store wiring -----------------------------------------------------------------

try:  # late import to avoid hard dependency during unit tests
    from backend.ordering.repo_db import DBOrderedItemStore
except Exception as exc:  # pragma: no cover - import failures in dev/test envs
    DBOrderedItemStore = None  # type: ignore
    _DB_STORE_IMPORT_ERROR = exc
else:
    _DB_STORE_IMPORT_ERROR = None


class StoreUnavailable(RuntimeError):
    """The configured Postgres store could not be built."""


def _build_default_store():
    """Postgres store when configured, in-memory store only for `ORDERING_BACKEND=memory`.

    A requested DB store that cannot be built raises `StoreUnavailable`;
    it never degrades to an in-memory store.
    """
    cfg = load_ordering_config()
    if cfg.backend != "db":
        return InMemoryOrderedItemStore()
    if DBOrderedItemStore is None:
        logger.error("Ordering DB store import failed: %s", _DB_STORE_IMPORT_ERROR)
        raise StoreUnavailable(f"ordering DB store import failed: {_DB_STORE_IMPORT_ERROR}")
    try:
        return DBOrderedItemStore(cfg.dsn)
    except Exception as exc:
        logger.error("Ordering DB store unavailable: %s", exc)
        raise StoreUnavailable(f"ordering DB store unavailable: {exc}") from exc


_STORE = None


def _get_store():
    global _STORE
    if _STORE is None:
        _STORE = _build_default_store()
    return _STORE


def _get_service() -> ReorderService:
    return ReorderService(_get_store(), bump_floor=load_ordering_config().bump_floor)


def _get_resolver() -> ScopeResolver:
    return ScopeResolver(_get_store())


def set_store(store) -> None:
    """Allow tests to swap the ordered item store."""
    global _STORE
    _STORE = store


# --- Request models ---------------------------------------------------------------
# Accept loose typing to avoid FastAPI 422 and map contract errors to 400.

class CourseReorderPayload(BaseModel):
    course_ids: object | None = None


class CourseMovePayload(BaseModel):
    course_id: object | None = None
    dir: object | None = None


class TextbookReorderPayload(BaseModel):
    textbook_ids: object | None = None


class TextbookMovePayload(BaseModel):
    textbook_id: object | None = None
    dir: object | None = None


class LessonReorderPayload(BaseModel):
    course_id: object | None = None
    lesson_ids: object | None = None


class LessonMovePayload(BaseModel):
    lesson_id: object | None = None
    dir: object | None = None


class TeacherReorderPayload(BaseModel):
    teacher_ids: object | None = None


class TeacherMovePayload(BaseModel):
    teacher_id: object | None = None
    dir: object | None = None


# --- Helpers ----------------------------------------------------------------------

def _json_private(payload, *, status_code: int = 200) -> JSONResponse:
    return JSONResponse(content=payload, status_code=status_code, headers={"Cache-Control": "private, no-store"})


def _require_user(request: Request):
    """Return (user, error_response); the upstream proxy sets `request.state.user`."""
    user = getattr(request.state, "user", None)
    if not user:
        return None, _private_error({"error": "unauthenticated"}, status_code=401)
    return user, None


def _clean_id(value: object) -> Optional[str]:
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


def _run(kind: EntityKind, action) -> JSONResponse:
    """Execute a resolver/service call and map the error taxonomy to HTTP."""
    try:
        positions = action()
    except InvalidInput as exc:
        return _private_error({"error": "bad_request", "detail": exc.code}, status_code=400)
    except PermissionError:
        return _private_error({"error": "forbidden"}, status_code=403)
    except LookupError:
        return _private_error({"error": "not_found"}, status_code=404)
    except ReconcileFailed as exc:
        logger.error(
            "Reorder failed kind=%s scope=%s constraint_violation=%s: %s",
            kind.name,
            exc.scope_key,
            exc.constraint_violation,
            exc.cause,
        )
        return _private_error({"error": "reorder_failed"}, status_code=500)
    except StoreUnavailable:
        return _private_error({"error": "store_unavailable"}, status_code=503)
    return _json_private({"ok": True, "positions": positions})


def _reorder(request: Request, kind: EntityKind, raw_ids: object, raw_scope_id: object = None) -> JSONResponse:
    user, error = _require_user(request)
    if error:
        return error
    csrf = _csrf_guard(request)
    if csrf:
        return csrf
    scope_id = _clean_id(raw_scope_id)
    if kind.parent_kind is not None and scope_id is None:
        return _private_error({"error": "bad_request", "detail": "invalid_course_id"}, status_code=400)

    def action():
        # Security-first: authorize the scope before validating the payload.
        resolved = _get_resolver().for_list(kind, user, scope_id)
        ids = normalize_desired_ids(raw_ids)
        return _get_service().apply_explicit_order(resolved.scope, ids, resolved.policy)

    return _run(kind, action)


def _move(request: Request, kind: EntityKind, raw_id: object, raw_dir: object) -> JSONResponse:
    user, error = _require_user(request)
    if error:
        return error
    csrf = _csrf_guard(request)
    if csrf:
        return csrf
    item_id = _clean_id(raw_id)
    if item_id is None:
        return _private_error({"error": "bad_request", "detail": "invalid_id"}, status_code=400)
    if raw_dir not in ("up", "down"):
        return _private_error({"error": "bad_request", "detail": "invalid_direction"}, status_code=400)

    def action():
        scope = _get_resolver().for_item(kind, user, item_id)
        return _get_service().swap_adjacent(scope, item_id, str(raw_dir))

    return _run(kind, action)


# --- Courses (owner scope) --------------------------------------------------------

@ordering_router.post("/api/admin/courses/reorder")
async def reorder_courses(request: Request, payload: CourseReorderPayload):
    """Reorder the caller's own courses.

    Behavior:
        - 200 with the final `positions` map (ids the client omitted are
          appended in their previous order).
        - 400 when `course_ids` is not a list of strings or names none of the
          caller's courses.
    """
    return _reorder(request, COURSES, payload.course_ids)


@ordering_router.post("/api/admin/courses/move")
async def move_course(request: Request, payload: CourseMovePayload):
    return _move(request, COURSES, payload.course_id, payload.dir)


# --- Textbooks (owner scope) ------------------------------------------------------

@ordering_router.post("/api/admin/textbooks/reorder")
async def reorder_textbooks(request: Request, payload: TextbookReorderPayload):
    return _reorder(request, TEXTBOOKS, payload.textbook_ids)


@ordering_router.post("/api/admin/textbooks/move")
async def move_textbook(request: Request, payload: TextbookMovePayload):
    return _move(request, TEXTBOOKS, payload.textbook_id, payload.dir)


# --- Lessons (course scope, admin only) -------------------------------------------

@ordering_router.post("/api/admin/lessons/reorder")
async def reorder_lessons(request: Request, payload: LessonReorderPayload):
    """Reorder the lessons of one course (administrators only).

    Behavior:
        - 400 on duplicate ids or ids that belong to another course.
        - 404 when the course does not exist.
    """
    return _reorder(request, LESSONS, payload.lesson_ids, payload.course_id)


@ordering_router.post("/api/admin/lessons/move")
async def move_lesson(request: Request, payload: LessonMovePayload):
    return _move(request, LESSONS, payload.lesson_id, payload.dir)


# --- Teachers (global list, admin only) -------------------------------------------

@ordering_router.post("/api/admin/teachers/reorder")
async def reorder_teachers(request: Request, payload: TeacherReorderPayload):
    return _reorder(request, TEACHERS, payload.teacher_ids)


@ordering_router.post("/api/admin/teachers/move")
async def move_teacher(request: Request, payload: TeacherMovePayload):
    return _move(request, TEACHERS, payload.teacher_id, payload.dir)
