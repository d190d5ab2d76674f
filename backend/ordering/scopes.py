"""
Scope resolution and authorization for reorder requests.

Why:
    The four orderable kinds differ only in how a request names its scope and
    who may touch it. Courses and textbooks are ordered per owner and only the
    owner may reorder them; lessons (per course) and the global teacher list
    are administrator territory. Resolving this before the service runs keeps
    the reorder core free of any permission logic.

Callers pass the `request.state.user` dict (`{"sub": ..., "roles": [...]}`).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .domain import COURSES, LESSONS, TEACHERS, TEXTBOOKS, EntityKind, Scope
from .errors import ItemNotFound, ScopeForbidden, ScopeNotFound
from .policy import REQUIRE_ANY, STRICT, ReorderPolicy

ADMIN_ROLE = "admin"
TEACHER_ROLE = "teacher"

POLICIES = {
    COURSES.name: REQUIRE_ANY,
    TEXTBOOKS.name: REQUIRE_ANY,
    LESSONS.name: STRICT,
    TEACHERS.name: STRICT,
}


def _role_in(user: dict | None, role: str) -> bool:
    if not user:
        return False
    roles = user.get("roles") or []
    if not isinstance(roles, list):
        return False
    return role in roles


def _current_sub(user: dict | None) -> str:
    if not user:
        return ""
    sub = user.get("sub")
    return str(sub) if sub else ""


@dataclass(frozen=True)
class ResolvedScope:
    scope: Scope
    policy: ReorderPolicy


@dataclass
class ScopeResolver:
    """Turn request parameters plus caller into an authorized scope."""

    store: object  # OrderedItemStoreProtocol; only scope_of/parent_exists are used

    def for_list(self, kind: EntityKind, user: dict | None, scope_id: Optional[str] = None) -> ResolvedScope:
        """Scope for a bulk reorder of `kind`.

        `scope_id` names the parent for course-scoped kinds (the course id of
        a lesson list) and is ignored elsewhere.
        """
        policy = POLICIES[kind.name]
        if kind.admin_only:
            self._require_admin(kind, user)
            if kind.scope_column is None:
                return ResolvedScope(Scope(kind), policy)
            if not scope_id:
                raise ScopeNotFound(kind.scope_key(scope_id))
            if not self.store.parent_exists(kind, scope_id):
                raise ScopeNotFound(kind.scope_key(scope_id))
            return ResolvedScope(Scope(kind, scope_id), policy)
        sub = self._require_owner_role(kind, user)
        return ResolvedScope(Scope(kind, sub), policy)

    def for_item(self, kind: EntityKind, user: dict | None, item_id: str) -> Scope:
        """Scope of an existing item for a single-step move.

        Items owned by someone else are reported as missing so that ids of
        foreign rows cannot be probed.
        """
        if kind.admin_only:
            self._require_admin(kind, user)
            scope = self.store.scope_of(kind, item_id)
            if scope is None:
                raise ItemNotFound(item_id)
            return scope
        sub = self._require_owner_role(kind, user)
        scope = self.store.scope_of(kind, item_id)
        if scope is None or scope.value != sub:
            raise ItemNotFound(item_id)
        return scope

    @staticmethod
    def _require_admin(kind: EntityKind, user: dict | None) -> None:
        if not _role_in(user, ADMIN_ROLE):
            raise ScopeForbidden(kind.name)

    @staticmethod
    def _require_owner_role(kind: EntityKind, user: dict | None) -> str:
        sub = _current_sub(user)
        if not sub or not (_role_in(user, TEACHER_ROLE) or _role_in(user, ADMIN_ROLE)):
            raise ScopeForbidden(kind.name)
        return sub


__all__ = ["ADMIN_ROLE", "TEACHER_ROLE", "POLICIES", "ResolvedScope", "ScopeResolver"]
