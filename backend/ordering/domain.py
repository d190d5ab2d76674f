"""
Ordering domain: entity kinds, scopes and the ordered item record.

Why:
- Courses, lessons, textbooks and teachers all carry a `position` column that
  must be unique inside a scope. Keeping one vocabulary for all four kinds lets
  the reconciler and the service be written once.
- Table and column names live in a fixed registry so SQL identifiers never come
  from request input.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional

# Sentinel for "unset / legacy row". Many rows may hold it at once.
UNSET_POSITION = 0

DIRECTIONS = frozenset({"up", "down"})


@dataclass(frozen=True)
class EntityKind:
    """Static description of one orderable entity table."""

    name: str
    table: str
    scope_column: Optional[str]
    scope_prefix: str
    tie_break_column: str = "created_at"
    admin_only: bool = False
    # Kind whose rows own this kind's scopes (lessons live under courses).
    parent_kind: Optional[str] = None

    def scope_key(self, scope_value: Optional[str]) -> str:
        if self.scope_column is None:
            return self.scope_prefix
        return f"{self.scope_prefix}:{scope_value}"


COURSES = EntityKind(
    name="courses",
    table="courses",
    scope_column="owner_id",
    scope_prefix="owner",
    tie_break_column="updated_at",
)
TEXTBOOKS = EntityKind(
    name="textbooks",
    table="textbooks",
    scope_column="owner_id",
    scope_prefix="owner",
)
LESSONS = EntityKind(
    name="lessons",
    table="lessons",
    scope_column="course_id",
    scope_prefix="course",
    parent_kind="courses",
    admin_only=True,
)
TEACHERS = EntityKind(
    name="teachers",
    table="teachers",
    scope_column=None,
    scope_prefix="global",
    admin_only=True,
)

ENTITY_KINDS: Dict[str, EntityKind] = {k.name: k for k in (COURSES, TEXTBOOKS, LESSONS, TEACHERS)}


def get_kind(name: str) -> EntityKind:
    try:
        return ENTITY_KINDS[name]
    except KeyError:
        raise ValueError(f"unknown_entity_kind: {name}") from None


@dataclass(frozen=True)
class Scope:
    """One ordering domain: all rows of `kind` sharing `value` in the scope column.

    `value` is None for kinds without a scope column (the global teacher list).
    """

    kind: EntityKind
    value: Optional[str] = None

    @property
    def key(self) -> str:
        return self.kind.scope_key(self.value)

    def __str__(self) -> str:  # pragma: no cover - log formatting only
        return f"{self.kind.name}/{self.key}"


@dataclass(frozen=True)
class OrderedItem:
    id: str
    scope_key: str
    position: int
    tie_break: Optional[datetime] = None

    @property
    def has_position(self) -> bool:
        return self.position != UNSET_POSITION


__all__ = [
    "UNSET_POSITION",
    "DIRECTIONS",
    "EntityKind",
    "COURSES",
    "TEXTBOOKS",
    "LESSONS",
    "TEACHERS",
    "ENTITY_KINDS",
    "get_kind",
    "Scope",
    "OrderedItem",
]
