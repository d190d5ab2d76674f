"""Ordering package: collision-free position reconciliation for ordered lists.

Re-export the service, reconciler and error types for convenient imports.
"""

from .domain import COURSES, ENTITY_KINDS, LESSONS, TEACHERS, TEXTBOOKS, OrderedItem, Scope, get_kind
from .errors import (
    InvalidInput,
    ItemNotFound,
    PositionConflict,
    ReconcileFailed,
    ScopeForbidden,
    ScopeNotFound,
)
from .policy import LENIENT, REQUIRE_ANY, STRICT, ReorderPolicy
from .reconciler import reconcile
from .service import ReorderService

__all__ = [
    "COURSES",
    "ENTITY_KINDS",
    "LESSONS",
    "TEACHERS",
    "TEXTBOOKS",
    "OrderedItem",
    "Scope",
    "get_kind",
    "InvalidInput",
    "ItemNotFound",
    "PositionConflict",
    "ReconcileFailed",
    "ScopeForbidden",
    "ScopeNotFound",
    "LENIENT",
    "REQUIRE_ANY",
    "STRICT",
    "ReorderPolicy",
    "reconcile",
    "ReorderService",
]
