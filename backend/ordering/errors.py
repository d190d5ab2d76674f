"""
Error taxonomy for position reconciliation.

The classes extend the builtin families the web layer already maps
(`ValueError` → 400, `LookupError` → 404, `PermissionError` → 403), so route
handlers map them with a plain `except` ladder.
"""

from __future__ import annotations

from typing import Optional


class InvalidInput(ValueError):
    """Desired id list rejected by the caller's policy. `code` is the API detail."""

    def __init__(self, code: str) -> None:
        super().__init__(code)
        self.code = code


class ScopeNotFound(LookupError):
    def __init__(self, scope_key: str) -> None:
        super().__init__(f"scope_not_found: {scope_key}")
        self.scope_key = scope_key


class ItemNotFound(LookupError):
    def __init__(self, item_id: str) -> None:
        super().__init__(f"item_not_found: {item_id}")
        self.item_id = item_id


class ScopeForbidden(PermissionError):
    def __init__(self, scope_key: str) -> None:
        super().__init__(f"scope_forbidden: {scope_key}")
        self.scope_key = scope_key


class PositionConflict(Exception):
    """A single write would leave two rows of one scope on the same nonzero position."""

    def __init__(self, scope_key: str, position: int, detail: Optional[str] = None) -> None:
        message = f"position_conflict: {scope_key} position={position}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
        self.scope_key = scope_key
        self.position = position


class ReconcileFailed(RuntimeError):
    """Any store failure while reconciling a scope. Nothing was committed."""

    def __init__(self, scope_key: str, cause: BaseException) -> None:
        super().__init__(f"reconcile_failed: {scope_key}: {cause}")
        self.scope_key = scope_key
        self.cause = cause

    @property
    def constraint_violation(self) -> bool:
        return isinstance(self.cause, PositionConflict)


__all__ = [
    "InvalidInput",
    "ScopeNotFound",
    "ItemNotFound",
    "ScopeForbidden",
    "PositionConflict",
    "ReconcileFailed",
]
