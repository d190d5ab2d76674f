"""
In-memory ordered item store for development and tests.

Why: Keep the reorder API usable without Postgres and let tests observe every
write statement. The store enforces the same rule as the unique index on
`(scope, position)`: no two rows of one scope share a nonzero position. The
check runs after each statement, not only at commit, which is the strictest
behavior a relational engine can show.

Transactions copy the affected kind's positions up front and restore them when
the block raises, so a failed reorder leaves nothing behind.
"""
from __future__ import annotations

from collections import Counter
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterator, List, Optional, Tuple

from .domain import UNSET_POSITION, EntityKind, OrderedItem, Scope, get_kind
from .errors import PositionConflict


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class _Row:
    id: str
    scope_value: Optional[str]
    position: int
    tie_break: datetime


class _MemoryWriter:
    def __init__(self, store: "InMemoryOrderedItemStore", scope: Scope) -> None:
        self._store = store
        self._scope = scope

    def _scope_rows(self) -> List[_Row]:
        return self._store._rows_in(self._scope)

    def _check_unique(self) -> None:
        counts = Counter(r.position for r in self._scope_rows() if r.position != UNSET_POSITION)
        for position, count in counts.items():
            if count > 1:
                raise PositionConflict(self._scope.key, position)

    def _row(self, item_id: str) -> Optional[_Row]:
        row = self._store._rows.get(self._scope.kind.name, {}).get(item_id)
        if row is None or not self._store._in_scope(row, self._scope):
            return None
        return row

    def bump_positive(self, offset: int) -> int:
        touched = 0
        for row in self._scope_rows():
            if row.position > 0:
                row.position += offset
                touched += 1
        self._store.statements.append(("bump", self._scope.key, offset))
        self._check_unique()
        return touched

    def set_position(self, item_id: str, position: int) -> None:
        row = self._row(item_id)
        self._store.statements.append(("set", item_id, position))
        if row is None:
            return
        row.position = position
        self._check_unique()

    def set_positions(self, updates: Dict[str, int]) -> None:
        for item_id, position in updates.items():
            self.set_position(item_id, position)


class InMemoryOrderedItemStore:
    def __init__(self) -> None:
        # rows[kind_name][item_id]
        self._rows: Dict[str, Dict[str, _Row]] = {}
        self.statements: List[Tuple] = []

    # --- seeding -----------------------------------------------------------------
    def add(
        self,
        kind: EntityKind | str,
        item_id: str,
        *,
        scope_value: Optional[str] = None,
        position: int = UNSET_POSITION,
        tie_break: Optional[datetime] = None,
    ) -> OrderedItem:
        """Insert a row as a create endpoint would; `position=0` marks a legacy row.

        Raises `PositionConflict` when another row of the scope already holds
        the same nonzero position, as the unique index would.
        """
        kind = get_kind(kind) if isinstance(kind, str) else kind
        if kind.scope_column is None:
            scope_value = None
        if position != UNSET_POSITION:
            scope = Scope(kind, scope_value)
            if any(r.position == position and r.id != item_id for r in self._rows_in(scope)):
                raise PositionConflict(scope.key, position)
        row = _Row(id=item_id, scope_value=scope_value, position=position, tie_break=tie_break or _now())
        self._rows.setdefault(kind.name, {})[item_id] = row
        return self._to_item(kind, row)

    def append(self, kind: EntityKind | str, item_id: str, *, scope_value: Optional[str] = None) -> OrderedItem:
        """Insert a row at `max(position) + 1` of its scope."""
        kind = get_kind(kind) if isinstance(kind, str) else kind
        scope = Scope(kind, scope_value if kind.scope_column else None)
        top = max((r.position for r in self._rows_in(scope)), default=0)
        return self.add(kind, item_id, scope_value=scope_value, position=max(0, top) + 1)

    def remove(self, kind: EntityKind | str, item_id: str) -> bool:
        kind = get_kind(kind) if isinstance(kind, str) else kind
        return self._rows.get(kind.name, {}).pop(item_id, None) is not None

    def position_of(self, kind: EntityKind | str, item_id: str) -> Optional[int]:
        kind = get_kind(kind) if isinstance(kind, str) else kind
        row = self._rows.get(kind.name, {}).get(item_id)
        return row.position if row else None

    def positions(self, scope: Scope) -> Dict[str, int]:
        return {r.id: r.position for r in self._rows_in(scope)}

    # --- store contract ----------------------------------------------------------
    def list_by_scope(self, scope: Scope) -> List[OrderedItem]:
        return [self._to_item(scope.kind, r) for r in self._rows_in(scope)]

    def scope_of(self, kind: EntityKind, item_id: str) -> Optional[Scope]:
        row = self._rows.get(kind.name, {}).get(item_id)
        if row is None:
            return None
        return Scope(kind, row.scope_value)

    def parent_exists(self, kind: EntityKind, value: str) -> bool:
        if kind.parent_kind is None:
            return True
        return value in self._rows.get(kind.parent_kind, {})

    def list_scopes(self, kind: EntityKind) -> List[Scope]:
        if kind.scope_column is None:
            return [Scope(kind)]
        values = sorted({r.scope_value for r in self._rows.get(kind.name, {}).values() if r.scope_value is not None})
        return [Scope(kind, v) for v in values]

    @contextmanager
    def transaction(self, scope: Scope) -> Iterator[_MemoryWriter]:
        snapshot = {item_id: row.position for item_id, row in self._rows.get(scope.kind.name, {}).items()}
        try:
            yield _MemoryWriter(self, scope)
        except BaseException:
            for item_id, position in snapshot.items():
                row = self._rows.get(scope.kind.name, {}).get(item_id)
                if row is not None:
                    row.position = position
            raise

    # --- internals ---------------------------------------------------------------
    @staticmethod
    def _in_scope(row: _Row, scope: Scope) -> bool:
        return scope.kind.scope_column is None or row.scope_value == scope.value

    def _rows_in(self, scope: Scope) -> List[_Row]:
        return [r for r in self._rows.get(scope.kind.name, {}).values() if self._in_scope(r, scope)]

    @staticmethod
    def _to_item(kind: EntityKind, row: _Row) -> OrderedItem:
        return OrderedItem(
            id=row.id,
            scope_key=kind.scope_key(row.scope_value),
            position=row.position,
            tie_break=row.tie_break,
        )


__all__ = ["InMemoryOrderedItemStore"]
