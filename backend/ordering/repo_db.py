"""
Postgres-backed store for ordered items (courses, lessons, textbooks, teachers).

Design:
- Minimal psycopg3 usage; each call opens a short-lived connection.
- Table and column names come from the fixed `EntityKind` registry and are
  composed with `psycopg.sql.Identifier`; only values travel as parameters.
- The unique index on `(scope, position)` is assumed to exist and to be
  checked per statement (not deferred). The service issues writes in an order
  that never trips it; a `UniqueViolation` therefore means a logic error and
  is surfaced as `PositionConflict`.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

from .config import resolve_dsn
from .domain import EntityKind, OrderedItem, Scope, get_kind
from .errors import PositionConflict

try:
    import psycopg
    from psycopg import sql
    HAVE_PSYCOPG = True
except Exception:  # pragma: no cover - optional in some dev envs
    psycopg = None  # type: ignore
    sql = None  # type: ignore
    HAVE_PSYCOPG = False
else:  # pragma: no cover - import errors handled above
    from psycopg.errors import UniqueViolation

_log = logging.getLogger("classroom.ordering.db")


def _scope_filter(scope: Scope):
    """`where` fragment and params restricting a statement to one scope."""
    if scope.kind.scope_column is None:
        return sql.SQL("true"), []
    return sql.SQL("{} = %s").format(sql.Identifier(scope.kind.scope_column)), [scope.value]


class _DBPositionWriter:
    def __init__(self, cur, scope: Scope) -> None:
        self._cur = cur
        self._scope = scope
        self._table = sql.Identifier(scope.kind.table)

    def _execute(self, statement, params, position: int) -> None:
        try:
            self._cur.execute(statement, params)
        except UniqueViolation as exc:
            raise PositionConflict(self._scope.key, position, exc.diag.constraint_name) from exc

    def bump_positive(self, offset: int) -> int:
        where, params = _scope_filter(self._scope)
        statement = sql.SQL(
            "update {table} set position = position + %s where {where} and position > 0"
        ).format(table=self._table, where=where)
        self._execute(statement, [offset, *params], offset)
        return self._cur.rowcount

    def set_position(self, item_id: str, position: int) -> None:
        where, params = _scope_filter(self._scope)
        statement = sql.SQL(
            "update {table} set position = %s where id::text = %s and {where}"
        ).format(table=self._table, where=where)
        self._execute(statement, [position, item_id, *params], position)

    def set_positions(self, updates: Dict[str, int]) -> None:
        if not updates:
            return
        where, params = _scope_filter(self._scope)
        ids = list(updates.keys())
        orderings = [updates[i] for i in ids]
        statement = sql.SQL(
            """
            with new_order as (
              select item_id, ord from unnest(%s::text[], %s::int[]) as t(item_id, ord)
            )
            update {table} as t
            set position = new_order.ord
            from new_order
            where t.id::text = new_order.item_id
              and {where}
            """
        ).format(table=self._table, where=where)
        self._execute(statement, [ids, orderings, *params], min(orderings))


class DBOrderedItemStore:
    def __init__(self, dsn: Optional[str] = None) -> None:
        """Initialize a Postgres-backed store.

        Parameters:
            dsn: Optional explicit DSN. When omitted, resolves from
                 ORDERING_DATABASE_URL / DATABASE_URL.

        Behavior:
            - Does not open a connection eagerly; connections are per-call.
        """
        if not HAVE_PSYCOPG:
            raise RuntimeError("psycopg3 is required for DBOrderedItemStore")
        self._dsn = dsn or resolve_dsn()
        if not self._dsn:
            raise RuntimeError("Database DSN unavailable for DBOrderedItemStore")

    def list_by_scope(self, scope: Scope) -> List[OrderedItem]:
        where, params = _scope_filter(scope)
        statement = sql.SQL(
            """
            select id::text, coalesce(position, 0), {tie_break}
            from {table}
            where {where}
            order by position asc, id
            """
        ).format(
            tie_break=sql.Identifier(scope.kind.tie_break_column),
            table=sql.Identifier(scope.kind.table),
            where=where,
        )
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(statement, params)
                rows = cur.fetchall() or []
        return [OrderedItem(id=r[0], scope_key=scope.key, position=int(r[1]), tie_break=r[2]) for r in rows]

    def scope_of(self, kind: EntityKind, item_id: str) -> Optional[Scope]:
        column = sql.Identifier(kind.scope_column) if kind.scope_column else sql.SQL("null")
        statement = sql.SQL("select {col}::text from {table} where id::text = %s").format(
            col=column, table=sql.Identifier(kind.table)
        )
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(statement, (item_id,))
                row = cur.fetchone()
        if row is None:
            return None
        return Scope(kind, row[0] if kind.scope_column else None)

    def parent_exists(self, kind: EntityKind, value: str) -> bool:
        if kind.parent_kind is None:
            return True
        parent = get_kind(kind.parent_kind)
        statement = sql.SQL("select 1 from {table} where id::text = %s").format(table=sql.Identifier(parent.table))
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(statement, (value,))
                return cur.fetchone() is not None

    def list_scopes(self, kind: EntityKind) -> List[Scope]:
        if kind.scope_column is None:
            return [Scope(kind)]
        statement = sql.SQL(
            "select distinct {col}::text from {table} where {col} is not null order by 1"
        ).format(col=sql.Identifier(kind.scope_column), table=sql.Identifier(kind.table))
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(statement)
                rows = cur.fetchall() or []
        return [Scope(kind, r[0]) for r in rows]

    @contextmanager
    def transaction(self, scope: Scope) -> Iterator[_DBPositionWriter]:
        """One connection, one transaction: commit on success, roll back on error."""
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                try:
                    yield _DBPositionWriter(cur, scope)
                except BaseException:
                    conn.rollback()
                    _log.debug("transaction rolled back scope=%s", scope)
                    raise
                conn.commit()


__all__ = ["DBOrderedItemStore", "HAVE_PSYCOPG"]
