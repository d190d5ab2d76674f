"""Reorder service layer (Clean Architecture boundary).

Why:
    Loads one scope, asks the pure reconciler for the target positions and
    writes them in a single transaction, so web adapters and tools share one
    implementation of the collision-free update.

Behavior:
    - Every write statement keeps `(scope, position)` unique for nonzero
      positions: bulk reorders bump positive rows out of the 1..N range before
      assigning, swaps park one row on the `0` sentinel.
    - Store failures surface as `ReconcileFailed`; nothing partial is committed.
    - No locking: concurrent calls on the same scope are last-commit-wins.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, ContextManager, Dict, List, Optional, Protocol, Sequence

from .domain import DIRECTIONS, UNSET_POSITION, EntityKind, OrderedItem, Scope
from .errors import InvalidInput, ItemNotFound, ReconcileFailed
from .policy import LENIENT, ReorderPolicy
from .reconciler import bump_offset, changed_positions, is_dense, reconcile

logger = logging.getLogger("classroom.ordering")

# Third position used while two rows trade places.
SWAP_SLOT = UNSET_POSITION


class PositionWriter(Protocol):
    def bump_positive(self, offset: int) -> int:
        ...

    def set_position(self, item_id: str, position: int) -> None:
        ...

    def set_positions(self, updates: Dict[str, int]) -> None:
        ...


class OrderedItemStoreProtocol(Protocol):
    def list_by_scope(self, scope: Scope) -> List[OrderedItem]:
        ...

    def scope_of(self, kind: EntityKind, item_id: str) -> Optional[Scope]:
        ...

    def parent_exists(self, kind: EntityKind, value: str) -> bool:
        ...

    def list_scopes(self, kind: EntityKind) -> List[Scope]:
        ...

    def transaction(self, scope: Scope) -> ContextManager[PositionWriter]:
        ...


def apply_two_phase(writer: PositionWriter, existing: Sequence[OrderedItem], target: Dict[str, int], *, floor: int = 1000) -> None:
    """Bump positive rows out of range, then write the final positions."""
    writer.bump_positive(bump_offset(existing, floor))
    writer.set_positions(target)


@dataclass
class ReorderService:
    """Use cases for ordered lists (framework-independent)."""

    store: OrderedItemStoreProtocol
    bump_floor: int = 1000

    def apply_explicit_order(
        self,
        scope: Scope,
        desired_ids: Sequence[str],
        policy: ReorderPolicy = LENIENT,
    ) -> Dict[str, int]:
        """Set the scope to `desired_ids` followed by every unmentioned item.

        Returns the final position per id; an empty scope returns `{}`.
        """
        existing = self._load(scope)
        if not existing:
            logger.debug("reorder skipped scope=%s reason=empty_scope", scope)
            return {}
        policy.check(desired_ids, (item.id for item in existing))
        target = reconcile(existing, desired_ids)
        changed = changed_positions(existing, target)
        if not changed:
            logger.debug("reorder skipped scope=%s reason=unchanged", scope)
            return target
        self._run(scope, lambda tx: apply_two_phase(tx, existing, target, floor=self.bump_floor))
        logger.info("reorder applied scope=%s items=%d changed=%d", scope, len(target), len(changed))
        return target

    def normalize(self, scope: Scope) -> Dict[str, int]:
        """Compact a scope to 1..N keeping its current visible order."""
        return self.apply_explicit_order(scope, [])

    def swap_adjacent(self, scope: Scope, item_id: str, direction: str) -> Dict[str, int]:
        """Move one item a single step up or down.

        A scope that is not dense 1..N is normalized first, inside the same
        transaction as the swap. Moving past either end is a no-op.
        """
        if direction not in DIRECTIONS:
            raise InvalidInput("invalid_direction")
        existing = self._load(scope)
        if not any(item.id == item_id for item in existing):
            raise ItemNotFound(item_id)

        normalized: Optional[Dict[str, int]] = None
        if is_dense(existing):
            positions = {item.id: item.position for item in existing}
        else:
            normalized = reconcile(existing, [])
            positions = dict(normalized)

        current = positions[item_id]
        wanted = current - 1 if direction == "up" else current + 1
        other = next((oid for oid, pos in positions.items() if pos == wanted), None)

        if other is None and normalized is None:
            logger.debug("swap skipped scope=%s item=%s reason=boundary", scope, item_id)
            return positions

        def work(tx: PositionWriter) -> None:
            if normalized is not None:
                apply_two_phase(tx, existing, normalized, floor=self.bump_floor)
            if other is not None:
                tx.set_position(item_id, SWAP_SLOT)
                tx.set_position(other, current)
                tx.set_position(item_id, wanted)

        self._run(scope, work)
        if other is not None:
            positions[item_id], positions[other] = wanted, current
        logger.info(
            "swap applied scope=%s item=%s direction=%s normalized=%s",
            scope,
            item_id,
            direction,
            normalized is not None,
        )
        return positions

    # --- internals ---------------------------------------------------------------
    def _load(self, scope: Scope) -> List[OrderedItem]:
        try:
            return list(self.store.list_by_scope(scope))
        except Exception as exc:
            logger.warning("reorder read failed scope=%s: %s", scope, exc)
            raise ReconcileFailed(scope.key, exc) from exc

    def _run(self, scope: Scope, work: Callable[[PositionWriter], None]) -> None:
        try:
            with self.store.transaction(scope) as tx:
                work(tx)
        except Exception as exc:
            logger.warning("reorder rolled back scope=%s: %s", scope, exc)
            raise ReconcileFailed(scope.key, exc) from exc


__all__ = [
    "SWAP_SLOT",
    "PositionWriter",
    "OrderedItemStoreProtocol",
    "apply_two_phase",
    "ReorderService",
]
