"""
Pure position reconciliation.

`reconcile` turns the stored rows of one scope plus a client-provided order
into a dense 1..N assignment. It is total: unknown ids are dropped, repeated
ids keep their first occurrence, and rows the client did not mention are
appended in their previous relative order. No I/O happens here.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Sequence, Tuple

from .domain import OrderedItem


def _remainder_key(item: OrderedItem) -> Tuple[bool, int, float, str]:
    # Positive positions first (ascending), unset/legacy rows after them,
    # newest tie-break first inside equal positions.
    unset = item.position <= 0
    stamp = item.tie_break.timestamp() if item.tie_break is not None else float("-inf")
    return (unset, 0 if unset else item.position, -stamp, item.id)


def current_order(existing: Iterable[OrderedItem]) -> List[str]:
    """Ids in the order a reader sees them before any client input."""
    return [item.id for item in sorted(existing, key=_remainder_key)]


def reconcile(existing: Sequence[OrderedItem], desired_ids: Iterable[str]) -> Dict[str, int]:
    """Return the new position of every item in `existing`.

    Behavior:
        - Valid ids from `desired_ids` come first, in the given order.
        - Remaining items follow by previous position (0 last), then newest
          tie-break first.
        - Positions are `index + 1`, so the result is always exactly 1..N.
    """
    valid = {item.id for item in existing}
    kept: List[str] = []
    seen = set()
    for item_id in desired_ids:
        if item_id not in valid or item_id in seen:
            continue
        seen.add(item_id)
        kept.append(item_id)
    remainder = [item for item in existing if item.id not in seen]
    final_order = kept + current_order(remainder)
    return {item_id: index + 1 for index, item_id in enumerate(final_order)}


def is_dense(existing: Sequence[OrderedItem]) -> bool:
    """True when the stored positions are exactly {1..N} without repeats."""
    return sorted(item.position for item in existing) == list(range(1, len(existing) + 1))


def changed_positions(existing: Sequence[OrderedItem], target: Dict[str, int]) -> Dict[str, int]:
    current = {item.id: item.position for item in existing}
    return {item_id: pos for item_id, pos in target.items() if current.get(item_id) != pos}


def bump_offset(existing: Sequence[OrderedItem], floor: int = 1000) -> int:
    """Offset that moves every positive position above the 1..N target range.

    `max(floor, max_position + floor)` keeps bumped rows clear of their old
    values; the row count is added as a lower bound for scopes that hold more
    legacy rows than `max_position + floor`.
    """
    max_position = max((item.position for item in existing), default=0)
    return max(floor, max_position + floor, len(existing))


__all__ = ["reconcile", "current_order", "is_dense", "changed_positions", "bump_offset"]
