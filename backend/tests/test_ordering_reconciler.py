"""
Ordering — pure reconciler (unit tests, no I/O)

Covers density, prefix fidelity, remainder ordering with legacy zero rows and
the bump offset used by the two-phase apply.
"""
from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone

import pytest

from backend.ordering.domain import OrderedItem
from backend.ordering.reconciler import bump_offset, changed_positions, current_order, is_dense, reconcile

BASE = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _item(item_id: str, position: int, minutes: int = 0) -> OrderedItem:
    return OrderedItem(id=item_id, scope_key="owner:t1", position=position, tie_break=BASE + timedelta(minutes=minutes))


def test_explicit_prefix_then_remainder():
    existing = [_item("a", 1), _item("b", 2), _item("c", 3)]
    assert reconcile(existing, ["c", "a"]) == {"c": 1, "a": 2, "b": 3}


def test_zero_rows_follow_positive_positions_newest_zero_row_first():
    # `a` carries the newer tie-break, so it precedes `b` among the zero rows
    existing = [_item("a", 0, minutes=10), _item("b", 0, minutes=5), _item("c", 5)]
    assert reconcile(existing, []) == {"c": 1, "a": 2, "b": 3}


def test_equal_positions_break_ties_newest_first():
    existing = [_item("old", 0, minutes=1), _item("new", 0, minutes=9), _item("mid", 0, minutes=5)]
    assert current_order(existing) == ["new", "mid", "old"]


def test_missing_tie_break_sorts_last_then_by_id():
    existing = [
        OrderedItem(id="z", scope_key="global", position=0),
        OrderedItem(id="y", scope_key="global", position=0),
        _item("x", 0),
    ]
    assert current_order(existing) == ["x", "y", "z"]


def test_foreign_and_duplicate_ids_are_dropped():
    existing = [_item("a", 1), _item("b", 2), _item("c", 3)]
    assert reconcile(existing, ["x", "a", "a", "b"]) == {"a": 1, "b": 2, "c": 3}


def test_empty_scope_reconciles_to_empty_map():
    assert reconcile([], ["a"]) == {}


def test_full_permutation_is_followed_exactly():
    ids = [f"i{n}" for n in range(8)]
    existing = [_item(item_id, n + 1) for n, item_id in enumerate(ids)]
    desired = list(reversed(ids))
    result = reconcile(existing, desired)
    assert [result[item_id] for item_id in desired] == list(range(1, 9))


@pytest.mark.parametrize("seed", range(25))
def test_result_is_always_dense(seed):
    rng = random.Random(seed)
    n = rng.randint(1, 12)
    existing = [_item(f"i{k}", rng.choice([0, 0, rng.randint(1, 40)]), minutes=rng.randint(0, 3)) for k in range(n)]
    pool = [item.id for item in existing] + ["foreign-1", "foreign-2"]
    desired = [rng.choice(pool) for _ in range(rng.randint(0, 2 * n))]

    result = reconcile(existing, desired)

    assert sorted(result.values()) == list(range(1, n + 1))
    assert set(result) == {item.id for item in existing}


def test_omitted_items_keep_relative_order():
    existing = [_item("a", 4), _item("b", 0, minutes=2), _item("c", 1), _item("d", 0, minutes=7), _item("e", 2)]
    result = reconcile(existing, ["e"])
    remainder = sorted((item_id for item_id in result if item_id != "e"), key=result.get)
    assert result["e"] == 1
    assert remainder == ["c", "a", "d", "b"]


def test_is_dense():
    assert is_dense([_item("a", 2), _item("b", 1)])
    assert not is_dense([_item("a", 1), _item("b", 3)])
    assert not is_dense([_item("a", 0), _item("b", 1)])
    assert is_dense([])


def test_changed_positions_lists_only_moves():
    existing = [_item("a", 1), _item("b", 2), _item("c", 3)]
    assert changed_positions(existing, {"a": 1, "b": 3, "c": 2}) == {"b": 3, "c": 2}


def test_bump_offset_clears_target_range():
    existing = [_item("a", 1), _item("b", 7)]
    assert bump_offset(existing, floor=1000) == 1007
    # Small floors still move every positive row beyond its old value and past N
    assert bump_offset([_item(f"i{k}", 0) for k in range(5)], floor=1) == 5
