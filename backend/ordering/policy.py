"""Input strictness applied before a reorder touches the store."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Sequence

from .errors import InvalidInput


def normalize_desired_ids(value: object) -> List[str]:
    """Validate the raw request value: it must be a list of strings.

    Blank entries are stripped out; the order of the rest is preserved.
    """
    if not isinstance(value, list):
        raise InvalidInput("ids_must_be_array")
    normalized: List[str] = []
    for item in value:
        if not isinstance(item, str):
            raise InvalidInput("invalid_ids")
        trimmed = item.strip()
        if trimmed:
            normalized.append(trimmed)
    return normalized


@dataclass(frozen=True)
class ReorderPolicy:
    """Which malformed client orders are rejected instead of normalized.

    The reconciler itself accepts anything; these flags decide, per entity
    kind, whether the request should fail with `InvalidInput` first.
    """

    require_nonempty: bool = False
    reject_duplicates: bool = False
    reject_unknown: bool = False

    def check(self, desired_ids: Sequence[str], existing_ids: Iterable[str]) -> None:
        valid = set(existing_ids)
        if self.reject_duplicates and len(set(desired_ids)) != len(desired_ids):
            raise InvalidInput("duplicate_ids")
        if self.reject_unknown and any(item_id not in valid for item_id in desired_ids):
            raise InvalidInput("unknown_ids")
        if self.require_nonempty and not any(item_id in valid for item_id in desired_ids):
            raise InvalidInput("empty_reorder")


LENIENT = ReorderPolicy()
REQUIRE_ANY = ReorderPolicy(require_nonempty=True)
STRICT = ReorderPolicy(require_nonempty=True, reject_duplicates=True, reject_unknown=True)

__all__ = ["normalize_desired_ids", "ReorderPolicy", "LENIENT", "REQUIRE_ANY", "STRICT"]
