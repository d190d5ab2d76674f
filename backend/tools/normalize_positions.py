"""Command line entry point for compacting drifted position columns.

Why:
    Rows created before the position column existed carry `0`, and deletes
    leave gaps. Admin pages tolerate both, but a dense 1..N list keeps
    single-step moves predictable. The CLI rewrites one scope (or every scope
    of a kind) through the same service the web API uses, so the unique index
    on `(scope, position)` is never tripped.

Usage:
    python -m backend.tools.normalize_positions --kind lessons --scope-id C1
    python -m backend.tools.normalize_positions --kind courses --all-scopes --dry-run
"""
from __future__ import annotations

import logging
from typing import List, Optional

import click

from backend.ordering.config import load_ordering_config
from backend.ordering.domain import ENTITY_KINDS, EntityKind, Scope, get_kind
from backend.ordering.errors import ReconcileFailed
from backend.ordering.reconciler import changed_positions, reconcile
from backend.ordering.repo_memory import InMemoryOrderedItemStore
from backend.ordering.service import ReorderService

logger = logging.getLogger("classroom.ordering.tools")


def _build_store():
    cfg = load_ordering_config()
    if cfg.backend == "memory":
        return InMemoryOrderedItemStore()
    from backend.ordering.repo_db import DBOrderedItemStore

    return DBOrderedItemStore(cfg.dsn)


def _scopes(store, kind: EntityKind, scope_id: Optional[str], all_scopes: bool) -> List[Scope]:
    if all_scopes:
        return list(store.list_scopes(kind))
    if kind.scope_column is None:
        return [Scope(kind)]
    if not scope_id:
        raise click.UsageError(f"--scope-id is required for {kind.name} (or pass --all-scopes)")
    return [Scope(kind, scope_id)]


def run_normalize(store, scopes: List[Scope], *, dry_run: bool, bump_floor: int = 1000) -> int:
    """Normalize `scopes` and echo a line per scope. Returns the number of changed rows."""
    service = ReorderService(store, bump_floor=bump_floor)
    total = 0
    for scope in scopes:
        existing = store.list_by_scope(scope)
        changed = changed_positions(existing, reconcile(existing, []))
        total += len(changed)
        if not changed:
            click.echo(f"{scope}: already dense ({len(existing)} items)")
            continue
        if dry_run:
            click.echo(f"{scope}: would change {len(changed)}/{len(existing)} items")
            for item_id, position in sorted(changed.items(), key=lambda kv: kv[1]):
                click.echo(f"  {item_id} -> {position}")
            continue
        service.normalize(scope)
        click.echo(f"{scope}: normalized {len(changed)}/{len(existing)} items")
    return total


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--kind",
    "kind_name",
    required=True,
    type=click.Choice(sorted(ENTITY_KINDS)),
    help="Entity kind whose positions should be compacted.",
)
@click.option("--scope-id", default=None, help="Scope value (owner sub or course id); not needed for teachers.")
@click.option("--all-scopes", is_flag=True, default=False, help="Normalize every scope of the kind.")
@click.option("--dry-run", is_flag=True, default=False, help="Report the changes without writing them.")
def main(kind_name: str, scope_id: Optional[str], all_scopes: bool, dry_run: bool) -> None:
    kind = get_kind(kind_name)
    try:
        cfg = load_ordering_config()
        store = _build_store()
    except (ValueError, RuntimeError) as exc:
        click.echo(f"Configuration error: {exc}", err=True)
        raise click.Abort()

    scopes = _scopes(store, kind, scope_id, all_scopes)
    mode_text = "dry-run" if dry_run else "write"
    click.echo(f"Normalizing {kind.name} positions ({mode_text}, {len(scopes)} scope(s))")
    try:
        total = run_normalize(store, scopes, dry_run=dry_run, bump_floor=cfg.bump_floor)
    except ReconcileFailed as exc:
        logger.error("normalize failed scope=%s: %s", exc.scope_key, exc.cause)
        click.echo(f"Failed on {exc.scope_key}: {exc.cause}", err=True)
        raise click.Abort()
    click.echo(f"Done: {total} item(s) {'to change' if dry_run else 'changed'}")


if __name__ == "__main__":  # pragma: no cover
    main()
