"""
Normalize CLI — compact drifted scopes through the reorder service.
"""
from __future__ import annotations

from click.testing import CliRunner

from backend.ordering.domain import COURSES, LESSONS, TEACHERS, Scope
from backend.ordering.repo_memory import InMemoryOrderedItemStore
from backend.tools import normalize_positions as cli


def _drifted_store() -> InMemoryOrderedItemStore:
    store = InMemoryOrderedItemStore()
    store.add(COURSES, "c1", scope_value="t1", position=4)
    store.add(COURSES, "c2", scope_value="t1", position=0)
    store.add(COURSES, "c3", scope_value="t2", position=1)
    store.add(LESSONS, "l1", scope_value="c1", position=0)
    store.add(LESSONS, "l2", scope_value="c1", position=9)
    store.add(TEACHERS, "t1", position=2)
    return store


def _patch_store(monkeypatch, store) -> None:
    monkeypatch.setattr(cli, "_build_store", lambda: store)


def test_normalize_single_scope(monkeypatch):
    store = _drifted_store()
    _patch_store(monkeypatch, store)

    result = CliRunner().invoke(cli.main, ["--kind", "lessons", "--scope-id", "c1"])

    assert result.exit_code == 0, result.output
    assert "normalized 2/2 items" in result.output
    assert store.positions(Scope(LESSONS, "c1")) == {"l2": 1, "l1": 2}


def test_dry_run_reports_without_writing(monkeypatch):
    store = _drifted_store()
    _patch_store(monkeypatch, store)

    result = CliRunner().invoke(cli.main, ["--kind", "courses", "--all-scopes", "--dry-run"])

    assert result.exit_code == 0, result.output
    assert "would change 2/2 items" in result.output
    assert "already dense (1 items)" in result.output
    assert "c1 -> 1" in result.output
    assert store.position_of(COURSES, "c1") == 4
    assert store.statements == []


def test_teachers_need_no_scope_id(monkeypatch):
    store = _drifted_store()
    _patch_store(monkeypatch, store)

    result = CliRunner().invoke(cli.main, ["--kind", "teachers"])

    assert result.exit_code == 0, result.output
    assert store.positions(Scope(TEACHERS)) == {"t1": 1}


def test_scoped_kinds_require_scope_id(monkeypatch):
    _patch_store(monkeypatch, _drifted_store())

    result = CliRunner().invoke(cli.main, ["--kind", "courses"])

    assert result.exit_code != 0
    assert "--scope-id is required" in result.output


def test_unknown_kind_is_rejected():
    result = CliRunner().invoke(cli.main, ["--kind", "chapters"])
    assert result.exit_code != 0


def test_configuration_error_aborts(monkeypatch):
    monkeypatch.setenv("ORDERING_BACKEND", "db")

    result = CliRunner().invoke(cli.main, ["--kind", "teachers"])

    assert result.exit_code != 0
    assert "Configuration error" in result.output
