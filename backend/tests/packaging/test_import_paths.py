"""Packaging sanity checks for import paths.

Ensures the namespace package layout resolves for the web app, the CLI and
the ordering core, under Docker as well as local test runs.
"""
from importlib import import_module


def test_import_ordering_package():
    mod = import_module("backend.ordering")
    assert hasattr(mod, "ReorderService")
    assert hasattr(mod, "reconcile")


def test_import_web_app_and_cli():
    assert hasattr(import_module("backend.web.main"), "app")
    assert hasattr(import_module("backend.tools.normalize_positions"), "main")
