"""Pytest configuration for repository test runs."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest


def pytest_sessionstart() -> None:
    """Add src and the tests directory to sys.path for test imports."""
    project_root = Path(__file__).resolve().parent.parent
    for import_root in (project_root / "src", project_root / "tests"):
        if str(import_root) not in sys.path:
            sys.path.insert(0, str(import_root))


@pytest.fixture(autouse=True)
def _isolated_registry(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep tests away from the system registry under /etc."""
    monkeypatch.setenv("IPELFS_REGISTRY_PATH", str(tmp_path / "etc" / "config.toml"))
