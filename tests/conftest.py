"""Shared test fixtures.

Everything runs against temporary directories; no network or container
runtime is required.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from pathlib import Path

import pytest

from librarian.orchestrator.settings import _get_settings_cached


@pytest.fixture(autouse=True)
def _isolated_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Point settings at the test's temp dir and re-read them per test."""
    for key in list(os.environ):
        if key.startswith("LIBRARIAN_"):
            monkeypatch.delenv(key)
    monkeypatch.setenv("LIBRARIAN_CACHE_DIR", str(tmp_path / "cache"))
    _get_settings_cached.cache_clear()
    yield
    _get_settings_cached.cache_clear()
