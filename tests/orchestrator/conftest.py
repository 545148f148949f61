"""Fixtures for orchestrator tests: workspace files and directory trees."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest
import yaml


def _write_config(path: Path, data: dict) -> Path:
    if path.is_dir():
        path = path / "librarian.yaml"
    path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
    return path


def _write_tree(root: Path, files: dict[str, str]) -> None:
    for name, content in files.items():
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")


def _list_tree(root: Path) -> list[str]:
    return sorted(p.relative_to(root).as_posix() for p in root.rglob("*") if p.is_file())


@pytest.fixture
def write_config() -> Callable[[Path, dict], Path]:
    """Dump a dict as ``librarian.yaml`` at a path (file or directory)."""
    return _write_config


@pytest.fixture
def write_tree() -> Callable[[Path, dict[str, str]], None]:
    """Create files from a ``{relative path: content}`` mapping."""
    return _write_tree


@pytest.fixture
def list_tree() -> Callable[[Path], list[str]]:
    """Sorted relative POSIX paths of every file under a directory."""
    return _list_tree
