"""Tests for LIBRARIAN_* settings."""

from __future__ import annotations

from pathlib import Path

import pytest

from librarian.orchestrator.settings import _get_settings_cached, get_settings


def test_defaults(tmp_path: Path) -> None:
    settings = get_settings()

    assert settings.log_level == "INFO"
    assert settings.config_path == "librarian.yaml"
    assert settings.cache_dir == tmp_path / "cache"
    assert settings.github_token is None
    assert settings.work_root is None


def test_env_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LIBRARIAN_LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("LIBRARIAN_GITHUB_TOKEN", "t0k")
    monkeypatch.setenv("LIBRARIAN_REPOSITORY", "gcr.io/proj")
    _get_settings_cached.cache_clear()

    settings = get_settings()

    assert settings.log_level == "DEBUG"
    assert settings.github_token.get_secret_value() == "t0k"
    assert "t0k" not in repr(settings)
    assert settings.repository == "gcr.io/proj"


def test_cached() -> None:
    assert get_settings() is get_settings()
