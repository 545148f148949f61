"""Process configuration loaded from LIBRARIAN_* environment variables."""

from __future__ import annotations

from pathlib import Path

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class LibrarianSettings(BaseSettings):
    """Librarian orchestrator settings.

    All fields are read from environment variables with the ``LIBRARIAN_``
    prefix.  For example, ``LIBRARIAN_LOG_LEVEL=DEBUG`` maps to ``log_level``.

    The per-workspace ``librarian.yaml`` is **not** managed here -- it is a
    versioned document loaded by ``librarian.orchestrator.workspace``.
    """

    model_config = SettingsConfigDict(
        env_prefix="LIBRARIAN_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # -- Logging ---------------------------------------------------------------
    log_level: str = "INFO"

    # -- Workspace -------------------------------------------------------------
    config_path: str = "librarian.yaml"

    cache_dir: Path = Path("~/.cache/librarian").expanduser()
    """Where fetched corpus archives are extracted, keyed by ``repo@commit``."""

    work_root: Path | None = None
    """Work directory used instead of a fresh timestamped one under the system temp dir."""

    # -- Generator image -------------------------------------------------------
    repository: str | None = None
    """Container registry prefix for ``google-cloud-<lang>-generator`` images."""

    image: str | None = None
    """Explicit generator image; wins over the derived name."""

    # -- Publishing ------------------------------------------------------------
    github_token: SecretStr | None = None
    github_api_url: str = "https://api.github.com"

    download_url: str = "https://github.com/{repo}/archive/{commit}.tar.gz"
    """Template for corpus archive downloads (``{repo}`` is ``owner/name``)."""


def get_settings() -> LibrarianSettings:
    """Return a cached settings instance.

    Reads from environment variables and ``.env`` on first call, then returns
    the same object.  Call ``_get_settings_cached.cache_clear()`` in tests to
    force a re-read after overriding env vars.
    """
    return _get_settings_cached()


def _get_settings_cached() -> LibrarianSettings:
    """Inner function wrapped by lru_cache (allows type-safe cache_clear)."""
    return LibrarianSettings()


# Apply lru_cache at runtime so the function is only called once.
from functools import lru_cache  # noqa: E402

_get_settings_cached = lru_cache(maxsize=1)(_get_settings_cached)
