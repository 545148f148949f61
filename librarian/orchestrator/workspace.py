"""Loading ``librarian.yaml`` and looking up libraries in it."""

from __future__ import annotations

from pathlib import Path

import yaml
from loguru import logger
from pydantic import ValidationError

from librarian.orchestrator.errors import ConfigurationError, LibraryNotFoundError
from librarian.orchestrator.models.config import Library, WorkspaceConfig

CONFIG_FILENAME = "librarian.yaml"


def load_workspace_config(path: str | Path) -> WorkspaceConfig:
    """Parse and validate a workspace configuration file.

    Raises ``ConfigurationError`` naming the file when it cannot be read,
    is not valid YAML, or does not match the schema.
    """
    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"cannot read {path}: {exc}") from exc

    try:
        data = yaml.safe_load(raw) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"{path} is not valid YAML: {exc}") from exc

    try:
        config = WorkspaceConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(f"invalid configuration in {path}: {exc}") from exc

    logger.debug("Loaded {} ({} libraries, language={})", path, len(config.libraries), config.language)
    return config


def find_library(config: WorkspaceConfig, name: str) -> Library:
    for library in config.libraries:
        if library.name == name:
            return library
    raise LibraryNotFoundError(name)


def find_library_for_api(libraries: list[Library], api_path: str) -> Library:
    """Return the library whose APIs include ``api_path``.

    Pass resolved libraries so that derived API paths are considered too.
    """
    for library in libraries:
        if any(api.path == api_path for api in library.apis):
            return library
    raise LibraryNotFoundError(api_path)
