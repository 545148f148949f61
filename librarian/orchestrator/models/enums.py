"""Shared enumerations used across the orchestrator."""

from __future__ import annotations

from enum import StrEnum

# -- Languages ---------------------------------------------------------------


class Language(StrEnum):
    """Target-language identifiers accepted in ``librarian.yaml``."""

    DART = "dart"
    FAKE = "fake"
    GO = "go"
    JAVA = "java"
    PYTHON = "python"
    RUST = "rust"


# -- Pipeline ----------------------------------------------------------------


class Phase(StrEnum):
    """Generation phases, in execution order."""

    CLEAN = "clean"
    GENERATE = "generate"
    FORMAT = "format"
    POST_GENERATE = "post_generate"


# -- Incremental state -------------------------------------------------------


class AutomationLevel(StrEnum):
    """Whether the update engine may regenerate an API unattended.

    Values match the JSON enum names used in ``pipeline-state.json``.
    """

    UNSPECIFIED = "AUTOMATION_LEVEL_UNSPECIFIED"
    AUTOMATIC = "AUTOMATION_LEVEL_AUTOMATIC"
    BLOCKED = "AUTOMATION_LEVEL_BLOCKED"


class Toolchain(StrEnum):
    CONTAINER = "container"
    WORKSPACE = "workspace"
