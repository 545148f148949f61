"""Data models for the orchestrator."""

from librarian.orchestrator.models.config import (
    API,
    DartPackage,
    Default,
    GoModule,
    JavaDefault,
    JavaPackage,
    Library,
    PythonDefault,
    PythonPackage,
    Release,
    RustCrate,
    RustDefault,
    RustModule,
    RustPackageDependency,
    Source,
    Sources,
    Tool,
    WorkspaceConfig,
)
from librarian.orchestrator.models.enums import AutomationLevel, Language, Phase, Toolchain
from librarian.orchestrator.models.requests import (
    ConfigureRequest,
    GenerateApiRequest,
    GenerateRequest,
    UpdateRequest,
)
from librarian.orchestrator.models.state import ApiGenerationState, PipelineState

__all__ = [
    # Config
    "API",
    # State
    "ApiGenerationState",
    # Enums
    "AutomationLevel",
    "ConfigureRequest",
    "DartPackage",
    "Default",
    # Requests
    "GenerateApiRequest",
    "GenerateRequest",
    "GoModule",
    "JavaDefault",
    "JavaPackage",
    "Language",
    "Library",
    "Phase",
    "PipelineState",
    "PythonDefault",
    "PythonPackage",
    "Release",
    "RustCrate",
    "RustDefault",
    "RustModule",
    "RustPackageDependency",
    "Source",
    "Sources",
    "Tool",
    "Toolchain",
    "UpdateRequest",
    "WorkspaceConfig",
]
