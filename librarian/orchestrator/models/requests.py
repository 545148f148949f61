"""Immutable invocation requests built once at the CLI boundary.

Every engine entry point receives one of these instead of reading global
flag state.  Cross-field rules (library vs. ``--all``, push vs. token) are
checked by the engine before any I/O so they surface as the specific
``ConfigurationError`` subclasses rather than pydantic validation errors.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, SecretStr

from librarian.orchestrator.models.enums import Toolchain


class GenerateRequest(BaseModel):
    """One-shot generation of a single library or of all libraries."""

    model_config = ConfigDict(frozen=True)

    library: str | None = None
    all: bool = False
    config_path: Path = Path("librarian.yaml")


class UpdateRequest(BaseModel):
    """Incremental regeneration of a language repository."""

    model_config = ConfigDict(frozen=True)

    repo_root: Path
    api_root: Path | None = None
    output: Path | None = None
    api_path: str | None = None
    push: bool = False
    github_token: SecretStr | None = None
    language: str | None = None
    image: str | None = None
    work_root: Path | None = None
    toolchain: Toolchain = Toolchain.WORKSPACE

    @property
    def token(self) -> str:
        return self.github_token.get_secret_value() if self.github_token else ""


class ConfigureRequest(UpdateRequest):
    """Onboarding of one API that the language repository does not generate yet."""

    api_path: str


class GenerateApiRequest(BaseModel):
    """One-shot generation of a single API with the generator image."""

    model_config = ConfigDict(frozen=True)

    api_path: str
    api_root: Path
    output: Path | None = None
    generator_input: Path | None = None
    language: str | None = None
    image: str | None = None
    work_root: Path | None = None
    build: bool = False
