"""Toolchains used by the update engine to configure, generate, clean, and build one API.

Two implementations are provided:

- **ContainerToolchain**: runs the language's generator image with ``docker``.
  The image implements the ``configure``, ``generate``, ``clean`` and
  ``build`` commands.
- **WorkspaceToolchain**: runs in-process.  It reads the language
  repository's ``librarian.yaml``, finds the library owning the API, and
  drives the registered backend on that API alone.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Protocol, runtime_checkable

from loguru import logger

from librarian.orchestrator.backends.base import has_output
from librarian.orchestrator.backends.registry import BackendRegistry, default_registry
from librarian.orchestrator.errors import LibraryNotFoundError
from librarian.orchestrator.execution.resolver import api_paths, resolve_library
from librarian.orchestrator.execution.sources import SourceBundle
from librarian.orchestrator.models.config import Library
from librarian.orchestrator.models.enums import Phase
from librarian.orchestrator.models.state import PipelineState
from librarian.orchestrator.process import run_command
from librarian.orchestrator.workspace import CONFIG_FILENAME, load_workspace_config


@runtime_checkable
class UpdateToolchain(Protocol):
    """Per-API configure / generate / clean / build operations."""

    async def configure(self, api_id: str, api_root: Path, generator_input: Path) -> None:
        """Prepare the repository's generator input for a newly added API."""
        ...

    async def generate(self, api_id: str, api_root: Path, output_dir: Path, generator_input: Path) -> None:
        """Generate ``api_id`` into ``output_dir``, mirroring the repository layout."""
        ...

    async def clean(self, repo_root: Path, api_id: str) -> None:
        """Remove the generated files of ``api_id`` from the language repository."""
        ...

    async def build(self, repo_root: Path, api_id: str) -> None:
        ...


# ---------------------------------------------------------------------------
# Container
# ---------------------------------------------------------------------------


def derive_image(
    state: PipelineState | None, language: str, *, image: str | None = None, repository: str | None = None
) -> str:
    """``[<repository>/]google-cloud-<language>-generator:<tag>`` unless ``image`` is given."""
    if image:
        return image
    tag = state.image_tag if state is not None and state.image_tag else "latest"
    relative = f"google-cloud-{language}-generator:{tag}"
    return f"{repository}/{relative}" if repository else relative


class ContainerToolchain:
    """Generator image invoked through ``docker run``."""

    def __init__(self, image: str, *, docker: str = "docker") -> None:
        self.image = image
        self._docker = docker

    async def configure(self, api_id: str, api_root: Path, generator_input: Path) -> None:
        await self._run(
            {api_root: "/apis", generator_input: "/generator-input"},
            "configure",
            "--api-root=/apis",
            "--generator-input=/generator-input",
            f"--api-path={api_id}",
        )

    async def generate(self, api_id: str, api_root: Path, output_dir: Path, generator_input: Path) -> None:
        await self._run(
            {api_root: "/apis", output_dir: "/output", generator_input: "/generator-input"},
            "generate",
            "--api-root=/apis",
            "--output=/output",
            "--generator-input=/generator-input",
            f"--api-path={api_id}",
        )

    async def clean(self, repo_root: Path, api_id: str) -> None:
        await self._run({repo_root: "/repo"}, "clean", "--repo-root=/repo", f"--api-path={api_id}")

    async def build(self, repo_root: Path, api_id: str) -> None:
        await self._run({repo_root: "/repo"}, "build", "--repo-root=/repo", f"--api-path={api_id}")

    async def build_output(self, output_dir: Path, api_id: str) -> None:
        """Build freshly generated code that is not part of a repository."""
        await self._run(
            {output_dir: "/generator-output"},
            "build",
            "--generator-output=/generator-output",
            f"--api-path={api_id}",
        )

    async def _run(self, mounts: dict[Path, str], *args: str) -> None:
        command: list[str] = [self._docker, "run", "--rm"]
        if hasattr(os, "getuid"):
            # Keep generated files owned by the invoking user.
            command += ["--user", f"{os.getuid()}:{os.getgid()}"]
        for host, container in mounts.items():
            command += ["-v", f"{Path(host).resolve()}:{container}"]
        command += [self.image, *args]
        logger.info("{} {} in {}", args[0], args[-1], self.image)
        await run_command(command)


# ---------------------------------------------------------------------------
# Workspace
# ---------------------------------------------------------------------------


class WorkspaceToolchain:
    """In-process toolchain driven by the language repository's ``librarian.yaml``.

    Generation and cleaning are limited to the requested API: the owning
    library is narrowed to that API before generation, and the backend's
    ``clean_api`` leaves the output of sibling APIs alone.
    """

    def __init__(self, repo_root: str | Path, registry: BackendRegistry | None = None) -> None:
        self._repo_root = Path(repo_root)
        self._registry = registry or default_registry()

    async def configure(self, api_id: str, api_root: Path, generator_input: Path) -> None:
        # librarian.yaml already describes the library; only ownership is checked.
        _, library = self._library_for(api_id)
        logger.info("Configuring '{}' as part of {}", api_id, library.name)

    async def generate(self, api_id: str, api_root: Path, output_dir: Path, generator_input: Path) -> None:
        language, library = self._library_for(api_id)
        # Only this API, into the same relative location it occupies in the repository.
        apis = [api for api in library.apis if api.path == api_id]
        staged = library.model_copy(update={"apis": apis, "output": str(output_dir / library.output)})
        backend = self._registry.get(language, Phase.GENERATE)
        await backend.generate([staged], SourceBundle(googleapis=api_root))
        await self._registry.get(language, Phase.FORMAT).format(staged)

    async def clean(self, repo_root: Path, api_id: str) -> None:
        language, library = self._library_for(api_id)
        await self._registry.get(language, Phase.CLEAN).clean_api(_locate(repo_root, library), api_id)

    async def build(self, repo_root: Path, api_id: str) -> None:
        language, library = self._library_for(api_id)
        await self._registry.get(language, Phase.GENERATE).build(repo_root, _locate(repo_root, library))

    def _library_for(self, api_id: str) -> tuple[str, Library]:
        """Resolve the library owning ``api_id``; its output stays repo-relative.

        Only the owner is resolved, so a misconfigured unrelated library
        cannot block the update.
        """
        config = load_workspace_config(self._repo_root / CONFIG_FILENAME)
        for library in config.libraries:
            if api_id in api_paths(config.language, library):
                return config.language, resolve_library(config.language, library, config.default)
        raise LibraryNotFoundError(api_id)


def _locate(repo_root: Path, library: Library) -> Library:
    """Anchor the library's output in ``repo_root``.

    A library without an output keeps it empty, so destructive cleans refuse
    it instead of cleaning the repository root.
    """
    if not has_output(library):
        return library
    return library.model_copy(update={"output": str(repo_root / library.output)})
