"""Pipeline dispatcher -- one-shot generation of selected libraries.

Phases run as a strict barrier: every library is cleaned before any is
generated, every library is generated before any is formatted, and
post-generate runs once at the end.  The first failure aborts the run;
completed phases are not rolled back (regeneration is convergent, so
re-running after a fix is safe).
"""

from __future__ import annotations

import contextlib
from collections.abc import Iterator
from typing import TYPE_CHECKING

from loguru import logger

from librarian.orchestrator.backends.registry import BackendRegistry, default_registry
from librarian.orchestrator.errors import (
    BothLibraryAndAllError,
    EmptySourcesError,
    LibrarianError,
    LibraryNotFoundError,
    MissingLibraryOrAllError,
    NoLibrariesToGenerateError,
    SkipGenerateError,
)
from librarian.orchestrator.execution.resolver import resolve_library
from librarian.orchestrator.execution.sources import SourceBundle, SourceProvider
from librarian.orchestrator.models.enums import Phase
from librarian.orchestrator.settings import get_settings
from librarian.orchestrator.workspace import load_workspace_config

if TYPE_CHECKING:
    from librarian.orchestrator.models.config import Library, WorkspaceConfig
    from librarian.orchestrator.models.requests import GenerateRequest

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def run_generate(
    request: GenerateRequest,
    *,
    registry: BackendRegistry | None = None,
    provider: SourceProvider | None = None,
) -> list[Library]:
    """Load the workspace, fetch sources, and run all phases.

    Returns the resolved libraries that were generated.

    Raises
    ------
    MissingLibraryOrAllError / BothLibraryAndAllError:
        Invalid selection; raised before any I/O.
    EmptySourcesError:
        The workspace declares no sources.
    LibraryNotFoundError / SkipGenerateError / NoLibrariesToGenerateError:
        Nothing eligible matches the selection.
    UnsupportedLanguageError:
        No backend is registered for the workspace language.
    """
    check_selection(request.library, request.all)

    config = load_workspace_config(request.config_path)
    if config.sources is None:
        raise EmptySourcesError

    registry = registry or default_registry()
    registry.get(config.language, Phase.GENERATE)

    libraries = select_libraries(config, library_name=request.library, all_libraries=request.all)

    if provider is None:
        settings = get_settings()
        provider = SourceProvider(settings.cache_dir, download_url=settings.download_url)
    sources = await provider.load_bundle(config.language, config.sources)

    await run_pipeline(config.language, libraries, sources, registry)
    return libraries


def check_selection(library_name: str | None, all_libraries: bool) -> None:
    if all_libraries and library_name:
        raise BothLibraryAndAllError
    if not all_libraries and not library_name:
        raise MissingLibraryOrAllError


def select_libraries(config: WorkspaceConfig, *, library_name: str | None, all_libraries: bool) -> list[Library]:
    """Resolve the libraries eligible for this run.

    ``skip_generate`` libraries are never selected.  When the selection is
    empty the error distinguishes "all skipped", "named library skipped"
    and "no such library".
    """
    check_selection(library_name, all_libraries)

    selected = [
        resolve_library(config.language, library, config.default)
        for library in config.libraries
        if not library.skip_generate and (all_libraries or library.name == library_name)
    ]
    if selected:
        return selected

    # check_selection guarantees a name whenever --all is not set.
    if all_libraries or not library_name:
        raise NoLibrariesToGenerateError
    if any(library.name == library_name for library in config.libraries):
        raise SkipGenerateError(library_name)
    raise LibraryNotFoundError(library_name)


async def run_pipeline(
    language: str,
    libraries: list[Library],
    sources: SourceBundle,
    registry: BackendRegistry,
) -> None:
    """Run clean -> generate -> format -> post-generate over ``libraries``."""
    backend = registry.get(language, Phase.CLEAN)
    for library in libraries:
        with _stage(Phase.CLEAN, f"library '{library.name}'"):
            await backend.clean(library)

    backend = registry.get(language, Phase.GENERATE)
    with _stage(Phase.GENERATE, f"{len(libraries)} libraries"):
        await backend.generate(libraries, sources)

    backend = registry.get(language, Phase.FORMAT)
    for library in libraries:
        with _stage(Phase.FORMAT, f"library '{library.name}'"):
            await backend.format(library)

    backend = registry.get(language, Phase.POST_GENERATE)
    with _stage(Phase.POST_GENERATE, language):
        await backend.post_generate()

    logger.info("Generated {} libraries for {}", len(libraries), language)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


@contextlib.contextmanager
def _stage(phase: Phase, subject: str) -> Iterator[None]:
    """Attach the failing phase and subject to any orchestrator error."""
    logger.debug("{}: {}", phase, subject)
    try:
        yield
    except LibrarianError as exc:
        exc.add_note(f"{subject}: {phase} failed")
        raise
