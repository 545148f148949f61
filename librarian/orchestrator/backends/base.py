"""Language backend interface.

A backend implements the generation phases for one target language.  The
dispatcher calls them as a strict barrier sequence::

    clean(lib) for every lib -> generate(libs) -> format(lib) for every lib -> post_generate()

The update engine works one API at a time and calls ``clean_api`` instead of
``clean``, so the output of the library's other APIs is left alone.

``BaseBackend`` supplies the behaviour most languages share: cleaning a
library's output with its keep-list, and no-op format, post-generate and
build steps.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from librarian.orchestrator.errors import ApiScopeError, MissingOutputError, UnsupportedLanguageError
from librarian.orchestrator.execution.cleaner import check_and_clean
from librarian.orchestrator.models.enums import Phase

if TYPE_CHECKING:
    from librarian.orchestrator.execution.sources import SourceBundle
    from librarian.orchestrator.models.config import Library


@runtime_checkable
class LanguageBackend(Protocol):
    """Async protocol for per-language generation backends."""

    language: str

    async def clean(self, library: Library) -> None:
        """Remove stale generated output of one library."""
        ...

    async def clean_api(self, library: Library, api_path: str) -> None:
        """Remove the generated output of a single API of ``library``."""
        ...

    async def generate(self, libraries: list[Library], sources: SourceBundle) -> None:
        """Generate every library.  May parallelise internally."""
        ...

    async def format(self, library: Library) -> None:
        ...

    async def post_generate(self) -> None:
        """Repository-level work after all libraries are generated."""
        ...

    async def build(self, repo_root: Path, library: Library) -> None:
        """Build / verify one library inside a checked-out language repository."""
        ...


def has_output(library: Library) -> bool:
    """Whether ``library`` names an output directory other than the cwd."""
    return bool(library.output) and os.path.normpath(library.output) != "."


def output_dir(library: Library) -> Path:
    """Return the directory a destructive clean may work in.

    Raises ``MissingOutputError`` for an empty output or ``.``, which would
    otherwise clean whatever the current working directory happens to be.
    """
    if not has_output(library):
        raise MissingOutputError(library.name)
    return Path(library.output)


class BaseBackend:
    """Shared defaults for ``LanguageBackend`` implementations."""

    language: str = ""

    async def clean(self, library: Library) -> None:
        await check_and_clean(output_dir(library), library.keep)

    async def clean_api(self, library: Library, api_path: str) -> None:
        """Clean the whole library when it generates ``api_path`` alone."""
        if len(library.apis) > 1:
            raise ApiScopeError(library.name, api_path, self.language)
        await self.clean(library)

    async def generate(self, libraries: list[Library], sources: SourceBundle) -> None:
        raise UnsupportedLanguageError(self.language, Phase.GENERATE)

    async def format(self, library: Library) -> None:
        return None

    async def post_generate(self) -> None:
        return None

    async def build(self, repo_root: Path, library: Library) -> None:
        return None
