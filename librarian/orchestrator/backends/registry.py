"""Language backend registry.

Maps a language key from ``librarian.yaml`` to its backend.  Lookups of
unregistered languages fail closed with ``UnsupportedLanguageError``; a
phase is never silently skipped.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

from librarian.orchestrator.errors import UnsupportedLanguageError

if TYPE_CHECKING:
    from librarian.orchestrator.backends.base import LanguageBackend
    from librarian.orchestrator.models.enums import Phase


class BackendRegistry:
    """Registry of language backends, keyed by language identifier."""

    def __init__(self) -> None:
        self._backends: dict[str, LanguageBackend] = {}

    # -- Mutation --------------------------------------------------------------

    def register(self, backend: LanguageBackend) -> None:
        logger.debug("Registry: register backend for {}", backend.language)
        self._backends[backend.language] = backend

    # -- Query -----------------------------------------------------------------

    def get(self, language: str, phase: Phase) -> LanguageBackend:
        """Return the backend for ``language``.

        Raises ``UnsupportedLanguageError`` naming ``phase`` if none is registered.
        """
        backend = self._backends.get(language)
        if backend is None:
            raise UnsupportedLanguageError(language, phase)
        return backend

    def languages(self) -> list[str]:
        return sorted(self._backends)

    def __contains__(self, language: object) -> bool:
        return language in self._backends


def default_registry() -> BackendRegistry:
    """Registry populated with every built-in backend."""
    from librarian.orchestrator.backends.fake import FakeBackend
    from librarian.orchestrator.backends.java import JavaBackend

    registry = BackendRegistry()
    registry.register(FakeBackend())
    registry.register(JavaBackend())
    return registry
