"""Per-language generation backends."""

from librarian.orchestrator.backends.base import BaseBackend, LanguageBackend
from librarian.orchestrator.backends.registry import BackendRegistry, default_registry

__all__ = ["BackendRegistry", "BaseBackend", "LanguageBackend", "default_registry"]
