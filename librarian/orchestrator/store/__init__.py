"""State store implementations for incremental-update bookkeeping."""

from librarian.orchestrator.store.base import StateStore
from librarian.orchestrator.store.local import LocalStateStore

__all__ = ["LocalStateStore", "StateStore"]
