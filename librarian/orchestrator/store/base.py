"""State store interface for incremental-update bookkeeping.

The state store persists one ``PipelineState`` per language repository.  The
update engine loads it once at the start of a run and saves exactly one API
record after each successful API update, so a crash mid-run loses at most
the in-flight API's progress.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from librarian.orchestrator.models.state import ApiGenerationState, PipelineState


@runtime_checkable
class StateStore(Protocol):
    """Async protocol for reading and writing pipeline state."""

    async def load(self) -> PipelineState:
        """Read the current state.  Raises ``FileNotFoundError`` if there is none."""
        ...

    async def save_one(self, api_id: str, record: ApiGenerationState) -> PipelineState:
        """Persist ``record`` as the state of ``api_id`` and return the full new state.

        Every other record and the image tag are written back unchanged.
        Must be durable when it returns.  Raises ``FileNotFoundError`` if
        there is no state to update.
        """
        ...
