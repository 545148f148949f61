"""Persisted incremental-update state.

One ``PipelineState`` document lives in each language repository at
``generator-input/pipeline-state.json``.  Keys are camelCase on disk to stay
compatible with existing state files; Python attributes are snake_case.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from librarian.orchestrator.models.enums import AutomationLevel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ApiGenerationState(_CamelModel):
    """Generation bookkeeping for a single API."""

    id: str
    automation_level: AutomationLevel = AutomationLevel.UNSPECIFIED
    last_generated_commit: str = ""

    @property
    def blocked(self) -> bool:
        return self.automation_level == AutomationLevel.BLOCKED


class PipelineState(_CamelModel):
    image_tag: str = ""
    api_generation_states: list[ApiGenerationState] = Field(default_factory=list)

    def find(self, api_id: str) -> ApiGenerationState | None:
        for record in self.api_generation_states:
            if record.id == api_id:
                return record
        return None

    def with_record(self, record: ApiGenerationState) -> PipelineState:
        """Return a copy with ``record`` replacing the entry of the same id.

        Unknown ids are appended, preserving declaration order otherwise.
        """
        states = list(self.api_generation_states)
        for i, existing in enumerate(states):
            if existing.id == record.id:
                states[i] = record
                break
        else:
            states.append(record)
        return self.model_copy(update={"api_generation_states": states})
