"""Phase tracking state and snapshot models."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)

from phasetrack.models.action import ActionStatus, ClientAction, NullableFlag
from phasetrack.models.phase import ServiceConfig


class PhaseTrackingState(BaseModel):
    """Client-visible phase tracking state of one project.

    Instances are immutable values; the sync engine builds a fresh one for
    every notification so views can never write back into engine state.

    The backend sends ``action_statuses`` as a list of rows; it is normalized
    here into a mapping keyed by action id (later rows win).

    Attributes:
        current_phase_index: Index of the current phase in the catalog.
        action_statuses: Completion status per action id.
        is_completed: Whether the whole project is marked complete.
        phase_started_at: When the current phase started.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    current_phase_index: int = 0
    action_statuses: dict[str, ActionStatus] = Field(default_factory=dict)
    is_completed: NullableFlag = False
    phase_started_at: datetime | None = None

    @field_validator("current_phase_index", mode="before")
    @classmethod
    def _default_index(cls, v: Any) -> Any:
        return 0 if v is None else v

    @field_validator("action_statuses", mode="before")
    @classmethod
    def _normalize_statuses(cls, v: Any) -> Any:
        if v is None:
            return {}
        if isinstance(v, list):
            statuses: dict[str, Any] = {}
            for row in v:
                status = ActionStatus.model_validate(row)
                statuses[status.action_id] = status
            return statuses
        return v

    def is_action_completed(self, action_id: str) -> bool:
        """Look up completion for an action id (absent means incomplete)."""
        status = self.action_statuses.get(action_id)
        return status.is_completed if status else False


class ProjectInfo(BaseModel):
    """Minimal project header returned with a tracking snapshot."""

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True, extra="ignore")

    id: str
    name: str | None = None
    status: str | None = None


class TrackingSnapshot(BaseModel):
    """Decoded response of the project tracking endpoint.

    Attributes:
        project: Project header.
        tracking: Authoritative tracking state at fetch time.
        actions: Client actions known to the backend.
        service_config: Optional service-specific phase catalog.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    project: ProjectInfo
    tracking: PhaseTrackingState = Field(default_factory=PhaseTrackingState)
    actions: list[ClientAction] = Field(default_factory=list)
    service_config: ServiceConfig | None = Field(
        default=None,
        validation_alias=AliasChoices("service_config", "serviceConfig"),
    )

    @field_validator("tracking", mode="before")
    @classmethod
    def _default_tracking(cls, v: Any) -> Any:
        return {} if v is None else v

    @field_validator("actions", mode="before")
    @classmethod
    def _default_actions(cls, v: Any) -> Any:
        return [] if v is None else v


class AdvanceReceipt(BaseModel):
    """Backend confirmation of a phase advance.

    Built from the ``new_phase`` object of the advance response.
    """

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True, extra="ignore")

    index: int
    key: str | None = None
    name: str | None = None
    message: str | None = None
