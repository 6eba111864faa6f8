"""Client action models."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field

# LEFT JOINs on the backend yield null flags for rows without a status
NullableFlag = Annotated[bool, BeforeValidator(lambda v: False if v is None else v)]


class ClientAction(BaseModel):
    """A discrete task the client completes within a phase.

    Static per phase and supplied by the backend. Numeric ids are coerced to
    strings so lookups behave the same regardless of the database key type.

    Attributes:
        id: Action identifier.
        phase_key: Key of the phase this action belongs to.
        is_required: Whether the action gates advancement out of its phase.
        name: Display name (``action_name`` on the wire).
        description: Optional longer description.
        due_date: Optional due date.
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="ignore",
    )

    id: str
    phase_key: str
    is_required: NullableFlag = False
    name: str = Field(
        default="", validation_alias=AliasChoices("name", "action_name")
    )
    description: str | None = None
    due_date: datetime | None = None


class ActionStatus(BaseModel):
    """Completion status of one client action."""

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True, extra="ignore")

    action_id: str
    is_completed: NullableFlag = False
    completed_at: datetime | None = None
