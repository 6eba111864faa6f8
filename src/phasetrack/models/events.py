"""Real-time events pushed over the project socket.

Events are a tagged union discriminated on ``type``. Payloads with an
unknown tag or an invalid shape are logged and dropped by
``parse_remote_event`` instead of raising, so one bad message can't tear
down a subscription.
"""

from __future__ import annotations

import json
import logging
from typing import Annotated, Any, Literal

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
)

from phasetrack.models.action import ClientAction
from phasetrack.models.enums import RemoteEventType
from phasetrack.models.tracking import PhaseTrackingState

logger = logging.getLogger(__name__)


class PhaseTransitionEvent(BaseModel):
    """The backend moved a project from one phase to another.

    Attributes:
        project_id: Project the transition belongs to.
        from_index: Phase index before the transition.
        to_index: Phase index after the transition.
    """

    model_config = ConfigDict(
        frozen=True, populate_by_name=True, coerce_numbers_to_str=True
    )

    type: Literal["phase_transition"] = "phase_transition"
    project_id: str = Field(validation_alias=AliasChoices("project_id", "projectId"))
    from_index: int = Field(validation_alias=AliasChoices("from_index", "fromIndex"))
    to_index: int = Field(validation_alias=AliasChoices("to_index", "toIndex"))


class ProjectUpdateEvent(BaseModel):
    """Partial update of a project's tracking and/or actions.

    Only the fields present in the payload are merged; ``None`` means the
    event says nothing about that field.
    """

    model_config = ConfigDict(
        frozen=True, populate_by_name=True, coerce_numbers_to_str=True
    )

    type: Literal["project_update"] = "project_update"
    project_id: str | None = Field(
        default=None, validation_alias=AliasChoices("project_id", "projectId")
    )
    tracking: PhaseTrackingState | None = None
    actions: list[ClientAction] | None = None


RemoteEvent = Annotated[
    PhaseTransitionEvent | ProjectUpdateEvent, Field(discriminator="type")
]

_remote_event_adapter: TypeAdapter[RemoteEvent] = TypeAdapter(RemoteEvent)

_KNOWN_TYPES = frozenset(t.value for t in RemoteEventType)


def parse_remote_event(payload: str | bytes | dict[str, Any]) -> RemoteEvent | None:
    """Decode a socket message into a typed event.

    Args:
        payload: Raw JSON text/bytes or an already-decoded mapping.

    Returns:
        The typed event, or None if the payload is malformed or carries an
        unknown ``type`` tag.
    """
    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as e:
            logger.warning("Ignoring non-JSON socket message: %s", e)
            return None

    if not isinstance(payload, dict):
        logger.warning("Ignoring socket message that is not an object")
        return None

    event_type = payload.get("type")
    if event_type not in _KNOWN_TYPES:
        logger.warning("Ignoring socket event with unknown type: %r", event_type)
        return None

    try:
        return _remote_event_adapter.validate_python(payload)
    except ValidationError as e:
        logger.warning(
            "Ignoring malformed %s event: %s", event_type, e.errors()[0]["msg"]
        )
        return None
