"""Domain models for phasetrack."""

from phasetrack.models.action import ActionStatus, ClientAction
from phasetrack.models.cancel import Generation
from phasetrack.models.enums import ErrorKind, PhaseStatus, RemoteEventType
from phasetrack.models.events import (
    PhaseTransitionEvent,
    ProjectUpdateEvent,
    RemoteEvent,
    parse_remote_event,
)
from phasetrack.models.phase import Phase, ServiceConfig, ServiceType
from phasetrack.models.results import Err, Ok, Result
from phasetrack.models.tracking import (
    AdvanceReceipt,
    PhaseTrackingState,
    ProjectInfo,
    TrackingSnapshot,
)

__all__ = [
    "ActionStatus",
    "AdvanceReceipt",
    "ClientAction",
    "Err",
    "ErrorKind",
    "Generation",
    "Ok",
    "Phase",
    "PhaseStatus",
    "PhaseTrackingState",
    "PhaseTransitionEvent",
    "ProjectInfo",
    "ProjectUpdateEvent",
    "RemoteEvent",
    "RemoteEventType",
    "Result",
    "ServiceConfig",
    "ServiceType",
    "TrackingSnapshot",
    "parse_remote_event",
]
