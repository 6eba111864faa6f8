"""Enumerations for phasetrack domain models."""

from enum import StrEnum


class PhaseStatus(StrEnum):
    """Status of a phase relative to the project's current phase.

    Derived from the current phase index, never stored.
    """

    COMPLETED = "completed"  # index < current
    CURRENT = "current"
    NEXT = "next"  # index == current + 1
    LOCKED = "locked"

    @property
    def is_reachable(self) -> bool:
        """Whether a view should let the user open this phase."""
        return self is not PhaseStatus.LOCKED


class ErrorKind(StrEnum):
    """Error taxonomy surfaced to views.

    Each kind gets its own rendered error state.
    """

    AUTH_REQUIRED = "auth_required"
    ACCESS_DENIED = "access_denied"
    NOT_FOUND = "not_found"
    TRANSPORT_FAILURE = "transport_failure"
    VALIDATION_FAILURE = "validation_failure"
    CANCELLED = "cancelled"

    @property
    def is_retryable(self) -> bool:
        """Whether a retry affordance makes sense for this kind."""
        return self in (ErrorKind.TRANSPORT_FAILURE, ErrorKind.NOT_FOUND)


class RemoteEventType(StrEnum):
    """Tags of the real-time events pushed over the project socket."""

    PHASE_TRANSITION = "phase_transition"
    PROJECT_UPDATE = "project_update"
