"""Service protocols for dependency injection."""

from typing import Protocol

from phasetrack.exceptions import PhaseTrackError
from phasetrack.models.action import ActionStatus, ClientAction
from phasetrack.models.tracking import (
    AdvanceReceipt,
    PhaseTrackingState,
    TrackingSnapshot,
)
from phasetrack.types import EventHandler


class Subscription(Protocol):
    """Handle for a registered event handler."""

    def unsubscribe(self) -> None:
        """Stop delivering events. Safe to call more than once."""
        ...


class TransportAdapter(Protocol):
    """Backend boundary consumed by SyncEngine.

    REST calls raise ``PhaseTrackError`` subclasses classified by status code;
    the engine never owns the transport and never closes it.
    """

    async def fetch_tracking(self, project_id: str) -> TrackingSnapshot:
        """Fetch the authoritative tracking snapshot of a project."""
        ...

    async def request_advance(
        self, project_id: str, target_index: int
    ) -> AdvanceReceipt:
        """Ask the backend to move a project to ``target_index``."""
        ...

    async def set_action_status(
        self, action_id: str, is_completed: bool
    ) -> ActionStatus:
        """Persist the completion flag of one action."""
        ...

    def subscribe(self, project_id: str, handler: EventHandler) -> Subscription:
        """Deliver real-time events addressed to a project."""
        ...

    @property
    def is_live(self) -> bool:
        """Whether a real-time connection is currently up."""
        ...


class ViewPort(Protocol):
    """Rendering layer notified by SyncEngine.

    All markup and DOM concerns live behind this interface.
    """

    def on_state_changed(
        self,
        tracking: PhaseTrackingState,
        actions: list[ClientAction],
        percentage: int,
    ) -> None: ...

    def on_error(self, error: PhaseTrackError) -> None: ...
