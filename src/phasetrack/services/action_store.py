"""Client actions and their completion status."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import datetime

from phasetrack.models.action import ActionStatus, ClientAction
from phasetrack.types import Clock, StatusListener, utc_now

logger = logging.getLogger(__name__)


class ActionStore:
    """Holds the client actions of a project and their completion status.

    Responsibilities:
        - Lookup of actions by phase and of status by action id
        - Idempotent completion upserts
        - Gating data for phase advancement (required but incomplete actions)

    Non-Responsibilities:
        - Network confirmation and rollback (SyncEngine's job)
        - Deciding whether a phase may advance (PhaseStateMachine's job)

    Statuses are only kept for known action ids. Ids the backend sends that
    don't match a known action are dropped, so newer backends can add
    actions without breaking older clients.
    """

    def __init__(
        self,
        actions: Iterable[ClientAction] = (),
        clock: Clock = utc_now,
    ) -> None:
        """Initialize the store.

        Args:
            actions: Initial client actions.
            clock: Function returning current datetime (enables testing).
        """
        self._clock = clock
        self._actions: dict[str, ClientAction] = {a.id: a for a in actions}
        self._statuses: dict[str, ActionStatus] = {}
        self._listeners: list[StatusListener] = []

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def actions(self) -> list[ClientAction]:
        """All known actions in insertion order."""
        return list(self._actions.values())

    @property
    def statuses(self) -> dict[str, ActionStatus]:
        """Copy of the status map keyed by action id."""
        return dict(self._statuses)

    def get(self, action_id: str) -> ClientAction | None:
        return self._actions.get(action_id)

    def status(self, action_id: str) -> ActionStatus | None:
        return self._statuses.get(action_id)

    def actions_for_phase(self, phase_key: str) -> list[ClientAction]:
        """Actions belonging to a phase, in insertion order."""
        return [a for a in self._actions.values() if a.phase_key == phase_key]

    def is_completed(self, action_id: str) -> bool:
        """Whether an action is completed. Unknown ids are never completed."""
        status = self._statuses.get(action_id)
        return status.is_completed if status else False

    def required_incomplete(self, phase_key: str) -> list[ClientAction]:
        """Required actions in a phase that are not completed yet."""
        return [
            a
            for a in self.actions_for_phase(phase_key)
            if a.is_required and not self.is_completed(a.id)
        ]

    def phase_counts(self, phase_key: str) -> tuple[int, int]:
        """Return ``(completed, total)`` action counts for a phase."""
        actions = self.actions_for_phase(phase_key)
        completed = sum(1 for a in actions if self.is_completed(a.id))
        return completed, len(actions)

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def set_completion(
        self,
        action_id: str,
        is_completed: bool,
        completed_at: datetime | None = None,
    ) -> bool:
        """Upsert the completion status of an action.

        Setting the value an action already has leaves the stored status
        unchanged (an existing completion timestamp is kept) but listeners
        are still notified.

        Args:
            action_id: The action identifier.
            is_completed: New completion flag.
            completed_at: Completion timestamp. Defaults to now when
                completing an action that wasn't completed yet.

        Returns:
            True if accepted, False if the action id is unknown.
        """
        if action_id not in self._actions:
            logger.debug("Ignoring status for unknown action: %s", action_id)
            return False

        status = self._build_status(action_id, is_completed, completed_at)
        self._statuses[action_id] = status
        self._notify(status)
        return True

    def restore(self, action_id: str, status: ActionStatus | None) -> bool:
        """Put back a previously captured status (None means no status row).

        Returns:
            True if restored, False if the action id is no longer known.
        """
        if action_id not in self._actions:
            logger.debug("Not restoring status of unknown action: %s", action_id)
            return False

        if status is None:
            self._statuses.pop(action_id, None)
            restored = ActionStatus(action_id=action_id)
        else:
            self._statuses[action_id] = status
            restored = status
        self._notify(restored)
        return True

    def replace_actions(self, actions: Iterable[ClientAction]) -> None:
        """Replace the action set, pruning statuses of ids no longer known."""
        self._actions = {a.id: a for a in actions}
        stale = [aid for aid in self._statuses if aid not in self._actions]
        for action_id in stale:
            del self._statuses[action_id]

    def replace_statuses(self, statuses: Iterable[ActionStatus]) -> None:
        """Overwrite every status at once. Unknown ids are dropped."""
        self._statuses = {
            s.action_id: s for s in statuses if s.action_id in self._actions
        }

    def add_listener(self, listener: StatusListener) -> Callable[[], None]:
        """Register a status listener.

        Returns:
            A callable that removes the listener again.
        """
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    # -------------------------------------------------------------------------
    # Private
    # -------------------------------------------------------------------------

    def _build_status(
        self,
        action_id: str,
        is_completed: bool,
        completed_at: datetime | None,
    ) -> ActionStatus:
        if not is_completed:
            return ActionStatus(action_id=action_id, is_completed=False)

        if completed_at is None:
            current = self._statuses.get(action_id)
            if current is not None and current.is_completed:
                completed_at = current.completed_at
            else:
                completed_at = self._clock()

        return ActionStatus(
            action_id=action_id, is_completed=True, completed_at=completed_at
        )

    def _notify(self, status: ActionStatus) -> None:
        for listener in list(self._listeners):
            listener(status)
