"""Reconciliation of snapshot, optimistic and real-time state."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Self

from phasetrack.exceptions import (
    DisposedError,
    PhaseTrackError,
    TransportFailureError,
    ValidationFailureError,
)
from phasetrack.models.action import ActionStatus, ClientAction
from phasetrack.models.cancel import Generation
from phasetrack.models.enums import PhaseStatus
from phasetrack.models.events import (
    PhaseTransitionEvent,
    ProjectUpdateEvent,
    RemoteEvent,
)
from phasetrack.models.phase import Phase
from phasetrack.models.results import Err, Ok, Result
from phasetrack.models.tracking import PhaseTrackingState, TrackingSnapshot
from phasetrack.services import catalog, progress
from phasetrack.services.action_store import ActionStore
from phasetrack.services.poller import AutoRefreshPoller
from phasetrack.services.protocols import Subscription, TransportAdapter, ViewPort
from phasetrack.services.state_machine import PhaseStateMachine
from phasetrack.types import Clock, utc_now

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _PendingWrite:
    """An optimistic action write awaiting backend confirmation.

    ``issued_at`` is the load generation current when the write was issued;
    only snapshots from loads started after it may supersede the write.
    """

    previous: ActionStatus | None
    desired: bool
    issued_at: int
    superseded: bool = False


class SyncEngine:
    """Keeps one project's phase tracking consistent for one mounted view.

    Merges three input streams into a single tracking state:

    1. Snapshot loads (initial fetch, retries, auto-refresh): full overwrite.
    2. Optimistic action toggles: applied immediately, rolled back if the
       backend rejects them.
    3. Real-time events: ``project_update`` merges the fields it carries,
       ``phase_transition`` moves the current phase unconditionally.

    Concurrency:
        Runs on a single event loop, so no locks are needed. Every result that
        arrives after an ``await`` is checked against the disposed flag (and,
        for snapshot loads, against the load generation) before it touches
        state, because events may be reconciled while a request is in flight.

    Ordering:
        Events carry no sequence number; the last one applied wins. Remote
        writes to an action with a pending optimistic write supersede it, so
        a late failure never rolls back over a newer remote value.

    Notifications:
        Every applied reconciliation step produces exactly one
        ``ViewPort.on_state_changed`` call. Errors go to ``ViewPort.on_error``.
    """

    def __init__(
        self,
        project_id: str,
        transport: TransportAdapter,
        view: ViewPort,
        *,
        phases: Sequence[Phase] | None = None,
        clock: Clock = utc_now,
        poll_interval_seconds: float = 0.0,
    ) -> None:
        """Initialize the engine.

        Args:
            project_id: Project whose tracking this engine owns.
            transport: Backend boundary (not owned, never closed here).
            view: Rendering layer to notify.
            phases: Fixed catalog for the session. When omitted, the catalog
                is resolved from the first snapshot's service config.
            clock: Function returning current datetime (enables testing).
            poll_interval_seconds: Auto-refresh interval used while no live
                socket is connected. 0 disables polling.
        """
        self._project_id = project_id
        self._transport = transport
        self._view = view
        self._clock = clock
        self._poll_interval = poll_interval_seconds

        self._catalog_fixed = phases is not None
        initial_phases = list(phases) if phases is not None else catalog.resolve()
        if phases is not None:
            catalog.validate_catalog(initial_phases)

        self._store = ActionStore(clock=clock)
        self._machine = PhaseStateMachine(initial_phases, self._store)
        self._is_completed = False
        self._phase_started_at: datetime | None = None

        self._generation = Generation()
        self._pending: dict[str, _PendingWrite] = {}
        self._advance_in_flight = False
        self._loaded = False
        self._last_error: PhaseTrackError | None = None

        self._subscription: Subscription | None = None
        self._poller: AutoRefreshPoller | None = None

    # -------------------------------------------------------------------------
    # Read-only state
    # -------------------------------------------------------------------------

    @property
    def project_id(self) -> str:
        return self._project_id

    @property
    def phases(self) -> list[Phase]:
        return self._machine.phases

    @property
    def current_phase(self) -> Phase:
        return self._machine.current_phase

    @property
    def actions(self) -> list[ClientAction]:
        return self._store.actions

    @property
    def action_store(self) -> ActionStore:
        return self._store

    @property
    def tracking(self) -> PhaseTrackingState:
        """Immutable copy of the current tracking state."""
        return PhaseTrackingState(
            current_phase_index=self._machine.current_index,
            action_statuses=self._store.statuses,
            is_completed=self._is_completed,
            phase_started_at=self._phase_started_at,
        )

    @property
    def percentage(self) -> int:
        return progress.percentage(self.tracking, self.phases, self._store)

    @property
    def is_loaded(self) -> bool:
        """Whether at least one snapshot has been applied."""
        return self._loaded

    @property
    def is_disposed(self) -> bool:
        return self._generation.is_disposed

    @property
    def last_error(self) -> PhaseTrackError | None:
        """Most recent surfaced error, cleared by a successful load."""
        return self._last_error

    @property
    def has_pending_writes(self) -> bool:
        return bool(self._pending)

    def phase_statuses(self) -> list[tuple[Phase, PhaseStatus]]:
        return self._machine.statuses()

    def can_advance(self, from_index: int | None = None) -> bool:
        """Whether required actions of a phase (default: current) are done."""
        index = self._machine.current_index if from_index is None else from_index
        return self._machine.can_advance(index)

    def check_advance(self, target_index: int) -> Result[int]:
        """Synchronous local gate for an advance request."""
        return self._machine.check_advance(target_index)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start(self) -> Result[PhaseTrackingState]:
        """Subscribe to real-time events, load the snapshot, start polling.

        The subscription is registered before the fetch so events emitted
        while the snapshot is in flight are not lost.
        """
        if self.is_disposed:
            return Err(DisposedError("Engine already disposed"))

        if self._subscription is None:
            self._subscription = self._transport.subscribe(
                self._project_id, self.apply_event
            )

        result = await self.load()

        if self._poll_interval > 0 and self._poller is None and not self.is_disposed:
            self._poller = AutoRefreshPoller(
                self.load,
                lambda: self._transport.is_live,
                self._poll_interval,
            )
            self._poller.start()
        return result

    async def dispose(self) -> None:
        """Tear down: unsubscribe, stop polling, ignore late results.

        Safe to call more than once.
        """
        if self.is_disposed:
            return
        self._generation.dispose()
        self._pending.clear()

        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

        if self._poller is not None:
            await self._poller.stop()
            self._poller = None

        logger.debug("Sync engine for project %s disposed", self._project_id)

    async def __aenter__(self) -> Self:
        await self.start()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.dispose()

    # -------------------------------------------------------------------------
    # Entry point 1: snapshot load
    # -------------------------------------------------------------------------

    async def load(self) -> Result[PhaseTrackingState]:
        """Fetch and apply the authoritative snapshot.

        Only the most recently started load may apply its result; an older
        load finishing late is discarded. Classified transport errors are
        surfaced to the view and leave state untouched, so calling ``load``
        again is the retry path.
        """
        if self.is_disposed:
            return Err(DisposedError("Engine already disposed"))

        ticket = self._generation.next()
        try:
            snapshot = await self._transport.fetch_tracking(self._project_id)
        except Exception as e:
            if not self._generation.is_current(ticket):
                return Err(DisposedError("Snapshot load superseded"))
            error = _as_phasetrack_error(e, "Unexpected error loading tracking")
            logger.warning(
                "Failed to load tracking for project %s: %s", self._project_id, error
            )
            return self._fail(error)

        if not self._generation.is_current(ticket):
            logger.debug("Discarding stale snapshot for project %s", self._project_id)
            return Err(DisposedError("Snapshot load superseded"))

        try:
            self.apply_snapshot(snapshot, ticket=ticket)
        except PhaseTrackError as e:
            return self._fail(e)

        self._last_error = None
        return Ok(self.tracking)

    def apply_snapshot(
        self, snapshot: TrackingSnapshot, *, ticket: int | None = None
    ) -> None:
        """Overwrite local state with a snapshot.

        The snapshot is validated before anything is mutated, so a rejected
        snapshot leaves the previous state intact.

        Pending optimistic writes issued after the load started keep their
        value: the snapshot predates them, so it only becomes their rollback
        base. Writes issued before the load started are superseded.

        Args:
            snapshot: Snapshot to apply.
            ticket: Load generation that fetched the snapshot. None treats
                the snapshot as newer than every pending write.

        Raises:
            CatalogError: If the snapshot's dynamic catalog is invalid.
            TransportFailureError: If the snapshot's phase index is outside
                the session catalog.
        """
        phases = self._machine.phases
        if not self._catalog_fixed:
            phases = catalog.resolve(snapshot.service_config)

        index = snapshot.tracking.current_phase_index
        if not 0 <= index < len(phases):
            raise TransportFailureError(
                f"Snapshot phase index {index} outside catalog of {len(phases)}"
            )

        if not self._catalog_fixed:
            self._machine = PhaseStateMachine(phases, self._store)
            self._catalog_fixed = True

        self._store.replace_actions(snapshot.actions)
        self._supersede_orphaned_writes()

        statuses = dict(snapshot.tracking.action_statuses)
        for action_id, write in self._pending.items():
            if write.superseded:
                continue
            if ticket is None or ticket > write.issued_at:
                write.superseded = True
                continue
            write.previous = statuses.pop(action_id, None)
            if (current := self._store.status(action_id)) is not None:
                statuses[action_id] = current
        self._store.replace_statuses(statuses.values())

        self._machine.move_to(index)
        self._is_completed = snapshot.tracking.is_completed
        self._phase_started_at = snapshot.tracking.phase_started_at

        self._loaded = True
        logger.debug(
            "Applied snapshot for project %s: phase %d, %d actions",
            self._project_id,
            index,
            len(snapshot.actions),
        )
        self._notify()

    # -------------------------------------------------------------------------
    # Entry point 2: optimistic local mutation
    # -------------------------------------------------------------------------

    async def set_action_completion(
        self, action_id: str, is_completed: bool
    ) -> Result[ActionStatus]:
        """Toggle an action optimistically and confirm it with the backend.

        The new status is visible immediately. If the backend rejects it, the
        previous status is restored unless a remote event or snapshot has
        written that action in the meantime, and the error is surfaced once.
        """
        if self.is_disposed:
            return Err(DisposedError("Engine already disposed"))

        if self._store.get(action_id) is None:
            return self._fail(ValidationFailureError(f"Unknown action: {action_id}"))

        # A newer toggle rolls back to the same base as the one it replaces
        replaced = self._pending.get(action_id)
        write = _PendingWrite(
            previous=(
                replaced.previous
                if replaced is not None
                else self._store.status(action_id)
            ),
            desired=is_completed,
            issued_at=self._generation.current,
        )
        self._pending[action_id] = write
        self._store.set_completion(action_id, is_completed)
        self._notify()

        try:
            confirmed = await self._transport.set_action_status(action_id, is_completed)
        except Exception as e:
            error = _as_phasetrack_error(e, "Unexpected error updating action")
            return self._settle_failed_write(action_id, write, error)

        if self.is_disposed:
            return Err(DisposedError("Engine disposed during action update"))

        pending = self._pending.get(action_id)
        if pending is write:
            del self._pending[action_id]
            if (
                not write.superseded
                and confirmed.is_completed == write.desired
                and confirmed.completed_at is not None
                and self._store.status(action_id) != confirmed
            ):
                self._store.set_completion(
                    action_id, confirmed.is_completed, confirmed.completed_at
                )
                self._notify()
        elif pending is not None and not write.superseded:
            # The newer toggle still in flight now rolls back to this value
            pending.previous = confirmed
        return Ok(confirmed)

    def _settle_failed_write(
        self, action_id: str, write: _PendingWrite, error: PhaseTrackError
    ) -> Err:
        if self.is_disposed:
            return Err(DisposedError("Engine disposed during action update"))

        # A newer toggle of the same action owns the slot; it settles itself
        if self._pending.get(action_id) is write:
            del self._pending[action_id]
            if write.superseded:
                logger.debug(
                    "Not rolling back action %s: superseded by remote state",
                    action_id,
                )
            elif self._store.restore(action_id, write.previous):
                self._notify()

        logger.warning("Failed to update action %s: %s", action_id, error)
        return self._fail(error)

    # -------------------------------------------------------------------------
    # Entry point 3: real-time events
    # -------------------------------------------------------------------------

    def apply_event(self, event: RemoteEvent) -> bool:
        """Reconcile one real-time event.

        Applying the same event twice leaves the same state as applying it
        once. Events for other projects, unsupported event types and phase
        indices outside the catalog are logged and ignored.

        Returns:
            True if the event was applied (and the view notified).
        """
        if self.is_disposed:
            return False

        match event:
            case PhaseTransitionEvent():
                applied = self._apply_transition(event)
            case ProjectUpdateEvent():
                applied = self._apply_update(event)
            case _:
                logger.warning("Ignoring unsupported event: %r", event)
                return False

        if applied:
            self._notify()
        return applied

    def _apply_transition(self, event: PhaseTransitionEvent) -> bool:
        if event.project_id != self._project_id:
            logger.debug("Ignoring transition for project %s", event.project_id)
            return False
        if not self._machine.contains(event.to_index):
            logger.warning(
                "Ignoring transition to phase %d outside catalog of %d",
                event.to_index,
                len(self._machine.phases),
            )
            return False
        if event.from_index != self._machine.current_index:
            logger.debug(
                "Transition from %d while local phase is %d; applying anyway",
                event.from_index,
                self._machine.current_index,
            )

        if event.to_index != self._machine.current_index:
            self._phase_started_at = None
        self._machine.move_to(event.to_index)
        return True

    def _apply_update(self, event: ProjectUpdateEvent) -> bool:
        if event.project_id is not None and event.project_id != self._project_id:
            logger.debug("Ignoring update for project %s", event.project_id)
            return False

        tracking = event.tracking
        fields = tracking.model_fields_set if tracking is not None else set()

        if tracking is not None and "current_phase_index" in fields:
            if not self._machine.contains(tracking.current_phase_index):
                logger.warning(
                    "Ignoring update with phase index %d outside catalog of %d",
                    tracking.current_phase_index,
                    len(self._machine.phases),
                )
                return False

        if event.actions is not None:
            self._store.replace_actions(event.actions)
            self._supersede_orphaned_writes()

        if tracking is not None:
            if "action_statuses" in fields:
                self._merge_statuses(tracking.action_statuses)
            if "current_phase_index" in fields:
                self._machine.move_to(tracking.current_phase_index)
            if "is_completed" in fields:
                self._is_completed = tracking.is_completed
            if "phase_started_at" in fields:
                self._phase_started_at = tracking.phase_started_at

        return True

    def _merge_statuses(self, statuses: dict[str, ActionStatus]) -> None:
        """Overwrite statuses, keeping unconfirmed writes the event doesn't name.

        A remote status for an action with a pending write wins and marks the
        write superseded (last arrival wins).
        """
        merged = dict(statuses)
        for action_id, write in self._pending.items():
            if action_id in statuses:
                write.superseded = True
            elif (current := self._store.status(action_id)) is not None:
                merged[action_id] = current
        self._store.replace_statuses(merged.values())

    def _supersede_orphaned_writes(self) -> None:
        """Pending writes for actions that no longer exist are never rolled back."""
        for action_id, write in self._pending.items():
            if self._store.get(action_id) is None:
                write.superseded = True

    # -------------------------------------------------------------------------
    # Phase advancement
    # -------------------------------------------------------------------------

    async def request_advance(self, target_index: int) -> Result[int]:
        """Ask the backend to advance the project by one phase.

        The local gate runs first; a rejected request never reaches the
        transport and is reported before the first ``await``. The local phase
        index does not move until the backend confirms, and the confirmation
        is merged like a ``phase_transition`` event. Failures are surfaced
        and not retried.

        Returns:
            ``Ok(new_index)`` when the backend accepted the advance.
        """
        if self.is_disposed:
            return Err(DisposedError("Engine already disposed"))

        if self._advance_in_flight:
            return self._fail(ValidationFailureError("Advance already in progress"))

        check = self._machine.check_advance(target_index)
        if isinstance(check, Err):
            logger.info("Advance to phase %d rejected: %s", target_index, check.message)
            return self._fail(check.error)

        from_index = self._machine.current_index
        self._advance_in_flight = True
        try:
            receipt = await self._transport.request_advance(
                self._project_id, target_index
            )
        except Exception as e:
            if self.is_disposed:
                return Err(DisposedError("Engine disposed during advance"))
            error = _as_phasetrack_error(e, "Unexpected error requesting advance")
            logger.warning("Advance to phase %d failed: %s", target_index, error)
            return self._fail(error)
        finally:
            self._advance_in_flight = False

        if self.is_disposed:
            return Err(DisposedError("Engine disposed during advance"))

        # A live event may already have moved the project past this request
        if self._machine.current_index == from_index:
            self.apply_event(
                PhaseTransitionEvent(
                    project_id=self._project_id,
                    from_index=from_index,
                    to_index=receipt.index,
                )
            )
        else:
            logger.debug(
                "Advance confirmed after phase moved to %d; keeping live state",
                self._machine.current_index,
            )
        return Ok(receipt.index)

    # -------------------------------------------------------------------------
    # Private: notifications
    # -------------------------------------------------------------------------

    def _notify(self) -> None:
        if self.is_disposed:
            return
        try:
            self._view.on_state_changed(self.tracking, self.actions, self.percentage)
        except Exception:
            logger.exception("View failed to handle state change")

    def _fail(self, error: PhaseTrackError) -> Err:
        self._last_error = error
        if not self.is_disposed:
            try:
                self._view.on_error(error)
            except Exception:
                logger.exception("View failed to handle error")
        return Err(error)


def _as_phasetrack_error(error: Exception, context: str) -> PhaseTrackError:
    """Pass classified errors through; wrap anything else a transport raised."""
    if isinstance(error, PhaseTrackError):
        return error
    logger.error("%s: %r", context, error, exc_info=error)
    return TransportFailureError(f"{context}: {error}")
