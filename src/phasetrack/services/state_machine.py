"""Phase state machine: current phase, derived statuses, advancement gate."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from phasetrack.exceptions import ValidationFailureError
from phasetrack.models.enums import PhaseStatus
from phasetrack.models.phase import Phase
from phasetrack.models.results import Err, Ok, Result
from phasetrack.services.action_store import ActionStore

logger = logging.getLogger(__name__)


class PhaseStateMachine:
    """Owns the current phase index of a project.

    Phase statuses are a pure projection of the current index and are never
    stored. Advancement is single-step forward only and gated on the current
    phase's required actions; the index itself only moves when the backend
    confirms a transition (see SyncEngine).

    Invariant:
        ``0 <= current_index < len(phases)``
    """

    def __init__(
        self,
        phases: Sequence[Phase],
        action_store: ActionStore,
        current_index: int = 0,
    ) -> None:
        """Initialize the state machine.

        Args:
            phases: The session's phase catalog (non-empty).
            action_store: Store used to evaluate advancement gates.
            current_index: Initial phase index.

        Raises:
            ValidationFailureError: If the catalog is empty or the index is
                out of range.
        """
        if not phases:
            raise ValidationFailureError("Phase catalog is empty")
        self._phases = list(phases)
        self._store = action_store
        self._current = 0
        self.move_to(current_index)

    @property
    def phases(self) -> list[Phase]:
        return list(self._phases)

    @property
    def current_index(self) -> int:
        return self._current

    @property
    def current_phase(self) -> Phase:
        return self._phases[self._current]

    @property
    def is_final_phase(self) -> bool:
        return self._current == len(self._phases) - 1

    def contains(self, index: int) -> bool:
        """Whether an index addresses a phase of the catalog."""
        return 0 <= index < len(self._phases)

    def status_of(self, index: int) -> PhaseStatus:
        """Status of a phase relative to the current phase."""
        if index < self._current:
            return PhaseStatus.COMPLETED
        if index == self._current:
            return PhaseStatus.CURRENT
        if index == self._current + 1:
            return PhaseStatus.NEXT
        return PhaseStatus.LOCKED

    def statuses(self) -> list[tuple[Phase, PhaseStatus]]:
        """Every phase paired with its derived status, in catalog order."""
        return [(phase, self.status_of(i)) for i, phase in enumerate(self._phases)]

    def can_advance(self, from_index: int) -> bool:
        """Whether every required action of a phase is completed."""
        if not self.contains(from_index):
            return False
        phase_key = self._phases[from_index].key
        return not self._store.required_incomplete(phase_key)

    def check_advance(self, target_index: int) -> Result[int]:
        """Local gate for an advance request.

        Only ``current + 1`` is a valid target and only once the current
        phase's required actions are all completed. Jumps and backwards moves
        remain the backend's prerogative.

        Returns:
            ``Ok(target_index)`` if the request may go out, otherwise
            ``Err(ValidationFailureError)``.
        """
        if target_index != self._current + 1:
            return Err(
                ValidationFailureError(
                    f"Can only advance one phase at a time "
                    f"(current {self._current}, requested {target_index})"
                )
            )
        if not self.contains(target_index):
            return Err(ValidationFailureError("Already at the final phase"))

        pending = self._store.required_incomplete(self.current_phase.key)
        if pending:
            names = ", ".join(a.name or a.id for a in pending)
            return Err(
                ValidationFailureError(
                    f"Complete required actions before advancing: {names}"
                )
            )
        return Ok(target_index)

    def move_to(self, index: int) -> None:
        """Set the current phase index (confirmed transitions only).

        Raises:
            ValidationFailureError: If the index is outside the catalog.
        """
        if not self.contains(index):
            raise ValidationFailureError(
                f"Phase index {index} outside catalog of {len(self._phases)}"
            )
        if index != self._current:
            logger.debug(
                "Phase %d -> %d (%s)", self._current, index, self._phases[index].key
            )
        self._current = index
