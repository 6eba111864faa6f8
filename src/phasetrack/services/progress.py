"""Progress percentage derivation."""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

from phasetrack.models.phase import Phase
from phasetrack.models.tracking import PhaseTrackingState
from phasetrack.services.action_store import ActionStore

PROGRESS_COMPLETE = 100


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _clamp(value: int) -> int:
    return max(0, min(PROGRESS_COMPLETE, value))


def percentage(
    tracking: PhaseTrackingState,
    phases: Sequence[Phase],
    action_store: ActionStore,
) -> int:
    """Blend phase-level and action-level completion into 0..100.

    Phase progress places the current phase on a 0..100 line. Actions of the
    current phase then add up to one phase slot (``100 / len(phases)``) so a
    phase with half its actions done sits halfway to the next phase's
    baseline. Halves round up.

    A single-phase catalog has no line to place the phase on: its actions
    carry the whole range, and with no actions the project's completed flag
    decides between 0 and 100.

    Args:
        tracking: Current tracking state.
        phases: The session's phase catalog.
        action_store: Actions and their statuses.

    Returns:
        Integer percentage clamped to [0, 100].
    """
    total_phases = len(phases)
    if total_phases == 0:
        return 0

    index = min(max(tracking.current_phase_index, 0), total_phases - 1)
    completed, total = action_store.phase_counts(phases[index].key)

    if total_phases == 1:
        if total == 0:
            return PROGRESS_COMPLETE if tracking.is_completed else 0
        return _clamp(_round_half_up(completed / total * PROGRESS_COMPLETE))

    phase_progress = index / (total_phases - 1) * PROGRESS_COMPLETE
    action_progress = 0.0
    if total > 0:
        action_progress = (completed / total) * (PROGRESS_COMPLETE / total_phases)

    return _clamp(_round_half_up(phase_progress + action_progress))


def phase_only_percentage(current_index: int, total_phases: int) -> int:
    """Coarse progress used by compact project cards (no action blending)."""
    if total_phases <= 1:
        return 0
    index = min(max(current_index, 0), total_phases - 1)
    return _round_half_up(index / (total_phases - 1) * PROGRESS_COMPLETE)


@dataclass(frozen=True, slots=True)
class PhaseSummary:
    """Task counts of one phase ("2 of 3 tasks complete")."""

    phase_key: str
    completed: int
    total: int

    @property
    def ratio(self) -> float:
        """Completed share in 0.0..1.0 (0.0 for a phase without actions)."""
        return self.completed / self.total if self.total else 0.0

    @property
    def label(self) -> str:
        return f"{self.completed} of {self.total} tasks complete"


def phase_summary(phase: Phase, action_store: ActionStore) -> PhaseSummary:
    """Summarize action completion for one phase."""
    completed, total = action_store.phase_counts(phase.key)
    return PhaseSummary(phase_key=phase.key, completed=completed, total=total)
