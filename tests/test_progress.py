"""Tests for progress percentage derivation."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from phasetrack.models import ClientAction, Phase, PhaseTrackingState
from phasetrack.services import ActionStore, progress

if TYPE_CHECKING:
    from collections.abc import Callable


def _tracking(index: int, is_completed: bool = False) -> PhaseTrackingState:
    return PhaseTrackingState(current_phase_index=index, is_completed=is_completed)


def _catalog(size: int) -> list[Phase]:
    return [Phase(key=f"p{i}", name=f"P{i}", order=i) for i in range(size)]


class TestPercentage:
    """Tests for percentage()."""

    def test_first_phase_without_actions_is_zero(self, phases: list[Phase]) -> None:
        assert progress.percentage(_tracking(0), phases, ActionStore()) == 0

    def test_final_phase_is_hundred(self, phases: list[Phase]) -> None:
        assert progress.percentage(_tracking(7), phases, ActionStore()) == 100

    @pytest.mark.parametrize(
        ("index", "expected"),
        [(1, 14), (3, 43), (4, 57), (6, 86)],
    )
    def test_phase_progress_rounds(
        self, phases: list[Phase], index: int, expected: int
    ) -> None:
        """Phase progress is index / (n - 1) of the full range."""
        assert progress.percentage(_tracking(index), phases, ActionStore()) == expected

    def test_actions_fill_one_phase_slot(
        self, phases: list[Phase], make_action: Callable[..., ClientAction]
    ) -> None:
        """Half of the current phase's actions add half of 100 / n."""
        store = ActionStore(
            [make_action("a1", "design"), make_action("a2", "design")]
        )
        store.set_completion("a1", True)

        # 2/7 * 100 + 0.5 * 12.5 = 34.82
        assert progress.percentage(_tracking(2), phases, store) == 35

    def test_only_current_phase_actions_count(
        self, phases: list[Phase], make_action: Callable[..., ClientAction]
    ) -> None:
        store = ActionStore([make_action("a1", "design")])
        store.set_completion("a1", True)

        assert progress.percentage(_tracking(0), phases, store) == 0

    def test_halves_round_up(self, make_action: Callable[..., ClientAction]) -> None:
        """12.5 rounds to 13, not to the nearest even number."""
        store = ActionStore([make_action("a1", "p0"), make_action("a2", "p0")])
        store.set_completion("a1", True)

        assert progress.percentage(_tracking(0), _catalog(4), store) == 13

    def test_clamped_at_hundred(
        self, phases: list[Phase], make_action: Callable[..., ClientAction]
    ) -> None:
        """Completing every final-phase action cannot exceed 100."""
        store = ActionStore([make_action("a1", "delivery")])
        store.set_completion("a1", True)

        assert progress.percentage(_tracking(7), phases, store) == 100

    def test_out_of_range_index_is_clamped(self, phases: list[Phase]) -> None:
        assert progress.percentage(_tracking(42), phases, ActionStore()) == 100
        assert progress.percentage(_tracking(-3), phases, ActionStore()) == 0

    def test_empty_catalog_is_zero(self) -> None:
        assert progress.percentage(_tracking(0), [], ActionStore()) == 0

    def test_monotonic_over_a_whole_project(
        self, phases: list[Phase], make_action: Callable[..., ClientAction]
    ) -> None:
        """Completing actions and advancing never lowers the percentage."""
        actions = [
            make_action(f"{phase.key}-{n}", phase.key)
            for phase in phases
            for n in range(3)
        ]
        store = ActionStore(actions)
        last = -1

        for index, phase in enumerate(phases):
            value = progress.percentage(_tracking(index), phases, store)
            assert value >= last
            last = value
            for action in store.actions_for_phase(phase.key):
                store.set_completion(action.id, True)
                value = progress.percentage(_tracking(index), phases, store)
                assert value >= last
                last = value

        assert last == 100


class TestSinglePhaseCatalog:
    """A single phase has no line to place the phase on."""

    def test_no_actions_follows_completed_flag(self) -> None:
        phases = _catalog(1)

        assert progress.percentage(_tracking(0), phases, ActionStore()) == 0
        assert progress.percentage(_tracking(0, True), phases, ActionStore()) == 100

    def test_actions_carry_full_range(
        self, make_action: Callable[..., ClientAction]
    ) -> None:
        store = ActionStore([make_action(f"a{i}", "p0") for i in range(3)])
        phases = _catalog(1)

        store.set_completion("a0", True)
        assert progress.percentage(_tracking(0), phases, store) == 33

        store.set_completion("a1", True)
        assert progress.percentage(_tracking(0), phases, store) == 67

        store.set_completion("a2", True)
        assert progress.percentage(_tracking(0), phases, store) == 100


class TestPhaseOnlyPercentage:
    """Tests for phase_only_percentage()."""

    def test_values(self) -> None:
        assert progress.phase_only_percentage(0, 8) == 0
        assert progress.phase_only_percentage(3, 8) == 43
        assert progress.phase_only_percentage(7, 8) == 100

    def test_single_or_empty_catalog(self) -> None:
        assert progress.phase_only_percentage(0, 1) == 0
        assert progress.phase_only_percentage(0, 0) == 0


class TestPhaseSummary:
    """Tests for phase_summary()."""

    def test_counts_and_label(
        self, phases: list[Phase], make_action: Callable[..., ClientAction]
    ) -> None:
        store = ActionStore(
            [make_action(f"a{i}", "review") for i in range(3)]
        )
        store.set_completion("a0", True)
        store.set_completion("a2", True)

        summary = progress.phase_summary(phases[3], store)

        assert summary.label == "2 of 3 tasks complete"
        assert summary.ratio == pytest.approx(2 / 3)

    def test_phase_without_actions(self, phases: list[Phase]) -> None:
        summary = progress.phase_summary(phases[0], ActionStore())

        assert summary.total == 0
        assert summary.ratio == 0.0
