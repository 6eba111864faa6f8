"""Test fixtures and configuration for phasetrack tests.

This module provides shared fixtures organized into:
- Time utilities: Deterministic clock
- Fakes: Transport and view implementing the service protocols
- Factory fixtures: Builders for phases, actions and snapshots
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import pytest

from phasetrack.exceptions import PhaseTrackError
from phasetrack.models import (
    ActionStatus,
    AdvanceReceipt,
    ClientAction,
    Phase,
    PhaseTrackingState,
    TrackingSnapshot,
)
from phasetrack.services.catalog import DEFAULT_PHASES

if TYPE_CHECKING:
    from collections.abc import Callable

    from phasetrack.types import EventHandler


# =============================================================================
# Time Utilities
# =============================================================================


class MockClock:
    """Mock clock for deterministic time-based testing.

    Usage:
        clock = MockClock()
        clock.advance(60)  # Advance by 60 seconds
    """

    def __init__(self, initial: datetime | None = None) -> None:
        self._time = initial or datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self._time

    def advance(self, seconds: int) -> None:
        """Advance the clock by the specified seconds."""
        self._time += timedelta(seconds=seconds)


@pytest.fixture
def clock() -> MockClock:
    """Provide a mock clock."""
    return MockClock()


# =============================================================================
# Fakes
# =============================================================================


class FakeSubscription:
    def __init__(self, transport: FakeTransport, project_id: str) -> None:
        self._transport = transport
        self.project_id = project_id
        self.unsubscribe_calls = 0

    def unsubscribe(self) -> None:
        self.unsubscribe_calls += 1
        self._transport.handlers.pop(self.project_id, None)


class FakeTransport:
    """In-memory TransportAdapter.

    Responses are configured per operation; setting a ``*_gate`` event makes
    the matching call wait until the test releases it, which lets tests
    interleave events with in-flight requests.
    """

    def __init__(self) -> None:
        self.snapshot: TrackingSnapshot | None = None
        self.fetch_error: Exception | None = None
        self.advance_error: Exception | None = None
        self.status_error: Exception | None = None
        self.status_response: ActionStatus | None = None

        self.fetch_gate: asyncio.Event | None = None
        self.advance_gate: asyncio.Event | None = None
        self.status_gate: asyncio.Event | None = None

        self.calls: list[tuple[str, Any]] = []
        self.handlers: dict[str, EventHandler] = {}
        self.subscriptions: list[FakeSubscription] = []
        self.is_live = False

    def calls_to(self, name: str) -> list[Any]:
        return [args for call, args in self.calls if call == name]

    async def fetch_tracking(self, project_id: str) -> TrackingSnapshot:
        self.calls.append(("fetch_tracking", project_id))
        snapshot, error = self.snapshot, self.fetch_error
        if self.fetch_gate is not None:
            await self.fetch_gate.wait()
        if error is not None:
            raise error
        assert snapshot is not None, "configure transport.snapshot first"
        return snapshot

    async def request_advance(
        self, project_id: str, target_index: int
    ) -> AdvanceReceipt:
        self.calls.append(("request_advance", (project_id, target_index)))
        if self.advance_gate is not None:
            await self.advance_gate.wait()
        if self.advance_error is not None:
            raise self.advance_error
        return AdvanceReceipt(index=target_index, message="ok")

    async def set_action_status(
        self, action_id: str, is_completed: bool
    ) -> ActionStatus:
        self.calls.append(("set_action_status", (action_id, is_completed)))
        if self.status_gate is not None:
            await self.status_gate.wait()
        if self.status_error is not None:
            raise self.status_error
        if self.status_response is not None:
            return self.status_response
        return ActionStatus(action_id=action_id, is_completed=is_completed)

    def subscribe(self, project_id: str, handler: EventHandler) -> FakeSubscription:
        self.calls.append(("subscribe", project_id))
        self.handlers[project_id] = handler
        subscription = FakeSubscription(self, project_id)
        self.subscriptions.append(subscription)
        return subscription

    def emit(self, project_id: str, event: Any) -> None:
        """Deliver an event like the socket hub would."""
        handler = self.handlers.get(project_id)
        if handler is not None:
            handler(event)


class RecordingView:
    """ViewPort that records every notification."""

    def __init__(self) -> None:
        self.states: list[tuple[PhaseTrackingState, list[ClientAction], int]] = []
        self.errors: list[PhaseTrackError] = []

    def on_state_changed(
        self,
        tracking: PhaseTrackingState,
        actions: list[ClientAction],
        percentage: int,
    ) -> None:
        self.states.append((tracking, actions, percentage))

    def on_error(self, error: PhaseTrackError) -> None:
        self.errors.append(error)

    @property
    def last_tracking(self) -> PhaseTrackingState:
        return self.states[-1][0]

    @property
    def last_percentage(self) -> int:
        return self.states[-1][2]


@pytest.fixture
def transport() -> FakeTransport:
    """Provide a fake transport."""
    return FakeTransport()


@pytest.fixture
def view() -> RecordingView:
    """Provide a recording view."""
    return RecordingView()


# =============================================================================
# Factory Fixtures
# =============================================================================


@pytest.fixture
def phases() -> list[Phase]:
    """The default eight-phase catalog."""
    return list(DEFAULT_PHASES)


@pytest.fixture
def make_action() -> Callable[..., ClientAction]:
    """Factory for creating client actions."""

    def _make_action(
        id: str = "a1",
        phase_key: str = "onboarding",
        is_required: bool = True,
        name: str | None = None,
    ) -> ClientAction:
        return ClientAction(
            id=id,
            phase_key=phase_key,
            is_required=is_required,
            name=name if name is not None else f"Action {id}",
        )

    return _make_action


@pytest.fixture
def make_snapshot() -> Callable[..., TrackingSnapshot]:
    """Factory for creating tracking snapshots."""

    def _make_snapshot(
        project_id: str = "p1",
        current_phase_index: int = 0,
        actions: list[ClientAction] | None = None,
        completed: tuple[str, ...] = (),
        is_completed: bool = False,
        service_config: dict[str, Any] | None = None,
    ) -> TrackingSnapshot:
        payload: dict[str, Any] = {
            "project": {"id": project_id, "name": "Test Project"},
            "tracking": {
                "current_phase_index": current_phase_index,
                "action_statuses": [
                    {"action_id": action_id, "is_completed": True}
                    for action_id in completed
                ],
                "is_completed": is_completed,
            },
            "actions": [a.model_dump() for a in actions or []],
        }
        if service_config is not None:
            payload["service_config"] = service_config
        return TrackingSnapshot.model_validate(payload)

    return _make_snapshot
