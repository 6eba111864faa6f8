"""Shared type definitions."""

from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import TypeAlias

from phasetrack.models.action import ActionStatus
from phasetrack.models.events import RemoteEvent

# Callable type aliases for dependency injection
Clock: TypeAlias = Callable[[], datetime]
StatusListener: TypeAlias = Callable[[ActionStatus], None]
EventHandler: TypeAlias = Callable[[RemoteEvent], object]
RefreshCallback: TypeAlias = Callable[[], Awaitable[object]]
LivenessProbe: TypeAlias = Callable[[], bool]


def utc_now() -> datetime:
    """Default clock."""
    return datetime.now(UTC)
