"""Business logic services for phasetrack.

Public API:
    SyncEngine - Reconciles snapshot, optimistic and real-time state
    PhaseStateMachine - Current phase, derived statuses, advancement gate
    ActionStore - Client actions and their completion status

Protocols (for dependency injection):
    TransportAdapter - Backend boundary (REST + real-time events)
    ViewPort - Rendering layer notified of state changes and errors
    Subscription - Handle returned by TransportAdapter.subscribe

Internal (not exported):
    AutoRefreshPoller - Snapshot polling while no socket is live
    catalog, progress - Pure functions used by the engine
"""

from phasetrack.services.action_store import ActionStore
from phasetrack.services.protocols import Subscription, TransportAdapter, ViewPort
from phasetrack.services.state_machine import PhaseStateMachine
from phasetrack.services.sync_engine import SyncEngine

__all__ = [
    "ActionStore",
    "PhaseStateMachine",
    "Subscription",
    "SyncEngine",
    "TransportAdapter",
    "ViewPort",
]
