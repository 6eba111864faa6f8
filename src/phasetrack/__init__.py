"""phasetrack - Phase progress tracking and real-time sync for project portals.

This library keeps a client project's phase tracking (current phase, action
completion, progress percentage) consistent across snapshot loads,
optimistic local edits and real-time socket events, and renders it through
a pluggable view.

Designed for use as a library behind a portal UI, with a CLI for debugging
and development.

Examples:
    Watch a project:
    ```python
    from phasetrack import create_sync_engine, create_transport, get_settings

    settings = get_settings()
    async with create_transport(settings) as transport:
        engine = create_sync_engine("42", transport, view, settings=settings)
        async with engine:
            await engine.set_action_completion("7", True)
            await engine.request_advance(engine.tracking.current_phase_index + 1)
    ```
"""

from collections.abc import Sequence

from phasetrack.exceptions import (
    AccessDeniedError,
    AuthRequiredError,
    CatalogError,
    DisposedError,
    NotFoundError,
    PhaseTrackError,
    TransportFailureError,
    ValidationFailureError,
)
from phasetrack.models import (
    ActionStatus,
    AdvanceReceipt,
    ClientAction,
    Err,
    ErrorKind,
    Ok,
    Phase,
    PhaseStatus,
    PhaseTrackingState,
    PhaseTransitionEvent,
    ProjectUpdateEvent,
    RemoteEvent,
    Result,
    ServiceConfig,
    TrackingSnapshot,
    parse_remote_event,
)
from phasetrack.services import (
    ActionStore,
    PhaseStateMachine,
    SyncEngine,
    TransportAdapter,
    ViewPort,
)
from phasetrack.services.catalog import DEFAULT_PHASES
from phasetrack.settings import Settings, get_settings
from phasetrack.transport import PortalHttpClient, PortalTransport, ProjectEventHub


def create_transport(settings: Settings | None = None) -> PortalTransport:
    """Create the portal transport (REST client + shared socket hub).

    The caller owns the transport: start it with ``async with`` (or
    ``start()``) and close it with ``aclose()``. One transport can serve any
    number of sync engines.

    Args:
        settings: Optional settings. Uses ``get_settings()`` if not provided.

    Returns:
        A configured PortalTransport instance.
    """
    settings = settings or get_settings()
    http = PortalHttpClient(
        settings.base_url,
        auth_token=settings.token,
        timeout=settings.request_timeout,
    )
    hub = ProjectEventHub(
        settings.ws_url or settings.base_url,
        auth_token=settings.token,
        reconnect_delay=settings.reconnect_delay_seconds,
    )
    return PortalTransport(http, hub)


def create_sync_engine(
    project_id: str,
    transport: TransportAdapter,
    view: ViewPort,
    *,
    phases: Sequence[Phase] | None = None,
    settings: Settings | None = None,
) -> SyncEngine:
    """Create a sync engine for one project view.

    Args:
        project_id: Project to track.
        transport: Backend boundary (borrowed, not owned).
        view: Rendering layer to notify.
        phases: Optional fixed phase catalog. Resolved from the first
            snapshot when omitted.
        settings: Optional settings (poll interval). Uses ``get_settings()``
            if not provided.

    Returns:
        An unstarted SyncEngine. Call ``start()`` or use ``async with``.
    """
    settings = settings or get_settings()
    return SyncEngine(
        project_id,
        transport,
        view,
        phases=phases,
        poll_interval_seconds=settings.poll_interval_seconds,
    )


__all__ = [
    "DEFAULT_PHASES",
    "AccessDeniedError",
    "ActionStatus",
    "ActionStore",
    "AdvanceReceipt",
    "AuthRequiredError",
    "CatalogError",
    "ClientAction",
    "DisposedError",
    "Err",
    "ErrorKind",
    "NotFoundError",
    "Ok",
    "Phase",
    "PhaseStateMachine",
    "PhaseStatus",
    "PhaseTrackError",
    "PhaseTrackingState",
    "PhaseTransitionEvent",
    "PortalHttpClient",
    "PortalTransport",
    "ProjectEventHub",
    "ProjectUpdateEvent",
    "RemoteEvent",
    "Result",
    "ServiceConfig",
    "Settings",
    "SyncEngine",
    "TrackingSnapshot",
    "TransportAdapter",
    "TransportFailureError",
    "ValidationFailureError",
    "ViewPort",
    "create_sync_engine",
    "create_transport",
    "get_settings",
    "parse_remote_event",
]
