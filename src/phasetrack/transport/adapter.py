"""TransportAdapter backed by the portal REST API and socket hub."""

from __future__ import annotations

from typing import Self

from phasetrack.models.action import ActionStatus
from phasetrack.models.tracking import AdvanceReceipt, TrackingSnapshot
from phasetrack.transport.events import HubSubscription, ProjectEventHub
from phasetrack.transport.http import PortalHttpClient
from phasetrack.types import EventHandler


class PortalTransport:
    """Combines REST calls and the shared event hub behind one adapter.

    Owns both halves: ``start`` connects the hub, ``aclose`` stops it and
    closes the HTTP client. Sync engines only borrow the transport.
    """

    def __init__(self, http: PortalHttpClient, hub: ProjectEventHub) -> None:
        self._http = http
        self._hub = hub

    @property
    def hub(self) -> ProjectEventHub:
        return self._hub

    @property
    def is_live(self) -> bool:
        return self._hub.is_live

    async def fetch_tracking(self, project_id: str) -> TrackingSnapshot:
        return await self._http.fetch_tracking(project_id)

    async def request_advance(
        self, project_id: str, target_index: int
    ) -> AdvanceReceipt:
        return await self._http.request_advance(project_id, target_index)

    async def set_action_status(
        self, action_id: str, is_completed: bool
    ) -> ActionStatus:
        return await self._http.set_action_status(action_id, is_completed)

    def subscribe(self, project_id: str, handler: EventHandler) -> HubSubscription:
        return self._hub.subscribe(project_id, handler)

    def start(self) -> None:
        """Connect the event hub."""
        self._hub.start()

    async def aclose(self) -> None:
        await self._hub.stop()
        await self._http.aclose()

    async def __aenter__(self) -> Self:
        self.start()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()
