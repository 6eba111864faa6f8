"""Shared socket connection delivering real-time project events."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from websockets.asyncio.client import connect as ws_connect
from websockets.exceptions import WebSocketException

from phasetrack.models.events import parse_remote_event
from phasetrack.types import EventHandler

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class HubSubscription:
    """Registration of one handler for one project."""

    project_id: str
    handler: EventHandler
    _hub: ProjectEventHub = field(repr=False)
    _active: bool = True

    @property
    def is_active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if not self._active:
            return
        self._active = False
        self._hub._remove(self)


class ProjectEventHub:
    """One websocket connection fanned out to per-project handlers.

    The connection is owned by the hub, not by individual sync engines:
    several engines (one per mounted project view) share it, and each only
    receives events addressed to its project. Malformed messages and events
    with an unknown ``type`` are logged and dropped.

    The hub reconnects after ``reconnect_delay`` seconds whenever the socket
    drops; ``is_live`` is False while disconnected so pollers can take over.
    """

    def __init__(
        self,
        url: str,
        auth_token: str | None = None,
        reconnect_delay: float = 5.0,
        connect: Callable[..., Any] = ws_connect,
    ) -> None:
        """Initialize the hub.

        Args:
            url: Socket URL (``ws://`` or ``wss://``).
            auth_token: Optional bearer token sent in the handshake.
            reconnect_delay: Seconds to wait before reconnecting.
            connect: Connection factory returning an async context manager
                that yields an async-iterable connection (tests inject fakes).
        """
        self._url = url
        self._auth_token = auth_token
        self._reconnect_delay = reconnect_delay
        self._connect = connect
        self._subscriptions: dict[str, list[HubSubscription]] = {}
        self._task: asyncio.Task[None] | None = None
        self._stop_event = asyncio.Event()
        self._live = False

    @property
    def is_live(self) -> bool:
        return self._live

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def subscriber_count(self, project_id: str | None = None) -> int:
        if project_id is not None:
            return len(self._subscriptions.get(project_id, []))
        return sum(len(subs) for subs in self._subscriptions.values())

    # -------------------------------------------------------------------------
    # Subscriptions
    # -------------------------------------------------------------------------

    def subscribe(self, project_id: str, handler: EventHandler) -> HubSubscription:
        """Register a handler for events addressed to ``project_id``."""
        subscription = HubSubscription(project_id, handler, self)
        self._subscriptions.setdefault(project_id, []).append(subscription)
        logger.debug("Subscribed to events for project %s", project_id)
        return subscription

    def _remove(self, subscription: HubSubscription) -> None:
        subs = self._subscriptions.get(subscription.project_id, [])
        if subscription in subs:
            subs.remove(subscription)
        if not subs:
            self._subscriptions.pop(subscription.project_id, None)

    def dispatch(self, raw: str | bytes | dict[str, Any]) -> int:
        """Parse one socket message and deliver it to matching handlers.

        Returns:
            Number of handlers the event was delivered to.
        """
        event = parse_remote_event(raw)
        if event is None:
            return 0
        if event.project_id is None:
            logger.debug("Dropping %s event without project id", event.type)
            return 0

        delivered = 0
        for subscription in list(self._subscriptions.get(event.project_id, [])):
            if not subscription.is_active:
                continue
            try:
                subscription.handler(event)
            except Exception:
                logger.exception(
                    "Event handler failed for project %s", event.project_id
                )
            delivered += 1
        return delivered

    # -------------------------------------------------------------------------
    # Connection lifecycle
    # -------------------------------------------------------------------------

    def start(self) -> None:
        """Start the connection task."""
        if self._task is not None:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run_loop(), name="phasetrack-events")
        logger.info("Event hub connecting to %s", self._url)

    async def stop(self) -> None:
        """Close the connection and stop reconnecting."""
        if self._task is None:
            return
        self._stop_event.set()
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        self._live = False
        logger.info("Event hub stopped")

    async def _run_loop(self) -> None:
        """Connect, pump messages, reconnect after a delay on failure."""
        headers = {}
        if self._auth_token:
            headers["Authorization"] = f"Bearer {self._auth_token}"

        while not self._stop_event.is_set():
            try:
                async with self._connect(self._url, additional_headers=headers) as ws:
                    self._live = True
                    logger.info("Event hub connected")
                    async for message in ws:
                        self.dispatch(message)
                logger.info("Event hub connection closed")
            except (OSError, WebSocketException) as e:
                logger.warning("Event hub connection failed: %s", e)
            finally:
                self._live = False

            try:
                await asyncio.wait_for(
                    self._stop_event.wait(), timeout=self._reconnect_delay
                )
                break  # Stop event was set
            except TimeoutError:
                logger.debug("Reconnecting event hub")
