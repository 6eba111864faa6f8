"""Tests for factory functions and public API."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

import phasetrack
from phasetrack import (
    PortalTransport,
    Settings,
    SyncEngine,
    create_sync_engine,
    create_transport,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from phasetrack.models import TrackingSnapshot
    from tests.conftest import FakeTransport, RecordingView


class TestCreateTransport:
    """Tests for create_transport factory function."""

    @pytest.mark.asyncio
    async def test_wires_settings_into_clients(self) -> None:
        settings = Settings(
            base_url="https://portal.example.com",
            auth_token="tok",
            reconnect_delay_seconds=2.0,
        )

        transport = create_transport(settings)

        assert isinstance(transport, PortalTransport)
        assert transport.hub._url == "wss://portal.example.com/ws"
        assert transport.hub._auth_token == "tok"
        assert transport.hub._reconnect_delay == 2.0
        assert transport.is_live is False
        await transport.aclose()


class TestCreateSyncEngine:
    """Tests for create_sync_engine factory function."""

    def test_creates_unstarted_engine(
        self, transport: FakeTransport, view: RecordingView
    ) -> None:
        engine = create_sync_engine(
            "p1", transport, view, settings=Settings(poll_interval_seconds=0)
        )

        assert isinstance(engine, SyncEngine)
        assert engine.project_id == "p1"
        assert engine.is_loaded is False
        assert transport.calls == []

    @pytest.mark.asyncio
    async def test_poll_interval_from_settings(
        self,
        transport: FakeTransport,
        view: RecordingView,
        make_snapshot: Callable[..., TrackingSnapshot],
    ) -> None:
        transport.snapshot = make_snapshot()
        engine = create_sync_engine(
            "p1", transport, view, settings=Settings(poll_interval_seconds=60)
        )

        await engine.start()
        assert engine._poller is not None
        assert engine._poller.interval_seconds == 60
        await engine.dispose()


class TestPublicAPI:
    """Tests for public API exports."""

    def test_all_exports_resolve(self) -> None:
        """Everything in __all__ should be importable from the package."""
        for name in phasetrack.__all__:
            assert hasattr(phasetrack, name), name

    def test_key_exports(self) -> None:
        for name in (
            "SyncEngine",
            "PhaseStateMachine",
            "ActionStore",
            "TransportAdapter",
            "ViewPort",
            "create_sync_engine",
            "create_transport",
        ):
            assert name in phasetrack.__all__
