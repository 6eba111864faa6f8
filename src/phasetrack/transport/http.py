"""REST client for the portal's phase tracking endpoints."""

from __future__ import annotations

import logging
from typing import Any, Self

import httpx
from pydantic import ValidationError

from phasetrack.exceptions import TransportFailureError, error_for_status
from phasetrack.models.action import ActionStatus
from phasetrack.models.tracking import AdvanceReceipt, TrackingSnapshot

logger = logging.getLogger(__name__)

ADVANCE_NOTES = "Client requested phase advancement"


class PortalHttpClient:
    """Async REST client for tracking snapshots, advances and action writes.

    Every failure is raised as a classified ``PhaseTrackError``: non-2xx
    statuses via ``error_for_status``, everything else (connection errors,
    non-JSON bodies, schema mismatches) as ``TransportFailureError``.
    """

    def __init__(
        self,
        base_url: str,
        auth_token: str | None = None,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Portal base URL (without the ``/api`` suffix).
            auth_token: Optional bearer token.
            timeout: Request timeout in seconds.
            client: Pre-built httpx client (tests inject one with a
                ``MockTransport``). Closed by ``aclose`` either way.
        """
        headers = {"Accept": "application/json"}
        if auth_token:
            headers["Authorization"] = f"Bearer {auth_token}"

        if client is None:
            client = httpx.AsyncClient(
                base_url=base_url.rstrip("/"), headers=headers, timeout=timeout
            )
        else:
            client.headers.update(headers)
        self._client = client

    async def fetch_tracking(self, project_id: str) -> TrackingSnapshot:
        data = await self._request("GET", f"/api/phases/project/{project_id}/tracking")
        try:
            return TrackingSnapshot.model_validate(data)
        except ValidationError as e:
            raise TransportFailureError(
                f"Invalid tracking payload: {e.errors()[0]['msg']}"
            ) from e

    async def request_advance(
        self, project_id: str, target_index: int
    ) -> AdvanceReceipt:
        data = await self._request(
            "POST",
            f"/api/phases/projects/{project_id}/advance",
            json={"next_phase_index": target_index, "notes": ADVANCE_NOTES},
        )
        if data.get("success") is False:
            raise TransportFailureError(
                _error_message(data) or "Failed to advance phase"
            )

        new_phase = data.get("new_phase")
        if isinstance(new_phase, dict):
            payload = {"index": target_index, **new_phase}
        else:
            payload = {"index": target_index}
        payload["message"] = data.get("message")

        try:
            return AdvanceReceipt.model_validate(payload)
        except ValidationError as e:
            raise TransportFailureError(
                f"Invalid advance payload: {e.errors()[0]['msg']}"
            ) from e

    async def set_action_status(
        self, action_id: str, is_completed: bool
    ) -> ActionStatus:
        data = await self._request(
            "PUT",
            f"/api/phases/actions/{action_id}/status",
            json={"is_completed": is_completed},
        )
        row = data.get("status")
        if not isinstance(row, dict):
            # Older backends answer with just a message
            return ActionStatus(action_id=action_id, is_completed=is_completed)

        try:
            return ActionStatus.model_validate({"action_id": action_id, **row})
        except ValidationError as e:
            raise TransportFailureError(
                f"Invalid action status payload: {e.errors()[0]['msg']}"
            ) from e

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise TransportFailureError(f"Network error: {e}") from e

        if response.is_error:
            body = _json_or_none(response)
            message = _error_message(body) if isinstance(body, dict) else None
            logger.debug("%s %s -> %d", method, path, response.status_code)
            raise error_for_status(response.status_code, message)

        body = _json_or_none(response)
        if not isinstance(body, dict):
            raise TransportFailureError(f"Expected JSON object from {path}")
        return body


def _json_or_none(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def _error_message(body: dict[str, Any]) -> str | None:
    message = body.get("error") or body.get("message")
    return str(message) if message else None
