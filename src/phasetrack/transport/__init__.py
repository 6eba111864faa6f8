"""Backend transport implementations."""

from phasetrack.transport.adapter import PortalTransport
from phasetrack.transport.events import HubSubscription, ProjectEventHub
from phasetrack.transport.http import PortalHttpClient

__all__ = [
    "HubSubscription",
    "PortalHttpClient",
    "PortalTransport",
    "ProjectEventHub",
]
