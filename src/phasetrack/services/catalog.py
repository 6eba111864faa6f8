"""Phase catalog resolution.

A session uses exactly one ordered phase list for its lifetime: either the
fixed eight-phase workflow or a service-specific list supplied by the backend.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from phasetrack.exceptions import CatalogError
from phasetrack.models.phase import Phase, ServiceConfig, ServiceType

logger = logging.getLogger(__name__)

# Phase library keys every composed catalog starts and ends with
BOOKEND_PHASE_KEYS = ("ONB", "WRAP")

DEFAULT_PHASES: tuple[Phase, ...] = (
    Phase(
        key="onboarding",
        name="Onboarding",
        order=0,
        description="Initial kickoff and info gathering",
        icon="1",
    ),
    Phase(
        key="ideation",
        name="Ideation",
        order=1,
        description="Brainstorming & concept development",
        icon="2",
    ),
    Phase(
        key="design",
        name="Design",
        order=2,
        description="Creation of designs and prototypes",
        icon="3",
    ),
    Phase(
        key="review",
        name="Review",
        order=3,
        description="Client review and feedback collection",
        icon="4",
    ),
    Phase(
        key="production",
        name="Production",
        order=4,
        description="Final production and printing",
        icon="5",
    ),
    Phase(
        key="payment",
        name="Payment",
        order=5,
        description="Final payment collection",
        icon="6",
    ),
    Phase(
        key="signoff",
        name="Sign-off",
        order=6,
        description="Final approvals and documentation",
        icon="7",
    ),
    Phase(
        key="delivery",
        name="Delivery",
        order=7,
        description="Final deliverables and handover",
        icon="8",
    ),
)


def resolve(service_config: ServiceConfig | None = None) -> list[Phase]:
    """Resolve the phase catalog for a session.

    Args:
        service_config: Optional service configuration from the snapshot.
            A non-empty ``phases`` list is returned verbatim.

    Returns:
        Phases in strictly increasing ``order``.

    Raises:
        CatalogError: If the dynamic catalog is unordered or has duplicate keys.
    """
    if service_config is not None and service_config.phases:
        phases = list(service_config.phases)
        validate_catalog(phases)
        return phases
    return list(DEFAULT_PHASES)


def validate_catalog(phases: Sequence[Phase]) -> None:
    """Check ordering and key uniqueness of a catalog.

    Raises:
        CatalogError: If the catalog is empty, not strictly increasing in
            ``order``, or contains duplicate keys.
    """
    if not phases:
        raise CatalogError("Phase catalog is empty")

    seen: set[str] = set()
    previous: Phase | None = None
    for phase in phases:
        if phase.key in seen:
            raise CatalogError(f"Duplicate phase key in catalog: {phase.key}")
        seen.add(phase.key)
        if previous is not None and phase.order <= previous.order:
            raise CatalogError(
                f"Phase {phase.key!r} (order {phase.order}) is not after "
                f"{previous.key!r} (order {previous.order})"
            )
        previous = phase


def compose_phases(
    services: Sequence[str],
    service_types: Iterable[ServiceType],
    library: Iterable[Phase],
) -> list[Phase]:
    """Build a dynamic catalog from the services sold on a project.

    Collects every selected service's default phase keys, always adds the
    onboarding and wrap-up bookends, then resolves keys against the phase
    library and sorts by library order. Unknown service codes and phase keys
    are skipped.

    Args:
        services: Service codes on the project.
        service_types: All known service types.
        library: The phase library.

    Returns:
        The composed phase list, sorted by ``order``.

    Raises:
        CatalogError: If ``services`` is empty.
    """
    if not services:
        raise CatalogError("Services list is required to compose phases")

    by_code = {service.code: service for service in service_types}
    phase_keys: set[str] = set(BOOKEND_PHASE_KEYS)
    for code in services:
        if service := by_code.get(code):
            phase_keys.update(service.default_phase_keys)
        else:
            logger.debug("Unknown service code skipped: %s", code)

    by_key = {phase.key: phase for phase in library}
    missing = phase_keys - by_key.keys()
    if missing:
        logger.debug("Phase keys missing from library: %s", sorted(missing))

    return sorted(
        (by_key[key] for key in phase_keys if key in by_key),
        key=lambda phase: phase.order,
    )


def index_of(phases: Sequence[Phase], key: str) -> int | None:
    """Position of a phase key in a catalog, or None if absent."""
    for index, phase in enumerate(phases):
        if phase.key == key:
            return index
    return None
