"""Phase catalog models."""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class Phase(BaseModel):
    """One ordered stage of a project workflow.

    Backend payloads use different field names depending on where the phase
    comes from (fixed catalog, phase library, service definition), so both
    ``name``/``label`` and ``order``/``sort_order``/``order_index`` are
    accepted on input.

    Attributes:
        key: Unique phase identifier (e.g. "design", "ONB").
        name: Human-readable phase name.
        order: Position in the workflow; strictly increasing across a catalog.
        description: Optional short description.
        icon: Optional display glyph.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    key: str
    name: str = Field(validation_alias=AliasChoices("name", "label"))
    order: int = Field(
        validation_alias=AliasChoices("order", "sort_order", "order_index")
    )
    description: str | None = None
    icon: str | None = None


class ServiceType(BaseModel):
    """A sellable service and the phases it brings into a project.

    Attributes:
        code: Service code referenced by projects (e.g. "BRAND").
        name: Display name.
        default_phase_keys: Phase library keys this service requires.
    """

    model_config = ConfigDict(frozen=True)

    code: str
    name: str = ""
    default_phase_keys: list[str] = Field(default_factory=list)


class ServiceConfig(BaseModel):
    """Service-specific configuration delivered with a tracking snapshot.

    When ``phases`` is present and non-empty it replaces the default catalog
    for the whole session.
    """

    model_config = ConfigDict(frozen=True)

    services: list[str] = Field(default_factory=list)
    phases: list[Phase] | None = None
