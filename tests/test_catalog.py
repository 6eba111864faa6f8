"""Tests for phase catalog resolution."""

import pytest

from phasetrack.exceptions import CatalogError
from phasetrack.models import Phase, ServiceConfig
from phasetrack.models.phase import ServiceType
from phasetrack.services import catalog


def _phase(key: str, order: int) -> Phase:
    return Phase(key=key, name=key.title(), order=order)


class TestResolve:
    """Tests for resolve()."""

    def test_default_catalog_without_config(self) -> None:
        """Should return the fixed eight-phase workflow."""
        phases = catalog.resolve()

        assert [p.key for p in phases] == [
            "onboarding",
            "ideation",
            "design",
            "review",
            "production",
            "payment",
            "signoff",
            "delivery",
        ]
        assert [p.order for p in phases] == list(range(8))

    def test_default_catalog_when_config_has_no_phases(self) -> None:
        """Should fall back to the default when phases are missing or empty."""
        assert len(catalog.resolve(ServiceConfig(services=["BRAND"]))) == 8
        assert len(catalog.resolve(ServiceConfig(phases=[]))) == 8

    def test_dynamic_catalog_returned_verbatim(self) -> None:
        """Should use the service-specific phases as given."""
        config = ServiceConfig(phases=[_phase("ONB", 1), _phase("WRAP", 9)])

        phases = catalog.resolve(config)

        assert [p.key for p in phases] == ["ONB", "WRAP"]

    def test_returns_fresh_list(self) -> None:
        """Mutating the result must not affect the default catalog."""
        phases = catalog.resolve()
        phases.clear()

        assert len(catalog.resolve()) == 8

    def test_rejects_unordered_dynamic_catalog(self) -> None:
        """Should raise CatalogError when order is not strictly increasing."""
        config = ServiceConfig(phases=[_phase("A", 2), _phase("B", 2)])

        with pytest.raises(CatalogError):
            catalog.resolve(config)


class TestValidateCatalog:
    """Tests for validate_catalog()."""

    def test_accepts_increasing_orders_with_gaps(self) -> None:
        """Gaps in order are fine as long as it strictly increases."""
        catalog.validate_catalog([_phase("A", 0), _phase("B", 5), _phase("C", 10)])

    def test_rejects_empty(self) -> None:
        """Should reject an empty catalog."""
        with pytest.raises(CatalogError, match="empty"):
            catalog.validate_catalog([])

    def test_rejects_duplicate_keys(self) -> None:
        """Should reject duplicate phase keys."""
        with pytest.raises(CatalogError, match="Duplicate"):
            catalog.validate_catalog([_phase("A", 0), _phase("A", 1)])

    def test_rejects_decreasing_order(self) -> None:
        """Should reject a phase ordered before its predecessor."""
        with pytest.raises(CatalogError):
            catalog.validate_catalog([_phase("A", 3), _phase("B", 1)])


class TestComposePhases:
    """Tests for compose_phases()."""

    @pytest.fixture
    def library(self) -> list[Phase]:
        return [
            _phase("ONB", 0),
            _phase("DISC", 1),
            _phase("DSGN", 2),
            _phase("DEV", 3),
            _phase("WRAP", 9),
        ]

    @pytest.fixture
    def service_types(self) -> list[ServiceType]:
        return [
            ServiceType(code="BRAND", default_phase_keys=["DSGN", "DISC"]),
            ServiceType(code="WEB", default_phase_keys=["DSGN", "DEV"]),
        ]

    def test_union_with_bookends_sorted_by_order(
        self, library: list[Phase], service_types: list[ServiceType]
    ) -> None:
        """Should merge service phases, add bookends and sort by order."""
        phases = catalog.compose_phases(["WEB", "BRAND"], service_types, library)

        assert [p.key for p in phases] == ["ONB", "DISC", "DSGN", "DEV", "WRAP"]

    def test_unknown_service_codes_skipped(
        self, library: list[Phase], service_types: list[ServiceType]
    ) -> None:
        """Unknown services only contribute the bookends."""
        phases = catalog.compose_phases(["PRINT"], service_types, library)

        assert [p.key for p in phases] == ["ONB", "WRAP"]

    def test_phase_keys_missing_from_library_skipped(
        self, service_types: list[ServiceType]
    ) -> None:
        """Keys not in the library are dropped."""
        library = [_phase("ONB", 0), _phase("DSGN", 2)]

        phases = catalog.compose_phases(["BRAND"], service_types, library)

        assert [p.key for p in phases] == ["ONB", "DSGN"]

    def test_requires_services(
        self, library: list[Phase], service_types: list[ServiceType]
    ) -> None:
        """Should raise CatalogError for an empty service list."""
        with pytest.raises(CatalogError, match="required"):
            catalog.compose_phases([], service_types, library)


class TestIndexOf:
    """Tests for index_of()."""

    def test_finds_key(self) -> None:
        assert catalog.index_of(catalog.DEFAULT_PHASES, "review") == 3

    def test_missing_key(self) -> None:
        assert catalog.index_of(catalog.DEFAULT_PHASES, "nope") is None


class TestPhaseAliases:
    """Phases accept the alternative field names backends send."""

    def test_label_and_sort_order(self) -> None:
        phase = Phase.model_validate(
            {"key": "ONB", "label": "Kickoff", "sort_order": 4}
        )

        assert phase.name == "Kickoff"
        assert phase.order == 4

    def test_order_index(self) -> None:
        phase = Phase.model_validate({"key": "X", "name": "X", "order_index": 7})

        assert phase.order == 7
