"""
Shared pytest fixtures for PyVDYP tests.

This module provides commonly used fixtures for testing the site index
solvers and forward processing, reducing code duplication across test files.
"""
import numpy as np
import pytest

from pyvdyp.bank import PolygonBank, SpeciesSlot, UtilizationClass
from pyvdyp.forward import ForwardProcessingEngine
from pyvdyp.site_index.equations import get_equation_registry


# =============================================================================
# Registry Fixtures
# =============================================================================

@pytest.fixture(scope="session")
def registry():
    """Return the process-wide equation registry.

    Session-scoped; the registry is read-only once loaded.
    """
    return get_equation_registry()


# =============================================================================
# Bank Fixtures - The coastal test polygon
# =============================================================================

# Basal area (m2/ha) of all trees 7.5 cm and over, per genus
COASTAL_BASAL_AREAS = {
    'B': 0.40292,
    'C': 5.04597,
    'D': 29.30249,
    'H': 5.81006,
    'S': 4.37115,
}
COASTAL_TOTAL_BASAL_AREA = 44.93259


def make_slot(genus, basal_area, **values):
    """Build a species slot with basal area in the 'all' utilization class."""
    vector = np.zeros(len(UtilizationClass))
    vector[UtilizationClass.ALL.index] = basal_area
    return SpeciesSlot(genus=genus, sp64_distribution={genus: 100.0}, basal_area=vector, **values)


def make_bank(slots, polygon_id="01002 S000001 00", year=1970, region="C"):
    """Build a coastal bank whose aggregate sums the slots."""
    return PolygonBank.from_species(polygon_id, year, region, slots, bec_zone="CWH")


@pytest.fixture
def coastal_bank():
    """Create the five species coastal test polygon.

    Returns a PolygonBank (CWH, 1970) with:
    - B: 0.40292 m2/ha, age 15, 11 years at breast height
    - C: 5.04597 m2/ha, site index 34
    - D: 29.30249 m2/ha, age 55, 54 years at breast height, no site index
    - H: 5.81006 m2/ha, site index 25
    - S: 4.37115 m2/ha, site index 28

    D and H have the two largest covers. No species has a site curve.
    """
    return make_bank([
        make_slot('B', COASTAL_BASAL_AREAS['B'], age_total=15.0, years_at_breast_height=11.0),
        make_slot('C', COASTAL_BASAL_AREAS['C'], site_index=34.0),
        make_slot('D', COASTAL_BASAL_AREAS['D'], age_total=55.0, years_at_breast_height=54.0),
        make_slot('H', COASTAL_BASAL_AREAS['H'], site_index=25.0),
        make_slot('S', COASTAL_BASAL_AREAS['S'], site_index=28.0),
    ])


@pytest.fixture
def bank_with_small_species():
    """Create the coastal test polygon with B below the basal area minimum.

    Returns a PolygonBank like coastal_bank but with B at 0.0005 m2/ha.
    """
    return make_bank([
        make_slot('B', 0.0005, age_total=15.0, years_at_breast_height=11.0),
        make_slot('C', COASTAL_BASAL_AREAS['C'], site_index=34.0),
        make_slot('D', COASTAL_BASAL_AREAS['D'], age_total=55.0, years_at_breast_height=54.0),
        make_slot('H', COASTAL_BASAL_AREAS['H'], site_index=25.0),
        make_slot('S', COASTAL_BASAL_AREAS['S'], site_index=28.0),
    ])


# =============================================================================
# Engine Fixtures
# =============================================================================

@pytest.fixture
def engine():
    """Return a ForwardProcessingEngine with default curves and pairs."""
    return ForwardProcessingEngine()


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
