"""
PyVDYP: site index curves and forward polygon processing for Python

A Python implementation of the site index curve solvers and the forward
polygon repair stages of the Variable Density Yield Projection (VDYP) model
used for British Columbia forest inventory.

Quick Start:
    >>> from pyvdyp import SiteIndexEquation, AgeType, height_from_age, age_from_height
    >>> height = height_from_age(SiteIndexEquation.FDC_BRUCE, 60, AgeType.TOTAL, 30.0)
    >>> round(age_from_height(SiteIndexEquation.FDC_BRUCE, height, AgeType.TOTAL, 30.0), 2)
    60.0
"""

# =============================================================================
# Package Metadata
# =============================================================================
__version__ = "0.1.0"
__author__ = "PyVDYP Development Team"

# =============================================================================
# Site Index Curves
# =============================================================================
from .site_index import (
    AgeType,
    CurveFamily,
    SiteIndexEquation,
    SolvingStrategy,
    EquationSpec,
    get_equation_registry,
    height_from_age,
    age_from_height,
    years_to_breast_height,
    age_to_age,
    site_index_from_height,
    SiteIndexConverter,
    convert_site_index,
    Region,
    SiteCurveMap,
    get_default_curve,
)

# =============================================================================
# Genus Rules
# =============================================================================
from .genus import (
    Genus,
    HARDWOODS,
    ITG_PURE,
    PRIMARY_SPECIES_TO_COMBINE,
    combine_percentages,
    find_inventory_type_group,
)

# =============================================================================
# Polygon Bank and Forward Processing
# =============================================================================
from .bank import PolygonBank, SpeciesSlot, SpeciesRankingDetails, UtilizationClass
from .forward import ExecutionStep, ForwardProcessingEngine, ForwardProcessingResults

# =============================================================================
# Configuration Loading
# =============================================================================
from .config_loader import ConfigLoader, get_config_loader

# =============================================================================
# Logging
# =============================================================================
from .logging_config import setup_logging, get_logger

# =============================================================================
# Exceptions
# =============================================================================
from .exceptions import (
    VDYPError,
    ConfigurationError,
    UnknownCurveError,
    InvalidCurveError,
    InvalidSpeciesError,
    InvalidArgumentError,
    SiteIndexError,
    BelowBreastHeightError,
    NoConvergenceError,
    GrowthInterceptTotalAgeError,
    GrowthInterceptRangeError,
    NoConversionError,
    ProcessingError,
    NoSpeciesRemainingError,
    NoCurveAvailableError,
    UnrecognizedGenusError,
    DataError,
    InvalidDataError,
)

__all__ = [
    # Metadata
    "__version__",
    # Site index curves
    "AgeType",
    "CurveFamily",
    "SiteIndexEquation",
    "SolvingStrategy",
    "EquationSpec",
    "get_equation_registry",
    "height_from_age",
    "age_from_height",
    "years_to_breast_height",
    "age_to_age",
    "site_index_from_height",
    "SiteIndexConverter",
    "convert_site_index",
    "Region",
    "SiteCurveMap",
    "get_default_curve",
    # Genus rules
    "Genus",
    "HARDWOODS",
    "ITG_PURE",
    "PRIMARY_SPECIES_TO_COMBINE",
    "combine_percentages",
    "find_inventory_type_group",
    # Bank and forward processing
    "PolygonBank",
    "SpeciesSlot",
    "SpeciesRankingDetails",
    "UtilizationClass",
    "ExecutionStep",
    "ForwardProcessingEngine",
    "ForwardProcessingResults",
    # Configuration
    "ConfigLoader",
    "get_config_loader",
    # Logging
    "setup_logging",
    "get_logger",
    # Exceptions
    "VDYPError",
    "ConfigurationError",
    "UnknownCurveError",
    "InvalidCurveError",
    "InvalidSpeciesError",
    "InvalidArgumentError",
    "SiteIndexError",
    "BelowBreastHeightError",
    "NoConvergenceError",
    "GrowthInterceptTotalAgeError",
    "GrowthInterceptRangeError",
    "NoConversionError",
    "ProcessingError",
    "NoSpeciesRemainingError",
    "NoCurveAvailableError",
    "UnrecognizedGenusError",
    "DataError",
    "InvalidDataError",
]
