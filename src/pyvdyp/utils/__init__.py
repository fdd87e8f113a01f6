"""
Utility functions for PyVDYP.

This module provides common utilities used throughout the codebase.
"""

from .string_utils import normalize_code, normalize_species_code
from .site_curve_tables import (
    generate_height_age_table,
    get_age_at_height,
    get_height_at_age,
    estimate_age_from_height,
    compare_site_curves,
)

__all__ = [
    "normalize_code",
    "normalize_species_code",
    "generate_height_age_table",
    "get_age_at_height",
    "get_height_at_age",
    "estimate_age_from_height",
    "compare_site_curves",
]
