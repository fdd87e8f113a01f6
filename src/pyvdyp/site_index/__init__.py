"""
Site index curves and their solvers.

Height from age, age from height, years to breast height and site index
conversion between curves, for every curve in SiteIndexEquation.
"""
from .equations import (
    AgeType,
    CurveFamily,
    EquationRegistry,
    EquationSpec,
    SiteIndexEquation,
    SolvingStrategy,
    get_equation_registry,
)
from .numeric import BREAST_HEIGHT, MAX_AGE, REFERENCE_AGE, llog, ppow
from .height import (
    age_to_age,
    height_from_age,
    site_index_from_height,
    years_to_breast_height,
)
from .age import age_from_height, growth_intercept_iterate, iterate
from .conversion import (
    SiteIndexConverter,
    SiteIndexRelation,
    convert_site_index,
    get_site_index_converter,
)
from .curves import Region, SiteCurveMap, get_default_curve

__all__ = [
    'AgeType',
    'CurveFamily',
    'EquationRegistry',
    'EquationSpec',
    'SiteIndexEquation',
    'SolvingStrategy',
    'get_equation_registry',
    'BREAST_HEIGHT',
    'MAX_AGE',
    'REFERENCE_AGE',
    'llog',
    'ppow',
    'age_to_age',
    'height_from_age',
    'site_index_from_height',
    'years_to_breast_height',
    'age_from_height',
    'growth_intercept_iterate',
    'iterate',
    'SiteIndexConverter',
    'SiteIndexRelation',
    'convert_site_index',
    'get_site_index_converter',
    'Region',
    'SiteCurveMap',
    'get_default_curve',
]
