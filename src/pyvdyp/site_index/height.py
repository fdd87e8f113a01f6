"""
Forward direction of the site index curves: height from age and site index.

Each curve family has one forward formula. Formulas receive both the total
age and the breast height age so that their juvenile branches (trees not yet
at breast height) can work from total age. Also provides the
years-to-breast-height estimate, total/breast age conversion and the
height to site index direction used by site index conversion.
"""
import math
from functools import lru_cache
from typing import Callable, Dict, Optional, Tuple

from ..exceptions import (
    BelowBreastHeightError,
    GrowthInterceptRangeError,
    GrowthInterceptTotalAgeError,
    InvalidArgumentError,
    NoConvergenceError,
    validate_site_index,
)
from .equations import AgeType, CurveFamily, EquationSpec, SiteIndexEquation, get_equation_registry
from .numeric import BREAST_HEIGHT, REFERENCE_AGE, llog, ppow

__all__ = [
    'height_from_age',
    'years_to_breast_height',
    'curve_years_to_breast_height',
    'age_to_age',
    'site_index_from_height',
    'growth_intercept_site_index',
    'bruce_terms',
    'wiley_terms',
    'goudie_terms',
    'hu_garcia_q',
    'hu_garcia_height',
    'METRES_PER_FOOT',
]

METRES_PER_FOOT = 0.3048

# Years to breast height never drops below one year
MIN_YEARS_TO_BREAST_HEIGHT = 1.0

_HU_GARCIA_TOLERANCE = 1e-7
_HU_GARCIA_MAX_STEPS = 1000

# Bracket and tolerance for the site index bisection
_SITE_INDEX_SEARCH_START = 64.0
_SITE_INDEX_TOLERANCE = 1e-6
_SITE_INDEX_MAX_STEPS = 100
_MAX_SITE_INDEX = 999.0


# =============================================================================
# Years to breast height and age conversion
# =============================================================================

def raw_years_to_breast_height(spec: EquationSpec, site_index: float) -> float:
    """Evaluate y0 + y1 * si + y2 / si without any floor."""
    y0, y1, y2 = spec.y2bh
    return y0 + y1 * site_index + y2 / site_index


def years_to_breast_height(curve, site_index: float) -> float:
    """Estimate the years a tree needs to reach breast height.

    Args:
        curve: Site index curve
        site_index: Site index in metres

    Returns:
        Years from germination to breast height (at least one year)

    Raises:
        BelowBreastHeightError: If site_index is below 1.3
    """
    spec = get_equation_registry().lookup(curve)
    validate_site_index(site_index, spec.curve)
    return max(MIN_YEARS_TO_BREAST_HEIGHT, raw_years_to_breast_height(spec, site_index))


def curve_years_to_breast_height(spec: EquationSpec, site_index: float,
                                 y2bh: Optional[float]) -> float:
    """Years to breast height a curve's formulas actually use.

    Bruce curves are defined with their own site index dependent offset and
    ignore the caller's value; other curves use the caller's value and fall
    back to the estimate when none is given.
    """
    if spec.family is CurveFamily.BRUCE:
        return raw_years_to_breast_height(spec, site_index)
    if y2bh is None:
        return max(MIN_YEARS_TO_BREAST_HEIGHT, raw_years_to_breast_height(spec, site_index))
    return y2bh


def age_to_age(curve, age: float, from_type: AgeType, to_type: AgeType, y2bh: float) -> float:
    """Convert an age between total and breast height age.

    A total age younger than the years to breast height gives a breast
    height age of 0.

    Args:
        curve: Site index curve the ages belong to
        age: Age to convert
        from_type: Age type of `age`
        to_type: Requested age type
        y2bh: Years to breast height

    Returns:
        Converted age

    Raises:
        GrowthInterceptTotalAgeError: If a growth intercept curve is
            converted to or from total age
    """
    spec = get_equation_registry().lookup(curve)
    from_type, to_type = AgeType(from_type), AgeType(to_type)
    if from_type is to_type:
        return age
    if spec.family is CurveFamily.GROWTH_INTERCEPT:
        raise GrowthInterceptTotalAgeError(spec.curve)
    if from_type is AgeType.BREAST:
        return age + y2bh
    return max(0.0, age - y2bh)


# =============================================================================
# Shared terms (also used by the closed-form inverses)
# =============================================================================

def bruce_terms(spec: EquationSpec, site_index: float, y2bh: float) -> Tuple[float, float, float]:
    """Return (x2, x3, x4) of the Bruce curve for a site index."""
    x1 = site_index / 30.48
    x2 = spec['p0'] + x1 * (spec['p1'] + x1 * (spec['p2'] + x1 * spec['p3']))
    x3 = ppow(REFERENCE_AGE + y2bh, x2)
    denominator = ppow(y2bh, x2) - x3
    if denominator == 0:
        raise NoConvergenceError("Bruce curve is undefined for this site index",
                                 spec.curve, site_index=site_index, y2bh=y2bh)
    x4 = llog(1.372 / site_index) / denominator
    return x2, x3, x4


def wiley_terms(spec: EquationSpec, site_index: float) -> Tuple[float, float, float]:
    """Return (x2, x3, x4) of a Wiley curve; site index is converted to feet."""
    k = 2500.0 / (site_index / METRES_PER_FOOT - 4.5)
    return (
        spec['a0'] + spec['a1'] * k,
        spec['b0'] + spec['b1'] * k,
        spec['c0'] + spec['c1'] * k,
    )


def goudie_terms(spec: EquationSpec, site_index: float) -> Tuple[float, float]:
    """Return (a, b) of a Goudie curve: the scaled asymptote term and the intercept."""
    b = spec['x2'] + spec['x1'] * llog(site_index - BREAST_HEIGHT)
    a = (site_index - BREAST_HEIGHT) * (1 + math.exp(b + spec['x3'] * math.log(REFERENCE_AGE)))
    return a, b


def hu_garcia_height(spec: EquationSpec, q: float, breast_age: float) -> float:
    """Hu and Garcia height at a breast height age for growth rate q."""
    a = spec['a'] * ppow(q, spec['b'])
    start = 1 - ppow(BREAST_HEIGHT / a, spec['c'])
    return a * ppow(1 - start * math.exp(-q * (breast_age - 0.5)), spec['d'])


@lru_cache(maxsize=512)
def hu_garcia_q(curve: SiteIndexEquation, site_index: float,
                breast_age: float = REFERENCE_AGE) -> float:
    """Solve the Hu and Garcia growth rate q that gives site_index at breast_age.

    Steps q up or down, halving the step whenever the error changes sign.

    Raises:
        NoConvergenceError: If q is not found within the step budget
    """
    spec = get_equation_registry().lookup(curve)
    q = 0.02
    step = 0.01
    diff = 0.0
    for _ in range(_HU_GARCIA_MAX_STEPS):
        last_diff = diff
        diff = site_index - hu_garcia_height(spec, q, breast_age)
        if diff > _HU_GARCIA_TOLERANCE:
            if last_diff < 0:
                step /= 2.0
            q += step
        elif diff < -_HU_GARCIA_TOLERANCE:
            if last_diff > 0:
                step /= 2.0
            q -= step
            if q <= 0:
                q = _HU_GARCIA_TOLERANCE
        else:
            break
        if step < _HU_GARCIA_TOLERANCE:
            break
    else:
        raise NoConvergenceError("Hu-Garcia growth rate did not converge",
                                 spec.curve, site_index=site_index)
    return q


def _growth_intercept_factor(spec: EquationSpec, breast_age: float) -> float:
    if not 1.0 <= breast_age <= spec.max_age:
        raise GrowthInterceptRangeError(breast_age, spec.max_age, spec.curve)
    u = math.log(REFERENCE_AGE) - math.log(breast_age)
    return math.exp(spec['b0'] * u + spec['b1'] * u * u)


def growth_intercept_site_index(curve, breast_age: float, height: float) -> float:
    """Site index implied by a height at a breast height age on a growth intercept curve.

    Raises:
        GrowthInterceptRangeError: If breast_age is outside the relation's range
    """
    spec = get_equation_registry().lookup(curve)
    return BREAST_HEIGHT + (height - BREAST_HEIGHT) * _growth_intercept_factor(spec, breast_age)


# =============================================================================
# Forward formulas by family
# =============================================================================

def _juvenile_height(total_age: float, y2bh: float, breast_height: float) -> float:
    # total_age <= y2bh here, so y2bh is positive
    return breast_height * (total_age / y2bh) ** 2


def _bruce_height(spec, total_age, breast_age, site_index, y2bh):
    x2, x3, x4 = bruce_terms(spec, site_index, y2bh)
    return site_index * math.exp(x4 * (ppow(total_age, x2) - x3))


def _wiley_height(spec, total_age, breast_age, site_index, y2bh):
    if breast_age <= 0:
        return _juvenile_height(total_age, y2bh, 1.37)
    if site_index / METRES_PER_FOOT <= 4.5:
        return 4.5 * METRES_PER_FOOT
    x2, x3, x4 = wiley_terms(spec, site_index)
    denominator = x2 + x3 * breast_age + x4 * breast_age * breast_age
    if denominator == 0:
        raise NoConvergenceError("Wiley curve is undefined at this age", spec.curve,
                                 age=breast_age, site_index=site_index)
    return (4.5 + breast_age * breast_age / denominator) * METRES_PER_FOOT


def _goudie_height(spec, total_age, breast_age, site_index, y2bh):
    if breast_age <= 0:
        return _juvenile_height(total_age, y2bh, BREAST_HEIGHT)
    a, b = goudie_terms(spec, site_index)
    return BREAST_HEIGHT + a / (1 + math.exp(b + spec['x3'] * llog(breast_age)))


def _hu_garcia_height(spec, total_age, breast_age, site_index, y2bh):
    q = hu_garcia_q(spec.curve, site_index)
    return hu_garcia_height(spec, q, breast_age)


def _kurucz_height(spec, total_age, breast_age, site_index, y2bh):
    if breast_age <= 0:
        return _juvenile_height(total_age, y2bh, BREAST_HEIGHT)
    if site_index <= BREAST_HEIGHT:
        return BREAST_HEIGHT
    k = 2500.0 / (site_index - BREAST_HEIGHT)
    x2 = spec['a0'] + spec['a1'] * k
    x3 = spec['b0'] + spec['b1'] * k
    x4 = spec['c0'] + spec['c1'] * k
    denominator = x2 + x3 * breast_age + x4 * breast_age * breast_age
    if denominator == 0:
        raise NoConvergenceError("Kurucz curve is undefined at this age", spec.curve,
                                 age=breast_age, site_index=site_index)
    return BREAST_HEIGHT + breast_age * breast_age / denominator


def _nigh_height(spec, total_age, breast_age, site_index, y2bh):
    if breast_age <= 0:
        return _juvenile_height(total_age, y2bh, BREAST_HEIGHT)
    rate = spec['b0'] * ppow(site_index - BREAST_HEIGHT, spec['b1'])
    if rate <= 0:
        return BREAST_HEIGHT
    shape = (1 - math.exp(-rate * breast_age)) / (1 - math.exp(-rate * REFERENCE_AGE))
    return BREAST_HEIGHT + (site_index - BREAST_HEIGHT) * ppow(shape, spec['c'])


def _power_height(spec, total_age, breast_age, site_index, y2bh):
    if breast_age <= 0:
        return _juvenile_height(total_age, y2bh, BREAST_HEIGHT)
    exponent = spec['b0'] + spec['b1'] * llog(site_index)
    return BREAST_HEIGHT + (site_index - BREAST_HEIGHT) * ppow(breast_age / REFERENCE_AGE, exponent)


def _growth_intercept_height(spec, total_age, breast_age, site_index, y2bh):
    return BREAST_HEIGHT + (site_index - BREAST_HEIGHT) / _growth_intercept_factor(spec, breast_age)


FORWARD_FORMULAS: Dict[CurveFamily, Callable[..., float]] = {
    CurveFamily.BRUCE: _bruce_height,
    CurveFamily.WILEY: _wiley_height,
    CurveFamily.GOUDIE: _goudie_height,
    CurveFamily.HU_GARCIA: _hu_garcia_height,
    CurveFamily.KURUCZ: _kurucz_height,
    CurveFamily.NIGH: _nigh_height,
    CurveFamily.POWER: _power_height,
    CurveFamily.GROWTH_INTERCEPT: _growth_intercept_height,
}


# =============================================================================
# Public solvers
# =============================================================================

def height_from_age(curve, age: float, age_type: AgeType, site_index: float,
                    y2bh: Optional[float] = None) -> float:
    """Compute height from age and site index.

    Args:
        curve: Site index curve (member, number or name)
        age: Age in years
        age_type: Whether `age` is total or breast height age
        site_index: Site index in metres
        y2bh: Years to breast height; estimated from the curve when None

    Returns:
        Height in metres, never negative

    Raises:
        UnknownCurveError: If the curve is not known
        BelowBreastHeightError: If site_index is below 1.3
        GrowthInterceptTotalAgeError: If a growth intercept curve gets total age
        GrowthInterceptRangeError: If a growth intercept age is out of range
        NoConvergenceError: If the curve cannot be evaluated for the inputs
    """
    spec = get_equation_registry().lookup(curve)
    validate_site_index(site_index, spec.curve)
    age_type = AgeType(age_type)
    y2bh = curve_years_to_breast_height(spec, site_index, y2bh)

    if spec.family is CurveFamily.GROWTH_INTERCEPT and age_type is AgeType.TOTAL:
        raise GrowthInterceptTotalAgeError(spec.curve)

    if age_type is AgeType.TOTAL:
        total_age, breast_age = age, age - y2bh
    else:
        total_age, breast_age = age + y2bh, age

    if total_age <= 0:
        return 0.0

    height = FORWARD_FORMULAS[spec.family](spec, total_age, breast_age, site_index, y2bh)
    return max(0.0, height)


def site_index_from_height(curve, age: float, age_type: AgeType, height: float,
                           y2bh: Optional[float] = None) -> float:
    """Compute the site index implied by a height at an age.

    Growth intercept curves evaluate their relation directly; every other
    curve is inverted by bisection on site index.

    Args:
        curve: Site index curve
        age: Age in years (must be positive)
        age_type: Whether `age` is total or breast height age
        height: Height in metres
        y2bh: Years to breast height; estimated from each trial site index when None

    Returns:
        Site index in metres

    Raises:
        InvalidArgumentError: If age is not positive
        BelowBreastHeightError: If height is below 1.3 at a breast height age
        GrowthInterceptTotalAgeError: If a growth intercept curve gets total age
        GrowthInterceptRangeError: If a growth intercept age is out of range
        NoConvergenceError: If no site index up to 999 reaches the height
    """
    spec = get_equation_registry().lookup(curve)
    age_type = AgeType(age_type)
    if age <= 0:
        raise InvalidArgumentError('age', age, "must be positive")
    if height < BREAST_HEIGHT and age_type is AgeType.BREAST:
        raise BelowBreastHeightError('height', height, spec.curve)

    if spec.family is CurveFamily.GROWTH_INTERCEPT:
        if age_type is AgeType.TOTAL:
            raise GrowthInterceptTotalAgeError(spec.curve)
        return growth_intercept_site_index(spec.curve, age, height)

    def height_at(site_index: float) -> float:
        return height_from_age(spec.curve, age, age_type, site_index, y2bh)

    low = BREAST_HEIGHT
    if height_at(low) > height:
        raise NoConvergenceError("height is below the curve at any site index",
                                 spec.curve, age=age, height=height)
    high = max(_SITE_INDEX_SEARCH_START, 2.0 * height)
    while height_at(high) < height:
        if high >= _MAX_SITE_INDEX:
            raise NoConvergenceError("height is above the curve at any site index",
                                     spec.curve, age=age, height=height)
        high = min(2.0 * high, _MAX_SITE_INDEX)

    for _ in range(_SITE_INDEX_MAX_STEPS):
        middle = (low + high) / 2.0
        if height_at(middle) < height:
            low = middle
        else:
            high = middle
        if high - low < _SITE_INDEX_TOLERANCE:
            break
    return (low + high) / 2.0
