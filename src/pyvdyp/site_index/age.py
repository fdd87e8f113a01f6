"""
Inverse direction of the site index curves: age from height and site index.

Curves with an algebraic inverse are solved directly. All other curves are
solved by stepping the forward formula (iterate), and growth intercept
curves by scanning integer breast height ages (growth_intercept_iterate).
"""
import math
from typing import Callable, Dict, Optional

from ..exceptions import (
    BelowBreastHeightError,
    GrowthInterceptRangeError,
    GrowthInterceptTotalAgeError,
    NoConvergenceError,
    validate_site_index,
)
from ..logging_config import get_logger
from .equations import AgeType, CurveFamily, EquationSpec, SolvingStrategy, get_equation_registry
from .height import (
    METRES_PER_FOOT,
    age_to_age,
    bruce_terms,
    curve_years_to_breast_height,
    goudie_terms,
    height_from_age,
    hu_garcia_q,
    site_index_from_height,
    wiley_terms,
)
from .numeric import BREAST_HEIGHT, MAX_AGE, llog, ppow

__all__ = ['age_from_height', 'iterate', 'growth_intercept_iterate', 'hu_garcia_breast_age']

logger = get_logger(__name__)

# Below this height a total age request resolves to age 0
MIN_EMERGED_HEIGHT = 0.0001

# iterate
_START_AGE = 25.0
_START_STEP = 12.5
_HEIGHT_TOLERANCE = 0.005
_MIN_STEP = 1e-5
_MAX_FORWARD_FAILURES = 100
_FAILED_FORWARD_HEIGHT = 1000.0

# growth_intercept_iterate
_GI_MAX_SCAN_AGE = 99
_GI_TOLERANCE = 1.0

# Wiley closed form is refined by iterate below this age
_WILEY_YOUNG_AGE = 10.0


def _finish(age: float, spec: EquationSpec, height: float, site_index: float) -> float:
    if age < 0:
        return 0.0
    if age > MAX_AGE:
        raise NoConvergenceError("age exceeds 999", spec.curve,
                                 height=height, site_index=site_index)
    return age


# =============================================================================
# Closed-form inverses
# =============================================================================

def hu_garcia_breast_age(spec: EquationSpec, q: float, height: float) -> float:
    """Breast height age at which a Hu and Garcia curve with rate q reaches height."""
    a = spec['a'] * ppow(q, spec['b'])
    denominator = 1 - ppow(BREAST_HEIGHT / a, spec['c'])
    if denominator == 0:
        raise NoConvergenceError("Hu-Garcia curve is flat", spec.curve, q=q, height=height)
    return 0.5 - 1 / q * llog((1 - ppow(height / a, spec['c'])) / denominator)


def _bruce_age(spec, height, age_type, site_index, y2bh):
    x2, x3, x4 = bruce_terms(spec, site_index, y2bh)
    if x2 == 0 or x4 == 0:
        raise NoConvergenceError("Bruce curve cannot be inverted for this site index",
                                 spec.curve, site_index=site_index)
    x1 = llog(height / site_index) / x4 + x3
    if x1 < 0:
        raise NoConvergenceError("height is out of the Bruce curve's range", spec.curve,
                                 height=height, site_index=site_index)
    age = ppow(x1, 1 / x2)
    if age_type is AgeType.BREAST:
        age = age_to_age(spec.curve, age, AgeType.TOTAL, AgeType.BREAST, y2bh)
    return _finish(age, spec, height, site_index)


def _hu_garcia_age(spec, height, age_type, site_index, y2bh):
    q = hu_garcia_q(spec.curve, site_index)
    age = hu_garcia_breast_age(spec, q, height)
    if age_type is AgeType.TOTAL:
        age += y2bh
    return _finish(age, spec, height, site_index)


def _wiley_age(spec, height, age_type, site_index, y2bh):
    if height / METRES_PER_FOOT < 4.5:
        age = y2bh * ppow(height / 1.37, 0.5)
        if age_type is AgeType.BREAST:
            age -= y2bh
        age = _finish(age, spec, height, site_index)
    else:
        x2, x3, x4 = wiley_terms(spec, site_index)
        below = 4.5 - height / METRES_PER_FOOT
        a = 1 + below * x4
        b = below * x3
        c = below * x2
        root = ppow(b * b - 4 * a * c, 0.5)
        if root == 0 or a == 0:
            raise NoConvergenceError("Wiley quadratic has no root", spec.curve,
                                     height=height, site_index=site_index)
        age = (-b + root) / (2 * a)
        if age_type is AgeType.TOTAL:
            age += y2bh
        age = _finish(age, spec, height, site_index)

    if 0 < age < _WILEY_YOUNG_AGE:
        age = iterate(spec.curve, height, age_type, site_index, y2bh)
    return age


def _goudie_age(spec, height, age_type, site_index, y2bh):
    if height <= BREAST_HEIGHT:
        age = y2bh * ppow(height / BREAST_HEIGHT, 0.5)
        if age_type is AgeType.BREAST:
            age -= y2bh
    else:
        a, b = goudie_terms(spec, site_index)
        age = math.exp((llog(a / (height - BREAST_HEIGHT) - 1) - b) / spec['x3'])
        if age_type is AgeType.TOTAL:
            age += y2bh
    return _finish(age, spec, height, site_index)


CLOSED_FORM_INVERSES: Dict[CurveFamily, Callable[..., float]] = {
    CurveFamily.BRUCE: _bruce_age,
    CurveFamily.WILEY: _wiley_age,
    CurveFamily.GOUDIE: _goudie_age,
    CurveFamily.HU_GARCIA: _hu_garcia_age,
}


# =============================================================================
# Numerical inverses
# =============================================================================

def iterate(curve, height: float, age_type: AgeType, site_index: float,
            y2bh: Optional[float] = None) -> float:
    """Solve age from height by stepping along the forward curve.

    Starts at total age 25 with a step of 12.5 years. Whenever the computed
    height passes the target the step is halved and reversed. A forward
    evaluation that fails to converge counts as a height of 1000 m so the
    search keeps going; 100 such failures end it.

    Args:
        curve: Site index curve
        height: Target height in metres
        age_type: Age type of the result
        site_index: Site index in metres
        y2bh: Years to breast height

    Returns:
        Age of the requested type

    Raises:
        NoConvergenceError: If the forward curve failed 100 times or the
            age passed 999
    """
    spec = get_equation_registry().lookup(curve)
    age_type = AgeType(age_type)
    y2bh = curve_years_to_breast_height(spec, site_index, y2bh)

    age = _START_AGE
    step = _START_STEP
    failures = 0
    while True:
        try:
            test_height = height_from_age(spec.curve, age, AgeType.TOTAL, site_index, y2bh)
        except NoConvergenceError:
            test_height = _FAILED_FORWARD_HEIGHT
            failures += 1
            if failures == _MAX_FORWARD_FAILURES:
                raise NoConvergenceError("forward height failed too often", spec.curve,
                                         height=height, site_index=site_index)

        if abs(test_height - height) > _HEIGHT_TOLERANCE:
            if test_height > height:
                if step > 0:
                    step = -step / 2.0
            elif step < 0:
                step = -step / 2.0
            age += step
        else:
            break

        if abs(step) < _MIN_STEP:
            logger.debug("iterate on %s stopped on step size at age %.5f", spec.curve.name, age)
            break
        if age > MAX_AGE:
            raise NoConvergenceError("age exceeds 999", spec.curve,
                                     height=height, site_index=site_index)

    age = max(0.0, age)
    if age_type is AgeType.BREAST:
        age = age_to_age(spec.curve, age, AgeType.TOTAL, AgeType.BREAST, y2bh)
    return age


def growth_intercept_iterate(curve, height: float, age_type: AgeType,
                             site_index: float) -> float:
    """Find the integer breast height age whose growth intercept site index is closest.

    Scans ages 1 to 99, stopping early at the end of the relation's range.

    Args:
        curve: Growth intercept curve
        height: Height in metres
        age_type: Must be breast height age
        site_index: Target site index in metres

    Returns:
        Breast height age of the best match

    Raises:
        GrowthInterceptTotalAgeError: If total age is requested
        NoConvergenceError: If the best match sits at an end of the scanned
            range with a difference above 1 m
    """
    spec = get_equation_registry().lookup(curve)
    if AgeType(age_type) is AgeType.TOTAL:
        raise GrowthInterceptTotalAgeError(spec.curve)

    best_age = 1
    min_diff = 999.0
    last_age = 1
    for age in range(1, _GI_MAX_SCAN_AGE + 1):
        try:
            test_site = site_index_from_height(spec.curve, age, AgeType.BREAST, height)
        except GrowthInterceptRangeError:
            break
        last_age = age
        diff = abs(test_site - site_index)
        if diff < min_diff:
            min_diff = diff
            best_age = age

    if min_diff > _GI_TOLERANCE and best_age in (1, last_age):
        raise NoConvergenceError("best growth intercept match is at the end of the range",
                                 spec.curve, height=height, site_index=site_index, age=best_age)
    return float(best_age)


# =============================================================================
# Public solver
# =============================================================================

def age_from_height(curve, height: float, age_type: AgeType, site_index: float,
                    y2bh: Optional[float] = None) -> float:
    """Compute age from height and site index.

    Args:
        curve: Site index curve (member, number or name)
        height: Height in metres
        age_type: Age type of the result
        site_index: Site index in metres
        y2bh: Years to breast height; estimated from the curve when None

    Returns:
        Age in years, never negative

    Raises:
        UnknownCurveError: If the curve is not known
        BelowBreastHeightError: If height is below 1.3 for a breast height
            age, or site_index is below 1.3
        GrowthInterceptTotalAgeError: If a growth intercept curve gets total age
        NoConvergenceError: If no age up to 999 fits
    """
    spec = get_equation_registry().lookup(curve)
    age_type = AgeType(age_type)

    if height < BREAST_HEIGHT:
        if age_type is AgeType.BREAST:
            raise BelowBreastHeightError('height', height, spec.curve)
        if height <= MIN_EMERGED_HEIGHT:
            return 0.0
    validate_site_index(site_index, spec.curve)

    if spec.strategy is SolvingStrategy.GROWTH_INTERCEPT:
        return growth_intercept_iterate(spec.curve, height, age_type, site_index)

    y2bh = curve_years_to_breast_height(spec, site_index, y2bh)
    if spec.strategy is SolvingStrategy.CLOSED_FORM:
        return CLOSED_FORM_INVERSES[spec.family](spec, height, age_type, site_index, y2bh)
    return iterate(spec.curve, height, age_type, site_index, y2bh)
