"""
Guarded arithmetic shared by every site curve formula.

Curve formulas are evaluated well outside their fitted range by the
iterative solvers, so power and logarithm never raise: a non-positive base
gives 0.0 and a non-positive logarithm argument gives log(1e-5).
"""
import math

BREAST_HEIGHT = 1.3
"""Breast height in metres."""

MAX_AGE = 999.0
"""Largest age any solver will return."""

REFERENCE_AGE = 50.0
"""Breast height age at which site index is defined."""

_LOG_FLOOR = math.log(1e-5)


def ppow(x: float, y: float) -> float:
    """Power that returns 0.0 for a non-positive base."""
    if x <= 0:
        return 0.0
    return math.pow(x, y)


def llog(x: float) -> float:
    """Natural log that returns log(1e-5) for a non-positive argument."""
    if x <= 0:
        return _LOG_FLOOR
    return math.log(x)
