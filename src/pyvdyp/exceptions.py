"""
Custom exceptions for PyVDYP.
Provides domain-specific error handling with informative messages.
"""
from typing import Any, Optional


class VDYPError(Exception):
    """Base exception for all PyVDYP errors."""
    pass


# =============================================================================
# Configuration and identifiers
# =============================================================================

class ConfigurationError(VDYPError):
    """Raised when there are configuration-related issues."""
    pass


class UnknownCurveError(ConfigurationError):
    """Raised when a curve identifier has no registry entry."""
    def __init__(self, curve: Any, reason: str = ""):
        self.curve = curve
        message = f"Unknown site index curve: {curve!r}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class InvalidCurveError(UnknownCurveError):
    """Raised when a value cannot be interpreted as a site index curve."""
    def __init__(self, curve: Any):
        super().__init__(curve, "not a site index curve identifier")


class InvalidSpeciesError(VDYPError):
    """Raised when a species code is not recognized."""
    def __init__(self, species: Any, context: str = ""):
        self.species = species
        message = f"Invalid species: {species!r}"
        if context:
            message += f" ({context})"
        super().__init__(message)


class InvalidArgumentError(VDYPError):
    """Raised when a function receives an argument it cannot work with."""
    def __init__(self, param_name: str, value: Any, reason: str = ""):
        self.param_name = param_name
        self.value = value
        self.reason = reason
        message = f"Invalid value for argument '{param_name}': {value!r}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


# =============================================================================
# Site index solver errors
# =============================================================================

class SiteIndexError(VDYPError):
    """Base class for failures of the site index solvers."""
    def __init__(self, message: str, curve: Any = None):
        self.curve = curve
        if curve is not None:
            message = f"{message} [curve {getattr(curve, 'name', curve)}]"
        super().__init__(message)


class BelowBreastHeightError(SiteIndexError):
    """Raised when a height or site index is below breast height (1.3 m)."""
    def __init__(self, param_name: str, value: float, curve: Any = None):
        self.param_name = param_name
        self.value = value
        super().__init__(f"{param_name} {value} is below breast height", curve)


class NoConvergenceError(SiteIndexError):
    """Raised when a solver cannot produce an answer within its bounds."""
    def __init__(self, reason: str, curve: Any = None, **inputs: Optional[float]):
        self.reason = reason
        self.inputs = inputs
        message = f"No answer: {reason}"
        if inputs:
            details = ", ".join(f"{k}={v}" for k, v in inputs.items())
            message += f" ({details})"
        super().__init__(message, curve)


class GrowthInterceptTotalAgeError(SiteIndexError):
    """Raised when a growth intercept curve is asked to work with total age."""
    def __init__(self, curve: Any = None):
        super().__init__("growth intercept curves require breast height age", curve)


class GrowthInterceptRangeError(SiteIndexError):
    """Raised when a growth intercept relation is used past its age range."""
    def __init__(self, age: float, max_age: float, curve: Any = None):
        self.age = age
        self.max_age = max_age
        super().__init__(
            f"breast height age {age} is outside the growth intercept range 1-{max_age}",
            curve,
        )


class NoConversionError(SiteIndexError):
    """Raised when no site index relation is defined between two curves."""
    def __init__(self, source: Any, target: Any):
        self.source = source
        self.target = target
        super().__init__(
            f"No site index conversion from {getattr(source, 'name', source)} "
            f"to {getattr(target, 'name', target)}"
        )


# =============================================================================
# Forward processing errors
# =============================================================================

class ProcessingError(VDYPError):
    """Raised when a polygon cannot be processed."""
    def __init__(self, message: str, polygon_id: Optional[str] = None):
        self.polygon_id = polygon_id
        if polygon_id:
            message = f"Polygon {polygon_id}: {message}"
        super().__init__(message)


class NoSpeciesRemainingError(ProcessingError):
    """Raised when removing small species leaves a polygon empty."""
    def __init__(self, polygon_id: Optional[str] = None):
        super().__init__("after removing small species, no species remain", polygon_id)


class NoCurveAvailableError(ProcessingError):
    """Raised when no site curve can be found for a species."""
    def __init__(self, species: str, region: Any, polygon_id: Optional[str] = None):
        self.species = species
        self.region = region
        super().__init__(
            f"no site curve available for species {species} in region "
            f"{getattr(region, 'name', region)}",
            polygon_id,
        )


class UnrecognizedGenusError(ProcessingError):
    """Raised when a genus pair has no inventory type group."""
    def __init__(self, primary: Any, secondary: Any = None, reason: str = "",
                 polygon_id: Optional[str] = None):
        self.primary = primary
        self.secondary = secondary
        self.reason = reason
        message = f"Unrecognized primary species {primary!r}"
        if secondary is not None:
            message += f" with secondary {secondary!r}"
        if reason:
            message += f": {reason}"
        super().__init__(message, polygon_id)


# =============================================================================
# Data errors
# =============================================================================

class DataError(VDYPError):
    """Raised when there are data-related issues."""
    pass


class FileNotFoundError(DataError):
    """Raised when a required file is not found."""
    def __init__(self, file_path: str, file_type: str = "file"):
        self.file_path = file_path
        self.file_type = file_type
        super().__init__(f"Required {file_type} not found: {file_path}")


class InvalidDataError(DataError):
    """Raised when data is malformed or invalid."""
    def __init__(self, data_description: str, reason: str):
        self.data_description = data_description
        self.reason = reason
        super().__init__(f"Invalid {data_description}: {reason}")


# Validation utilities
def validate_site_index(value: float, curve: Any = None) -> float:
    """Validate that a site index is at least breast height.

    Args:
        value: Site index in metres
        curve: Curve the value belongs to, for the error message

    Returns:
        The validated value

    Raises:
        BelowBreastHeightError: If value is below 1.3
    """
    if value < 1.3:
        raise BelowBreastHeightError("site index", value, curve)
    return value
