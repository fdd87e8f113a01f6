"""
String normalization helpers for species, genus and curve codes.
"""
from typing import Optional


def normalize_code(code: str) -> str:
    """Strip surrounding whitespace and upper-case a code.

    Args:
        code: Raw code as read from input or configuration

    Returns:
        Normalized code
    """
    return str(code).strip().upper()


def normalize_species_code(code: Optional[str]) -> Optional[str]:
    """Normalize a genus or species alias, keeping None and blanks as None.

    Args:
        code: Alias such as ' pl' or 'Fd'

    Returns:
        Upper-cased alias, or None for a missing alias
    """
    if code is None:
        return None
    normalized = normalize_code(code)
    return normalized or None
