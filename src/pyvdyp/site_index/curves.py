"""
Site curve selection for species.

A species' site curve comes either from an explicit site curve map, keyed
by species alias and region, or from the built-in default curve for the
species in that region (cfg/species.yaml).
"""
from enum import Enum
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple

from ..exceptions import InvalidArgumentError, InvalidDataError, UnknownCurveError
from ..utils import normalize_code, normalize_species_code
from .equations import SiteIndexEquation

__all__ = ['Region', 'SiteCurveMap', 'get_default_curve']


class Region(str, Enum):
    """Coastal or interior British Columbia."""

    COASTAL = "C"
    INTERIOR = "I"

    @classmethod
    def from_code(cls, code: Any) -> "Region":
        """
        Convert 'C'/'I' (or a member name) to a Region.

        Raises:
            InvalidArgumentError: If the code names no region
        """
        if isinstance(code, cls):
            return code
        normalized = normalize_code(code)
        for member in cls:
            if normalized in (member.value, member.name):
                return member
        raise InvalidArgumentError('region', code, "expected 'C' or 'I'")


class SiteCurveMap:
    """Explicit site curve assignments by species alias and region."""

    def __init__(self, entries: Optional[Mapping[Tuple[str, Region], SiteIndexEquation]] = None):
        self._entries: Dict[Tuple[str, Region], SiteIndexEquation] = {}
        for (species, region), curve in (entries or {}).items():
            self.set(species, region, curve)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Mapping[str, Any]]) -> "SiteCurveMap":
        """Build a map from {species: {region_code: curve}}.

        Raises:
            InvalidDataError: If an entry names an unknown region or curve
        """
        curve_map = cls()
        for species, by_region in data.items():
            if not isinstance(by_region, Mapping):
                raise InvalidDataError("site curve map", f"entry for {species} must be a mapping")
            for region, curve in by_region.items():
                try:
                    curve_map.set(species, region, curve)
                except (InvalidArgumentError, UnknownCurveError) as e:
                    raise InvalidDataError("site curve map", f"entry for {species}: {e}") from e
        return curve_map

    def set(self, species: str, region: Any, curve: Any) -> None:
        self._entries[(normalize_code(species), Region.from_code(region))] = \
            SiteIndexEquation.from_value(curve)

    def get(self, species: Optional[str], region: Any) -> Optional[SiteIndexEquation]:
        """Curve for a species in a region, or None when the map has no entry."""
        species = normalize_species_code(species)
        if species is None:
            return None
        return self._entries.get((species, Region.from_code(region)))

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Tuple[str, Region]]:
        return iter(self._entries)

    def __contains__(self, key: Tuple[str, Any]) -> bool:
        species, region = key
        return self.get(species, region) is not None


_default_curves: Optional[Dict[Tuple[str, Region], SiteIndexEquation]] = None


def _load_default_curves() -> Dict[Tuple[str, Region], SiteIndexEquation]:
    from ..config_loader import get_config_loader

    table = get_config_loader().load_species_config().get('default_curves', {})
    return SiteCurveMap.from_mapping(table)._entries


def get_default_curve(species: Optional[str], region: Any) -> Optional[SiteIndexEquation]:
    """Built-in default site curve for a species alias in a region.

    Args:
        species: Genus or species alias (e.g. 'H', 'FD')
        region: Region or region code

    Returns:
        The default curve, or None when the species has no default
    """
    global _default_curves
    if _default_curves is None:
        _default_curves = _load_default_curves()
    species = normalize_species_code(species)
    if species is None:
        return None
    return _default_curves.get((species, Region.from_code(region)))
