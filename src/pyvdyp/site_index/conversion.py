"""
Site index conversion between curves.

A site index on one curve is carried to another curve through the height at
the reference breast height age: the source curve gives the height, a
species-to-species relation (identity within a species) adjusts it, and the
target curve is solved for the site index producing that height.
"""
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from ..exceptions import (
    ConfigurationError,
    InvalidCurveError,
    InvalidSpeciesError,
    NoConversionError,
    UnknownCurveError,
    validate_site_index,
)
from ..utils import normalize_code
from .equations import AgeType, EquationRegistry, SiteIndexEquation, get_equation_registry
from .height import height_from_age, site_index_from_height
from .numeric import REFERENCE_AGE

__all__ = [
    'SiteIndexRelation',
    'SiteIndexConverter',
    'get_site_index_converter',
    'convert_site_index',
]


@dataclass(frozen=True)
class SiteIndexRelation:
    """Linear relation between the site indices of two species.

    Attributes:
        source: Species the value is measured on
        target: Species the value is converted to
        intercept: Relation intercept (metres)
        slope: Relation slope
    """
    source: str
    target: str
    intercept: float
    slope: float

    def apply(self, value: float) -> float:
        return self.intercept + self.slope * value

    def reversed(self) -> "SiteIndexRelation":
        return SiteIndexRelation(
            source=self.target,
            target=self.source,
            intercept=-self.intercept / self.slope,
            slope=1.0 / self.slope,
        )


class SiteIndexConverter:
    """Converts site index values between curves.

    Attributes:
        species: SINDEX species codes that take part in conversion
    """

    def __init__(self, species: Iterable[str], relations: Iterable[SiteIndexRelation],
                 registry: Optional[EquationRegistry] = None):
        self.species = frozenset(normalize_code(s) for s in species)
        self._relations: Dict[Tuple[str, str], SiteIndexRelation] = {}
        for relation in relations:
            for code in (relation.source, relation.target):
                if code not in self.species:
                    raise ConfigurationError(f"Site index relation uses unlisted species {code}")
            self._relations[(relation.source, relation.target)] = relation
        self._registry = registry or get_equation_registry()

    @classmethod
    def from_config(cls, data: Mapping[str, Any],
                    registry: Optional[EquationRegistry] = None) -> "SiteIndexConverter":
        """Build a converter from site_index_conversions.yaml.

        Each listed relation also defines its reverse unless the reverse is
        listed explicitly.
        """
        explicit: List[SiteIndexRelation] = []
        try:
            for entry in data.get('relations', []):
                slope = float(entry['slope'])
                if slope == 0:
                    raise ConfigurationError(
                        f"Site index relation {entry['source']}->{entry['target']} has zero slope"
                    )
                explicit.append(SiteIndexRelation(
                    source=normalize_code(entry['source']),
                    target=normalize_code(entry['target']),
                    intercept=float(entry['intercept']),
                    slope=slope,
                ))
            species = data['species']
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid site index conversion table: {e}") from e

        relations = {(r.source, r.target): r for r in explicit}
        for relation in explicit:
            reverse = relation.reversed()
            relations.setdefault((reverse.source, reverse.target), reverse)
        return cls(species, relations.values(), registry)

    def relation(self, source_species: str, target_species: str) -> Optional[SiteIndexRelation]:
        """Relation between two species, identity within one species, else None."""
        source_species = normalize_code(source_species)
        target_species = normalize_code(target_species)
        if source_species == target_species:
            return SiteIndexRelation(source_species, target_species, 0.0, 1.0)
        return self._relations.get((source_species, target_species))

    def convert(self, source_curve: Any, site_index: float, target_curve: Any) -> float:
        """Convert a site index from one curve to another.

        Args:
            source_curve: Curve the site index is measured on
            site_index: Site index in metres
            target_curve: Curve to express the site index on

        Returns:
            Site index on the target curve

        Raises:
            InvalidCurveError: If either curve identifier is malformed
            InvalidSpeciesError: If either curve's species takes no part in conversion
            BelowBreastHeightError: If site_index is below 1.3
            NoConversionError: If the two species are not related
            NoConvergenceError: If the target curve cannot reach the height
        """
        source = self._spec(source_curve)
        target = self._spec(target_curve)
        validate_site_index(site_index, source.curve)

        if source.curve is target.curve:
            return site_index

        relation = self.relation(source.species, target.species)
        if relation is None:
            raise NoConversionError(source.curve, target.curve)

        height = height_from_age(source.curve, REFERENCE_AGE, AgeType.BREAST, site_index)
        return site_index_from_height(target.curve, REFERENCE_AGE, AgeType.BREAST,
                                      relation.apply(height))

    def _spec(self, curve: Any):
        try:
            spec = self._registry.lookup(curve)
        except UnknownCurveError as e:
            raise InvalidCurveError(curve) from e
        if spec.species not in self.species:
            raise InvalidSpeciesError(spec.species, f"curve {spec.curve.name} has no conversions")
        return spec


_converter: Optional[SiteIndexConverter] = None


def get_site_index_converter() -> SiteIndexConverter:
    """Get the process-wide converter built from the bundled conversion table."""
    global _converter
    if _converter is None:
        from ..config_loader import get_config_loader
        _converter = SiteIndexConverter.from_config(get_config_loader().load_site_index_conversions())
    return _converter


def convert_site_index(source_curve: Any, site_index: float, target_curve: Any) -> float:
    """Convert a site index with the process-wide converter."""
    return get_site_index_converter().convert(source_curve, site_index, target_curve)
