"""
Site index curve identifiers and the equation registry.

Every curve is a member of SiteIndexEquation whose value is the historical
SINDEX curve number. The registry maps each member to an EquationSpec
holding the curve family (which forward formula applies), the solving
strategy for the inverse direction and the curve's coefficients. Specs are
loaded once from cfg/site_curves.yaml and are read-only afterwards.
"""
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, Iterator, List, Optional, Tuple

from ..exceptions import ConfigurationError, InvalidCurveError, UnknownCurveError
from ..utils import normalize_code

__all__ = [
    'AgeType',
    'SiteIndexEquation',
    'CurveFamily',
    'SolvingStrategy',
    'EquationSpec',
    'EquationRegistry',
    'get_equation_registry',
    'FAMILY_COEFFICIENTS',
    'CLOSED_FORM_FAMILIES',
]


class AgeType(IntEnum):
    """Which age an age value refers to."""

    TOTAL = 0
    """Years since germination."""

    BREAST = 1
    """Years since the tree reached breast height (1.3 m)."""


class SiteIndexEquation(IntEnum):
    """Site index curves, valued by their SINDEX curve number."""

    # =========================================================================
    # Closed-form inverse curves
    # =========================================================================
    FDC_BRUCE = 16
    HWC_WILEY = 34
    PLI_GOUDIE_DRY = 48
    PLI_GOUDIE_WET = 49
    SS_GOUDIE = 60
    SW_GOUDIE_PLA = 70
    SW_GOUDIE_NAT = 71
    SW_HU_GARCIA = 119

    # =========================================================================
    # Iteratively inverted curves
    # =========================================================================
    ACB_HUANGAC = 97
    AT_NIGH = 92
    BA_KURUCZ86 = 6
    BA_NIGH = 118
    BL_CHENAC = 93
    CWC_KURUCZ = 11
    CWC_BARKER = 12
    CWC_NIGH = 122
    CWI_NIGH = 77
    DR_NIGH = 13
    DR_HARRING = 14
    EP_NIGH = 116
    FDC_BRUCEAC = 100
    FDI_THROWER = 23
    HWC_WILEYAC = 99
    HWI_NIGH = 37
    LW_NIGH = 90
    MB_HARLOW = 87
    PLI_THROWER = 45
    PW_CURTISAC = 98
    PY_NIGH = 108
    SS_NIGH = 59
    SW_GOUDNIGH = 85

    # =========================================================================
    # Growth intercept curves
    # =========================================================================
    BL_THROWERGI = 9
    CWI_NIGHGI = 84
    FDC_NIGHGI = 15
    FDI_NIGHGI = 19
    HWC_NIGHGI = 31
    HWC_NIGHGI99 = 79
    HWI_NIGHGI = 38
    LW_NIGHGI = 82
    PLI_NIGHGI97 = 42
    SS_NIGHGI = 58
    SS_NIGHGI99 = 80
    SW_NIGHGI = 63
    SW_NIGHGI99 = 81

    @classmethod
    def from_value(cls, value: Any) -> "SiteIndexEquation":
        """
        Convert a curve number, name or member to a SiteIndexEquation.

        Names are case-insensitive and may carry the historical "SI_" prefix.

        Args:
            value: SiteIndexEquation, curve number or curve name

        Returns:
            The matching member

        Raises:
            InvalidCurveError: If value is not a number, name or member
            UnknownCurveError: If no curve has that number or name

        Example:
            >>> SiteIndexEquation.from_value(16)
            <SiteIndexEquation.FDC_BRUCE: 16>
            >>> SiteIndexEquation.from_value("si_hwc_wiley")
            <SiteIndexEquation.HWC_WILEY: 34>
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            raise InvalidCurveError(value)
        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError:
                raise UnknownCurveError(value) from None
        if isinstance(value, str):
            name = normalize_code(value)
            if name.startswith('SI_'):
                name = name[3:]
            if name.isdigit():
                return cls.from_value(int(name))
            try:
                return cls[name]
            except KeyError:
                raise UnknownCurveError(value) from None
        raise InvalidCurveError(value)


class CurveFamily(str, Enum):
    """Functional form used by the forward (age to height) direction."""

    BRUCE = "bruce"
    WILEY = "wiley"
    GOUDIE = "goudie"
    HU_GARCIA = "hu_garcia"
    KURUCZ = "kurucz"
    NIGH = "nigh"
    POWER = "power"
    GROWTH_INTERCEPT = "growth_intercept"


class SolvingStrategy(str, Enum):
    """How the inverse (height to age) direction is solved."""

    CLOSED_FORM = "closed_form"
    GENERIC_ITERATIVE = "generic_iterative"
    GROWTH_INTERCEPT = "growth_intercept"


# Coefficient names each family's formula reads
FAMILY_COEFFICIENTS: Dict[CurveFamily, Tuple[str, ...]] = {
    CurveFamily.BRUCE: ('p0', 'p1', 'p2', 'p3'),
    CurveFamily.WILEY: ('a0', 'a1', 'b0', 'b1', 'c0', 'c1'),
    CurveFamily.GOUDIE: ('x1', 'x2', 'x3'),
    CurveFamily.HU_GARCIA: ('a', 'b', 'c', 'd'),
    CurveFamily.KURUCZ: ('a0', 'a1', 'b0', 'b1', 'c0', 'c1'),
    CurveFamily.NIGH: ('b0', 'b1', 'c'),
    CurveFamily.POWER: ('b0', 'b1'),
    CurveFamily.GROWTH_INTERCEPT: ('b0', 'b1'),
}

# Families with an algebraic height-to-age inverse
CLOSED_FORM_FAMILIES = frozenset({
    CurveFamily.BRUCE,
    CurveFamily.WILEY,
    CurveFamily.GOUDIE,
    CurveFamily.HU_GARCIA,
})


@dataclass(frozen=True)
class EquationSpec:
    """Parameters of one site index curve.

    Attributes:
        curve: Curve identifier
        species: SINDEX species code the curve was fitted for (e.g. 'FDC')
        name: Descriptive name of the curve
        family: Forward formula family
        strategy: Inverse solving strategy
        coefficients: Family coefficients by name
        y2bh: (y0, y1, y2) of the years-to-breast-height estimate
            y0 + y1 * si + y2 / si
        max_age: Largest breast height age of a growth intercept relation
    """
    curve: SiteIndexEquation
    species: str
    name: str
    family: CurveFamily
    strategy: SolvingStrategy
    coefficients: Dict[str, float] = field(default_factory=dict, compare=False)
    y2bh: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    max_age: Optional[float] = None

    def __getitem__(self, name: str) -> float:
        return self.coefficients[name]

    @classmethod
    def from_config(cls, curve: SiteIndexEquation, entry: Dict[str, Any]) -> "EquationSpec":
        """Build a spec from a site_curves.yaml entry.

        Raises:
            ConfigurationError: If the entry is incomplete or inconsistent
        """
        try:
            family = CurveFamily(entry['family'])
            strategy = SolvingStrategy(entry['strategy'])
            coefficients = {k: float(v) for k, v in entry.get('coefficients', {}).items()}
            y2bh = tuple(float(v) for v in entry.get('y2bh', (0.0, 0.0, 0.0)))
            max_age = entry.get('max_age')
            spec = cls(
                curve=curve,
                species=normalize_code(entry['species']),
                name=entry.get('name', curve.name),
                family=family,
                strategy=strategy,
                coefficients=coefficients,
                y2bh=y2bh,
                max_age=float(max_age) if max_age is not None else None,
            )
        except (KeyError, ValueError, TypeError) as e:
            raise ConfigurationError(f"Invalid definition for curve {curve.name}: {e}") from e
        spec.validate()
        return spec

    def validate(self) -> None:
        """Check the spec is usable by the solvers.

        Raises:
            ConfigurationError: If coefficients are missing or the strategy
                does not fit the family
        """
        missing = [k for k in FAMILY_COEFFICIENTS[self.family] if k not in self.coefficients]
        if missing:
            raise ConfigurationError(
                f"Curve {self.curve.name} ({self.family.value}) is missing coefficients {missing}"
            )
        if len(self.y2bh) != 3:
            raise ConfigurationError(f"Curve {self.curve.name} needs three y2bh coefficients")
        if self.strategy is SolvingStrategy.CLOSED_FORM and self.family not in CLOSED_FORM_FAMILIES:
            raise ConfigurationError(
                f"Curve {self.curve.name}: family {self.family.value} has no closed-form inverse"
            )
        is_gi_family = self.family is CurveFamily.GROWTH_INTERCEPT
        is_gi_strategy = self.strategy is SolvingStrategy.GROWTH_INTERCEPT
        if is_gi_family != is_gi_strategy:
            raise ConfigurationError(
                f"Curve {self.curve.name}: growth intercept family and strategy must go together"
            )
        if is_gi_family and (self.max_age is None or self.max_age < 1):
            raise ConfigurationError(f"Curve {self.curve.name} needs a max_age of at least 1")


class EquationRegistry:
    """Read-only lookup from curve identifier to EquationSpec.

    Every SiteIndexEquation member must have an entry; a registry is never
    partially populated.
    """

    def __init__(self, specs: Dict[SiteIndexEquation, EquationSpec]):
        missing = [c.name for c in SiteIndexEquation if c not in specs]
        if missing:
            raise ConfigurationError(f"No definition for site index curves: {missing}")
        self._specs = dict(specs)

    @classmethod
    def from_config(cls, curves: Dict[str, Any]) -> "EquationRegistry":
        """Build a registry from the 'curves' section of site_curves.yaml.

        Args:
            curves: Mapping of curve name to curve definition

        Returns:
            Populated registry
        """
        specs: Dict[SiteIndexEquation, EquationSpec] = {}
        for name, entry in curves.items():
            curve = SiteIndexEquation.from_value(name)
            if 'number' in entry and int(entry['number']) != curve.value:
                raise ConfigurationError(
                    f"Curve {name} is numbered {entry['number']}, expected {curve.value}"
                )
            specs[curve] = EquationSpec.from_config(curve, entry)
        return cls(specs)

    def lookup(self, curve: Any) -> EquationSpec:
        """Get the spec of a curve.

        Args:
            curve: SiteIndexEquation, curve number or curve name

        Returns:
            EquationSpec for the curve

        Raises:
            UnknownCurveError: If the identifier names no curve
        """
        return self._specs[SiteIndexEquation.from_value(curve)]

    def curves_for_species(self, species: str) -> List[SiteIndexEquation]:
        """All curves fitted for a SINDEX species code."""
        code = normalize_code(species)
        return [c for c, spec in self._specs.items() if spec.species == code]

    def curves_with_strategy(self, strategy: SolvingStrategy) -> List[SiteIndexEquation]:
        return [c for c, spec in self._specs.items() if spec.strategy is strategy]

    def __contains__(self, curve: Any) -> bool:
        return isinstance(curve, SiteIndexEquation) and curve in self._specs

    def __iter__(self) -> Iterator[EquationSpec]:
        return iter(self._specs.values())

    def __len__(self) -> int:
        return len(self._specs)


_registry: Optional[EquationRegistry] = None


def get_equation_registry() -> EquationRegistry:
    """Get the process-wide equation registry, loading it on first use."""
    global _registry
    if _registry is None:
        from ..config_loader import get_config_loader
        _registry = EquationRegistry.from_config(get_config_loader().load_site_curves())
    return _registry
