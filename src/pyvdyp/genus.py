"""
Genus (SP0) codes and the genus rules of polygon ranking.

This module provides a Genus enum that inherits from (str, Enum) so it can be
used wherever a genus alias string is expected, together with the static
tables the forward engine ranks species with: hardwoods, the inventory type
group of pure stands, the genus pairs ranked together and the inventory type
group of mixed stands by primary and secondary genus. The tables are read from
cfg/species.yaml.

Usage:
    from pyvdyp.genus import Genus, find_inventory_type_group

    genus = Genus.from_string("pl")          # Genus.LODGEPOLE_PINE
    itg = find_inventory_type_group("D", "H", 55.0)   # 37
"""
from enum import Enum
from functools import lru_cache
from typing import Any, Dict, FrozenSet, List, Optional, Sequence, Tuple

from .config_loader import get_config_loader
from .exceptions import InvalidArgumentError, UnrecognizedGenusError
from .utils import normalize_code, normalize_species_code

__all__ = [
    'Genus',
    'GENUS_INDEX',
    'HARDWOODS',
    'ITG_PURE',
    'PRIMARY_SPECIES_TO_COMBINE',
    'PURE_STAND_PERCENTAGE',
    'combine_percentages',
    'find_inventory_type_group',
]

# A primary genus covering more than this percentage makes a pure stand
PURE_STAND_PERCENTAGE = 79.999


class Genus(str, Enum):
    """
    Genus (SP0) aliases of British Columbia tree species.

    Each member's value is the alias used in polygon data. The order of the
    members is the genus index order (AC = 1 ... Y = 16).
    """

    POPLAR = "AC"
    TREMBLING_ASPEN = "AT"
    BALSAM_FIR = "B"
    WESTERN_RED_CEDAR = "C"
    RED_ALDER = "D"
    BIRCH = "E"
    DOUGLAS_FIR = "F"
    HEMLOCK = "H"
    LARCH = "L"
    BROADLEAF_MAPLE = "MB"
    WHITEBARK_PINE = "PA"
    LODGEPOLE_PINE = "PL"
    WHITE_PINE = "PW"
    YELLOW_PINE = "PY"
    SPRUCE = "S"
    YELLOW_CEDAR = "Y"

    @classmethod
    def from_string(cls, code: str) -> "Genus":
        """
        Convert a genus alias to a Genus member.

        Args:
            code: Genus alias (case-insensitive)

        Returns:
            The corresponding Genus member

        Raises:
            ValueError: If the alias is not a genus

        Example:
            >>> Genus.from_string("pl")
            <Genus.LODGEPOLE_PINE: 'PL'>
        """
        if code is None:
            raise ValueError("Genus code cannot be None")

        normalized = normalize_code(code)

        for member in cls:
            if member.value == normalized:
                return member

        raise ValueError(
            f"Invalid genus code: '{code}'. "
            f"Valid codes: {', '.join(m.value for m in cls)}"
        )

    @classmethod
    def is_valid(cls, code: str) -> bool:
        """Check if a string is a genus alias."""
        if code is None:
            return False
        normalized = normalize_code(code)
        return any(member.value == normalized for member in cls)

    @property
    def index(self) -> int:
        """Genus index (1-16)."""
        return GENUS_INDEX[self.value]

    @property
    def is_hardwood(self) -> bool:
        return self.value in HARDWOODS

    def __str__(self) -> str:
        return self.value


# =============================================================================
# Static genus tables
# =============================================================================

def _species_config() -> Dict[str, Any]:
    return get_config_loader().load_species_config()


def _load_genus_index() -> Dict[str, int]:
    genera = _species_config()['genera']
    return {normalize_code(alias): int(entry['index']) for alias, entry in genera.items()}


def _load_pairs() -> List[Tuple[str, str]]:
    return [tuple(normalize_code(code) for code in pair)
            for pair in _species_config().get('combine_for_ranking', [])]


GENUS_INDEX: Dict[str, int] = _load_genus_index()

HARDWOODS: FrozenSet[str] = frozenset(normalize_code(g) for g in _species_config()['hardwoods'])

ITG_PURE: Dict[str, int] = {
    normalize_code(alias): int(group) for alias, group in _species_config()['itg_pure'].items()
}

PRIMARY_SPECIES_TO_COMBINE: List[Tuple[str, str]] = _load_pairs()


@lru_cache(maxsize=None)
def _mixed_rule(primary: str) -> Optional[Tuple[Dict[str, int], Optional[int], int]]:
    rule = _species_config()['itg_mixed'].get(primary)
    if rule is None:
        return None
    by_secondary = {normalize_code(k): int(v) for k, v in rule.get('secondary', {}).items()}
    hardwood = rule.get('hardwood')
    return by_secondary, int(hardwood) if hardwood is not None else None, int(rule['default'])


# =============================================================================
# Ranking rules
# =============================================================================

def combine_percentages(species_names: Sequence[Optional[str]], combination_group: Sequence[str],
                        percentages: List[float]) -> None:
    """
    Rank two genera together by moving their cover onto one of them.

    When exactly two entries of species_names belong to combination_group,
    the entry with the larger percentage (the later one on a tie) receives
    the sum of both and the other is set to 0.0. Otherwise percentages is
    left unchanged. Modifies percentages in place.

    Args:
        species_names: Genus alias per slot, None for unused slots
        combination_group: Exactly two genus aliases
        percentages: Percentage per slot, same length as species_names

    Raises:
        InvalidArgumentError: If the group does not hold two aliases or the
            two sequences differ in length
    """
    if len(combination_group) != 2:
        raise InvalidArgumentError('combination_group', combination_group,
                                   f"must have size 2; it has size {len(combination_group)}")
    if any(code is None for code in combination_group):
        raise InvalidArgumentError('combination_group', combination_group,
                                   "must not contain None")
    if len(species_names) != len(percentages):
        raise InvalidArgumentError(
            'percentages', len(percentages),
            f"length must match that of species_names ({len(species_names)})"
        )

    group = {normalize_code(code) for code in combination_group}
    matches = [i for i, name in enumerate(species_names)
               if normalize_species_code(name) in group]
    if len(matches) != 2:
        return

    first, second = matches
    if percentages[first] > percentages[second]:
        higher, lower = first, second
    else:
        higher, lower = second, first
    percentages[higher] = percentages[higher] + percentages[lower]
    percentages[lower] = 0.0


def find_inventory_type_group(primary_genus: str, secondary_genus: Optional[str],
                              primary_percentage: float) -> int:
    """
    Find the inventory type group of a stand from its leading genera.

    A primary genus covering more than 79.999% gives the pure stand group.
    Otherwise the group depends on the primary genus and then on the
    secondary genus (absent secondary uses the primary's default group).

    Args:
        primary_genus: Genus alias of the primary species
        secondary_genus: Genus alias of the secondary species, or None
        primary_percentage: Percentage of cover of the primary species

    Returns:
        Inventory type group number (1-42)

    Raises:
        UnrecognizedGenusError: If the primary genus is unknown or equals the
            secondary genus
    """
    primary = normalize_species_code(primary_genus)
    if primary is None:
        raise UnrecognizedGenusError(primary_genus, secondary_genus, "no primary genus")

    if primary_percentage > PURE_STAND_PERCENTAGE:
        if primary not in ITG_PURE:
            raise UnrecognizedGenusError(primary_genus)
        return ITG_PURE[primary]

    secondary = normalize_species_code(secondary_genus)
    if secondary == primary:
        raise UnrecognizedGenusError(primary_genus, secondary_genus,
                                     "primary and secondary genera are the same")

    rule = _mixed_rule(primary)
    if rule is None:
        raise UnrecognizedGenusError(primary_genus, secondary_genus)
    by_secondary, hardwood, default = rule

    if secondary in by_secondary:
        return by_secondary[secondary]
    if hardwood is not None and secondary in HARDWOODS:
        return hardwood
    return default
