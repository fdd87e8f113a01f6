"""
Polygon bank: the per-polygon working state of the forward engine.

A bank holds one slot per species of the polygon's primary layer plus the
polygon aggregate in slot 0. Every per-species value lives on its slot, so
removing a species is a single operation that keeps all values aligned.
Values that were not measured are None, never a sentinel number.
"""
import copy
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Callable, Dict, Iterable, List, Optional

import numpy as np
import pandas as pd

from .exceptions import InvalidArgumentError, ProcessingError
from .genus import GENUS_INDEX
from .site_index.curves import Region
from .site_index.equations import SiteIndexEquation
from .utils import normalize_species_code

__all__ = [
    'Region',
    'UtilizationClass',
    'SpeciesSlot',
    'SpeciesRankingDetails',
    'PolygonBank',
    'N_UTILIZATION_CLASSES',
]


class UtilizationClass(IntEnum):
    """Diameter utilization classes (cm) of basal area and tree counts."""

    SMALL = -1
    """Trees below 7.5 cm."""

    ALL = 0
    """All trees 7.5 cm and over."""

    U75TO125 = 1
    U125TO175 = 2
    U175TO225 = 3
    OVER225 = 4

    @property
    def index(self) -> int:
        """Position of the class in a utilization vector."""
        return self.value + 1


N_UTILIZATION_CLASSES = len(UtilizationClass)


def _utilization_vector(values: Optional[Iterable[float]], name: str) -> np.ndarray:
    if values is None:
        return np.zeros(N_UTILIZATION_CLASSES)
    vector = np.asarray(list(values), dtype=float)
    if vector.shape != (N_UTILIZATION_CLASSES,):
        raise InvalidArgumentError(name, vector.tolist(),
                                   f"needs one value per utilization class ({N_UTILIZATION_CLASSES})")
    return vector


@dataclass
class SpeciesSlot:
    """Values of one species (or the polygon aggregate) in a bank.

    Attributes:
        genus: Genus alias, None for the aggregate slot
        genus_index: Genus index (1-16), looked up from the alias when omitted
        sp64_distribution: Species (sp64) aliases and their percentages,
            leading species first
        basal_area: Basal area (m2/ha) per utilization class
        trees_per_hectare: Trees per hectare per utilization class
        site_index: Site index (m)
        age_total: Total age (years)
        years_at_breast_height: Breast height age (years)
        years_to_breast_height: Years from germination to breast height
        percentage_of_forested_land: Share of the polygon's basal area (%)
        dominant_height: Dominant height (m)
        site_curve: Site index curve of the species
    """
    genus: Optional[str] = None
    genus_index: Optional[int] = None
    sp64_distribution: Dict[str, float] = field(default_factory=dict)
    basal_area: Any = None
    trees_per_hectare: Any = None
    site_index: Optional[float] = None
    age_total: Optional[float] = None
    years_at_breast_height: Optional[float] = None
    years_to_breast_height: Optional[float] = None
    percentage_of_forested_land: Optional[float] = None
    dominant_height: Optional[float] = None
    site_curve: Optional[SiteIndexEquation] = None

    def __post_init__(self):
        self.genus = normalize_species_code(self.genus)
        if self.genus_index is None and self.genus is not None:
            self.genus_index = GENUS_INDEX.get(self.genus)
        self.sp64_distribution = {
            normalize_species_code(k): float(v) for k, v in self.sp64_distribution.items()
        }
        self.basal_area = _utilization_vector(self.basal_area, 'basal_area')
        self.trees_per_hectare = _utilization_vector(self.trees_per_hectare, 'trees_per_hectare')
        if self.site_curve is not None:
            self.site_curve = SiteIndexEquation.from_value(self.site_curve)

    @property
    def total_basal_area(self) -> float:
        """Basal area of all trees 7.5 cm and over."""
        return float(self.basal_area[UtilizationClass.ALL.index])

    @property
    def primary_sp64(self) -> Optional[str]:
        """Leading species alias of the distribution, if any."""
        return next(iter(self.sp64_distribution), None)

    def copy(self) -> "SpeciesSlot":
        return copy.deepcopy(self)


@dataclass(frozen=True)
class SpeciesRankingDetails:
    """Result of ranking a polygon's species.

    Attributes:
        primary_species_index: Bank slot of the primary species
        secondary_species_index: Bank slot of the secondary species, if any
        inventory_type_group: Inventory type group of the polygon
    """
    primary_species_index: int
    secondary_species_index: Optional[int]
    inventory_type_group: int


class PolygonBank:
    """Working state of one polygon layer.

    Slot 0 is the polygon aggregate; slots 1..n_species are species. A bank
    is owned by one processing run at a time; use copy() to hand the same
    polygon to another run.
    """

    def __init__(self, polygon_id: str, year: int, region: Any, slots: List[SpeciesSlot],
                 bec_zone: Optional[str] = None, layer: str = "P"):
        if not slots:
            raise InvalidArgumentError('slots', slots, "a bank needs at least the aggregate slot")
        self.polygon_id = polygon_id
        self.year = int(year)
        self.region = Region.from_code(region)
        self.bec_zone = bec_zone
        self.layer = layer
        self.slots = list(slots)
        self.ranking: Optional[SpeciesRankingDetails] = None

    @classmethod
    def from_species(cls, polygon_id: str, year: int, region: Any, species: Iterable[SpeciesSlot],
                     bec_zone: Optional[str] = None, layer: str = "P",
                     aggregate: Optional[SpeciesSlot] = None) -> "PolygonBank":
        """Build a bank from species slots.

        Args:
            polygon_id: Polygon identifier
            year: Reference year of the polygon
            region: Region or region code
            species: Species slots in input order
            bec_zone: BEC zone alias
            layer: Layer type
            aggregate: Polygon aggregate; summed from the species when omitted

        Returns:
            The new bank
        """
        species = list(species)
        if aggregate is None:
            aggregate = SpeciesSlot(
                basal_area=sum((s.basal_area for s in species), np.zeros(N_UTILIZATION_CLASSES)),
                trees_per_hectare=sum((s.trees_per_hectare for s in species),
                                      np.zeros(N_UTILIZATION_CLASSES)),
            )
        return cls(polygon_id, year, region, [aggregate] + species, bec_zone, layer)

    @property
    def n_species(self) -> int:
        return len(self.slots) - 1

    @property
    def aggregate(self) -> SpeciesSlot:
        return self.slots[0]

    def indices(self) -> List[int]:
        """Slot numbers of the species (1..n_species)."""
        return list(range(1, len(self.slots)))

    def __getitem__(self, index: int) -> SpeciesSlot:
        return self.slots[index]

    def __len__(self) -> int:
        return self.n_species

    def remove(self, index: int) -> SpeciesSlot:
        """Remove a species slot; later slots move down by one.

        Any ranking refers to the old slot numbers and is discarded.

        Raises:
            InvalidArgumentError: If index is not a species slot
        """
        if not 1 <= index <= self.n_species:
            raise InvalidArgumentError('index', index, f"must be a species slot 1-{self.n_species}")
        self.ranking = None
        return self.slots.pop(index)

    def remove_where(self, predicate: Callable[[SpeciesSlot], bool]) -> List[SpeciesSlot]:
        """Remove every species slot the predicate accepts and return them."""
        removed = []
        for index in reversed(self.indices()):
            if predicate(self.slots[index]):
                removed.append(self.remove(index))
        removed.reverse()
        return removed

    def species_names(self) -> List[Optional[str]]:
        """Genus alias per slot, None for the aggregate."""
        return [slot.genus for slot in self.slots]

    def percentages(self) -> List[float]:
        """Percentage of forested land per slot; 0.0 where not computed."""
        return [0.0 if i == 0 or slot.percentage_of_forested_land is None
                else slot.percentage_of_forested_land
                for i, slot in enumerate(self.slots)]

    @property
    def primary_slot(self) -> SpeciesSlot:
        """Slot of the primary species.

        Raises:
            ProcessingError: If the species have not been ranked
        """
        if self.ranking is None:
            raise ProcessingError("species have not been ranked", self.polygon_id)
        return self.slots[self.ranking.primary_species_index]

    def copy(self) -> "PolygonBank":
        bank = PolygonBank(self.polygon_id, self.year, self.region,
                           [slot.copy() for slot in self.slots], self.bec_zone, self.layer)
        bank.ranking = self.ranking
        return bank

    def to_dataframe(self) -> pd.DataFrame:
        """Summarize the bank, one row per slot.

        Returns:
            DataFrame indexed by slot with genus, basal area (all classes),
            trees per hectare, percentage, site index, ages and site curve
        """
        all_index = UtilizationClass.ALL.index
        records = []
        for i, slot in enumerate(self.slots):
            records.append({
                'slot': i,
                'genus': slot.genus,
                'basal_area': float(slot.basal_area[all_index]),
                'trees_per_hectare': float(slot.trees_per_hectare[all_index]),
                'percentage': slot.percentage_of_forested_land,
                'site_index': slot.site_index,
                'age_total': slot.age_total,
                'years_at_breast_height': slot.years_at_breast_height,
                'years_to_breast_height': slot.years_to_breast_height,
                'site_curve': slot.site_curve.name if slot.site_curve is not None else None,
            })
        return pd.DataFrame(records).set_index('slot')

    def __repr__(self) -> str:
        return (f"PolygonBank(polygon_id={self.polygon_id!r}, year={self.year}, "
                f"region={self.region.value!r}, species={self.species_names()[1:]})")
