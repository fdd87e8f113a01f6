"""
Forward processing of polygons.

Implements the repair stages that prepare a polygon bank for projection:
- Removal of species with negligible basal area
- Site curve assignment for species without one
- Percentage of forested land per species
- Primary/secondary species ranking and inventory type group
- Estimation of missing site indices through site index conversion
- Estimation of missing years to breast height

Stages always run in order from the first up to a chosen last stage. Each
stage is also a plain function over a bank, so a caller can run a prefix of
the pipeline or re-run a later stage after correcting the bank.
"""
import logging
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .bank import PolygonBank, SpeciesRankingDetails
from .exceptions import (
    InvalidArgumentError,
    InvalidSpeciesError,
    NoCurveAvailableError,
    NoSpeciesRemainingError,
    ProcessingError,
    SiteIndexError,
    UnknownCurveError,
    UnrecognizedGenusError,
)
from .genus import PRIMARY_SPECIES_TO_COMBINE, combine_percentages, find_inventory_type_group
from .logging_config import get_logger, log_species_skipped, log_stage
from .site_index.conversion import SiteIndexConverter, get_site_index_converter
from .site_index.curves import SiteCurveMap, get_default_curve
from .site_index.height import years_to_breast_height

__all__ = [
    'ExecutionStep',
    'ForwardProcessingEngine',
    'ForwardProcessingResults',
    'MIN_BASAL_AREA',
    'MIN_POLYGON_YEAR',
    'remove_small_species',
    'calculate_missing_site_curves',
    'calculate_coverages',
    'determine_polygon_rankings',
    'estimate_missing_site_indices',
    'estimate_missing_years_to_breast_height_values',
]

_logger = get_logger(__name__)

# Species with less basal area (m2/ha, all utilization) are dropped
MIN_BASAL_AREA = 0.001

MIN_POLYGON_YEAR = 1900


class ExecutionStep(IntEnum):
    """Forward processing stages in execution order."""

    NONE = 0
    REMOVE_SMALL_SPECIES = 1
    CALCULATE_MISSING_SITE_CURVES = 2
    CALCULATE_COVERAGES = 3
    DETERMINE_POLYGON_RANKINGS = 4
    ESTIMATE_MISSING_SITE_INDICES = 5
    ESTIMATE_MISSING_YEARS_TO_BREAST_HEIGHT_VALUES = 6
    ALL = 7

    def predecessor(self) -> "ExecutionStep":
        """
        Raises:
            InvalidArgumentError: For NONE, which has no predecessor
        """
        if self is ExecutionStep.NONE:
            raise InvalidArgumentError('step', self.name, "NONE has no predecessor")
        return ExecutionStep(self.value - 1)

    def successor(self) -> "ExecutionStep":
        """
        Raises:
            InvalidArgumentError: For ALL, which has no successor
        """
        if self is ExecutionStep.ALL:
            raise InvalidArgumentError('step', self.name, "ALL has no successor")
        return ExecutionStep(self.value + 1)


# =============================================================================
# Stages
# =============================================================================

def remove_small_species(bank: PolygonBank, logger: logging.Logger = _logger) -> None:
    """
    Drop species whose basal area is below MIN_BASAL_AREA.

    Raises:
        NoSpeciesRemainingError: If no species is left
    """
    removed = bank.remove_where(lambda slot: slot.total_basal_area < MIN_BASAL_AREA)
    for slot in removed:
        logger.debug("Polygon %s: removed species %s with basal area %.5f",
                     bank.polygon_id, slot.genus, slot.total_basal_area)
    if bank.n_species == 0:
        raise NoSpeciesRemainingError(bank.polygon_id)


def calculate_missing_site_curves(bank: PolygonBank,
                                  site_curve_map: Optional[SiteCurveMap] = None) -> None:
    """
    Assign a site curve to every species that has none.

    The site curve map is consulted first, keyed by the leading sp64 alias
    (or the genus) and the polygon's region; the built-in default for the
    genus and region is used otherwise.

    Raises:
        NoCurveAvailableError: If neither source has a curve for a species
    """
    for i in bank.indices():
        slot = bank[i]
        if slot.site_curve is not None:
            continue

        curve = None
        if site_curve_map:
            for alias in (slot.primary_sp64, slot.genus):
                curve = site_curve_map.get(alias, bank.region)
                if curve is not None:
                    break
        if curve is None:
            curve = get_default_curve(slot.genus, bank.region)
        if curve is None:
            raise NoCurveAvailableError(slot.primary_sp64 or slot.genus, bank.region, bank.polygon_id)

        slot.site_curve = curve


def calculate_coverages(bank: PolygonBank, logger: logging.Logger = _logger) -> None:
    """
    Set each species' percentage of forested land from its share of basal area.

    Raises:
        ProcessingError: If the polygon's basal area is not positive
    """
    total = bank.aggregate.total_basal_area
    if total <= 0:
        raise ProcessingError(f"polygon basal area {total} is not positive", bank.polygon_id)

    logger.debug("Polygon %s: calculating coverages of %d species over basal area %.5f",
                 bank.polygon_id, bank.n_species, total)
    for i in bank.indices():
        slot = bank[i]
        slot.percentage_of_forested_land = slot.total_basal_area / total * 100.0


def determine_polygon_rankings(bank: PolygonBank,
                               species_to_combine: Optional[Iterable[Sequence[str]]] = None) -> None:
    """
    Rank species by cover and classify the polygon's inventory type group.

    Genus pairs in species_to_combine are ranked as one species (see
    combine_percentages); the bank's own percentages are not changed.

    Args:
        bank: Bank with coverages calculated
        species_to_combine: Genus pairs ranked together; defaults to
            PRIMARY_SPECIES_TO_COMBINE

    Raises:
        ProcessingError: If there are no species or none has any cover
        UnrecognizedGenusError: If the leading genera have no inventory type group
    """
    if bank.n_species == 0:
        raise ProcessingError("cannot rank species of a polygon without species", bank.polygon_id)

    if species_to_combine is None:
        species_to_combine = PRIMARY_SPECIES_TO_COMBINE

    names = bank.species_names()
    percentages = bank.percentages()
    for pair in species_to_combine:
        combine_percentages(names, pair, percentages)

    highest, highest_index = 0.0, None
    second, second_index = 0.0, None
    for i in bank.indices():
        if percentages[i] > highest:
            second, second_index = highest, highest_index
            highest, highest_index = percentages[i], i
        elif percentages[i] > second:
            second, second_index = percentages[i], i

    if highest_index is None:
        raise ProcessingError("no species has a cover percentage above 0", bank.polygon_id)

    secondary_genus = names[second_index] if second_index is not None else None
    try:
        inventory_type_group = find_inventory_type_group(names[highest_index], secondary_genus,
                                                         highest)
    except UnrecognizedGenusError as e:
        raise UnrecognizedGenusError(e.primary, e.secondary, e.reason, bank.polygon_id) from e

    bank.ranking = SpeciesRankingDetails(
        primary_species_index=highest_index,
        secondary_species_index=second_index,
        inventory_type_group=inventory_type_group,
    )


def _convert(converter: SiteIndexConverter, bank: PolygonBank, source, site_index: float,
             target) -> float:
    try:
        return converter.convert(source, site_index, target)
    except (UnknownCurveError, InvalidSpeciesError) as e:
        raise ProcessingError(
            f"converting site index {site_index} from {getattr(source, 'name', source)} "
            f"to {getattr(target, 'name', target)} failed: {e}",
            bank.polygon_id,
        ) from e


def estimate_missing_site_indices(bank: PolygonBank,
                                  converter: Optional[SiteIndexConverter] = None,
                                  logger: logging.Logger = _logger) -> None:
    """
    Fill in missing site indices from the species that have one.

    (1) A primary species without a site index gets the average of the other
    species' site indices, each converted to the primary's curve.
    (2) Every other species without a site index gets the primary's site
    index converted to its own curve.
    Species whose conversion fails are logged and skipped. Slot 0 receives
    the primary's site index, which stays None when nothing was available.

    Raises:
        ProcessingError: If the species are not ranked, a species has no
            site curve, or a curve or species cannot take part in conversion
    """
    converter = converter or get_site_index_converter()
    primary = bank.primary_slot
    primary_index = bank.ranking.primary_species_index
    primary_curve = primary.site_curve
    if primary_curve is None:
        raise ProcessingError("primary species has no site curve", bank.polygon_id)

    # (1)
    if primary.site_index is None:
        converted = []
        for i in bank.indices():
            slot = bank[i]
            if i == primary_index or slot.site_index is None:
                continue
            try:
                converted.append(_convert(converter, bank, slot.site_curve, slot.site_index,
                                          primary_curve))
            except SiteIndexError as e:
                log_species_skipped(logger, bank.polygon_id, slot.genus, e)
        if converted:
            primary.site_index = sum(converted) / len(converted)

    # (2)
    if primary.site_index is not None:
        for i in bank.indices():
            slot = bank[i]
            if i == primary_index or slot.site_index is not None:
                continue
            try:
                slot.site_index = _convert(converter, bank, primary_curve, primary.site_index,
                                           slot.site_curve)
            except SiteIndexError as e:
                log_species_skipped(logger, bank.polygon_id, slot.genus, e)

    bank.aggregate.site_index = primary.site_index


def estimate_missing_years_to_breast_height_values(bank: PolygonBank,
                                                   logger: logging.Logger = _logger) -> None:
    """
    Fill in missing years to breast height.

    Uses total age minus breast height age where both are known and total
    age is the larger; otherwise the species' site curve estimate at its own
    site index, falling back to the primary's (or any available) site index.
    Species without a usable site index or curve are logged and left unset.

    Raises:
        ProcessingError: If the species are not ranked
    """
    default_site_index = bank.primary_slot.site_index
    if default_site_index is None:
        default_site_index = next(
            (bank[i].site_index for i in bank.indices() if bank[i].site_index is not None), None
        )

    for i in bank.indices():
        slot = bank[i]
        if slot.years_to_breast_height is not None:
            continue

        if (slot.years_at_breast_height is not None and slot.age_total is not None
                and slot.age_total > slot.years_at_breast_height):
            slot.years_to_breast_height = slot.age_total - slot.years_at_breast_height
            continue

        site_index = slot.site_index if slot.site_index is not None else default_site_index
        if site_index is None or slot.site_curve is None:
            log_species_skipped(logger, bank.polygon_id, slot.genus,
                                "no site index or site curve for years to breast height")
            continue
        try:
            slot.years_to_breast_height = years_to_breast_height(slot.site_curve, site_index)
        except (SiteIndexError, UnknownCurveError) as e:
            log_species_skipped(logger, bank.polygon_id, slot.genus, e)


# =============================================================================
# Engine
# =============================================================================

@dataclass
class ForwardProcessingResults:
    """Outcome of processing a batch of polygons.

    Attributes:
        processed: Banks of the polygons that completed, in input order
        failures: Error per polygon id for polygons that were aborted
    """
    processed: List[PolygonBank] = field(default_factory=list)
    failures: Dict[str, ProcessingError] = field(default_factory=dict)

    @property
    def n_processed(self) -> int:
        return len(self.processed)

    @property
    def n_failed(self) -> int:
        return len(self.failures)


class ForwardProcessingEngine:
    """Runs the forward stages over polygon banks.

    Attributes:
        site_curve_map: Explicit site curves, consulted before the defaults
        species_to_combine: Genus pairs ranked together
        converter: Site index converter used to estimate site indices
        logger: Logger receiving progress and per-species skips
    """

    def __init__(self, site_curve_map: Optional[SiteCurveMap] = None,
                 species_to_combine: Optional[Iterable[Sequence[str]]] = None,
                 converter: Optional[SiteIndexConverter] = None,
                 logger: Optional[logging.Logger] = None):
        self.site_curve_map = site_curve_map
        self.species_to_combine: List[Tuple[str, ...]] = [
            tuple(pair) for pair in
            (species_to_combine if species_to_combine is not None else PRIMARY_SPECIES_TO_COMBINE)
        ]
        self.converter = converter or get_site_index_converter()
        self.logger = logger or _logger

        self._stages: Dict[ExecutionStep, Callable[[PolygonBank], None]] = {
            ExecutionStep.REMOVE_SMALL_SPECIES:
                lambda bank: remove_small_species(bank, self.logger),
            ExecutionStep.CALCULATE_MISSING_SITE_CURVES:
                lambda bank: calculate_missing_site_curves(bank, self.site_curve_map),
            ExecutionStep.CALCULATE_COVERAGES:
                lambda bank: calculate_coverages(bank, self.logger),
            ExecutionStep.DETERMINE_POLYGON_RANKINGS:
                lambda bank: determine_polygon_rankings(bank, self.species_to_combine),
            ExecutionStep.ESTIMATE_MISSING_SITE_INDICES:
                lambda bank: estimate_missing_site_indices(bank, self.converter, self.logger),
            ExecutionStep.ESTIMATE_MISSING_YEARS_TO_BREAST_HEIGHT_VALUES:
                lambda bank: estimate_missing_years_to_breast_height_values(bank, self.logger),
        }

    def validate_polygon(self, bank: PolygonBank) -> None:
        """
        Raises:
            ProcessingError: If the polygon's year is before 1900
        """
        if bank.year < MIN_POLYGON_YEAR:
            raise ProcessingError(f"year {bank.year} is before {MIN_POLYGON_YEAR}", bank.polygon_id)

    def execute(self, bank: PolygonBank, step: ExecutionStep) -> None:
        """Run a single stage on a bank, in place.

        Raises:
            InvalidArgumentError: If step is NONE or ALL
        """
        step = ExecutionStep(step)
        if step not in self._stages:
            raise InvalidArgumentError('step', step.name, "not a single processing stage")
        log_stage(self.logger, bank.polygon_id, step)
        self._stages[step](bank)

    def process_polygon(self, bank: PolygonBank,
                        last_step: ExecutionStep = ExecutionStep.ALL) -> PolygonBank:
        """
        Run every stage up to and including last_step on a copy of the bank.

        Args:
            bank: Polygon bank; it is not modified
            last_step: Last stage to run (ALL runs every stage)

        Returns:
            The processed copy of the bank

        Raises:
            ProcessingError: If the polygon fails validation or a stage
                aborts the polygon
        """
        last_step = ExecutionStep(last_step)
        self.logger.info("Starting processing of polygon %s (%d)", bank.polygon_id, bank.year)
        self.validate_polygon(bank)

        working = bank.copy()
        for step in ExecutionStep:
            if step in (ExecutionStep.NONE, ExecutionStep.ALL):
                continue
            if step > last_step:
                break
            self.execute(working, step)
        return working

    def process_polygons(self, banks: Iterable[PolygonBank],
                         last_step: ExecutionStep = ExecutionStep.ALL) -> ForwardProcessingResults:
        """
        Process a batch; a polygon that fails is logged and skipped.

        Args:
            banks: Polygon banks to process
            last_step: Last stage to run for each polygon

        Returns:
            Processed banks and the failures by polygon id
        """
        results = ForwardProcessingResults()
        for bank in banks:
            try:
                results.processed.append(self.process_polygon(bank, last_step))
            except ProcessingError as e:
                self.logger.error("Polygon %s aborted: %s", bank.polygon_id, e)
                results.failures[bank.polygon_id] = e
        self.logger.info("%d polygons processed, %d failed", results.n_processed, results.n_failed)
        return results
