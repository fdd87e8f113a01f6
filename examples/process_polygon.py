#!/usr/bin/env python3
"""
Example: Forward Processing of a Coastal Polygon

This example runs the forward repair stages of PyVDYP over a five species
polygon from the coastal western hemlock zone and shows how the bank changes.

The workflow covers:
1. Building a polygon bank from per-species basal area and measurements
2. Running every forward stage (small species removal, site curves,
   coverages, ranking, site index and years-to-breast-height estimation)
3. Displaying the repaired bank
4. Comparing the site curves chosen for the polygon's species

Usage:
    python examples/process_polygon.py

    # Show the per-stage log, including skipped conversions:
    python examples/process_polygon.py --debug

Requirements:
    - pyvdyp (this package)
    - rich (for terminal output)
"""

import logging
import sys

import numpy as np
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from pyvdyp import (
    ForwardProcessingEngine,
    PolygonBank,
    SpeciesSlot,
    UtilizationClass,
    setup_logging,
)
from pyvdyp.utils import compare_site_curves

console = Console()


# =============================================================================
# Polygon Data
# =============================================================================

def create_coastal_polygon() -> PolygonBank:
    """Create the test polygon: B, C, D, H and S in the CWH zone."""
    species = [
        # genus, basal area (m2/ha), measured values
        ('B', 0.40292, {'age_total': 15.0, 'years_at_breast_height': 11.0}),
        ('C', 5.04597, {'site_index': 34.0}),
        ('D', 29.30249, {'age_total': 55.0, 'years_at_breast_height': 54.0}),
        ('H', 5.81006, {'site_index': 25.0}),
        ('S', 4.37115, {'site_index': 28.0}),
    ]

    slots = []
    for genus, basal_area, values in species:
        vector = np.zeros(len(UtilizationClass))
        vector[UtilizationClass.ALL.index] = basal_area
        slots.append(SpeciesSlot(genus=genus, sp64_distribution={genus: 100.0},
                                 basal_area=vector, **values))

    return PolygonBank.from_species("01002 S000001 00", 1970, "C", slots, bec_zone="CWH")


# =============================================================================
# Display Utilities
# =============================================================================

def _fmt(value, spec: str = ".2f") -> str:
    return "-" if value is None or value != value else format(value, spec)


def display_bank(bank: PolygonBank, title: str) -> None:
    """Display the species slots of a bank in a formatted table."""
    df = bank.to_dataframe()

    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Slot", style="cyan", justify="right")
    table.add_column("Genus", style="cyan")
    table.add_column("BA (m2/ha)", style="green", justify="right")
    table.add_column("Cover (%)", style="green", justify="right")
    table.add_column("Site Curve", style="yellow")
    table.add_column("SI (m)", style="magenta", justify="right")
    table.add_column("Age", justify="right")
    table.add_column("BH Age", justify="right")
    table.add_column("YTBH", justify="right")

    for slot, row in df.iloc[1:].iterrows():
        table.add_row(
            str(slot),
            row['genus'],
            f"{row['basal_area']:.5f}",
            _fmt(row['percentage']),
            row['site_curve'] if isinstance(row['site_curve'], str) else "-",
            _fmt(row['site_index']),
            _fmt(row['age_total'], ".0f"),
            _fmt(row['years_at_breast_height'], ".0f"),
            _fmt(row['years_to_breast_height']),
        )

    console.print(table)


def display_ranking(bank: PolygonBank) -> None:
    ranking = bank.ranking
    secondary = (bank[ranking.secondary_species_index].genus
                 if ranking.secondary_species_index is not None else "none")
    console.print(f"  [cyan]Primary species: {bank.primary_slot.genus}[/cyan]")
    console.print(f"  [cyan]Secondary species: {secondary}[/cyan]")
    console.print(f"  [cyan]Inventory type group: {ranking.inventory_type_group}[/cyan]")
    console.print(f"  [cyan]Polygon site index: {_fmt(bank.aggregate.site_index)}[/cyan]")


def display_curve_comparison(bank: PolygonBank, site_index: float) -> None:
    """Display the heights of the polygon's site curves at a common site index."""
    curves = [bank[i].site_curve for i in bank.indices()]
    df = compare_site_curves(curves, site_index, max_age=100, time_step=10)

    table = Table(title=f"Height (m) by Total Age at Site Index {site_index:.0f} m",
                  show_header=True, header_style="bold")
    table.add_column("Age", style="cyan", justify="right")
    for name in df.columns:
        table.add_column(name, style="green", justify="right")

    for age, row in df.iterrows():
        table.add_row(str(age), *(f"{height:.1f}" for height in row))

    console.print(table)


# =============================================================================
# Main
# =============================================================================

def main() -> None:
    setup_logging(level=logging.DEBUG if "--debug" in sys.argv else logging.WARNING)

    console.print(Panel.fit(
        "[bold]PyVDYP Forward Processing[/bold]\n"
        "Coastal western hemlock polygon, 1970",
        border_style="blue",
    ))

    console.print("\n[bold]Step 1: Build the Polygon Bank[/bold]")
    bank = create_coastal_polygon()
    display_bank(bank, "Input Polygon")

    console.print("\n[bold]Step 2: Run the Forward Stages[/bold]")
    engine = ForwardProcessingEngine()
    processed = engine.process_polygon(bank)
    console.print("[green]Forward processing complete![/green]")

    console.print("\n[bold]Step 3: Repaired Polygon[/bold]")
    display_bank(processed, "Processed Polygon")
    display_ranking(processed)

    console.print("\n[bold]Step 4: Compare Site Curves[/bold]")
    display_curve_comparison(processed, 25.0)


if __name__ == "__main__":
    main()
