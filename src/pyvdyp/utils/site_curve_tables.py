"""
Height-age tables for site index curves.

This module provides functions to generate and query height-age tables from
the site index curves. Tables are handy for plotting, for reporting a curve
next to measured data and for quick interpolated look-ups where calling the
iterative age solver for every value would be slow.
"""

from functools import lru_cache
from typing import Iterable, Optional, Tuple
import pandas as pd
import numpy as np


def generate_height_age_table(
    curve,
    site_index: float,
    max_age: int = 100,
    time_step: int = 1,
    age_type=None,
) -> pd.DataFrame:
    """
    Generate a table mapping age to height for a site index curve.

    Args:
        curve: Site index curve (member, number or name)
        site_index: Site index in metres
        max_age: Last age in the table (default 100 years)
        time_step: Years between rows (default 1)
        age_type: AgeType of the age column; total age unless the curve
            is a growth intercept curve, which only has breast height age

    Returns:
        DataFrame with columns: age, height, years_to_breast_height

    Raises:
        InvalidArgumentError: If total age is requested for a growth
            intercept curve
    """
    # Import here to avoid circular imports
    from pyvdyp.exceptions import InvalidArgumentError
    from pyvdyp.site_index.equations import AgeType, CurveFamily, get_equation_registry
    from pyvdyp.site_index.height import height_from_age, years_to_breast_height

    spec = get_equation_registry().lookup(curve)
    if age_type is None:
        age_type = (AgeType.BREAST if spec.family is CurveFamily.GROWTH_INTERCEPT
                    else AgeType.TOTAL)

    y2bh = years_to_breast_height(spec.curve, site_index)
    if spec.family is CurveFamily.GROWTH_INTERCEPT:
        if AgeType(age_type) is AgeType.TOTAL:
            raise InvalidArgumentError('age_type', AgeType.TOTAL.name,
                                       f"{spec.curve.name} only has breast height ages")
        first_age = 1
        max_age = min(max_age, int(spec.max_age))
    else:
        first_age = 0

    records = []
    for age in range(first_age, max_age + 1, time_step):
        records.append({
            'age': age,
            'height': height_from_age(spec.curve, age, age_type, site_index),
            'years_to_breast_height': y2bh,
        })

    return pd.DataFrame(records)


def get_age_at_height(
    height_age_table: pd.DataFrame,
    target_height: float,
    height_column: str = 'height',
) -> Optional[float]:
    """
    Interpolate age from height using a pre-computed table.

    If the target height is below the first height in the table, returns
    the first age. If above the last, returns the last age.

    Args:
        height_age_table: DataFrame with 'age' and height columns
        target_height: Height in metres
        height_column: Column name for height values (default 'height')

    Returns:
        Estimated age in years, or None for an empty table
    """
    if height_age_table.empty:
        return None

    ages = height_age_table['age'].values
    heights = height_age_table[height_column].values

    # Handle edge cases
    if target_height <= heights[0]:
        return float(ages[0])
    if target_height >= heights[-1]:
        return float(ages[-1])

    return float(np.interp(target_height, heights, ages))


def get_height_at_age(
    height_age_table: pd.DataFrame,
    target_age: float,
    height_column: str = 'height',
) -> Optional[float]:
    """
    Interpolate height from age using a pre-computed table.

    Args:
        height_age_table: DataFrame with 'age' and height columns
        target_age: Age in years
        height_column: Column name for height values

    Returns:
        Estimated height in metres, or None for an empty table
    """
    if height_age_table.empty:
        return None

    ages = height_age_table['age'].values
    heights = height_age_table[height_column].values

    if target_age <= ages[0]:
        return float(heights[0])
    if target_age >= ages[-1]:
        return float(heights[-1])

    return float(np.interp(target_age, ages, heights))


@lru_cache(maxsize=32)
def get_cached_height_age_table(
    curve,
    site_index: float,
    max_age: int = 150,
) -> Tuple[Tuple[float, ...], Tuple[float, ...]]:
    """
    Get a cached height-age table as tuples.

    Args:
        curve: Site index curve
        site_index: Site index in metres
        max_age: Last age in the table

    Returns:
        Tuple of (ages, heights)
    """
    df = generate_height_age_table(curve, site_index, max_age)
    return (
        tuple(float(a) for a in df['age'].values),
        tuple(float(h) for h in df['height'].values),
    )


def estimate_age_from_height(
    height: float,
    curve,
    site_index: float,
) -> float:
    """
    Estimate age from height by interpolating in a cached table.

    Faster but coarser than age_from_height; the result is clamped to the
    table's age range.

    Args:
        height: Height in metres
        curve: Site index curve
        site_index: Site index in metres

    Returns:
        Estimated age in years
    """
    ages, heights = get_cached_height_age_table(curve, site_index)

    if height <= heights[0]:
        return ages[0]
    if height >= heights[-1]:
        return ages[-1]

    return float(np.interp(height, heights, ages))


def compare_site_curves(
    curves: Iterable,
    site_index: float,
    max_age: int = 100,
    time_step: int = 5,
) -> pd.DataFrame:
    """
    Tabulate several curves side by side at one site index.

    Args:
        curves: Site index curves to compare
        site_index: Site index in metres
        max_age: Last age in the table
        time_step: Years between rows

    Returns:
        DataFrame indexed by age with one height column per curve name
    """
    from pyvdyp.site_index.equations import SiteIndexEquation

    columns = {}
    for curve in curves:
        member = SiteIndexEquation.from_value(curve)
        table = generate_height_age_table(member, site_index, max_age, time_step)
        columns[member.name] = table.set_index('age')['height']

    return pd.DataFrame(columns)


__all__ = [
    "generate_height_age_table",
    "get_age_at_height",
    "get_height_at_age",
    "get_cached_height_age_table",
    "estimate_age_from_height",
    "compare_site_curves",
]
