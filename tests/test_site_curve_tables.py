"""Tests for height-age tables of site index curves."""
import numpy as np
import pandas as pd
import pytest

from pyvdyp.exceptions import InvalidArgumentError
from pyvdyp.site_index import AgeType, SiteIndexEquation, height_from_age, years_to_breast_height
from pyvdyp.utils import (
    compare_site_curves,
    estimate_age_from_height,
    generate_height_age_table,
    get_age_at_height,
    get_height_at_age,
)


@pytest.fixture
def dr_table():
    return generate_height_age_table(SiteIndexEquation.DR_NIGH, 25.0, max_age=100)


# ============================================================
# Test Table Generation
# ============================================================
class TestGenerateHeightAgeTable:
    """Test table generation."""

    def test_columns_and_rows(self, dr_table):
        assert list(dr_table.columns) == ['age', 'height', 'years_to_breast_height']
        assert len(dr_table) == 101
        assert dr_table['age'].iloc[0] == 0
        assert dr_table['age'].iloc[-1] == 100

    def test_heights_match_solver(self, dr_table):
        row = dr_table[dr_table['age'] == 60].iloc[0]
        assert row['height'] == pytest.approx(
            height_from_age(SiteIndexEquation.DR_NIGH, 60, AgeType.TOTAL, 25.0))
        assert row['years_to_breast_height'] == pytest.approx(
            years_to_breast_height(SiteIndexEquation.DR_NIGH, 25.0))

    def test_time_step(self):
        table = generate_height_age_table(SiteIndexEquation.FDC_BRUCE, 30.0, max_age=50, time_step=10)
        assert list(table['age']) == [0, 10, 20, 30, 40, 50]

    def test_breast_height_ages(self):
        table = generate_height_age_table(SiteIndexEquation.DR_NIGH, 25.0, max_age=50,
                                          age_type=AgeType.BREAST)
        assert table['height'].iloc[-1] == pytest.approx(25.0)

    def test_growth_intercept_table(self):
        table = generate_height_age_table(SiteIndexEquation.FDC_NIGHGI, 30.0, max_age=100)
        assert table['age'].iloc[0] == 1
        assert table['age'].iloc[-1] == 50
        assert table['height'].iloc[-1] == pytest.approx(30.0)
        assert (table['years_to_breast_height']
                == years_to_breast_height(SiteIndexEquation.FDC_BRUCE, 30.0)).all()

    @pytest.mark.parametrize("age_type", [AgeType.TOTAL, 0])
    def test_growth_intercept_rejects_total_age(self, age_type):
        with pytest.raises(InvalidArgumentError, match="only has breast height ages"):
            generate_height_age_table(SiteIndexEquation.FDC_NIGHGI, 30.0, age_type=age_type)


# ============================================================
# Test Interpolation
# ============================================================
class TestInterpolation:
    """Test table look-ups."""

    def test_height_at_age(self, dr_table):
        expected = height_from_age(SiteIndexEquation.DR_NIGH, 40, AgeType.TOTAL, 25.0)
        assert get_height_at_age(dr_table, 40) == pytest.approx(expected)

    def test_age_at_height_between_rows(self, dr_table):
        age = get_age_at_height(dr_table, 15.0)
        assert 0 < age < 100
        assert get_height_at_age(dr_table, age) == pytest.approx(15.0, abs=0.05)

    def test_clamped_to_table(self, dr_table):
        assert get_age_at_height(dr_table, -1.0) == 0.0
        assert get_age_at_height(dr_table, 500.0) == 100.0
        assert get_height_at_age(dr_table, 1000) == pytest.approx(dr_table['height'].iloc[-1])

    def test_empty_table(self):
        empty = pd.DataFrame({'age': [], 'height': []})
        assert get_age_at_height(empty, 10.0) is None
        assert get_height_at_age(empty, 10.0) is None

    def test_estimate_age_from_height(self):
        height = height_from_age(SiteIndexEquation.SS_NIGH, 70, AgeType.TOTAL, 28.0)
        assert estimate_age_from_height(height, SiteIndexEquation.SS_NIGH, 28.0) == pytest.approx(70.0, abs=0.1)


# ============================================================
# Test Curve Comparison
# ============================================================
class TestCompareSiteCurves:
    """Test side by side curve tables."""

    def test_one_column_per_curve(self):
        df = compare_site_curves(["HWC_WILEY", 99, SiteIndexEquation.CWC_NIGH], 30.0, max_age=60)
        assert list(df.columns) == ['HWC_WILEY', 'HWC_WILEYAC', 'CWC_NIGH']
        assert list(df.index) == list(range(0, 61, 5))
        assert np.all(df.values >= 0.0)
