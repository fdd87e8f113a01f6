"""Tests for the inverse site index solvers.

Tests cover:
- Age from height agrees with height from age for every strategy
- Breast height and emergence edge cases
- The generic iterative solver
- The growth intercept scan
"""
import logging

import pytest

from pyvdyp.exceptions import (
    BelowBreastHeightError,
    GrowthInterceptTotalAgeError,
    NoConvergenceError,
)
from pyvdyp.site_index import (
    AgeType,
    SiteIndexEquation,
    age_from_height,
    height_from_age,
    years_to_breast_height,
)
from pyvdyp.site_index import age as age_solver
from pyvdyp.site_index import height as height_solver
from pyvdyp.site_index.age import growth_intercept_iterate, iterate
from pyvdyp.site_index.equations import CurveFamily


CLOSED_FORM_CASES = [
    pytest.param(SiteIndexEquation.FDC_BRUCE, 30.0, id="bruce"),
    pytest.param(SiteIndexEquation.HWC_WILEY, 28.0, id="wiley"),
    pytest.param(SiteIndexEquation.PLI_GOUDIE_DRY, 18.0, id="goudie-dry"),
    pytest.param(SiteIndexEquation.PLI_GOUDIE_WET, 22.0, id="goudie-wet"),
    pytest.param(SiteIndexEquation.SS_GOUDIE, 30.0, id="goudie-ss"),
    pytest.param(SiteIndexEquation.SW_GOUDIE_NAT, 20.0, id="goudie-sw"),
    pytest.param(SiteIndexEquation.SW_HU_GARCIA, 20.0, id="hu-garcia"),
]

ITERATIVE_CASES = [
    pytest.param(SiteIndexEquation.DR_NIGH, 25.0, id="nigh"),
    pytest.param(SiteIndexEquation.BA_KURUCZ86, 24.0, id="kurucz"),
    pytest.param(SiteIndexEquation.DR_HARRING, 26.0, id="power"),
    pytest.param(SiteIndexEquation.HWC_WILEYAC, 30.0, id="wiley-ac"),
]


# ============================================================
# Test Round Trips
# ============================================================
class TestAgeFromHeight:
    """Test that the inverse solvers undo the forward formulas."""

    @pytest.mark.parametrize("curve,site_index", CLOSED_FORM_CASES)
    @pytest.mark.parametrize("age", [20.0, 45.0, 90.0])
    def test_closed_form_breast_age_round_trip(self, curve, site_index, age):
        height = height_from_age(curve, age, AgeType.BREAST, site_index)
        assert age_from_height(curve, height, AgeType.BREAST, site_index) == pytest.approx(age, abs=0.01)

    @pytest.mark.parametrize("curve,site_index", CLOSED_FORM_CASES)
    def test_closed_form_total_age_round_trip(self, curve, site_index):
        height = height_from_age(curve, 60.0, AgeType.TOTAL, site_index)
        assert age_from_height(curve, height, AgeType.TOTAL, site_index) == pytest.approx(60.0, abs=0.01)

    @pytest.mark.parametrize("curve,site_index", ITERATIVE_CASES)
    @pytest.mark.parametrize("age_type", [AgeType.TOTAL, AgeType.BREAST])
    @pytest.mark.parametrize("age", [20.0, 45.0, 90.0])
    def test_iterative_age_reproduces_height(self, curve, site_index, age_type, age):
        """Iterative ages are accurate to the solver's height tolerance."""
        height = height_from_age(curve, age, age_type, site_index)
        found = age_from_height(curve, height, age_type, site_index)
        assert height_from_age(curve, found, age_type, site_index) == pytest.approx(height, abs=0.006)

    def test_site_index_height_is_reference_age(self):
        assert age_from_height(SiteIndexEquation.SS_NIGH, 28.0, AgeType.BREAST, 28.0) == pytest.approx(50.0, abs=0.1)

    def test_result_never_negative(self):
        age = age_from_height(SiteIndexEquation.PLI_GOUDIE_DRY, 0.5, AgeType.TOTAL, 18.0)
        assert 0.0 <= age < years_to_breast_height(SiteIndexEquation.PLI_GOUDIE_DRY, 18.0)


# ============================================================
# Test Edge Cases
# ============================================================
class TestAgeFromHeightEdgeCases:
    """Test heights at or below breast height."""

    @pytest.mark.parametrize("curve", [
        SiteIndexEquation.FDC_BRUCE,
        SiteIndexEquation.DR_NIGH,
        SiteIndexEquation.FDC_NIGHGI,
    ], ids=lambda c: c.name)
    def test_breast_age_below_breast_height(self, curve):
        with pytest.raises(BelowBreastHeightError):
            age_from_height(curve, 1.0, AgeType.BREAST, 25.0)

    @pytest.mark.parametrize("height", [0.0, 0.0001])
    def test_unemerged_tree_is_age_zero(self, height):
        assert age_from_height(SiteIndexEquation.DR_NIGH, height, AgeType.TOTAL, 25.0) == 0.0

    def test_site_index_below_breast_height(self):
        with pytest.raises(BelowBreastHeightError):
            age_from_height(SiteIndexEquation.DR_NIGH, 10.0, AgeType.TOTAL, 1.0)

    def test_height_never_reached(self):
        with pytest.raises(NoConvergenceError):
            age_from_height(SiteIndexEquation.DR_NIGH, 80.0, AgeType.BREAST, 10.0)


# ============================================================
# Test Generic Iteration
# ============================================================
class TestIterate:
    """Test the step-halving solver."""

    def test_matches_forward_height(self):
        age = iterate(SiteIndexEquation.CWC_NIGH, 20.0, AgeType.TOTAL, 30.0)
        height = height_from_age(SiteIndexEquation.CWC_NIGH, age, AgeType.TOTAL, 30.0)
        assert height == pytest.approx(20.0, abs=0.005)

    def test_breast_age_result(self):
        y2bh = 4.0
        total = iterate(SiteIndexEquation.CWC_NIGH, 20.0, AgeType.TOTAL, 30.0, y2bh)
        breast = iterate(SiteIndexEquation.CWC_NIGH, 20.0, AgeType.BREAST, 30.0, y2bh)
        assert breast == pytest.approx(total - y2bh)

    def test_works_for_closed_form_curves(self):
        height = height_from_age(SiteIndexEquation.FDC_BRUCE, 70.0, AgeType.TOTAL, 30.0)
        age = iterate(SiteIndexEquation.FDC_BRUCE, height, AgeType.TOTAL, 30.0)
        assert height_from_age(SiteIndexEquation.FDC_BRUCE, age, AgeType.TOTAL, 30.0) == pytest.approx(height, abs=0.006)

    def test_terminates_for_unreachable_height(self):
        with pytest.raises(NoConvergenceError):
            iterate(SiteIndexEquation.DR_NIGH, 100.0, AgeType.TOTAL, 15.0)

    def test_young_wiley_is_refined(self):
        """Ages under ten years on the Wiley curve come from the iterative solver."""
        site_index = 30.0
        height = height_from_age(SiteIndexEquation.HWC_WILEY, 6.0, AgeType.BREAST, site_index)
        age = age_from_height(SiteIndexEquation.HWC_WILEY, height, AgeType.BREAST, site_index)
        assert age == pytest.approx(iterate(SiteIndexEquation.HWC_WILEY, height, AgeType.BREAST, site_index))
        assert age == pytest.approx(6.0, abs=0.05)


# ============================================================
# Test Iteration Over Failing Forward Curves
# ============================================================
class TestIterateForwardFailures:
    """Test iterate when the forward formula cannot be evaluated.

    A failed forward evaluation counts as a height of 1000 m, so the search
    steps back and keeps going.
    """

    @pytest.fixture
    def nigh_formula(self, monkeypatch):
        """Install a Nigh forward formula that fails where `fails` says; gives back the tried total ages."""
        original = height_solver.FORWARD_FORMULAS[CurveFamily.NIGH]
        attempts = []

        def install(fails):
            def formula(spec, total_age, breast_age, site_index, y2bh):
                attempts.append(total_age)
                if fails(total_age):
                    raise NoConvergenceError("forward formula failed", spec.curve, age=total_age)
                return original(spec, total_age, breast_age, site_index, y2bh)
            monkeypatch.setitem(height_solver.FORWARD_FORMULAS, CurveFamily.NIGH, formula)
            return attempts

        return install

    def test_converges_around_failing_ages(self, nigh_formula):
        target = height_from_age(SiteIndexEquation.DR_NIGH, 33.0, AgeType.TOTAL, 25.0)
        attempts = nigh_formula(lambda total_age: 35.0 < total_age < 40.0)

        age = iterate(SiteIndexEquation.DR_NIGH, target, AgeType.TOTAL, 25.0)

        assert 37.5 in attempts
        assert age == pytest.approx(33.0, abs=0.05)

    def test_always_failing_stops_on_step_size(self, nigh_formula, caplog):
        attempts = nigh_formula(lambda total_age: True)

        with caplog.at_level(logging.DEBUG, logger="pyvdyp"):
            age = iterate(SiteIndexEquation.DR_NIGH, 10.0, AgeType.TOTAL, 25.0)

        # Total age 0 gives height 0 without calling the formula, so the
        # search closes in on age 0 and ends on step size before 100 failures
        assert age == pytest.approx(0.0, abs=1e-4)
        assert 0 < len(attempts) < 100
        assert "stopped on step size" in caplog.text

    def test_aborts_after_100_failures(self, nigh_formula, monkeypatch):
        attempts = nigh_formula(lambda total_age: True)
        monkeypatch.setattr(age_solver, "MAX_AGE", 5000.0)

        # Failures count as 1000 m, below this target, so the age keeps rising
        with pytest.raises(NoConvergenceError, match="failed too often"):
            iterate(SiteIndexEquation.DR_NIGH, 2000.0, AgeType.TOTAL, 25.0)
        assert len(attempts) == 100

    def test_age_limit_before_failure_limit(self, nigh_formula):
        nigh_formula(lambda total_age: True)
        with pytest.raises(NoConvergenceError, match="exceeds 999"):
            iterate(SiteIndexEquation.DR_NIGH, 2000.0, AgeType.TOTAL, 25.0)


# ============================================================
# Test Growth Intercept Scan
# ============================================================
class TestGrowthInterceptIterate:
    """Test the integer age scan of the growth intercept curves."""

    def test_site_index_height_is_age_fifty(self):
        assert age_from_height(SiteIndexEquation.FDC_NIGHGI, 30.0, AgeType.BREAST, 30.0) == 50.0

    @pytest.mark.parametrize("age", [8, 15, 33])
    def test_recovers_integer_age(self, age):
        height = height_from_age(SiteIndexEquation.SS_NIGHGI, age, AgeType.BREAST, 25.0)
        assert growth_intercept_iterate(SiteIndexEquation.SS_NIGHGI, height, AgeType.BREAST, 25.0) == float(age)

    def test_total_age_rejected(self):
        with pytest.raises(GrowthInterceptTotalAgeError):
            age_from_height(SiteIndexEquation.FDC_NIGHGI, 10.0, AgeType.TOTAL, 30.0)

    def test_best_match_at_range_end(self):
        # 1.4 m is far too short for site index 40 at any age from 1 to 50
        with pytest.raises(NoConvergenceError):
            growth_intercept_iterate(SiteIndexEquation.FDC_NIGHGI, 1.4, AgeType.BREAST, 40.0)
