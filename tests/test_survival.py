"""
Unit tests for survival curve calibration from CDS quotes.
"""

from datetime import date
import numpy as np
import pytest

from curvecalib.calibrators import SurvivalFitCalibrator
from curvecalib.config import CalibratorConfig, NegSPTreatment
from curvecalib.conventions import TimeUnit
from curvecalib.curves import (
    Curve,
    CurveTenor,
    DiscountCurve,
    ParQuoteHandler,
    SurvivalCurve,
    create_flat_discount_curve,
)
from curvecalib.errors import CalibrationFailure, ConfigurationError
from curvecalib.products import CDS, Note


AS_OF = date(2025, 1, 15)


@pytest.fixture
def discount_curve():
    return create_flat_discount_curve(AS_OF, 0.05, name="USD")


def cds_tenor(tenor: str, spread: float) -> CurveTenor:
    return CurveTenor(tenor, CDS.from_tenor(AS_OF, tenor, spread), spread, ParQuoteHandler("premium"))


def build_curve(discount_curve, quotes, config=None, recovery=0.4, **kwargs) -> SurvivalCurve:
    calibrator = SurvivalFitCalibrator(AS_OF, discount_curve=discount_curve, recovery=recovery,
                                       config=config, **kwargs)
    return SurvivalCurve(AS_OF, calibrator=calibrator, name="ACME",
                         tenors=[cds_tenor(t, s) for t, s in quotes])


class TestFlatSpreads:
    """A flat spread curve implies an (almost) flat hazard rate."""

    @pytest.fixture
    def curve(self, discount_curve):
        curve = build_curve(discount_curve, [("1Y", 0.01), ("3Y", 0.01), ("5Y", 0.01), ("7Y", 0.01), ("10Y", 0.01)])
        curve.fit()
        return curve

    def test_hazard_rate_constant(self, curve):
        dates = [AS_OF] + curve.dates()
        hazards = [curve.hazard_rate(a, b) for a, b in zip(dates[:-1], dates[1:])]
        assert max(hazards) - min(hazards) < 1e-5

    def test_credit_triangle(self, curve):
        """Hazard rate is close to spread / (1 - R)."""
        hazard = curve.hazard_rate(AS_OF, curve.get_dt(0))
        assert abs(hazard - 0.01 / 0.6) < 5e-4

    def test_tenors_reprice_at_par(self, curve):
        for tenor in curve.tenors:
            assert abs(curve.pv(tenor.product)) < 1e-9

    def test_survival_decreasing(self, curve):
        assert np.all(np.diff(curve.values()) < 0)
        assert curve.default_prob(curve.get_dt(-1)) > 0

    def test_fit_twice_is_identical(self, curve):
        first = curve.values().copy()
        curve.fit()
        assert np.array_equal(curve.values(), first)


class TestSteepCurve:

    def test_upward_sloping_spreads(self, discount_curve):
        curve = build_curve(discount_curve, [("1Y", 0.005), ("3Y", 0.01), ("5Y", 0.015)])
        curve.fit()
        h1 = curve.hazard_rate(AS_OF, curve.get_dt(0))
        h2 = curve.hazard_rate(curve.get_dt(0), curve.get_dt(1))
        h3 = curve.hazard_rate(curve.get_dt(1), curve.get_dt(2))
        assert h1 < h2 < h3
        for tenor in curve.tenors:
            assert abs(curve.pv(tenor.product)) < 1e-9

    def test_pricing_grid_step(self, discount_curve):
        config = CalibratorConfig(step_size=1, step_unit=TimeUnit.WEEKS)
        curve = build_curve(discount_curve, [("1Y", 0.01), ("5Y", 0.02)], config=config)
        curve.fit()
        pricer = curve.calibrator.get_pricer(curve, curve.tenors["5Y"].product)
        assert len(pricer.grid) > 5 * 52
        assert abs(pricer.par_spread() - 0.02) < 1e-9

    def test_recovery_curve(self, discount_curve):
        recovery = Curve(AS_OF, interpolation_method="linear", name="Recovery")
        recovery.add(AS_OF, 0.4)
        flat = build_curve(discount_curve, [("1Y", 0.01), ("5Y", 0.01)])
        flat.fit()
        curved = build_curve(discount_curve, [("1Y", 0.01), ("5Y", 0.01)], recovery=recovery)
        curved.fit()
        assert np.allclose(flat.values(), curved.values(), atol=1e-12)


class TestFailureAndForcedFit:
    """A zero spread after a wide one cannot be matched with S <= 1."""

    QUOTES = [("1Y", 0.01), ("3Y", 0.05), ("5Y", 0.0)]

    def test_failure_names_tenor(self, discount_curve):
        curve = build_curve(discount_curve, self.QUOTES)
        with pytest.raises(CalibrationFailure) as excinfo:
            curve.fit()
        failure = excinfo.value
        assert failure.curve_name == "ACME"
        assert failure.tenor_name == "5Y"
        assert failure.tenor_date == curve.tenors["5Y"].curve_date
        assert failure.residual > 0
        assert "5Y" in str(failure)

    def test_force_fit(self, discount_curve):
        config = CalibratorConfig(force_fit=True)
        curve = build_curve(discount_curve, self.QUOTES, config=config)
        curve.fit()
        assert curve.fit_was_forced is True
        assert len(curve) == 3
        # Forced point continues the last hazard rate
        h2 = curve.hazard_rate(curve.get_dt(0), curve.get_dt(1))
        h3 = curve.hazard_rate(curve.get_dt(1), curve.get_dt(2))
        assert abs(h2 - h3) < 1e-10

    def test_forced_flag_reset(self, discount_curve):
        config = CalibratorConfig(force_fit=True)
        curve = build_curve(discount_curve, self.QUOTES, config=config)
        curve.fit()
        curve.tenors["5Y"].set_quote(0.05)
        curve.fit()
        assert curve.fit_was_forced is False

    def test_widened_bounds_find_negative_hazard(self, discount_curve):
        config = CalibratorConfig(allow_negative_spreads=True)
        curve = build_curve(discount_curve, self.QUOTES, config=config)
        curve.fit()
        assert curve.negative_found is True
        assert curve.get_val(2) > curve.get_val(1)
        assert abs(curve.pv(curve.tenors["5Y"].product)) < 1e-9


class TestForcedFirstTenor:
    """A 1Y spread of 481.5% needs a survival probability below 1e-10."""

    QUOTES = [("1Y", 4.815)]

    def test_probability_floor_fails(self, discount_curve):
        curve = build_curve(discount_curve, self.QUOTES)
        with pytest.raises(CalibrationFailure) as excinfo:
            curve.fit()
        assert excinfo.value.tenor_name == "1Y"

    def test_solved_in_hazard_rate_space(self, discount_curve):
        curve = build_curve(discount_curve, self.QUOTES, config=CalibratorConfig(force_fit=True))
        curve.fit()
        assert curve.fit_was_forced is True
        assert 0.0 < curve.get_val(0) < 1e-10
        assert abs(curve.pv(curve.tenors["1Y"].product)) < 1e-9

    def test_negative_spread_still_fails(self, discount_curve):
        curve = build_curve(discount_curve, [("1Y", -0.01)], config=CalibratorConfig(force_fit=True))
        with pytest.raises(CalibrationFailure):
            curve.fit()
        assert curve.fit_was_forced is False


class TestForbidNegativeHazardRates:

    QUOTES = [("1Y", 0.03), ("2Y", 0.005)]

    def test_increasing_survival_rejected(self, discount_curve):
        curve = build_curve(discount_curve, self.QUOTES, forbid_negative_hazard_rates=True)
        with pytest.raises(CalibrationFailure) as excinfo:
            curve.fit()
        assert excinfo.value.tenor_name == "2Y"

    def test_overrides_widened_bounds(self, discount_curve):
        config = CalibratorConfig(allow_negative_spreads=True)
        curve = build_curve(discount_curve, self.QUOTES, config=config, forbid_negative_hazard_rates=True)
        with pytest.raises(CalibrationFailure):
            curve.fit()

    def test_forced_fit_keeps_hazard_positive(self, discount_curve):
        curve = build_curve(discount_curve, self.QUOTES, config=CalibratorConfig(force_fit=True),
                            forbid_negative_hazard_rates=True)
        curve.fit()
        assert curve.fit_was_forced is True
        assert curve.get_val(1) < curve.get_val(0)

    def test_upward_spreads_unaffected(self, discount_curve):
        quotes = [("1Y", 0.005), ("3Y", 0.01), ("5Y", 0.02)]
        plain = build_curve(discount_curve, quotes)
        plain.fit()
        capped = build_curve(discount_curve, quotes, forbid_negative_hazard_rates=True)
        capped.fit()
        assert np.allclose(capped.values(), plain.values(), rtol=0, atol=1e-8)


        assert abs(curve.pv(curve.tenors["5Y"].product)) < 1e-9


class TestZeroTreatment:

    def test_negative_hazard_clamped(self, discount_curve):
        config = CalibratorConfig(neg_sp_treatment=NegSPTreatment.ZERO)
        curve = build_curve(discount_curve, [("1Y", 0.03), ("2Y", 0.005)], config=config)
        curve.fit()
        assert curve.negative_found is True
        assert curve.get_val(1) == curve.get_val(0)
        assert curve.hazard_rate(curve.get_dt(0), curve.get_dt(1)) == 0.0

    def test_allow_keeps_negative_hazard(self, discount_curve):
        curve = build_curve(discount_curve, [("1Y", 0.03), ("2Y", 0.005)])
        curve.fit()
        assert curve.negative_found is True
        assert curve.hazard_rate(curve.get_dt(0), curve.get_dt(1)) < 0
        assert abs(curve.pv(curve.tenors["2Y"].product)) < 1e-9


class TestSurvivalValidation:

    def test_missing_discount_curve(self):
        curve = build_curve(None, [("1Y", 0.01)])
        with pytest.raises(ConfigurationError) as excinfo:
            curve.fit()
        assert any("discount curve" in p for p in excinfo.value.problems)

    def test_all_problems_reported(self):
        calibrator = SurvivalFitCalibrator(AS_OF, discount_curve=None, recovery=1.5)
        curve = DiscountCurve(AS_OF, calibrator=calibrator, tenors=[cds_tenor("1Y", 0.01)])
        with pytest.raises(ConfigurationError) as excinfo:
            curve.fit()
        assert len(excinfo.value.problems) == 3

    def test_non_cds_product(self, discount_curve):
        note = CurveTenor("1Y", Note.from_tenor(AS_OF, "1Y", 0.03), 0.03, ParQuoteHandler("coupon", 1.0))
        curve = SurvivalCurve(AS_OF, calibrator=SurvivalFitCalibrator(AS_OF, discount_curve=discount_curve),
                              tenors=[note])
        with pytest.raises(ValueError):
            curve.fit()
