"""
Unit tests for global parametric calibration (CIR, Nelson-Siegel-Svensson).
"""

from datetime import date
import numpy as np
import pytest

from curvecalib.calibrators import (
    CIRDiscountCalibrator,
    NelsonSiegelSvenssonCalibrator,
    ParameterVector,
    cir_discount_factor,
    nss_yield,
)
from curvecalib.config import CalibratorConfig
from curvecalib.conventions import DayCount, year_fraction
from curvecalib.curves import CurveTenor, DiscountCurve, ZeroYieldQuoteHandler
from curvecalib.errors import ConfigurationError
from curvecalib.products import ZeroCouponBond


AS_OF = date(2025, 1, 15)
TRUE_CIR = (0.5, 0.04, 0.1, 0.03)


def zero_tenor(tenor: str, zero_yield: float) -> CurveTenor:
    return CurveTenor(tenor, ZeroCouponBond.from_tenor(AS_OF, tenor), zero_yield, ZeroYieldQuoteHandler())


def cir_quotes(tenors):
    """Zero yields generated by the CIR model itself."""
    tenors_out = []
    for tenor in tenors:
        bond = ZeroCouponBond.from_tenor(AS_OF, tenor)
        t = year_fraction(AS_OF, bond.maturity, DayCount.ACT_365)
        y = -np.log(cir_discount_factor(t, *TRUE_CIR)) / t
        tenors_out.append(zero_tenor(tenor, y))
    return tenors_out


def cir_start(fit_sigma: bool = False) -> ParameterVector:
    return ParameterVector(
        values=[0.3, 0.05, 0.1, 0.02],
        lower=[1e-4, 1e-4, 1e-4, -0.05],
        upper=[5.0, 0.5, 1.0, 0.5],
        fit_flags=[True, True, fit_sigma, True],
        names=["kappa", "theta", "sigma", "r0"]
    )


def build_cir_curve(config=None) -> DiscountCurve:
    calibrator = CIRDiscountCalibrator(AS_OF, parameters=cir_start(), config=config)
    return DiscountCurve(AS_OF, calibrator=calibrator, tenors=cir_quotes(["1Y", "5Y", "10Y"]), name="CIR")


class TestCIRModel:

    def test_discount_factor_at_zero(self):
        assert cir_discount_factor(0.0, *TRUE_CIR) == 1.0

    def test_short_end_matches_r0(self):
        t = 1e-4
        assert abs(-np.log(cir_discount_factor(t, *TRUE_CIR)) / t - 0.03) < 1e-5

    def test_long_yield_below_theta(self):
        """The long CIR yield sits below theta by a convexity term."""
        y = -np.log(cir_discount_factor(50.0, *TRUE_CIR)) / 50.0
        assert 0.03 < y < 0.04


class TestCIRCalibration:

    @pytest.fixture
    def curve(self):
        curve = build_cir_curve()
        curve.fit()
        return curve

    def test_reprices_tenors(self, curve):
        for tenor in curve.tenors:
            assert abs(tenor.model_pv - tenor.market_pv) < 1e-8

    def test_converged(self, curve):
        assert curve.calibrator.last_result.converged

    def test_fixed_parameter_unchanged(self, curve):
        assert curve.calibrator.parameters.values[2] == 0.1

    def test_parameters_within_bounds(self, curve):
        params = curve.calibrator.parameters
        assert np.all(params.values >= params.lower)
        assert np.all(params.values <= params.upper)

    def test_curve_is_materialised_on_grid(self, curve):
        dates = curve.dates()
        assert dates[0] == date(2025, 4, 15)
        assert dates[-1] == date(2035, 1, 15)
        assert len(dates) == 40
        t = curve.time(dates[10])
        assert abs(curve.get_val(10) - cir_discount_factor(t, *curve.calibrator.parameters.values)) < 1e-15

    def test_deterministic(self):
        a = build_cir_curve()
        a.fit()
        b = build_cir_curve()
        b.fit()
        assert np.array_equal(a.calibrator.parameters.values, b.calibrator.parameters.values)
        assert np.array_equal(a.values(), b.values())

    def test_warm_start_refit(self, curve):
        first = curve.calibrator.parameters.values.copy()
        curve.refit(1)
        assert np.allclose(curve.calibrator.parameters.values, first, atol=1e-6)
        for tenor in curve.tenors:
            assert abs(tenor.model_pv - tenor.market_pv) < 1e-8

    def test_cold_start_refit_repeats_fit(self):
        curve = build_cir_curve(config=CalibratorConfig(warm_start=False))
        curve.fit()
        first = curve.calibrator.parameters.values.copy()
        curve.fit()
        assert np.array_equal(curve.calibrator.parameters.values, first)
        assert curve.calibrator.initial_parameters.values[0] == 0.3

    @pytest.mark.parametrize("method", ["nelder_mead", "l_bfgs_b"])
    def test_other_optimizers(self, method):
        curve = build_cir_curve(config=CalibratorConfig(optimizer_method=method))
        curve.fit()
        for tenor in curve.tenors:
            assert abs(tenor.model_pv - tenor.market_pv) < 1e-4


class TestParameterValidation:

    def test_length_mismatch(self):
        params = ParameterVector(values=[0.3, 0.05, 0.1, 0.02], lower=[0.0, 0.0, 0.0], upper=[1.0] * 4)
        curve = DiscountCurve(AS_OF, calibrator=CIRDiscountCalibrator(AS_OF, parameters=params),
                              tenors=cir_quotes(["1Y"]))
        with pytest.raises(ConfigurationError) as excinfo:
            curve.fit()
        assert any("lower" in p for p in excinfo.value.problems)

    def test_nothing_to_fit(self):
        params = cir_start()
        params.fit_flags[:] = False
        curve = DiscountCurve(AS_OF, calibrator=CIRDiscountCalibrator(AS_OF, parameters=params),
                              tenors=cir_quotes(["1Y"]))
        with pytest.raises(ConfigurationError) as excinfo:
            curve.fit()
        assert "No parameters flagged to fit" in excinfo.value.problems

    def test_empty_bounds(self):
        params = ParameterVector(values=[0.3, 0.05, 0.1, 0.02], lower=[1.0, 0.0, 0.0, 0.0],
                                 upper=[0.5, 1.0, 1.0, 1.0])
        errors = []
        params.validate(errors)
        assert len(errors) == 1

    def test_no_active_tenors(self):
        curve = DiscountCurve(AS_OF, calibrator=CIRDiscountCalibrator(AS_OF), tenors=[])
        with pytest.raises(ConfigurationError):
            curve.fit()

    def test_with_free_keeps_fixed_values(self):
        params = cir_start()
        updated = params.with_free([1.0, 2.0, 3.0])
        assert list(updated.values) == [1.0, 2.0, 0.1, 3.0]
        assert list(params.values) == [0.3, 0.05, 0.1, 0.02]
        assert updated.as_dict()["sigma"] == 0.1


class TestNelsonSiegelSvensson:

    TRUE_NSS = np.array([0.045, -0.015, 0.02, 0.005, 2.0, 5.0])

    def test_short_rate_limit(self):
        assert nss_yield(0.0, self.TRUE_NSS) == pytest.approx(0.03)
        assert abs(nss_yield(1e-8, self.TRUE_NSS) - 0.03) < 1e-8

    def test_fit_to_model_yields(self):
        tenors = []
        for tenor in ["1Y", "2Y", "3Y", "5Y", "7Y", "10Y", "20Y", "30Y"]:
            bond = ZeroCouponBond.from_tenor(AS_OF, tenor)
            t = year_fraction(AS_OF, bond.maturity, DayCount.ACT_365)
            tenors.append(zero_tenor(tenor, nss_yield(t, self.TRUE_NSS)))

        start = NelsonSiegelSvenssonCalibrator.default_parameters()
        start.values = np.array([0.04, -0.01, 0.01, 0.0, 1.8, 4.5])
        calibrator = NelsonSiegelSvenssonCalibrator(AS_OF, parameters=start)
        curve = DiscountCurve(AS_OF, calibrator=calibrator, tenors=tenors, name="NSS")
        curve.fit()
        for tenor in curve.tenors:
            assert abs(tenor.model_pv - tenor.market_pv) < 1e-6
