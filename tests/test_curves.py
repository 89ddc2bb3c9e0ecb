"""
Unit tests for curves module.
"""

from datetime import date
import numpy as np
import pytest

from curvecalib.conventions import DayCount
from curvecalib.curves import (
    Curve,
    OverlayMode,
    LinearInterpolator,
    CubicSplineInterpolator,
    LogLinearInterpolator,
    create_interpolator,
    DiscountCurve,
    SurvivalCurve,
    ForwardPriceCurve,
    CurveTenor,
    CurveTenorCollection,
    ParQuoteHandler,
    PriceQuoteHandler,
    ZeroYieldQuoteHandler,
    create_flat_discount_curve,
)
from curvecalib.products import CDS, Note, ZeroCouponBond


AS_OF = date(2024, 1, 15)


class TestInterpolators:
    """Tests for interpolation methods."""

    @pytest.fixture
    def sample_data(self):
        """Sample interpolation data."""
        x = np.array([0.0, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0])
        y = np.array([1.0, 0.99, 0.98, 0.96, 0.92, 0.80, 0.62])
        return x, y

    def test_linear_interpolator(self, sample_data):
        x, y = sample_data
        interp = LinearInterpolator()
        interp.fit(x, y)

        assert abs(interp(0.0) - 1.0) < 1e-12
        assert abs(interp(1.0) - 0.96) < 1e-12
        assert abs(interp(1.5) - 0.94) < 1e-12

        # Flat extrapolation
        assert interp(20.0) == pytest.approx(0.62)
        assert interp(-1.0) == pytest.approx(1.0)

    def test_cubic_spline_interpolator(self, sample_data):
        x, y = sample_data
        interp = CubicSplineInterpolator()
        interp.fit(x, y)

        for xi, yi in zip(x, y):
            assert abs(interp(xi) - yi) < 1e-10

    def test_log_linear_interpolator(self, sample_data):
        x, y = sample_data
        interp = LogLinearInterpolator()
        interp.fit(x, y)

        assert abs(interp(1.0) - 0.96) < 1e-12
        expected = np.exp(0.5 * np.log(0.96) + 0.5 * np.log(0.92))
        assert abs(interp(1.5) - expected) < 1e-12

    def test_log_linear_extrapolates_last_rate(self, sample_data):
        """Beyond the last knot the last segment's log slope continues."""
        x, y = sample_data
        interp = LogLinearInterpolator()
        interp.fit(x, y)

        slope = (np.log(0.62) - np.log(0.80)) / 5.0
        assert abs(np.log(interp(15.0)) - (np.log(0.62) + 5.0 * slope)) < 1e-12

    def test_log_linear_rejects_non_positive(self):
        interp = LogLinearInterpolator()
        with pytest.raises(ValueError):
            interp.fit(np.array([0.0, 1.0]), np.array([1.0, 0.0]))

    def test_single_point_is_constant(self):
        interp = LinearInterpolator()
        interp.fit(np.array([1.0]), np.array([5.0]))
        assert interp(0.0) == 5.0
        assert interp(3.0) == 5.0

    def test_unfitted_raises(self):
        with pytest.raises(RuntimeError):
            LinearInterpolator()(1.0)

    def test_non_increasing_times_rejected(self):
        with pytest.raises(ValueError):
            LinearInterpolator().fit(np.array([0.0, 1.0, 1.0]), np.array([1.0, 2.0, 3.0]))

    def test_factory(self):
        assert isinstance(create_interpolator("Log-Linear"), LogLinearInterpolator)
        assert isinstance(create_interpolator("cubic"), CubicSplineInterpolator)
        with pytest.raises(ValueError):
            create_interpolator("quadratic")


class TestCurve:
    """Tests for the date-keyed curve."""

    @pytest.fixture
    def curve(self):
        c = Curve(AS_OF, anchor_value=1.0, name="Test")
        c.add(date(2025, 1, 15), 0.95)
        c.add(date(2026, 1, 15), 0.90)
        return c

    def test_add_keeps_date_order(self, curve):
        idx = curve.add(date(2024, 7, 15), 0.975)
        assert idx == 0
        assert curve.dates() == [date(2024, 7, 15), date(2025, 1, 15), date(2026, 1, 15)]

    def test_add_existing_date_replaces(self, curve):
        idx = curve.add(date(2025, 1, 15), 0.94)
        assert idx == 0
        assert len(curve) == 2
        assert curve.get_val(0) == 0.94

    def test_anchored_curve_rejects_as_of_point(self, curve):
        with pytest.raises(ValueError):
            curve.add(AS_OF, 1.0)

    def test_anchor_value_at_as_of(self, curve):
        assert curve.interpolate(AS_OF) == 1.0
        assert curve.interpolate(date(2023, 1, 1)) == 1.0

    def test_interpolation_at_nodes(self, curve):
        assert abs(curve.interpolate(date(2025, 1, 15)) - 0.95) < 1e-12
        assert abs(curve.interpolate(date(2026, 1, 15)) - 0.90) < 1e-12

    def test_set_val_invalidates_cache(self, curve):
        curve.interpolate(date(2025, 6, 1))
        curve.set_val(1, 0.80)
        assert abs(curve.interpolate(date(2026, 1, 15)) - 0.80) < 1e-12

    def test_shrink_and_clear(self, curve):
        curve.shrink(1)
        assert curve.dates() == [date(2025, 1, 15)]
        curve.clear()
        assert len(curve) == 0

    def test_empty_unanchored_curve_raises(self):
        with pytest.raises(RuntimeError):
            Curve(AS_OF).interpolate(date(2025, 1, 1))

    def test_snapshot_restore(self, curve):
        state = curve.snapshot()
        curve.set_constant(1.0)
        curve.add(date(2030, 1, 15), 0.5)
        curve.restore(state)
        assert curve.points() == [(date(2025, 1, 15), 0.95), (date(2026, 1, 15), 0.90)]
        assert curve.anchor_value == 1.0

    def test_multiplicative_overlay(self, curve):
        overlay = Curve(AS_OF, interpolation_method="linear")
        overlay.add(AS_OF, 0.5)
        curve.overlay = overlay
        assert abs(curve.interpolate(date(2025, 1, 15)) - 0.475) < 1e-12
        assert abs(curve.base_interpolate(date(2025, 1, 15)) - 0.95) < 1e-12

    def test_additive_overlay(self, curve):
        overlay = Curve(AS_OF, interpolation_method="linear")
        overlay.add(AS_OF, 0.01)
        curve.overlay = overlay
        curve.overlay_mode = OverlayMode.ADDITIVE
        assert abs(curve.interpolate(date(2025, 1, 15)) - 0.96) < 1e-12

    def test_copy_is_independent(self, curve):
        other = curve.copy()
        other.set_val(0, 0.5)
        assert curve.get_val(0) == 0.95


class TestCalibratedCurves:
    """Tests for discount, survival and forward price curve accessors."""

    def test_flat_discount_curve(self):
        curve = create_flat_discount_curve(AS_OF, 0.05, max_tenor_years=10)
        for d in [date(2024, 7, 15), date(2027, 3, 1), date(2033, 1, 15)]:
            assert abs(curve.zero_rate(d) - 0.05) < 1e-12

        # Log-linear extrapolation keeps the rate flat past the last node
        assert abs(curve.zero_rate(date(2040, 1, 15)) - 0.05) < 1e-12

    def test_forward_rate(self):
        curve = create_flat_discount_curve(AS_OF, 0.05, max_tenor_years=5)
        start, end = date(2025, 1, 15), date(2026, 1, 15)
        tau = 365 / 360
        expected = (curve.discount_factor(start) / curve.discount_factor(end) - 1.0) / tau
        assert abs(curve.forward_rate(start, end) - expected) < 1e-14
        with pytest.raises(ValueError):
            curve.forward_rate(end, start)

    def test_survival_curve_hazard(self):
        curve = SurvivalCurve(AS_OF)
        curve.add(date(2025, 1, 15), np.exp(-0.02 * 366 / 365))
        assert abs(curve.hazard_rate(AS_OF, date(2025, 1, 15)) - 0.02) < 1e-12
        assert abs(curve.default_prob(AS_OF)) < 1e-15

    def test_forward_curve_defaults(self):
        curve = ForwardPriceCurve(AS_OF, name="WTI Curve")
        assert curve.anchor_value is None
        assert curve.reference_index == "WTI Curve"
        assert curve.interpolation_method == "linear"

    def test_fit_report_columns(self):
        curve = DiscountCurve(AS_OF, name="USD")
        curve.add_tenor(CurveTenor("1Y", Note.from_tenor(AS_OF, "1Y", 0.0), 0.03,
                                   ParQuoteHandler("coupon", 1.0)))
        report = curve.fit_report()
        assert list(report.columns) == ["tenor", "curve_date", "quote", "market_pv", "model_pv", "error", "weight"]
        assert report.loc[0, "market_pv"] == 1.0

    def test_dependent_cycle_rejected(self):
        a = DiscountCurve(AS_OF, name="A")
        b = SurvivalCurve(AS_OF, name="B")
        a.add_dependent(b)
        with pytest.raises(ValueError):
            b.add_dependent(a)
        with pytest.raises(ValueError):
            a.add_dependent(a)

    def test_fit_without_calibrator(self):
        with pytest.raises(RuntimeError):
            DiscountCurve(AS_OF).fit()


class TestTenors:
    """Tests for calibration tenors and quote handlers."""

    def test_par_quote_handler_writes_product(self):
        note = Note.from_tenor(AS_OF, "6M", 0.0)
        tenor = CurveTenor("6M", note, 0.025, ParQuoteHandler("coupon", 1.0))
        assert note.coupon == 0.025
        assert tenor.market_pv == 1.0
        assert tenor.curve_date == note.maturity

        tenor.set_quote(0.03)
        assert note.coupon == 0.03
        assert tenor.original_quote == 0.025

    def test_par_quote_handler_unknown_field(self):
        with pytest.raises(ValueError):
            CurveTenor("1Y", Note.from_tenor(AS_OF, "1Y", 0.0), 0.01, ParQuoteHandler("premium"))

    def test_zero_yield_handler(self):
        bond = ZeroCouponBond.from_tenor(AS_OF, "1Y")
        tenor = CurveTenor("1Y", bond, 0.04, ZeroYieldQuoteHandler())
        assert abs(tenor.market_pv - np.exp(-0.04 * 366 / 365)) < 1e-15

    def test_price_quote_handler_default(self):
        tenor = CurveTenor("1Y", ZeroCouponBond.from_tenor(AS_OF, "1Y"), 0.96)
        assert isinstance(tenor.quote_handler, PriceQuoteHandler)
        assert tenor.market_pv == 0.96

    def test_negative_weight_rejected(self):
        with pytest.raises(ValueError):
            CurveTenor("1Y", CDS.from_tenor(AS_OF, "1Y", 0.01), 0.01, weight=-1.0)

    def test_collection_sort_and_lookup(self):
        tenors = CurveTenorCollection([
            CurveTenor("5Y", CDS.from_tenor(AS_OF, "5Y", 0.0), 0.01, ParQuoteHandler("premium")),
            CurveTenor("1Y", CDS.from_tenor(AS_OF, "1Y", 0.0), 0.01, ParQuoteHandler("premium")),
            CurveTenor("3Y", CDS.from_tenor(AS_OF, "3Y", 0.0), 0.01, ParQuoteHandler("premium"), weight=0.0),
        ])
        tenors.sort()
        assert tenors.names() == ["1Y", "3Y", "5Y"]
        assert tenors.index_of("5Y") == 2
        assert tenors["3Y"].weight == 0.0
        assert [t.name for t in tenors.active()] == ["1Y", "5Y"]
        with pytest.raises(KeyError):
            tenors.index_of("7Y")

    def test_collection_rejects_duplicates(self):
        tenors = CurveTenorCollection()
        tenors.add(CurveTenor("1Y", CDS.from_tenor(AS_OF, "1Y", 0.0), 0.01))
        with pytest.raises(ValueError):
            tenors.add(CurveTenor("1Y", CDS.from_tenor(AS_OF, "1Y", 0.0), 0.02))
