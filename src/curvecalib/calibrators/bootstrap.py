"""
Sequential bootstrap.

Tenors are solved one at a time in curve-date order. Each tenor adds one
curve point at its curve date and that point is solved, in closed form
where the product allows it or with a bracketed Brent search otherwise,
so the tenor reprices to its market price with all earlier points fixed.

Policies applied per tenor:
- Negative implied forward (value above the previous one): flagged on the
  curve and handled by the configured NegSPTreatment
- Solver failure: optional retry with widened bounds, optional forced fit
  (earlier points extrapolated, or a strategy specific value for the first
  tenor), else a CalibrationFailure
"""

from abc import abstractmethod
from bisect import bisect_left
from typing import List, Optional, Tuple
import logging

from ..config import NegSPTreatment
from ..curves.calibrated import CalibratedCurve, DiscountCurve
from ..errors import CalibrationFailure, SolverError
from ..pricers.base import Pricer
from ..pricers.rates import NotePricer, create_rates_pricer
from ..solvers import BrentSolver
from .base import Calibrator, FitContext

logger = logging.getLogger(__name__)

MAX_RECHECK_PASSES = 10


class SequentialBootstrapCalibrator(Calibrator):
    """
    Base of one-tenor-at-a-time calibrators.

    Subclasses provide the pricer, the solver bounds and optionally a
    closed-form solution for some products.
    """

    initial_value = 1.0

    def _try_fit_from(self, curve: CalibratedCurve, from_index: int) -> Optional[CalibrationFailure]:
        tenors = list(curve.tenors)
        if not tenors:
            curve.clear()
            return None

        from_index = self._prepare_points(curve, tenors, from_index)

        for attempt in range(MAX_RECHECK_PASSES):
            failure = self._bootstrap_pass(curve, tenors, from_index)
            if failure is not None:
                return failure
            if not self._first_tenor_moved(curve, tenors, from_index):
                break
            logger.debug("Repeating bootstrap pass %d of %s: first tenor no longer reprices",
                         attempt + 1, curve.name)

        for tenor in tenors:
            if not tenor.is_active:
                tenor.model_pv = self.get_pricer(curve, tenor.product).pv()
        return None

    def _prepare_points(self, curve: CalibratedCurve, tenors, from_index: int) -> int:
        """Drop the points to be re-solved; fall back to a full fit if earlier points are stale."""
        if from_index > 0:
            expected = [t.curve_date for t in tenors[:from_index] if t.is_active]
            if curve.dates()[:len(expected)] != expected:
                logger.debug("Points of %s do not match its tenors, refitting from the start", curve.name)
                from_index = 0

        if from_index == 0:
            curve.clear()
        else:
            curve.shrink(bisect_left(curve.dates(), tenors[from_index].curve_date))
        return from_index

    def _first_tenor_moved(self, curve: CalibratedCurve, tenors, from_index: int) -> bool:
        """True if later points moved the price of the first re-solved tenor."""
        for tenor in tenors[from_index:]:
            if tenor.is_active:
                pv = self.get_pricer(curve, tenor.product).pv()
                return (abs(pv - tenor.model_pv) > self.config.tolerance_f / 10
                        and abs(pv - tenor.market_pv) > self.config.tolerance_f)
        return False

    def _bootstrap_pass(self, curve: CalibratedCurve, tenors, from_index: int) -> Optional[CalibrationFailure]:
        for i in range(from_index, len(tenors)):
            tenor = tenors[i]
            if not tenor.is_active:
                continue

            dates = curve.dates()
            existing = bisect_left(dates, tenor.curve_date)
            if existing < len(dates) and dates[existing] == tenor.curve_date:
                guess = curve.get_val(existing)
            else:
                guess = self._previous_value(curve, existing)
            point_index = curve.add(tenor.curve_date, guess)

            context = FitContext(
                curve=curve,
                tenor_index=i,
                tenor=tenor,
                point_index=point_index,
                pricer=self.get_pricer(curve, tenor.product),
                target=tenor.market_pv
            )

            value = self._solve_closed_form(context)
            if value is None:
                value, failure = self._solve_with_policy(context)
                if failure is not None:
                    return failure
            curve.set_val(point_index, value)

            self._apply_negative_policy(context)
            tenor.model_pv = context.pricer.pv()
            logger.debug("%s tenor %s solved to %.12g (residual %.3e)",
                         curve.name, tenor.name, curve.get_val(point_index),
                         tenor.model_pv - context.target)
        return None

    def _solve_with_policy(self, context: FitContext) -> Tuple[float, Optional[CalibrationFailure]]:
        previous = self._previous_value(context.curve, context.point_index)
        try:
            return self._solve(context, previous, widened=False), None
        except SolverError as exc:
            error = exc

        if self.config.neg_sp_treatment == NegSPTreatment.ALLOW and self.config.allow_negative_spreads:
            try:
                logger.debug("Retrying %s tenor %s with widened bounds", context.curve.name, context.tenor.name)
                return self._solve(context, previous, widened=True), None
            except SolverError as exc:
                error = exc

        if self.config.force_fit:
            value = self._forced_value(context)
            if value is not None:
                context.curve.fit_was_forced = True
                logger.warning("Forced %s at tenor %s to %.10g", context.curve.name, context.tenor.name, value)
                return value, None

        return error.best_x, CalibrationFailure(
            curve_name=context.curve.name,
            tenor_name=context.tenor.name,
            tenor_date=context.tenor.curve_date,
            best_value=error.best_x,
            residual=error.best_f,
            cause=error
        )

    def _solve(self, context: FitContext, previous: float, widened: bool) -> float:
        lower, upper = self._solver_bounds(context, widened)
        low_guess, high_guess = self._bracket(context, previous)
        solver = BrentSolver(
            tolerance_x=self.config.tolerance_x,
            tolerance_f=self.config.tolerance_f,
            max_iterations=self.config.max_iterations,
            lower_bound=lower,
            upper_bound=upper
        )
        return solver.solve(context.evaluate, context.target, low_guess, high_guess)

    def _bracket(self, context: FitContext, previous: float) -> Tuple[float, float]:
        """Initial guesses: the previous value and a small decay from it."""
        curve = context.curve
        start = curve.get_dt(context.point_index - 1) if context.point_index > 0 else curve.as_of
        dt = curve.time(context.tenor.curve_date) - curve.time(start)
        return previous / (1.0 + 0.05 * dt), previous

    def _previous_value(self, curve: CalibratedCurve, point_index: int) -> float:
        if point_index > 0:
            return curve.get_val(point_index - 1)
        if curve.anchor_value is not None:
            return curve.anchor_value
        return self.initial_value

    def _forced_value(self, context: FitContext) -> Optional[float]:
        """Value used when the tenor cannot be matched, or None to fail."""
        if context.point_index == 0:
            return None
        return self._extrapolated_value(context)

    def _extrapolated_value(self, context: FitContext) -> float:
        """Value at the tenor's date implied by earlier points alone."""
        curve = context.curve
        saved = curve.snapshot()
        curve.shrink(context.point_index)
        value = curve.interpolate(context.tenor.curve_date)
        curve.restore(saved)
        return value

    def _apply_negative_policy(self, context: FitContext) -> None:
        curve = context.curve
        previous = self._previous_value(curve, context.point_index)
        value = curve.get_val(context.point_index)
        if value <= previous:
            return

        curve.negative_found = True
        treatment = self.config.neg_sp_treatment
        logger.debug("%s tenor %s implies a negative forward (%.10g > %.10g), treatment %s",
                     curve.name, context.tenor.name, value, previous, treatment.value)
        if treatment == NegSPTreatment.ZERO:
            curve.set_val(context.point_index, previous)
        # ADJUST is reserved: the condition is flagged and the value kept

    def _solve_closed_form(self, context: FitContext) -> Optional[float]:
        """Closed-form point value, or None to solve numerically."""
        return None

    @abstractmethod
    def _solver_bounds(self, context: FitContext, widened: bool) -> Tuple[float, float]:
        """(lower, upper) bounds of the solved value."""


class DiscountBootstrapCalibrator(SequentialBootstrapCalibrator):
    """
    Discount curve bootstrap from notes, swaps and zero coupon bonds.

    Notes whose effective date lies on already solved points are solved in
    closed form, DF(T) = DF(T0) / (1 + r * tau); everything else by Brent.
    """

    def get_pricer(self, curve: CalibratedCurve, product) -> Pricer:
        return create_rates_pricer(curve, product, self.settle)

    def _solve_closed_form(self, context: FitContext) -> Optional[float]:
        if not isinstance(context.pricer, NotePricer):
            return None
        curve = context.curve
        if curve.interpolation_method not in ("log_linear", "linear"):
            return None
        effective = context.pricer.product.effective
        solved_up_to = curve.get_dt(context.point_index - 1) if context.point_index > 0 else curve.as_of
        if effective > solved_up_to:
            return None
        return context.pricer.implied_discount_factor(curve.interpolate(effective))

    def _solver_bounds(self, context: FitContext, widened: bool) -> Tuple[float, float]:
        return 1e-10, 10.0

    def validate_curve(self, curve: CalibratedCurve, errors: List[str]) -> None:
        super().validate_curve(curve, errors)
        if not isinstance(curve, DiscountCurve):
            errors.append(f"{type(self).__name__} fits discount curves, got {type(curve).__name__}")


__all__ = [
    "SequentialBootstrapCalibrator",
    "DiscountBootstrapCalibrator",
]
