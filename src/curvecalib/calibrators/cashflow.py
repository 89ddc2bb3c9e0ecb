"""
Cashflow curve fitter.

Aggregates instruments given as receiver/payer payment schedules and
fits one curve point per distinct instrument date in a single call.
The price error of an instrument is

    error = PV(receiver) - PV(payer) - target

Fitting methods:
- BOOTSTRAP: solve each point in date order by Brent (start step), then
  repeat Gauss-Seidel passes until every error is within tolerance or no
  point moves, keeping the best solution seen
- SMOOTH: bounded least squares on the price errors plus slope and
  curvature penalties weighted by the supplied weight curves
- LEAST_SQUARES: bounded least squares on the price errors only
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import List, Optional, Tuple
import logging
import time

import numpy as np

from ..cashflows import PaymentSchedule
from ..config import CashflowCalibratorSettings
from ..curves.curve import Curve
from ..errors import SolverError
from ..solvers import BrentSolver, OptimizerStatus, minimize_bounded

logger = logging.getLogger(__name__)


class CurveFittingMethod(Enum):
    """Cashflow fitting method."""
    BOOTSTRAP = "Bootstrap"
    SMOOTH = "SmoothForwards"
    LEAST_SQUARES = "LeastSquaresFit"


@dataclass
class CashflowData:
    """
    One instrument of a cashflow fit.

    Attributes:
        curve_date: Curve point this instrument determines
        settle: Valuation date of the schedules
        discount_curve: Discounting curve, None for undiscounted instruments
        receiver: Payments received
        payer: Payments made
        target: Value receiver minus payer must reach
        weight: Fit weight
        name: Instrument name for diagnostics
    """
    curve_date: date
    settle: date
    discount_curve: Optional[Curve]
    receiver: PaymentSchedule
    payer: PaymentSchedule = field(default_factory=PaymentSchedule)
    target: float = 0.0
    weight: float = 1.0
    name: str = ""

    def error(self, curve: Curve) -> float:
        return (self.receiver.pv(self.settle, self.discount_curve, curve)
                - self.payer.pv(self.settle, self.discount_curve, curve)
                - self.target)


class CashflowCalibrator:
    """
    Multi-instrument curve fitter over payment schedules.

    Attributes:
        as_of: Valuation date
        settings: Tolerances and budgets
        method: Fitting method
        force_fit: Interpolate points that cannot be solved instead of
            reporting them
        fit_was_forced: Set by fit() when a point was forced
    """

    def __init__(
        self,
        as_of: date,
        settings: Optional[CashflowCalibratorSettings] = None,
        method: CurveFittingMethod = CurveFittingMethod.BOOTSTRAP,
        force_fit: bool = False
    ):
        self.as_of = as_of
        self.settings = settings or CashflowCalibratorSettings()
        self.method = method
        self.force_fit = force_fit
        self.fit_was_forced = False
        self._data: List[CashflowData] = []

    def add(self, data: CashflowData) -> None:
        if data.weight < 0:
            raise ValueError(f"Instrument {data.name} has negative weight {data.weight}")
        self._data.append(data)

    def clear(self) -> None:
        self._data = []

    def __len__(self) -> int:
        return len(self._data)

    def point_dates(self) -> List[date]:
        return sorted({d.curve_date for d in self._data if d.weight > 0})

    def price_errors(self, curve: Curve) -> np.ndarray:
        """Errors of every instrument, in the order they were added."""
        return np.array([d.error(curve) for d in self._data])

    def fit(
        self,
        curve: Curve,
        fixed_points: int = 0,
        lower: float = -np.inf,
        upper: float = np.inf,
        slope_weights: Optional[Curve] = None,
        curvature_weights: Optional[Curve] = None,
        name: str = ""
    ) -> Tuple[OptimizerStatus, np.ndarray]:
        """
        Fit curve points at the instrument dates.

        Args:
            curve: Curve to fit; its first fixed_points points are kept
            fixed_points: Leading points (e.g. a spot seed) not to move
            lower: Lower bound of fitted values
            upper: Upper bound of fitted values
            slope_weights: Slope penalty weights by date (SMOOTH only)
            curvature_weights: Curvature penalty weights by date (SMOOTH only)
            name: Curve name for logging

        Returns:
            Tuple of (status, price errors in instrument order)
        """
        start = time.perf_counter()
        self.fit_was_forced = False
        curve.shrink(fixed_points)

        status = self._start_step(curve, fixed_points, lower, upper)
        if self.method == CurveFittingMethod.BOOTSTRAP:
            status = self._iterate(curve, fixed_points, lower, upper, status)
        else:
            status = self._global_fit(curve, fixed_points, lower, upper, slope_weights, curvature_weights)

        errors = self.price_errors(curve)
        logger.info(
            "Completed %s fit of %s in %.3f seconds, %s",
            self.method.value, name or curve.name, time.perf_counter() - start,
            "Converged" if status == OptimizerStatus.CONVERGED else f"Not Converged ({status.value})"
        )
        return status, errors

    def _group_error(self, curve: Curve, dt: date) -> float:
        return sum(d.weight * d.error(curve) for d in self._data if d.curve_date == dt and d.weight > 0)

    def _solve_point(self, curve: Curve, index: int, lower: float, upper: float) -> float:
        dt = curve.get_dt(index)
        y = curve.get_val(index)

        def group_value(x: float) -> float:
            curve.set_val(index, x)
            return self._group_error(curve, dt)

        step = 1e-3 * max(1.0, abs(y))
        # Convergence is judged on the price error only
        solver = BrentSolver(
            tolerance_x=np.finfo(float).eps,
            tolerance_f=self.settings.solver_tolerance,
            lower_bound=lower,
            upper_bound=upper
        )
        return solver.solve(group_value, 0.0, y - step, y + step)

    def _start_step(self, curve: Curve, fixed_points: int, lower: float, upper: float) -> OptimizerStatus:
        status = OptimizerStatus.CONVERGED
        for dt in self.point_dates():
            guess = curve.interpolate(dt) if len(curve) > 0 else self._initial_guess(dt)
            index = curve.add(dt, min(max(guess, lower), upper))
            try:
                curve.set_val(index, self._solve_point(curve, index, lower, upper))
            except SolverError as exc:
                if self.force_fit and index > 0:
                    curve.set_val(index, self._interpolated(curve, index))
                    self.fit_was_forced = True
                    logger.warning("Forced point %s by interpolating earlier points", dt)
                else:
                    curve.set_val(index, exc.best_x if np.isfinite(exc.best_x) else guess)
                    status = OptimizerStatus.EXACT_SOLUTION_NOT_FOUND
                    logger.debug("No exact solution at %s: best %.10g residual %.3e",
                                 dt, exc.best_x, exc.best_f)
        return status

    def _initial_guess(self, dt: date) -> float:
        for d in self._data:
            if d.curve_date == dt and d.target != 0.0:
                return d.target
        return 1.0

    @staticmethod
    def _interpolated(curve: Curve, index: int) -> float:
        saved = curve.snapshot()
        dt = curve.get_dt(index)
        curve.shrink(index)
        value = curve.interpolate(dt)
        curve.restore(saved)
        return value

    def _iterate(self, curve: Curve, fixed_points: int, lower: float, upper: float,
                 status: OptimizerStatus) -> OptimizerStatus:
        tolerance = self.settings.solver_tolerance
        best_values = curve.values()
        best_error = np.max(np.abs(self.price_errors(curve)), initial=0.0)

        for _ in range(self.settings.max_solver_iterations):
            if best_error <= tolerance:
                return OptimizerStatus.CONVERGED

            before = curve.values()
            for index in range(fixed_points, len(curve)):
                try:
                    curve.set_val(index, self._solve_point(curve, index, lower, upper))
                except SolverError as exc:
                    if np.isfinite(exc.best_x):
                        curve.set_val(index, exc.best_x)
            change = np.max(np.abs(curve.values() - before), initial=0.0)

            error = np.max(np.abs(self.price_errors(curve)), initial=0.0)
            if error < best_error:
                best_error = error
                best_values = curve.values()
            if change <= self.settings.solver_stopping_rule:
                break

        curve.set_values(best_values)
        if best_error <= tolerance:
            return OptimizerStatus.CONVERGED
        if status == OptimizerStatus.EXACT_SOLUTION_NOT_FOUND:
            return status
        return OptimizerStatus.MAXIMUM_ITERATIONS_REACHED

    def _penalty_weight(self, weights: Optional[Curve], dt: date, tolerance: float) -> float:
        if weights is None:
            return 0.0
        w = weights.interpolate(dt)
        return w if w >= tolerance else 0.0

    def _global_fit(self, curve: Curve, fixed_points: int, lower: float, upper: float,
                    slope_weights: Optional[Curve], curvature_weights: Optional[Curve]) -> OptimizerStatus:
        n = len(curve) - fixed_points
        if n == 0:
            return OptimizerStatus.CONVERGED

        free = slice(fixed_points, len(curve))
        dates = curve.dates()
        times = np.array([curve.time(d) for d in dates])
        sqrt_w = np.sqrt(np.array([d.weight for d in self._data]))

        smooth = self.method == CurveFittingMethod.SMOOTH
        slope_w = np.zeros(len(dates))
        curve_w = np.zeros(len(dates))
        if smooth:
            s = self.settings
            slope_w = np.array([self._penalty_weight(slope_weights, d, s.slope_weight_tolerance) for d in dates])
            curve_w = np.array([self._penalty_weight(curvature_weights, d, s.curvature_weight_tolerance) for d in dates])

        def residuals(x: np.ndarray) -> np.ndarray:
            values = curve.values()
            values[free] = x
            curve.set_values(values)
            parts = [sqrt_w * self.price_errors(curve)]
            if smooth and len(values) > 1:
                slopes = np.diff(values) / np.maximum(np.diff(times), 1e-12)
                parts.append(np.sqrt(slope_w[1:]) * slopes)
                if len(slopes) > 1:
                    parts.append(np.sqrt(curve_w[2:]) * np.diff(slopes))
            return np.concatenate(parts)

        x0 = curve.values()[free]
        result = minimize_bounded(
            residuals, x0,
            np.full(n, lower), np.full(n, upper),
            method="least_squares",
            tolerance_x=self.settings.optimizer_tolerance,
            max_iterations=self.settings.max_optimizer_iterations,
            max_evaluations=self.settings.max_optimizer_evaluations
        )
        values = curve.values()
        values[free] = result.x
        curve.set_values(values)
        return result.status


__all__ = [
    "CurveFittingMethod",
    "CashflowData",
    "CashflowCalibrator",
]
