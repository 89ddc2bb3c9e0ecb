"""
Global parametric calibration.

The curve is generated from a small parameter vector through a model's
closed form evaluated on a fixed date grid. The free parameters are found
by minimising the weighted squared pricing errors of every active tenor:

    min_x  sum_i w_i * (PV_i(curve(x)) - Target_i)^2

within box bounds. Non-convergence within the iteration and evaluation
budget is accepted and reported through last_result.

Models:
- CIR short rate:
    h = sqrt(kappa^2 + 2 sigma^2)
    A(t) = [2h exp((kappa + h) t / 2) / (2h + (kappa + h)(exp(ht) - 1))]^(2 kappa theta / sigma^2)
    B(t) = 2 (exp(ht) - 1) / (2h + (kappa + h)(exp(ht) - 1))
    P(t) = A(t) exp(-B(t) r0)
- Nelson-Siegel-Svensson:
    y(t) = b0 + b1 L1(t/l1) + b2 (L1(t/l1) - exp(-t/l1)) + b3 (L1(t/l2) - exp(-t/l2))
    with L1(x) = (1 - exp(-x)) / x and P(t) = exp(-y(t) t)
"""

from abc import abstractmethod
from dataclasses import dataclass, field
from datetime import date
from functools import partial
from typing import List, Optional, Sequence, Tuple
import logging

import numpy as np

from ..config import CalibratorConfig
from ..conventions import TimeUnit
from ..curves.calibrated import CalibratedCurve, DiscountCurve
from ..curves.tenor import CurveTenor
from ..dates import DateUtils
from ..errors import CalibrationFailure
from ..pricers.base import Pricer
from ..pricers.rates import create_rates_pricer
from ..solvers import OptimizationResult, minimize_bounded
from .base import Calibrator
from .hooks import FitHook

logger = logging.getLogger(__name__)


@dataclass
class ParameterVector:
    """
    Model parameters with bounds and per-parameter fit flags.

    Attributes:
        values: Current parameter values
        lower: Lower bounds
        upper: Upper bounds
        fit_flags: True for parameters the optimiser may move
        names: Optional parameter names for diagnostics
    """
    values: np.ndarray
    lower: np.ndarray
    upper: np.ndarray
    fit_flags: Optional[np.ndarray] = None
    names: List[str] = field(default_factory=list)

    def __post_init__(self):
        self.values = np.array(self.values, dtype=np.float64)
        self.lower = np.array(self.lower, dtype=np.float64)
        self.upper = np.array(self.upper, dtype=np.float64)
        if self.fit_flags is None:
            self.fit_flags = np.ones(len(self.values), dtype=bool)
        self.fit_flags = np.array(self.fit_flags, dtype=bool)

    def validate(self, errors: List[str]) -> None:
        n = len(self.values)
        mismatched = False
        for label, arr in (("lower", self.lower), ("upper", self.upper), ("fit_flags", self.fit_flags)):
            if len(arr) != n:
                errors.append(f"Parameter {label} has length {len(arr)}, expected {n}")
                mismatched = True
        if self.names and len(self.names) != n:
            errors.append(f"Parameter names have length {len(self.names)}, expected {n}")
        if mismatched:
            return
        if not self.fit_flags.any():
            errors.append("No parameters flagged to fit")
        for i in np.flatnonzero(self.fit_flags):
            if not self.lower[i] < self.upper[i]:
                errors.append(f"Parameter {self.label(i)} has empty bounds [{self.lower[i]}, {self.upper[i]}]")

    def label(self, i: int) -> str:
        return self.names[i] if self.names else str(i)

    def free_values(self) -> np.ndarray:
        return self.values[self.fit_flags].copy()

    def free_bounds(self) -> Tuple[np.ndarray, np.ndarray]:
        return self.lower[self.fit_flags].copy(), self.upper[self.fit_flags].copy()

    def with_free(self, x: Sequence[float]) -> "ParameterVector":
        """Copy with the free entries replaced by x; fixed entries are kept."""
        values = self.values.copy()
        values[self.fit_flags] = x
        return ParameterVector(values, self.lower.copy(), self.upper.copy(),
                               self.fit_flags.copy(), list(self.names))

    def as_dict(self) -> dict:
        return {self.label(i): float(v) for i, v in enumerate(self.values)}


@dataclass(frozen=True)
class ObjectiveContext:
    """Fit-local inputs of the pricing objective."""
    curve: CalibratedCurve
    base: ParameterVector
    pricers: Tuple[Pricer, ...]
    targets: np.ndarray
    sqrt_weights: np.ndarray


class ParametricCalibrator(Calibrator):
    """
    Fits a model's parameters so the generated curve reprices the tenors.

    Attributes:
        parameters: Current best parameters (the next warm start)
        initial_parameters: Starting point used when warm_start is off
        grid_tenor: Spacing of the materialised curve grid
        grid_years: Grid length in years; defaults to the last tenor date
        last_result: Optimiser outcome of the last fit
    """

    supports_partial_refit = False

    def __init__(
        self,
        as_of: date,
        parameters: ParameterVector,
        settle: Optional[date] = None,
        grid_tenor: str = "3M",
        grid_years: Optional[int] = None,
        config: Optional[CalibratorConfig] = None,
        hooks: Optional[List[FitHook]] = None
    ):
        super().__init__(as_of, settle, config, hooks)
        self.initial_parameters = parameters
        self.parameters = parameters
        self.grid_tenor = grid_tenor
        self.grid_years = grid_years
        self.last_result: Optional[OptimizationResult] = None

    @abstractmethod
    def model_value(self, t: float, params: np.ndarray) -> float:
        """Curve value at year fraction t for a full parameter array."""

    def get_pricer(self, curve: CalibratedCurve, product) -> Pricer:
        return create_rates_pricer(curve, product, self.settle)

    def grid_dates(self, curve: CalibratedCurve) -> List[date]:
        """Fixed grid from as_of out to grid_years or the last tenor date."""
        amount, unit = DateUtils.parse_tenor(self.grid_tenor)
        step_unit = TimeUnit(unit)
        if self.grid_years is not None:
            end = DateUtils.add_step(self.as_of, self.grid_years, TimeUnit.YEARS)
        else:
            end = max(t.curve_date for t in curve.tenors)

        dates = []
        k = 1
        while True:
            d = DateUtils.add_step(self.as_of, k * amount, step_unit)
            dates.append(d)
            if d >= end:
                return dates
            k += 1

    def _materialize_grid(self, curve: CalibratedCurve) -> None:
        grid = self.grid_dates(curve)
        if curve.dates() != grid:
            curve.clear()
            for d in grid:
                curve.add(d, 1.0)

    def build_curve(self, curve: CalibratedCurve, params: ParameterVector) -> None:
        """Set every grid value from the model's closed form."""
        curve.set_values([self.model_value(curve.time(d), params.values) for d in curve.dates()])

    def _residuals(self, context: ObjectiveContext, x: np.ndarray) -> np.ndarray:
        self.build_curve(context.curve, context.base.with_free(x))
        model = np.array([p.pv() for p in context.pricers])
        return context.sqrt_weights * (model - context.targets)

    def _try_fit_from(self, curve: CalibratedCurve, from_index: int) -> Optional[CalibrationFailure]:
        self._materialize_grid(curve)

        start = self.parameters if self.config.warm_start else self.initial_parameters
        active: List[CurveTenor] = curve.tenors.active()
        context = ObjectiveContext(
            curve=curve,
            base=start,
            pricers=tuple(self.get_pricer(curve, t.product) for t in active),
            targets=np.array([t.market_pv for t in active]),
            sqrt_weights=np.sqrt(np.array([t.weight for t in active]))
        )
        lower, upper = start.free_bounds()

        result = minimize_bounded(
            partial(self._residuals, context),
            start.free_values(),
            lower,
            upper,
            method=self.config.optimizer_method,
            tolerance_x=self.config.tolerance_x,
            max_iterations=self.config.max_iterations,
            max_evaluations=self.config.max_evaluations
        )

        self.parameters = start.with_free(result.x)
        self.last_result = result
        self.build_curve(curve, self.parameters)
        for tenor in curve.tenors:
            tenor.model_pv = self.get_pricer(curve, tenor.product).pv()

        if not result.converged:
            logger.warning("%s fit of %s stopped without convergence: %s (%s)",
                           type(self).__name__, curve.name, result.status.value, result.message)
        logger.debug("%s parameters: %s", curve.name, self.parameters.as_dict())
        return None

    def validate(self, errors: List[str]) -> None:
        super().validate(errors)
        self.initial_parameters.validate(errors)
        if self.parameters is not self.initial_parameters:
            self.parameters.validate(errors)
        try:
            DateUtils.parse_tenor(self.grid_tenor)
        except ValueError as exc:
            errors.append(str(exc))

    def validate_curve(self, curve: CalibratedCurve, errors: List[str]) -> None:
        super().validate_curve(curve, errors)
        if not isinstance(curve, DiscountCurve):
            errors.append(f"{type(self).__name__} fits discount curves, got {type(curve).__name__}")
        if not curve.tenors.active():
            errors.append(f"Curve {curve.name} has no active tenors")


def cir_discount_factor(t: float, kappa: float, theta: float, sigma: float, r0: float) -> float:
    """
    CIR zero coupon bond price P(0, t).

    Args:
        t: Time to maturity in years
        kappa: Mean reversion speed
        theta: Long-run mean of the short rate
        sigma: Short rate volatility
        r0: Initial short rate

    Returns:
        Discount factor
    """
    if t <= 0:
        return 1.0
    h = np.sqrt(kappa * kappa + 2.0 * sigma * sigma)
    growth = np.expm1(h * t)
    denom = 2.0 * h + (kappa + h) * growth
    a = (2.0 * h * np.exp(0.5 * (kappa + h) * t) / denom) ** (2.0 * kappa * theta / (sigma * sigma))
    b = 2.0 * growth / denom
    return float(a * np.exp(-b * r0))


class CIRDiscountCalibrator(ParametricCalibrator):
    """
    Discount curve generated by the CIR short rate model.

    Parameters are ordered (kappa, theta, sigma, r0).
    """

    PARAMETER_NAMES = ["kappa", "theta", "sigma", "r0"]

    def __init__(
        self,
        as_of: date,
        parameters: Optional[ParameterVector] = None,
        settle: Optional[date] = None,
        grid_tenor: str = "3M",
        grid_years: Optional[int] = None,
        config: Optional[CalibratorConfig] = None,
        hooks: Optional[List[FitHook]] = None
    ):
        if parameters is None:
            parameters = self.default_parameters()
        super().__init__(as_of, parameters, settle, grid_tenor, grid_years, config, hooks)

    @classmethod
    def default_parameters(cls) -> ParameterVector:
        return ParameterVector(
            values=[0.3, 0.05, 0.1, 0.02],
            lower=[1e-4, 1e-4, 1e-4, -0.05],
            upper=[5.0, 0.5, 1.0, 0.5],
            names=list(cls.PARAMETER_NAMES)
        )

    def model_value(self, t: float, params: np.ndarray) -> float:
        kappa, theta, sigma, r0 = params
        return cir_discount_factor(t, kappa, theta, sigma, r0)

    def validate(self, errors: List[str]) -> None:
        super().validate(errors)
        if len(self.initial_parameters.values) != 4:
            errors.append(f"CIR needs 4 parameters, got {len(self.initial_parameters.values)}")


def nss_yield(tau: float, params: np.ndarray) -> float:
    """
    Nelson-Siegel-Svensson zero yield at maturity tau.

    Args:
        tau: Time to maturity in years
        params: (beta0, beta1, beta2, beta3, lambda1, lambda2)

    Returns:
        Continuously compounded yield
    """
    beta0, beta1, beta2, beta3, lambda1, lambda2 = params
    if tau <= 0:
        # Short rate limit
        return beta0 + beta1

    exp1 = np.exp(-tau / lambda1)
    exp2 = np.exp(-tau / lambda2)
    ns_factor1 = (1 - exp1) / (tau / lambda1)
    ns_factor2 = ns_factor1 - exp1
    sv_factor = (1 - exp2) / (tau / lambda2) - exp2

    return float(beta0 + beta1 * ns_factor1 + beta2 * ns_factor2 + beta3 * sv_factor)


class NelsonSiegelSvenssonCalibrator(ParametricCalibrator):
    """
    Discount curve generated by the Nelson-Siegel-Svensson yield model.

    Parameters are ordered (beta0, beta1, beta2, beta3, lambda1, lambda2).
    """

    PARAMETER_NAMES = ["beta0", "beta1", "beta2", "beta3", "lambda1", "lambda2"]

    def __init__(
        self,
        as_of: date,
        parameters: Optional[ParameterVector] = None,
        settle: Optional[date] = None,
        grid_tenor: str = "3M",
        grid_years: Optional[int] = None,
        config: Optional[CalibratorConfig] = None,
        hooks: Optional[List[FitHook]] = None
    ):
        if parameters is None:
            parameters = self.default_parameters()
        super().__init__(as_of, parameters, settle, grid_tenor, grid_years, config, hooks)

    @classmethod
    def default_parameters(cls) -> ParameterVector:
        return ParameterVector(
            values=[0.04, -0.02, 0.01, 0.01, 1.5, 3.0],
            lower=[-0.5, -0.5, -0.5, -0.5, 0.1, 0.1],
            upper=[0.5, 0.5, 0.5, 0.5, 10.0, 20.0],
            names=list(cls.PARAMETER_NAMES)
        )

    def model_value(self, t: float, params: np.ndarray) -> float:
        return float(np.exp(-nss_yield(t, params) * t))

    def validate(self, errors: List[str]) -> None:
        super().validate(errors)
        if len(self.initial_parameters.values) != 6:
            errors.append(f"Nelson-Siegel-Svensson needs 6 parameters, got {len(self.initial_parameters.values)}")


__all__ = [
    "ParameterVector",
    "ObjectiveContext",
    "ParametricCalibrator",
    "CIRDiscountCalibrator",
    "NelsonSiegelSvenssonCalibrator",
    "cir_discount_factor",
    "nss_yield",
]
