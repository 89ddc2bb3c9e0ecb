"""
Survival curve calibration from CDS quotes.

Each CDS tenor is solved by Brent in survival probability space within
(1e-10, 1]. When negative spreads are allowed a failed solve is retried
with the upper bound widened to 10, which admits increasing survival
probabilities (negative hazard rates). With forbid_negative_hazard_rates
the upper bound is the previous survival probability instead.

A forced fit of the first tenor is solved in hazard rate space, which
reaches survival probabilities below the 1e-10 floor.
"""

from datetime import date
from typing import List, Optional, Tuple, Union
import logging

import numpy as np

from ..config import CalibratorConfig
from ..curves.calibrated import CalibratedCurve, SurvivalCurve
from ..curves.curve import Curve
from ..errors import SolverError
from ..pricers.credit import CDSPricer
from ..products import CDS
from ..solvers import BrentSolver
from .base import FitContext
from .bootstrap import SequentialBootstrapCalibrator
from .hooks import FitHook

logger = logging.getLogger(__name__)

# Largest hazard-time product whose survival probability is a normal float
MAX_HAZARD_EXPONENT = -float(np.log(np.finfo(float).tiny))


class SurvivalFitCalibrator(SequentialBootstrapCalibrator):
    """
    Bootstrap a SurvivalCurve from CDS tenors.

    Attributes:
        discount_curve: Discount curve used by the CDS pricer (shared)
        recovery: Recovery rate, either constant or a curve read at maturity
        forbid_negative_hazard_rates: Cap each survival probability at the
            previous one
    """

    def __init__(
        self,
        as_of: date,
        settle: Optional[date] = None,
        discount_curve: Optional[Curve] = None,
        recovery: Union[float, Curve, None] = 0.4,
        config: Optional[CalibratorConfig] = None,
        hooks: Optional[List[FitHook]] = None,
        forbid_negative_hazard_rates: bool = False
    ):
        super().__init__(as_of, settle, config, hooks)
        self.discount_curve = discount_curve
        self.recovery = recovery
        self.forbid_negative_hazard_rates = forbid_negative_hazard_rates

    def auxiliary_curves(self) -> List[Curve]:
        curves = [self.discount_curve]
        if isinstance(self.recovery, Curve):
            curves.append(self.recovery)
        return [c for c in curves if c is not None]

    def recovery_rate(self, product: CDS) -> float:
        if isinstance(self.recovery, Curve):
            return self.recovery.interpolate(product.maturity)
        return float(self.recovery)

    def get_pricer(self, curve: CalibratedCurve, product) -> CDSPricer:
        if isinstance(product, CDS):
            return CDSPricer(
                survival_curve=curve,
                discount_curve=self.discount_curve,
                product=product,
                settle=self.settle,
                recovery=self.recovery_rate(product),
                step_size=self.config.step_size,
                step_unit=self.config.step_unit
            )
        raise self._unsupported(product)

    def _solver_bounds(self, context: FitContext, widened: bool) -> Tuple[float, float]:
        if self.forbid_negative_hazard_rates:
            previous = self._previous_value(context.curve, context.point_index)
            return min(1e-10, previous / 2), previous
        return 1e-10, (10.0 if widened else 1.0)

    def _forced_value(self, context: FitContext) -> Optional[float]:
        if context.point_index > 0:
            return super()._forced_value(context)

        curve = context.curve
        t = curve.time(context.tenor.curve_date)
        if t <= 0:
            return None

        def hazard_pv(h: float) -> float:
            return context.evaluate(float(np.exp(-h * t)))

        solver = BrentSolver(
            tolerance_x=1e-12,
            tolerance_f=1e-12,
            max_iterations=self.config.max_iterations,
            lower_bound=0.0,
            upper_bound=MAX_HAZARD_EXPONENT / t
        )
        try:
            hazard = solver.solve(hazard_pv, context.target, 5.0, 20.0)
        except SolverError as exc:
            logger.debug("Hazard rate solve of %s tenor %s failed: %s", curve.name, context.tenor.name, exc)
            return None
        return float(np.exp(-hazard * t))

    def validate(self, errors: List[str]) -> None:
        super().validate(errors)
        if self.discount_curve is None:
            errors.append("SurvivalFitCalibrator requires a discount curve")
        if self.recovery is None:
            errors.append("SurvivalFitCalibrator requires a recovery rate or curve")
        elif not isinstance(self.recovery, Curve) and not 0.0 <= self.recovery < 1.0:
            errors.append(f"Recovery rate {self.recovery} outside [0, 1)")

    def validate_curve(self, curve: CalibratedCurve, errors: List[str]) -> None:
        super().validate_curve(curve, errors)
        if not isinstance(curve, SurvivalCurve):
            errors.append(f"SurvivalFitCalibrator fits survival curves, got {type(curve).__name__}")


__all__ = [
    "SurvivalFitCalibrator",
]
