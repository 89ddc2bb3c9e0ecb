"""
Calibrator contract.

Every calibration strategy fits a CalibratedCurve to its tenors through
the same lifecycle:

1. Sort tenors by curve date
2. Validate and raise a ConfigurationError listing every problem
3. Reset the curve's result flags
4. Run pre-fit hooks, fit, run post-fit hooks (always)

Strategies implement _try_fit_from, which returns None on success or a
CalibrationFailure describing the tenor that could not be fitted.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import List, Optional
import logging
import time

from ..config import CalibratorConfig
from ..curves.calibrated import CalibratedCurve
from ..curves.curve import Curve
from ..curves.tenor import CurveTenor
from ..errors import CalibrationFailure, ConfigurationError
from ..pricers.base import Pricer
from .hooks import FitHook, FitHookCollection, OverlayIsolationHook

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FitContext:
    """
    Everything an evaluation function needs for one tenor.

    Built fresh for every tenor of every fit and never stored on the
    calibrator.

    Attributes:
        curve: Curve under calibration
        tenor_index: Index of the tenor in the sorted collection
        tenor: The tenor being solved
        point_index: Index of the curve point being solved
        pricer: Pricer of the tenor's product against curve
        target: Market price the pricer must reach
    """
    curve: CalibratedCurve
    tenor_index: int
    tenor: CurveTenor
    point_index: int
    pricer: Pricer
    target: float

    def evaluate(self, x: float) -> float:
        """Price with x at the solved point."""
        self.curve.set_val(self.point_index, x)
        return self.pricer.pv()

    def residual(self) -> float:
        return self.pricer.pv() - self.target


class Calibrator(ABC):
    """
    Base class of calibration strategies.

    Attributes:
        as_of: Valuation date
        settle: Settlement date products are valued to
        config: Tolerances, budgets and policies
        hooks: Pre/post fit hooks; one overlay isolation hook by default
    """

    supports_partial_refit = True

    def __init__(
        self,
        as_of: date,
        settle: Optional[date] = None,
        config: Optional[CalibratorConfig] = None,
        hooks: Optional[List[FitHook]] = None
    ):
        self.as_of = as_of
        self.settle = settle or as_of
        self.config = config or CalibratorConfig()
        if hooks is None:
            hooks = [OverlayIsolationHook()]
        self.hooks = FitHookCollection(hooks)

    def auxiliary_curves(self) -> List[Curve]:
        """Curves read during pricing but not owned by the calibrator."""
        return []

    def fit(self, curve: CalibratedCurve) -> None:
        """Full fit of every tenor."""
        self.fit_from(curve, 0)

    def refit(self, curve: CalibratedCurve, from_index: int) -> None:
        """
        Re-solve tenors at or after from_index.

        Strategies without partial refit support perform a full fit.
        """
        if from_index < 0 or (len(curve.tenors) > 0 and from_index >= len(curve.tenors)):
            raise IndexError(f"Refit index {from_index} out of range for {len(curve.tenors)} tenors")
        self.fit_from(curve, from_index if self.supports_partial_refit else 0)

    def fit_from(self, curve: CalibratedCurve, from_index: int) -> None:
        """
        Run the fit lifecycle from a tenor index.

        Raises:
            ConfigurationError: If validation finds any problem
            CalibrationFailure: If a tenor cannot be fitted
        """
        start = time.perf_counter()
        curve.tenors.sort()

        errors: List[str] = []
        self.validate(errors)
        self.validate_curve(curve, errors)
        if errors:
            raise ConfigurationError(errors)

        curve.fit_was_forced = False
        curve.negative_found = False

        with self.hooks.applied(curve):
            failure = self._try_fit_from(curve, from_index)

        if failure is not None:
            raise failure

        logger.info(
            "Fitted %s with %s from tenor %d in %.3f seconds",
            curve.name, type(self).__name__, from_index, time.perf_counter() - start
        )

    @abstractmethod
    def _try_fit_from(self, curve: CalibratedCurve, from_index: int) -> Optional[CalibrationFailure]:
        """Strategy-specific fit. Returns a failure instead of raising it."""

    @abstractmethod
    def get_pricer(self, curve: CalibratedCurve, product) -> Pricer:
        """Pricer of product against curve and the calibrator's auxiliary curves."""

    def validate(self, errors: List[str]) -> None:
        """Append configuration problems of the calibrator to errors."""
        if self.settle < self.as_of:
            errors.append(f"Settle {self.settle} is before as-of {self.as_of}")

    def validate_curve(self, curve: CalibratedCurve, errors: List[str]) -> None:
        """Append problems of the curve's tenors to errors."""
        if curve.as_of != self.as_of:
            errors.append(f"Curve {curve.name} as-of {curve.as_of} differs from calibrator as-of {self.as_of}")
        seen = set()
        for tenor in curve.tenors.active():
            if curve.anchor_value is not None and tenor.curve_date <= curve.as_of:
                errors.append(f"Tenor {tenor.name} curve date {tenor.curve_date} is not after {curve.as_of}")
            if tenor.curve_date in seen:
                errors.append(f"Tenor {tenor.name} shares curve date {tenor.curve_date} with another tenor")
            seen.add(tenor.curve_date)

    def _unsupported(self, product) -> ValueError:
        return ValueError(f"{type(self).__name__} cannot price product type: {type(product).__name__}")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(as_of={self.as_of}, settle={self.settle})"


__all__ = [
    "FitContext",
    "Calibrator",
]
