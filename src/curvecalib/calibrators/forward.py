"""
Forward price curve calibration for commodities, stocks and generic forwards.

Each tenor's product is decomposed by its pricer into receiver and payer
payment schedules and all of them are fitted at once by the cashflow
fitter. A spot tenor seeds the curve at the spot date with its quote and
is not fitted.
"""

from datetime import date
from typing import Dict, List, Optional
import re
import logging

import numpy as np

from ..config import CalibratorConfig, CashflowCalibratorSettings
from ..curves.calibrated import CalibratedCurve, ForwardPriceCurve, SpotPrice
from ..curves.curve import Curve
from ..errors import CalibrationFailure, ConfigurationError
from ..pricers.base import Pricer
from ..pricers.forwards import CommoditySwapPricer, ForwardPricer, FuturePricer, SpotPricer
from ..products import CommoditySwap, Forward, Future, SpotAsset
from ..solvers import OptimizerStatus
from .base import Calibrator
from .cashflow import CashflowCalibrator, CashflowData, CurveFittingMethod
from .hooks import FitHook

logger = logging.getLogger(__name__)


def spot_name(curve_name: str) -> str:
    """Spot name derived from a curve name, e.g. "WTI Curve" -> "wti_Spot"."""
    base = re.sub(r"[^0-9a-z]", "", curve_name.lower()).replace("curve", "")
    return f"{base}_Spot"


class ForwardPriceCalibrator(Calibrator):
    """
    Calibrate a ForwardPriceCurve from spot, futures, forwards and commodity swaps.

    Attributes:
        discount_curve: Discounting for forwards and swaps (shared)
        projection_curves: Curves of other indices referenced by products (shared)
        method: Cashflow fitting method
        settings: Cashflow fitter settings
        slope_weights: Slope penalty weight curve for the smooth fit
        curvature_weights: Curvature penalty weight curve for the smooth fit
        last_status: Fitter status of the last fit
        last_errors: Per-tenor price errors of the last fit
    """

    supports_partial_refit = False

    def __init__(
        self,
        as_of: date,
        settle: Optional[date] = None,
        discount_curve: Optional[Curve] = None,
        projection_curves: Optional[List[ForwardPriceCurve]] = None,
        method: CurveFittingMethod = CurveFittingMethod.BOOTSTRAP,
        settings: Optional[CashflowCalibratorSettings] = None,
        slope_weights: Optional[Curve] = None,
        curvature_weights: Optional[Curve] = None,
        config: Optional[CalibratorConfig] = None,
        hooks: Optional[List[FitHook]] = None
    ):
        super().__init__(as_of, settle, config, hooks)
        self.discount_curve = discount_curve
        self.projection_curves = list(projection_curves or [])
        self.method = method
        self.settings = settings or CashflowCalibratorSettings()
        self.slope_weights = slope_weights
        self.curvature_weights = curvature_weights
        self.last_status: Optional[OptimizerStatus] = None
        self.last_errors: Dict[str, float] = {}

    def auxiliary_curves(self) -> List[Curve]:
        curves = [self.discount_curve, self.slope_weights, self.curvature_weights]
        return [c for c in curves if c is not None] + list(self.projection_curves)

    def projections_for(self, curve: CalibratedCurve, product) -> Dict[str, Curve]:
        """
        Projection curve of every index the product references besides the curve's own.

        Raises:
            ConfigurationError: If an index matches no projection curve or several
        """
        own = getattr(curve, "reference_index", curve.name)
        indices = [getattr(product, "reference_index", ""), getattr(product, "basis_index", None)]
        projections = {}
        for index in indices:
            if not index or index == own:
                continue
            matches = [c for c in self.projection_curves if c.reference_index == index]
            if len(matches) != 1:
                raise ConfigurationError(
                    f"Expected one projection curve for index {index}, found {len(matches)}"
                )
            projections[index] = matches[0]
        return projections

    def get_pricer(self, curve: CalibratedCurve, product) -> Pricer:
        if isinstance(product, SpotAsset):
            return SpotPricer(curve, product, self.settle)
        elif isinstance(product, Future):
            return FuturePricer(curve, product, self.settle, self.projections_for(curve, product))
        elif isinstance(product, Forward):
            return ForwardPricer(curve, product, self.settle, self.discount_curve,
                                 self.projections_for(curve, product))
        elif isinstance(product, CommoditySwap):
            return CommoditySwapPricer(curve, product, self.settle, self.discount_curve,
                                       self.projections_for(curve, product))
        raise self._unsupported(product)

    def validate_curve(self, curve: CalibratedCurve, errors: List[str]) -> None:
        super().validate_curve(curve, errors)
        if not isinstance(curve, ForwardPriceCurve):
            errors.append(f"ForwardPriceCalibrator fits forward price curves, got {type(curve).__name__}")
            return

        spots = 0
        for tenor in curve.tenors.active():
            product = tenor.product
            if isinstance(product, SpotAsset):
                spots += 1
            elif not isinstance(product, (Future, Forward, CommoditySwap)):
                errors.append(str(self._unsupported(product)))
                continue
            if isinstance(product, (Forward, CommoditySwap)) and self.discount_curve is None:
                errors.append(f"Tenor {tenor.name} needs a discount curve")
            try:
                self.projections_for(curve, product)
            except ConfigurationError as exc:
                errors.extend(f"Tenor {tenor.name}: {p}" for p in exc.problems)
        if spots > 1:
            errors.append(f"Curve {curve.name} has {spots} spot tenors, at most one is allowed")

    def _try_fit_from(self, curve: ForwardPriceCurve, from_index: int) -> Optional[CalibrationFailure]:
        active = curve.tenors.active()
        if not active:
            logger.debug("No active instruments for %s, leaving it unfit", curve.name)
            return None

        curve.clear()
        curve.spot = None
        fixed_points = 0
        for tenor in active:
            if isinstance(tenor.product, SpotAsset):
                curve.add(tenor.curve_date, tenor.market_quote)
                curve.spot = SpotPrice(tenor.curve_date, tenor.market_quote, name=tenor.product.name)
                fixed_points = 1

        fitter = CashflowCalibrator(self.as_of, self.settings, self.method, self.config.force_fit)
        fitted = [t for t in active if not isinstance(t.product, SpotAsset)]
        for tenor in fitted:
            pricer = self.get_pricer(curve, tenor.product)
            receiver, payer = pricer.payment_schedules()
            fitter.add(CashflowData(
                curve_date=tenor.curve_date,
                settle=self.settle,
                discount_curve=pricer.discount_curve,
                receiver=receiver,
                payer=payer,
                target=tenor.market_pv,
                weight=tenor.weight,
                name=tenor.name
            ))

        status, errors = fitter.fit(
            curve,
            fixed_points=fixed_points,
            slope_weights=self.slope_weights,
            curvature_weights=self.curvature_weights,
            name=curve.name
        )
        self.last_status = status
        self.last_errors = {t.name: float(e) for t, e in zip(fitted, errors)}
        curve.fit_was_forced = fitter.fit_was_forced

        for tenor in curve.tenors:
            tenor.model_pv = self.get_pricer(curve, tenor.product).pv()

        if status == OptimizerStatus.CONVERGED:
            if curve.spot is not None:
                curve.spot.name = spot_name(curve.name)
                curve.spot.ccy = curve.ccy
        else:
            worst = max(self.last_errors.items(), key=lambda kv: abs(kv[1]), default=("", np.nan))
            logger.warning("Fit of %s finished with status %s, worst tenor %s error %.3e",
                           curve.name, status.value, worst[0], worst[1])
        return None


__all__ = [
    "ForwardPriceCalibrator",
    "spot_name",
]
