"""
Calibrated curves.

A CalibratedCurve is a Curve together with the tenors it is fitted to
and the calibrator that fits it. Subclasses add the accessors of each
curve family:

- DiscountCurve: discount factors, zero and forward rates
- SurvivalCurve: survival and default probabilities, hazard rates
- ForwardPriceCurve: forward prices with an optional spot
"""

from copy import deepcopy
from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Optional
import logging

import numpy as np
import pandas as pd

from ..conventions import DayCount, year_fraction
from ..dates import DateUtils
from .curve import Curve
from .tenor import CurveTenor, CurveTenorCollection

logger = logging.getLogger(__name__)


class CalibratedCurve(Curve):
    """
    Curve fitted to a set of calibration tenors.

    Attributes:
        calibrator: Strategy that fits the curve
        tenors: Calibration instruments, kept sorted by curve date on fit
        fit_was_forced: Set when the last fit distorted a tenor to converge
        negative_found: Set when the last fit met a negative implied forward
    """

    def __init__(
        self,
        as_of: date,
        calibrator=None,
        tenors: Optional[List[CurveTenor]] = None,
        name: str = "",
        ccy: str = "USD",
        category: str = "",
        day_count: DayCount = DayCount.ACT_365,
        interpolation_method: str = "log_linear",
        anchor_value: Optional[float] = None
    ):
        super().__init__(
            as_of=as_of,
            day_count=day_count,
            interpolation_method=interpolation_method,
            anchor_value=anchor_value,
            name=name,
            ccy=ccy,
            category=category
        )
        self.calibrator = calibrator
        self.tenors = CurveTenorCollection(tenors)
        self.fit_was_forced = False
        self.negative_found = False
        self._dependent_curves: List["CalibratedCurve"] = []

    def add_tenor(self, tenor: CurveTenor) -> None:
        self.tenors.add(tenor)

    @property
    def dependent_curves(self) -> List["CalibratedCurve"]:
        return list(self._dependent_curves)

    def add_dependent(self, curve: "CalibratedCurve") -> None:
        """
        Register a curve calibrated against this one.

        Dependents are refitted after every refit of this curve.
        """
        if curve is self or self in curve._reachable_dependents():
            raise ValueError(f"Adding {curve.name} as dependent of {self.name} creates a cycle")
        self._dependent_curves.append(curve)

    def _reachable_dependents(self) -> List["CalibratedCurve"]:
        seen: List[CalibratedCurve] = []
        stack = list(self._dependent_curves)
        while stack:
            c = stack.pop()
            if any(c is s for s in seen):
                continue
            seen.append(c)
            stack.extend(c._dependent_curves)
        return seen

    def _require_calibrator(self):
        if self.calibrator is None:
            raise RuntimeError(f"Curve {self.name} has no calibrator")
        return self.calibrator

    def fit(self) -> None:
        """Full fit of every tenor."""
        self._require_calibrator().fit(self)

    def refit(self, from_index: int) -> None:
        """
        Refit tenors from from_index on, then refit every dependent curve.

        Quote moves of this curve's tenors (current minus original quote)
        are copied onto dependent tenors of the same name before they refit.
        """
        logger.debug("Begin refit of %s from tenor %d", self.name, from_index)
        self._require_calibrator().refit(self, from_index)

        for dependent in self._dependent_curves:
            for tenor in self.tenors:
                if dependent.tenors.contains(tenor.name):
                    move = tenor.market_quote - tenor.original_quote
                    if move == 0.0:
                        continue
                    dep_tenor = dependent.tenors[tenor.name]
                    dep_tenor.set_quote(dep_tenor.original_quote + move)
            logger.debug("Begin refit of dependent curve %s", dependent.name)
            dependent.refit(0)

    def pv(self, product) -> float:
        """Price a product against this curve with the calibrator's pricer."""
        return self._require_calibrator().get_pricer(self, product).pv()

    def tenor_after(self, dt: date) -> Optional[CurveTenor]:
        """First tenor whose curve date is after dt."""
        for tenor in self.tenors:
            if tenor.curve_date > dt:
                return tenor
        return None

    def clone(self, share_auxiliary: bool = True) -> "CalibratedCurve":
        """
        Deep copy for scenario analysis.

        Points, tenors, the calibrator, the overlay and dependent curves are
        copied. Auxiliary curves held by the calibrator (discount, reference,
        projection curves) stay shared unless share_auxiliary is False.
        """
        memo = {}
        if share_auxiliary and self.calibrator is not None:
            for aux in self.calibrator.auxiliary_curves():
                memo[id(aux)] = aux
        return deepcopy(self, memo)

    def fit_report(self) -> pd.DataFrame:
        """Per-tenor quotes, target and model prices of the last fit."""
        rows = []
        for tenor in self.tenors:
            market_pv = tenor.market_pv
            rows.append({
                "tenor": tenor.name,
                "curve_date": tenor.curve_date,
                "quote": tenor.market_quote,
                "market_pv": market_pv,
                "model_pv": tenor.model_pv,
                "error": tenor.model_pv - market_pv,
                "weight": tenor.weight,
            })
        columns = ["tenor", "curve_date", "quote", "market_pv", "model_pv", "error", "weight"]
        return pd.DataFrame(rows, columns=columns)


class DiscountCurve(CalibratedCurve):
    """
    Discount factor curve P(0, t) with P(0, 0) = 1.

    Zero rates are continuously compounded on the curve day count.
    """

    def __init__(self, as_of: date, calibrator=None, tenors: Optional[List[CurveTenor]] = None,
                 name: str = "", ccy: str = "USD", category: str = "Discount",
                 day_count: DayCount = DayCount.ACT_365, interpolation_method: str = "log_linear"):
        super().__init__(as_of, calibrator, tenors, name, ccy, category,
                         day_count, interpolation_method, anchor_value=1.0)

    def discount_factor(self, dt: date) -> float:
        return self.interpolate(dt)

    def zero_rate(self, dt: date) -> float:
        t = self.time(dt)
        if t <= 0:
            return 0.0
        return -np.log(self.discount_factor(dt)) / t

    def forward_rate(self, start: date, end: date, day_count: DayCount = DayCount.ACT_360) -> float:
        """Simple forward rate between two dates."""
        if end <= start:
            raise ValueError("end must be after start")
        tau = year_fraction(start, end, day_count)
        return (self.discount_factor(start) / self.discount_factor(end) - 1.0) / tau


class SurvivalCurve(CalibratedCurve):
    """Survival probability curve S(t) with S(0) = 1."""

    def __init__(self, as_of: date, calibrator=None, tenors: Optional[List[CurveTenor]] = None,
                 name: str = "", ccy: str = "USD", category: str = "Credit",
                 day_count: DayCount = DayCount.ACT_365, interpolation_method: str = "log_linear"):
        super().__init__(as_of, calibrator, tenors, name, ccy, category,
                         day_count, interpolation_method, anchor_value=1.0)

    def survival_prob(self, dt: date) -> float:
        return self.interpolate(dt)

    def default_prob(self, dt: date) -> float:
        return 1.0 - self.survival_prob(dt)

    def hazard_rate(self, start: date, end: Optional[date] = None) -> float:
        """
        Average hazard rate between two dates.

        Without an end date the rate over the following day is returned.
        """
        if end is None:
            end = start + timedelta(days=1)
        dt = self.time(end) - self.time(start)
        if dt <= 0:
            raise ValueError("end must be after start")
        return -np.log(self.survival_prob(end) / self.survival_prob(start)) / dt


@dataclass
class SpotPrice:
    """Spot observation seeding a forward price curve."""
    spot_date: date
    value: float
    name: str = ""
    ccy: str = ""


class ForwardPriceCurve(CalibratedCurve):
    """
    Forward price curve for commodities, stocks or generic forwards.

    Attributes:
        reference_index: Index whose forward prices this curve projects
        spot: Spot price, set by the calibrator when a spot tenor is present
    """

    def __init__(self, as_of: date, calibrator=None, tenors: Optional[List[CurveTenor]] = None,
                 name: str = "", ccy: str = "USD", category: str = "Forward",
                 day_count: DayCount = DayCount.ACT_365, interpolation_method: str = "linear",
                 reference_index: str = ""):
        super().__init__(as_of, calibrator, tenors, name, ccy, category,
                         day_count, interpolation_method, anchor_value=None)
        self.reference_index = reference_index or name
        self.spot: Optional[SpotPrice] = None

    def forward_price(self, dt: date) -> float:
        return self.interpolate(dt)


def create_flat_discount_curve(
    as_of: date,
    rate: float,
    max_tenor_years: int = 30,
    name: str = "",
    ccy: str = "USD"
) -> DiscountCurve:
    """
    Create a flat discount curve.

    Args:
        as_of: Valuation date
        rate: Flat continuously compounded rate
        max_tenor_years: Last node in years
        name: Curve name
        ccy: Currency code

    Returns:
        DiscountCurve with yearly nodes; log-linear extrapolation keeps it flat
    """
    curve = DiscountCurve(as_of, name=name or f"Flat{rate:.4%}", ccy=ccy)
    for years in range(1, max_tenor_years + 1):
        d = DateUtils.add_tenor(as_of, f"{years}Y")
        curve.add(d, float(np.exp(-rate * curve.time(d))))
    return curve


__all__ = [
    "CalibratedCurve",
    "DiscountCurve",
    "SurvivalCurve",
    "ForwardPriceCurve",
    "SpotPrice",
    "create_flat_discount_curve",
]
