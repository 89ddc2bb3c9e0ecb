"""
Discount curve pricers.

Pricing formulas (single curve, values at the product's effective date):
    Note:            PV = DF(T) * (1 + c * tau) / DF(T0)
    Swap:            PV = (K * sum(tau_i * DF(T_i)) + DF(T_n)) / DF(T0)
    ZeroCouponBond:  PV = DF(T) / DF(T0)

Notes and swaps quoted at par price to 1.0.
"""

from datetime import date

from ..conventions import year_fraction
from ..curves.curve import Curve
from ..dates import generate_accrual_schedule
from ..products import Note, Swap, ZeroCouponBond
from .base import Pricer


class NotePricer(Pricer):
    """Money market note pricer."""

    def __init__(self, curve: Curve, product: Note, settle: date):
        super().__init__(product, settle)
        self.curve = curve

    @property
    def accrual(self) -> float:
        return year_fraction(self.product.effective, self.product.maturity, self.product.day_count)

    def implied_discount_factor(self, df_effective: float) -> float:
        """Discount factor at maturity that prices the note to par."""
        return df_effective / (1.0 + self.product.coupon * self.accrual)

    def pv(self) -> float:
        df_start = self.curve.interpolate(self.product.effective)
        df_end = self.curve.interpolate(self.product.maturity)
        return df_end * (1.0 + self.product.coupon * self.accrual) / df_start


class SwapPricer(Pricer):
    """Single-curve fixed leg plus notional pricer."""

    def __init__(self, curve: Curve, product: Swap, settle: date):
        super().__init__(product, settle)
        self.curve = curve
        self.schedule = generate_accrual_schedule(
            product.effective, product.maturity, product.frequency, product.day_count
        )

    def annuity(self) -> float:
        """Sum of tau_i * DF(T_i) relative to the effective date."""
        df_start = self.curve.interpolate(self.product.effective)
        return sum(
            yf * self.curve.interpolate(d)
            for d, yf in zip(self.schedule.payment_dates, self.schedule.year_fractions)
        ) / df_start

    def par_rate(self) -> float:
        df_ratio = self.curve.interpolate(self.product.maturity) / self.curve.interpolate(self.product.effective)
        return (1.0 - df_ratio) / self.annuity()

    def pv(self) -> float:
        df_start = self.curve.interpolate(self.product.effective)
        df_end = self.curve.interpolate(self.schedule.payment_dates[-1])
        return self.product.fixed_rate * self.annuity() + df_end / df_start


class ZeroBondPricer(Pricer):
    """Zero coupon bond pricer."""

    def __init__(self, curve: Curve, product: ZeroCouponBond, settle: date):
        super().__init__(product, settle)
        self.curve = curve

    def pv(self) -> float:
        return self.curve.interpolate(self.product.maturity) / self.curve.interpolate(self.product.effective)


def create_rates_pricer(curve: Curve, product, settle: date) -> Pricer:
    """
    Pricer for a discount curve product.

    Raises:
        ValueError: If the product is not a Note, Swap or ZeroCouponBond
    """
    if isinstance(product, Note):
        return NotePricer(curve, product, settle)
    elif isinstance(product, Swap):
        return SwapPricer(curve, product, settle)
    elif isinstance(product, ZeroCouponBond):
        return ZeroBondPricer(curve, product, settle)
    raise ValueError(f"Unknown product type: {type(product).__name__}")


__all__ = [
    "create_rates_pricer",
    "NotePricer",
    "SwapPricer",
    "ZeroBondPricer",
]
