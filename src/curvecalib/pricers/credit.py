"""
CDS pricer on a survival curve.

Protection buyer value, discounted to settle:

    Protection = (1 - R) * sum_k DF(mid_k) * (S(t_{k-1}) - S(t_k))
    Premium    = s * sum_i tau_i * DF(T_i) * (S(T_{i-1}) + S(T_i)) / 2
    PV         = notional * (Protection - Premium)

The protection leg is integrated on the premium schedule, refined by the
configured pricing step when one is set. The premium leg includes the
usual half-period accrual-on-default approximation.
"""

from datetime import date, timedelta
from typing import List

from ..conventions import TimeUnit
from ..curves.curve import Curve
from ..dates import DateUtils, generate_accrual_schedule
from ..products import CDS
from .base import Pricer


class CDSPricer(Pricer):
    """
    Credit default swap pricer.

    Attributes:
        survival_curve: Survival probabilities of the reference entity
        discount_curve: Discount factors
        recovery: Recovery rate as a fraction of notional
        step_size: Protection leg integration step (0 = schedule dates only)
        step_unit: Unit of the integration step
    """

    def __init__(
        self,
        survival_curve: Curve,
        discount_curve: Curve,
        product: CDS,
        settle: date,
        recovery: float,
        step_size: int = 0,
        step_unit: TimeUnit = TimeUnit.NONE
    ):
        super().__init__(product, settle)
        self.survival_curve = survival_curve
        self.discount_curve = discount_curve
        self.recovery = recovery
        self.schedule = generate_accrual_schedule(
            product.effective, product.maturity, product.frequency, product.day_count
        )
        self.grid = self._protection_grid(step_size, step_unit)

    def _protection_grid(self, step_size: int, step_unit: TimeUnit) -> List[date]:
        start = max(self.product.effective, self.settle)
        dates = {start}
        dates.update(d for d in self.schedule.payment_dates if d > start)
        dates.update(DateUtils.pricing_grid(start, self.product.maturity, step_size, step_unit))
        return sorted(d for d in dates if d <= self.product.maturity)

    def protection_pv(self) -> float:
        total = 0.0
        s_prev = self.survival_curve.interpolate(self.grid[0])
        for a, b in zip(self.grid[:-1], self.grid[1:]):
            s_next = self.survival_curve.interpolate(b)
            mid = a + timedelta(days=(b - a).days // 2)
            total += self.discount_curve.interpolate(mid) * (s_prev - s_next)
            s_prev = s_next
        return (1.0 - self.recovery) * total / self.discount_curve.interpolate(self.settle)

    def risky_annuity(self) -> float:
        """Premium leg value per unit spread."""
        total = 0.0
        for start, end, yf in zip(
            self.schedule.accrual_starts, self.schedule.accrual_ends, self.schedule.year_fractions
        ):
            if end <= self.settle:
                continue
            s_start = self.survival_curve.interpolate(max(start, self.settle))
            s_end = self.survival_curve.interpolate(end)
            total += yf * self.discount_curve.interpolate(end) * 0.5 * (s_start + s_end)
        return total / self.discount_curve.interpolate(self.settle)

    def par_spread(self) -> float:
        return self.protection_pv() / self.risky_annuity()

    def pv(self) -> float:
        return self.product.notional * (
            self.protection_pv() - self.product.premium * self.risky_annuity()
        )


__all__ = [
    "CDSPricer",
]
