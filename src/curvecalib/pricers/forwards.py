"""
Forward price curve pricers.

Each pricer decomposes its product into a receiver and a payer payment
schedule. The value is

    PV = PV(receiver) - PV(payer)

discounted on the discount curve, or undiscounted for futures. Forward
prices on the pricer's own curve are read at valuation time, which lets
the cashflow fitter reuse the same schedules for every candidate curve.
"""

from abc import abstractmethod
from datetime import date
from typing import Dict, Optional, Tuple

from ..cashflows import ForwardPayment, Payment, PaymentSchedule
from ..conventions import BusinessDayConvention
from ..curves.curve import Curve
from ..dates import DateUtils
from ..products import CommoditySwap, Forward, Future, SpotAsset
from .base import Pricer


class CashflowPricer(Pricer):
    """
    Pricer whose value is a pair of payment schedules.

    Attributes:
        curve: Forward price curve read by forward payments
        discount_curve: Discounting curve, None for undiscounted values
        projections: Curves of other indices referenced by the product
    """

    def __init__(
        self,
        curve: Curve,
        product,
        settle: date,
        discount_curve: Optional[Curve] = None,
        projections: Optional[Dict[str, Curve]] = None
    ):
        super().__init__(product, settle)
        self.curve = curve
        self.discount_curve = discount_curve
        self.projections = projections or {}

    @abstractmethod
    def payment_schedules(self) -> Tuple[PaymentSchedule, PaymentSchedule]:
        """(receiver, payer) schedules."""

    def pv(self) -> float:
        receiver, payer = self.payment_schedules()
        return (receiver.pv(self.settle, self.discount_curve, self.curve)
                - payer.pv(self.settle, self.discount_curve, self.curve))

    def _projection(self, index: Optional[str]) -> Optional[Curve]:
        if not index:
            return None
        return self.projections.get(index)


class SpotPricer(Pricer):
    """Spot price read straight off the curve at the spot date."""

    def __init__(self, curve: Curve, product: SpotAsset, settle: date):
        super().__init__(product, settle)
        self.curve = curve

    def pv(self) -> float:
        return self.curve.interpolate(self.product.maturity)


class FuturePricer(CashflowPricer):
    """Futures price, undiscounted: PV = F(T)."""

    def __init__(self, curve: Curve, product: Future, settle: date,
                 projections: Optional[Dict[str, Curve]] = None):
        super().__init__(curve, product, settle, None, projections)

    def payment_schedules(self) -> Tuple[PaymentSchedule, PaymentSchedule]:
        receiver = PaymentSchedule([
            ForwardPayment(
                self.product.maturity, 0.0,
                fixing_date=self.product.maturity,
                projection_curve=self._projection(self.product.reference_index)
            )
        ])
        return receiver, PaymentSchedule()


class ForwardPricer(CashflowPricer):
    """Forward contract: PV = notional * DF(T) * (F(T) - K)."""

    def __init__(self, curve: Curve, product: Forward, settle: date,
                 discount_curve: Optional[Curve] = None,
                 projections: Optional[Dict[str, Curve]] = None):
        super().__init__(curve, product, settle, discount_curve, projections)

    def payment_schedules(self) -> Tuple[PaymentSchedule, PaymentSchedule]:
        p = self.product
        receiver = PaymentSchedule([
            ForwardPayment(
                p.maturity, 0.0,
                fixing_date=p.maturity,
                notional=p.notional,
                projection_curve=self._projection(p.reference_index)
            )
        ])
        payer = PaymentSchedule([Payment(p.maturity, p.strike * p.notional)])
        return receiver, payer


class CommoditySwapPricer(CashflowPricer):
    """
    Periodic commodity swap.

    Receives F_ref(T_i) and pays K (or F_basis(T_i) + K) on each fixing date.
    """

    def __init__(self, curve: Curve, product: CommoditySwap, settle: date,
                 discount_curve: Optional[Curve] = None,
                 projections: Optional[Dict[str, Curve]] = None):
        super().__init__(curve, product, settle, discount_curve, projections)
        self.fixing_dates = DateUtils.generate_schedule(
            product.effective, product.maturity, product.frequency,
            BusinessDayConvention.UNADJUSTED
        )

    def payment_schedules(self) -> Tuple[PaymentSchedule, PaymentSchedule]:
        p = self.product
        reference = self._projection(p.reference_index)
        receiver = PaymentSchedule()
        payer = PaymentSchedule()
        for d in self.fixing_dates:
            receiver.add(ForwardPayment(d, 0.0, fixing_date=d, notional=p.notional,
                                        projection_curve=reference))
            if p.basis_index:
                payer.add(ForwardPayment(d, p.fixed_price, fixing_date=d, notional=p.notional,
                                         projection_curve=self._projection(p.basis_index)))
            else:
                payer.add(Payment(d, p.fixed_price * p.notional))
        return receiver, payer


__all__ = [
    "CashflowPricer",
    "SpotPricer",
    "FuturePricer",
    "ForwardPricer",
    "CommoditySwapPricer",
]
