"""
Payment schedules consumed by the cashflow curve fitter.

A payment's amount is either fixed or read from a forward-price curve at
its fixing date. Forward-read amounts use the curve under calibration
unless a projection curve is attached, so the same schedule can be
revalued against every candidate curve during a fit.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Iterator, List, Optional

from .curves.curve import Curve


@dataclass
class Payment:
    """A fixed amount paid on pay_date."""
    pay_date: date
    amount: float

    def value(self, target_curve: Optional[Curve]) -> float:
        """Undiscounted amount."""
        return self.amount


@dataclass
class ForwardPayment(Payment):
    """
    notional * (F(fixing_date) + amount) paid on pay_date.

    Attributes:
        fixing_date: Date the forward price is read at
        notional: Quantity
        projection_curve: Curve supplying F, or None for the curve under fit
    """
    fixing_date: Optional[date] = None
    notional: float = 1.0
    projection_curve: Optional[Curve] = None

    def value(self, target_curve: Optional[Curve]) -> float:
        curve = self.projection_curve if self.projection_curve is not None else target_curve
        if curve is None:
            raise ValueError("ForwardPayment needs a curve to read its forward price from")
        fixing = self.fixing_date or self.pay_date
        return self.notional * (curve.interpolate(fixing) + self.amount)


@dataclass
class PaymentSchedule:
    """Ordered list of payments."""
    payments: List[Payment] = field(default_factory=list)

    def add(self, payment: Payment) -> None:
        self.payments.append(payment)
        self.payments.sort(key=lambda p: p.pay_date)

    def __iter__(self) -> Iterator[Payment]:
        return iter(self.payments)

    def __len__(self) -> int:
        return len(self.payments)

    def pv(
        self,
        settle: date,
        discount_curve: Optional[Curve],
        target_curve: Optional[Curve]
    ) -> float:
        """
        Value of the payments after settle.

        Args:
            settle: Payments on or before this date are ignored
            discount_curve: Discounting curve, or None for undiscounted value
            target_curve: Curve under calibration for forward-read amounts

        Returns:
            Sum of (discounted) payment values, discounted to settle
        """
        df_settle = discount_curve.interpolate(settle) if discount_curve is not None else 1.0
        total = 0.0
        for payment in self.payments:
            if payment.pay_date <= settle:
                continue
            amount = payment.value(target_curve)
            if discount_curve is not None:
                amount *= discount_curve.interpolate(payment.pay_date) / df_settle
            total += amount
        return total


__all__ = [
    "Payment",
    "ForwardPayment",
    "PaymentSchedule",
]
