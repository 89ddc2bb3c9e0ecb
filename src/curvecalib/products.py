"""
Calibration products.

Defines the instruments curves are calibrated to:
- Note: Money market deposit paying 1 + r * tau at maturity
- Swap: Single-curve par swap (fixed leg plus notional exchange)
- ZeroCouponBond: Unit payment at maturity, quoted as a zero yield
- CDS: Credit default swap with running premium
- SpotAsset: Spot price of a commodity or stock
- Future: Futures contract on a forward price
- Forward: Forward contract at a strike
- CommoditySwap: Periodic fixed-for-floating swap on a forward price index

Products only carry terms. Pricing lives in curvecalib.pricers and the
quote is written onto the product by the tenor's quote handler.
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional, Union

from .conventions import DayCount
from .dates import DateUtils


@dataclass
class Product:
    """
    Base for calibration products.

    Attributes:
        effective: Accrual or contract start date
        maturity: Final payment or delivery date
        ccy: Currency code
    """
    effective: date
    maturity: date
    ccy: str = "USD"

    def __post_init__(self):
        if self.maturity < self.effective:
            raise ValueError(
                f"{type(self).__name__} maturity {self.maturity} before effective {self.effective}"
            )

    @property
    def description(self) -> str:
        return f"{type(self).__name__} {self.effective} -> {self.maturity}"


@dataclass
class Note(Product):
    """
    Money market note.

    Pays 1 + coupon * tau at maturity for 1 invested at effective, so the
    implied discount factor is DF(T) = DF(effective) / (1 + coupon * tau).
    """
    coupon: float = 0.0
    day_count: DayCount = DayCount.ACT_360

    @classmethod
    def from_tenor(cls, effective: date, tenor: str, coupon: float, **kwargs) -> "Note":
        return cls(effective, DateUtils.add_tenor(effective, tenor), coupon=coupon, **kwargs)


@dataclass
class Swap(Product):
    """
    Single-curve fixed-rate swap valued as fixed leg plus notional.

    The par fixed rate prices the leg to 1.0 at effective.
    """
    fixed_rate: float = 0.0
    frequency: int = 1
    day_count: DayCount = DayCount.ACT_360

    @classmethod
    def from_tenor(cls, effective: date, tenor: str, fixed_rate: float, **kwargs) -> "Swap":
        return cls(effective, DateUtils.add_tenor(effective, tenor), fixed_rate=fixed_rate, **kwargs)


@dataclass
class ZeroCouponBond(Product):
    """Unit payment at maturity."""
    day_count: DayCount = DayCount.ACT_365

    @classmethod
    def from_tenor(cls, effective: date, tenor: str, **kwargs) -> "ZeroCouponBond":
        return cls(effective, DateUtils.add_tenor(effective, tenor), **kwargs)


@dataclass
class CDS(Product):
    """
    Credit default swap, protection buyer view.

    Attributes:
        premium: Running spread in decimal (0.01 = 100bp)
        frequency: Premium payments per year
        day_count: Premium accrual day count
        notional: Notional amount
    """
    premium: float = 0.0
    frequency: int = 4
    day_count: DayCount = DayCount.ACT_360
    notional: float = 1.0

    @classmethod
    def from_tenor(cls, effective: date, tenor: str, premium: float, **kwargs) -> "CDS":
        return cls(effective, DateUtils.add_tenor(effective, tenor), premium=premium, **kwargs)


@dataclass
class SpotAsset(Product):
    """Spot price observation. effective and maturity are the spot date."""
    name: str = ""

    @classmethod
    def on(cls, spot_date: date, name: str = "", **kwargs) -> "SpotAsset":
        return cls(spot_date, spot_date, name=name, **kwargs)


@dataclass
class Future(Product):
    """
    Futures contract on a forward price, settled at maturity.

    The quoted futures price is compared to the undiscounted forward.
    """
    reference_index: str = ""


@dataclass
class Forward(Product):
    """Forward contract paying F(T) - strike at maturity."""
    reference_index: str = ""
    strike: float = 0.0
    notional: float = 1.0


@dataclass
class CommoditySwap(Product):
    """
    Periodic swap receiving the forward price of reference_index and paying
    fixed_price, or paying the forward of basis_index plus fixed_price when
    a basis index is set.

    Attributes:
        reference_index: Index received on each fixing
        fixed_price: Fixed price (or basis spread) paid on each fixing
        frequency: Fixings per year
        basis_index: Optional index paid instead of a pure fixed price
        notional: Quantity per period
    """
    reference_index: str = ""
    fixed_price: float = 0.0
    frequency: int = 12
    basis_index: Optional[str] = None
    notional: float = 1.0


RatesProduct = Union[Note, Swap, ZeroCouponBond]
CreditProduct = CDS
ForwardProduct = Union[SpotAsset, Future, Forward, CommoditySwap]


__all__ = [
    "Product",
    "Note",
    "Swap",
    "ZeroCouponBond",
    "CDS",
    "SpotAsset",
    "Future",
    "Forward",
    "CommoditySwap",
    "RatesProduct",
    "CreditProduct",
    "ForwardProduct",
]
