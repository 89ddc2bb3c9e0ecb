"""
Pricers package - present values of calibration products.

Provides:
- NotePricer, SwapPricer, ZeroBondPricer: discount curve products
- CDSPricer: credit default swaps on a survival curve
- SpotPricer, FuturePricer, ForwardPricer, CommoditySwapPricer:
  forward price curve products decomposed into payment schedules
"""

from .base import Pricer
from .rates import NotePricer, SwapPricer, ZeroBondPricer, create_rates_pricer
from .credit import CDSPricer
from .forwards import (
    CashflowPricer,
    SpotPricer,
    FuturePricer,
    ForwardPricer,
    CommoditySwapPricer,
)

__all__ = [
    "Pricer",
    "NotePricer",
    "SwapPricer",
    "ZeroBondPricer",
    "create_rates_pricer",
    "CDSPricer",
    "CashflowPricer",
    "SpotPricer",
    "FuturePricer",
    "ForwardPricer",
    "CommoditySwapPricer",
]
