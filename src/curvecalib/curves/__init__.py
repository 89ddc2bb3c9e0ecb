"""
Curves package - curve representation and calibration instruments.

Provides:
- Curve: Date-keyed value series with interpolation and overlays
- CurveTenor / CurveTenorCollection: Calibration instruments
- CalibratedCurve and its discount, survival and forward price families
"""

from .interpolation import (
    Interpolator,
    LinearInterpolator,
    CubicSplineInterpolator,
    LogLinearInterpolator,
    create_interpolator,
)
from .curve import Curve, CurveState, OverlayMode
from .tenor import (
    QuoteHandler,
    PriceQuoteHandler,
    ParQuoteHandler,
    ZeroYieldQuoteHandler,
    CurveTenor,
    CurveTenorCollection,
)
from .calibrated import (
    CalibratedCurve,
    DiscountCurve,
    SurvivalCurve,
    ForwardPriceCurve,
    SpotPrice,
    create_flat_discount_curve,
)

__all__ = [
    "Interpolator",
    "LinearInterpolator",
    "CubicSplineInterpolator",
    "LogLinearInterpolator",
    "create_interpolator",
    "Curve",
    "CurveState",
    "OverlayMode",
    "QuoteHandler",
    "PriceQuoteHandler",
    "ParQuoteHandler",
    "ZeroYieldQuoteHandler",
    "CurveTenor",
    "CurveTenorCollection",
    "CalibratedCurve",
    "DiscountCurve",
    "SurvivalCurve",
    "ForwardPriceCurve",
    "SpotPrice",
    "create_flat_discount_curve",
]
