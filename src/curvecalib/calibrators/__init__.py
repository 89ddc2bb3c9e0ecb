"""
Calibrators package - strategies that fit calibrated curves.

Provides:
- Calibrator / FitContext: The fit contract and per-tenor evaluation context
- FitHook / FitHookCollection / OverlayIsolationHook: Pre/post fit hooks
- DiscountBootstrapCalibrator, SurvivalFitCalibrator: Sequential bootstraps
- CIRDiscountCalibrator, NelsonSiegelSvenssonCalibrator: Parametric fits
- CashflowCalibrator, ForwardPriceCalibrator: Cashflow-based curve fits
"""

from .base import Calibrator, FitContext
from .hooks import FitHook, FitHookCollection, OverlayIsolationHook
from .bootstrap import SequentialBootstrapCalibrator, DiscountBootstrapCalibrator
from .survival import SurvivalFitCalibrator
from .parametric import (
    ParameterVector,
    ParametricCalibrator,
    CIRDiscountCalibrator,
    NelsonSiegelSvenssonCalibrator,
    cir_discount_factor,
    nss_yield,
)
from .cashflow import CashflowCalibrator, CashflowData, CurveFittingMethod
from .forward import ForwardPriceCalibrator, spot_name

__all__ = [
    "Calibrator",
    "FitContext",
    "FitHook",
    "FitHookCollection",
    "OverlayIsolationHook",
    "SequentialBootstrapCalibrator",
    "DiscountBootstrapCalibrator",
    "SurvivalFitCalibrator",
    "ParameterVector",
    "ParametricCalibrator",
    "CIRDiscountCalibrator",
    "NelsonSiegelSvenssonCalibrator",
    "cir_discount_factor",
    "nss_yield",
    "CashflowCalibrator",
    "CashflowData",
    "CurveFittingMethod",
    "ForwardPriceCalibrator",
    "spot_name",
]
