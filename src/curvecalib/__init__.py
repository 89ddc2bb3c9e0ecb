"""
CurveCalib: Market Curve Calibration Library

A modular library for:
- Bootstrapping discount and survival curves tenor by tenor from market quotes
- Fitting parametric (CIR, Nelson-Siegel-Svensson) discount curves globally
- Fitting forward price curves from futures, forwards and commodity swaps
- Bump-and-refit of calibrated curves for quote sensitivities

Curves hold their tenors and a calibrator; calibrators are interchangeable
strategies sharing one fit/refit contract.
"""

__version__ = "0.1.0"

# Core modules
from .conventions import DayCount, BusinessDayConvention, TimeUnit, year_fraction
from .dates import DateUtils, ScheduleInfo
from .config import CalibratorConfig, CashflowCalibratorSettings, NegSPTreatment
from .errors import CalibrationError, CalibrationFailure, ConfigurationError, SolverError
from .solvers import BrentSolver, OptimizationResult, OptimizerStatus, minimize_bounded

# Products
from .products import (
    Product,
    Note,
    Swap,
    ZeroCouponBond,
    CDS,
    SpotAsset,
    Future,
    Forward,
    CommoditySwap,
)

# Curves
from .curves import (
    Curve,
    OverlayMode,
    CurveTenor,
    CurveTenorCollection,
    PriceQuoteHandler,
    ParQuoteHandler,
    ZeroYieldQuoteHandler,
    CalibratedCurve,
    DiscountCurve,
    SurvivalCurve,
    ForwardPriceCurve,
    SpotPrice,
    create_flat_discount_curve,
)

# Calibrators
from .calibrators import (
    Calibrator,
    FitContext,
    FitHook,
    OverlayIsolationHook,
    DiscountBootstrapCalibrator,
    SurvivalFitCalibrator,
    ParameterVector,
    CIRDiscountCalibrator,
    NelsonSiegelSvenssonCalibrator,
    CashflowCalibrator,
    CurveFittingMethod,
    ForwardPriceCalibrator,
)

# Risk
from .bumping import BumpType, QuoteBumpEngine

__all__ = [
    "__version__",
    # Conventions
    "DayCount",
    "BusinessDayConvention",
    "TimeUnit",
    "year_fraction",
    "DateUtils",
    "ScheduleInfo",
    # Configuration and errors
    "CalibratorConfig",
    "CashflowCalibratorSettings",
    "NegSPTreatment",
    "CalibrationError",
    "CalibrationFailure",
    "ConfigurationError",
    "SolverError",
    "BrentSolver",
    "OptimizationResult",
    "OptimizerStatus",
    "minimize_bounded",
    # Products
    "Product",
    "Note",
    "Swap",
    "ZeroCouponBond",
    "CDS",
    "SpotAsset",
    "Future",
    "Forward",
    "CommoditySwap",
    # Curves
    "Curve",
    "OverlayMode",
    "CurveTenor",
    "CurveTenorCollection",
    "PriceQuoteHandler",
    "ParQuoteHandler",
    "ZeroYieldQuoteHandler",
    "CalibratedCurve",
    "DiscountCurve",
    "SurvivalCurve",
    "ForwardPriceCurve",
    "SpotPrice",
    "create_flat_discount_curve",
    # Calibrators
    "Calibrator",
    "FitContext",
    "FitHook",
    "OverlayIsolationHook",
    "DiscountBootstrapCalibrator",
    "SurvivalFitCalibrator",
    "ParameterVector",
    "CIRDiscountCalibrator",
    "NelsonSiegelSvenssonCalibrator",
    "CashflowCalibrator",
    "CurveFittingMethod",
    "ForwardPriceCalibrator",
    # Risk
    "BumpType",
    "QuoteBumpEngine",
]
