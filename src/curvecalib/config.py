"""
Calibration configuration.

All tolerances, budgets and policies are fixed when a calibrator is
constructed. Nothing here is read lazily from process-wide state.
"""

from dataclasses import dataclass, replace
from enum import Enum

from .conventions import TimeUnit


OPTIMIZER_METHODS = ("least_squares", "nelder_mead", "l_bfgs_b")


class NegSPTreatment(Enum):
    """
    Treatment of a bootstrapped point that implies a negative forward
    rate or hazard rate (the value increases with date).

    ALLOW keeps the value, ZERO clamps the forward to exactly zero and
    ADJUST is reserved: the condition is flagged but the value is kept.
    """
    ALLOW = "Allow"
    ZERO = "Zero"
    ADJUST = "Adjust"


@dataclass(frozen=True)
class CalibratorConfig:
    """
    Settings shared by every calibration strategy.

    Attributes:
        tolerance_x: Root-finder / optimiser tolerance on the solved value
        tolerance_f: Root-finder tolerance on the pricing residual
        max_iterations: Iteration ceiling for solvers and optimisers
        max_evaluations: Function-evaluation ceiling for optimisers
        neg_sp_treatment: Policy for negative implied forward values
        force_fit: Permit distorting an offending tenor instead of failing
        allow_negative_spreads: Retry a failed solve with a widened upper bound
        step_size: Pricing grid step for step-integrated pricers (0 = none)
        step_unit: Unit of the pricing grid step
        optimizer_method: "least_squares", "nelder_mead" or "l_bfgs_b"
        warm_start: Start parametric fits from the last fitted parameters
    """
    tolerance_x: float = 1e-10
    tolerance_f: float = 1e-10
    max_iterations: int = 1000
    max_evaluations: int = 5000
    neg_sp_treatment: NegSPTreatment = NegSPTreatment.ALLOW
    force_fit: bool = False
    allow_negative_spreads: bool = False
    step_size: int = 0
    step_unit: TimeUnit = TimeUnit.NONE
    optimizer_method: str = "least_squares"
    warm_start: bool = True

    def __post_init__(self):
        if self.tolerance_x <= 0 or self.tolerance_f <= 0:
            raise ValueError("Tolerances must be positive")
        if self.max_iterations <= 0 or self.max_evaluations <= 0:
            raise ValueError("Iteration and evaluation budgets must be positive")
        if self.step_size < 0:
            raise ValueError(f"Step size must be non-negative, got {self.step_size}")
        if self.optimizer_method not in OPTIMIZER_METHODS:
            raise ValueError(f"Unknown optimizer method: {self.optimizer_method}")

    def replace(self, **changes) -> "CalibratorConfig":
        """Return a copy with the given fields changed."""
        return replace(self, **changes)


@dataclass(frozen=True)
class CashflowCalibratorSettings:
    """
    Settings of the cashflow curve fitter.

    Attributes:
        solver_tolerance: Price error accepted for every instrument
        solver_stopping_rule: Stop iterating once no point moves by more than this
        max_solver_iterations: Number of Gauss-Seidel passes after the start step
        optimizer_tolerance: Tolerance of the global (smooth / least squares) fit
        max_optimizer_iterations: Iteration ceiling of the global fit
        max_optimizer_evaluations: Evaluation ceiling of the global fit
        slope_weight_tolerance: Slope penalty weights below this are ignored
        curvature_weight_tolerance: Curvature penalty weights below this are ignored
    """
    solver_tolerance: float = 1e-10
    solver_stopping_rule: float = 1e-10
    max_solver_iterations: int = 20
    optimizer_tolerance: float = 1e-8
    max_optimizer_iterations: int = 2000
    max_optimizer_evaluations: int = 3000
    slope_weight_tolerance: float = 1e-32
    curvature_weight_tolerance: float = 1e-32


__all__ = [
    "NegSPTreatment",
    "CalibratorConfig",
    "CashflowCalibratorSettings",
    "OPTIMIZER_METHODS",
]
