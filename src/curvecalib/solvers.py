"""
Numerical solvers used by the calibration strategies.

Provides:
- BrentSolver: bracketed scalar root finder built on scipy's brentq,
  with bracket expansion inside hard bounds, an early stop on the
  price residual and best-point tracking for failure diagnostics
- minimize_bounded: bounded minimisation of a residual vector using
  scipy's trust-region least squares, bounded Nelder-Mead or L-BFGS-B
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional
import logging

import numpy as np
from scipy.optimize import brentq, least_squares, minimize

from .errors import SolverError

logger = logging.getLogger(__name__)


class OptimizerStatus(Enum):
    """Termination status of a fit."""
    CONVERGED = "Converged"
    MAXIMUM_EVALUATIONS_REACHED = "MaximumEvaluationsReached"
    MAXIMUM_ITERATIONS_REACHED = "MaximumIterationsReached"
    FAILED_FOR_UNKNOWN_EXCEPTION = "FailedForUnknownException"
    EXACT_SOLUTION_NOT_FOUND = "ExactSolutionNotFound"


@dataclass
class OptimizationResult:
    """Outcome of a bounded minimisation."""
    x: np.ndarray
    objective: float
    status: OptimizerStatus
    message: str
    iterations: int
    evaluations: int

    @property
    def converged(self) -> bool:
        return self.status == OptimizerStatus.CONVERGED


class _ResidualReached(Exception):
    """Internal signal: the price residual is already inside tolerance."""

    def __init__(self, x: float):
        self.x = x


class BrentSolver:
    """
    Bracketed scalar root finder.

    Solves fn(x) = target. The initial guesses do not need to bracket the
    root: the bracket is widened towards the end with the smaller residual
    until the residual changes sign, never leaving [lower_bound, upper_bound].

    Attributes:
        tolerance_x: Convergence tolerance on x
        tolerance_f: Convergence tolerance on fn(x) - target
        max_iterations: Iteration ceiling of the Brent search
        lower_bound: Smallest admissible x
        upper_bound: Largest admissible x
        max_expansions: Number of bracket widenings tried
    """

    def __init__(
        self,
        tolerance_x: float = 1e-10,
        tolerance_f: float = 1e-10,
        max_iterations: int = 1000,
        lower_bound: float = -np.inf,
        upper_bound: float = np.inf,
        max_expansions: int = 60
    ):
        if lower_bound >= upper_bound:
            raise ValueError(f"Invalid solver bounds [{lower_bound}, {upper_bound}]")
        self.tolerance_x = tolerance_x
        self.tolerance_f = tolerance_f
        self.max_iterations = max_iterations
        self.lower_bound = lower_bound
        self.upper_bound = upper_bound
        self.max_expansions = max_expansions

    def solve(
        self,
        fn: Callable[[float], float],
        target: float,
        low_guess: float,
        high_guess: float
    ) -> float:
        """
        Find x with fn(x) = target.

        Args:
            fn: Function of the single unknown
            target: Value fn should reach
            low_guess: Lower initial guess
            high_guess: Upper initial guess

        Returns:
            The solved x

        Raises:
            SolverError: If no sign change can be bracketed or Brent fails,
                carrying the best x and residual seen
        """
        best = {"x": np.nan, "f": np.inf, "n": 0}

        def residual(x: float) -> float:
            f = fn(x) - target
            best["n"] += 1
            if np.isfinite(f) and abs(f) < abs(best["f"]):
                best["x"], best["f"] = x, f
            return f

        a = self._clip(min(low_guess, high_guess))
        b = self._clip(max(low_guess, high_guess))
        if a == b:
            b = self._clip(a + max(abs(a), 1.0) * 1e-4)
            if a == b:
                a = self._clip(b - max(abs(b), 1.0) * 1e-4)

        fa, fb = residual(a), residual(b)
        for _ in range(self.max_expansions):
            if fa == 0.0:
                return a
            if fb == 0.0:
                return b
            if np.sign(fa) != np.sign(fb) or not (np.isfinite(fa) and np.isfinite(fb)):
                break
            can_low = a > self.lower_bound
            can_high = b < self.upper_bound
            if not (can_low or can_high):
                break
            width = b - a
            # Widen towards the smaller residual
            if can_low and (abs(fa) < abs(fb) or not can_high):
                a = self._clip(a - 1.6 * width)
                fa = residual(a)
            else:
                b = self._clip(b + 1.6 * width)
                fb = residual(b)

        if not (np.isfinite(fa) and np.isfinite(fb)) or np.sign(fa) == np.sign(fb):
            raise SolverError(
                f"Unable to bracket root in [{a:.6g}, {b:.6g}]",
                best["x"], best["f"], best["n"]
            )

        def early_stop(x: float) -> float:
            f = residual(x)
            if abs(f) <= self.tolerance_f:
                raise _ResidualReached(x)
            return f

        try:
            root, info = brentq(
                early_stop, a, b,
                xtol=self.tolerance_x,
                maxiter=self.max_iterations,
                full_output=True,
                disp=False
            )
        except _ResidualReached as hit:
            return hit.x

        if not info.converged:
            raise SolverError(
                f"Brent failed to converge after {info.iterations} iterations: {info.flag}",
                best["x"], best["f"], best["n"]
            )
        return float(root)

    def _clip(self, x: float) -> float:
        return float(min(max(x, self.lower_bound), self.upper_bound))


def minimize_bounded(
    residuals: Callable[[np.ndarray], np.ndarray],
    x0: np.ndarray,
    lower: np.ndarray,
    upper: np.ndarray,
    method: str = "least_squares",
    tolerance_x: float = 1e-10,
    max_iterations: int = 1000,
    max_evaluations: int = 5000
) -> OptimizationResult:
    """
    Minimise the sum of squared residuals within box bounds.

    Args:
        residuals: Function mapping the parameter vector to a residual vector
        x0: Starting point (clipped into the bounds)
        lower: Lower bounds
        upper: Upper bounds
        method: "least_squares", "nelder_mead" or "l_bfgs_b"
        tolerance_x: Tolerance on the parameters
        max_iterations: Iteration ceiling
        max_evaluations: Function evaluation ceiling

    Returns:
        OptimizationResult with the final point inside the bounds
    """
    lower = np.asarray(lower, dtype=np.float64)
    upper = np.asarray(upper, dtype=np.float64)
    x0 = np.clip(np.asarray(x0, dtype=np.float64), lower, upper)

    def objective(x: np.ndarray) -> float:
        r = np.asarray(residuals(x), dtype=np.float64)
        return float(np.dot(r, r))

    if method == "least_squares":
        result = least_squares(
            residuals, x0,
            bounds=(lower, upper),
            method="trf",
            xtol=tolerance_x,
            ftol=tolerance_x,
            gtol=tolerance_x,
            max_nfev=max_evaluations
        )
        x = np.clip(result.x, lower, upper)
        if result.status > 0:
            status = OptimizerStatus.CONVERGED
        elif result.status == 0:
            status = OptimizerStatus.MAXIMUM_EVALUATIONS_REACHED
        else:
            status = OptimizerStatus.FAILED_FOR_UNKNOWN_EXCEPTION
        iterations = int(result.nfev)
        evaluations = int(result.nfev)
        message = result.message

    elif method == "nelder_mead":
        result = minimize(
            objective, x0,
            method="Nelder-Mead",
            bounds=list(zip(lower, upper)),
            options={
                "xatol": tolerance_x,
                "fatol": tolerance_x * tolerance_x,
                "maxiter": max_iterations,
                "maxfev": max_evaluations,
            }
        )
        x = np.clip(result.x, lower, upper)
        status = _minimize_status(result, max_evaluations)
        iterations = int(result.nit)
        evaluations = int(result.nfev)
        message = str(result.message)

    elif method == "l_bfgs_b":
        result = minimize(
            objective, x0,
            method="L-BFGS-B",
            bounds=list(zip(lower, upper)),
            options={
                "ftol": tolerance_x * tolerance_x,
                "gtol": tolerance_x,
                "maxiter": max_iterations,
                "maxfun": max_evaluations,
            }
        )
        x = np.clip(result.x, lower, upper)
        status = _minimize_status(result, max_evaluations)
        iterations = int(result.nit)
        evaluations = int(result.nfev)
        message = str(result.message)

    else:
        raise ValueError(f"Unknown optimizer method: {method}")

    value = objective(x)
    if not np.isfinite(value):
        status = OptimizerStatus.FAILED_FOR_UNKNOWN_EXCEPTION

    logger.debug(
        "Optimizer %s finished: status=%s objective=%.3e evaluations=%d",
        method, status.value, value, evaluations
    )

    return OptimizationResult(
        x=x,
        objective=value,
        status=status,
        message=message,
        iterations=iterations,
        evaluations=evaluations
    )


def _minimize_status(result, max_evaluations: int) -> OptimizerStatus:
    if result.success:
        return OptimizerStatus.CONVERGED
    if result.nfev >= max_evaluations:
        return OptimizerStatus.MAXIMUM_EVALUATIONS_REACHED
    return OptimizerStatus.MAXIMUM_ITERATIONS_REACHED


__all__ = [
    "OptimizerStatus",
    "OptimizationResult",
    "BrentSolver",
    "minimize_bounded",
]
