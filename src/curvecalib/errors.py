"""
Exception hierarchy for curve calibration.

Configuration problems are raised before any iterative work starts.
Convergence failures carry the curve and tenor that could not be fitted
together with the best value and residual the solver reached.
"""

from datetime import date
from typing import List, Optional


class CalibrationError(Exception):
    """Base class of all calibration errors."""


class ConfigurationError(CalibrationError, ValueError):
    """Raised when a calibrator or curve is not set up well enough to fit."""

    def __init__(self, problems: List[str]):
        if isinstance(problems, str):
            problems = [problems]
        self.problems = list(problems)
        super().__init__("; ".join(self.problems))


class SolverError(CalibrationError):
    """Raised when the root finder cannot bracket or converge."""

    def __init__(self, message: str, best_x: float, best_f: float, iterations: int = 0):
        super().__init__(message)
        self.best_x = best_x
        self.best_f = best_f
        self.iterations = iterations


class CalibrationFailure(CalibrationError):
    """
    A tenor could not be fitted.

    Attributes:
        curve_name: Name of the curve under calibration
        tenor_name: Name of the offending tenor
        tenor_date: Curve date of the offending tenor
        best_value: Best curve value the solver reached
        residual: Pricing residual at the best value
        cause: Underlying solver error, if any
    """

    def __init__(
        self,
        curve_name: str,
        tenor_name: str,
        tenor_date: Optional[date],
        best_value: float,
        residual: float,
        cause: Optional[Exception] = None
    ):
        self.curve_name = curve_name
        self.tenor_name = tenor_name
        self.tenor_date = tenor_date
        self.best_value = best_value
        self.residual = residual
        self.cause = cause
        super().__init__(
            f"Unable to fit {curve_name} at tenor {tenor_name} ({tenor_date}). "
            f"Best we could do is a value of {best_value:.10g} "
            f"with a pricing residual of {residual:.4g}"
        )


__all__ = [
    "CalibrationError",
    "ConfigurationError",
    "SolverError",
    "CalibrationFailure",
]
