"""
Interpolation methods for calibrated curves.

Provides:
- LinearInterpolator: Linear interpolation on curve values
- CubicSplineInterpolator: Natural cubic spline on curve values
- LogLinearInterpolator: Linear interpolation in log(value) space

All interpolators work with year fractions as x-coordinates and the raw
curve values (discount factors, survival probabilities, prices) as
y-coordinates. A single knot gives a constant curve.
"""

from abc import ABC, abstractmethod
from typing import Optional
import numpy as np


class Interpolator(ABC):
    """Abstract base class for curve interpolation."""

    def __init__(self):
        self.times: Optional[np.ndarray] = None
        self.values: Optional[np.ndarray] = None

    def fit(self, times: np.ndarray, values: np.ndarray) -> None:
        """
        Fit the interpolator to data points.

        Args:
            times: Array of year fractions (strictly increasing)
            values: Array of curve values
        """
        times = np.asarray(times, dtype=np.float64)
        values = np.asarray(values, dtype=np.float64)
        if len(times) != len(values):
            raise ValueError("Times and values must have same length")
        if len(times) < 1:
            raise ValueError("Need at least 1 point for interpolation")
        if np.any(np.diff(times) <= 0):
            raise ValueError("Times must be strictly increasing")
        self.times = times
        self.values = values
        self._build()

    def _build(self) -> None:
        """Hook for interpolators that precompute coefficients."""

    @abstractmethod
    def interpolate(self, t: float) -> float:
        """
        Interpolate at a single point.

        Args:
            t: Year fraction

        Returns:
            Interpolated curve value
        """

    def __call__(self, t: float) -> float:
        """Convenience method to call interpolate."""
        return self.interpolate(t)

    def _check_fitted(self) -> None:
        if self.times is None:
            raise RuntimeError("Interpolator not fitted")

    def _segment(self, t: float) -> int:
        idx = np.searchsorted(self.times, t, side='right') - 1
        return int(max(0, min(idx, len(self.times) - 2)))


class LinearInterpolator(Interpolator):
    """
    Linear interpolation.

    Simple linear interpolation between knot points.
    Extrapolates flat beyond boundaries.
    """

    def interpolate(self, t: float) -> float:
        """Linear interpolation with flat extrapolation."""
        self._check_fitted()

        if t <= self.times[0]:
            return float(self.values[0])
        if t >= self.times[-1]:
            return float(self.values[-1])

        idx = self._segment(t)
        t0, t1 = self.times[idx], self.times[idx + 1]
        v0, v1 = self.values[idx], self.values[idx + 1]

        w = (t - t0) / (t1 - t0)
        return float(v0 + w * (v1 - v0))


class CubicSplineInterpolator(Interpolator):
    """
    Cubic spline interpolation.

    Uses natural cubic splines (second derivative = 0 at boundaries).
    Extrapolates flat beyond boundaries.
    """

    def __init__(self):
        super().__init__()
        self.coefficients: Optional[np.ndarray] = None  # Shape: (n-1, 4) for [a, b, c, d]

    def _build(self) -> None:
        """
        Solve the tridiagonal system for second derivatives,
        then compute polynomial coefficients for each interval.
        """
        n = len(self.times)
        if n == 1:
            self.coefficients = np.array([[self.values[0], 0.0, 0.0, 0.0]])
            return
        if n == 2:
            h = self.times[1] - self.times[0]
            slope = (self.values[1] - self.values[0]) / h
            self.coefficients = np.array([[self.values[0], slope, 0.0, 0.0]])
            return

        h = np.diff(self.times)

        # Natural spline: M[0] = M[n-1] = 0
        A = np.zeros((n, n))
        b = np.zeros(n)
        A[0, 0] = 1.0
        A[n-1, n-1] = 1.0

        for i in range(1, n-1):
            A[i, i-1] = h[i-1]
            A[i, i] = 2 * (h[i-1] + h[i])
            A[i, i+1] = h[i]
            b[i] = 6 * ((self.values[i+1] - self.values[i]) / h[i] -
                        (self.values[i] - self.values[i-1]) / h[i-1])

        M = np.linalg.solve(A, b)

        # S_i(x) = a_i + b_i*(x-x_i) + c_i*(x-x_i)^2 + d_i*(x-x_i)^3
        self.coefficients = np.zeros((n-1, 4))
        for i in range(n-1):
            self.coefficients[i, 0] = self.values[i]
            self.coefficients[i, 1] = (self.values[i+1] - self.values[i]) / h[i] - h[i] * (M[i+1] + 2*M[i]) / 6
            self.coefficients[i, 2] = M[i] / 2
            self.coefficients[i, 3] = (M[i+1] - M[i]) / (6 * h[i])

    def interpolate(self, t: float) -> float:
        """Evaluate cubic spline at point t."""
        self._check_fitted()

        if t <= self.times[0]:
            return float(self.values[0])
        if t >= self.times[-1]:
            return float(self.values[-1])

        idx = self._segment(t)
        dx = t - self.times[idx]
        a, b, c, d = self.coefficients[idx]
        return float(a + b*dx + c*dx**2 + d*dx**3)


class LogLinearInterpolator(Interpolator):
    """
    Log-linear interpolation on positive curve values.

    Interpolates linearly in log(value) space, which corresponds to
    piecewise constant forward rates (discount curves) or hazard rates
    (survival curves). Beyond the last knot the last segment's rate is
    continued; before the first knot the value is held flat.
    """

    def __init__(self):
        super().__init__()
        self.log_values: Optional[np.ndarray] = None

    def _build(self) -> None:
        if np.any(self.values <= 0):
            raise ValueError("Log-linear interpolation requires positive values")
        self.log_values = np.log(self.values)

    def interpolate(self, t: float) -> float:
        """Interpolated value (not its log) at time t."""
        return float(np.exp(self.log_interpolate(t)))

    def log_interpolate(self, t: float) -> float:
        """Interpolated log value at time t."""
        self._check_fitted()

        if t <= self.times[0] or len(self.times) == 1:
            return float(self.log_values[0] if t <= self.times[0] else self.log_values[-1])

        idx = self._segment(t)
        t0, t1 = self.times[idx], self.times[idx + 1]
        v0, v1 = self.log_values[idx], self.log_values[idx + 1]
        w = (t - t0) / (t1 - t0)
        return float(v0 + w * (v1 - v0))


def create_interpolator(method: str) -> Interpolator:
    """
    Factory function to create an interpolator by name.

    Args:
        method: One of "linear", "cubic_spline", "log_linear"

    Returns:
        Interpolator instance
    """
    method = method.lower().replace("-", "_").replace(" ", "_")

    if method in ("linear", "lin"):
        return LinearInterpolator()
    elif method in ("cubic_spline", "cubic", "spline"):
        return CubicSplineInterpolator()
    elif method in ("log_linear", "loglinear"):
        return LogLinearInterpolator()
    else:
        raise ValueError(f"Unknown interpolation method: {method}")


__all__ = [
    "Interpolator",
    "LinearInterpolator",
    "CubicSplineInterpolator",
    "LogLinearInterpolator",
    "create_interpolator",
]
