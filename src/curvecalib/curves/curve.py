"""
Date-keyed curve representation.

The Curve class stores an ordered series of (date, value) points and
interpolates between them using the configured method. Values are the
raw curve quantity: discount factors, survival probabilities or prices.

Conventions:
    - Times are year fractions from the as-of date in the curve's day count
    - Discount and survival curves carry an anchor value of 1.0 at as-of
    - An optional overlay curve multiplies (or is added to) every value
"""

from bisect import bisect_left
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import List, Optional, Tuple

import numpy as np

from ..conventions import DayCount, year_fraction
from .interpolation import Interpolator, create_interpolator


class OverlayMode(Enum):
    """How an overlay curve combines with its base curve."""
    MULTIPLICATIVE = "multiplicative"
    ADDITIVE = "additive"


@dataclass(frozen=True)
class CurveState:
    """Immutable snapshot of a curve's points."""
    dates: Tuple[date, ...]
    values: Tuple[float, ...]
    anchor_value: Optional[float]


class Curve:
    """
    Ordered date/value series with interpolation.

    Attributes:
        as_of: Valuation date (time 0)
        day_count: Day count for time calculations
        interpolation_method: Name of interpolation method
        anchor_value: Implicit value at as_of, or None for no anchor
        name: Curve name used in diagnostics
        ccy: Currency code
        category: Free-form classification (e.g. "Discount", "Credit")
        overlay: Optional curve combined with this one on every lookup
        overlay_mode: How the overlay combines
    """

    def __init__(
        self,
        as_of: date,
        day_count: DayCount = DayCount.ACT_365,
        interpolation_method: str = "log_linear",
        anchor_value: Optional[float] = None,
        name: str = "",
        ccy: str = "USD",
        category: str = ""
    ):
        self.as_of = as_of
        self.day_count = day_count
        self.interpolation_method = interpolation_method
        self.anchor_value = anchor_value
        self.name = name
        self.ccy = ccy
        self.category = category
        self.overlay: Optional["Curve"] = None
        self.overlay_mode = OverlayMode.MULTIPLICATIVE

        self._dates: List[date] = []
        self._values: List[float] = []
        self._interpolator: Optional[Interpolator] = None

    # Point editing

    def add(self, dt: date, value: float) -> int:
        """
        Add a point, replacing the value if the date already exists.

        Returns:
            Index of the point
        """
        if self.anchor_value is not None and dt <= self.as_of:
            raise ValueError(f"Point {dt} must be after the as-of date {self.as_of}")

        idx = bisect_left(self._dates, dt)
        if idx < len(self._dates) and self._dates[idx] == dt:
            self._values[idx] = float(value)
        else:
            self._dates.insert(idx, dt)
            self._values.insert(idx, float(value))
        self._invalidate()
        return idx

    def set_val(self, i: int, value: float) -> None:
        """Set the value of point i."""
        self._values[i] = float(value)
        self._invalidate()

    def set_values(self, values) -> None:
        """Overwrite every point value at once."""
        if len(values) != len(self._values):
            raise ValueError(f"Expected {len(self._values)} values, got {len(values)}")
        self._values = [float(v) for v in values]
        self._invalidate()

    def get_val(self, i: int) -> float:
        return self._values[i]

    def get_dt(self, i: int) -> date:
        return self._dates[i]

    def clear(self) -> None:
        """Remove every point."""
        self._dates = []
        self._values = []
        self._invalidate()

    def shrink(self, n: int) -> None:
        """Keep only the first n points."""
        if n < 0:
            raise ValueError(f"Cannot shrink to {n} points")
        del self._dates[n:]
        del self._values[n:]
        self._invalidate()

    def set_constant(self, value: float) -> None:
        """Collapse the curve to a constant value, keeping its dates."""
        self._values = [float(value)] * len(self._values)
        if self.anchor_value is not None:
            self.anchor_value = float(value)
        elif not self._dates:
            self._dates = [self.as_of]
            self._values = [float(value)]
        self._invalidate()

    def __len__(self) -> int:
        return len(self._dates)

    def points(self) -> List[Tuple[date, float]]:
        """All (date, value) points in date order."""
        return list(zip(self._dates, self._values))

    def dates(self) -> List[date]:
        return list(self._dates)

    def values(self) -> np.ndarray:
        return np.array(self._values, dtype=np.float64)

    def snapshot(self) -> CurveState:
        """Capture the exact current points."""
        return CurveState(tuple(self._dates), tuple(self._values), self.anchor_value)

    def restore(self, state: CurveState) -> None:
        """Restore points captured by snapshot()."""
        self._dates = list(state.dates)
        self._values = list(state.values)
        self.anchor_value = state.anchor_value
        self._invalidate()

    # Evaluation

    def time(self, dt: date) -> float:
        """Year fraction from as_of to dt in the curve's day count."""
        if dt < self.as_of:
            return -year_fraction(dt, self.as_of, self.day_count)
        return year_fraction(self.as_of, dt, self.day_count)

    def interpolate(self, dt: date) -> float:
        """
        Curve value at a date, including any overlay.

        Args:
            dt: Evaluation date

        Returns:
            Interpolated (and overlaid) value
        """
        value = self.base_interpolate(dt)
        if self.overlay is None:
            return value
        if self.overlay_mode == OverlayMode.MULTIPLICATIVE:
            return value * self.overlay.interpolate(dt)
        return value + self.overlay.interpolate(dt)

    def base_interpolate(self, dt: date) -> float:
        """Curve value at a date ignoring the overlay."""
        if self.anchor_value is not None and dt <= self.as_of:
            return self.anchor_value
        self._ensure_built()
        return self._interpolator.interpolate(self.time(dt))

    def _ensure_built(self) -> None:
        if self._interpolator is not None:
            return
        times = [self.time(d) for d in self._dates]
        values = list(self._values)
        if self.anchor_value is not None:
            times.insert(0, 0.0)
            values.insert(0, self.anchor_value)
        if not times:
            raise RuntimeError(f"Curve {self.name or '<unnamed>'} has no points")
        interpolator = create_interpolator(self.interpolation_method)
        interpolator.fit(np.array(times), np.array(values))
        self._interpolator = interpolator

    def _invalidate(self) -> None:
        self._interpolator = None

    def copy(self) -> "Curve":
        """Copy of the points and settings. The overlay is shared."""
        new_curve = Curve(
            as_of=self.as_of,
            day_count=self.day_count,
            interpolation_method=self.interpolation_method,
            anchor_value=self.anchor_value,
            name=self.name,
            ccy=self.ccy,
            category=self.category
        )
        new_curve._dates = list(self._dates)
        new_curve._values = list(self._values)
        new_curve.overlay = self.overlay
        new_curve.overlay_mode = self.overlay_mode
        return new_curve

    def __repr__(self) -> str:
        return (f"{type(self).__name__}(name={self.name!r}, as_of={self.as_of}, "
                f"points={len(self)}, method={self.interpolation_method})")


__all__ = [
    "Curve",
    "CurveState",
    "OverlayMode",
]
