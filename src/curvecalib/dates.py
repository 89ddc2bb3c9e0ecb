"""
Date utilities for curve calibration.

Provides:
- Tenor parsing and date arithmetic
- Payment schedule generation for swaps, CDS and commodity swaps
- Pricing-grid generation for step-integrated pricers
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Optional, Tuple
import re

from .conventions import (
    BusinessDayConvention,
    DayCount,
    TimeUnit,
    adjust_business_day,
    is_business_day,
    year_fraction
)


class DateUtils:
    """Utility class for date manipulation in curve contexts."""

    # Tenor regex pattern: number + unit (D/W/M/Y)
    TENOR_PATTERN = re.compile(r'^(\d+)([DWMY])$', re.IGNORECASE)

    @staticmethod
    def parse_tenor(tenor: str) -> Tuple[int, str]:
        """
        Parse a tenor string into (amount, unit).

        Args:
            tenor: Tenor string like "1D", "3M", "2Y"

        Returns:
            Tuple of (amount, unit) where unit is D/W/M/Y

        Raises:
            ValueError: If tenor format is invalid
        """
        match = DateUtils.TENOR_PATTERN.match(tenor.upper().strip())
        if not match:
            raise ValueError(f"Invalid tenor format: {tenor}. Expected format like '3M', '2Y'")

        return int(match.group(1)), match.group(2).upper()

    @staticmethod
    def add_tenor(start: date, tenor: str, holidays: Optional[set] = None) -> date:
        """
        Add a tenor to a date.

        Days are business days; weeks, months and years are calendar
        periods with the day of month clipped to the month end.

        Args:
            start: Starting date
            tenor: Tenor string (e.g., "1D", "3M", "2Y")
            holidays: Optional holiday calendar

        Returns:
            End date
        """
        amount, unit = DateUtils.parse_tenor(tenor)

        if unit == 'D':
            result = start
            days_added = 0
            while days_added < amount:
                result += timedelta(days=1)
                if is_business_day(result, holidays):
                    days_added += 1
            return result

        return DateUtils.add_step(start, amount, TimeUnit(unit))

    @staticmethod
    def add_step(start: date, amount: int, unit: TimeUnit) -> date:
        """Add a signed number of calendar units to a date."""
        if unit == TimeUnit.DAYS:
            return start + timedelta(days=amount)
        elif unit == TimeUnit.WEEKS:
            return start + timedelta(weeks=amount)
        elif unit == TimeUnit.MONTHS:
            return _add_months(start, amount)
        elif unit == TimeUnit.YEARS:
            return _add_months(start, 12 * amount)
        raise ValueError(f"Cannot step by time unit: {unit}")

    @staticmethod
    def generate_schedule(
        start: date,
        end: date,
        frequency: int,
        convention: BusinessDayConvention = BusinessDayConvention.MODIFIED_FOLLOWING,
        holidays: Optional[set] = None
    ) -> List[date]:
        """
        Generate a payment schedule between start and end dates.

        Dates are rolled backward from maturity so any stub is at the front.

        Args:
            start: Schedule start (accrual start)
            end: Schedule end (maturity)
            frequency: Payments per year (1=annual, 2=semi, 4=quarterly, 12=monthly)
            convention: Business day adjustment
            holidays: Holiday calendar

        Returns:
            List of payment dates (adjusted for business days), excluding start
        """
        if frequency <= 0 or 12 % frequency != 0:
            raise ValueError(f"Frequency must divide 12, got {frequency}")

        months_per_period = 12 // frequency

        unadjusted = [end]
        k = 1
        while True:
            prev_date = _add_months(end, -k * months_per_period)
            if prev_date <= start:
                break
            unadjusted.insert(0, prev_date)
            k += 1

        return [adjust_business_day(d, convention, holidays) for d in unadjusted]

    @staticmethod
    def pricing_grid(
        start: date,
        end: date,
        step_size: int,
        step_unit: TimeUnit
    ) -> List[date]:
        """
        Generate an integration grid from start to end inclusive.

        With no step configured the grid is just the two end points.
        """
        if end <= start:
            return [start]
        if step_size <= 0 or step_unit == TimeUnit.NONE:
            return [start, end]

        grid = [start]
        k = 1
        while True:
            d = DateUtils.add_step(start, k * step_size, step_unit)
            if d >= end:
                break
            grid.append(d)
            k += 1
        grid.append(end)
        return grid


@dataclass
class ScheduleInfo:
    """Container for schedule with accrual information."""
    payment_dates: List[date]
    accrual_starts: List[date]
    accrual_ends: List[date]
    year_fractions: List[float]
    day_count: DayCount


def generate_accrual_schedule(
    effective: date,
    maturity: date,
    frequency: int,
    day_count: DayCount,
    convention: BusinessDayConvention = BusinessDayConvention.UNADJUSTED,
    holidays: Optional[set] = None
) -> ScheduleInfo:
    """
    Generate a fixed-leg style schedule with accrual periods.

    Args:
        effective: Accrual start of the first period
        maturity: Last payment date
        frequency: Payments per year
        day_count: Accrual day count
        convention: Business day adjustment for payment dates
        holidays: Holiday calendar

    Returns:
        ScheduleInfo with payment dates and accrual fractions
    """
    payment_dates = [
        d for d in DateUtils.generate_schedule(effective, maturity, frequency, convention, holidays)
        if d > effective
    ]

    if not payment_dates:
        return ScheduleInfo(
            payment_dates=[maturity],
            accrual_starts=[effective],
            accrual_ends=[maturity],
            year_fractions=[year_fraction(effective, maturity, day_count)],
            day_count=day_count
        )

    accrual_starts = []
    accrual_ends = []
    yfs = []

    prev = effective
    for pmt_date in payment_dates:
        accrual_starts.append(prev)
        accrual_ends.append(pmt_date)
        yfs.append(year_fraction(prev, pmt_date, day_count))
        prev = pmt_date

    return ScheduleInfo(
        payment_dates=payment_dates,
        accrual_starts=accrual_starts,
        accrual_ends=accrual_ends,
        year_fractions=yfs,
        day_count=day_count
    )


def _add_months(start: date, months: int) -> date:
    """Add calendar months, clipping the day to the target month length."""
    total = start.month - 1 + months
    year = start.year + total // 12
    month = total % 12 + 1
    day = min(start.day, _days_in_month(year, month))
    return date(year, month, day)


def _days_in_month(year: int, month: int) -> int:
    """Return number of days in a month."""
    if month in (1, 3, 5, 7, 8, 10, 12):
        return 31
    elif month in (4, 6, 9, 11):
        return 30
    elif month == 2:
        if (year % 4 == 0 and year % 100 != 0) or (year % 400 == 0):
            return 29
        return 28
    raise ValueError(f"Invalid month: {month}")


__all__ = [
    "DateUtils",
    "ScheduleInfo",
    "generate_accrual_schedule",
]
