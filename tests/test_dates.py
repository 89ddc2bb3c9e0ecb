"""
Unit tests for dates module.
"""

from datetime import date
import pytest

from curvecalib.conventions import BusinessDayConvention, DayCount, TimeUnit
from curvecalib.dates import DateUtils, ScheduleInfo, generate_accrual_schedule


class TestDateUtils:
    """Tests for DateUtils class."""

    def test_parse_tenor_months(self):
        """Test parsing month tenors."""
        assert DateUtils.parse_tenor("3M") == (3, 'M')
        assert DateUtils.parse_tenor("12M") == (12, 'M')

    def test_parse_tenor_years(self):
        """Test parsing year tenors."""
        assert DateUtils.parse_tenor("1Y") == (1, 'Y')
        assert DateUtils.parse_tenor("30Y") == (30, 'Y')

    def test_parse_tenor_weeks_and_days(self):
        assert DateUtils.parse_tenor("2W") == (2, 'W')
        assert DateUtils.parse_tenor("30D") == (30, 'D')

    def test_parse_tenor_lowercase(self):
        """Test parsing lowercase tenors."""
        assert DateUtils.parse_tenor("3m") == (3, 'M')
        assert DateUtils.parse_tenor("5y") == (5, 'Y')

    def test_parse_tenor_invalid(self):
        """Test invalid tenor raises error."""
        with pytest.raises(ValueError):
            DateUtils.parse_tenor("invalid")
        with pytest.raises(ValueError):
            DateUtils.parse_tenor("3X")

    def test_add_tenor_months(self):
        base = date(2024, 1, 15)
        assert DateUtils.add_tenor(base, "3M") == date(2024, 4, 15)
        assert DateUtils.add_tenor(base, "6M") == date(2024, 7, 15)

    def test_add_tenor_years(self):
        base = date(2024, 1, 15)
        assert DateUtils.add_tenor(base, "1Y") == date(2025, 1, 15)
        assert DateUtils.add_tenor(base, "5Y") == date(2029, 1, 15)

    def test_add_tenor_weeks(self):
        base = date(2024, 1, 15)
        assert DateUtils.add_tenor(base, "1W") == date(2024, 1, 22)
        assert DateUtils.add_tenor(base, "2W") == date(2024, 1, 29)

    def test_add_tenor_business_days(self):
        """Day tenors skip weekends."""
        friday = date(2024, 1, 12)
        assert DateUtils.add_tenor(friday, "1D") == date(2024, 1, 15)
        assert DateUtils.add_tenor(friday, "2D") == date(2024, 1, 16)

    def test_add_tenor_end_of_month(self):
        """Day of month is clipped to the month end."""
        assert DateUtils.add_tenor(date(2024, 1, 31), "1M") == date(2024, 2, 29)
        assert DateUtils.add_tenor(date(2023, 1, 31), "1M") == date(2023, 2, 28)

    def test_add_step_negative(self):
        assert DateUtils.add_step(date(2024, 3, 31), -1, TimeUnit.MONTHS) == date(2024, 2, 29)
        with pytest.raises(ValueError):
            DateUtils.add_step(date(2024, 3, 31), 1, TimeUnit.NONE)


class TestScheduleGeneration:
    """Tests for schedule generation."""

    def test_schedule_rolls_back_from_maturity(self):
        schedule = DateUtils.generate_schedule(
            date(2024, 2, 1), date(2025, 1, 15), 4, BusinessDayConvention.UNADJUSTED
        )
        # Short front stub, regular quarters after
        assert schedule == [date(2024, 4, 15), date(2024, 7, 15), date(2024, 10, 15), date(2025, 1, 15)]

    def test_schedule_invalid_frequency(self):
        with pytest.raises(ValueError):
            DateUtils.generate_schedule(date(2024, 1, 15), date(2025, 1, 15), 5)

    def test_accrual_schedule_annual(self):
        schedule = generate_accrual_schedule(
            effective=date(2024, 1, 15),
            maturity=date(2027, 1, 15),
            frequency=1,
            day_count=DayCount.ACT_360
        )

        assert isinstance(schedule, ScheduleInfo)
        assert schedule.payment_dates == [date(2025, 1, 15), date(2026, 1, 15), date(2027, 1, 15)]
        assert schedule.accrual_starts[0] == date(2024, 1, 15)
        assert abs(schedule.year_fractions[0] - 366 / 360) < 1e-12

    def test_accrual_schedule_short_period(self):
        """A product shorter than one period has a single accrual."""
        schedule = generate_accrual_schedule(
            date(2024, 1, 15), date(2024, 4, 15), 1, DayCount.ACT_360
        )
        assert schedule.payment_dates == [date(2024, 4, 15)]
        assert abs(schedule.year_fractions[0] - 91 / 360) < 1e-12


class TestPricingGrid:

    def test_no_step_gives_end_points(self):
        grid = DateUtils.pricing_grid(date(2024, 1, 15), date(2025, 1, 15), 0, TimeUnit.NONE)
        assert grid == [date(2024, 1, 15), date(2025, 1, 15)]

    def test_monthly_grid(self):
        grid = DateUtils.pricing_grid(date(2024, 1, 15), date(2024, 4, 1), 1, TimeUnit.MONTHS)
        assert grid == [date(2024, 1, 15), date(2024, 2, 15), date(2024, 3, 15), date(2024, 4, 1)]
