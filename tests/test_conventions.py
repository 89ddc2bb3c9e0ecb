"""
Unit tests for conventions module.
"""

from datetime import date

from curvecalib.conventions import (
    DayCount,
    BusinessDayConvention,
    TimeUnit,
    year_fraction,
    adjust_business_day,
)


class TestDayCount:
    """Tests for day count conventions."""

    def test_act_360(self):
        """Test ACT/360 day count."""
        start = date(2024, 1, 15)
        end = date(2024, 4, 15)  # 91 days

        yf = year_fraction(start, end, DayCount.ACT_360)
        assert abs(yf - 91 / 360) < 1e-10

    def test_act_365(self):
        """Test ACT/365 day count."""
        start = date(2024, 1, 15)
        end = date(2024, 4, 15)  # 91 days

        yf = year_fraction(start, end, DayCount.ACT_365)
        assert abs(yf - 91 / 365) < 1e-10

    def test_act_act_across_leap_year(self):
        """ACT/ACT splits the period at the year boundary."""
        start = date(2024, 7, 1)
        end = date(2025, 7, 1)

        yf = year_fraction(start, end, DayCount.ACT_ACT)
        expected = 184 / 366 + 181 / 365
        assert abs(yf - expected) < 1e-12

    def test_act_act_within_year(self):
        yf = year_fraction(date(2024, 1, 1), date(2024, 7, 1), DayCount.ACT_ACT)
        assert abs(yf - 182 / 366) < 1e-12

    def test_thirty_360(self):
        """Test 30/360 day count."""
        start = date(2024, 1, 15)
        end = date(2024, 4, 15)  # 3 months

        yf = year_fraction(start, end, DayCount.THIRTY_360)
        assert abs(yf - 90 / 360) < 1e-10

    def test_year_fraction_same_date(self):
        """Test year fraction for same date returns 0."""
        d = date(2024, 1, 15)
        assert year_fraction(d, d, DayCount.ACT_360) == 0.0


class TestBusinessDays:
    """Tests for business day adjustment."""

    def test_following_moves_off_weekend(self):
        saturday = date(2024, 6, 15)
        assert adjust_business_day(saturday, BusinessDayConvention.FOLLOWING) == date(2024, 6, 17)

    def test_modified_following_stays_in_month(self):
        saturday = date(2024, 8, 31)
        adjusted = adjust_business_day(saturday, BusinessDayConvention.MODIFIED_FOLLOWING)
        assert adjusted == date(2024, 8, 30)

    def test_unadjusted(self):
        sunday = date(2024, 6, 16)
        assert adjust_business_day(sunday, BusinessDayConvention.UNADJUSTED) == sunday

    def test_holiday(self):
        holiday = date(2024, 7, 4)
        adjusted = adjust_business_day(holiday, BusinessDayConvention.FOLLOWING, {holiday})
        assert adjusted == date(2024, 7, 5)


class TestTimeUnit:

    def test_values_match_tenor_letters(self):
        assert TimeUnit("M") == TimeUnit.MONTHS
        assert TimeUnit("Y") == TimeUnit.YEARS
        assert TimeUnit.NONE.value == "None"
