"""Unit tests for billing period arithmetic."""

from datetime import date
from decimal import Decimal

import pytest

from copro.models.charge import Frequency
from copro.services.period_service import (
    add_months,
    period_days,
    split_period,
    year_bounds,
)


class TestAddMonths:
    """Test month shifting with day clipping."""

    def test_same_day_next_quarter(self):
        assert add_months(date(2025, 1, 1), 3) == date(2025, 4, 1)

    def test_clips_to_month_end(self):
        assert add_months(date(2025, 1, 31), 1) == date(2025, 2, 28)
        assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)

    def test_crosses_year(self):
        assert add_months(date(2025, 11, 15), 3) == date(2026, 2, 15)
        assert add_months(date(2025, 1, 1), 12) == date(2026, 1, 1)


class TestSplitPeriod:
    """Test splitting a window into frequency sub-periods."""

    def test_quarterly_full_year(self):
        """A calendar year yields four full quarters."""
        periods = split_period(date(2025, 1, 1), date(2025, 12, 31), Frequency.TRIMESTRIEL)

        assert [(p.start, p.end) for p in periods] == [
            (date(2025, 1, 1), date(2025, 3, 31)),
            (date(2025, 4, 1), date(2025, 6, 30)),
            (date(2025, 7, 1), date(2025, 9, 30)),
            (date(2025, 10, 1), date(2025, 12, 31)),
        ]
        assert all(p.is_full for p in periods)

    def test_monthly_full_year(self):
        periods = split_period(date(2025, 1, 1), date(2025, 12, 31), Frequency.MENSUEL)

        assert len(periods) == 12
        assert periods[1].start == date(2025, 2, 1)
        assert periods[1].end == date(2025, 2, 28)
        assert all(p.ratio == 1 for p in periods)

    def test_annual_full_year(self):
        periods = split_period(date(2025, 1, 1), date(2025, 12, 31), Frequency.ANNUEL)

        assert len(periods) == 1
        assert periods[0].is_full

    def test_semiannual_anchored_on_window_start(self):
        """Sub-periods step from the window start, not from calendar boundaries."""
        periods = split_period(date(2025, 2, 15), date(2026, 2, 14), Frequency.SEMESTRIEL)

        assert [(p.start, p.end) for p in periods] == [
            (date(2025, 2, 15), date(2025, 8, 14)),
            (date(2025, 8, 15), date(2026, 2, 14)),
        ]
        assert all(p.is_full for p in periods)

    def test_last_period_clipped_and_prorated(self):
        """A window ending mid-quarter yields a clipped last period with a day ratio."""
        periods = split_period(date(2025, 1, 1), date(2025, 5, 15), Frequency.TRIMESTRIEL)

        assert len(periods) == 2
        assert periods[0].is_full
        last = periods[1]
        assert (last.start, last.end) == (date(2025, 4, 1), date(2025, 5, 15))
        # 45 of the 91 days of April-June
        assert last.ratio == Decimal(45) / Decimal(91)
        assert not last.is_full

    def test_half_quarter(self):
        """January 1st to February 14th is 45 of the 90 days of Q1."""
        periods = split_period(date(2025, 1, 1), date(2025, 2, 14), Frequency.TRIMESTRIEL)

        assert len(periods) == 1
        assert periods[0].ratio == Decimal("0.5")

    def test_single_day(self):
        periods = split_period(date(2025, 1, 1), date(2025, 1, 1), Frequency.MENSUEL)

        assert len(periods) == 1
        assert periods[0].ratio == Decimal(1) / Decimal(31)

    def test_inverted_window_rejected(self):
        with pytest.raises(ValueError):
            split_period(date(2025, 12, 31), date(2025, 1, 1), Frequency.MENSUEL)

    def test_accepts_frequency_value(self):
        periods = split_period(date(2025, 1, 1), date(2025, 12, 31), "semestriel")

        assert len(periods) == 2


class TestHelpers:
    def test_period_days_is_inclusive(self):
        assert period_days(date(2025, 1, 1), date(2025, 1, 1)) == 1
        assert period_days(date(2025, 1, 1), date(2025, 3, 31)) == 90

    def test_year_bounds(self):
        assert year_bounds(2025) == (date(2025, 1, 1), date(2025, 12, 31))
