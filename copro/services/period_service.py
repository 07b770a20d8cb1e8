"""Billing period arithmetic: splitting a window into frequency sub-periods."""

import calendar
from datetime import date, timedelta
from decimal import Decimal
from typing import NamedTuple

from copro.models.charge import Frequency


class BillingPeriod(NamedTuple):
    """One billing sub-period and its share of a nominal period."""

    start: date
    end: date
    ratio: Decimal
    """days(start..end) / days(nominal period starting at start); 1 for full periods"""

    @property
    def is_full(self) -> bool:
        return self.ratio == 1


def add_months(value: date, months: int) -> date:
    """Shift a date by whole months, clipping the day to the target month's length.

    Example: add_months(date(2025, 1, 31), 1) -> date(2025, 2, 28)
    """
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def period_days(start: date, end: date) -> int:
    """Inclusive number of days in [start, end]."""
    return (end - start).days + 1


def split_period(period_start: date, period_end: date, frequency: Frequency) -> list[BillingPeriod]:
    """Split [period_start, period_end] into consecutive sub-periods of the given frequency.

    Sub-periods are anchored on period_start (every N months from it); the last one
    is clipped to period_end and carries a proration ratio below 1.

    Args:
        period_start: First day of the window
        period_end: Last day of the window (inclusive)
        frequency: Billing frequency determining the sub-period length

    Returns:
        List of BillingPeriod, in chronological order

    Raises:
        ValueError: If period_start is after period_end
    """
    if period_start > period_end:
        raise ValueError("period_start must not be after period_end")

    frequency = Frequency(frequency)
    periods = []
    index = 0
    while True:
        start = add_months(period_start, index * frequency.months)
        if start > period_end:
            break
        nominal_end = add_months(period_start, (index + 1) * frequency.months) - timedelta(days=1)
        end = min(nominal_end, period_end)
        ratio = Decimal(period_days(start, end)) / Decimal(period_days(start, nominal_end))
        periods.append(BillingPeriod(start=start, end=end, ratio=ratio))
        index += 1

    return periods


def year_bounds(annee: int) -> tuple[date, date]:
    """First and last day of a calendar year."""
    return date(annee, 1, 1), date(annee, 12, 31)


__all__ = ["BillingPeriod", "add_months", "period_days", "split_period", "year_bounds"]
