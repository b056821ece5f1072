"""Pay period boundaries for each supported pay frequency.

All boundaries are inclusive calendar dates. The engine works in tenant-local
dates; converting timestamps into the tenant's timezone happens before a date
reaches this module.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, timedelta


@dataclass(frozen=True)
class PayPeriodConfig:
    """Pay cadence configuration."""

    frequency: str = "weekly"
    week_starts_on: int = 0  # 0 = Monday
    first_period_start: date | None = None  # fortnightly anchor
    first_period_end: int = 15  # semi-monthly split day
    monthly_starts_on: int = 1


@dataclass(frozen=True)
class PayPeriod:
    start: date
    end: date

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1


class PayPeriodConfigError(ValueError):
    """Raised when a frequency is missing configuration it depends on."""


def week_start(day: date, week_starts_on: int = 0) -> date:
    """First day of the week containing ``day``."""
    return day - timedelta(days=(day.weekday() - week_starts_on) % 7)


def weekly_period(day: date, week_starts_on: int = 0) -> PayPeriod:
    start = week_start(day, week_starts_on)
    return PayPeriod(start, start + timedelta(days=6))


def fortnightly_period(day: date, first_period_start: date | None) -> PayPeriod:
    if first_period_start is None:
        raise PayPeriodConfigError(
            "Fortnightly pay periods require a first period start date"
        )
    fortnights = (day - first_period_start).days // 14
    start = first_period_start + timedelta(days=fortnights * 14)
    return PayPeriod(start, start + timedelta(days=13))


def semi_monthly_period(day: date, first_period_end: int = 15) -> PayPeriod:
    last_day = calendar.monthrange(day.year, day.month)[1]
    split = min(first_period_end, last_day)
    if day.day <= split:
        return PayPeriod(day.replace(day=1), day.replace(day=split))
    return PayPeriod(day.replace(day=split + 1), day.replace(day=last_day))


def _clamped(year: int, month: int, day_of_month: int) -> date:
    return date(year, month, min(day_of_month, calendar.monthrange(year, month)[1]))


def _shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def monthly_period(day: date, monthly_starts_on: int = 1) -> PayPeriod:
    """Month-long period starting on a fixed day, clamped to month length."""
    start = _clamped(day.year, day.month, monthly_starts_on)
    if day < start:
        year, month = _shift_month(day.year, day.month, -1)
        start = _clamped(year, month, monthly_starts_on)
    year, month = _shift_month(start.year, start.month, 1)
    next_start = _clamped(year, month, monthly_starts_on)
    return PayPeriod(start, next_start - timedelta(days=1))


def pay_period_for(day: date, config: PayPeriodConfig) -> PayPeriod:
    """Return the pay period containing ``day``."""
    if config.frequency == "weekly":
        return weekly_period(day, config.week_starts_on)
    if config.frequency == "fortnightly":
        return fortnightly_period(day, config.first_period_start)
    if config.frequency == "semi_monthly":
        return semi_monthly_period(day, config.first_period_end)
    if config.frequency == "monthly":
        return monthly_period(day, config.monthly_starts_on)
    raise PayPeriodConfigError(f"Unsupported pay frequency: {config.frequency}")
