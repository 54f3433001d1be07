"""Business-calendar helpers.

Billing and suspension decisions are made on calendar dates in one business
timezone, while timestamps are stored in UTC. These helpers convert between
the two and compute the month boundaries and grace-period window.
"""

from __future__ import annotations

from calendar import monthrange
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from isp_billing.config import settings


def business_tz() -> ZoneInfo:
    return ZoneInfo(settings.business_timezone)


def as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def now_utc() -> datetime:
    return datetime.now(UTC)


def to_business(value: datetime) -> datetime:
    return as_utc(value).astimezone(business_tz())


def business_date(value: datetime | date) -> date:
    """Calendar date of value in the business timezone."""
    if isinstance(value, datetime):
        return to_business(value).date()
    return value


def business_midnight(day: date) -> datetime:
    """UTC instant of 00:00 on day in the business timezone."""
    return datetime.combine(day, time.min, tzinfo=business_tz()).astimezone(UTC)


def days_in_month(day: date) -> int:
    return monthrange(day.year, day.month)[1]


def first_of_month(day: date) -> date:
    return day.replace(day=1)


def last_of_month(day: date) -> date:
    return day.replace(day=days_in_month(day))


def first_of_next_month(day: date) -> date:
    return last_of_month(day) + timedelta(days=1)


@dataclass(frozen=True)
class DateWindow:
    start: datetime
    end: datetime

    def contains(self, value: datetime | None) -> bool:
        value = as_utc(value)
        return value is not None and self.start <= value <= self.end

    def as_dict(self) -> dict:
        return {"from": self.start, "to": self.end}


def month_window(run_at: datetime) -> DateWindow:
    """[first day 00:00, last day 23:59:59.999999] of run_at's business month, in UTC."""
    today = business_date(run_at)
    start = business_midnight(first_of_month(today))
    end = business_midnight(first_of_next_month(today)) - timedelta(microseconds=1)
    return DateWindow(start=start, end=end)


def grace_window(run_at: datetime) -> DateWindow:
    """Grace period of run_at's business month (default 1st 00:00 to 5th 23:59:59.999999)."""
    today = business_date(run_at)
    start_day = today.replace(day=settings.grace_period_start_day)
    end_day = today.replace(day=settings.grace_period_end_day)
    start = business_midnight(start_day)
    end = business_midnight(end_day + timedelta(days=1)) - timedelta(microseconds=1)
    return DateWindow(start=start, end=end)


def is_suspension_day(run_at: datetime) -> bool:
    return business_date(run_at).day == settings.suspension_day


def next_suspension_date(run_at: datetime) -> date:
    today = business_date(run_at)
    candidate = today.replace(day=settings.suspension_day)
    if candidate <= today:
        candidate = first_of_next_month(today).replace(day=settings.suspension_day)
    return candidate


def invoice_due_at(run_at: datetime) -> datetime:
    today = business_date(run_at)
    return business_midnight(today.replace(day=settings.invoice_due_day))
