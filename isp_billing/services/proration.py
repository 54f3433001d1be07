"""First-month proration.

A subscriber activated part way through a calendar month pays only for the
remaining days of that month, counting the activation day:

    amount = round_half_up(package_price / days_in_month * remaining_days)

Subscribers billed in day periods are never prorated.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, datetime
from decimal import Decimal

from isp_billing.models.subscriber import ActivePeriodUnit
from isp_billing.services.business_calendar import business_date, days_in_month
from isp_billing.services.common import round_currency, to_decimal


@dataclass(frozen=True)
class ProrationResult:
    applied: bool
    amount: Decimal
    remaining_days: int
    days_in_period: int

    @property
    def note(self) -> str:
        return f"prorata {self.remaining_days}/{self.days_in_period} days"

    def as_dict(self) -> dict:
        return asdict(self)


def calculate_proration(
    activation_date: date | datetime,
    package_price: Decimal | int | str,
    period_unit: ActivePeriodUnit | str = ActivePeriodUnit.months,
    active_period: int = 1,
) -> ProrationResult:
    price = to_decimal(package_price)
    if price < 0:
        raise ValueError("package_price must not be negative")
    unit = ActivePeriodUnit(period_unit)
    if unit == ActivePeriodUnit.days:
        period = max(int(active_period or 1), 1)
        return ProrationResult(
            applied=False,
            amount=round_currency(price),
            remaining_days=period,
            days_in_period=period,
        )

    day = business_date(activation_date)
    total_days = days_in_month(day)
    remaining = total_days - day.day + 1
    amount = round_currency(price / total_days * remaining)
    return ProrationResult(
        applied=remaining < total_days,
        amount=amount,
        remaining_days=remaining,
        days_in_period=total_days,
    )


def preview_proration(
    activation_date: date | datetime,
    package_price: Decimal | int | str,
    period_unit: ActivePeriodUnit | str = ActivePeriodUnit.months,
    active_period: int = 1,
) -> dict:
    result = calculate_proration(activation_date, package_price, period_unit, active_period)
    data = result.as_dict()
    data["activation_date"] = business_date(activation_date)
    data["package_price"] = round_currency(to_decimal(package_price))
    data["note"] = result.note if result.applied else None
    return data
