"""Tests for first-month proration."""

from datetime import UTC, date, datetime
from decimal import Decimal

import pytest

from isp_billing.models.subscriber import ActivePeriodUnit
from isp_billing.services import proration


class TestCalculateProration:
    def test_twentieth_of_thirty_day_month(self):
        result = proration.calculate_proration(date(2025, 6, 20), Decimal("300000"))
        assert result.applied is True
        assert result.remaining_days == 11
        assert result.days_in_period == 30
        assert result.amount == Decimal("110000")
        assert result.note == "prorata 11/30 days"

    def test_first_of_month_is_not_prorated(self):
        result = proration.calculate_proration(date(2025, 7, 1), Decimal("300000"))
        assert result.applied is False
        assert result.remaining_days == 31
        assert result.days_in_period == 31
        assert result.amount == Decimal("300000")

    def test_every_later_day_charges_strictly_less(self):
        price = Decimal("250000")
        for day in range(2, 32):
            result = proration.calculate_proration(date(2025, 1, day), price)
            assert result.applied is True
            assert result.amount < price

    def test_amount_is_rounded_half_up_to_whole_unit(self):
        # 100000 / 31 * 30 = 96774.19...
        result = proration.calculate_proration(date(2025, 7, 2), 100000)
        assert result.amount == Decimal("96774")
        assert result.amount == result.amount.to_integral_value()

    def test_half_rounds_up(self):
        # 15 / 30 * 1 = 0.5
        result = proration.calculate_proration(date(2025, 6, 30), Decimal("15"))
        assert result.amount == Decimal("1")

    def test_leap_february(self):
        result = proration.calculate_proration(date(2024, 2, 15), Decimal("290000"))
        assert result.days_in_period == 29
        assert result.remaining_days == 15
        assert result.amount == Decimal("150000")

    def test_day_periods_are_never_prorated(self):
        result = proration.calculate_proration(
            date(2025, 6, 20), Decimal("50000"), ActivePeriodUnit.days, active_period=7
        )
        assert result.applied is False
        assert result.amount == Decimal("50000")
        assert result.remaining_days == 7
        assert result.days_in_period == 7

    def test_accepts_unit_as_string(self):
        result = proration.calculate_proration(date(2025, 6, 20), Decimal("300000"), "months")
        assert result.applied is True

    def test_datetime_is_read_in_business_timezone(self):
        # 2025-06-19 18:00 UTC is 2025-06-20 01:00 in Asia/Jakarta
        activation = datetime(2025, 6, 19, 18, 0, tzinfo=UTC)
        result = proration.calculate_proration(activation, Decimal("300000"))
        assert result.remaining_days == 11

    def test_negative_price_rejected(self):
        with pytest.raises(ValueError):
            proration.calculate_proration(date(2025, 6, 20), Decimal("-1"))


class TestPreviewProration:
    def test_preview_includes_note_when_applied(self):
        preview = proration.preview_proration(date(2025, 6, 20), Decimal("300000"))
        assert preview["applied"] is True
        assert preview["amount"] == Decimal("110000")
        assert preview["note"] == "prorata 11/30 days"
        assert preview["activation_date"] == date(2025, 6, 20)

    def test_preview_without_proration_has_no_note(self):
        preview = proration.preview_proration(date(2025, 6, 1), Decimal("300000"))
        assert preview["applied"] is False
        assert preview["note"] is None
