"""Tests for monthly invoice generation."""

from datetime import date, datetime
from decimal import Decimal
from zoneinfo import ZoneInfo

from sqlalchemy.exc import SQLAlchemyError

from isp_billing.config import settings
from isp_billing.models.billing import Invoice, InvoiceKind, InvoiceStatus
from isp_billing.models.subscriber import (
    AddonItem,
    AddonItemType,
    BillingStatus,
    ServiceStatus,
    SubscriberStatus,
)
from isp_billing.services import billing_automation
from isp_billing.services.business_calendar import as_utc

JKT = ZoneInfo("Asia/Jakarta")
JUNE_RUN = datetime(2025, 6, 1, 0, 5, tzinfo=JKT)
JULY_RUN = datetime(2025, 7, 1, 0, 5, tzinfo=JKT)


def _invoices(db_session, subscriber):
    return (
        db_session.query(Invoice)
        .filter(Invoice.subscriber_id == subscriber.id)
        .order_by(Invoice.created_at.asc())
        .all()
    )


class TestGenerateMonthlyInvoices:
    def test_creates_pending_invoice_for_active_subscriber(self, db_session, subscriber):
        result = billing_automation.generate_monthly_invoices(db_session, run_at=JUNE_RUN)

        assert result["created_count"] == 1
        invoice = _invoices(db_session, subscriber)[0]
        assert invoice.kind == InvoiceKind.payment
        assert invoice.status == InvoiceStatus.pending
        assert invoice.amount == Decimal("300000.00")
        assert invoice.subscriber_name == subscriber.name
        assert as_utc(invoice.due_date) == datetime(2025, 6, 5, tzinfo=JKT)
        assert as_utc(invoice.period_from) == datetime(2025, 6, 1, tzinfo=JKT)
        assert as_utc(invoice.period_to) == datetime(2025, 6, 30, tzinfo=JKT)
        assert invoice.breakdown["package"]["name"] == "Home 20M"

        db_session.refresh(subscriber)
        assert subscriber.billing_status == BillingStatus.unpaid
        assert as_utc(subscriber.last_billing_date) == JUNE_RUN
        assert as_utc(subscriber.next_billing_date) == datetime(2025, 7, 1, tzinfo=JKT)

    def test_second_run_in_same_month_is_skipped(self, db_session, subscriber):
        billing_automation.generate_monthly_invoices(db_session, run_at=JUNE_RUN)
        later = datetime(2025, 6, 20, 9, 0, tzinfo=JKT)
        result = billing_automation.generate_monthly_invoices(db_session, run_at=later)

        assert result["created_count"] == 0
        assert result["skipped"] == [
            {"subscriber_id": subscriber.id, "reason": "already_billed"}
        ]
        assert len(_invoices(db_session, subscriber)) == 1

    def test_next_month_bills_again(self, db_session, subscriber):
        billing_automation.generate_monthly_invoices(db_session, run_at=JUNE_RUN)
        result = billing_automation.generate_monthly_invoices(db_session, run_at=JULY_RUN)

        assert result["created_count"] == 1
        assert len(_invoices(db_session, subscriber)) == 2

    def test_first_bill_is_prorated_once(self, db_session, make_subscriber):
        subscriber = make_subscriber(active_date=date(2025, 6, 20))
        june = datetime(2025, 6, 20, 10, 0, tzinfo=JKT)

        billing_automation.generate_monthly_invoices(db_session, run_at=june)
        first = _invoices(db_session, subscriber)[0]
        assert first.amount == Decimal("110000.00")
        assert first.breakdown["package"]["note"] == "prorata 11/30 days"

        db_session.refresh(subscriber)
        assert subscriber.proration_applied is True
        assert subscriber.proration_amount == Decimal("110000.00")

        billing_automation.generate_monthly_invoices(db_session, run_at=JULY_RUN)
        second = _invoices(db_session, subscriber)[1]
        assert second.amount == Decimal("300000.00")
        assert "note" not in second.breakdown["package"]

    def test_addons_and_one_time_items(self, db_session, subscriber):
        db_session.add_all(
            [
                AddonItem(
                    subscriber_id=subscriber.id,
                    item_name="Static IP",
                    item_type=AddonItemType.monthly,
                    price=Decimal("10000"),
                    quantity=2,
                ),
                AddonItem(
                    subscriber_id=subscriber.id,
                    item_name="Router rental deposit",
                    item_type=AddonItemType.one_time,
                    price=Decimal("50000"),
                ),
                AddonItem(
                    subscriber_id=subscriber.id,
                    item_name="Old promo",
                    item_type=AddonItemType.monthly,
                    price=Decimal("99999"),
                    is_active=False,
                ),
            ]
        )
        db_session.commit()

        billing_automation.generate_monthly_invoices(db_session, run_at=JUNE_RUN)
        june = _invoices(db_session, subscriber)[0]
        assert june.amount == Decimal("370000.00")
        assert [line["name"] for line in june.breakdown["addons"]] == ["Static IP"]
        assert june.breakdown["addons"][0]["total"] == "20000.00"
        assert [line["name"] for line in june.breakdown["one_time_items"]] == [
            "Router rental deposit"
        ]

        one_time = (
            db_session.query(AddonItem)
            .filter(AddonItem.item_type == AddonItemType.one_time)
            .one()
        )
        assert one_time.is_paid is True

        billing_automation.generate_monthly_invoices(db_session, run_at=JULY_RUN)
        july = _invoices(db_session, subscriber)[1]
        assert july.amount == Decimal("320000.00")
        assert july.breakdown["one_time_items"] == []

    def test_discount_never_drives_amount_negative(self, db_session, make_subscriber):
        subscriber = make_subscriber(package_price=Decimal("100000"), discount=Decimal("150000"))
        billing_automation.generate_monthly_invoices(db_session, run_at=JUNE_RUN)
        assert _invoices(db_session, subscriber)[0].amount == Decimal("0.00")

    def test_ineligible_subscribers_are_not_billed(self, db_session, make_subscriber):
        pending = make_subscriber(status=SubscriberStatus.pending)
        inactive = make_subscriber(service_status=ServiceStatus.inactive)
        terminated = make_subscriber(status=SubscriberStatus.terminated)

        result = billing_automation.generate_monthly_invoices(db_session, run_at=JUNE_RUN)

        assert result["created_count"] == 0
        for subscriber in (pending, inactive, terminated):
            assert _invoices(db_session, subscriber) == []

    def test_suspended_subscriber_stays_suspended(self, db_session, make_subscriber):
        subscriber = make_subscriber(billing_status=BillingStatus.suspended)
        billing_automation.generate_monthly_invoices(db_session, run_at=JUNE_RUN)
        db_session.refresh(subscriber)
        assert subscriber.billing_status == BillingStatus.suspended
        assert len(_invoices(db_session, subscriber)) == 1

    def test_paid_subscriber_becomes_unpaid(self, db_session, make_subscriber):
        subscriber = make_subscriber(billing_status=BillingStatus.paid)
        billing_automation.generate_monthly_invoices(db_session, run_at=JUNE_RUN)
        db_session.refresh(subscriber)
        assert subscriber.billing_status == BillingStatus.unpaid

    def test_failure_for_one_subscriber_does_not_stop_run(
        self, db_session, make_subscriber, monkeypatch
    ):
        broken = make_subscriber()
        healthy = make_subscriber()
        original = billing_automation._bill_subscriber

        def _flaky(db, subscriber, run_at):
            if subscriber.id == broken.id:
                raise SQLAlchemyError("database unavailable")
            return original(db, subscriber, run_at)

        monkeypatch.setattr(billing_automation, "_bill_subscriber", _flaky)
        result = billing_automation.generate_monthly_invoices(db_session, run_at=JUNE_RUN)

        assert result["created_count"] == 1
        assert result["failures"][0]["subscriber_id"] == broken.id
        assert "database unavailable" in result["failures"][0]["error"]
        assert _invoices(db_session, broken) == []
        assert len(_invoices(db_session, healthy)) == 1

    def test_lookup_failure_does_not_stop_run(self, db_session, make_subscriber, monkeypatch):
        broken = make_subscriber()
        healthy = make_subscriber()
        original = billing_automation.Invoices.find_cycle_invoice

        def _flaky(db, subscriber_id, kind, start, end):
            if subscriber_id == broken.id:
                raise SQLAlchemyError("connection reset")
            return original(db, subscriber_id, kind, start, end)

        monkeypatch.setattr(billing_automation.Invoices, "find_cycle_invoice", staticmethod(_flaky))
        result = billing_automation.generate_monthly_invoices(db_session, run_at=JUNE_RUN)

        assert result["created_count"] == 1
        assert result["failures"][0]["subscriber_id"] == broken.id
        assert len(_invoices(db_session, healthy)) == 1

    def test_overlapping_run_cannot_bill_period_twice(self, db_session, subscriber, monkeypatch):
        billing_automation.generate_monthly_invoices(db_session, run_at=JUNE_RUN)
        # A second run that missed the first run's invoice in its check.
        monkeypatch.setattr(
            billing_automation.Invoices,
            "find_cycle_invoice",
            staticmethod(lambda *args, **kwargs: None),
        )
        later = datetime(2025, 6, 15, 8, 0, tzinfo=JKT)
        result = billing_automation.generate_monthly_invoices(db_session, run_at=later)

        assert result["created_count"] == 0
        assert result["failures"] == []
        assert result["skipped"] == [
            {"subscriber_id": subscriber.id, "reason": "already_billed"}
        ]
        invoices = _invoices(db_session, subscriber)
        assert len(invoices) == 1
        assert invoices[0].billing_period == "2025-06"

    def test_breakdown_carries_billing_currency(self, db_session, subscriber):
        billing_automation.generate_monthly_invoices(db_session, run_at=JUNE_RUN)
        invoice = _invoices(db_session, subscriber)[0]
        assert invoice.breakdown["currency"] == settings.billing_currency
