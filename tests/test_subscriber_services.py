"""Tests for subscriber and add-on item services."""

from decimal import Decimal

import pytest
from fastapi import HTTPException

from isp_billing.models.network import Odp
from isp_billing.models.subscriber import (
    AddonItemType,
    BillingStatus,
    InstallationStatus,
    ServiceStatus,
    Subscriber,
)
from isp_billing.schemas.subscriber import (
    AddonItemCreate,
    AddonItemUpdate,
    SubscriberCreate,
    SubscriberUpdate,
)
from isp_billing.services import subscriber as subscriber_service
from isp_billing.services.billing_errors import (
    CapacityExceededError,
    SubscriberNotFoundError,
)
from isp_billing.services.billing_state import InvalidTransitionError


def _full_odp(db_session):
    odp = Odp(name="ODP-FULL", total_slots=1, used_slots=1)
    db_session.add(odp)
    db_session.commit()
    db_session.refresh(odp)
    return odp


class TestSubscriberNumbers:
    def test_numbers_are_sequential(self, db_session):
        first = subscriber_service.subscribers.create(
            db_session, SubscriberCreate(name="Ani")
        )
        second = subscriber_service.subscribers.create(
            db_session, SubscriberCreate(name="Budi")
        )
        assert first.subscriber_number == "LTS0001"
        assert second.subscriber_number == "LTS0002"

    def test_gaps_do_not_cause_reuse(self, db_session):
        db_session.add(Subscriber(subscriber_number="LTS0007", name="Legacy"))
        db_session.commit()
        assert subscriber_service.next_subscriber_number(db_session) == "LTS0008"


class TestSubscribers:
    def test_create_with_odp_takes_slot(self, db_session, router, odp):
        subscriber = subscriber_service.subscribers.create(
            db_session,
            SubscriberCreate(
                name="Citra",
                package_price=Decimal("250000"),
                router_id=router.id,
                odp_id=odp.id,
            ),
        )
        db_session.refresh(odp)
        assert subscriber.odp_id == odp.id
        assert odp.used_slots == 1
        assert subscriber.billing_status == BillingStatus.unpaid
        assert subscriber.service_status == ServiceStatus.inactive

    def test_create_on_full_odp_is_rejected(self, db_session):
        full = _full_odp(db_session)
        with pytest.raises(CapacityExceededError):
            subscriber_service.subscribers.create(
                db_session, SubscriberCreate(name="Dewi", odp_id=full.id)
            )
        assert db_session.query(Subscriber).filter(Subscriber.name == "Dewi").count() == 0

    def test_create_with_unknown_router(self, db_session, odp):
        with pytest.raises(HTTPException) as exc_info:
            subscriber_service.subscribers.create(
                db_session, SubscriberCreate(name="Eka", router_id=odp.id)
            )
        assert exc_info.value.status_code == 400

    def test_installed_subscriber_gets_active_service(self, db_session):
        subscriber = subscriber_service.subscribers.create(
            db_session,
            SubscriberCreate(name="Fajar", installation_status=InstallationStatus.installed),
        )
        assert subscriber.service_status == ServiceStatus.active

    def test_update_moves_odp(self, db_session, odp):
        other = Odp(name="ODP-B2", total_slots=8)
        db_session.add(other)
        db_session.commit()
        subscriber = subscriber_service.subscribers.create(
            db_session, SubscriberCreate(name="Gita", odp_id=odp.id)
        )

        subscriber_service.subscribers.update(
            db_session, str(subscriber.id), SubscriberUpdate(odp_id=other.id)
        )

        db_session.refresh(odp)
        db_session.refresh(other)
        assert odp.used_slots == 0
        assert other.used_slots == 1

    def test_update_to_full_odp_keeps_old_slot(self, db_session, odp):
        subscriber = subscriber_service.subscribers.create(
            db_session, SubscriberCreate(name="Hadi", odp_id=odp.id)
        )
        full = _full_odp(db_session)

        with pytest.raises(CapacityExceededError):
            subscriber_service.subscribers.update(
                db_session, str(subscriber.id), SubscriberUpdate(odp_id=full.id)
            )

        db_session.refresh(subscriber)
        db_session.refresh(odp)
        assert subscriber.odp_id == odp.id
        assert odp.used_slots == 1

    def test_update_clearing_odp_releases_slot(self, db_session, odp):
        subscriber = subscriber_service.subscribers.create(
            db_session, SubscriberCreate(name="Indah", odp_id=odp.id)
        )
        subscriber_service.subscribers.update(
            db_session, str(subscriber.id), SubscriberUpdate(odp_id=None)
        )
        db_session.refresh(odp)
        assert odp.used_slots == 0

    def test_update_rejects_suspended_to_unpaid(self, db_session, make_subscriber):
        subscriber = make_subscriber(billing_status=BillingStatus.suspended)
        with pytest.raises(InvalidTransitionError):
            subscriber_service.subscribers.update(
                db_session,
                str(subscriber.id),
                SubscriberUpdate(billing_status=BillingStatus.unpaid),
            )

    def test_delete_releases_slot(self, db_session, odp):
        subscriber = subscriber_service.subscribers.create(
            db_session, SubscriberCreate(name="Joko", odp_id=odp.id)
        )
        subscriber_service.subscribers.delete(db_session, str(subscriber.id))
        db_session.refresh(odp)
        assert odp.used_slots == 0
        assert db_session.get(Subscriber, subscriber.id) is None

    def test_list_filters_by_search(self, db_session, make_subscriber):
        make_subscriber(name="Kartika Sari")
        make_subscriber(name="Lukman")
        results = subscriber_service.subscribers.list(
            db_session, None, None, "kartika", "created_at", "asc", 50, 0
        )
        assert [s.name for s in results] == ["Kartika Sari"]


class TestFindByReference:
    def test_by_id(self, db_session, subscriber):
        assert subscriber_service.find_by_reference(db_session, str(subscriber.id)) is subscriber

    def test_by_name_fragment_is_case_insensitive(self, db_session, make_subscriber):
        target = make_subscriber(name="Maya Lestari")
        assert subscriber_service.find_by_reference(db_session, "LESTARI").id == target.id

    def test_unknown_reference(self, db_session, subscriber):
        with pytest.raises(SubscriberNotFoundError):
            subscriber_service.find_by_reference(db_session, "no such person")

    def test_blank_reference(self, db_session):
        with pytest.raises(SubscriberNotFoundError):
            subscriber_service.find_by_reference(db_session, "  ")


class TestAddonItems:
    def test_create_list_and_deactivate(self, db_session, subscriber):
        addon = subscriber_service.addon_items.create(
            db_session,
            str(subscriber.id),
            AddonItemCreate(item_name="Static IP", price=Decimal("10000"), quantity=2),
        )
        assert addon.item_type == AddonItemType.monthly
        assert addon.is_paid is False

        listed = subscriber_service.addon_items.list(
            db_session, str(subscriber.id), None, None, 50, 0
        )
        assert [item.id for item in listed] == [addon.id]

        subscriber_service.addon_items.deactivate(db_session, str(addon.id))
        assert subscriber_service.addon_items.list(
            db_session, str(subscriber.id), None, None, 50, 0
        ) == []
        inactive = subscriber_service.addon_items.list(
            db_session, str(subscriber.id), None, False, 50, 0
        )
        assert [item.id for item in inactive] == [addon.id]

    def test_update(self, db_session, subscriber):
        addon = subscriber_service.addon_items.create(
            db_session, str(subscriber.id), AddonItemCreate(item_name="Mesh node")
        )
        updated = subscriber_service.addon_items.update(
            db_session, str(addon.id), AddonItemUpdate(price=Decimal("35000"))
        )
        assert updated.price == Decimal("35000")

    def test_unknown_subscriber(self, db_session, odp):
        with pytest.raises(HTTPException) as exc_info:
            subscriber_service.addon_items.create(
                db_session, str(odp.id), AddonItemCreate(item_name="Static IP")
            )
        assert exc_info.value.status_code == 404
