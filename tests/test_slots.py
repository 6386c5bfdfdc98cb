from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from models import db
from models.booking import Booking, STATUS_CANCELLED, STATUS_CONFIRMED
from models.slot import Slot
from services import listing, slots
from services.errors import Conflict, InvalidState, NotFound, ValidationError


def test_create_slot_normalizes_values(app):
    slot = slots.create_slot(" 2025-01-12 ", "7:05")
    assert (slot.date, slot.time) == ("2025-01-12", "07:05")


@pytest.mark.parametrize("date,time", [
    ("2025-13-01", "10:00"),
    ("2025-01-12", "25:00"),
    (None, "10:00"),
    ("2025-01-12", ""),
])
def test_create_slot_rejects_bad_values(app, date, time):
    with pytest.raises(ValidationError):
        slots.create_slot(date, time)


def test_duplicate_slot_is_conflict(make_slot):
    make_slot(date="2025-01-12", time="10:00")
    with pytest.raises(Conflict):
        slots.create_slot("2025-01-12", "10:00")


def test_slot_with_confirmed_booking_is_locked(make_user, make_slot, make_booking):
    slot = make_slot()
    make_booking(make_user(), slot, status=STATUS_CONFIRMED)

    with pytest.raises(InvalidState) as exc:
        slots.update_slot(slot.id, time="12:00")
    assert exc.value.code == "SLOT_LOCKED"
    with pytest.raises(InvalidState):
        slots.delete_slot(slot.id)


def test_delete_slot_removes_its_unconfirmed_bookings(make_user, make_slot, make_booking):
    slot = make_slot()
    make_booking(make_user(), slot)
    make_booking(make_user(), slot, status=STATUS_CANCELLED)
    slot_id = slot.id

    slots.delete_slot(slot_id)

    assert db.session.get(Slot, slot_id) is None
    assert Booking.query.filter_by(slot_id=slot_id).count() == 0


def test_update_missing_slot(app):
    with pytest.raises(NotFound):
        slots.update_slot(123, time="10:00")


def test_admin_slot_listing_derives_status(make_user, make_slot, make_booking):
    past = make_slot(date="2025-01-09", time="10:00")
    booked = make_slot(date="2025-01-11", time="10:00")
    open_slot = make_slot(date="2025-01-12", time="10:00")
    make_booking(make_user(), booked, status=STATUS_CONFIRMED)
    make_booking(make_user(), open_slot)

    result = listing.admin_slots()
    assert [(r["id"], r["status"]) for r in result.items] == [
        (open_slot.id, "available"),
        (booked.id, "booked"),
        (past.id, "expired"),
    ]
    assert result.items[1]["booked"] is True and result.items[1]["expired"] is False
    assert len(result.items[0]["bookings"]) == 1

    assert listing.admin_slots(status="expired").total == 1
    assert listing.admin_slots(date="2025-01-11").items[0]["id"] == booked.id
    with pytest.raises(ValidationError):
        listing.admin_slots(status="free")


def test_admin_booking_listing_counts_filtered_rows(make_user, make_slot, make_booking):
    alice = make_user(name="alice")
    bob = make_user(name="bob")
    s1 = make_slot(date="2025-01-11", time="10:00")
    s2 = make_slot(date="2025-01-12", time="10:00")
    make_booking(alice, s1)
    make_booking(bob, s1)
    make_booking(alice, s2, status=STATUS_CONFIRMED)

    assert listing.admin_bookings().total == 3
    assert listing.admin_bookings(search="ALICE").total == 2
    assert listing.admin_bookings(date="2025-01-12", status="confirmed").total == 1

    page = listing.admin_bookings(limit=1, page=2)
    assert page.total == 3
    assert page.items[0]["user"]["name"] == "bob"
    assert isinstance(page.items[0]["created_at"], str)


def test_admin_slot_listing_reads_slot_times_in_reference_zone(make_slot):
    slot = make_slot(date="2025-01-11", time="01:00")
    now_utc = datetime(2025, 1, 10, 20, 0, tzinfo=ZoneInfo("UTC"))

    row = listing.admin_slots(now=now_utc).items[0]
    assert row["id"] == slot.id
    assert row["status"] == "expired"
    assert slots.bookable_slots(user_id=1, now=now_utc) == []
