import logging

from models import db
from models.booking import Booking, STATUS_CONFIRMED
from models.slot import Slot
from services.availability import (
    DATE_FORMAT,
    TIME_FORMAT,
    available_for_user,
    parse_slot_date,
    parse_slot_time,
    user_slot_board,
    SLOT_STATUSES,
)
from services.clock import get_clock
from services.errors import Conflict, InvalidState, ValidationError, slot_not_found
from services.store import commit

logger = logging.getLogger(__name__)


def _slot_exists():
    return Conflict("Slot already exists for that date and time", "SLOT_EXISTS")


def normalize_date(value) -> str:
    return parse_slot_date((value or "").strip()).strftime(DATE_FORMAT)


def normalize_time(value) -> str:
    return parse_slot_time((value or "").strip()).strftime(TIME_FORMAT)


def get_slot(slot_id) -> Slot:
    slot = db.session.get(Slot, slot_id)
    if slot is None:
        raise slot_not_found()
    return slot


def ensure_unlocked(slot: Slot):
    """A slot with a confirmed booking is frozen: no edits, no deletion."""
    confirmed = Booking.query.filter_by(slot_id=slot.id, status=STATUS_CONFIRMED).first()
    if confirmed is not None:
        raise InvalidState("Slot has a confirmed booking", "SLOT_LOCKED")


def create_slot(date, time) -> Slot:
    slot = Slot(date=normalize_date(date), time=normalize_time(time))
    db.session.add(slot)
    commit(on_integrity_error=_slot_exists)
    logger.info("Slot %s %s created", slot.date, slot.time)
    return slot


def update_slot(slot_id, date=None, time=None) -> Slot:
    slot = get_slot(slot_id)
    ensure_unlocked(slot)
    if date is not None:
        slot.date = normalize_date(date)
    if time is not None:
        slot.time = normalize_time(time)
    commit(on_integrity_error=_slot_exists)
    logger.info("Slot %s updated to %s %s", slot.id, slot.date, slot.time)
    return slot


def delete_slot(slot_id) -> None:
    slot = get_slot(slot_id)
    ensure_unlocked(slot)
    # remaining bookings are pending or cancelled claims and go with the slot
    removed = len(slot.bookings)
    db.session.delete(slot)
    commit()
    logger.info("Slot %s deleted with %d bookings", slot_id, removed)


def list_slots() -> list:
    return Slot.query.order_by(Slot.date, Slot.time).all()


def _slots_with_bookings(date=None, search=None):
    q = Slot.query
    if date:
        q = q.filter(Slot.date == date)
    slots = q.all()
    search = (search or "").strip().lower()
    if search:
        slots = [s for s in slots if search in s.time.lower()]
    slot_ids = [s.id for s in slots]
    bookings = Booking.query.filter(Booking.slot_id.in_(slot_ids)).all() if slot_ids else []
    return slots, bookings


def slot_board(user_id, date=None, search=None, status=None, now=None) -> list:
    if status and status not in SLOT_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(SLOT_STATUSES)}")
    slots, bookings = _slots_with_bookings(date=date, search=search)
    clock = get_clock()
    return user_slot_board(slots, bookings, now or clock.now(), user_id, status=status, tz=clock.tz)


def bookable_slots(user_id, date=None, now=None) -> list:
    slots, bookings = _slots_with_bookings(date=date)
    clock = get_clock()
    return available_for_user(slots, bookings, now or clock.now(), user_id, tz=clock.tz)
