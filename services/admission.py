"""
Booking admission: what an end user may do with their own bookings.

Users create pending bookings, and may edit or delete them while nobody has
confirmed them. Status changes beyond that belong to ``reconciliation``.
"""
import logging
import secrets
import time

from flask import current_app

from models import db
from models.booking import (
    Booking,
    BOOKING_STATUSES,
    STATUS_CANCELLED,
    STATUS_CONFIRMED,
    STATUS_PENDING,
)
from models.slot import Slot
from services.errors import (
    Conflict,
    Forbidden,
    InvalidState,
    ValidationError,
    booking_not_found,
    duplicate_booking,
    slot_not_found,
)
from services.query import Pipeline, priority, validate_page
from services.store import commit

logger = logging.getLogger(__name__)

BOOKING_PRIORITY = (STATUS_PENDING, STATUS_CONFIRMED, STATUS_CANCELLED)


def generate_order_id(prefix: str = None) -> str:
    if prefix is None:
        prefix = current_app.config.get("ORDER_ID_PREFIX", "ORD-")
    # millisecond stamp keeps ids sortable, the suffix keeps them unique
    return f"{prefix}{int(time.time() * 1000)}-{secrets.token_hex(3).upper()}"


def _slot_or_404(slot_id) -> Slot:
    slot = db.session.get(Slot, slot_id) if slot_id is not None else None
    if slot is None:
        raise slot_not_found()
    return slot


def _owned_booking(booking_id, requestor_id) -> Booking:
    booking = db.session.get(Booking, booking_id)
    if booking is None:
        raise booking_not_found()
    if booking.user_id != requestor_id:
        raise Forbidden()
    return booking


def _ensure_no_booking(user_id, slot_id):
    if Booking.query.filter_by(user_id=user_id, slot_id=slot_id).first() is not None:
        raise duplicate_booking()


def _ensure_not_approved(slot_id):
    approved = Booking.query.filter_by(slot_id=slot_id, status=STATUS_CONFIRMED).first()
    if approved is not None:
        raise Conflict("Slot already approved", "SLOT_ALREADY_APPROVED")


def validate_status(status):
    if status and status not in BOOKING_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(BOOKING_STATUSES)}")
    return status or None


def get_booking(booking_id, requestor_id, is_admin: bool = False) -> Booking:
    booking = db.session.get(Booking, booking_id)
    if booking is None:
        raise booking_not_found()
    if not is_admin and booking.user_id != requestor_id:
        raise Forbidden()
    return booking


def create_booking(user_id, slot_id, notes=None) -> Booking:
    _slot_or_404(slot_id)
    # Existence, not status: a cancelled claim still blocks re-booking the slot
    _ensure_no_booking(user_id, slot_id)
    _ensure_not_approved(slot_id)

    booking = Booking(
        user_id=user_id,
        slot_id=slot_id,
        order_id=generate_order_id(),
        status=STATUS_PENDING,
        notes=notes or "",
    )
    db.session.add(booking)
    # uq_booking_slot_user catches a concurrent duplicate here
    commit(on_integrity_error=duplicate_booking)

    logger.info("Booking %s created by user %s on slot %s", booking.order_id, user_id, slot_id)
    return booking


def update_booking(booking_id, requestor_id, slot_id=None, notes=None) -> Booking:
    booking = _owned_booking(booking_id, requestor_id)
    if booking.status == STATUS_CONFIRMED:
        raise InvalidState("Cannot update confirmed booking", "BOOKING_CONFIRMED")
    if booking.status == STATUS_CANCELLED:
        raise InvalidState("Cannot update cancelled booking", "BOOKING_CANCELLED")

    if slot_id is not None and slot_id != booking.slot_id:
        _slot_or_404(slot_id)
        _ensure_no_booking(booking.user_id, slot_id)
        _ensure_not_approved(slot_id)
        booking.slot_id = slot_id

    if notes is not None:
        booking.notes = notes

    commit(on_integrity_error=duplicate_booking)
    logger.info("Booking %s updated by user %s", booking.order_id, requestor_id)
    return booking


def delete_booking(booking_id, requestor_id) -> None:
    booking = _owned_booking(booking_id, requestor_id)
    if booking.status == STATUS_CONFIRMED:
        raise InvalidState("Cannot delete confirmed booking", "BOOKING_CONFIRMED")

    order_id = booking.order_id
    db.session.delete(booking)
    commit()
    logger.info("Booking %s deleted by user %s", order_id, requestor_id)


def user_booking_rows(user_id) -> list:
    rows = (
        db.session.query(Booking, Slot)
        .join(Slot, Booking.slot_id == Slot.id)
        .filter(Booking.user_id == user_id)
        .order_by(Booking.created_at.asc(), Booking.id.asc())
        .all()
    )
    return [
        {
            "id": b.id,
            "order_id": b.order_id,
            "slot_id": s.id,
            "date": s.date,
            "time": s.time,
            "status": b.status,
            "has_book": b.status == STATUS_CONFIRMED,
            "cancelled": b.status == STATUS_CANCELLED,
            "notes": b.notes or "",
            "created_at": b.created_at.isoformat() if b.created_at else None,
        }
        for b, s in rows
    ]


def user_bookings_pipeline(date=None, search=None, status=None) -> Pipeline:
    # Ordered by status only; ties keep creation order
    return (
        Pipeline()
        .where("date", date)
        .search(search, ["time"])
        .where("status", validate_status(status))
        .add_fields(status_priority=priority("status", BOOKING_PRIORITY))
        .sort("status_priority")
    )


def list_user_bookings(user_id, page=1, limit=None, date=None, search=None, status=None):
    page, limit = validate_page(
        page,
        limit,
        default_limit=current_app.config.get("DEFAULT_PAGE_SIZE", 20),
        max_limit=current_app.config.get("MAX_PAGE_SIZE", 100),
    )
    pipeline = user_bookings_pipeline(date=date, search=search, status=status)
    result = pipeline.paginate(user_booking_rows(user_id), page=page, limit=limit)
    for row in result.items:
        row.pop("status_priority", None)
    return result
