"""
Admin status changes and the confirmation cascade.

Booking lifecycle as seen by an admin::

    pending --> confirmed   (terminal)
    pending --> cancelled   (terminal)

Confirming a booking extinguishes every competing claim on the same slot: all
other bookings on it that are not already cancelled become cancelled, so a slot
never carries a confirmed booking next to live pending ones.

A change runs in three phases:

1. plan     - load and validate, work out every booking that changes and
              every email that follows from it (no writes)
2. apply    - write all status changes in one transaction
3. dispatch - send the emails one by one; failures are logged and reported
              per recipient, they never undo phase 2
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from models import db
from models.booking import (
    Booking,
    BOOKING_STATUSES,
    STATUS_CANCELLED,
    STATUS_CONFIRMED,
)
from models.slot import Slot
from services.errors import (
    Conflict,
    InvalidState,
    ValidationError,
    booking_not_found,
    slot_not_found,
)
from services.notifier import (
    LABEL_CANCELLED,
    LABEL_CONFIRMED,
    Notice,
    dispatch_all,
    notice_for,
)
from services.store import commit

logger = logging.getLogger(__name__)


def slot_already_confirmed():
    return Conflict("Slot already confirmed", "SLOT_ALREADY_CONFIRMED")


@dataclass
class StatusPlan:
    booking: Booking
    slot: Slot
    previous_status: str
    target_status: str
    cascade: List[Booking] = field(default_factory=list)
    notices: List[Notice] = field(default_factory=list)

    @property
    def is_noop(self) -> bool:
        return self.previous_status == self.target_status


@dataclass
class StatusChange:
    booking: Booking
    previous_status: str
    cancelled: List[Booking] = field(default_factory=list)
    deliveries: list = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.previous_status != self.booking.status


def other_confirmed(booking: Booking) -> Optional[Booking]:
    return (
        Booking.query
        .filter(
            Booking.slot_id == booking.slot_id,
            Booking.status == STATUS_CONFIRMED,
            Booking.id != booking.id,
        )
        .first()
    )


def competing_bookings(booking: Booking) -> List[Booking]:
    return (
        Booking.query
        .filter(
            Booking.slot_id == booking.slot_id,
            Booking.id != booking.id,
            Booking.status != STATUS_CANCELLED,
        )
        .order_by(Booking.created_at.asc(), Booking.id.asc())
        .all()
    )


def plan_status_change(booking_id, target_status: str) -> StatusPlan:
    if target_status not in BOOKING_STATUSES:
        raise ValidationError(
            f"status must be one of: {', '.join(BOOKING_STATUSES)}", "INVALID_STATUS"
        )

    booking = db.session.get(Booking, booking_id)
    if booking is None:
        raise booking_not_found()
    slot = db.session.get(Slot, booking.slot_id)
    if slot is None:
        raise slot_not_found()

    # Checked before anything else: a second confirmation on a slot is a
    # conflict whatever state the target booking is in
    if target_status == STATUS_CONFIRMED and other_confirmed(booking) is not None:
        raise slot_already_confirmed()

    plan = StatusPlan(
        booking=booking,
        slot=slot,
        previous_status=booking.status,
        target_status=target_status,
    )
    if plan.is_noop:
        return plan

    if booking.status == STATUS_CONFIRMED:
        raise InvalidState("Confirmed booking cannot change status", "BOOKING_CONFIRMED")
    if booking.status == STATUS_CANCELLED:
        raise InvalidState("Cancelled booking cannot change status", "BOOKING_CANCELLED")

    if target_status == STATUS_CONFIRMED:
        plan.cascade = competing_bookings(booking)
        plan.notices = [notice_for(b, slot, b.user, LABEL_CANCELLED) for b in plan.cascade]
        plan.notices.append(notice_for(booking, slot, booking.user, LABEL_CONFIRMED))
    elif target_status == STATUS_CANCELLED:
        plan.notices = [notice_for(booking, slot, booking.user, LABEL_CANCELLED)]

    return plan


def apply_plan(plan: StatusPlan) -> None:
    if plan.is_noop:
        return

    plan.booking.status = plan.target_status
    for b in plan.cascade:
        b.status = STATUS_CANCELLED

    # uq_booking_slot_confirmed rejects a concurrent second confirmation
    commit(on_integrity_error=slot_already_confirmed)

    logger.info(
        "Booking %s: %s -> %s (cascade cancelled %d)",
        plan.booking.order_id, plan.previous_status, plan.target_status, len(plan.cascade),
    )


def set_booking_status(booking_id, target_status: str, sender=None) -> StatusChange:
    plan = plan_status_change(booking_id, target_status)
    apply_plan(plan)
    deliveries = dispatch_all(plan.notices, sender) if plan.notices else []

    failed = [d for d in deliveries if not d.delivered]
    if failed:
        logger.warning(
            "Booking %s: %d of %d notifications not delivered",
            plan.booking.order_id, len(failed), len(deliveries),
        )

    return StatusChange(
        booking=plan.booking,
        previous_status=plan.previous_status,
        cancelled=list(plan.cascade),
        deliveries=deliveries,
    )
