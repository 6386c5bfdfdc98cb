"""
Slot availability evaluation.

A slot's status is derived on every read, never stored:

* ``expired``   - its date/time in the reference timezone is already past
* ``booked``    - some booking on it is confirmed (in a viewer-scoped read,
                  confirmed by somebody other than the viewer)
* ``available`` - neither of the above

Expired wins over booked, booked wins over available. Everything in this
module is a pure function of its arguments; callers pass "now" in.
"""
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, tzinfo
from zoneinfo import ZoneInfo

from models.booking import STATUS_CONFIRMED
from services.clock import DEFAULT_TIMEZONE
from services.errors import ValidationError

SLOT_AVAILABLE = "available"
SLOT_BOOKED = "booked"
SLOT_EXPIRED = "expired"
SLOT_STATUSES = (SLOT_AVAILABLE, SLOT_BOOKED, SLOT_EXPIRED)

DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M"


@dataclass(frozen=True)
class SlotAvailability:
    status: str
    can_book: bool
    booked: bool
    expired: bool
    booked_by_viewer: bool = False


def parse_slot_date(value: str):
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except (TypeError, ValueError):
        raise ValidationError("Invalid date. Use YYYY-MM-DD")


def parse_slot_time(value: str):
    try:
        return datetime.strptime(value, TIME_FORMAT).time()
    except (TypeError, ValueError):
        raise ValidationError("Invalid time. Use HH:mm")


def slot_starts_at(date_str: str, time_str: str, tz: tzinfo) -> datetime:
    day = parse_slot_date(date_str)
    start = parse_slot_time(time_str)
    return datetime.combine(day, start, tzinfo=tz)


def is_expired(slot, now: datetime, tz: tzinfo = None) -> bool:
    if now.tzinfo is None or now.utcoffset() is None:
        raise ValueError("now must be timezone-aware")
    start = slot_starts_at(slot.date, slot.time, tz or ZoneInfo(DEFAULT_TIMEZONE))
    return start < now


def evaluate(slot, bookings, now: datetime, viewer_user_id=None, tz: tzinfo = None) -> SlotAvailability:
    """
    Compute the status of ``slot`` given the bookings that reference it.

    Without a viewer, the slot is booked when any booking is confirmed. With a
    viewer, only other users' confirmed bookings make it booked, and a slot the
    viewer already holds a booking on (any status) is never bookable again.
    """
    bookings = [b for b in bookings if b.slot_id == slot.id]
    expired = is_expired(slot, now, tz)

    if viewer_user_id is None:
        booked = any(b.status == STATUS_CONFIRMED for b in bookings)
        mine = False
    else:
        booked = any(
            b.status == STATUS_CONFIRMED and b.user_id != viewer_user_id
            for b in bookings
        )
        mine = any(b.user_id == viewer_user_id for b in bookings)

    if expired:
        status = SLOT_EXPIRED
    elif booked:
        status = SLOT_BOOKED
    else:
        status = SLOT_AVAILABLE

    return SlotAvailability(
        status=status,
        can_book=status == SLOT_AVAILABLE and not mine,
        booked=booked,
        expired=expired,
        booked_by_viewer=mine,
    )


def group_by_slot(bookings) -> dict:
    grouped = defaultdict(list)
    for b in bookings:
        grouped[b.slot_id].append(b)
    return grouped


def available_for_user(slots, bookings, now: datetime, user_id, tz: tzinfo = None) -> list:
    """Slots the user can book right now: not theirs, not confirmed by anyone, not expired."""
    grouped = group_by_slot(bookings)
    out = []
    for slot in slots:
        slot_bookings = grouped.get(slot.id, [])
        if any(b.status == STATUS_CONFIRMED for b in slot_bookings):
            continue
        view = evaluate(slot, slot_bookings, now, viewer_user_id=user_id, tz=tz)
        if view.can_book:
            out.append((slot, view))
    out.sort(key=lambda pair: (pair[0].date, pair[0].time))
    return out


def user_slot_board(slots, bookings, now: datetime, user_id, status=None, tz: tzinfo = None) -> list:
    """
    The user's slot board: upcoming slots they have not booked yet, each marked
    available or booked. Available slots come first, then by date and time.
    """
    grouped = group_by_slot(bookings)
    out = []
    for slot in slots:
        view = evaluate(slot, grouped.get(slot.id, []), now, viewer_user_id=user_id, tz=tz)
        if view.booked_by_viewer or view.expired:
            continue
        if status and view.status != status:
            continue
        out.append((slot, view))

    out.sort(key=lambda pair: (pair[1].status != SLOT_AVAILABLE, pair[0].date, pair[0].time))
    return out
