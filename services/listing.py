"""
Admin listings over bookings, slots and users.

Each listing pulls joined rows from the database (pushing the cheap equality
filters down to SQL) and hands them to a ``Pipeline`` that owns the search,
computed fields, ordering and paging rules.
"""
from flask import current_app
from sqlalchemy import func

from models import db
from models.booking import Booking, STATUS_CONFIRMED
from models.slot import Slot
from models.user import User, ROLE_USER
from services.admission import BOOKING_PRIORITY, validate_status
from services.availability import SLOT_STATUSES, evaluate, group_by_slot
from services.clock import get_clock
from services.errors import ValidationError
from services.query import Pipeline, priority, validate_page

BOOKING_SEARCH_FIELDS = ["user.name", "user.email", "order_id", "slot.date", "slot.time"]


def _page_args(page, limit):
    return validate_page(
        page,
        limit,
        default_limit=current_app.config.get("DEFAULT_PAGE_SIZE", 20),
        max_limit=current_app.config.get("MAX_PAGE_SIZE", 100),
    )


def _strip(result, *names):
    for row in result.items:
        for name in names:
            row.pop(name, None)
        for key in ("created_at", "updated_at"):
            if row.get(key) is not None and hasattr(row[key], "isoformat"):
                row[key] = row[key].isoformat()
    return result


# ---------- bookings ----------

def admin_booking_rows(status=None, date=None) -> list:
    q = (
        db.session.query(Booking, Slot, User)
        .join(Slot, Booking.slot_id == Slot.id)
        .join(User, Booking.user_id == User.id)
    )
    if status:
        q = q.filter(Booking.status == status)
    if date:
        q = q.filter(Slot.date == date)

    return [
        {
            "id": b.id,
            "order_id": b.order_id,
            "status": b.status,
            "notes": b.notes or "",
            "created_at": b.created_at,
            "updated_at": b.updated_at,
            "slot": {"id": s.id, "date": s.date, "time": s.time},
            "user": {"id": u.id, "name": u.name, "email": u.email},
        }
        for b, s, u in q.all()
    ]


def admin_bookings_pipeline(status=None, date=None, search=None) -> Pipeline:
    return (
        Pipeline()
        .where("status", status)
        .where("slot.date", date)
        .search(search, BOOKING_SEARCH_FIELDS)
        .add_fields(status_priority=priority("status", BOOKING_PRIORITY))
        .sort("status_priority", "slot.date", "slot.time", "created_at", "id")
    )


def admin_bookings(page=1, limit=None, date=None, search=None, status=None):
    page, limit = _page_args(page, limit)
    status = validate_status(status)
    rows = admin_booking_rows(status=status, date=date)
    result = admin_bookings_pipeline(status=status, date=date, search=search).paginate(rows, page, limit)
    return _strip(result, "status_priority")


def admin_confirmed_pipeline(date=None, search=None) -> Pipeline:
    return (
        Pipeline()
        .where("status", STATUS_CONFIRMED)
        .where("slot.date", date)
        .search(search, BOOKING_SEARCH_FIELDS)
        .sort("slot.date", "slot.time", "created_at", "id")
    )


def admin_confirmed_bookings(page=1, limit=None, date=None, search=None):
    page, limit = _page_args(page, limit)
    rows = admin_booking_rows(status=STATUS_CONFIRMED, date=date)
    return _strip(admin_confirmed_pipeline(date=date, search=search).paginate(rows, page, limit))


# ---------- slots ----------

def admin_slot_rows(date=None, now=None) -> list:
    clock = get_clock()
    now = now or clock.now()
    q = Slot.query
    if date:
        q = q.filter(Slot.date == date)
    slots = q.all()

    slot_ids = [s.id for s in slots]
    bookings = Booking.query.filter(Booking.slot_id.in_(slot_ids)).all() if slot_ids else []
    grouped = group_by_slot(bookings)

    rows = []
    for s in slots:
        slot_bookings = grouped.get(s.id, [])
        view = evaluate(s, slot_bookings, now, tz=clock.tz)
        rows.append({
            "id": s.id,
            "date": s.date,
            "time": s.time,
            "booked": view.booked,
            "expired": view.expired,
            "status": view.status,
            "bookings": [
                {"id": b.id, "order_id": b.order_id, "user_id": b.user_id, "status": b.status}
                for b in slot_bookings
            ],
        })
    return rows


def admin_slots_pipeline(date=None, search=None, status=None) -> Pipeline:
    return (
        Pipeline()
        .where("date", date)
        .search(search, ["time"])
        .where("status", status)
        .add_fields(status_priority=priority("status", SLOT_STATUSES))
        .sort("status_priority", "date", "time", "id")
    )


def admin_slots(page=1, limit=None, date=None, search=None, status=None, now=None):
    page, limit = _page_args(page, limit)
    if status and status not in SLOT_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(SLOT_STATUSES)}")
    rows = admin_slot_rows(date=date, now=now)
    result = admin_slots_pipeline(date=date, search=search, status=status).paginate(rows, page, limit)
    return _strip(result, "status_priority")


# ---------- users ----------

def confirmed_counts() -> dict:
    rows = (
        db.session.query(Booking.user_id, func.count(Booking.id))
        .filter(Booking.status == STATUS_CONFIRMED)
        .group_by(Booking.user_id)
        .all()
    )
    return dict(rows)


def admin_users(page=1, limit=None, search=None):
    page, limit = _page_args(page, limit)
    counts = confirmed_counts()
    rows = [
        {
            "id": u.id,
            "name": u.name,
            "email": u.email,
            "role": u.role,
            "created_at": u.created_at,
            "booking_count": counts.get(u.id, 0),
        }
        for u in User.query.filter_by(role=ROLE_USER).all()
    ]
    pipeline = Pipeline().search(search, ["name", "email"]).sort("name", "id")
    return _strip(pipeline.paginate(rows, page, limit))
