from flask import Blueprint, request, jsonify, g

from services import admission, slots as slot_service
from services.errors import ValidationError
from services.serializers import booking_to_dict, page_to_dict, slot_to_dict
from utils.audit import log_event
from utils.auth_context import login_required

booking_bp = Blueprint("booking", __name__)


def _optional_int(value, name: str):
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer")


# ---------- USERS: slot board ----------
@booking_bp.get("/slots")
@login_required
def list_slots():
    rows = slot_service.slot_board(
        g.user.id,
        date=request.args.get("date"),
        search=request.args.get("search"),
        status=request.args.get("status"),
    )
    return jsonify(total=len(rows), slots=[slot_to_dict(s, view) for s, view in rows]), 200


@booking_bp.get("/slots/all")
def list_all_slots():
    rows = slot_service.list_slots()
    return jsonify(total=len(rows), slots=[slot_to_dict(s) for s in rows]), 200


@booking_bp.get("/slots/available")
@login_required
def list_available_slots():
    rows = slot_service.bookable_slots(g.user.id, date=request.args.get("date"))
    return jsonify(total=len(rows), slots=[slot_to_dict(s, view) for s, view in rows]), 200


# ---------- USERS: bookings ----------
@booking_bp.post("/bookings")
@login_required
def create_booking():
    data = request.get_json(silent=True) or {}
    slot_id = _optional_int(data.get("slot_id"), "slot_id")
    if slot_id is None:
        raise ValidationError("slot_id required")

    booking = admission.create_booking(g.user.id, slot_id, notes=data.get("notes"))

    log_event("BOOKING_CREATE", user_id=g.user.id, entity="booking", entity_id=booking.id, metadata={"slot_id": slot_id})
    return jsonify(message="Booking created", booking=booking_to_dict(booking)), 201


@booking_bp.get("/bookings/me")
@login_required
def my_bookings():
    result = admission.list_user_bookings(
        g.user.id,
        page=request.args.get("page"),
        limit=request.args.get("limit"),
        date=request.args.get("date"),
        search=request.args.get("search"),
        status=request.args.get("status"),
    )
    return jsonify(page_to_dict(result, "bookings")), 200


@booking_bp.get("/bookings/<int:booking_id>")
@login_required
def get_booking(booking_id: int):
    booking = admission.get_booking(booking_id, g.user.id, is_admin=g.user.is_admin)
    return jsonify(booking_to_dict(booking)), 200


@booking_bp.patch("/bookings/<int:booking_id>")
@login_required
def update_booking(booking_id: int):
    data = request.get_json(silent=True) or {}
    booking = admission.update_booking(
        booking_id,
        g.user.id,
        slot_id=_optional_int(data.get("slot_id"), "slot_id"),
        notes=data.get("notes"),
    )

    log_event("BOOKING_UPDATE", user_id=g.user.id, entity="booking", entity_id=booking.id)
    return jsonify(message="Booking updated", booking=booking_to_dict(booking)), 200


@booking_bp.delete("/bookings/<int:booking_id>")
@login_required
def delete_booking(booking_id: int):
    admission.delete_booking(booking_id, g.user.id)

    log_event("BOOKING_DELETE", user_id=g.user.id, entity="booking", entity_id=booking_id)
    return jsonify(message="Booking deleted successfully"), 200
