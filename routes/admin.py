from flask import Blueprint, jsonify, g, request

from models.user import ROLE_ADMIN, ROLE_USER
from security.rbac import require_roles
from services import listing, slots as slot_service, users as user_service
from services.reconciliation import set_booking_status
from services.serializers import booking_to_dict, page_to_dict, slot_to_dict, user_to_dict
from utils.audit import log_event

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


def _page_args():
    return {
        "page": request.args.get("page"),
        "limit": request.args.get("limit"),
    }


# ---------- bookings ----------
@admin_bp.get("/bookings")
@require_roles(ROLE_ADMIN)
def list_bookings():
    result = listing.admin_bookings(
        date=request.args.get("date"),
        search=request.args.get("search"),
        status=request.args.get("status"),
        **_page_args(),
    )
    return jsonify(page_to_dict(result, "bookings")), 200


@admin_bp.get("/bookings/confirmed")
@require_roles(ROLE_ADMIN)
def list_confirmed_bookings():
    result = listing.admin_confirmed_bookings(
        date=request.args.get("date"),
        search=request.args.get("search"),
        **_page_args(),
    )
    return jsonify(page_to_dict(result, "bookings")), 200


@admin_bp.patch("/bookings/<int:booking_id>/status")
@require_roles(ROLE_ADMIN)
def update_booking_status(booking_id: int):
    data = request.get_json(silent=True) or {}
    status = (data.get("status") or "").strip().lower()

    change = set_booking_status(booking_id, status)

    if change.changed:
        log_event(
            "BOOKING_STATUS_CHANGE",
            user_id=g.user.id,
            entity="booking",
            entity_id=booking_id,
            metadata={
                "from": change.previous_status,
                "to": change.booking.status,
                "cascade_cancelled": [b.id for b in change.cancelled],
            },
        )
    return jsonify(
        message=f"Booking status updated to {change.booking.status}",
        booking=booking_to_dict(change.booking),
        cancelled=[booking_to_dict(b) for b in change.cancelled],
        notifications=[d.to_dict() for d in change.deliveries],
    ), 200


# ---------- slots ----------
@admin_bp.get("/slots")
@require_roles(ROLE_ADMIN)
def list_slots():
    result = listing.admin_slots(
        date=request.args.get("date"),
        search=request.args.get("search"),
        status=request.args.get("status"),
        **_page_args(),
    )
    return jsonify(page_to_dict(result, "slots")), 200


@admin_bp.post("/slots")
@require_roles(ROLE_ADMIN)
def create_slot():
    data = request.get_json(silent=True) or {}
    slot = slot_service.create_slot(data.get("date"), data.get("time"))

    log_event("SLOT_CREATE", user_id=g.user.id, entity="slot", entity_id=slot.id)
    return jsonify(slot_to_dict(slot)), 201


@admin_bp.put("/slots/<int:slot_id>")
@require_roles(ROLE_ADMIN)
def update_slot(slot_id: int):
    data = request.get_json(silent=True) or {}
    slot = slot_service.update_slot(slot_id, date=data.get("date"), time=data.get("time"))

    log_event("SLOT_UPDATE", user_id=g.user.id, entity="slot", entity_id=slot.id)
    return jsonify(slot_to_dict(slot)), 200


@admin_bp.delete("/slots/<int:slot_id>")
@require_roles(ROLE_ADMIN)
def delete_slot(slot_id: int):
    slot_service.delete_slot(slot_id)

    log_event("SLOT_DELETE", user_id=g.user.id, entity="slot", entity_id=slot_id)
    return jsonify(message="Slot deleted"), 200


# ---------- users ----------
@admin_bp.get("/users")
@require_roles(ROLE_ADMIN)
def list_users():
    result = listing.admin_users(search=request.args.get("search"), **_page_args())
    return jsonify(page_to_dict(result, "users")), 200


@admin_bp.post("/users")
@require_roles(ROLE_ADMIN)
def create_user():
    data = request.get_json(silent=True) or {}
    user = user_service.create_user(
        data.get("name"),
        data.get("email"),
        data.get("password"),
        role=data.get("role") or ROLE_USER,
    )

    log_event("USER_CREATE", user_id=g.user.id, entity="user", entity_id=user.id)
    return jsonify(message="User created successfully", user=user_to_dict(user)), 201


@admin_bp.put("/users/<int:user_id>")
@require_roles(ROLE_ADMIN)
def update_user(user_id: int):
    data = request.get_json(silent=True) or {}
    user = user_service.update_user(
        user_id,
        name=data.get("name"),
        email=data.get("email"),
        password=data.get("password"),
    )

    log_event("USER_UPDATE", user_id=g.user.id, entity="user", entity_id=user.id)
    return jsonify(message="User updated successfully", user=user_to_dict(user)), 200


@admin_bp.delete("/users/<int:user_id>")
@require_roles(ROLE_ADMIN)
def delete_user(user_id: int):
    removed = user_service.delete_user(user_id)

    log_event("USER_DELETE", user_id=g.user.id, entity="user", entity_id=user_id, metadata={"bookings_removed": removed})
    return jsonify(message="User and related bookings deleted successfully"), 200
