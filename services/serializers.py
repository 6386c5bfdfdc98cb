def _iso(value):
    return value.isoformat() if value else None


def slot_to_dict(slot, availability=None) -> dict:
    out = {
        "id": slot.id,
        "date": slot.date,
        "time": slot.time,
        "created_at": _iso(slot.created_at),
        "updated_at": _iso(slot.updated_at),
    }
    if availability is not None:
        out["status"] = availability.status
        out["can_book"] = availability.can_book
    return out


def booking_to_dict(booking) -> dict:
    return {
        "id": booking.id,
        "order_id": booking.order_id,
        "slot_id": booking.slot_id,
        "user_id": booking.user_id,
        "status": booking.status,
        "notes": booking.notes or "",
        "created_at": _iso(booking.created_at),
        "updated_at": _iso(booking.updated_at),
    }


def user_to_dict(user) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "created_at": _iso(user.created_at),
    }


def page_to_dict(result, key: str) -> dict:
    return {
        "total": result.total,
        "page": result.page,
        "limit": result.limit,
        "pages": result.pages,
        key: result.items,
    }
