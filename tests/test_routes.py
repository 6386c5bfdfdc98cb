from models.booking import STATUS_CANCELLED, STATUS_CONFIRMED
from models.user import ROLE_ADMIN


def test_health(client):
    assert client.get("/health").get_json() == {"status": "ok"}


def test_register_login_me_logout(client):
    resp = client.post("/auth/register", json={"name": "dara", "email": "Dara@Example.com", "password": "pw-123456"})
    assert resp.status_code == 201
    assert resp.get_json()["user"]["email"] == "dara@example.com"

    dup = client.post("/auth/register", json={"name": "dara", "email": "other@example.com", "password": "x"})
    assert dup.status_code == 409
    assert dup.get_json()["code"] == "NAME_EXISTS"

    bad = client.post("/auth/login", json={"email": "dara@example.com", "password": "nope"})
    assert bad.status_code == 401

    assert client.post("/auth/login", json={"email": "dara@example.com", "password": "pw-123456"}).status_code == 200
    assert client.get("/auth/me").get_json()["name"] == "dara"

    assert client.post("/auth/logout").status_code == 200
    assert client.get("/auth/me").status_code == 401


def test_booking_endpoints_require_login(client):
    assert client.get("/bookings/me").status_code == 401
    assert client.post("/bookings", json={"slot_id": 1}).status_code == 401


def test_user_books_then_duplicate_is_rejected(login, make_user, make_slot):
    user = make_user()
    slot = make_slot(date="2025-01-10", time="10:00")
    client = login(user)

    first = client.post("/bookings", json={"slot_id": slot.id, "notes": "hi"})
    assert first.status_code == 201
    assert first.get_json()["booking"]["status"] == "pending"

    second = client.post("/bookings", json={"slot_id": slot.id})
    assert second.status_code == 409
    assert second.get_json() == {"error": "Duplicate booking", "code": "DUPLICATE_BOOKING", "kind": "conflict"}


def test_create_booking_validates_input(login, make_user):
    client = login(make_user())
    assert client.post("/bookings", json={}).get_json()["code"] == "VALIDATION_ERROR"
    assert client.post("/bookings", json={"slot_id": "abc"}).status_code == 400
    assert client.post("/bookings", json={"slot_id": 42}).get_json()["code"] == "SLOT_NOT_FOUND"


def test_edit_and_delete_confirmed_booking_fail(login, make_user, make_slot, make_booking):
    user = make_user()
    booking = make_booking(user, make_slot(), status=STATUS_CONFIRMED)
    client = login(user)

    resp = client.patch(f"/bookings/{booking.id}", json={"notes": "x"})
    assert resp.status_code == 400
    assert resp.get_json()["kind"] == "invalid_state"

    resp = client.delete(f"/bookings/{booking.id}")
    assert resp.get_json()["code"] == "BOOKING_CONFIRMED"


def test_foreign_booking_is_forbidden(login, make_user, make_slot, make_booking):
    booking = make_booking(make_user(), make_slot())
    client = login(make_user())
    assert client.delete(f"/bookings/{booking.id}").status_code == 403
    assert client.get(f"/bookings/{booking.id}").status_code == 403


def test_my_bookings_is_paginated(login, make_user, make_slot, make_booking):
    user = make_user()
    for hour in ("10:00", "11:00", "12:00"):
        make_booking(user, make_slot(time=hour))
    client = login(user)

    body = client.get("/bookings/me?page=2&limit=2").get_json()
    assert body["total"] == 3
    assert body["pages"] == 2
    assert len(body["bookings"]) == 1

    assert client.get("/bookings/me?limit=1000").status_code == 400


def test_slot_board_for_user(login, make_user, make_slot, make_booking):
    me, other = make_user(), make_user()
    mine = make_slot(time="10:00")
    taken = make_slot(time="11:00")
    free = make_slot(time="12:00")
    make_slot(time="08:00")  # already past at 09:00
    make_booking(me, mine)
    make_booking(other, taken, status=STATUS_CONFIRMED)
    client = login(me)

    board = client.get("/slots").get_json()["slots"]
    assert [(s["id"], s["status"], s["can_book"]) for s in board] == [
        (free.id, "available", True),
        (taken.id, "booked", False),
    ]

    available = client.get("/slots/available").get_json()["slots"]
    assert [s["id"] for s in available] == [free.id]


def test_admin_routes_reject_plain_users(login, make_user):
    client = login(make_user())
    assert client.get("/admin/bookings").status_code == 403
    assert client.patch("/admin/bookings/1/status", json={"status": "confirmed"}).status_code == 403


def test_admin_confirms_and_competitors_are_cancelled(login, make_user, make_slot, make_booking, sender):
    admin = make_user(role=ROLE_ADMIN)
    slot = make_slot()
    a = make_booking(make_user(), slot)
    b = make_booking(make_user(), slot)
    client = login(admin)

    resp = client.patch(f"/admin/bookings/{a.id}/status", json={"status": "confirmed"})
    body = resp.get_json()
    assert resp.status_code == 200
    assert body["booking"]["status"] == STATUS_CONFIRMED
    assert [x["id"] for x in body["cancelled"]] == [b.id]
    assert [n["status"] for n in body["notifications"]] == ["Cancelled", "Confirmed"]

    again = client.patch(f"/admin/bookings/{b.id}/status", json={"status": "confirmed"})
    assert again.status_code == 409
    assert again.get_json()["code"] == "SLOT_ALREADY_CONFIRMED"

    listing = client.get("/admin/bookings").get_json()
    assert [x["status"] for x in listing["bookings"]] == [STATUS_CONFIRMED, STATUS_CANCELLED]

    confirmed = client.get("/admin/bookings/confirmed").get_json()
    assert confirmed["total"] == 1
    assert confirmed["bookings"][0]["id"] == a.id


def test_admin_slot_lifecycle(login, make_user, make_booking):
    admin = make_user(role=ROLE_ADMIN)
    client = login(admin)

    created = client.post("/admin/slots", json={"date": "2025-01-12", "time": "9:30"})
    assert created.status_code == 201
    slot = created.get_json()
    assert slot["time"] == "09:30"

    assert client.post("/admin/slots", json={"date": "2025-01-12", "time": "09:30"}).status_code == 409
    assert client.post("/admin/slots", json={"date": "12/01/2025", "time": "09:30"}).status_code == 400

    moved = client.put(f"/admin/slots/{slot['id']}", json={"time": "10:00"})
    assert moved.get_json()["time"] == "10:00"

    listing = client.get("/admin/slots?status=available").get_json()
    assert [s["id"] for s in listing["slots"]] == [slot["id"]]

    assert client.delete(f"/admin/slots/{slot['id']}").status_code == 200
    assert client.delete(f"/admin/slots/{slot['id']}").status_code == 404


def test_admin_users(login, make_user, make_slot, make_booking):
    admin = make_user(name="root", role=ROLE_ADMIN)
    bob = make_user(name="bob")
    make_user(name="alice")
    make_booking(bob, make_slot(), status=STATUS_CONFIRMED)
    client = login(admin)

    users = client.get("/admin/users").get_json()["users"]
    assert [(u["name"], u["booking_count"]) for u in users] == [("alice", 0), ("bob", 1)]

    resp = client.post("/admin/users", json={"name": "carol", "email": "carol@example.com", "password": "pw"})
    assert resp.status_code == 201
    carol_id = resp.get_json()["user"]["id"]

    clash = client.put(f"/admin/users/{carol_id}", json={"email": bob.email})
    assert clash.get_json()["code"] == "EMAIL_EXISTS"

    assert client.delete(f"/admin/users/{bob.id}").status_code == 200
    assert client.get("/admin/users?search=bob").get_json()["total"] == 0


def test_profile_endpoints(login, make_user):
    user = make_user()
    client = login(user)

    assert client.get("/auth/profile").get_json()["email"] == user.email

    resp = client.patch("/auth/profile", json={"name": "renamed"})
    assert resp.status_code == 200
    assert resp.get_json()["user"]["name"] == "renamed"

    bad = client.patch("/auth/profile", json={"new_password": "fresh-pass", "current_password": "wrong"})
    assert bad.status_code == 401
    assert bad.get_json()["code"] == "INVALID_PASSWORD"


def test_all_slots_listing_is_public_and_ordered(client, make_slot):
    make_slot(date="2025-01-12", time="08:00")
    make_slot(date="2025-01-11", time="09:00")

    body = client.get("/slots/all").get_json()
    assert body["total"] == 2
    assert [s["date"] for s in body["slots"]] == ["2025-01-11", "2025-01-12"]
