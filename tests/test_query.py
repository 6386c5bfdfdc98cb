from datetime import datetime

import pytest

from services.errors import ValidationError
from services.listing import admin_bookings_pipeline, admin_slots_pipeline
from services.admission import user_bookings_pipeline
from services.query import Pipeline, get_path, priority, validate_page


def row(id, status, date, time, name="ann", email="ann@example.com", order_id=None, created=1):
    return {
        "id": id,
        "order_id": order_id or f"ORD-{id}",
        "status": status,
        "created_at": datetime(2025, 1, 1, 0, created),
        "slot": {"date": date, "time": time},
        "user": {"name": name, "email": email},
    }


def test_get_path_reads_nested_values():
    assert get_path({"slot": {"date": "2025-01-10"}}, "slot.date") == "2025-01-10"
    assert get_path({"slot": None}, "slot.date") is None
    assert get_path({}, "missing") is None


def test_priority_ranks_unknown_values_last():
    rank = priority("status", ["pending", "confirmed"])
    assert rank({"status": "pending"}) == 1
    assert rank({"status": "confirmed"}) == 2
    assert rank({"status": "weird"}) == 99


def test_pipeline_is_composable_without_mutating_the_base():
    base = Pipeline().where("status", "pending")
    narrowed = base.search("bob", ["user.name"])
    rows = [row(1, "pending", "2025-01-10", "10:00", name="Bob"), row(2, "pending", "2025-01-10", "10:00")]
    assert len(base.run(rows)) == 2
    assert [r["id"] for r in narrowed.run(rows)] == [1]


def test_empty_filters_are_skipped():
    rows = [row(1, "pending", "2025-01-10", "10:00")]
    assert Pipeline().where("status", None).search("  ", ["order_id"]).run(rows) == rows


def test_search_is_literal_and_case_insensitive():
    rows = [
        row(1, "pending", "2025-01-10", "10:00", order_id="ORD-1.5"),
        row(2, "pending", "2025-01-10", "10:00", order_id="ORD-105"),
    ]
    hits = Pipeline().search("ord-1.", ["order_id"]).run(rows)
    assert [r["id"] for r in hits] == [1]


def test_admin_booking_order_is_status_then_slot_then_creation():
    rows = [
        row(1, "cancelled", "2025-01-09", "08:00"),
        row(2, "confirmed", "2025-01-10", "09:00"),
        row(3, "pending", "2025-01-11", "10:00", created=5),
        row(4, "pending", "2025-01-11", "10:00", created=2),
        row(5, "pending", "2025-01-10", "11:00"),
    ]
    out = admin_bookings_pipeline().run(rows)
    assert [r["id"] for r in out] == [5, 4, 3, 2, 1]


def test_admin_booking_search_covers_user_order_and_slot_fields():
    rows = [
        row(1, "pending", "2025-01-10", "10:00", name="Dara"),
        row(2, "pending", "2025-01-10", "10:00", email="sok@mail.kh"),
        row(3, "pending", "2025-02-01", "10:00"),
        row(4, "pending", "2025-01-10", "17:30"),
        row(5, "pending", "2025-01-10", "10:00", order_id="ORD-XYZ"),
    ]
    find = lambda term: [r["id"] for r in admin_bookings_pipeline(search=term).run(rows)]
    assert find("dara") == [1]
    assert find("MAIL.KH") == [2]
    assert find("02-01") == [3]
    assert find("17:3") == [4]
    assert find("xyz") == [5]


def test_paginate_counts_before_slicing():
    rows = [row(i, "pending", "2025-01-10", f"{i:02d}:00") for i in range(1, 8)]
    result = admin_bookings_pipeline().paginate(rows, page=2, limit=3)
    assert result.total == 7
    assert result.pages == 3
    assert [r["id"] for r in result.items] == [4, 5, 6]


def test_page_past_the_end_is_empty():
    rows = [row(1, "pending", "2025-01-10", "10:00")]
    result = Pipeline().paginate(rows, page=3, limit=10)
    assert result.total == 1
    assert result.items == []


def test_user_booking_order_ignores_date_and_time():
    rows = [
        {"id": 1, "status": "cancelled", "date": "2025-01-01", "time": "08:00"},
        {"id": 2, "status": "pending", "date": "2025-03-01", "time": "08:00"},
        {"id": 3, "status": "confirmed", "date": "2025-01-01", "time": "08:00"},
        {"id": 4, "status": "pending", "date": "2025-01-01", "time": "08:00"},
    ]
    out = user_bookings_pipeline().run(rows)
    assert [r["id"] for r in out] == [2, 4, 3, 1]


def test_user_booking_search_matches_slot_time_only():
    rows = [
        {"id": 1, "status": "pending", "date": "2025-01-10", "time": "10:00"},
        {"id": 2, "status": "pending", "date": "2025-01-10", "time": "14:00"},
    ]
    out = user_bookings_pipeline(search="14").run(rows)
    assert [r["id"] for r in out] == [2]


def test_user_booking_pipeline_rejects_unknown_status():
    with pytest.raises(ValidationError):
        user_bookings_pipeline(status="approved")


def test_slot_order_is_available_booked_expired():
    rows = [
        {"id": 1, "date": "2025-01-09", "time": "10:00", "status": "expired"},
        {"id": 2, "date": "2025-01-11", "time": "10:00", "status": "booked"},
        {"id": 3, "date": "2025-01-12", "time": "10:00", "status": "available"},
        {"id": 4, "date": "2025-01-11", "time": "09:00", "status": "available"},
    ]
    out = admin_slots_pipeline().run(rows)
    assert [r["id"] for r in out] == [4, 3, 2, 1]


@pytest.mark.parametrize("page,limit", [(0, 10), ("x", 10), (1, 0), (1, 101)])
def test_validate_page_rejects_bad_values(page, limit):
    with pytest.raises(ValidationError):
        validate_page(page, limit)


def test_validate_page_defaults():
    assert validate_page(None, None, default_limit=20) == (1, 20)
    assert validate_page("2", "5") == (2, 5)
