from datetime import datetime
from itertools import count

import pytest

from app import create_app
from config import TestConfig
from models import db
from models.booking import Booking, STATUS_PENDING
from models.slot import Slot
from models.user import User, ROLE_ADMIN, ROLE_USER
from security.password import hash_password
from services.clock import FixedClock

# 2025-01-10 09:00 in Phnom Penh
NOW = datetime(2025, 1, 10, 9, 0)
PASSWORD = "s3cret-pass"


class RecordingSender:
    """Stands in for the email sender; can be told to fail for chosen addresses."""

    def __init__(self, fail_for=(), report_failure_for=()):
        self.calls = []
        self.fail_for = set(fail_for)
        self.report_failure_for = set(report_failure_for)

    def __call__(self, to_email, name, slot_date, slot_time, order_id, status_label):
        self.calls.append({
            "to": to_email,
            "name": name,
            "date": slot_date,
            "time": slot_time,
            "order_id": order_id,
            "status": status_label,
        })
        if to_email in self.fail_for:
            raise RuntimeError(f"SMTP down for {to_email}")
        if to_email in self.report_failure_for:
            return False, "mailbox unavailable"
        return True, None

    def sent_to(self, status_label):
        return [c["to"] for c in self.calls if c["status"] == status_label]


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture
def app(clock, sender):
    app = create_app(TestConfig, clock=clock, sender=sender)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


_seq = count(1)


@pytest.fixture
def make_user(app):
    def _make(name=None, role=ROLE_USER, email=None):
        n = next(_seq)
        name = name or f"user{n}"
        user = User(
            name=name,
            email=email or f"{name}@example.com",
            password_hash=hash_password(PASSWORD),
            role=role,
        )
        db.session.add(user)
        db.session.commit()
        return user
    return _make


@pytest.fixture
def make_slot(app):
    def _make(date="2025-01-10", time="10:00"):
        slot = Slot(date=date, time=time)
        db.session.add(slot)
        db.session.commit()
        return slot
    return _make


@pytest.fixture
def make_booking(app):
    def _make(user, slot, status=STATUS_PENDING, notes=""):
        booking = Booking(
            user_id=user.id,
            slot_id=slot.id,
            order_id=f"ORD-TEST-{next(_seq)}",
            status=status,
            notes=notes,
        )
        db.session.add(booking)
        db.session.commit()
        return booking
    return _make


@pytest.fixture
def login(client):
    def _login(user):
        resp = client.post("/auth/login", json={"email": user.email, "password": PASSWORD})
        assert resp.status_code == 200, resp.get_json()
        return client
    return _login
