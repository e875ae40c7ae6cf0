"""
Pytest configuration and shared fixtures for the studio backend tests.
"""

import json
import sys
from datetime import date, datetime, timedelta

import bcrypt
import httpx
import pytest
import resend
from flask import Flask

from main import create_app
from studio.config import is_production_database
from studio.extensions import db as database
from studio.models import Base, Reservation, Staff
from studio.services.notification_service import NotificationRelay

TEST_DB_URL = "sqlite:///:memory:"
RELAY_URL = "http://relay.test/send-message"
STUDIO_PHONE = "4915100000000"


@pytest.fixture
def app():
    """Create a test app with its own in-memory database."""
    # Never let the suite touch a real database
    if is_production_database(TEST_DB_URL):
        print(" DANGER: Tests are configured against a production database!")
        sys.exit(1)

    app = create_app(
        {
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": TEST_DB_URL,
            "SECRET_KEY": "test-secret-key-for-testing-only",
            "WHATSAPP_WEBHOOK_URL": RELAY_URL,
            "WHATSAPP_TARGET_NUMBER": STUDIO_PHONE,
            "STUDIO_NAME": "Krampus Tattoo Studio",
            "ENABLE_SCHEDULER": False,
        }
    )

    with app.app_context():
        yield app


@pytest.fixture
def db(app: Flask):
    """Create the tables using Base metadata."""
    Base.metadata.create_all(bind=database.engine)

    yield database

    database.session.remove()
    Base.metadata.drop_all(bind=database.engine)


@pytest.fixture
def db_session(db):
    return db.session


@pytest.fixture
def client(app, db):
    return app.test_client()


@pytest.fixture
def runner(app, db):
    return app.test_cli_runner()


def _make_staff(session, username, name, role, permissions, password="password123"):
    # Low work factor keeps the suite fast
    hashed_pw = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=4))
    staff = Staff(
        username=username,
        name=name,
        email=f"{username}@studio.example",
        password_hash=hashed_pw.decode("utf-8"),
        role=role,
        permissions=permissions,
    )
    session.add(staff)
    session.commit()
    return staff


@pytest.fixture
def admin(db_session):
    """Admin with no explicit permissions; the role grants everything."""
    return _make_staff(db_session, "admin", "Studio Admin", "admin", [])


@pytest.fixture
def artist(db_session):
    return _make_staff(db_session, "krampus", "Krampus", "artist", ["reservations"])


@pytest.fixture
def receptionist(db_session):
    return _make_staff(
        db_session, "frontdesk", "Front Desk", "staff", ["reservations", "emails"]
    )


@pytest.fixture
def bookkeeper(db_session):
    return _make_staff(db_session, "books", "Book Keeper", "staff", ["economics"])


@pytest.fixture
def login(client):
    """Log in through the API and return bearer headers."""

    def _login(username, password="password123"):
        response = client.post(
            "/api/auth/login",
            data=json.dumps({"username": username, "password": password}),
            content_type="application/json",
        )
        assert response.status_code == 200, response.data
        token = json.loads(response.data)["token"]
        return {"Authorization": f"Bearer {token}"}

    return _login


@pytest.fixture
def admin_headers(login, admin):
    return login("admin")


@pytest.fixture
def desk_headers(login, receptionist):
    return login("frontdesk")


@pytest.fixture
def reservation_data():
    """A valid create body for the reservation endpoint."""
    return {
        "first_name": "Ana",
        "last_name": "Lopez",
        "phone": "+34 600 111 222",
        "appointment_date": (date.today() + timedelta(days=3)).isoformat(),
        "appointment_time": "14:30",
        "total_price": 250,
        "deposit_paid": 50,
        "notes": "Forearm piece",
    }


@pytest.fixture
def make_reservation(db_session):
    """Insert a reservation row directly, bypassing every store."""
    counter = {"number": 1000}

    def _make(**overrides):
        counter["number"] += 1
        values = {
            "reservation_number": counter["number"],
            "first_name": "Walk",
            "last_name": "In",
            "phone": "555-0100",
            "appointment_date": date.today(),
            "appointment_time": "12:00",
            "total_price": 100,
            "deposit_paid": 20,
            "created_at": datetime.now(),
        }
        values.update(overrides)
        reservation = Reservation(**values)
        db_session.add(reservation)
        db_session.commit()
        return reservation

    return _make


@pytest.fixture
def relay_calls(app):
    """Swap the chat relay for one backed by an in-process transport."""
    calls = []

    def handler(request):
        calls.append({"url": str(request.url), "body": json.loads(request.content)})
        return httpx.Response(
            200, json={"success": True, "messageId": f"wamid-{len(calls)}"}
        )

    app.extensions["notification_relay"] = NotificationRelay(
        webhook_url=RELAY_URL,
        target_number=STUDIO_PHONE,
        transport=httpx.MockTransport(handler),
    )
    return calls


@pytest.fixture
def failing_relay(app):
    def handler(request):
        return httpx.Response(502, text="Bad Gateway")

    app.extensions["notification_relay"] = NotificationRelay(
        webhook_url=RELAY_URL,
        target_number=STUDIO_PHONE,
        transport=httpx.MockTransport(handler),
    )


@pytest.fixture
def sent_emails(monkeypatch):
    """Capture outbound mail instead of calling Resend."""
    sent = []

    def fake_send(params):
        sent.append(params)
        return {"id": f"re_{len(sent)}"}

    monkeypatch.setattr(resend.Emails, "send", fake_send)
    return sent
