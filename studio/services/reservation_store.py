"""
In-memory reservation/staff state for one logged-in staff session.

A ReservationStore is loaded once when the session starts and afterwards
only changes through its own create/update/delete methods, which write
through to the database first and then reconcile the local lists. It never
re-fetches on its own: writes made by another session stay invisible until
``refresh()`` is called.
"""
import logging
from datetime import date, datetime

from sqlalchemy import delete, func, select, update

from ..models import Reservation, Staff
from ..utils.formatting import format_currency, payment_status, remaining_amount, to_decimal

logger = logging.getLogger(__name__)

FIRST_RESERVATION_NUMBER = 1001


class ReservationNotFound(LookupError):
    pass


def _parse_date(value):
    if value is None or isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _parse_time(value):
    if value is None:
        return None
    raw = str(value).strip()
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(raw, fmt).strftime("%H:%M")
        except ValueError:
            continue
    raise ValueError(f"appointment_time must be HH:MM, got '{value}'")


def _parse_bool(value):
    if isinstance(value, bool):
        return value
    raise ValueError(f"Expected true/false, got '{value}'")


def _parse_optional_text(value):
    if value is None:
        return None
    return str(value)


def _parse_artist(value):
    # An empty dropdown selection means "no artist"
    return str(value) if value else None


def _parse_images(value):
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValueError("design_images must be a list of strings")
    return list(value)


FIELD_PARSERS = {
    "first_name": _parse_optional_text,
    "last_name": _parse_optional_text,
    "phone": _parse_optional_text,
    "appointment_date": _parse_date,
    "appointment_time": _parse_time,
    "total_price": lambda v: None if v is None else to_decimal(v),
    "deposit_paid": lambda v: None if v is None else to_decimal(v),
    "is_paid": _parse_bool,
    "deposit_paid_status": _parse_bool,
    "rest_paid_status": _parse_bool,
    "artist_id": _parse_artist,
    "notes": _parse_optional_text,
    "design_images": _parse_images,
}


def coerce_fields(data):
    """Convert a JSON body into column values; raises ValueError on bad input."""
    unknown = sorted(set(data) - set(FIELD_PARSERS))
    if unknown:
        raise ValueError(f"Unknown or read-only field(s): {', '.join(unknown)}")

    fields = {}
    for key, value in data.items():
        try:
            fields[key] = FIELD_PARSERS[key](value)
        except (ValueError, TypeError, ArithmeticError) as e:
            raise ValueError(f"Invalid value for {key}: {e}") from e
    return fields


def reservation_to_record(res):
    return {
        "id": res.id,
        "reservation_number": res.reservation_number,
        "first_name": res.first_name,
        "last_name": res.last_name,
        "phone": res.phone,
        "appointment_date": res.appointment_date,
        "appointment_time": res.appointment_time,
        "total_price": to_decimal(res.total_price),
        "deposit_paid": to_decimal(res.deposit_paid),
        "is_paid": bool(res.is_paid),
        "deposit_paid_status": bool(res.deposit_paid_status),
        "rest_paid_status": bool(res.rest_paid_status),
        "artist_id": res.artist_id,
        "notes": res.notes,
        "design_images": list(res.design_images or []),
        "created_at": res.created_at,
    }


def staff_to_record(member):
    return {
        "id": member.id,
        "username": member.username,
        "name": member.name,
        "email": member.email,
        "role": member.role,
        "permissions": list(member.permissions or []),
    }


def reservation_json(record):
    """JSON-friendly copy of an in-memory record plus the derived display fields."""
    appointment_date = record.get("appointment_date")
    created_at = record.get("created_at")
    return {
        **record,
        "appointment_date": (
            appointment_date.isoformat()
            if isinstance(appointment_date, date)
            else appointment_date
        ),
        "created_at": (
            created_at.isoformat() if isinstance(created_at, datetime) else created_at
        ),
        "total_price": float(to_decimal(record.get("total_price"))),
        "deposit_paid": float(to_decimal(record.get("deposit_paid"))),
        "remaining_amount": float(remaining_amount(record)),
        "remaining_display": format_currency(remaining_amount(record)),
        "payment_status": payment_status(record),
    }


class ReservationStore:
    def __init__(self, session):
        self.session = session
        self.reservations = []
        self.staff = []
        self.loaded = False

    def load(self):
        self.refresh()
        self.staff = [
            staff_to_record(s)
            for s in self.session.scalars(select(Staff).order_by(Staff.name)).all()
        ]
        self.loaded = True

    def refresh(self):
        rows = self.session.scalars(
            select(Reservation).order_by(Reservation.created_at.desc())
        ).all()
        self.reservations = [reservation_to_record(r) for r in rows]

    def list(self):
        return {"reservations": list(self.reservations), "staff": list(self.staff)}

    def get(self, reservation_id):
        for record in self.reservations:
            if record["id"] == reservation_id:
                return record
        raise ReservationNotFound(reservation_id)

    def get_artists(self):
        return [s for s in self.staff if s["role"] == "artist"]

    def artist_name(self, artist_id):
        for s in self.staff:
            if s["id"] == artist_id:
                return s["name"]
        return None

    def _next_reservation_number(self):
        current = self.session.scalar(select(func.max(Reservation.reservation_number)))
        return (current or FIRST_RESERVATION_NUMBER - 1) + 1

    def create(self, fields):
        try:
            reservation = Reservation(
                reservation_number=self._next_reservation_number(), **fields
            )
            self.session.add(reservation)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        record = reservation_to_record(reservation)
        self.reservations.insert(0, record)
        logger.info("Created reservation #%s", record["reservation_number"])
        return record

    def update(self, reservation_id, fields):
        if not fields:
            return self.get(reservation_id)

        try:
            result = self.session.execute(
                update(Reservation)
                .where(Reservation.id == reservation_id)
                .values(**fields)
            )
            if result.rowcount == 0:
                raise ReservationNotFound(reservation_id)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        merged = None
        for record in self.reservations:
            if record["id"] == reservation_id:
                record.update(fields)
                merged = record
        return merged

    def delete(self, reservation_id):
        try:
            result = self.session.execute(
                delete(Reservation).where(Reservation.id == reservation_id)
            )
            if result.rowcount == 0:
                raise ReservationNotFound(reservation_id)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        self.reservations = [r for r in self.reservations if r["id"] != reservation_id]
        logger.info("Deleted reservation %s", reservation_id)


class StoreRegistry:
    """Holds one ReservationStore per logged-in staff member."""

    def __init__(self, session_factory=None, app=None):
        self.session_factory = session_factory
        self._stores = {}
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        app.extensions["reservation_stores"] = self

    def open(self, staff_id):
        store = ReservationStore(self.session_factory())
        store.load()
        self._stores[staff_id] = store
        return store

    def get(self, staff_id):
        store = self._stores.get(staff_id)
        if store is None:
            store = self.open(staff_id)
        return store

    def close(self, staff_id):
        return self._stores.pop(staff_id, None) is not None

    def __contains__(self, staff_id):
        return staff_id in self._stores
