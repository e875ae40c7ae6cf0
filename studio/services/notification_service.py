# Outbound chat notices (WhatsApp/Telegram relay)
import logging
from typing import Dict, List, Optional

import httpx
from sqlalchemy import select

from ..models import Reservation, Staff
from ..utils.formatting import format_currency, format_date, remaining_amount
from .reservation_store import reservation_to_record

logger = logging.getLogger(__name__)


class RelayError(Exception):
    """The relay answered with a non-success status or could not be reached."""


class RelayNotConfigured(RelayError):
    pass


def format_reservation_message(record: Dict, artist_name: Optional[str] = None, studio_name: str = "") -> str:
    """Render a reservation as the chat message the studio receives."""
    lines = [
        "🎨 *New Reservation Created* 🎨",
        "",
        f"📋 *Reservation #{record['reservation_number']}*",
        "",
        f"👤 *Customer:* {record['first_name']} {record['last_name']}",
        f"📞 *Phone:* {record['phone']}",
        f"📅 *Date:* {format_date(record['appointment_date'])}",
        f"🕐 *Time:* {record['appointment_time']}",
    ]
    if artist_name:
        lines.append(f"🎨 *Artist:* {artist_name}")

    lines += [
        "",
        f"💰 *Total Price:* {format_currency(record['total_price'])}",
        f"💳 *Deposit:* {format_currency(record['deposit_paid'])}",
        f"💸 *Remaining:* {format_currency(remaining_amount(record))}",
    ]

    if record.get("notes"):
        lines += ["", f"📝 *Notes:* {record['notes']}"]

    if studio_name:
        lines += ["", f"🏪 *{studio_name}*"]

    return "\n".join(lines)


def format_daily_summary(day, records: List[Dict], artist_names: Optional[Dict] = None, studio_name: str = "") -> str:
    """One message listing every reservation booked for ``day``, by time."""
    artist_names = artist_names or {}
    header = f"📅 *Reservations for {format_date(day)}*"

    if not records:
        body = ["", "No reservations scheduled."]
    else:
        body = [""]
        for r in sorted(records, key=lambda r: r["appointment_time"]):
            artist = artist_names.get(r.get("artist_id")) or "Not assigned"
            body.append(
                f"🕐 {r['appointment_time']} - #{r['reservation_number']} "
                f"{r['first_name']} {r['last_name']} ({artist}) "
                f"- remaining {format_currency(remaining_amount(r))}"
            )
        body += ["", f"Total: {len(records)} reservation(s)"]

    footer = ["", f"🏪 *{studio_name}*"] if studio_name else []
    return "\n".join([header] + body + footer)


class NotificationRelay:
    """
    Single-shot POST of {to, message, images} to the relay service.

    No retry and no queue: a failed send raises and is gone unless the
    caller triggers it again.
    """

    def __init__(self, webhook_url, target_number, timeout=10.0, transport=None):
        self.webhook_url = webhook_url
        self.target_number = target_number
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_config(cls, config, transport=None):
        return cls(
            webhook_url=config.get("WHATSAPP_WEBHOOK_URL"),
            target_number=config.get("WHATSAPP_TARGET_NUMBER"),
            timeout=config.get("RELAY_TIMEOUT_SECONDS", 10.0),
            transport=transport,
        )

    def send(self, message: str, images: Optional[List[str]] = None) -> Optional[str]:
        if not self.target_number:
            raise RelayNotConfigured("WhatsApp configuration missing")
        if not self.webhook_url:
            raise RelayNotConfigured("WhatsApp webhook URL not configured")

        payload = {"to": self.target_number, "message": message, "images": images or []}

        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.post(self.webhook_url, json=payload)
        except httpx.HTTPError as e:
            logger.error(f"❌ Relay request failed: {e}")
            raise RelayError(f"Relay unreachable: {e}") from e

        if response.is_error:
            logger.error(f"❌ Relay answered {response.status_code}: {response.text}")
            raise RelayError(f"WhatsApp API error: {response.text}")

        try:
            body = response.json()
        except ValueError:
            body = None
        message_id = body.get("messageId") if isinstance(body, dict) else None

        logger.info(f"✅ Relay accepted message {message_id}")
        return message_id


def send_daily_summary(session, relay: NotificationRelay, day, studio_name: str = ""):
    """Query the day's reservations and push one summary message through the relay."""
    rows = session.scalars(
        select(Reservation)
        .where(Reservation.appointment_date == day)
        .order_by(Reservation.appointment_time)
    ).all()
    records = [reservation_to_record(r) for r in rows]
    artist_names = {s.id: s.name for s in session.scalars(select(Staff)).all()}

    message = format_daily_summary(day, records, artist_names, studio_name)
    message_id = relay.send(message)
    return {"message_id": message_id, "count": len(records)}
