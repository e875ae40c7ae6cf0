from flask import Blueprint, request, jsonify, current_app
from datetime import date, datetime, timedelta
from ...extensions import db
from ...permissions import current_store, require_permission
from ...services.notification_service import (
    RelayError,
    format_reservation_message,
    send_daily_summary,
)
from ...services.reservation_store import ReservationNotFound

notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")

INLINE_REQUIRED = [
    "reservation_number",
    "first_name",
    "last_name",
    "phone",
    "appointment_date",
    "appointment_time",
    "total_price",
    "deposit_paid",
]


def _relay():
    return current_app.extensions["notification_relay"]


@notifications_bp.route("/reservation", methods=["POST"])
@require_permission("reservations")
def send_reservation_notice():
    """
    Relay a new-reservation notice to the studio chat
    ---
    tags:
      - Notifications
    summary: Format a reservation and POST it once to the chat relay
    description: Send either reservation_id (looked up in the caller's store) or an
        inline reservation object. The relay is not retried; a failure is returned
        to the caller and the notice is lost unless re-sent.
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          properties:
            reservation_id:
              type: string
            reservation:
              type: object
    responses:
      200:
        description: Relay accepted the message
        schema:
          type: object
          properties:
            success: {type: boolean}
            messageId: {type: string}
      400:
        description: Neither reservation_id nor a complete reservation given
      404:
        description: reservation_id not found
      500:
        description: Relay not configured or answered with an error
    """
    data = request.get_json(silent=True) or {}

    if data.get("reservation_id"):
        store = current_store()
        try:
            record = store.get(data["reservation_id"])
        except ReservationNotFound:
            return jsonify({"success": False, "error": "Reservation not found"}), 404
        artist_name = store.artist_name(record.get("artist_id"))
    elif isinstance(data.get("reservation"), dict):
        record = data["reservation"]
        missing = [f for f in INLINE_REQUIRED if record.get(f) in (None, "")]
        if missing:
            return (
                jsonify({"success": False, "error": f'Missing required fields: {", ".join(missing)}'}),
                400,
            )
        artist_name = record.get("artist_name")
    else:
        return (
            jsonify({"success": False, "error": "reservation_id or reservation is required"}),
            400,
        )

    try:
        message = format_reservation_message(
            record, artist_name, current_app.config["STUDIO_NAME"]
        )
        message_id = _relay().send(message, record.get("design_images") or [])
    except (ValueError, KeyError, TypeError, AttributeError, ArithmeticError) as e:
        return jsonify({"success": False, "error": f"Invalid reservation: {e}"}), 400
    except RelayError as e:
        current_app.logger.error(f"Error sending WhatsApp notification: {e}")
        return jsonify({"success": False, "error": str(e)}), 500

    return jsonify({"success": True, "messageId": message_id}), 200


@notifications_bp.route("/daily-summary", methods=["POST"])
@require_permission("reservations")
def send_daily_reservations():
    """
    Send a day's reservations to the studio chat
    ---
    tags:
      - Notifications
    summary: Manual trigger of the daily summary (defaults to tomorrow)
    parameters:
      - in: body
        name: body
        required: false
        schema:
          type: object
          properties:
            date:
              type: string
              example: "2025-10-21"
    responses:
      200:
        description: Summary sent
      400:
        description: Invalid date
      500:
        description: Relay failure
    """
    data = request.get_json(silent=True) or {}
    date_str = data.get("date")

    try:
        if date_str:
            day = date.fromisoformat(date_str)
        else:
            day = (datetime.now() + timedelta(days=1)).date()
    except (ValueError, TypeError):
        return jsonify({"success": False, "error": "date must be YYYY-MM-DD"}), 400

    try:
        result = send_daily_summary(
            db.session, _relay(), day, current_app.config["STUDIO_NAME"]
        )
    except RelayError as e:
        current_app.logger.error(f"Error sending daily summary for {day}: {e}")
        return jsonify({"success": False, "error": str(e)}), 500

    return (
        jsonify(
            {
                "success": True,
                "date": day.isoformat(),
                "count": result["count"],
                "messageId": result["message_id"],
            }
        ),
        200,
    )
