# Create, edit, delete and list reservations through the caller's store
from flask import Blueprint, jsonify, request, current_app
from sqlalchemy.exc import IntegrityError

from ...permissions import current_store, require_permission
from ...services.reservation_store import (
    ReservationNotFound,
    coerce_fields,
    reservation_json,
)
from ...utils.filters import filter_reservations
from ...utils.formatting import payment_toggle

reservations_bp = Blueprint("reservations", __name__, url_prefix="/api/reservations")


def _with_artist(store, record):
    payload = reservation_json(record)
    payload["artist_name"] = store.artist_name(record.get("artist_id")) or "Not assigned"
    return payload


@reservations_bp.route("", methods=["GET"])
@require_permission("reservations")
def list_reservations():
    """
    List reservations
    ---
    tags:
      - Reservations
    summary: Newest-first reservations from the caller's in-memory store
    parameters:
      - name: q
        in: query
        type: string
        description: Case-insensitive match on number, first/last name or phone
      - name: start
        in: query
        type: string
        format: date
        description: Inclusive lower bound on appointment_date (YYYY-MM-DD)
      - name: end
        in: query
        type: string
        format: date
        description: Inclusive upper bound on appointment_date (YYYY-MM-DD)
    responses:
      200:
        description: Filtered reservations
      400:
        description: Malformed date bound
    """
    store = current_store()
    try:
        records = filter_reservations(
            store.list()["reservations"],
            term=request.args.get("q", ""),
            start=request.args.get("start"),
            end=request.args.get("end"),
        )
    except ValueError:
        return jsonify({"error": "start/end must be YYYY-MM-DD"}), 400

    return jsonify(
        {
            "results_found": len(records),
            "reservations": [_with_artist(store, r) for r in records],
        }
    )


@reservations_bp.route("", methods=["POST"])
@require_permission("reservations")
def create_reservation():
    """
    Create a reservation
    ---
    tags:
      - Reservations
    summary: Insert a reservation; the database assigns reservation_number
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [first_name, last_name, phone, appointment_date, appointment_time, total_price]
          properties:
            first_name: {type: string}
            last_name: {type: string}
            phone: {type: string}
            appointment_date: {type: string, example: "2025-10-20"}
            appointment_time: {type: string, example: "14:30"}
            total_price: {type: number, example: 250.00}
            deposit_paid: {type: number, example: 50.00}
            deposit_paid_status: {type: boolean}
            rest_paid_status: {type: boolean}
            is_paid: {type: boolean}
            artist_id: {type: string}
            notes: {type: string}
            design_images:
              type: array
              items: {type: string}
    responses:
      201:
        description: Reservation created
      400:
        description: Invalid field or database constraint failure
      500:
        description: Database error
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data:
        return jsonify({"error": "Request body is required"}), 400

    try:
        fields = coerce_fields(data)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    store = current_store()
    try:
        record = store.create(fields)
    except IntegrityError as e:
        current_app.logger.error(f"Reservation insert rejected: {e.orig}")
        return jsonify({"error": "Database integrity error", "details": str(e.orig)}), 400
    except Exception as e:
        current_app.logger.error(f"Error adding reservation: {e}")
        return jsonify({"error": "Database error", "details": str(e)}), 500

    return jsonify(_with_artist(store, record)), 201


@reservations_bp.route("/refresh", methods=["POST"])
@require_permission("reservations")
def refresh_reservations():
    """
    Re-fetch reservations
    ---
    tags:
      - Reservations
    summary: Reload the caller's store so writes from other sessions show up
    responses:
      200:
        description: Store reloaded
    """
    store = current_store()
    store.refresh()
    return jsonify({"status": "success", "results_found": len(store.reservations)})


@reservations_bp.route("/<reservation_id>", methods=["GET"])
@require_permission("reservations")
def get_reservation(reservation_id):
    """
    One reservation
    ---
    tags:
      - Reservations
    parameters:
      - name: reservation_id
        in: path
        type: string
        required: true
    responses:
      200:
        description: Reservation with derived remaining_amount and payment_status
      404:
        description: Not in the caller's store
    """
    store = current_store()
    try:
        record = store.get(reservation_id)
    except ReservationNotFound:
        return jsonify({"error": "Reservation not found"}), 404
    return jsonify(_with_artist(store, record))


@reservations_bp.route("/<reservation_id>", methods=["PATCH", "PUT"])
@require_permission("reservations")
def edit_reservation(reservation_id):
    """
    Update a reservation
    ---
    tags:
      - Reservations
    summary: Write only the supplied fields; last writer wins
    parameters:
      - name: reservation_id
        in: path
        type: string
        required: true
      - in: body
        name: body
        required: true
        description: Any subset of the create fields
    responses:
      200:
        description: Updated reservation
      400:
        description: Invalid field
      404:
        description: Reservation not found
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Request body is required"}), 400

    try:
        fields = coerce_fields(data)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    store = current_store()
    try:
        record = store.update(reservation_id, fields)
    except ReservationNotFound:
        return jsonify({"error": "Reservation not found"}), 404
    except IntegrityError as e:
        return jsonify({"error": "Database integrity error", "details": str(e.orig)}), 400
    except Exception as e:
        current_app.logger.error(f"Error updating reservation {reservation_id}: {e}")
        return jsonify({"error": "Database error", "details": str(e)}), 500

    if record is None:
        # Written remotely but not in this session's view until a refresh
        return jsonify({"id": reservation_id, "updated": sorted(fields)}), 200
    return jsonify(_with_artist(store, record)), 200


@reservations_bp.route("/<reservation_id>/payments/<flag>", methods=["POST"])
@require_permission("reservations")
def toggle_payment(reservation_id, flag):
    """
    Toggle a payment flag
    ---
    tags:
      - Reservations
    summary: Flip deposit_paid_status or rest_paid_status
    description: Marking the rest as paid also sets the legacy is_paid flag.
    parameters:
      - name: reservation_id
        in: path
        type: string
        required: true
      - name: flag
        in: path
        type: string
        enum: [deposit, rest]
        required: true
    responses:
      200:
        description: Updated reservation
      400:
        description: Unknown flag
      404:
        description: Reservation not found
    """
    store = current_store()
    try:
        record = store.get(reservation_id)
        updates = payment_toggle(record, flag)
        record = store.update(reservation_id, updates)
    except ReservationNotFound:
        return jsonify({"error": "Reservation not found"}), 404
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        current_app.logger.error(f"Error toggling {flag} on {reservation_id}: {e}")
        return jsonify({"error": "Database error", "details": str(e)}), 500

    return jsonify(_with_artist(store, record)), 200


@reservations_bp.route("/<reservation_id>", methods=["DELETE"])
@require_permission("reservations")
def delete_reservation(reservation_id):
    """
    Delete a reservation
    ---
    tags:
      - Reservations
    summary: Permanent delete; there is no undo
    parameters:
      - name: reservation_id
        in: path
        type: string
        required: true
    responses:
      200:
        description: Deleted
      404:
        description: Reservation not found
    """
    store = current_store()
    try:
        store.delete(reservation_id)
    except ReservationNotFound:
        return jsonify({"error": "Reservation not found"}), 404
    except Exception as e:
        current_app.logger.error(f"Error deleting reservation {reservation_id}: {e}")
        return jsonify({"error": "Database error", "details": str(e)}), 500

    return jsonify({"message": "Reservation deleted", "id": reservation_id}), 200
