from flask import Blueprint, jsonify

from ...permissions import current_store, require_permission

staff_bp = Blueprint("staff", __name__, url_prefix="/api/staff")


@staff_bp.route("", methods=["GET"])
@require_permission("reservations")
def list_staff():
    """
    Staff members (alphabetical) as loaded into the caller's store
    ---
    tags:
      - Staff
    responses:
      200:
        description: Staff list
    """
    staff = current_store().list()["staff"]
    return jsonify({"results_found": len(staff), "staff": staff})


@staff_bp.route("/artists", methods=["GET"])
@require_permission("reservations")
def list_artists():
    """
    Staff with the artist role, for the reservation artist dropdown
    ---
    tags:
      - Staff
    responses:
      200:
        description: Artist list
    """
    artists = current_store().get_artists()
    return jsonify({"results_found": len(artists), "artists": artists})
