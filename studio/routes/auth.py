from flask import Blueprint, request, jsonify, current_app, g
from sqlalchemy import select
from ..extensions import db
from ..models import Staff
from ..permissions import effective_permissions, issue_token, require_permission
from ..services.reservation_store import staff_to_record
import bcrypt

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def hash_password(plain: str) -> str:
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


@auth_bp.route("/login", methods=["POST"])
def login_staff():
    """
    Staff login
    ---
    tags:
      - Authentication
    summary: Exchange username/password for a bearer token
    description: On success the staff member's reservation store is loaded, so
        the first listing reflects the database at login time.
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [username, password]
          properties:
            username:
              type: string
            password:
              type: string
    responses:
      200:
        description: Login successful
      400:
        description: Missing username or password
      401:
        description: Invalid credentials
    """
    try:
        data = request.get_json(force=True, silent=True) or {}
        username = (data.get("username") or "").strip()
        password = data.get("password")

        if not username or not password:
            return jsonify({
                "status": "error",
                "message": "Username and password required"
            }), 400

        staff = db.session.scalar(select(Staff).where(Staff.username == username))
        if not staff or not staff.password_hash:
            return jsonify({
                "status": "error",
                "message": "Invalid credentials"
            }), 401

        if not bcrypt.checkpw(password.encode("utf-8"), staff.password_hash.encode("utf-8")):
            return jsonify({
                "status": "error",
                "message": "Invalid credentials"
            }), 401

        token = issue_token(staff)
        current_app.extensions["reservation_stores"].open(staff.id)

        return jsonify({
            "status": "success",
            "message": "Login successful",
            "token": token,
            "staff": {**staff_to_record(staff), "permissions": effective_permissions(staff)},
        }), 200

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Login failed: {e}")
        return jsonify({
            "status": "error",
            "message": "Internal server error",
            "details": str(e)
        }), 500


@auth_bp.route("/logout", methods=["POST"])
@require_permission()
def logout_staff():
    """
    Staff logout
    ---
    tags:
      - Authentication
    summary: Drop the caller's in-memory reservation store
    responses:
      200:
        description: Logged out
    """
    closed = current_app.extensions["reservation_stores"].close(g.staff.id)
    return jsonify({"status": "success", "store_closed": closed}), 200


@auth_bp.route("/me", methods=["GET"])
@require_permission()
def current_staff():
    """
    Current staff member
    ---
    tags:
      - Authentication
    responses:
      200:
        description: Staff profile with effective permissions
    """
    return jsonify({
        **staff_to_record(g.staff),
        "permissions": effective_permissions(g.staff),
    }), 200
