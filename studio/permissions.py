import datetime
from functools import wraps

import jwt
from flask import current_app, g, jsonify, request

from .extensions import db
from .models import Staff

ADMIN_ROLE = "admin"
PERMISSIONS = ("reservations", "staff", "economics", "emails")


def has_permission(staff, permission) -> bool:
    """The one authorization rule: admins hold everything, others need the entry."""
    if staff is None:
        return False
    role = staff["role"] if isinstance(staff, dict) else staff.role
    granted = staff["permissions"] if isinstance(staff, dict) else staff.permissions
    return role == ADMIN_ROLE or permission in (granted or [])


def effective_permissions(staff):
    return [p for p in PERMISSIONS if has_permission(staff, p)]


def issue_token(staff):
    payload = {
        "staff_id": staff.id,
        "username": staff.username,
        "role": staff.role,
        "exp": datetime.datetime.now(datetime.timezone.utc)
        + datetime.timedelta(hours=current_app.config["JWT_EXPIRY_HOURS"]),
    }
    return jwt.encode(payload, current_app.config["SECRET_KEY"], algorithm="HS256")


def _bearer_token():
    header = request.headers.get("Authorization", "")
    if header.startswith("Bearer "):
        return header[len("Bearer "):].strip()
    return None


def require_permission(permission=None, admin_only=False):
    """
    Route decorator resolving the bearer token to a Staff row in g.staff.

    401 when the token is missing, expired or unknown; 403 when the staff
    member lacks the permission (or is not an admin for admin_only routes).
    """

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            token = _bearer_token()
            if not token:
                return jsonify({"error": "Authorization token required"}), 401

            try:
                payload = jwt.decode(
                    token, current_app.config["SECRET_KEY"], algorithms=["HS256"]
                )
            except jwt.ExpiredSignatureError:
                return jsonify({"error": "Token expired"}), 401
            except jwt.InvalidTokenError:
                return jsonify({"error": "Invalid token"}), 401

            staff = db.session.get(Staff, payload.get("staff_id"))
            if not staff:
                return jsonify({"error": "Unknown staff member"}), 401

            if admin_only and staff.role != ADMIN_ROLE:
                return jsonify({"error": "Admin role required"}), 403
            if permission and not has_permission(staff, permission):
                return (
                    jsonify({"error": f"Missing permission '{permission}'"}),
                    403,
                )

            g.staff = staff
            return view(*args, **kwargs)

        return wrapper

    return decorator


def current_store():
    """The calling staff member's reservation store, opened on first use."""
    registry = current_app.extensions["reservation_stores"]
    return registry.get(g.staff.id)
