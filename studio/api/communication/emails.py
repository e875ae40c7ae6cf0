# Company inbox: list, read, archive, delete, send
from flask import Blueprint, jsonify, request, current_app
from sqlalchemy import select

from ...extensions import db
from ...models import Email, EmailAttachment
from ...permissions import require_permission

emails_bp = Blueprint("emails", __name__, url_prefix="/api/emails")

FILTERS = ("all", "unread", "archived")


def email_json(email):
    return {
        "id": email.id,
        "message_id": email.message_id,
        "from_address": email.from_address,
        "from_name": email.from_name,
        "to_addresses": email.to_addresses or [],
        "cc_addresses": email.cc_addresses,
        "bcc_addresses": email.bcc_addresses,
        "subject": email.subject,
        "body_text": email.body_text,
        "body_html": email.body_html,
        "headers": email.headers,
        "is_read": bool(email.is_read),
        "is_archived": bool(email.is_archived),
        "direction": email.direction,
        "received_at": email.received_at.isoformat() if email.received_at else None,
    }


def attachment_json(att):
    return {
        "id": att.id,
        "email_id": att.email_id,
        "filename": att.filename,
        "content_type": att.content_type,
        "size_bytes": att.size_bytes,
        "storage_path": att.storage_path,
    }


def _matches(email, term):
    term = term.lower()
    return (
        term in (email.subject or "").lower()
        or term in (email.from_address or "").lower()
        or term in (email.body_text or "").lower()
    )


@emails_bp.route("", methods=["GET"])
@require_permission("emails")
def list_emails():
    """
    Inbox listing
    ---
    tags:
      - Emails
    parameters:
      - name: filter
        in: query
        type: string
        enum: [all, unread, archived]
        default: all
        description: '"all" hides archived mail'
      - name: q
        in: query
        type: string
        description: Case-insensitive match on subject, sender or plain body
    responses:
      200:
        description: Emails, newest first, plus the unread count
      400:
        description: Unknown filter
    """
    mode = request.args.get("filter", "all")
    if mode not in FILTERS:
        return jsonify({"error": f"filter must be one of: {', '.join(FILTERS)}"}), 400

    stmt = select(Email).order_by(Email.received_at.desc())
    if mode == "unread":
        stmt = stmt.where(Email.is_read.is_(False), Email.is_archived.is_(False))
    elif mode == "archived":
        stmt = stmt.where(Email.is_archived.is_(True))
    else:
        stmt = stmt.where(Email.is_archived.is_(False))

    emails = db.session.scalars(stmt).all()

    term = request.args.get("q", "").strip()
    if term:
        emails = [e for e in emails if _matches(e, term)]

    unread_count = sum(1 for e in emails if not e.is_read and not e.is_archived)

    return jsonify(
        {
            "filter": mode,
            "results_found": len(emails),
            "unread_count": unread_count,
            "emails": [email_json(e) for e in emails],
        }
    )


@emails_bp.route("/<email_id>", methods=["GET"])
@require_permission("emails")
def get_email(email_id):
    """
    Open an email
    ---
    tags:
      - Emails
    summary: Email detail with attachments; marks it read
    parameters:
      - name: email_id
        in: path
        type: string
        required: true
    responses:
      200:
        description: Email and attachment metadata
      404:
        description: Email not found
    """
    email = db.session.get(Email, email_id)
    if not email:
        return jsonify({"error": "Email not found"}), 404

    if not email.is_read:
        try:
            email.is_read = True
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            current_app.logger.error(f"Error marking email as read: {e}")
            return jsonify({"error": "Database error", "details": str(e)}), 500

    attachments = db.session.scalars(
        select(EmailAttachment).where(EmailAttachment.email_id == email_id)
    ).all()

    return jsonify(
        {**email_json(email), "attachments": [attachment_json(a) for a in attachments]}
    )


def _set_flag(email_id, field, value_fn):
    email = db.session.get(Email, email_id)
    if not email:
        return jsonify({"error": "Email not found"}), 404
    try:
        setattr(email, field, value_fn(email))
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error updating {field} on email {email_id}: {e}")
        return jsonify({"error": "Database error", "details": str(e)}), 500
    return jsonify(email_json(email)), 200


@emails_bp.route("/<email_id>/read", methods=["POST"])
@require_permission("emails")
def mark_read(email_id):
    """
    Set the read flag
    ---
    tags:
      - Emails
    parameters:
      - name: email_id
        in: path
        type: string
        required: true
      - in: body
        name: body
        required: false
        schema:
          type: object
          properties:
            is_read: {type: boolean, default: true}
    responses:
      200:
        description: Updated email
      404:
        description: Email not found
    """
    data = request.get_json(silent=True) or {}
    is_read = bool(data.get("is_read", True))
    return _set_flag(email_id, "is_read", lambda _: is_read)


@emails_bp.route("/<email_id>/archive", methods=["POST"])
@require_permission("emails")
def toggle_archive(email_id):
    """
    Toggle the archived flag
    ---
    tags:
      - Emails
    parameters:
      - name: email_id
        in: path
        type: string
        required: true
    responses:
      200:
        description: Updated email
      404:
        description: Email not found
    """
    return _set_flag(email_id, "is_archived", lambda e: not e.is_archived)


@emails_bp.route("/<email_id>", methods=["DELETE"])
@require_permission(admin_only=True)
def delete_email(email_id):
    """
    Delete an email and its attachment rows (admins only)
    ---
    tags:
      - Emails
    parameters:
      - name: email_id
        in: path
        type: string
        required: true
    responses:
      200:
        description: Deleted
      403:
        description: Caller is not an admin
      404:
        description: Email not found
    """
    email = db.session.get(Email, email_id)
    if not email:
        return jsonify({"error": "Email not found"}), 404
    try:
        db.session.delete(email)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error deleting email {email_id}: {e}")
        return jsonify({"error": "Database error", "details": str(e)}), 500
    return jsonify({"message": "Email deleted", "id": email_id}), 200


@emails_bp.route("/send", methods=["POST"])
@require_permission("emails")
def send_email():
    """
    Send an email from the studio address
    ---
    tags:
      - Emails
    summary: Send through Resend and store the message as outbound
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [to, subject]
          properties:
            to:
              type: array
              items: {type: string}
            cc:
              type: array
              items: {type: string}
            bcc:
              type: array
              items: {type: string}
            subject: {type: string}
            html: {type: string}
            text: {type: string}
    responses:
      201:
        description: Sent and stored
      400:
        description: Missing recipients, subject or body
      500:
        description: Email provider error
    """
    data = request.get_json(silent=True) or {}
    to = data.get("to")
    if isinstance(to, str):
        to = [to]
    subject = data.get("subject")
    html = data.get("html")
    text = data.get("text")

    if not to or not subject or not (html or text):
        return jsonify({"error": "to, subject and html or text are required"}), 400

    service = current_app.extensions["email_service"]
    result = service.send(
        to=to, subject=subject, html=html, text=text, cc=data.get("cc"), bcc=data.get("bcc")
    )
    if not result["success"]:
        current_app.logger.error(f"Outbound email failed: {result['error']}")
        return jsonify({"status": "error", "error": result["error"]}), 500

    email = Email(
        message_id=result["email_id"],
        from_address=service.from_email,
        from_name=current_app.config["STUDIO_NAME"],
        to_addresses=to,
        cc_addresses=data.get("cc"),
        bcc_addresses=data.get("bcc"),
        subject=subject,
        body_text=text or "",
        body_html=html or "",
        is_read=True,
        is_archived=False,
        direction="outbound",
    )
    try:
        db.session.add(email)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Sent email {result['email_id']} could not be stored: {e}")
        return jsonify({"error": "Database error", "details": str(e)}), 500

    return jsonify({"status": "success", "email": email_json(email)}), 201
