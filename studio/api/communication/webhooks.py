# Provider-facing webhooks (no staff token; the mail provider calls these)
from flask import Blueprint, jsonify, request, current_app

from ...extensions import db
from ...services.email_ingest import ingest_email, parse_payload

webhooks_bp = Blueprint("webhooks", __name__, url_prefix="/api/webhooks")


@webhooks_bp.route("/email", methods=["POST"])
def email_webhook():
    """
    Inbound email webhook
    ---
    tags:
      - Webhooks
    summary: Store an inbound email and its attachment metadata
    description: Accepts application/json, application/x-www-form-urlencoded or
        multipart/form-data. The message id is the Message-Id field or, when
        absent, sender plus the current epoch milliseconds.
    consumes:
      - application/json
      - application/x-www-form-urlencoded
      - multipart/form-data
    responses:
      200:
        description: Email stored; attachments reports stored and failed items
        schema:
          type: object
          properties:
            success: {type: boolean}
            emailId: {type: string}
            message: {type: string}
            attachments:
              type: object
              properties:
                stored: {type: array, items: {type: string}}
                failed: {type: array, items: {type: object}}
      500:
        description: Unsupported content type or the email row could not be stored
    """
    try:
        payload = parse_payload(
            request.content_type,
            json_body=request.get_json(silent=True),
            form=request.form,
        )

        current_app.logger.info(
            "Received email data: from=%s to=%s subject=%s",
            payload.get("sender") or payload.get("from"),
            payload.get("recipient"),
            payload.get("subject"),
        )

        result = ingest_email(db.session, payload)
        email = result["email"]

        if result["failed"]:
            message = f"Email processed with {len(result['failed'])} attachment failure(s)"
        else:
            message = "Email processed successfully"

        return (
            jsonify(
                {
                    "success": True,
                    "emailId": email.id,
                    "message": message,
                    "attachments": {
                        "stored": result["stored"],
                        "failed": result["failed"],
                    },
                }
            ),
            200,
        )

    except Exception as e:
        current_app.logger.error(f"Error processing email webhook: {e}")
        return jsonify({"success": False, "error": str(e) or "Unknown error"}), 500
