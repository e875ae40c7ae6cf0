"""
Inbound email webhook ingestion.

Maps a provider payload (Mailgun-style field names) onto an ``emails`` row
and its ``email_attachments`` rows. Each attachment is written inside its
own savepoint so one bad descriptor does not lose the email; failures are
reported back to the caller next to the stored ones.
"""
import json
import logging
import time
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError

from ..models import Email, EmailAttachment

logger = logging.getLogger(__name__)

UNKNOWN_SENDER = "unknown@sender.com"
FORM_CONTENT_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")


class UnsupportedContentType(ValueError):
    pass


def parse_payload(content_type, json_body=None, form=None):
    """Normalize the request body into a flat dict of provider fields."""
    content_type = (content_type or "").lower()

    if "application/json" in content_type:
        if not isinstance(json_body, dict):
            raise ValueError("JSON body must be an object")
        return dict(json_body)

    if any(ct in content_type for ct in FORM_CONTENT_TYPES):
        payload = {key: value for key, value in (form or {}).items()}
        # Form posts carry the attachment list as a JSON string
        if isinstance(payload.get("attachments"), str):
            try:
                payload["attachments"] = json.loads(payload["attachments"])
            except ValueError:
                logger.warning("Could not parse attachments field, ignoring it")
                payload["attachments"] = []
        return payload

    raise UnsupportedContentType("Unsupported content type")


def derive_message_id(payload, clock=time.time):
    """
    Provider Message-Id when present, else ``<sender>-<epoch ms>``.

    Two header-less messages from one sender in the same millisecond get
    the same id and the second insert fails on the unique index.
    """
    if payload.get("Message-Id"):
        return payload["Message-Id"]
    sender = payload.get("sender") or payload.get("from") or UNKNOWN_SENDER
    return f"{sender}-{int(clock() * 1000)}"


def _parse_headers(raw):
    if not raw:
        return None
    if not isinstance(raw, str):
        return raw
    try:
        return json.loads(raw)
    except ValueError as e:
        logger.warning(f"Could not parse message headers: {e}")
        return None


def _received_at(payload):
    raw = payload.get("timestamp")
    if raw:
        try:
            # Fractional epoch seconds are truncated
            return datetime.fromtimestamp(int(float(raw)))
        except (ValueError, TypeError, OverflowError, OSError) as e:
            logger.warning(f"Could not parse timestamp {raw!r}: {e}")
    return datetime.now()


def build_email(payload, clock=time.time):
    from_address = payload.get("sender") or payload.get("from") or UNKNOWN_SENDER
    return Email(
        message_id=derive_message_id(payload, clock),
        from_address=from_address,
        from_name=payload.get("from") or from_address,
        to_addresses=[payload["recipient"]] if payload.get("recipient") else [],
        subject=payload.get("subject") or "(No Subject)",
        body_text=payload.get("stripped-text") or payload.get("body-plain") or "",
        body_html=payload.get("stripped-html") or payload.get("body-html") or "",
        headers=_parse_headers(payload.get("message-headers")),
        is_read=False,
        is_archived=False,
        direction="inbound",
        received_at=_received_at(payload),
    )


def build_attachment(email_id, descriptor):
    return EmailAttachment(
        email_id=email_id,
        filename=descriptor.get("filename") or "unknown",
        content_type=descriptor.get("content-type") or "application/octet-stream",
        size_bytes=int(descriptor.get("size") or 0),
        storage_path=descriptor.get("url") or "",
    )


def ingest_email(session, payload, clock=time.time):
    """
    Insert the email, then each attachment; commit once at the end.

    Returns a dict with the stored Email and the per-attachment outcome.
    Errors on the email row itself roll back and propagate.
    """
    try:
        email = build_email(payload, clock)
        session.add(email)
        session.flush()
    except Exception:
        session.rollback()
        raise

    logger.info(f"Email inserted successfully: {email.id}")

    stored, failed = [], []
    descriptors = payload.get("attachments")
    if isinstance(descriptors, list) and descriptors:
        logger.info(f"Processing {len(descriptors)} attachments")

        for index, descriptor in enumerate(descriptors):
            try:
                with session.begin_nested():
                    attachment = build_attachment(email.id, descriptor)
                    session.add(attachment)
                stored.append(attachment.filename)
            except (SQLAlchemyError, AttributeError, TypeError, ValueError) as e:
                logger.error(f"Error inserting attachment {index}: {e}")
                name = descriptor.get("filename") if isinstance(descriptor, dict) else None
                failed.append({"index": index, "filename": name, "error": str(e)})

    try:
        session.commit()
    except Exception:
        session.rollback()
        raise

    return {"email": email, "stored": stored, "failed": failed}
