"""
Tests for inbound email ingestion, the inbox endpoints and outbound mail.
"""

import json
from datetime import datetime

import pytest
import resend
from sqlalchemy import select

from studio.models import Email, EmailAttachment
from studio.services.email_ingest import (
    UnsupportedContentType,
    derive_message_id,
    ingest_email,
    parse_payload,
)


def _webhook_payload(**overrides):
    payload = {
        "Message-Id": "<abc123@mail.example>",
        "sender": "client@example.com",
        "from": "Client Name <client@example.com>",
        "recipient": "info@studio.example",
        "subject": "Booking question",
        "body-plain": "Hi, do you have time next week?",
        "timestamp": "1729425600",
    }
    payload.update(overrides)
    return payload


@pytest.mark.emails
class TestPayloadParsing:
    def test_json_body(self):
        assert parse_payload("application/json", json_body={"a": 1}) == {"a": 1}

    def test_json_must_be_object(self):
        with pytest.raises(ValueError):
            parse_payload("application/json", json_body=["a"])

    def test_form_attachments_string(self):
        payload = parse_payload(
            "application/x-www-form-urlencoded",
            form={"attachments": '[{"filename": "a.png"}]'},
        )

        assert payload["attachments"] == [{"filename": "a.png"}]

    def test_form_bad_attachments_ignored(self):
        payload = parse_payload("multipart/form-data; boundary=x", form={"attachments": "{oops"})

        assert payload["attachments"] == []

    def test_unsupported_content_type(self):
        with pytest.raises(UnsupportedContentType):
            parse_payload("text/plain")


@pytest.mark.emails
class TestMessageId:
    def test_uses_header_when_present(self):
        assert derive_message_id({"Message-Id": "<x@y>"}) == "<x@y>"

    def test_fallback_uses_sender_and_millis(self):
        assert derive_message_id({"sender": "a@b.c"}, clock=lambda: 1700000000.123) == (
            "a@b.c-1700000000123"
        )

    def test_fallback_without_sender(self):
        assert derive_message_id({}, clock=lambda: 1.0) == "unknown@sender.com-1000"

    def test_different_times_give_distinct_ids(self):
        first = derive_message_id({"from": "a@b.com"}, clock=lambda: 1700000000.0)
        second = derive_message_id({"from": "a@b.com"}, clock=lambda: 1700000001.5)

        assert first != second

    def test_same_millisecond_collides(self):
        first = derive_message_id({"from": "a@b.c"}, clock=lambda: 5.0001)
        second = derive_message_id({"from": "a@b.c"}, clock=lambda: 5.0009)

        assert first == second


@pytest.mark.emails
class TestIngest:
    def test_partial_attachment_failure(self, db_session):
        payload = _webhook_payload(
            attachments=[
                {"filename": "sketch.png", "content-type": "image/png", "size": 2048,
                 "url": "https://storage.example/sketch.png"},
                {"filename": "broken.pdf", "size": "lots"},
                "not-a-descriptor",
            ]
        )

        result = ingest_email(db_session, payload)

        assert result["stored"] == ["sketch.png"]
        assert [f["index"] for f in result["failed"]] == [1, 2]
        assert result["failed"][0]["filename"] == "broken.pdf"
        rows = db_session.scalars(select(EmailAttachment)).all()
        assert [a.filename for a in rows] == ["sketch.png"]
        assert db_session.get(Email, result["email"].id) is not None

    def test_defaults_for_sparse_payload(self, db_session):
        result = ingest_email(db_session, {}, clock=lambda: 2.0)
        email = result["email"]

        assert email.message_id == "unknown@sender.com-2000"
        assert email.subject == "(No Subject)"
        assert email.direction == "inbound"
        assert email.is_read is False
        assert email.to_addresses == []

    def test_fractional_timestamp_truncated(self, db_session):
        result = ingest_email(db_session, _webhook_payload(timestamp="1696262400.5"))

        assert result["email"].received_at == datetime.fromtimestamp(1696262400)

    def test_unreadable_timestamp_uses_now(self, db_session):
        before = datetime.now().replace(microsecond=0)

        result = ingest_email(db_session, _webhook_payload(timestamp="soon"))

        assert result["email"].received_at >= before


@pytest.mark.emails
class TestEmailWebhook:
    def test_json_webhook(self, client):
        response = client.post("/api/webhooks/email", json=_webhook_payload())

        assert response.status_code == 200
        data = json.loads(response.data)
        assert data["success"] is True
        assert data["message"] == "Email processed successfully"
        assert data["attachments"] == {"stored": [], "failed": []}

    def test_form_webhook_with_attachments(self, client, db_session):
        form = _webhook_payload(
            attachments=json.dumps([{"filename": "ref.jpg", "content-type": "image/jpeg",
                                     "size": "512", "url": "https://storage.example/ref.jpg"}]),
            **{"message-headers": json.dumps([["X-Mailer", "test"]])},
        )

        response = client.post("/api/webhooks/email", data=form)

        assert response.status_code == 200
        data = json.loads(response.data)
        email = db_session.get(Email, data["emailId"])
        assert email.headers == [["X-Mailer", "test"]]
        assert email.to_addresses == ["info@studio.example"]
        assert data["attachments"]["stored"] == ["ref.jpg"]

    def test_attachment_failure_reported(self, client):
        payload = _webhook_payload(attachments=[{"filename": "bad.bin", "size": "huge"}])

        response = client.post("/api/webhooks/email", json=payload)

        assert response.status_code == 200
        data = json.loads(response.data)
        assert data["message"] == "Email processed with 1 attachment failure(s)"
        assert data["attachments"]["failed"][0]["filename"] == "bad.bin"

    def test_fractional_timestamp(self, client, db_session):
        response = client.post("/api/webhooks/email", json=_webhook_payload(timestamp="1696262400.5"))

        assert response.status_code == 200
        email = db_session.get(Email, json.loads(response.data)["emailId"])
        assert email.received_at == datetime.fromtimestamp(1696262400)

    def test_duplicate_message_id(self, client):
        client.post("/api/webhooks/email", json=_webhook_payload())

        response = client.post("/api/webhooks/email", json=_webhook_payload())

        assert response.status_code == 500
        assert json.loads(response.data)["success"] is False

    def test_unsupported_content_type(self, client):
        response = client.post("/api/webhooks/email", data="hello", content_type="text/plain")

        assert response.status_code == 500
        assert json.loads(response.data)["error"] == "Unsupported content type"


@pytest.fixture
def inbox(db_session):
    """Three inbound emails: one unread, one read, one archived."""
    for n, (is_read, is_archived) in enumerate([(False, False), (True, False), (True, True)]):
        ingest_email(
            db_session,
            _webhook_payload(**{"Message-Id": f"<m{n}@mail>", "subject": f"Mail {n}",
                                "timestamp": str(1729425600 + n)}),
        )
        email = db_session.scalar(select(Email).where(Email.message_id == f"<m{n}@mail>"))
        email.is_read = is_read
        email.is_archived = is_archived
    db_session.commit()
    return {
        e.subject: e.id for e in db_session.scalars(select(Email)).all()
    }


@pytest.mark.emails
class TestInbox:
    def test_filters(self, client, desk_headers, inbox):
        everything = json.loads(client.get("/api/emails", headers=desk_headers).data)
        unread = json.loads(client.get("/api/emails?filter=unread", headers=desk_headers).data)
        archived = json.loads(client.get("/api/emails?filter=archived", headers=desk_headers).data)

        assert [e["subject"] for e in everything["emails"]] == ["Mail 1", "Mail 0"]
        assert everything["unread_count"] == 1
        assert [e["subject"] for e in unread["emails"]] == ["Mail 0"]
        assert [e["subject"] for e in archived["emails"]] == ["Mail 2"]

    def test_bad_filter(self, client, desk_headers):
        response = client.get("/api/emails?filter=spam", headers=desk_headers)

        assert response.status_code == 400

    def test_search(self, client, desk_headers, inbox):
        data = json.loads(client.get("/api/emails", query_string={"q": "mail 0"}, headers=desk_headers).data)

        assert data["results_found"] == 1

    def test_open_marks_read(self, client, desk_headers, inbox):
        response = client.get(f"/api/emails/{inbox['Mail 0']}", headers=desk_headers)

        assert response.status_code == 200
        data = json.loads(response.data)
        assert data["is_read"] is True
        assert data["attachments"] == []

    def test_mark_unread(self, client, desk_headers, inbox):
        response = client.post(
            f"/api/emails/{inbox['Mail 1']}/read", json={"is_read": False}, headers=desk_headers
        )

        assert json.loads(response.data)["is_read"] is False

    def test_archive_toggles(self, client, desk_headers, inbox):
        url = f"/api/emails/{inbox['Mail 0']}/archive"

        first = json.loads(client.post(url, headers=desk_headers).data)
        second = json.loads(client.post(url, headers=desk_headers).data)

        assert first["is_archived"] is True
        assert second["is_archived"] is False

    def test_unknown_email(self, client, desk_headers):
        response = client.get("/api/emails/nope", headers=desk_headers)

        assert response.status_code == 404

    def test_admin_deletes_with_attachments(self, client, admin_headers, db_session):
        result = ingest_email(
            db_session, _webhook_payload(attachments=[{"filename": "a.png", "size": 1}])
        )
        email_id = result["email"].id

        response = client.delete(f"/api/emails/{email_id}", headers=admin_headers)

        assert response.status_code == 200
        assert db_session.get(Email, email_id) is None
        assert db_session.scalars(select(EmailAttachment)).all() == []


@pytest.mark.emails
class TestSendEmail:
    def test_send_stores_outbound_copy(self, client, desk_headers, sent_emails):
        response = client.post(
            "/api/emails/send",
            json={"to": "client@example.com", "subject": "Your booking", "text": "See you soon"},
            headers=desk_headers,
        )

        assert response.status_code == 201
        data = json.loads(response.data)
        assert data["email"]["direction"] == "outbound"
        assert data["email"]["message_id"] == "re_1"
        assert data["email"]["to_addresses"] == ["client@example.com"]
        assert sent_emails[0]["text"] == "See you soon"

    def test_send_requires_body(self, client, desk_headers, sent_emails):
        response = client.post(
            "/api/emails/send", json={"to": "client@example.com"}, headers=desk_headers
        )

        assert response.status_code == 400
        assert sent_emails == []

    def test_provider_failure(self, client, desk_headers, monkeypatch):
        def boom(params):
            raise RuntimeError("provider down")

        monkeypatch.setattr(resend.Emails, "send", boom)

        response = client.post(
            "/api/emails/send",
            json={"to": ["client@example.com"], "subject": "Hi", "html": "<p>Hi</p>"},
            headers=desk_headers,
        )

        assert response.status_code == 500
        assert json.loads(response.data)["error"] == "provider down"
