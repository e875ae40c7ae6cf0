import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DECIMAL,
    Date,
    DateTime,
    ForeignKeyConstraint,
    Index,
    Integer,
    JSON,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, declarative_base, mapped_column, relationship

Base = declarative_base()
metadata = Base.metadata


def _uuid():
    return str(uuid.uuid4())


class Staff(Base):
    __tablename__ = "staff"
    __table_args__ = (
        Index("idx_staff_username", "username", unique=True),
        Index("idx_staff_role", "role"),
    )

    id = mapped_column(String(36), primary_key=True, default=_uuid)
    username = mapped_column(String(100), nullable=False)
    name = mapped_column(String(200), nullable=False)
    email = mapped_column(String(255))
    password_hash = mapped_column(String(72), nullable=False)
    role = mapped_column(String(32), nullable=False, server_default=text("'staff'"))
    permissions = mapped_column(JSON, nullable=False, default=list)
    created_at = mapped_column(DateTime, nullable=False, default=datetime.now)

    reservations: Mapped[List["Reservation"]] = relationship(
        "Reservation", uselist=True, back_populates="artist"
    )


class Reservation(Base):
    __tablename__ = "reservations"
    __table_args__ = (
        ForeignKeyConstraint(
            ["artist_id"], ["staff.id"], ondelete="SET NULL", name="fk_reservation_artist"
        ),
        Index("reservation_number", "reservation_number", unique=True),
        Index("idx_reservations_appointment_date", "appointment_date"),
        Index("idx_reservations_appointment_time", "appointment_time"),
        Index("idx_reservations_artist_id", "artist_id"),
        Index("idx_reservations_created_at", "created_at"),
    )

    id = mapped_column(String(36), primary_key=True, default=_uuid)
    reservation_number = mapped_column(Integer, nullable=False)
    first_name = mapped_column(String(100), nullable=False)
    last_name = mapped_column(String(100), nullable=False)
    phone = mapped_column(String(50), nullable=False)
    appointment_date = mapped_column(Date, nullable=False)
    appointment_time = mapped_column(String(5), nullable=False)
    total_price = mapped_column(DECIMAL(10, 2), nullable=False)
    deposit_paid = mapped_column(DECIMAL(10, 2), nullable=False, default=0)
    is_paid = mapped_column(Boolean, nullable=False, default=False)
    deposit_paid_status = mapped_column(Boolean, nullable=False, default=False)
    rest_paid_status = mapped_column(Boolean, nullable=False, default=False)
    artist_id = mapped_column(String(36))
    notes = mapped_column(Text)
    design_images = mapped_column(JSON, nullable=False, default=list)
    created_at = mapped_column(DateTime, nullable=False, default=datetime.now)

    artist: Mapped[Optional["Staff"]] = relationship(
        "Staff", back_populates="reservations"
    )


class Email(Base):
    __tablename__ = "emails"
    __table_args__ = (
        CheckConstraint(
            "direction IN ('inbound', 'outbound')", name="ck_emails_direction"
        ),
        Index("message_id", "message_id", unique=True),
        Index("idx_emails_from_address", "from_address"),
        Index("idx_emails_received_at", "received_at"),
        Index("idx_emails_is_read", "is_read"),
        Index("idx_emails_is_archived", "is_archived"),
        Index("idx_emails_direction_received", "direction", "received_at"),
    )

    id = mapped_column(String(36), primary_key=True, default=_uuid)
    message_id = mapped_column(String(255), nullable=False)
    from_address = mapped_column(String(255), nullable=False)
    from_name = mapped_column(String(255))
    to_addresses = mapped_column(JSON, nullable=False, default=list)
    cc_addresses = mapped_column(JSON)
    bcc_addresses = mapped_column(JSON)
    subject = mapped_column(String(998), nullable=False, default="")
    body_text = mapped_column(Text)
    body_html = mapped_column(Text)
    headers = mapped_column(JSON)
    is_read = mapped_column(Boolean, nullable=False, default=False)
    is_archived = mapped_column(Boolean, nullable=False, default=False)
    direction = mapped_column(String(8), nullable=False)
    received_at = mapped_column(DateTime, nullable=False, default=datetime.now)
    created_at = mapped_column(DateTime, nullable=False, default=datetime.now)
    updated_at = mapped_column(
        DateTime, nullable=False, default=datetime.now, onupdate=datetime.now
    )

    attachments: Mapped[List["EmailAttachment"]] = relationship(
        "EmailAttachment",
        uselist=True,
        back_populates="email",
        cascade="all, delete-orphan",
    )


class EmailAttachment(Base):
    __tablename__ = "email_attachments"
    __table_args__ = (
        ForeignKeyConstraint(
            ["email_id"], ["emails.id"], ondelete="CASCADE", name="fk_attachment_email"
        ),
        Index("idx_email_attachments_email_id", "email_id"),
    )

    id = mapped_column(String(36), primary_key=True, default=_uuid)
    email_id = mapped_column(String(36), nullable=False)
    filename = mapped_column(String(255), nullable=False)
    content_type = mapped_column(String(255), nullable=False)
    size_bytes = mapped_column(Integer, nullable=False, default=0)
    storage_path = mapped_column(Text, nullable=False)
    created_at = mapped_column(DateTime, nullable=False, default=datetime.now)

    email: Mapped["Email"] = relationship("Email", back_populates="attachments")
