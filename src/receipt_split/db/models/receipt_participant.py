"""Receipt participant ORM model."""

from __future__ import annotations

import enum
from datetime import datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Index, Numeric, String
from sqlalchemy import func
from sqlalchemy.orm import Mapped, mapped_column

from receipt_split.db.base import Base


class PaymentStatus(enum.StrEnum):
    """Payment states a participant moves through after finalization."""

    PENDING = "pending"
    CONFIRMED = "confirmed"


class ReceiptParticipant(Base):
    """One identity on the roster of one receipt."""

    __tablename__ = "receipt_participants"
    __table_args__ = (
        Index(
            "uq_receipt_participants_receipt_participant_key",
            "receipt_id",
            "participant_key",
            unique=True,
        ),
        Index("ix_receipt_participants_receipt_joined_at", "receipt_id", "joined_at"),
        Index(
            "ix_receipt_participants_token_identifier_joined_at",
            "token_identifier",
            "joined_at",
        ),
        Index(
            "ix_receipt_participants_guest_device_id_joined_at",
            "guest_device_id",
            "joined_at",
        ),
    )

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    receipt_id: Mapped[UUID] = mapped_column(
        ForeignKey("receipts.id", ondelete="CASCADE"),
        nullable=False,
    )
    participant_key: Mapped[str] = mapped_column(String(330), nullable=False)
    token_identifier: Mapped[str | None] = mapped_column(String(320), nullable=True)
    guest_device_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    display_name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    is_submitted: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default="false",
    )
    submitted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    payment_status: Mapped[PaymentStatus | None] = mapped_column(
        Enum(
            PaymentStatus,
            name="payment_status",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
            validate_strings=True,
        ),
        nullable=True,
    )
    payment_method: Mapped[str | None] = mapped_column(String(32), nullable=True)
    payment_amount: Mapped[Decimal | None] = mapped_column(
        Numeric(12, 2), nullable=True
    )
    payment_marked_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    payment_confirmed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
