"""Account profile ORM model with billing usage counters."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import Boolean, DateTime, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from receipt_split.db.base import Base


class User(Base):
    """Authenticated account keyed by the verified token identifier."""

    __tablename__ = "users"
    __table_args__ = (
        Index("uq_users_token_identifier", "token_identifier", unique=True),
        Index("ix_users_created_at", "created_at"),
    )

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    token_identifier: Mapped[str] = mapped_column(String(320), nullable=False)
    subject: Mapped[str] = mapped_column(String(320), nullable=False)
    issuer: Mapped[str] = mapped_column(String(320), nullable=False)
    name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    preferred_payment_method: Mapped[str | None] = mapped_column(
        String(32), nullable=True
    )
    absorb_extra_cents: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    venmo_enabled: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    venmo_username: Mapped[str | None] = mapped_column(String(120), nullable=True)
    cash_app_enabled: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    cash_app_cashtag: Mapped[str | None] = mapped_column(String(120), nullable=True)
    zelle_enabled: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    zelle_contact: Mapped[str | None] = mapped_column(String(320), nullable=True)
    cash_apple_pay_enabled: Mapped[bool | None] = mapped_column(
        Boolean, nullable=True
    )
    free_bills_used_in_period: Mapped[int | None] = mapped_column(
        Integer, nullable=True
    )
    current_period_start_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    current_period_end_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    bill_credits_balance: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    last_seen_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
