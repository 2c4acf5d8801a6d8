"""Receipt ORM model."""

from __future__ import annotations

import enum
from datetime import datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    Index,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from receipt_split.db.base import Base


class SettlementPhase(enum.StrEnum):
    """Lifecycle phases of a shared receipt."""

    CLAIMING = "claiming"
    FINALIZED = "finalized"


class ArchiveReason(enum.StrEnum):
    """Why a receipt stopped being active."""

    MANUAL = "manual"
    AUTO_SETTLED = "auto_settled"


class Receipt(Base):
    """One shared bill owned by an account or by an anonymous device."""

    __tablename__ = "receipts"
    __table_args__ = (
        CheckConstraint(
            """
            (owner_token_identifier IS NOT NULL AND guest_device_id IS NULL)
            OR
            (owner_token_identifier IS NULL AND guest_device_id IS NOT NULL)
            """,
            name="ck_receipts_single_owner_mode",
        ),
        Index("uq_receipts_share_code", "share_code", unique=True),
        Index(
            "uq_receipts_owner_client_receipt_id",
            "owner_token_identifier",
            "client_receipt_id",
            unique=True,
        ),
        Index(
            "uq_receipts_guest_client_receipt_id",
            "guest_device_id",
            "client_receipt_id",
            unique=True,
        ),
        Index(
            "ix_receipts_owner_active_created_at",
            "owner_token_identifier",
            "is_active",
            "created_at",
        ),
        Index(
            "ix_receipts_guest_active_created_at",
            "guest_device_id",
            "is_active",
            "created_at",
        ),
        Index("ix_receipts_created_at", "created_at"),
    )

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    owner_token_identifier: Mapped[str | None] = mapped_column(
        String(320), nullable=True
    )
    owner_subject: Mapped[str | None] = mapped_column(String(320), nullable=True)
    owner_issuer: Mapped[str | None] = mapped_column(String(320), nullable=True)
    guest_device_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    client_receipt_id: Mapped[str] = mapped_column(String(120), nullable=False)
    share_code: Mapped[str] = mapped_column(String(6), nullable=False)
    legacy_payload: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool | None] = mapped_column(
        Boolean,
        nullable=True,
        default=True,
    )
    settlement_phase: Mapped[SettlementPhase | None] = mapped_column(
        Enum(
            SettlementPhase,
            name="settlement_phase",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
            validate_strings=True,
        ),
        nullable=True,
    )
    finalized_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    archived_reason: Mapped[ArchiveReason | None] = mapped_column(
        Enum(
            ArchiveReason,
            name="archive_reason",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
            validate_strings=True,
        ),
        nullable=True,
    )
    receipt_total: Mapped[Decimal | None] = mapped_column(
        Numeric(12, 2), nullable=True
    )
    subtotal: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    tax: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    gratuity: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    extra_fees_total: Mapped[Decimal | None] = mapped_column(
        Numeric(12, 2), nullable=True
    )
    other_fees: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    gratuity_percent: Mapped[Decimal | None] = mapped_column(
        Numeric(7, 2), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    @property
    def active(self) -> bool:
        """Legacy rows without a stored flag count as active."""

        return self.is_active is not False

    @property
    def phase(self) -> SettlementPhase:
        return self.settlement_phase or SettlementPhase.CLAIMING
