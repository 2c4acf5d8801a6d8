"""Receipt claim ORM model."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy import func
from sqlalchemy.orm import Mapped, mapped_column

from receipt_split.db.base import Base


class ReceiptClaim(Base):
    """Quantity of one item claimed by one participant."""

    __tablename__ = "receipt_claims"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_receipt_claims_quantity_positive"),
        Index(
            "uq_receipt_claims_receipt_item_participant",
            "receipt_id",
            "item_key",
            "participant_key",
            unique=True,
        ),
        Index(
            "ix_receipt_claims_receipt_participant",
            "receipt_id",
            "participant_key",
        ),
    )

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    receipt_id: Mapped[UUID] = mapped_column(
        ForeignKey("receipts.id", ondelete="CASCADE"),
        nullable=False,
    )
    item_key: Mapped[str] = mapped_column(String(160), nullable=False)
    participant_key: Mapped[str] = mapped_column(String(330), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
