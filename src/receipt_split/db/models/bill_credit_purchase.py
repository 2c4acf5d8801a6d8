"""Redeemed bill credit purchase ORM model."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, DateTime, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from receipt_split.db.base import Base


class BillCreditPurchase(Base):
    """Store transaction already converted into bill credits."""

    __tablename__ = "bill_credit_purchases"
    __table_args__ = (
        CheckConstraint(
            "credits_granted > 0",
            name="ck_bill_credit_purchases_credits_positive",
        ),
        Index("uq_bill_credit_purchases_transaction_id", "transaction_id", unique=True),
    )

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    token_identifier: Mapped[str] = mapped_column(String(320), nullable=False)
    transaction_id: Mapped[str] = mapped_column(String(160), nullable=False)
    product_id: Mapped[str] = mapped_column(String(160), nullable=False)
    credits_granted: Mapped[int] = mapped_column(Integer, nullable=False)
    purchased_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
