"""Create receipt ledger, roster and account tables.

Revision ID: 001_create_receipt_ledger
Revises:
Create Date: 2026-10-17
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_create_receipt_ledger"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


settlement_phase_enum = sa.Enum("claiming", "finalized", name="settlement_phase")
archive_reason_enum = sa.Enum("manual", "auto_settled", name="archive_reason")
payment_status_enum = sa.Enum("pending", "confirmed", name="payment_status")


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.func.now(),
    )


def upgrade() -> None:
    op.create_table(
        "receipts",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("owner_token_identifier", sa.String(length=320), nullable=True),
        sa.Column("owner_subject", sa.String(length=320), nullable=True),
        sa.Column("owner_issuer", sa.String(length=320), nullable=True),
        sa.Column("guest_device_id", sa.String(length=36), nullable=True),
        sa.Column("client_receipt_id", sa.String(length=120), nullable=False),
        sa.Column("share_code", sa.String(length=6), nullable=False),
        sa.Column("legacy_payload", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        sa.Column("settlement_phase", settlement_phase_enum, nullable=True),
        sa.Column("finalized_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("archived_reason", archive_reason_enum, nullable=True),
        sa.Column("receipt_total", sa.Numeric(12, 2), nullable=True),
        sa.Column("subtotal", sa.Numeric(12, 2), nullable=True),
        sa.Column("tax", sa.Numeric(12, 2), nullable=True),
        sa.Column("gratuity", sa.Numeric(12, 2), nullable=True),
        sa.Column("extra_fees_total", sa.Numeric(12, 2), nullable=True),
        sa.Column("other_fees", sa.Numeric(12, 2), nullable=True),
        sa.Column("gratuity_percent", sa.Numeric(7, 2), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.CheckConstraint(
            """
            (owner_token_identifier IS NOT NULL AND guest_device_id IS NULL)
            OR
            (owner_token_identifier IS NULL AND guest_device_id IS NOT NULL)
            """,
            name="ck_receipts_single_owner_mode",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "uq_receipts_share_code", "receipts", ["share_code"], unique=True
    )
    op.create_index(
        "uq_receipts_owner_client_receipt_id",
        "receipts",
        ["owner_token_identifier", "client_receipt_id"],
        unique=True,
    )
    op.create_index(
        "uq_receipts_guest_client_receipt_id",
        "receipts",
        ["guest_device_id", "client_receipt_id"],
        unique=True,
    )
    op.create_index(
        "ix_receipts_owner_active_created_at",
        "receipts",
        ["owner_token_identifier", "is_active", "created_at"],
    )
    op.create_index(
        "ix_receipts_guest_active_created_at",
        "receipts",
        ["guest_device_id", "is_active", "created_at"],
    )
    op.create_index("ix_receipts_created_at", "receipts", ["created_at"])

    op.create_table(
        "receipt_items",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("receipt_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("client_item_id", sa.String(length=120), nullable=True),
        sa.Column("name", sa.String(length=280), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False),
        _timestamp("created_at"),
        sa.CheckConstraint("quantity > 0", name="ck_receipt_items_quantity_positive"),
        sa.ForeignKeyConstraint(["receipt_id"], ["receipts.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_receipt_items_receipt_sort_order",
        "receipt_items",
        ["receipt_id", "sort_order"],
    )

    op.create_table(
        "receipt_claims",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("receipt_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("item_key", sa.String(length=160), nullable=False),
        sa.Column("participant_key", sa.String(length=330), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        _timestamp("updated_at"),
        sa.CheckConstraint(
            "quantity > 0", name="ck_receipt_claims_quantity_positive"
        ),
        sa.ForeignKeyConstraint(["receipt_id"], ["receipts.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "uq_receipt_claims_receipt_item_participant",
        "receipt_claims",
        ["receipt_id", "item_key", "participant_key"],
        unique=True,
    )
    op.create_index(
        "ix_receipt_claims_receipt_participant",
        "receipt_claims",
        ["receipt_id", "participant_key"],
    )

    op.create_table(
        "receipt_participants",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("receipt_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("participant_key", sa.String(length=330), nullable=False),
        sa.Column("token_identifier", sa.String(length=320), nullable=True),
        sa.Column("guest_device_id", sa.String(length=36), nullable=True),
        sa.Column("display_name", sa.String(length=120), nullable=True),
        sa.Column(
            "is_submitted",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("false"),
        ),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("payment_status", payment_status_enum, nullable=True),
        sa.Column("payment_method", sa.String(length=32), nullable=True),
        sa.Column("payment_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("payment_marked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("payment_confirmed_at", sa.DateTime(timezone=True), nullable=True),
        _timestamp("joined_at"),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(["receipt_id"], ["receipts.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "uq_receipt_participants_receipt_participant_key",
        "receipt_participants",
        ["receipt_id", "participant_key"],
        unique=True,
    )
    op.create_index(
        "ix_receipt_participants_receipt_joined_at",
        "receipt_participants",
        ["receipt_id", "joined_at"],
    )
    op.create_index(
        "ix_receipt_participants_token_identifier_joined_at",
        "receipt_participants",
        ["token_identifier", "joined_at"],
    )
    op.create_index(
        "ix_receipt_participants_guest_device_id_joined_at",
        "receipt_participants",
        ["guest_device_id", "joined_at"],
    )

    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("token_identifier", sa.String(length=320), nullable=False),
        sa.Column("subject", sa.String(length=320), nullable=False),
        sa.Column("issuer", sa.String(length=320), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=True),
        sa.Column("email", sa.String(length=320), nullable=True),
        sa.Column("preferred_payment_method", sa.String(length=32), nullable=True),
        sa.Column("absorb_extra_cents", sa.Boolean(), nullable=True),
        sa.Column("venmo_enabled", sa.Boolean(), nullable=True),
        sa.Column("venmo_username", sa.String(length=120), nullable=True),
        sa.Column("cash_app_enabled", sa.Boolean(), nullable=True),
        sa.Column("cash_app_cashtag", sa.String(length=120), nullable=True),
        sa.Column("zelle_enabled", sa.Boolean(), nullable=True),
        sa.Column("zelle_contact", sa.String(length=320), nullable=True),
        sa.Column("cash_apple_pay_enabled", sa.Boolean(), nullable=True),
        sa.Column("free_bills_used_in_period", sa.Integer(), nullable=True),
        sa.Column(
            "current_period_start_at", sa.DateTime(timezone=True), nullable=True
        ),
        sa.Column("current_period_end_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("bill_credits_balance", sa.Integer(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        _timestamp("last_seen_at"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "uq_users_token_identifier", "users", ["token_identifier"], unique=True
    )
    op.create_index("ix_users_created_at", "users", ["created_at"])

    op.create_table(
        "bill_credit_purchases",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("token_identifier", sa.String(length=320), nullable=False),
        sa.Column("transaction_id", sa.String(length=160), nullable=False),
        sa.Column("product_id", sa.String(length=160), nullable=False),
        sa.Column("credits_granted", sa.Integer(), nullable=False),
        sa.Column("purchased_at", sa.DateTime(timezone=True), nullable=False),
        _timestamp("created_at"),
        sa.CheckConstraint(
            "credits_granted > 0",
            name="ck_bill_credit_purchases_credits_positive",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "uq_bill_credit_purchases_transaction_id",
        "bill_credit_purchases",
        ["transaction_id"],
        unique=True,
    )


def downgrade() -> None:
    op.drop_index(
        "uq_bill_credit_purchases_transaction_id", table_name="bill_credit_purchases"
    )
    op.drop_table("bill_credit_purchases")
    op.drop_index("ix_users_created_at", table_name="users")
    op.drop_index("uq_users_token_identifier", table_name="users")
    op.drop_table("users")
    for index_name in (
        "ix_receipt_participants_guest_device_id_joined_at",
        "ix_receipt_participants_token_identifier_joined_at",
        "ix_receipt_participants_receipt_joined_at",
        "uq_receipt_participants_receipt_participant_key",
    ):
        op.drop_index(index_name, table_name="receipt_participants")
    op.drop_table("receipt_participants")
    op.drop_index("ix_receipt_claims_receipt_participant", table_name="receipt_claims")
    op.drop_index(
        "uq_receipt_claims_receipt_item_participant", table_name="receipt_claims"
    )
    op.drop_table("receipt_claims")
    op.drop_index("ix_receipt_items_receipt_sort_order", table_name="receipt_items")
    op.drop_table("receipt_items")
    for index_name in (
        "ix_receipts_created_at",
        "ix_receipts_guest_active_created_at",
        "ix_receipts_owner_active_created_at",
        "uq_receipts_guest_client_receipt_id",
        "uq_receipts_owner_client_receipt_id",
        "uq_receipts_share_code",
    ):
        op.drop_index(index_name, table_name="receipts")
    op.drop_table("receipts")

    bind = op.get_bind()
    payment_status_enum.drop(bind, checkfirst=True)
    archive_reason_enum.drop(bind, checkfirst=True)
    settlement_phase_enum.drop(bind, checkfirst=True)
