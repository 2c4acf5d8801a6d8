"""ORM models for the receipt_split domain."""

from receipt_split.db.models.bill_credit_purchase import BillCreditPurchase
from receipt_split.db.models.receipt import ArchiveReason, Receipt, SettlementPhase
from receipt_split.db.models.receipt_claim import ReceiptClaim
from receipt_split.db.models.receipt_item import ReceiptItem
from receipt_split.db.models.receipt_participant import (
    PaymentStatus,
    ReceiptParticipant,
)
from receipt_split.db.models.user import User

__all__ = [
    "ArchiveReason",
    "BillCreditPurchase",
    "PaymentStatus",
    "Receipt",
    "ReceiptClaim",
    "ReceiptItem",
    "ReceiptParticipant",
    "SettlementPhase",
    "User",
]
