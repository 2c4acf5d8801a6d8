"""API request and response schemas."""

from receipt_split.api.schemas.claims import LiveViewResponse, UpdateClaimResponse
from receipt_split.api.schemas.participants import ParticipantResponse
from receipt_split.api.schemas.receipts import (
    CreateReceiptRequest,
    CreateReceiptResponse,
    ReceiptResponse,
)
from receipt_split.api.schemas.users import UsageSummaryResponse, UserResponse

__all__ = [
    "CreateReceiptRequest",
    "CreateReceiptResponse",
    "LiveViewResponse",
    "ParticipantResponse",
    "ReceiptResponse",
    "UpdateClaimResponse",
    "UsageSummaryResponse",
    "UserResponse",
]
