"""Schemas for settlement endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from receipt_split.api.schemas.participants import ParticipantResponse
from receipt_split.db.models.receipt import Receipt
from receipt_split.domain.money import format_money
from receipt_split.services.settlement_service import (
    PaymentConfirmation,
    PaymentIntentResult,
)


class FinalizeResponse(BaseModel):
    code: str
    settlement_phase: str
    finalized_at: datetime | None

    @classmethod
    def from_model(cls, receipt: Receipt) -> FinalizeResponse:
        return cls(
            code=receipt.share_code,
            settlement_phase=receipt.phase.value,
            finalized_at=receipt.finalized_at,
        )


class PaymentIntentRequest(BaseModel):
    payment_method: str = Field(min_length=1, max_length=32)


class PaymentIntentResponse(BaseModel):
    participant: ParticipantResponse
    amount_due: str

    @classmethod
    def from_result(cls, result: PaymentIntentResult) -> PaymentIntentResponse:
        return cls(
            participant=ParticipantResponse.from_model(result.participant),
            amount_due=format_money(result.amount_due),
        )


class ConfirmPaymentRequest(BaseModel):
    participant_key: str = Field(min_length=1, max_length=330)


class ConfirmPaymentResponse(BaseModel):
    participant: ParticipantResponse
    receipt_archived: bool

    @classmethod
    def from_result(cls, result: PaymentConfirmation) -> ConfirmPaymentResponse:
        return cls(
            participant=ParticipantResponse.from_model(result.participant),
            receipt_archived=result.receipt_archived,
        )
