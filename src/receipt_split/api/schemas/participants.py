"""Schemas for participant registry endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from receipt_split.db.models.receipt_participant import ReceiptParticipant


class SubmissionRequest(BaseModel):
    is_submitted: bool


class DisplayNameRequest(BaseModel):
    display_name: str = Field(max_length=120)


class ParticipantResponse(BaseModel):
    """Caller's roster row."""

    participant_key: str
    display_name: str | None
    is_submitted: bool
    submitted_at: datetime | None
    payment_status: str | None
    payment_method: str | None
    joined_at: datetime

    @classmethod
    def from_model(cls, participant: ReceiptParticipant) -> ParticipantResponse:
        return cls(
            participant_key=participant.participant_key,
            display_name=participant.display_name,
            is_submitted=participant.is_submitted is True,
            submitted_at=participant.submitted_at,
            payment_status=(
                participant.payment_status.value if participant.payment_status else None
            ),
            payment_method=participant.payment_method,
            joined_at=participant.joined_at,
        )


class RemoveParticipantResponse(BaseModel):
    removed: bool
