"""Receipt participant persistence operations."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from receipt_split.db.models.receipt_participant import ReceiptParticipant


class ParticipantRepository:
    """Repository for receipt rosters."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, receipt_id: UUID, participant_key: str) -> ReceiptParticipant | None:
        statement = select(ReceiptParticipant).where(
            ReceiptParticipant.receipt_id == receipt_id,
            ReceiptParticipant.participant_key == participant_key,
        )
        return self._session.scalar(statement)

    def list_for_receipt(self, receipt_id: UUID) -> list[ReceiptParticipant]:
        statement = (
            select(ReceiptParticipant)
            .where(ReceiptParticipant.receipt_id == receipt_id)
            .order_by(ReceiptParticipant.joined_at.asc(), ReceiptParticipant.id.asc())
        )
        return list(self._session.scalars(statement).all())

    def list_recent_for_token(
        self, token_identifier: str, limit: int
    ) -> list[ReceiptParticipant]:
        statement = (
            select(ReceiptParticipant)
            .where(ReceiptParticipant.token_identifier == token_identifier)
            .order_by(ReceiptParticipant.joined_at.desc())
            .limit(limit)
        )
        return list(self._session.scalars(statement).all())

    def list_recent_for_guest(
        self, guest_device_id: str, limit: int
    ) -> list[ReceiptParticipant]:
        statement = (
            select(ReceiptParticipant)
            .where(ReceiptParticipant.guest_device_id == guest_device_id)
            .order_by(ReceiptParticipant.joined_at.desc())
            .limit(limit)
        )
        return list(self._session.scalars(statement).all())

    def list_for_guest_device_for_update(
        self, guest_device_id: str
    ) -> list[ReceiptParticipant]:
        statement = (
            select(ReceiptParticipant)
            .where(ReceiptParticipant.guest_device_id == guest_device_id)
            .order_by(ReceiptParticipant.joined_at.asc())
            .with_for_update()
        )
        return list(self._session.scalars(statement).all())

    def add(self, participant: ReceiptParticipant) -> ReceiptParticipant:
        self._session.add(participant)
        self._session.flush()
        return participant

    def delete(self, participant: ReceiptParticipant) -> None:
        self._session.delete(participant)
        self._session.flush()

    def reset_for_claiming(self, receipt_id: UUID, now: datetime) -> None:
        """Clear submission and payment state of every roster row."""

        self._session.execute(
            update(ReceiptParticipant)
            .where(ReceiptParticipant.receipt_id == receipt_id)
            .values(
                is_submitted=False,
                submitted_at=None,
                payment_status=None,
                payment_method=None,
                payment_amount=None,
                payment_marked_at=None,
                payment_confirmed_at=None,
                updated_at=now,
            )
            .execution_options(synchronize_session="fetch")
        )
