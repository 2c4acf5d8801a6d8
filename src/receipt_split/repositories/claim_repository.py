"""Receipt claim persistence operations."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from receipt_split.db.models.receipt_claim import ReceiptClaim


class ClaimRepository:
    """Repository for per-participant item claims."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def list_for_item_for_update(
        self, receipt_id: UUID, item_key: str
    ) -> list[ReceiptClaim]:
        statement = (
            select(ReceiptClaim)
            .where(
                ReceiptClaim.receipt_id == receipt_id,
                ReceiptClaim.item_key == item_key,
            )
            .order_by(ReceiptClaim.participant_key.asc())
            .with_for_update()
        )
        return list(self._session.scalars(statement).all())

    def list_for_receipt(self, receipt_id: UUID) -> list[ReceiptClaim]:
        statement = (
            select(ReceiptClaim)
            .where(ReceiptClaim.receipt_id == receipt_id)
            .order_by(ReceiptClaim.item_key.asc(), ReceiptClaim.participant_key.asc())
        )
        return list(self._session.scalars(statement).all())

    def list_for_participant_for_update(
        self, receipt_id: UUID, participant_key: str
    ) -> list[ReceiptClaim]:
        statement = (
            select(ReceiptClaim)
            .where(
                ReceiptClaim.receipt_id == receipt_id,
                ReceiptClaim.participant_key == participant_key,
            )
            .with_for_update()
        )
        return list(self._session.scalars(statement).all())

    def get(
        self, receipt_id: UUID, item_key: str, participant_key: str
    ) -> ReceiptClaim | None:
        statement = select(ReceiptClaim).where(
            ReceiptClaim.receipt_id == receipt_id,
            ReceiptClaim.item_key == item_key,
            ReceiptClaim.participant_key == participant_key,
        )
        return self._session.scalar(statement)

    def add(self, claim: ReceiptClaim) -> ReceiptClaim:
        self._session.add(claim)
        self._session.flush()
        return claim

    def delete(self, claim: ReceiptClaim) -> None:
        self._session.delete(claim)
        self._session.flush()

    def delete_for_participant(self, receipt_id: UUID, participant_key: str) -> int:
        result = self._session.execute(
            delete(ReceiptClaim).where(
                ReceiptClaim.receipt_id == receipt_id,
                ReceiptClaim.participant_key == participant_key,
            )
        )
        return int(result.rowcount or 0)

    def flush(self) -> None:
        self._session.flush()
