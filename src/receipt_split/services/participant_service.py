"""Participant registry: roster membership and submission state."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Protocol
from uuid import UUID

from receipt_split.db.models.receipt import Receipt
from receipt_split.db.models.receipt_participant import ReceiptParticipant
from receipt_split.domain.clock import utc_now
from receipt_split.domain.errors import (
    InvalidRequestError,
    ParticipantNotFoundError,
    compose_error_message,
)
from receipt_split.domain.identity import (
    ParticipantIdentity,
    RequestContext,
    host_participant_key,
    normalized_display_name,
    resolve_participant_for_mutation,
)
from receipt_split.services.receipt_guards import (
    ReceiptLookup,
    require_active_receipt,
    require_claiming,
    require_host,
)

logger = logging.getLogger(__name__)


class SessionProtocol(Protocol):
    """Subset of SQLAlchemy session APIs used by this service."""

    def commit(self) -> None: ...
    def rollback(self) -> None: ...


class ParticipantRepositoryProtocol(Protocol):
    """Participant repository contract consumed by service."""

    def get(
        self, receipt_id: UUID, participant_key: str
    ) -> ReceiptParticipant | None: ...

    def add(self, participant: ReceiptParticipant) -> ReceiptParticipant: ...

    def delete(self, participant: ReceiptParticipant) -> None: ...


class ClaimRepositoryProtocol(Protocol):
    def delete_for_participant(self, receipt_id: UUID, participant_key: str) -> int: ...


class ParticipantService:
    """Keeps one roster row per identity per receipt."""

    def __init__(
        self,
        *,
        receipt_repository: ReceiptLookup,
        participant_repository: ParticipantRepositoryProtocol,
        claim_repository: ClaimRepositoryProtocol,
        session: SessionProtocol,
    ) -> None:
        self._receipt_repository = receipt_repository
        self._participant_repository = participant_repository
        self._claim_repository = claim_repository
        self._session = session

    def upsert(
        self,
        receipt: Receipt,
        participant: ParticipantIdentity,
        now: datetime,
    ) -> ReceiptParticipant:
        """Insert or refresh the caller's roster row. The caller commits.

        ``joined_at`` of the first join is kept and a user-chosen name wins
        over the identity's name.
        """

        row = self._participant_repository.get(receipt.id, participant.participant_key)
        if row is not None:
            row.token_identifier = participant.token_identifier
            row.guest_device_id = participant.guest_device_id
            row.display_name = (
                normalized_display_name(row.display_name) or participant.display_name
            )
            row.updated_at = now
            return row

        row = ReceiptParticipant(
            receipt_id=receipt.id,
            participant_key=participant.participant_key,
            token_identifier=participant.token_identifier,
            guest_device_id=participant.guest_device_id,
            display_name=participant.display_name,
            is_submitted=False,
            joined_at=now,
            updated_at=now,
        )
        self._participant_repository.add(row)
        logger.info(
            "participant_joined",
            extra={
                "receipt_id": str(receipt.id),
                "participant_key": participant.participant_key,
            },
        )
        return row

    def set_submission_status(
        self,
        code: str,
        context: RequestContext,
        *,
        is_submitted: bool,
    ) -> ReceiptParticipant:
        try:
            receipt = require_active_receipt(self._receipt_repository, code)
            require_claiming(receipt)
            participant = resolve_participant_for_mutation(context)
            now = utc_now()
            row = self.upsert(receipt, participant, now)
            row.is_submitted = is_submitted
            row.submitted_at = now if is_submitted else None
            if not is_submitted:
                row.payment_status = None
                row.payment_method = None
                row.payment_amount = None
                row.payment_marked_at = None
                row.payment_confirmed_at = None
            row.updated_at = now
            self._session.commit()
            logger.info(
                "participant_submission_changed",
                extra={
                    "receipt_id": str(receipt.id),
                    "participant_key": participant.participant_key,
                    "is_submitted": is_submitted,
                },
            )
            return row
        except Exception:
            self._session.rollback()
            raise

    def update_display_name(
        self,
        code: str,
        context: RequestContext,
        display_name: str,
    ) -> ReceiptParticipant:
        try:
            receipt = require_active_receipt(self._receipt_repository, code)
            require_claiming(receipt)
            participant = resolve_participant_for_mutation(context)
            now = utc_now()
            row = self.upsert(receipt, participant, now)
            row.display_name = (
                normalized_display_name(display_name) or participant.display_name
            )
            row.updated_at = now
            self._session.commit()
            return row
        except Exception:
            self._session.rollback()
            raise

    def remove_participant(
        self,
        code: str,
        context: RequestContext,
        participant_key: str,
    ) -> bool:
        try:
            receipt = require_active_receipt(self._receipt_repository, code)
            require_claiming(receipt)
            require_host(receipt, context)
            host_key = host_participant_key(
                owner_token_identifier=receipt.owner_token_identifier,
                guest_device_id=receipt.guest_device_id,
            )
            if participant_key == host_key:
                raise InvalidRequestError(
                    message=compose_error_message(
                        cause="The host can't be removed from their own receipt.",
                        action="Pick a participant other than the host.",
                    )
                )

            row = self._participant_repository.get(receipt.id, participant_key)
            if row is None:
                self._session.commit()
                return False

            removed_claims = self._claim_repository.delete_for_participant(
                receipt.id, participant_key
            )
            self._participant_repository.delete(row)
            self._session.commit()
            logger.info(
                "participant_removed",
                extra={
                    "receipt_id": str(receipt.id),
                    "participant_key": participant_key,
                    "removed_claims": removed_claims,
                },
            )
            return True
        except Exception:
            self._session.rollback()
            raise

    def require_row(self, receipt: Receipt, participant_key: str) -> ReceiptParticipant:
        row = self._participant_repository.get(receipt.id, participant_key)
        if row is None:
            raise ParticipantNotFoundError(
                details={"participant_key": participant_key}
            )
        return row
