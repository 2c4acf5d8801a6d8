"""Guest to authenticated account migration."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol
from uuid import UUID

from receipt_split.db.models.receipt import Receipt
from receipt_split.db.models.receipt_claim import ReceiptClaim
from receipt_split.db.models.receipt_participant import ReceiptParticipant
from receipt_split.domain.clock import as_utc, utc_now
from receipt_split.domain.identity import (
    SELF_DISPLAY_NAME,
    VerifiedIdentity,
    auth_participant_key,
    guest_participant_key,
    normalized_display_name,
    require_guest_device_id,
)

logger = logging.getLogger(__name__)


class SessionProtocol(Protocol):
    """Subset of SQLAlchemy session APIs used by this service."""

    def commit(self) -> None: ...
    def rollback(self) -> None: ...


class ReceiptRepositoryProtocol(Protocol):
    def list_for_guest_owner(self, guest_device_id: str) -> list[Receipt]: ...

    def owner_has_client_receipt_id(
        self,
        *,
        owner_token_identifier: str,
        client_receipt_id: str,
    ) -> bool: ...


class ParticipantRepositoryProtocol(Protocol):
    def get(
        self, receipt_id: UUID, participant_key: str
    ) -> ReceiptParticipant | None: ...

    def list_for_guest_device_for_update(
        self, guest_device_id: str
    ) -> list[ReceiptParticipant]: ...

    def delete(self, participant: ReceiptParticipant) -> None: ...


class ClaimRepositoryProtocol(Protocol):
    def list_for_participant_for_update(
        self, receipt_id: UUID, participant_key: str
    ) -> list[ReceiptClaim]: ...

    def get(
        self, receipt_id: UUID, item_key: str, participant_key: str
    ) -> ReceiptClaim | None: ...

    def delete(self, claim: ReceiptClaim) -> None: ...

    def flush(self) -> None: ...


class UserUpserter(Protocol):
    def upsert_from_identity(
        self, identity: VerifiedIdentity, now: datetime
    ) -> object: ...


@dataclass(slots=True, frozen=True)
class MigrationResult:
    migrated_receipt_count: int
    migrated_participant_count: int
    migrated_claim_count: int


class MigrationService:
    """Re-keys everything a guest device did onto a signed-in identity.

    Running it again migrates nothing. Receipts that stay on the device
    because the account already holds their client receipt id keep their
    guest roster rows and claims.
    """

    def __init__(
        self,
        *,
        receipt_repository: ReceiptRepositoryProtocol,
        participant_repository: ParticipantRepositoryProtocol,
        claim_repository: ClaimRepositoryProtocol,
        user_service: UserUpserter,
        session: SessionProtocol,
    ) -> None:
        self._receipt_repository = receipt_repository
        self._participant_repository = participant_repository
        self._claim_repository = claim_repository
        self._user_service = user_service
        self._session = session

    def migrate(
        self,
        identity: VerifiedIdentity,
        guest_device_id: str | None,
    ) -> MigrationResult:
        device_id = require_guest_device_id(guest_device_id)
        guest_key = guest_participant_key(device_id)
        auth_key = auth_participant_key(identity.token_identifier)

        try:
            now = utc_now()
            self._user_service.upsert_from_identity(identity, now)
            receipt_count, kept_receipt_ids = self._migrate_receipts(
                identity, device_id, now
            )

            participant_count = 0
            claim_count = 0
            rows = self._participant_repository.list_for_guest_device_for_update(
                device_id
            )
            for row in rows:
                if (
                    row.participant_key != guest_key
                    or row.receipt_id in kept_receipt_ids
                ):
                    continue
                claim_count += self._migrate_claims(
                    row.receipt_id, guest_key, auth_key, now
                )
                self._migrate_participant(row, identity, auth_key, now)
                participant_count += 1

            self._session.commit()
            logger.info(
                "guest_data_migrated",
                extra={
                    "token_identifier": identity.token_identifier,
                    "migrated_receipt_count": receipt_count,
                    "migrated_participant_count": participant_count,
                    "migrated_claim_count": claim_count,
                },
            )
            return MigrationResult(
                migrated_receipt_count=receipt_count,
                migrated_participant_count=participant_count,
                migrated_claim_count=claim_count,
            )
        except Exception:
            self._session.rollback()
            raise

    def _migrate_receipts(
        self,
        identity: VerifiedIdentity,
        device_id: str,
        now: datetime,
    ) -> tuple[int, set[UUID]]:
        """Move owned receipts; returns the count and the ids left on the device."""

        count = 0
        kept: set[UUID] = set()
        for receipt in self._receipt_repository.list_for_guest_owner(device_id):
            if self._receipt_repository.owner_has_client_receipt_id(
                owner_token_identifier=identity.token_identifier,
                client_receipt_id=receipt.client_receipt_id,
            ):
                logger.warning(
                    "guest_receipt_migration_conflict",
                    extra={
                        "receipt_id": str(receipt.id),
                        "client_receipt_id": receipt.client_receipt_id,
                    },
                )
                kept.add(receipt.id)
                continue
            receipt.owner_token_identifier = identity.token_identifier
            receipt.owner_subject = identity.subject
            receipt.owner_issuer = identity.issuer
            receipt.guest_device_id = None
            receipt.updated_at = now
            count += 1
        return count, kept

    def _migrate_claims(
        self,
        receipt_id: UUID,
        guest_key: str,
        auth_key: str,
        now: datetime,
    ) -> int:
        count = 0
        claims = self._claim_repository.list_for_participant_for_update(
            receipt_id, guest_key
        )
        for claim in claims:
            existing = self._claim_repository.get(receipt_id, claim.item_key, auth_key)
            if existing is not None:
                existing.quantity += claim.quantity
                existing.updated_at = now
                self._claim_repository.delete(claim)
            else:
                claim.participant_key = auth_key
                claim.updated_at = now
            count += 1
        self._claim_repository.flush()
        return count

    def _migrate_participant(
        self,
        row: ReceiptParticipant,
        identity: VerifiedIdentity,
        auth_key: str,
        now: datetime,
    ) -> None:
        preferred_name = normalized_display_name(identity.name) or SELF_DISPLAY_NAME
        existing = self._participant_repository.get(row.receipt_id, auth_key)
        if existing is not None:
            existing.token_identifier = identity.token_identifier
            existing.guest_device_id = None
            existing.display_name = (
                normalized_display_name(existing.display_name) or preferred_name
            )
            if as_utc(row.joined_at) < as_utc(existing.joined_at):
                existing.joined_at = row.joined_at
            existing.updated_at = now
            self._participant_repository.delete(row)
            return

        row.participant_key = auth_key
        row.token_identifier = identity.token_identifier
        row.guest_device_id = None
        row.display_name = preferred_name
        row.updated_at = now
