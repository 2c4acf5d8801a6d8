"""Settlement lifecycle: finalize, payment intent and host confirmation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol
from uuid import UUID

from receipt_split.db.models.receipt import ArchiveReason, Receipt, SettlementPhase
from receipt_split.db.models.receipt_participant import (
    PaymentStatus,
    ReceiptParticipant,
)
from receipt_split.domain.clock import utc_now
from receipt_split.domain.errors import (
    InvalidRequestError,
    ParticipantNotFoundError,
    SettlementNotReadyError,
    compose_error_message,
)
from receipt_split.domain.identity import (
    RequestContext,
    display_name_for,
    resolve_participant_for_mutation,
)
from receipt_split.domain.money import quantize_money
from receipt_split.domain.notification_gate import (
    PAYMENT_METHODS,
    PaymentNotificationRequest,
)
from receipt_split.services.ledger_snapshot import LedgerReader
from receipt_split.services.receipt_guards import (
    ReceiptLookup,
    require_active_receipt,
    require_finalized,
    require_host,
)

logger = logging.getLogger(__name__)


class SessionProtocol(Protocol):
    """Subset of SQLAlchemy session APIs used by this service."""

    def commit(self) -> None: ...
    def rollback(self) -> None: ...


class ParticipantLookup(Protocol):
    def get(
        self, receipt_id: UUID, participant_key: str
    ) -> ReceiptParticipant | None: ...


@dataclass(slots=True, frozen=True)
class PaymentIntentResult:
    participant: ReceiptParticipant
    amount_due: Decimal
    notification: PaymentNotificationRequest


@dataclass(slots=True, frozen=True)
class PaymentConfirmation:
    participant: ReceiptParticipant
    receipt_archived: bool


def _not_ready(cause: str, action: str, code: str) -> SettlementNotReadyError:
    return SettlementNotReadyError(
        message=compose_error_message(cause=cause, action=action),
        details={"code": code},
    )


class SettlementService:
    """Moves a receipt from claiming to finalized to settled."""

    def __init__(
        self,
        *,
        receipt_repository: ReceiptLookup,
        participant_repository: ParticipantLookup,
        ledger_reader: LedgerReader,
        session: SessionProtocol,
    ) -> None:
        self._receipt_repository = receipt_repository
        self._participant_repository = participant_repository
        self._ledger_reader = ledger_reader
        self._session = session

    def finalize_settlement(self, code: str, context: RequestContext) -> Receipt:
        try:
            receipt = require_active_receipt(self._receipt_repository, code)
            require_host(receipt, context)
            if receipt.phase is SettlementPhase.FINALIZED:
                self._session.commit()
                return receipt

            snapshot = self._ledger_reader.snapshot(receipt)
            if not snapshot.participants:
                raise _not_ready(
                    "Nobody has joined this split yet.",
                    "Share the code and wait for participants to join.",
                    code,
                )
            if not snapshot.all_participants_submitted():
                raise _not_ready(
                    "Some participants have not submitted their claims.",
                    "Wait until everyone submits, then finalize again.",
                    code,
                )
            unclaimed = snapshot.unclaimed_item_count()
            if unclaimed > 0:
                raise SettlementNotReadyError(
                    message=compose_error_message(
                        cause=f"{unclaimed} item(s) still have unclaimed units.",
                        action="Make sure every item is fully claimed.",
                    ),
                    details={"code": code, "unclaimed_item_count": unclaimed},
                )
            if not snapshot.host_payment_config.has_payment_options:
                raise _not_ready(
                    "The host has no payment option enabled.",
                    "Enable at least one payment option in your profile.",
                    code,
                )

            now = utc_now()
            receipt.settlement_phase = SettlementPhase.FINALIZED
            receipt.finalized_at = now
            receipt.archived_reason = None
            receipt.updated_at = now
            self._session.commit()
            logger.info(
                "settlement_finalized",
                extra={
                    "receipt_id": str(receipt.id),
                    "participant_count": len(snapshot.participants),
                },
            )
            return receipt
        except Exception:
            self._session.rollback()
            raise

    def mark_payment_intent(
        self,
        code: str,
        context: RequestContext,
        payment_method: str,
    ) -> PaymentIntentResult:
        """Record that the caller is paying and describe the host notification."""

        method = payment_method.strip().lower()
        if method not in PAYMENT_METHODS:
            raise InvalidRequestError(
                message=compose_error_message(
                    cause=f"Unsupported payment method '{payment_method}'.",
                    action=f"Use one of: {', '.join(sorted(PAYMENT_METHODS))}.",
                )
            )

        try:
            receipt = require_active_receipt(self._receipt_repository, code)
            require_finalized(receipt)
            participant = resolve_participant_for_mutation(context)
            snapshot = self._ledger_reader.snapshot(receipt)
            if participant.participant_key == snapshot.host_participant_key:
                raise InvalidRequestError(
                    message=compose_error_message(
                        cause="The host does not pay their own split.",
                        action="Confirm payments from participants instead.",
                    )
                )
            row = snapshot.participant(participant.participant_key)
            if row is None:
                raise ParticipantNotFoundError(
                    details={"participant_key": participant.participant_key}
                )
            amount_due = snapshot.settlement_for(row.participant_key).total_due
            if amount_due <= 0:
                raise InvalidRequestError(
                    message=compose_error_message(
                        cause="Nothing is owed on this split.",
                        action="Claim items before paying.",
                    )
                )

            now = utc_now()
            row.payment_status = PaymentStatus.PENDING
            row.payment_method = method
            row.payment_amount = quantize_money(amount_due)
            row.payment_marked_at = now
            row.payment_confirmed_at = None
            row.updated_at = now
            profile = self._ledger_reader.profiles_for([row]).get(row.participant_key)
            guest_name = display_name_for(
                participant_key=row.participant_key,
                stored_name=row.display_name,
                profile_name=profile.name if profile else None,
            )
            self._session.commit()
            logger.info(
                "payment_intent_marked",
                extra={
                    "receipt_id": str(receipt.id),
                    "participant_key": row.participant_key,
                    "payment_method": method,
                },
            )
            return PaymentIntentResult(
                participant=row,
                amount_due=quantize_money(amount_due),
                notification=PaymentNotificationRequest(
                    receipt_code=receipt.share_code,
                    participant_key=row.participant_key,
                    guest_name=guest_name,
                    amount=quantize_money(amount_due),
                    payment_method=method,
                    host_token_identifier=receipt.owner_token_identifier,
                    host_guest_device_id=receipt.guest_device_id,
                ),
            )
        except Exception:
            self._session.rollback()
            raise

    def confirm_payment(
        self,
        code: str,
        context: RequestContext,
        participant_key: str,
    ) -> PaymentConfirmation:
        """Host confirms one payment; the last confirmation archives the receipt."""

        try:
            receipt = require_active_receipt(self._receipt_repository, code)
            require_host(receipt, context)
            require_finalized(receipt)
            snapshot = self._ledger_reader.snapshot(receipt)
            if participant_key == snapshot.host_participant_key:
                raise InvalidRequestError(
                    message=compose_error_message(
                        cause="The host has no payment to confirm.",
                        action="Pick a participant other than the host.",
                    )
                )
            row = snapshot.participant(participant_key)
            if row is None:
                raise ParticipantNotFoundError(
                    details={"participant_key": participant_key}
                )

            now = utc_now()
            row.payment_status = PaymentStatus.CONFIRMED
            row.payment_confirmed_at = now
            row.updated_at = now

            payable = snapshot.payable_participants()
            settled = bool(payable) and all(
                candidate.participant_key == participant_key
                or candidate.payment_status == PaymentStatus.CONFIRMED
                for candidate in payable
            )
            if settled:
                receipt.is_active = False
                receipt.archived_reason = ArchiveReason.AUTO_SETTLED
                receipt.updated_at = now
            self._session.commit()
            logger.info(
                "payment_confirmed",
                extra={
                    "receipt_id": str(receipt.id),
                    "participant_key": participant_key,
                    "receipt_archived": settled,
                },
            )
            return PaymentConfirmation(participant=row, receipt_archived=settled)
        except Exception:
            self._session.rollback()
            raise
