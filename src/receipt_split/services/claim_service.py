"""Claim ledger: truncating claim updates and the reconciled live view."""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Protocol
from uuid import UUID

from sqlalchemy.exc import IntegrityError

from receipt_split.db.models.receipt import Receipt, SettlementPhase
from receipt_split.db.models.receipt_claim import ReceiptClaim
from receipt_split.db.models.receipt_participant import ReceiptParticipant
from receipt_split.db.models.user import User
from receipt_split.domain.claim_allocation import ClaimChange, allocate_claim
from receipt_split.domain.clock import utc_now
from receipt_split.domain.errors import (
    ClaimsLockedError,
    InvalidRequestError,
    ItemNotFoundError,
    compose_error_message,
)
from receipt_split.domain.identity import (
    ParticipantIdentity,
    RequestContext,
    display_name_for,
    normalized_display_name,
    resolve_participant_for_mutation,
    resolve_participant_for_query,
)
from receipt_split.domain.money import compute_gratuity_percent, compute_other_fees
from receipt_split.domain.payment_options import HostPaymentConfig
from receipt_split.domain.settlement import ParticipantSettlement
from receipt_split.services.ledger_snapshot import LedgerReader, LedgerSnapshot
from receipt_split.services.receipt_guards import (
    ReceiptLookup,
    find_active_receipt,
    require_active_receipt,
    require_claiming,
)

logger = logging.getLogger(__name__)

MAX_CLAIM_ATTEMPTS = 3


class SessionProtocol(Protocol):
    """Subset of SQLAlchemy session APIs used by this service."""

    def commit(self) -> None: ...
    def rollback(self) -> None: ...


class ClaimRepositoryProtocol(Protocol):
    """Claim repository contract consumed by service."""

    def list_for_item_for_update(
        self, receipt_id: UUID, item_key: str
    ) -> list[ReceiptClaim]: ...

    def add(self, claim: ReceiptClaim) -> ReceiptClaim: ...

    def delete(self, claim: ReceiptClaim) -> None: ...

    def flush(self) -> None: ...


class ParticipantUpserter(Protocol):
    def upsert(
        self,
        receipt: Receipt,
        participant: ParticipantIdentity,
        now: datetime,
    ) -> ReceiptParticipant: ...


class ClaimSumConflictError(RuntimeError):
    """Claims on an item exceed its quantity after a write; retry the unit."""


@dataclass(slots=True, frozen=True)
class LiveItem:
    key: str
    client_item_id: str | None
    name: str
    quantity: int
    price: Decimal | None
    sort_order: int
    claimed_quantity: int
    viewer_claimed_quantity: int
    remaining_quantity: int


@dataclass(slots=True, frozen=True)
class LiveParticipant:
    participant_key: str
    display_name: str
    email: str | None
    joined_at: datetime
    is_host: bool
    is_submitted: bool
    submitted_at: datetime | None
    payment_status: str | None
    payment_method: str | None
    payment_amount: Decimal | None
    settlement: ParticipantSettlement


@dataclass(slots=True, frozen=True)
class PaymentQueueEntry:
    participant_key: str
    display_name: str
    amount_due: Decimal
    payment_status: str | None
    payment_method: str | None
    payment_amount: Decimal | None


@dataclass(slots=True, frozen=True)
class ViewerSettlement:
    settlement: ParticipantSettlement
    can_pay: bool
    payment_status: str | None
    payment_method: str | None


@dataclass(slots=True, frozen=True)
class LiveView:
    receipt: Receipt
    settlement_phase: SettlementPhase
    extra_fees_total: Decimal
    other_fees: Decimal | None
    gratuity_percent: Decimal | None
    viewer_participant_key: str | None
    viewer_removed: bool
    host_participant_key: str | None
    host_display_name: str | None
    host_payment_config: HostPaymentConfig
    all_participants_submitted: bool
    unclaimed_item_count: int
    participants: list[LiveParticipant]
    viewer_settlement: ViewerSettlement | None
    items: list[LiveItem]
    host_payment_queue: list[PaymentQueueEntry]


class ClaimService:
    """Keeps claimed quantities within item quantities."""

    def __init__(
        self,
        *,
        receipt_repository: ReceiptLookup,
        claim_repository: ClaimRepositoryProtocol,
        participant_service: ParticipantUpserter,
        ledger_reader: LedgerReader,
        session: SessionProtocol,
    ) -> None:
        self._receipt_repository = receipt_repository
        self._claim_repository = claim_repository
        self._participant_service = participant_service
        self._ledger_reader = ledger_reader
        self._session = session

    def update_claim(
        self,
        code: str,
        context: RequestContext,
        *,
        item_key: str,
        delta: int | float,
    ) -> ClaimChange:
        """Claim (positive) or release (negative) units of one item.

        Requests are truncated rather than rejected; the returned
        ``applied_delta`` tells the caller how much actually moved.
        """

        if not math.isfinite(delta):
            raise InvalidRequestError(
                message=compose_error_message(
                    cause="Claim delta must be a finite number.",
                    action="Send a whole number of units to claim or release.",
                ),
                details={"delta": str(delta)},
            )
        requested = int(delta)
        if requested == 0:
            return ClaimChange(applied_delta=0, quantity=0)

        for attempt in range(1, MAX_CLAIM_ATTEMPTS + 1):
            try:
                change = self._apply_claim(code, context, item_key, requested)
                self._session.commit()
            except (IntegrityError, ClaimSumConflictError):
                self._session.rollback()
                if attempt == MAX_CLAIM_ATTEMPTS:
                    raise
                logger.info(
                    "claim_retry",
                    extra={"code": code, "item_key": item_key, "attempt": attempt},
                )
                continue
            except Exception:
                self._session.rollback()
                raise

            if change.applied_delta != requested:
                logger.info(
                    "claim_truncated",
                    extra={
                        "code": code,
                        "item_key": item_key,
                        "requested_delta": requested,
                        "applied_delta": change.applied_delta,
                    },
                )
            return change
        msg = "claim attempts exhausted without a result."
        raise RuntimeError(msg)

    def _apply_claim(
        self,
        code: str,
        context: RequestContext,
        item_key: str,
        requested: int,
    ) -> ClaimChange:
        receipt = require_active_receipt(self._receipt_repository, code)
        require_claiming(receipt)
        participant = resolve_participant_for_mutation(context)
        now = utc_now()
        row = self._participant_service.upsert(receipt, participant, now)
        if row.is_submitted:
            raise ClaimsLockedError(details={"participant_key": row.participant_key})

        items = self._ledger_reader.load_items(receipt)
        target = next((item for item in items if item.key == item_key), None)
        if target is None:
            raise ItemNotFoundError(details={"item_key": item_key})

        claims = self._claim_repository.list_for_item_for_update(receipt.id, item_key)
        total_claimed = sum(claim.quantity for claim in claims)
        existing = next(
            (
                claim
                for claim in claims
                if claim.participant_key == participant.participant_key
            ),
            None,
        )
        existing_quantity = existing.quantity if existing else 0
        change = allocate_claim(
            requested_delta=requested,
            item_quantity=target.quantity,
            total_claimed=total_claimed,
            existing_quantity=existing_quantity,
        )
        if change.applied_delta == 0:
            return ClaimChange(applied_delta=0, quantity=existing_quantity)

        if change.removes_claim:
            if existing is not None:
                self._claim_repository.delete(existing)
        elif existing is not None:
            existing.quantity = change.quantity
            existing.updated_at = now
            self._claim_repository.flush()
        else:
            self._claim_repository.add(
                ReceiptClaim(
                    receipt_id=receipt.id,
                    item_key=item_key,
                    participant_key=participant.participant_key,
                    quantity=change.quantity,
                    updated_at=now,
                )
            )

        settled = self._claim_repository.list_for_item_for_update(receipt.id, item_key)
        if sum(claim.quantity for claim in settled) > target.quantity:
            raise ClaimSumConflictError(item_key)
        return change

    def live(self, code: str, context: RequestContext) -> LiveView | None:
        receipt = find_active_receipt(self._receipt_repository, code)
        if receipt is None:
            return None

        snapshot = self._ledger_reader.snapshot(receipt)
        viewer = resolve_participant_for_query(context)
        viewer_key = viewer.participant_key if viewer else None
        return build_live_view(
            snapshot,
            viewer_key=viewer_key,
            profiles=self._ledger_reader.profiles_for(snapshot.participants),
            host_profile_name=self._ledger_reader.owner_name(receipt),
        )


def build_live_view(
    snapshot: LedgerSnapshot,
    *,
    viewer_key: str | None,
    profiles: Mapping[str, User],
    host_profile_name: str | None,
) -> LiveView:
    receipt = snapshot.receipt
    host_key = snapshot.host_participant_key
    claimed = snapshot.claimed_by_item()
    viewer_claimed: dict[str, int] = {}
    for claim in snapshot.claims:
        if viewer_key is not None and claim.participant_key == viewer_key:
            viewer_claimed[claim.item_key] = (
                viewer_claimed.get(claim.item_key, 0) + claim.quantity
            )

    items = [
        LiveItem(
            key=item.key,
            client_item_id=item.client_item_id,
            name=item.name,
            quantity=item.quantity,
            price=item.price,
            sort_order=item.sort_order,
            claimed_quantity=claimed.get(item.key, 0),
            viewer_claimed_quantity=viewer_claimed.get(item.key, 0),
            remaining_quantity=max(0, item.quantity - claimed.get(item.key, 0)),
        )
        for item in snapshot.items
    ]

    participants: list[LiveParticipant] = []
    queue: list[PaymentQueueEntry] = []
    for row in snapshot.participants:
        profile = profiles.get(row.participant_key)
        is_host = row.participant_key == host_key
        settlement = snapshot.settlement_for(row.participant_key)
        display_name = display_name_for(
            participant_key=row.participant_key,
            stored_name=row.display_name,
            profile_name=profile.name if profile else None,
            is_host=is_host,
            viewer_participant_key=viewer_key,
        )
        participants.append(
            LiveParticipant(
                participant_key=row.participant_key,
                display_name=display_name,
                email=profile.email if profile else None,
                joined_at=row.joined_at,
                is_host=is_host,
                is_submitted=row.is_submitted is True,
                submitted_at=row.submitted_at,
                payment_status=row.payment_status,
                payment_method=row.payment_method,
                payment_amount=row.payment_amount,
                settlement=settlement,
            )
        )
        if not is_host and settlement.total_due > 0:
            queue.append(
                PaymentQueueEntry(
                    participant_key=row.participant_key,
                    display_name=display_name,
                    amount_due=settlement.total_due,
                    payment_status=row.payment_status,
                    payment_method=row.payment_method,
                    payment_amount=row.payment_amount,
                )
            )

    viewer_row = snapshot.participant(viewer_key) if viewer_key else None
    viewer_settlement = None
    if viewer_key is not None and viewer_key in snapshot.settlement:
        viewer_settlement = ViewerSettlement(
            settlement=snapshot.settlement[viewer_key],
            can_pay=(
                receipt.phase is SettlementPhase.FINALIZED and viewer_key != host_key
            ),
            payment_status=viewer_row.payment_status if viewer_row else None,
            payment_method=viewer_row.payment_method if viewer_row else None,
        )

    host_row = snapshot.participant(host_key) if host_key else None
    host_display_name = (
        normalized_display_name(host_row.display_name) if host_row else None
    ) or normalized_display_name(host_profile_name)

    pricing = snapshot.pricing
    other_fees = receipt.other_fees
    if other_fees is None:
        other_fees = compute_other_fees(
            extra_fees_total=pricing.extra_fees_total,
            tax=receipt.tax,
            gratuity=receipt.gratuity,
        )
    gratuity_percent = receipt.gratuity_percent
    if gratuity_percent is None:
        gratuity_percent = compute_gratuity_percent(
            gratuity=receipt.gratuity, subtotal=receipt.subtotal
        )

    return LiveView(
        receipt=receipt,
        settlement_phase=receipt.phase,
        extra_fees_total=pricing.extra_fees_total,
        other_fees=other_fees,
        gratuity_percent=gratuity_percent,
        viewer_participant_key=viewer_key,
        viewer_removed=viewer_key is not None and viewer_row is None,
        host_participant_key=host_key,
        host_display_name=host_display_name,
        host_payment_config=snapshot.host_payment_config,
        all_participants_submitted=snapshot.all_participants_submitted(),
        unclaimed_item_count=snapshot.unclaimed_item_count(),
        participants=participants,
        viewer_settlement=viewer_settlement,
        items=items,
        host_payment_queue=queue,
    )
