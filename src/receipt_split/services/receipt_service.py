"""Receipt store: idempotent create, share-code reads and owner lifecycle."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Protocol
from uuid import UUID

from receipt_split.db.models.receipt import ArchiveReason, Receipt, SettlementPhase
from receipt_split.db.models.receipt_item import ReceiptItem
from receipt_split.db.models.receipt_participant import ReceiptParticipant
from receipt_split.domain.billing_period import AllowanceSource
from receipt_split.domain.clock import as_utc, utc_now
from receipt_split.domain.errors import InvalidRequestError, compose_error_message
from receipt_split.domain.identity import (
    AuthenticatedOwner,
    Owner,
    ParticipantIdentity,
    RequestContext,
    VerifiedIdentity,
    normalize_guest_device_id,
    resolve_owner,
    resolve_participant_for_mutation,
)
from receipt_split.domain.items import ItemInput, NormalizedItem, normalize_items
from receipt_split.domain.legacy_payload import legacy_items_or_empty
from receipt_split.domain.money import (
    compute_extra_fees_total,
    compute_gratuity_percent,
    compute_other_fees,
    normalize_money,
)
from receipt_split.domain.share_code import generate_share_code
from receipt_split.services.receipt_guards import can_manage, find_active_receipt

logger = logging.getLogger(__name__)

DEFAULT_RECENT_LIMIT = 30
MAX_RECENT_LIMIT = 100


class SessionProtocol(Protocol):
    """Subset of SQLAlchemy session APIs used by this service."""

    def commit(self) -> None: ...
    def rollback(self) -> None: ...


class ReceiptRepositoryProtocol(Protocol):
    """Receipt repository contract consumed by service."""

    def get(self, receipt_id: UUID) -> Receipt | None: ...

    def get_by_share_code(self, share_code: str) -> Receipt | None: ...

    def get_by_share_code_for_update(self, share_code: str) -> Receipt | None: ...

    def share_code_exists(self, share_code: str) -> bool: ...

    def find_for_owner(
        self, owner: Owner, client_receipt_id: str
    ) -> Receipt | None: ...

    def list_owned(
        self,
        *,
        owner_token_identifier: str | None = None,
        guest_device_id: str | None = None,
        active: bool,
        limit: int,
    ) -> list[Receipt]: ...

    def add_with_share_code(
        self,
        receipt: Receipt,
        next_share_code: Callable[[], str],
        *,
        attempts: int = 3,
    ) -> Receipt: ...

    def list_items(self, receipt_id: UUID) -> list[ReceiptItem]: ...

    def replace_items(
        self,
        *,
        receipt_id: UUID,
        items: list[NormalizedItem],
        now: datetime,
    ) -> list[ReceiptItem]: ...

    def delete_tree(self, receipt: Receipt) -> None: ...


class ParticipantRepositoryProtocol(Protocol):
    def list_recent_for_token(
        self, token_identifier: str, limit: int
    ) -> list[ReceiptParticipant]: ...

    def list_recent_for_guest(
        self, guest_device_id: str, limit: int
    ) -> list[ReceiptParticipant]: ...

    def reset_for_claiming(self, receipt_id: UUID, now: datetime) -> None: ...


class ParticipantUpserter(Protocol):
    def upsert(
        self,
        receipt: Receipt,
        participant: ParticipantIdentity,
        now: datetime,
    ) -> ReceiptParticipant: ...


class UserUpserter(Protocol):
    def upsert_from_identity(
        self, identity: VerifiedIdentity, now: datetime
    ) -> object: ...


class AllowanceConsumer(Protocol):
    def consume_for_new_receipt(
        self, identity: VerifiedIdentity, now: datetime
    ) -> AllowanceSource: ...


@dataclass(slots=True, frozen=True)
class CreateReceiptInput:
    """Input model for idempotent receipt submission."""

    client_receipt_id: str
    items: list[ItemInput] = field(default_factory=list)
    receipt_total: Decimal | None = None
    subtotal: Decimal | None = None
    tax: Decimal | None = None
    gratuity: Decimal | None = None


@dataclass(slots=True, frozen=True)
class CreateReceiptResult:
    id: UUID
    code: str
    created: bool
    allowance_source: AllowanceSource | None = None


@dataclass(slots=True, frozen=True)
class ReceiptView:
    """Receipt with its resolved items as seen by one caller."""

    receipt: Receipt
    items: list[NormalizedItem]
    can_manage: bool


def clamp_recent_limit(limit: int | None) -> int:
    if limit is None:
        return DEFAULT_RECENT_LIMIT
    return max(1, min(int(limit), MAX_RECENT_LIMIT))


class ReceiptService:
    """Owns receipts, their items and active/archived status."""

    def __init__(
        self,
        *,
        receipt_repository: ReceiptRepositoryProtocol,
        participant_repository: ParticipantRepositoryProtocol,
        participant_service: ParticipantUpserter,
        user_service: UserUpserter,
        billing_service: AllowanceConsumer,
        session: SessionProtocol,
        share_code_factory: Callable[[Callable[[str], bool]], str] | None = None,
    ) -> None:
        self._receipt_repository = receipt_repository
        self._participant_repository = participant_repository
        self._participant_service = participant_service
        self._user_service = user_service
        self._billing_service = billing_service
        self._session = session
        self._share_code_factory = share_code_factory or (
            lambda exists: generate_share_code(exists=exists)
        )

    def load_items(self, receipt: Receipt) -> list[NormalizedItem]:
        """Stored items, or the decoded legacy blob when none are stored."""

        rows = self._receipt_repository.list_items(receipt.id)
        if rows:
            return [
                NormalizedItem(
                    name=row.name,
                    quantity=row.quantity,
                    sort_order=row.sort_order,
                    price=row.price,
                    client_item_id=row.client_item_id,
                )
                for row in rows
            ]
        return legacy_items_or_empty(receipt.legacy_payload, receipt.client_receipt_id)

    def create(
        self,
        context: RequestContext,
        payload: CreateReceiptInput,
    ) -> CreateReceiptResult:
        owner = resolve_owner(context)
        client_receipt_id = payload.client_receipt_id.strip()
        if not client_receipt_id:
            raise InvalidRequestError(
                message=compose_error_message(
                    cause="client_receipt_id is blank.",
                    action="Send the identifier generated by the app for this receipt.",
                )
            )

        items = normalize_items(payload.items)
        receipt_total = normalize_money(payload.receipt_total)
        subtotal = normalize_money(payload.subtotal)
        tax = normalize_money(payload.tax)
        gratuity = normalize_money(payload.gratuity)
        extra_fees_total = compute_extra_fees_total(
            receipt_total=receipt_total,
            item_prices=[item.price for item in items],
            tax=tax,
            gratuity=gratuity,
        )

        try:
            now = utc_now()
            if isinstance(owner, AuthenticatedOwner):
                self._user_service.upsert_from_identity(owner.identity, now)

            receipt = self._receipt_repository.find_for_owner(owner, client_receipt_id)
            created = receipt is None
            allowance_source: AllowanceSource | None = None
            if receipt is None:
                if isinstance(owner, AuthenticatedOwner):
                    allowance_source = self._billing_service.consume_for_new_receipt(
                        owner.identity, now
                    )
                receipt = self._new_receipt(owner, client_receipt_id, now)
            else:
                receipt.is_active = True
                receipt.finalized_at = None
                receipt.archived_reason = None
                # Stale legacy blobs must not shadow the stored items.
                receipt.legacy_payload = None
                self._participant_repository.reset_for_claiming(receipt.id, now)

            receipt.settlement_phase = SettlementPhase.CLAIMING
            receipt.receipt_total = receipt_total
            receipt.subtotal = subtotal
            receipt.tax = tax
            receipt.gratuity = gratuity
            receipt.extra_fees_total = extra_fees_total
            receipt.other_fees = compute_other_fees(
                extra_fees_total=extra_fees_total, tax=tax, gratuity=gratuity
            )
            receipt.gratuity_percent = compute_gratuity_percent(
                gratuity=gratuity, subtotal=subtotal
            )
            receipt.updated_at = now
            self._receipt_repository.replace_items(
                receipt_id=receipt.id, items=items, now=now
            )
            self._session.commit()
            logger.info(
                "receipt_created" if created else "receipt_resubmitted",
                extra={
                    "receipt_id": str(receipt.id),
                    "client_receipt_id": client_receipt_id,
                    "item_count": len(items),
                    "allowance_source": (
                        allowance_source.value if allowance_source else None
                    ),
                },
            )
            return CreateReceiptResult(
                id=receipt.id,
                code=receipt.share_code,
                created=created,
                allowance_source=allowance_source,
            )
        except Exception:
            self._session.rollback()
            raise

    def _new_receipt(
        self, owner: Owner, client_receipt_id: str, now: datetime
    ) -> Receipt:
        receipt = Receipt(
            client_receipt_id=client_receipt_id,
            is_active=True,
            settlement_phase=SettlementPhase.CLAIMING,
            created_at=now,
            updated_at=now,
        )
        if isinstance(owner, AuthenticatedOwner):
            receipt.owner_token_identifier = owner.identity.token_identifier
            receipt.owner_subject = owner.identity.subject
            receipt.owner_issuer = owner.identity.issuer
        else:
            receipt.guest_device_id = owner.guest_device_id
        return self._receipt_repository.add_with_share_code(
            receipt,
            lambda: self._share_code_factory(
                self._receipt_repository.share_code_exists
            ),
        )

    def get(self, code: str, context: RequestContext) -> ReceiptView | None:
        receipt = find_active_receipt(self._receipt_repository, code)
        if receipt is None:
            return None
        return ReceiptView(
            receipt=receipt,
            items=self.load_items(receipt),
            can_manage=(
                context.identity is not None
                and receipt.owner_token_identifier == context.identity.token_identifier
            ),
        )

    def join(self, code: str, context: RequestContext) -> ReceiptView | None:
        """Add the caller to the roster without claiming anything."""

        try:
            receipt = find_active_receipt(self._receipt_repository, code)
            if receipt is None:
                return None
            if receipt.phase is not SettlementPhase.FINALIZED:
                participant = resolve_participant_for_mutation(context)
                self._participant_service.upsert(receipt, participant, utc_now())
            self._session.commit()
            return ReceiptView(
                receipt=receipt,
                items=self.load_items(receipt),
                can_manage=can_manage(receipt, context),
            )
        except Exception:
            self._session.rollback()
            raise

    def archive(self, context: RequestContext, client_receipt_id: str) -> bool:
        return self._set_active(context, client_receipt_id, active=False)

    def unarchive(self, context: RequestContext, client_receipt_id: str) -> bool:
        return self._set_active(context, client_receipt_id, active=True)

    def _set_active(
        self,
        context: RequestContext,
        client_receipt_id: str,
        *,
        active: bool,
    ) -> bool:
        owner = resolve_owner(context)
        try:
            receipt = self._receipt_repository.find_for_owner(owner, client_receipt_id)
            if receipt is None:
                self._session.commit()
                return False
            receipt.is_active = active
            receipt.archived_reason = None if active else ArchiveReason.MANUAL
            receipt.updated_at = utc_now()
            self._session.commit()
            logger.info(
                "receipt_unarchived" if active else "receipt_archived",
                extra={"receipt_id": str(receipt.id)},
            )
            return True
        except Exception:
            self._session.rollback()
            raise

    def destroy(self, context: RequestContext, client_receipt_id: str) -> bool:
        owner = resolve_owner(context)
        try:
            receipt = self._receipt_repository.find_for_owner(owner, client_receipt_id)
            if receipt is None:
                self._session.commit()
                return False
            receipt_id = receipt.id
            self._receipt_repository.delete_tree(receipt)
            self._session.commit()
            logger.info("receipt_destroyed", extra={"receipt_id": str(receipt_id)})
            return True
        except Exception:
            self._session.rollback()
            raise

    def list_recent(
        self,
        context: RequestContext,
        *,
        limit: int | None = None,
        include_archived: bool = False,
    ) -> list[ReceiptView]:
        """Owned and joined receipts, newest activity first.

        ``include_archived`` only widens the owned side; archived receipts the
        caller merely joined are never listed.
        """

        limit = clamp_recent_limit(limit)
        token_identifier = (
            context.identity.token_identifier if context.identity else None
        )
        guest_device_id = None
        if context.identity is None:
            guest_device_id = normalize_guest_device_id(context.guest_device_id)
        if token_identifier is None and guest_device_id is None:
            return []

        owned = self._receipt_repository.list_owned(
            owner_token_identifier=token_identifier,
            guest_device_id=guest_device_id,
            active=True,
            limit=limit,
        )
        if include_archived:
            owned += self._receipt_repository.list_owned(
                owner_token_identifier=token_identifier,
                guest_device_id=guest_device_id,
                active=False,
                limit=limit,
            )
        entries: dict[UUID, tuple[Receipt, datetime]] = {
            receipt.id: (receipt, as_utc(receipt.created_at)) for receipt in owned
        }

        if token_identifier is not None:
            rows = self._participant_repository.list_recent_for_token(
                token_identifier, limit * 3
            )
        else:
            rows = self._participant_repository.list_recent_for_guest(
                guest_device_id or "", limit * 3
            )
        for row in rows:
            receipt = self._receipt_repository.get(row.receipt_id)
            if receipt is None or not receipt.active:
                continue
            sort_key = max(as_utc(receipt.created_at), as_utc(row.joined_at))
            current = entries.get(receipt.id)
            if current is None or sort_key > current[1]:
                entries[receipt.id] = (receipt, sort_key)

        ordered = sorted(entries.values(), key=lambda entry: entry[1], reverse=True)
        return [
            ReceiptView(
                receipt=receipt,
                items=self.load_items(receipt),
                can_manage=can_manage(receipt, context),
            )
            for receipt, _ in ordered[:limit]
        ]
