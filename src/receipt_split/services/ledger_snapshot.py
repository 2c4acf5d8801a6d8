"""Consistent read of a receipt's items, roster, claims and settlement."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol
from uuid import UUID

from receipt_split.db.models.receipt import Receipt
from receipt_split.db.models.receipt_claim import ReceiptClaim
from receipt_split.db.models.receipt_participant import ReceiptParticipant
from receipt_split.db.models.user import User
from receipt_split.domain.clock import as_utc
from receipt_split.domain.identity import host_participant_key
from receipt_split.domain.items import NormalizedItem
from receipt_split.domain.money import (
    ZERO,
    compute_extra_fees_total,
    quantize_money,
)
from receipt_split.domain.payment_options import (
    HostPaymentConfig,
    resolve_host_payment_config,
)
from receipt_split.domain.settlement import (
    ParticipantSettlement,
    SettlementParticipant,
    SettlementPricing,
    compute_settlement_totals,
    participant_item_subtotals,
)


class ItemLoader(Protocol):
    def load_items(self, receipt: Receipt) -> list[NormalizedItem]: ...


class ParticipantListing(Protocol):
    def list_for_receipt(self, receipt_id: UUID) -> list[ReceiptParticipant]: ...


class ClaimListing(Protocol):
    def list_for_receipt(self, receipt_id: UUID) -> list[ReceiptClaim]: ...


class UserLookup(Protocol):
    def get_by_token_identifier(self, token_identifier: str) -> User | None: ...

    def map_by_token_identifiers(
        self, token_identifiers: Iterable[str]
    ) -> dict[str, User]: ...


ZERO_SETTLEMENT = ParticipantSettlement(
    item_subtotal=ZERO,
    tax_share=ZERO,
    gratuity_share=ZERO,
    extra_fees_share=ZERO,
    rounding_adjustment=ZERO,
    total_due=ZERO,
)


@dataclass(slots=True, frozen=True)
class LedgerSnapshot:
    receipt: Receipt
    items: list[NormalizedItem]
    participants: list[ReceiptParticipant]
    claims: list[ReceiptClaim]
    host_participant_key: str | None
    host_payment_config: HostPaymentConfig
    pricing: SettlementPricing
    settlement: dict[str, ParticipantSettlement]

    def claimed_by_item(self) -> dict[str, int]:
        claimed: dict[str, int] = {}
        for claim in self.claims:
            claimed[claim.item_key] = claimed.get(claim.item_key, 0) + claim.quantity
        return claimed

    def unclaimed_item_count(self) -> int:
        claimed = self.claimed_by_item()
        return sum(
            1 for item in self.items if item.quantity - claimed.get(item.key, 0) > 0
        )

    def all_participants_submitted(self) -> bool:
        return bool(self.participants) and all(
            participant.is_submitted for participant in self.participants
        )

    def settlement_for(self, participant_key: str) -> ParticipantSettlement:
        return self.settlement.get(participant_key, ZERO_SETTLEMENT)

    def participant(self, participant_key: str) -> ReceiptParticipant | None:
        for participant in self.participants:
            if participant.participant_key == participant_key:
                return participant
        return None

    def payable_participants(self) -> list[ReceiptParticipant]:
        """Non-host roster rows that owe a positive amount."""

        return [
            participant
            for participant in self.participants
            if participant.participant_key != self.host_participant_key
            and self.settlement_for(participant.participant_key).total_due > 0
        ]


def receipt_pricing(receipt: Receipt, items: list[NormalizedItem]) -> SettlementPricing:
    computed_subtotal = quantize_money(
        sum((item.price or ZERO for item in items), ZERO)
    )
    subtotal = receipt.subtotal
    if subtotal is None or subtotal <= 0:
        subtotal = computed_subtotal
    extra_fees_total = receipt.extra_fees_total
    if extra_fees_total is None:
        extra_fees_total = compute_extra_fees_total(
            receipt_total=receipt.receipt_total,
            item_prices=[item.price for item in items],
            tax=receipt.tax,
            gratuity=receipt.gratuity,
        )
    return SettlementPricing(
        receipt_subtotal=subtotal,
        extra_fees_total=extra_fees_total,
        tax=receipt.tax,
        gratuity=receipt.gratuity,
    )


def unit_prices(items: list[NormalizedItem]) -> dict[str, Decimal]:
    """Item prices are line totals; split them per unit."""

    return {item.key: (item.price or ZERO) / max(1, item.quantity) for item in items}


class LedgerReader:
    """Builds :class:`LedgerSnapshot` objects for ledger services."""

    def __init__(
        self,
        *,
        item_loader: ItemLoader,
        participant_repository: ParticipantListing,
        claim_repository: ClaimListing,
        user_repository: UserLookup,
    ) -> None:
        self._item_loader = item_loader
        self._participant_repository = participant_repository
        self._claim_repository = claim_repository
        self._user_repository = user_repository

    def snapshot(self, receipt: Receipt) -> LedgerSnapshot:
        items = self._item_loader.load_items(receipt)
        participants = self._participant_repository.list_for_receipt(receipt.id)
        participants.sort(key=lambda participant: as_utc(participant.joined_at))
        claims = self._claim_repository.list_for_receipt(receipt.id)
        host_key = host_participant_key(
            owner_token_identifier=receipt.owner_token_identifier,
            guest_device_id=receipt.guest_device_id,
        )
        owner_profile = (
            self._user_repository.get_by_token_identifier(
                receipt.owner_token_identifier
            )
            if receipt.owner_token_identifier
            else None
        )
        host_config = resolve_host_payment_config(
            owner_token_identifier=receipt.owner_token_identifier,
            profile=owner_profile,
        )
        pricing = receipt_pricing(receipt, items)
        subtotals = participant_item_subtotals(
            unit_prices=unit_prices(items),
            claims=[
                (claim.item_key, claim.participant_key, claim.quantity)
                for claim in claims
            ],
        )
        settlement = compute_settlement_totals(
            participants=[
                SettlementParticipant(
                    participant_key=participant.participant_key,
                    joined_at=as_utc(participant.joined_at),
                )
                for participant in participants
            ],
            item_subtotals=subtotals,
            pricing=pricing,
            host_participant_key=host_key,
            absorb_extra_cents=host_config.absorb_extra_cents,
        )
        return LedgerSnapshot(
            receipt=receipt,
            items=items,
            participants=participants,
            claims=claims,
            host_participant_key=host_key,
            host_payment_config=host_config,
            pricing=pricing,
            settlement=settlement,
        )

    def profiles_for(self, participants: list[ReceiptParticipant]) -> dict[str, User]:
        """Account profiles keyed by participant key."""

        by_token = self._user_repository.map_by_token_identifiers(
            participant.token_identifier
            for participant in participants
            if participant.token_identifier
        )
        return {
            participant.participant_key: by_token[participant.token_identifier]
            for participant in participants
            if participant.token_identifier in by_token
        }

    def load_items(self, receipt: Receipt) -> list[NormalizedItem]:
        return self._item_loader.load_items(receipt)

    def owner_name(self, receipt: Receipt) -> str | None:
        if not receipt.owner_token_identifier:
            return None
        owner = self._user_repository.get_by_token_identifier(
            receipt.owner_token_identifier
        )
        return owner.name if owner else None
