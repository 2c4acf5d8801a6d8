"""Schemas for claim ledger endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from receipt_split.api.schemas.receipts import money_or_none
from receipt_split.domain.claim_allocation import ClaimChange
from receipt_split.domain.money import format_money
from receipt_split.domain.payment_options import HostPaymentConfig
from receipt_split.domain.settlement import ParticipantSettlement
from receipt_split.services.claim_service import (
    LiveItem,
    LiveParticipant,
    LiveView,
    PaymentQueueEntry,
)


class UpdateClaimRequest(BaseModel):
    item_key: str = Field(min_length=1, max_length=160)
    delta: float = Field(allow_inf_nan=False)


class UpdateClaimResponse(BaseModel):
    applied_delta: int
    quantity: int

    @classmethod
    def from_change(cls, change: ClaimChange) -> UpdateClaimResponse:
        return cls(applied_delta=change.applied_delta, quantity=change.quantity)


class SettlementResponse(BaseModel):
    item_subtotal: str
    tax_share: str
    gratuity_share: str
    extra_fees_share: str
    rounding_adjustment: str
    total_due: str

    @classmethod
    def from_settlement(cls, settlement: ParticipantSettlement) -> SettlementResponse:
        return cls(
            item_subtotal=format_money(settlement.item_subtotal),
            tax_share=format_money(settlement.tax_share),
            gratuity_share=format_money(settlement.gratuity_share),
            extra_fees_share=format_money(settlement.extra_fees_share),
            rounding_adjustment=format_money(settlement.rounding_adjustment),
            total_due=format_money(settlement.total_due),
        )


class HostPaymentOptionsResponse(BaseModel):
    has_payment_options: bool
    absorb_extra_cents: bool
    preferred_payment_method: str | None
    venmo_enabled: bool
    venmo_username: str | None
    cash_app_enabled: bool
    cash_app_cashtag: str | None
    zelle_enabled: bool
    zelle_contact: str | None
    cash_apple_pay_enabled: bool

    @classmethod
    def from_config(cls, config: HostPaymentConfig) -> HostPaymentOptionsResponse:
        return cls(
            has_payment_options=config.has_payment_options,
            absorb_extra_cents=config.absorb_extra_cents,
            preferred_payment_method=config.preferred_payment_method,
            venmo_enabled=config.venmo_enabled,
            venmo_username=config.venmo_username,
            cash_app_enabled=config.cash_app_enabled,
            cash_app_cashtag=config.cash_app_cashtag,
            zelle_enabled=config.zelle_enabled,
            zelle_contact=config.zelle_contact,
            cash_apple_pay_enabled=config.cash_apple_pay_enabled,
        )


class LiveItemResponse(BaseModel):
    key: str
    client_item_id: str | None
    name: str
    quantity: int
    price: str | None
    sort_order: int
    claimed_quantity: int
    viewer_claimed_quantity: int
    remaining_quantity: int

    @classmethod
    def from_item(cls, item: LiveItem) -> LiveItemResponse:
        return cls(
            key=item.key,
            client_item_id=item.client_item_id,
            name=item.name,
            quantity=item.quantity,
            price=money_or_none(item.price),
            sort_order=item.sort_order,
            claimed_quantity=item.claimed_quantity,
            viewer_claimed_quantity=item.viewer_claimed_quantity,
            remaining_quantity=item.remaining_quantity,
        )


class LiveParticipantResponse(BaseModel):
    participant_key: str
    display_name: str
    email: str | None
    joined_at: datetime
    is_host: bool
    is_submitted: bool
    submitted_at: datetime | None
    payment_status: str | None
    payment_method: str | None
    payment_amount: str | None
    settlement: SettlementResponse

    @classmethod
    def from_participant(cls, participant: LiveParticipant) -> LiveParticipantResponse:
        return cls(
            participant_key=participant.participant_key,
            display_name=participant.display_name,
            email=participant.email,
            joined_at=participant.joined_at,
            is_host=participant.is_host,
            is_submitted=participant.is_submitted,
            submitted_at=participant.submitted_at,
            payment_status=participant.payment_status,
            payment_method=participant.payment_method,
            payment_amount=money_or_none(participant.payment_amount),
            settlement=SettlementResponse.from_settlement(participant.settlement),
        )


class PaymentQueueEntryResponse(BaseModel):
    participant_key: str
    display_name: str
    amount_due: str
    payment_status: str | None
    payment_method: str | None
    payment_amount: str | None

    @classmethod
    def from_entry(cls, entry: PaymentQueueEntry) -> PaymentQueueEntryResponse:
        return cls(
            participant_key=entry.participant_key,
            display_name=entry.display_name,
            amount_due=format_money(entry.amount_due),
            payment_status=entry.payment_status,
            payment_method=entry.payment_method,
            payment_amount=money_or_none(entry.payment_amount),
        )


class ViewerSettlementResponse(SettlementResponse):
    can_pay: bool
    payment_status: str | None
    payment_method: str | None


class LiveViewResponse(BaseModel):
    """Reconciled view of a receipt's claims and settlement."""

    id: str
    code: str
    settlement_phase: str
    receipt_total: str | None
    subtotal: str | None
    tax: str | None
    gratuity: str | None
    extra_fees_total: str
    other_fees: str | None
    gratuity_percent: str | None
    viewer_participant_key: str | None
    viewer_removed: bool
    host_participant_key: str | None
    host_display_name: str | None
    host_payment_options: HostPaymentOptionsResponse
    all_participants_submitted: bool
    unclaimed_item_count: int
    participants: list[LiveParticipantResponse]
    viewer_settlement: ViewerSettlementResponse | None
    items: list[LiveItemResponse]
    host_payment_queue: list[PaymentQueueEntryResponse]

    @classmethod
    def from_view(cls, view: LiveView) -> LiveViewResponse:
        receipt = view.receipt
        viewer_settlement = None
        if view.viewer_settlement is not None:
            base = SettlementResponse.from_settlement(view.viewer_settlement.settlement)
            viewer_settlement = ViewerSettlementResponse(
                **base.model_dump(),
                can_pay=view.viewer_settlement.can_pay,
                payment_status=view.viewer_settlement.payment_status,
                payment_method=view.viewer_settlement.payment_method,
            )
        return cls(
            id=str(receipt.id),
            code=receipt.share_code,
            settlement_phase=view.settlement_phase.value,
            receipt_total=money_or_none(receipt.receipt_total),
            subtotal=money_or_none(receipt.subtotal),
            tax=money_or_none(receipt.tax),
            gratuity=money_or_none(receipt.gratuity),
            extra_fees_total=format_money(view.extra_fees_total),
            other_fees=money_or_none(view.other_fees),
            gratuity_percent=money_or_none(view.gratuity_percent),
            viewer_participant_key=view.viewer_participant_key,
            viewer_removed=view.viewer_removed,
            host_participant_key=view.host_participant_key,
            host_display_name=view.host_display_name,
            host_payment_options=HostPaymentOptionsResponse.from_config(
                view.host_payment_config
            ),
            all_participants_submitted=view.all_participants_submitted,
            unclaimed_item_count=view.unclaimed_item_count,
            participants=[
                LiveParticipantResponse.from_participant(participant)
                for participant in view.participants
            ],
            viewer_settlement=viewer_settlement,
            items=[LiveItemResponse.from_item(item) for item in view.items],
            host_payment_queue=[
                PaymentQueueEntryResponse.from_entry(entry)
                for entry in view.host_payment_queue
            ],
        )
