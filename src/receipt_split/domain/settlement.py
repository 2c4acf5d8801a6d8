"""Per-participant settlement totals in integer cents.

Fees are split proportionally to each participant's claimed item subtotal
when a base is known, otherwise evenly. Every split floors the per-person
cents and hands the leftover cents to a single recipient.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from receipt_split.domain.money import ZERO, floor_int, from_cents, quantize_money
from receipt_split.domain.money import round_half_up_int, to_cents


@dataclass(slots=True, frozen=True)
class SettlementParticipant:
    participant_key: str
    joined_at: datetime


@dataclass(slots=True, frozen=True)
class ParticipantSettlement:
    item_subtotal: Decimal
    tax_share: Decimal
    gratuity_share: Decimal
    extra_fees_share: Decimal
    rounding_adjustment: Decimal
    total_due: Decimal


@dataclass(slots=True, frozen=True)
class SettlementPricing:
    """Receipt level amounts feeding the split."""

    receipt_subtotal: Decimal
    extra_fees_total: Decimal
    tax: Decimal | None = None
    gratuity: Decimal | None = None


def select_remainder_recipient(
    participants: Sequence[SettlementParticipant],
    item_subtotals: Mapping[str, Decimal],
    host_participant_key: str | None,
    absorb_extra_cents: bool,
) -> str | None:
    """Host when absorbing, else the biggest non-host spender, earliest first."""

    if not participants:
        return None
    keys = [participant.participant_key for participant in participants]
    if absorb_extra_cents and host_participant_key in keys:
        return host_participant_key

    candidates = [
        participant
        for participant in participants
        if participant.participant_key != host_participant_key
    ]
    if not candidates:
        candidates = list(participants)
    ranked = sorted(
        candidates,
        key=lambda participant: (
            -item_subtotals.get(participant.participant_key, ZERO),
            participant.joined_at,
        ),
    )
    return ranked[0].participant_key


def distribute_proportional_cents(
    total_cents: int,
    total_claimed_subtotal: Decimal,
    participants: Sequence[SettlementParticipant],
    item_subtotals: Mapping[str, Decimal],
    remainder_recipient: str | None,
) -> dict[str, int]:
    shares = {participant.participant_key: 0 for participant in participants}
    if total_cents <= 0 or not participants:
        return shares

    allocated = 0
    for participant in participants:
        subtotal = item_subtotals.get(participant.participant_key, ZERO)
        share = 0
        if total_claimed_subtotal > 0:
            share = floor_int(total_cents * subtotal / total_claimed_subtotal)
        shares[participant.participant_key] = share
        allocated += share

    remainder = total_cents - allocated
    if remainder > 0 and remainder_recipient is not None:
        shares[remainder_recipient] += remainder
    return shares


def distribute_even_cents(
    total_cents: int,
    participants: Sequence[SettlementParticipant],
    remainder_recipient: str | None,
) -> dict[str, int]:
    shares = {participant.participant_key: 0 for participant in participants}
    if total_cents <= 0 or not participants:
        return shares

    base_share = total_cents // len(participants)
    for participant in participants:
        shares[participant.participant_key] = base_share
    remainder = total_cents - base_share * len(participants)
    if remainder > 0 and remainder_recipient is not None:
        shares[remainder_recipient] += remainder
    return shares


def compute_settlement_totals(
    *,
    participants: Sequence[SettlementParticipant],
    item_subtotals: Mapping[str, Decimal],
    pricing: SettlementPricing,
    host_participant_key: str | None,
    absorb_extra_cents: bool,
) -> dict[str, ParticipantSettlement]:
    """Compute what each roster member owes for items plus fees."""

    if not participants:
        return {}

    total_claimed = quantize_money(sum(item_subtotals.values(), ZERO))
    if pricing.receipt_subtotal > 0:
        base = pricing.receipt_subtotal
    else:
        base = total_claimed if total_claimed > 0 else ZERO
    has_breakdown = pricing.tax is not None or pricing.gratuity is not None

    tax_cents = max(0, to_cents(pricing.tax or ZERO))
    gratuity_cents = max(0, to_cents(pricing.gratuity or ZERO))
    extra_cents = max(0, to_cents(pricing.extra_fees_total))
    other_cents = max(0, extra_cents - tax_cents - gratuity_cents)
    # Only the claimed share of the fees is distributed.
    claim_ratio = total_claimed / base if base > 0 else ZERO

    recipient = select_remainder_recipient(
        participants, item_subtotals, host_participant_key, absorb_extra_cents
    )
    zero = {participant.participant_key: 0 for participant in participants}

    def proportional(cents: int) -> dict[str, int]:
        return distribute_proportional_cents(
            round_half_up_int(cents * claim_ratio),
            total_claimed,
            participants,
            item_subtotals,
            recipient,
        )

    def even(cents: int) -> dict[str, int]:
        return distribute_even_cents(cents, participants, recipient)

    if base > 0 and has_breakdown:
        per_tax = proportional(tax_cents)
        per_gratuity = proportional(gratuity_cents)
        per_other = proportional(other_cents)
    elif base > 0:
        per_tax, per_gratuity = dict(zero), dict(zero)
        per_other = proportional(extra_cents)
    elif has_breakdown:
        per_tax = even(tax_cents)
        per_gratuity = even(gratuity_cents)
        per_other = even(other_cents)
    else:
        per_tax, per_gratuity = dict(zero), dict(zero)
        per_other = even(extra_cents)

    distributed = sum(
        per_tax[key] + per_gratuity[key] + per_other[key] for key in zero
    )
    base_share_cents = distributed // len(participants)

    totals: dict[str, ParticipantSettlement] = {}
    for participant in participants:
        key = participant.participant_key
        item_subtotal = quantize_money(item_subtotals.get(key, ZERO))
        participant_extra = per_tax[key] + per_gratuity[key] + per_other[key]
        totals[key] = ParticipantSettlement(
            item_subtotal=item_subtotal,
            tax_share=from_cents(per_tax[key]),
            gratuity_share=from_cents(per_gratuity[key]),
            extra_fees_share=from_cents(participant_extra),
            rounding_adjustment=from_cents(participant_extra - base_share_cents),
            total_due=quantize_money(item_subtotal + from_cents(participant_extra)),
        )
    return totals


def participant_item_subtotals(
    *,
    unit_prices: Mapping[str, Decimal],
    claims: Sequence[tuple[str, str, int]],
) -> dict[str, Decimal]:
    """Sum ``quantity * unit price`` per participant.

    ``claims`` yields ``(item_key, participant_key, quantity)`` tuples.
    """

    subtotals: dict[str, Decimal] = {}
    for item_key, participant_key, quantity in claims:
        unit_price = unit_prices.get(item_key, ZERO)
        subtotals[participant_key] = (
            subtotals.get(participant_key, ZERO) + unit_price * quantity
        )
    return subtotals
