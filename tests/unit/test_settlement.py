from __future__ import annotations

from datetime import UTC, datetime, timedelta
from decimal import Decimal

from receipt_split.domain.settlement import (
    SettlementParticipant,
    SettlementPricing,
    compute_settlement_totals,
    participant_item_subtotals,
    select_remainder_recipient,
)

T0 = datetime(2025, 3, 1, 18, 0, tzinfo=UTC)
HOST = SettlementParticipant(participant_key="auth:host", joined_at=T0)
ANA = SettlementParticipant(
    participant_key="guest:ana", joined_at=T0 + timedelta(minutes=1)
)
BEN = SettlementParticipant(
    participant_key="guest:ben", joined_at=T0 + timedelta(minutes=2)
)
ROSTER = [HOST, ANA, BEN]
EVEN_SUBTOTALS = {
    "auth:host": Decimal("10.00"),
    "guest:ana": Decimal("10.00"),
    "guest:ben": Decimal("10.00"),
}


def _totals(
    subtotals: dict[str, Decimal],
    pricing: SettlementPricing,
    *,
    absorb: bool = False,
) -> dict[str, str]:
    result = compute_settlement_totals(
        participants=ROSTER,
        item_subtotals=subtotals,
        pricing=pricing,
        host_participant_key=HOST.participant_key,
        absorb_extra_cents=absorb,
    )
    return {key: str(value.total_due) for key, value in result.items()}


def test_remainder_goes_to_earliest_top_spender_not_host() -> None:
    pricing = SettlementPricing(
        receipt_subtotal=Decimal("30.00"), extra_fees_total=Decimal("1.00")
    )

    assert _totals(EVEN_SUBTOTALS, pricing) == {
        "auth:host": "10.33",
        "guest:ana": "10.34",
        "guest:ben": "10.33",
    }


def test_host_absorbs_remainder_when_configured() -> None:
    pricing = SettlementPricing(
        receipt_subtotal=Decimal("30.00"), extra_fees_total=Decimal("1.00")
    )

    assert _totals(EVEN_SUBTOTALS, pricing, absorb=True)["auth:host"] == "10.34"


def test_only_claimed_share_of_fees_is_distributed() -> None:
    pricing = SettlementPricing(
        receipt_subtotal=Decimal("40.00"), extra_fees_total=Decimal("4.00")
    )

    assert _totals(EVEN_SUBTOTALS, pricing) == {
        "auth:host": "11.00",
        "guest:ana": "11.00",
        "guest:ben": "11.00",
    }


def test_breakdown_is_split_per_component() -> None:
    pricing = SettlementPricing(
        receipt_subtotal=Decimal("30.00"),
        extra_fees_total=Decimal("4.00"),
        tax=Decimal("1.00"),
        gratuity=Decimal("3.00"),
    )

    result = compute_settlement_totals(
        participants=ROSTER,
        item_subtotals=EVEN_SUBTOTALS,
        pricing=pricing,
        host_participant_key=HOST.participant_key,
        absorb_extra_cents=False,
    )

    assert result["guest:ana"].tax_share == Decimal("0.34")
    assert result["guest:ben"].tax_share == Decimal("0.33")
    assert result["guest:ben"].gratuity_share == Decimal("1.00")
    assert sum(value.extra_fees_share for value in result.values()) == Decimal("4.00")


def test_fees_split_evenly_without_claims() -> None:
    pricing = SettlementPricing(
        receipt_subtotal=Decimal("0.00"), extra_fees_total=Decimal("1.00")
    )

    result = compute_settlement_totals(
        participants=ROSTER,
        item_subtotals={},
        pricing=pricing,
        host_participant_key=HOST.participant_key,
        absorb_extra_cents=False,
    )

    assert result["guest:ana"].total_due == Decimal("0.34")
    assert result["guest:ana"].rounding_adjustment == Decimal("0.01")
    assert result["auth:host"].total_due == Decimal("0.33")


def test_empty_roster_has_no_totals() -> None:
    pricing = SettlementPricing(
        receipt_subtotal=Decimal("10.00"), extra_fees_total=Decimal("1.00")
    )

    assert (
        compute_settlement_totals(
            participants=[],
            item_subtotals={},
            pricing=pricing,
            host_participant_key=None,
            absorb_extra_cents=True,
        )
        == {}
    )


def test_recipient_prefers_largest_subtotal() -> None:
    subtotals = {"guest:ana": Decimal("5.00"), "guest:ben": Decimal("9.00")}

    assert (
        select_remainder_recipient(ROSTER, subtotals, HOST.participant_key, False)
        == "guest:ben"
    )


def test_item_subtotals_use_unit_price_times_quantity() -> None:
    subtotals = participant_item_subtotals(
        unit_prices={"tacos": Decimal("10"), "soda": Decimal("4")},
        claims=[("tacos", "a", 2), ("soda", "a", 1), ("tacos", "b", 1)],
    )

    assert subtotals == {"a": Decimal("24"), "b": Decimal("10")}
