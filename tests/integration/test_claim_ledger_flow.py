from __future__ import annotations

import pytest
from conftest import (
    BOB,
    GUEST_A_DEVICE,
    GUEST_B_DEVICE,
    HOST_DEVICE,
    guest_context,
    receipt_input,
)
from sqlalchemy import select
from sqlalchemy.orm import Session

from receipt_split.api.dependencies import (
    get_claim_service,
    get_participant_service,
    get_receipt_service,
    get_settlement_service,
)
from receipt_split.db.models.receipt_claim import ReceiptClaim
from receipt_split.db.models.receipt_participant import ReceiptParticipant
from receipt_split.domain.errors import (
    ClaimsLockedError,
    HostOnlyActionError,
    InvalidRequestError,
    ItemNotFoundError,
    ReceiptNotFoundError,
    SettlementFinalizedError,
)
from receipt_split.domain.identity import RequestContext

ANA = guest_context(GUEST_A_DEVICE)
BEN = guest_context(GUEST_B_DEVICE)
HOST = guest_context(HOST_DEVICE)


def _create_receipt(session: Session) -> str:
    return get_receipt_service(session).create(HOST, receipt_input()).code


def test_claims_are_truncated_to_remaining_quantity(session: Session) -> None:
    code = _create_receipt(session)
    claims = get_claim_service(session)

    first = claims.update_claim(code, ANA, item_key="tacos", delta=2)
    second = claims.update_claim(code, BEN, item_key="tacos", delta=5)
    third = claims.update_claim(code, BEN, item_key="tacos", delta=1)

    assert (first.applied_delta, first.quantity) == (2, 2)
    assert (second.applied_delta, second.quantity) == (1, 1)
    assert (third.applied_delta, third.quantity) == (0, 1)
    total = sum(
        claim.quantity
        for claim in session.scalars(
            select(ReceiptClaim).where(ReceiptClaim.item_key == "tacos")
        )
    )
    assert total == 3


def test_release_is_limited_to_own_holding_and_drops_the_row(
    session: Session,
) -> None:
    code = _create_receipt(session)
    claims = get_claim_service(session)
    claims.update_claim(code, ANA, item_key="tacos", delta=2)

    change = claims.update_claim(code, ANA, item_key="tacos", delta=-5)

    assert (change.applied_delta, change.quantity) == (-2, 0)
    assert session.scalars(select(ReceiptClaim)).all() == []


def test_fractional_and_zero_deltas(session: Session) -> None:
    code = _create_receipt(session)
    claims = get_claim_service(session)

    fractional = claims.update_claim(code, ANA, item_key="tacos", delta=1.9)
    zero = claims.update_claim(code, ANA, item_key="tacos", delta=0)

    assert fractional.applied_delta == 1
    assert zero.applied_delta == 0


def test_unknown_item_and_code_are_rejected(session: Session) -> None:
    code = _create_receipt(session)
    claims = get_claim_service(session)

    with pytest.raises(ItemNotFoundError):
        claims.update_claim(code, ANA, item_key="nachos", delta=1)
    with pytest.raises(ReceiptNotFoundError):
        claims.update_claim("12345", ANA, item_key="tacos", delta=1)


def test_submitted_participant_cannot_change_claims(session: Session) -> None:
    code = _create_receipt(session)
    claims = get_claim_service(session)
    participants = get_participant_service(session)
    claims.update_claim(code, ANA, item_key="tacos", delta=1)

    participants.set_submission_status(code, ANA, is_submitted=True)
    with pytest.raises(ClaimsLockedError):
        claims.update_claim(code, ANA, item_key="tacos", delta=1)

    participants.set_submission_status(code, ANA, is_submitted=False)
    assert claims.update_claim(code, ANA, item_key="tacos", delta=1).quantity == 2


def test_finalized_receipt_rejects_claims(session: Session) -> None:
    code = _create_receipt(session)
    claims = get_claim_service(session)
    participants = get_participant_service(session)
    claims.update_claim(code, ANA, item_key="tacos", delta=3)
    claims.update_claim(code, BEN, item_key="soda", delta=1)
    participants.set_submission_status(code, ANA, is_submitted=True)
    participants.set_submission_status(code, BEN, is_submitted=True)
    get_settlement_service(session).finalize_settlement(code, HOST)

    with pytest.raises(SettlementFinalizedError):
        claims.update_claim(code, BEN, item_key="soda", delta=-1)


def test_live_view_reports_viewer_and_remaining_quantities(session: Session) -> None:
    code = _create_receipt(session)
    claims = get_claim_service(session)
    claims.update_claim(code, ANA, item_key="tacos", delta=2)
    claims.update_claim(code, BEN, item_key="tacos", delta=1)

    view = claims.live(code, ANA)

    assert view is not None
    tacos = next(item for item in view.items if item.key == "tacos")
    assert (tacos.claimed_quantity, tacos.remaining_quantity) == (3, 0)
    assert tacos.viewer_claimed_quantity == 2
    assert view.unclaimed_item_count == 1
    assert view.viewer_participant_key == f"guest:{GUEST_A_DEVICE}"
    assert not view.viewer_removed
    assert [row.display_name for row in view.participants] == ["You", "Guest"]
    assert view.viewer_settlement is not None
    assert str(view.viewer_settlement.settlement.total_due) == "20.00"
    assert not view.viewer_settlement.can_pay


def test_host_removal_drops_claims_and_flags_viewer(session: Session) -> None:
    code = _create_receipt(session)
    claims = get_claim_service(session)
    claims.update_claim(code, ANA, item_key="tacos", delta=2)

    removed = get_participant_service(session).remove_participant(
        code, HOST, f"guest:{GUEST_A_DEVICE}"
    )

    assert removed is True
    view = claims.live(code, ANA)
    assert view is not None
    assert view.viewer_removed
    assert view.items[0].claimed_quantity == 0


@pytest.mark.parametrize("delta", [float("inf"), float("-inf"), float("nan")])
def test_non_finite_deltas_are_rejected(session: Session, delta: float) -> None:
    code = _create_receipt(session)

    with pytest.raises(InvalidRequestError):
        get_claim_service(session).update_claim(
            code, ANA, item_key="tacos", delta=delta
        )

    assert session.scalars(select(ReceiptClaim)).all() == []


def test_signed_in_caller_is_not_host_through_a_device_header(
    session: Session,
) -> None:
    code = _create_receipt(session)
    get_claim_service(session).update_claim(code, ANA, item_key="tacos", delta=1)
    signed_in = RequestContext(identity=BOB, guest_device_id=HOST_DEVICE)

    with pytest.raises(HostOnlyActionError):
        get_participant_service(session).remove_participant(
            code, signed_in, f"guest:{GUEST_A_DEVICE}"
        )

    view = get_receipt_service(session).get(code, signed_in)
    assert view is not None
    assert view.can_manage is False
    roster = session.scalars(select(ReceiptParticipant)).all()
    assert [row.participant_key for row in roster] == [f"guest:{GUEST_A_DEVICE}"]
