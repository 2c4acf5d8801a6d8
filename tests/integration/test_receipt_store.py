from __future__ import annotations

import json
from datetime import UTC, datetime

from conftest import (
    ALICE,
    GUEST_A_DEVICE,
    HOST_DEVICE,
    auth_context,
    guest_context,
    receipt_input,
)
from sqlalchemy import select
from sqlalchemy.orm import Session

from receipt_split.api.dependencies import get_claim_service, get_receipt_service
from receipt_split.db.models.receipt import ArchiveReason, Receipt, SettlementPhase
from receipt_split.db.models.receipt_claim import ReceiptClaim
from receipt_split.domain.items import ItemInput

HOST = guest_context(HOST_DEVICE)
ANA = guest_context(GUEST_A_DEVICE)


def test_resubmission_keeps_share_code_and_resets_claims(session: Session) -> None:
    service = get_receipt_service(session)
    first = service.create(HOST, receipt_input())
    get_claim_service(session).update_claim(
        first.code, ANA, item_key="tacos", delta=1
    )

    second = service.create(
        HOST,
        receipt_input(items=[ItemInput(name="Burrito", quantity=2, price=18)]),
    )

    assert first.created is True
    assert second.created is False
    assert (second.id, second.code) == (first.id, first.code)
    assert session.scalars(select(ReceiptClaim)).all() == []
    view = service.get(first.code, HOST)
    assert view is not None
    assert [item.key for item in view.items] == ["sort:0"]


def test_resubmitting_the_same_items_is_idempotent(session: Session) -> None:
    service = get_receipt_service(session)

    first = service.create(HOST, receipt_input())
    second = service.create(HOST, receipt_input())

    assert (second.id, second.code, second.created) == (first.id, first.code, False)
    assert len(session.scalars(select(Receipt)).all()) == 1
    view = service.get(first.code, HOST)
    assert view is not None
    assert [(item.key, item.name, item.quantity) for item in view.items] == [
        ("tacos", "Tacos", 3),
        ("soda", "Soda", 1),
    ]


def test_fees_are_derived_from_totals(session: Session) -> None:
    service = get_receipt_service(session)

    result = service.create(
        HOST, receipt_input(receipt_total="45.00", tax="3.00", gratuity="6.00")
    )

    receipt = session.get(Receipt, result.id)
    assert receipt is not None
    assert str(receipt.extra_fees_total) == "11.00"
    assert str(receipt.other_fees) == "2.00"
    assert receipt.settlement_phase is SettlementPhase.CLAIMING


def test_legacy_blob_is_used_when_no_items_are_stored(session: Session) -> None:
    now = datetime(2025, 3, 1, tzinfo=UTC)
    session.add(
        Receipt(
            guest_device_id=HOST_DEVICE,
            client_receipt_id="legacy-1",
            share_code="654321",
            legacy_payload=json.dumps(
                {
                    "clientReceiptId": "legacy-1",
                    "items": [{"name": "Ramen", "quantity": 2, "price": 24}],
                }
            ),
            created_at=now,
            updated_at=now,
        )
    )
    session.commit()

    view = get_receipt_service(session).get("654321", ANA)

    assert view is not None
    assert [(item.key, item.name, item.quantity) for item in view.items] == [
        ("sort:0", "Ramen", 2)
    ]
    assert view.can_manage is False


def test_malformed_or_unknown_codes_read_as_missing(session: Session) -> None:
    service = get_receipt_service(session)

    assert service.get("abc123", ANA) is None
    assert service.get("000000", ANA) is None
    assert service.join("000000", ANA) is None


def test_recent_list_merges_owned_and_joined(session: Session) -> None:
    service = get_receipt_service(session)
    hosted = service.create(HOST, receipt_input("hosted"))
    own = service.create(ANA, receipt_input("own"))
    service.join(hosted.code, ANA)

    recent = service.list_recent(ANA)

    assert [view.receipt.id for view in recent] == [hosted.id, own.id]
    assert [view.can_manage for view in recent] == [False, True]
    assert service.list_recent(guest_context("not-a-device")) == []


def test_archive_hides_receipt_until_unarchived(session: Session) -> None:
    service = get_receipt_service(session)
    result = service.create(HOST, receipt_input())

    assert service.archive(HOST, "receipt-1") is True
    receipt = session.get(Receipt, result.id)
    assert receipt is not None
    assert receipt.archived_reason is ArchiveReason.MANUAL
    assert service.get(result.code, HOST) is None
    assert service.list_recent(HOST) == []
    archived = service.list_recent(HOST, include_archived=True)
    assert [view.receipt.id for view in archived] == [result.id]

    assert service.unarchive(HOST, "receipt-1") is True
    assert service.get(result.code, HOST) is not None
    assert service.archive(ANA, "receipt-1") is False


def test_destroy_removes_receipt_tree(session: Session) -> None:
    service = get_receipt_service(session)
    result = service.create(HOST, receipt_input())
    get_claim_service(session).update_claim(
        result.code, ANA, item_key="tacos", delta=1
    )

    assert service.destroy(HOST, "receipt-1") is True
    assert session.get(Receipt, result.id) is None
    assert service.destroy(HOST, "receipt-1") is False


def test_account_owner_manages_by_token(session: Session) -> None:
    service = get_receipt_service(session)
    alice = auth_context(ALICE)
    result = service.create(alice, receipt_input())

    view = service.get(result.code, alice)

    assert view is not None
    assert view.can_manage is True
    assert view.receipt.owner_token_identifier == ALICE.token_identifier
    assert view.receipt.guest_device_id is None
