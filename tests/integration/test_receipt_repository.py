from __future__ import annotations

from datetime import UTC, datetime

import pytest
from conftest import GUEST_A_DEVICE, HOST_DEVICE
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from receipt_split.db.models.receipt import Receipt
from receipt_split.repositories.receipt_repository import ReceiptRepository

NOW = datetime(2025, 3, 1, tzinfo=UTC)


def _receipt(device_id: str, client_receipt_id: str) -> Receipt:
    return Receipt(
        guest_device_id=device_id,
        client_receipt_id=client_receipt_id,
        created_at=NOW,
        updated_at=NOW,
    )


def test_share_code_collision_draws_again(session: Session) -> None:
    repository = ReceiptRepository(session)
    repository.add_with_share_code(_receipt(HOST_DEVICE, "a"), lambda: "111111")
    session.commit()
    codes = iter(["111111", "222222"])

    receipt = repository.add_with_share_code(
        _receipt(GUEST_A_DEVICE, "b"), lambda: next(codes)
    )
    session.commit()

    assert receipt.share_code == "222222"
    assert repository.share_code_exists("111111")
    assert repository.share_code_exists("222222")


def test_share_code_collision_gives_up_after_attempts(session: Session) -> None:
    repository = ReceiptRepository(session)
    repository.add_with_share_code(_receipt(HOST_DEVICE, "a"), lambda: "111111")
    session.commit()

    with pytest.raises(IntegrityError):
        repository.add_with_share_code(
            _receipt(GUEST_A_DEVICE, "b"), lambda: "111111", attempts=2
        )
