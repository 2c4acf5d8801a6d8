from __future__ import annotations

import pytest

from receipt_split.domain.claim_allocation import allocate_claim


def test_claim_is_truncated_to_remaining_quantity() -> None:
    first = allocate_claim(
        requested_delta=2, item_quantity=3, total_claimed=0, existing_quantity=0
    )
    second = allocate_claim(
        requested_delta=5, item_quantity=3, total_claimed=2, existing_quantity=0
    )

    assert (first.applied_delta, first.quantity) == (2, 2)
    assert (second.applied_delta, second.quantity) == (1, 1)


def test_release_never_goes_negative() -> None:
    change = allocate_claim(
        requested_delta=-5, item_quantity=3, total_claimed=3, existing_quantity=2
    )

    assert change.applied_delta == -2
    assert change.quantity == 0
    assert change.removes_claim


def test_fully_claimed_item_applies_nothing() -> None:
    change = allocate_claim(
        requested_delta=1, item_quantity=2, total_claimed=2, existing_quantity=1
    )

    assert change.applied_delta == 0
    assert change.quantity == 1
    assert not change.removes_claim


@pytest.mark.parametrize("delta", [-4, -1, 1, 2, 7])
@pytest.mark.parametrize("claimed_by_others", [0, 1, 3])
def test_sum_never_exceeds_item_quantity(delta: int, claimed_by_others: int) -> None:
    existing = 1
    change = allocate_claim(
        requested_delta=delta,
        item_quantity=4,
        total_claimed=claimed_by_others + existing,
        existing_quantity=existing,
    )

    assert 0 <= claimed_by_others + change.quantity <= 4
    assert change.quantity == existing + change.applied_delta
