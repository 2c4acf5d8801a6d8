"""Quantity allocation for a single claim request on one item.

A positive request is truncated to what is left on the item and a negative
request to what the caller personally holds, so the sum of claims on an item
never exceeds its quantity.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class ClaimChange:
    """Outcome of one allocation step."""

    applied_delta: int
    quantity: int

    @property
    def removes_claim(self) -> bool:
        return self.quantity <= 0


def allocate_claim(
    *,
    requested_delta: int,
    item_quantity: int,
    total_claimed: int,
    existing_quantity: int,
) -> ClaimChange:
    """Apply ``requested_delta`` to the caller's claim within item bounds."""

    if requested_delta > 0:
        available = max(0, item_quantity - total_claimed)
        applied_delta = min(requested_delta, available)
    elif requested_delta < 0:
        applied_delta = -min(abs(requested_delta), existing_quantity)
    else:
        applied_delta = 0
    return ClaimChange(
        applied_delta=applied_delta,
        quantity=max(0, existing_quantity + applied_delta),
    )
