"""Receipt line item normalization and claim keys."""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from receipt_split.domain.money import quantize_money

SORT_KEY_PREFIX = "sort:"


@dataclass(slots=True, frozen=True)
class ItemInput:
    """Candidate line item as received from OCR or the client app."""

    name: str
    quantity: Any = 1
    price: Any = None
    client_item_id: str | None = None
    sort_order: Any = None


@dataclass(slots=True, frozen=True)
class NormalizedItem:
    """Line item ready to be persisted or projected."""

    name: str
    quantity: int
    sort_order: int
    price: Decimal | None = None
    client_item_id: str | None = None

    @property
    def key(self) -> str:
        return make_item_key(self.client_item_id, self.sort_order)


def is_finite_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, int | float | Decimal):
        return False
    return math.isfinite(value)


def to_positive_int(value: Any, fallback: int) -> int:
    """Return ``value`` as a positive integer, or ``fallback``."""

    if not is_finite_number(value) or value <= 0:
        return fallback
    truncated = int(value)
    if truncated < 1:
        return fallback
    return truncated


def normalize_price(value: Any) -> Decimal | None:
    if not is_finite_number(value):
        return None
    return quantize_money(Decimal(str(value)))


def make_item_key(client_item_id: str | None, sort_order: int) -> str:
    """Client id when present, else a positional ``sort:<n>`` key."""

    if client_item_id and client_item_id.strip():
        return client_item_id
    return f"{SORT_KEY_PREFIX}{sort_order}"


def normalize_items(items: list[ItemInput]) -> list[NormalizedItem]:
    """Trim names, drop unnamed rows and clamp numbers with index fallbacks."""

    normalized: list[NormalizedItem] = []
    for index, item in enumerate(items):
        name = (item.name or "").strip()
        if not name:
            continue
        normalized.append(
            NormalizedItem(
                name=name,
                quantity=to_positive_int(item.quantity, 1),
                sort_order=to_positive_int(item.sort_order, index),
                price=normalize_price(item.price),
                client_item_id=item.client_item_id,
            )
        )
    return normalized
