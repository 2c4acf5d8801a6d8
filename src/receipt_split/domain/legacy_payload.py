"""Decoding of receipts stored in the older single JSON blob format.

Decoding is a strict parse step that returns either the items or a
:class:`LegacyDecodeFailure`; :func:`legacy_items_or_empty` collapses failures
to an empty list so reads never fail on a malformed blob.
"""

from __future__ import annotations

import enum
import json
import logging
from dataclasses import dataclass
from typing import Any

from receipt_split.domain.items import (
    NormalizedItem,
    normalize_price,
    to_positive_int,
)

logger = logging.getLogger(__name__)


class LegacyDecodeFailure(enum.StrEnum):
    """Reasons a legacy blob yields no items."""

    INVALID_JSON = "invalid_json"
    NOT_AN_OBJECT = "not_an_object"
    RECEIPT_LIST = "receipt_list"
    RECEIPT_ID_MISMATCH = "receipt_id_mismatch"


@dataclass(slots=True, frozen=True)
class LegacyDecodeResult:
    items: list[NormalizedItem]
    failure: LegacyDecodeFailure | None = None


def decode_legacy_items(
    payload: str,
    expected_client_receipt_id: str | None = None,
) -> LegacyDecodeResult:
    try:
        parsed = json.loads(payload)
    except (TypeError, ValueError):
        return LegacyDecodeResult(items=[], failure=LegacyDecodeFailure.INVALID_JSON)

    if not isinstance(parsed, dict):
        return LegacyDecodeResult(items=[], failure=LegacyDecodeFailure.NOT_AN_OBJECT)

    if isinstance(parsed.get("receipts"), list):
        return LegacyDecodeResult(items=[], failure=LegacyDecodeFailure.RECEIPT_LIST)

    embedded_id = _embedded_receipt_id(parsed)
    if (
        expected_client_receipt_id
        and embedded_id
        and embedded_id != expected_client_receipt_id
    ):
        return LegacyDecodeResult(
            items=[],
            failure=LegacyDecodeFailure.RECEIPT_ID_MISMATCH,
        )

    raw_items = parsed.get("items")
    if not isinstance(raw_items, list):
        return LegacyDecodeResult(items=[])

    items: list[NormalizedItem] = []
    for index, raw_item in enumerate(raw_items):
        item = _decode_item(raw_item, index)
        if item is not None:
            items.append(item)
    return LegacyDecodeResult(items=items)


def legacy_items_or_empty(
    payload: str | None,
    expected_client_receipt_id: str | None = None,
) -> list[NormalizedItem]:
    if not payload:
        return []
    result = decode_legacy_items(payload, expected_client_receipt_id)
    if result.failure is not None:
        logger.debug(
            "legacy_payload_rejected",
            extra={
                "client_receipt_id": expected_client_receipt_id,
                "reason": result.failure.value,
            },
        )
    return result.items


def _embedded_receipt_id(payload: dict[str, Any]) -> str | None:
    for field_name in ("clientReceiptId", "id"):
        value = payload.get(field_name)
        if isinstance(value, str):
            return value
    return None


def _decode_item(raw_item: Any, index: int) -> NormalizedItem | None:
    if not isinstance(raw_item, dict):
        return None
    name = raw_item.get("name")
    if not isinstance(name, str) or not name.strip():
        return None
    client_item_id = raw_item.get("id")
    return NormalizedItem(
        name=name.strip(),
        quantity=to_positive_int(raw_item.get("quantity"), 1),
        sort_order=index,
        price=normalize_price(raw_item.get("price")),
        client_item_id=client_item_id if isinstance(client_item_id, str) else None,
    )
