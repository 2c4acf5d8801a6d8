"""Receipt lookups and preconditions shared by ledger services."""

from __future__ import annotations

from typing import Protocol

from receipt_split.db.models.receipt import Receipt, SettlementPhase
from receipt_split.domain.errors import (
    HostOnlyActionError,
    ReceiptNotFoundError,
    SettlementFinalizedError,
    SettlementNotReadyError,
    compose_error_message,
)
from receipt_split.domain.identity import RequestContext, normalize_guest_device_id
from receipt_split.domain.share_code import is_valid_share_code


class ReceiptLookup(Protocol):
    def get_by_share_code(self, share_code: str) -> Receipt | None: ...

    def get_by_share_code_for_update(self, share_code: str) -> Receipt | None: ...


def find_active_receipt(repository: ReceiptLookup, code: str) -> Receipt | None:
    """Return the active receipt for ``code``; malformed codes skip storage."""

    if not is_valid_share_code(code):
        return None
    receipt = repository.get_by_share_code(code)
    if receipt is None or not receipt.active:
        return None
    return receipt


def require_active_receipt(repository: ReceiptLookup, code: str) -> Receipt:
    receipt = None
    if is_valid_share_code(code):
        receipt = repository.get_by_share_code_for_update(code)
    if receipt is None or not receipt.active:
        raise ReceiptNotFoundError(details={"code": code})
    return receipt


def require_claiming(receipt: Receipt) -> None:
    if receipt.phase is SettlementPhase.FINALIZED:
        raise SettlementFinalizedError(details={"code": receipt.share_code})


def require_finalized(receipt: Receipt) -> None:
    if receipt.phase is not SettlementPhase.FINALIZED:
        raise SettlementNotReadyError(
            message=compose_error_message(
                cause="This split is not finalized yet.",
                action="Wait for the host to finalize the split and retry.",
            ),
            details={"code": receipt.share_code},
        )


def can_manage(receipt: Receipt, context: RequestContext) -> bool:
    """Owner by verified identity, or by guest device when anonymous."""

    if context.identity is not None:
        return receipt.owner_token_identifier == context.identity.token_identifier
    guest_device_id = normalize_guest_device_id(context.guest_device_id)
    return guest_device_id is not None and receipt.guest_device_id == guest_device_id


def require_host(receipt: Receipt, context: RequestContext) -> None:
    if not can_manage(receipt, context):
        raise HostOnlyActionError(details={"code": receipt.share_code})
