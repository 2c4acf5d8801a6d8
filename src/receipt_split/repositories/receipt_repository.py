"""Receipt and receipt item persistence operations."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from receipt_split.db.models.receipt import Receipt
from receipt_split.db.models.receipt_claim import ReceiptClaim
from receipt_split.db.models.receipt_item import ReceiptItem
from receipt_split.db.models.receipt_participant import ReceiptParticipant
from receipt_split.domain.identity import AuthenticatedOwner, Owner
from receipt_split.domain.items import NormalizedItem


class ReceiptRepository:
    """Repository for receipts and their wholesale-replaced items."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, receipt_id: UUID) -> Receipt | None:
        return self._session.get(Receipt, receipt_id)

    def get_by_share_code(self, share_code: str) -> Receipt | None:
        statement = select(Receipt).where(Receipt.share_code == share_code)
        return self._session.scalar(statement)

    def get_by_share_code_for_update(self, share_code: str) -> Receipt | None:
        statement = (
            select(Receipt).where(Receipt.share_code == share_code).with_for_update()
        )
        return self._session.scalar(statement)

    def share_code_exists(self, share_code: str) -> bool:
        statement = select(Receipt.id).where(Receipt.share_code == share_code)
        return self._session.scalar(statement) is not None

    def find_for_owner(self, owner: Owner, client_receipt_id: str) -> Receipt | None:
        if isinstance(owner, AuthenticatedOwner):
            ownership = (
                Receipt.owner_token_identifier == owner.identity.token_identifier
            )
        else:
            ownership = Receipt.guest_device_id == owner.guest_device_id
        statement = (
            select(Receipt)
            .where(ownership, Receipt.client_receipt_id == client_receipt_id)
            .with_for_update()
        )
        return self._session.scalar(statement)

    def list_owned(
        self,
        *,
        owner_token_identifier: str | None = None,
        guest_device_id: str | None = None,
        active: bool,
        limit: int,
    ) -> list[Receipt]:
        if owner_token_identifier is not None:
            ownership = Receipt.owner_token_identifier == owner_token_identifier
        else:
            ownership = Receipt.guest_device_id == guest_device_id
        if active:
            status_filter = or_(
                Receipt.is_active.is_(True), Receipt.is_active.is_(None)
            )
        else:
            status_filter = Receipt.is_active.is_(False)
        statement = (
            select(Receipt)
            .where(ownership, status_filter)
            .order_by(Receipt.created_at.desc())
            .limit(limit)
        )
        return list(self._session.scalars(statement).all())

    def list_for_guest_owner(self, guest_device_id: str) -> list[Receipt]:
        statement = (
            select(Receipt)
            .where(Receipt.guest_device_id == guest_device_id)
            .order_by(Receipt.created_at.asc())
            .with_for_update()
        )
        return list(self._session.scalars(statement).all())

    def owner_has_client_receipt_id(
        self,
        *,
        owner_token_identifier: str,
        client_receipt_id: str,
    ) -> bool:
        statement = select(Receipt.id).where(
            Receipt.owner_token_identifier == owner_token_identifier,
            Receipt.client_receipt_id == client_receipt_id,
        )
        return self._session.scalar(statement) is not None

    def add(self, receipt: Receipt) -> Receipt:
        self._session.add(receipt)
        self._session.flush()
        return receipt

    def add_with_share_code(
        self,
        receipt: Receipt,
        next_share_code: Callable[[], str],
        *,
        attempts: int = 3,
    ) -> Receipt:
        """Insert with a fresh code, drawing again when the unique index trips."""

        for attempt in range(1, attempts + 1):
            receipt.share_code = next_share_code()
            try:
                with self._session.begin_nested():
                    self._session.add(receipt)
                    self._session.flush()
            except IntegrityError:
                if attempt == attempts:
                    raise
                continue
            return receipt
        msg = "attempts must be at least 1."
        raise ValueError(msg)

    def list_items(self, receipt_id: UUID) -> list[ReceiptItem]:
        statement = (
            select(ReceiptItem)
            .where(ReceiptItem.receipt_id == receipt_id)
            .order_by(ReceiptItem.sort_order.asc(), ReceiptItem.created_at.asc())
        )
        return list(self._session.scalars(statement).all())

    def replace_items(
        self,
        *,
        receipt_id: UUID,
        items: list[NormalizedItem],
        now: datetime,
    ) -> list[ReceiptItem]:
        """Delete every item and claim of the receipt, then insert ``items``."""

        self._session.execute(
            delete(ReceiptClaim).where(ReceiptClaim.receipt_id == receipt_id)
        )
        self._session.execute(
            delete(ReceiptItem).where(ReceiptItem.receipt_id == receipt_id)
        )
        rows = [
            ReceiptItem(
                receipt_id=receipt_id,
                client_item_id=item.client_item_id,
                name=item.name,
                quantity=item.quantity,
                price=item.price,
                sort_order=item.sort_order,
                created_at=now,
            )
            for item in items
        ]
        self._session.add_all(rows)
        self._session.flush()
        return rows

    def delete_tree(self, receipt: Receipt) -> None:
        """Hard delete the receipt with its claims, participants and items."""

        for model in (ReceiptClaim, ReceiptParticipant, ReceiptItem):
            self._session.execute(delete(model).where(model.receipt_id == receipt.id))
        self._session.delete(receipt)
        self._session.flush()
