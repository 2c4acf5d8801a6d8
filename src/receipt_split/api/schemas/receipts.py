"""Schemas for receipt store endpoints."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from receipt_split.domain.items import ItemInput, NormalizedItem
from receipt_split.domain.money import format_money
from receipt_split.services.receipt_service import (
    CreateReceiptInput,
    CreateReceiptResult,
    ReceiptView,
)


def to_decimal(value: float | None) -> Decimal | None:
    if value is None:
        return None
    return Decimal(str(value))


def money_or_none(value: Decimal | None) -> str | None:
    return format_money(value) if value is not None else None


class ReceiptItemRequest(BaseModel):
    """Line item candidate; bad numbers are normalized, not rejected."""

    name: str = Field(max_length=280)
    quantity: float | None = 1
    price: float | None = None
    client_item_id: str | None = Field(default=None, max_length=120)
    sort_order: float | None = None


class CreateReceiptRequest(BaseModel):
    client_receipt_id: str = Field(min_length=1, max_length=120)
    items: list[ReceiptItemRequest] = Field(default_factory=list)
    receipt_total: float | None = None
    subtotal: float | None = None
    tax: float | None = None
    gratuity: float | None = None

    @field_validator("client_receipt_id")
    @classmethod
    def validate_client_receipt_id(cls, value: str) -> str:
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("client_receipt_id cannot be blank.")
        return trimmed

    def to_input(self) -> CreateReceiptInput:
        return CreateReceiptInput(
            client_receipt_id=self.client_receipt_id,
            items=[
                ItemInput(
                    name=item.name,
                    quantity=item.quantity,
                    price=item.price,
                    client_item_id=item.client_item_id,
                    sort_order=item.sort_order,
                )
                for item in self.items
            ],
            receipt_total=to_decimal(self.receipt_total),
            subtotal=to_decimal(self.subtotal),
            tax=to_decimal(self.tax),
            gratuity=to_decimal(self.gratuity),
        )


class CreateReceiptResponse(BaseModel):
    id: UUID
    code: str
    created: bool
    allowance_source: str | None

    @classmethod
    def from_result(cls, result: CreateReceiptResult) -> CreateReceiptResponse:
        return cls(
            id=result.id,
            code=result.code,
            created=result.created,
            allowance_source=(
                result.allowance_source.value if result.allowance_source else None
            ),
        )


class ReceiptItemResponse(BaseModel):
    key: str
    client_item_id: str | None
    name: str
    quantity: int
    price: str | None
    sort_order: int

    @classmethod
    def from_item(cls, item: NormalizedItem) -> ReceiptItemResponse:
        return cls(
            key=item.key,
            client_item_id=item.client_item_id,
            name=item.name,
            quantity=item.quantity,
            price=money_or_none(item.price),
            sort_order=item.sort_order,
        )


class ReceiptResponse(BaseModel):
    """Receipt as seen by the caller."""

    id: UUID
    code: str
    client_receipt_id: str
    is_active: bool
    settlement_phase: str
    archived_reason: str | None
    can_manage: bool
    receipt_total: str | None
    subtotal: str | None
    tax: str | None
    gratuity: str | None
    extra_fees_total: str | None
    other_fees: str | None
    gratuity_percent: str | None
    finalized_at: datetime | None
    created_at: datetime
    items: list[ReceiptItemResponse]

    @classmethod
    def from_view(cls, view: ReceiptView) -> ReceiptResponse:
        receipt = view.receipt
        return cls(
            id=receipt.id,
            code=receipt.share_code,
            client_receipt_id=receipt.client_receipt_id,
            is_active=receipt.active,
            settlement_phase=receipt.phase.value,
            archived_reason=(
                receipt.archived_reason.value if receipt.archived_reason else None
            ),
            can_manage=view.can_manage,
            receipt_total=money_or_none(receipt.receipt_total),
            subtotal=money_or_none(receipt.subtotal),
            tax=money_or_none(receipt.tax),
            gratuity=money_or_none(receipt.gratuity),
            extra_fees_total=money_or_none(receipt.extra_fees_total),
            other_fees=money_or_none(receipt.other_fees),
            gratuity_percent=money_or_none(receipt.gratuity_percent),
            finalized_at=receipt.finalized_at,
            created_at=receipt.created_at,
            items=[ReceiptItemResponse.from_item(item) for item in view.items],
        )


class RecentReceiptsResponse(BaseModel):
    receipts: list[ReceiptResponse]

    @classmethod
    def from_views(cls, views: list[ReceiptView]) -> RecentReceiptsResponse:
        return cls(receipts=[ReceiptResponse.from_view(view) for view in views])


class ReceiptStatusResponse(BaseModel):
    """Outcome of an owner lifecycle action."""

    found: bool
