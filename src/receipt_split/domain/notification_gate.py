"""Eligibility check and message shaping for payment notifications."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from receipt_split.domain.money import format_money

PAYMENT_METHOD_LABELS = {
    "venmo": "Venmo",
    "cash_app": "Cash App",
    "zelle": "Zelle",
    "cash_apple_pay": "Cash / Apple Pay",
}
PAYMENT_METHODS = frozenset(PAYMENT_METHOD_LABELS)
PAYMENT_NOTIFICATION_TITLE = "Payment Incoming"


@dataclass(slots=True, frozen=True)
class PaymentNotificationRequest:
    """Decision queued when a participant declares a payment."""

    receipt_code: str
    participant_key: str
    guest_name: str
    amount: Decimal
    payment_method: str
    host_token_identifier: str | None = None
    host_guest_device_id: str | None = None


@dataclass(slots=True, frozen=True)
class PaymentStateSnapshot:
    """Payment state re-read right before delivery."""

    receipt_is_active: bool
    payment_status: str | None
    payment_method: str | None


@dataclass(slots=True, frozen=True)
class PaymentNotification:
    title: str
    body: str
    payload: dict[str, Any]


def payment_method_label(method: str) -> str:
    return PAYMENT_METHOD_LABELS.get(method, method)


def should_notify(
    request: PaymentNotificationRequest,
    state: PaymentStateSnapshot | None,
) -> bool:
    """Only a still-pending payment with the same method on an active receipt."""

    return (
        state is not None
        and state.receipt_is_active
        and state.payment_status == "pending"
        and state.payment_method == request.payment_method
    )


def build_payment_notification(
    request: PaymentNotificationRequest,
) -> PaymentNotification:
    title = PAYMENT_NOTIFICATION_TITLE
    body = (
        f"{request.guest_name} is paying you ${format_money(request.amount)} "
        f"via {payment_method_label(request.payment_method)}. Tap to confirm."
    )
    return PaymentNotification(
        title=title,
        body=body,
        payload={
            "receipt_code": request.receipt_code,
            "participant_key": request.participant_key,
            "guest_name": request.guest_name,
            "amount": format_money(request.amount),
            "payment_method": request.payment_method,
        },
    )
