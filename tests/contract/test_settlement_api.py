from __future__ import annotations

from typing import cast

from conftest import GUEST_A_DEVICE, GUEST_B_DEVICE, HOST_DEVICE, guest_headers
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from receipt_split.api.dependencies import get_notification_service
from receipt_split.domain.notification_gate import (
    PaymentNotification,
    PaymentNotificationRequest,
)
from receipt_split.services.notification_service import NotificationService

RECEIPT_PAYLOAD = {
    "client_receipt_id": "receipt-1",
    "items": [
        {"name": "Tacos", "quantity": 3, "price": 30, "client_item_id": "tacos"},
        {"name": "Soda", "quantity": 1, "price": 4, "client_item_id": "soda"},
    ],
    "receipt_total": 40,
}
HOST = guest_headers(HOST_DEVICE)
ANA = guest_headers(GUEST_A_DEVICE)
BEN = guest_headers(GUEST_B_DEVICE)
CLAIMS = ((ANA, "tacos", 2), (BEN, "tacos", 1), (BEN, "soda", 1))


class RecordingDispatcher:
    def __init__(self) -> None:
        self.sent: list[tuple[PaymentNotificationRequest, PaymentNotification]] = []

    def dispatch(
        self,
        request: PaymentNotificationRequest,
        notification: PaymentNotification,
    ) -> bool:
        self.sent.append((request, notification))
        return True


def _create(client: TestClient) -> str:
    response = client.post("/v1/receipts", json=RECEIPT_PAYLOAD, headers=HOST)
    return str(response.json()["code"])


def _ready_receipt(client: TestClient) -> str:
    code = _create(client)
    for headers, item_key, delta in CLAIMS:
        client.post(
            f"/v1/receipts/{code}/claims",
            json={"item_key": item_key, "delta": delta},
            headers=headers,
        )
    for headers in (ANA, BEN):
        client.put(
            f"/v1/receipts/{code}/participants/me/submission",
            json={"is_submitted": True},
            headers=headers,
        )
    return code


def test_finalize_is_host_only_and_checks_readiness(client: TestClient) -> None:
    code = _create(client)

    not_ready = client.post(f"/v1/receipts/{code}/settlement/finalize", headers=HOST)
    not_host = client.post(f"/v1/receipts/{code}/settlement/finalize", headers=ANA)

    assert (not_ready.status_code, not_ready.json()["code"]) == (
        422,
        "SETTLEMENT_NOT_READY",
    )
    assert not_host.status_code == 403


def test_full_settlement_archives_receipt(
    client: TestClient,
    sqlite_session_factory: sessionmaker[Session],
) -> None:
    dispatcher = RecordingDispatcher()
    app = cast(FastAPI, client.app)
    app.dependency_overrides[get_notification_service] = (
        lambda: NotificationService(
            session_factory=sqlite_session_factory, dispatcher=dispatcher
        )
    )
    code = _ready_receipt(client)

    finalized = client.post(f"/v1/receipts/{code}/settlement/finalize", headers=HOST)
    assert finalized.status_code == 200
    assert finalized.json()["settlement_phase"] == "finalized"

    intent = client.post(
        f"/v1/receipts/{code}/settlement/payment-intent",
        json={"payment_method": "venmo"},
        headers=ANA,
    )
    assert intent.status_code == 200
    assert intent.json()["amount_due"] == "23.53"
    assert intent.json()["participant"]["payment_status"] == "pending"
    assert len(dispatcher.sent) == 1
    request, notification = dispatcher.sent[0]
    assert request.host_guest_device_id == HOST_DEVICE
    assert notification.body == "Guest is paying you $23.53 via Venmo. Tap to confirm."

    live = client.get(f"/v1/receipts/{code}/live", headers=ANA).json()
    assert live["viewer_settlement"]["can_pay"] is True
    assert live["viewer_settlement"]["payment_status"] == "pending"

    confirmations = [
        client.post(
            f"/v1/receipts/{code}/settlement/confirmations",
            json={"participant_key": f"guest:{device}"},
            headers=HOST,
        ).json()
        for device in (GUEST_A_DEVICE, GUEST_B_DEVICE)
    ]
    assert [body["receipt_archived"] for body in confirmations] == [False, True]
    assert confirmations[0]["participant"]["payment_status"] == "confirmed"
    assert client.get(f"/v1/receipts/{code}", headers=HOST).json() is None


def test_payment_intent_validation(client: TestClient) -> None:
    code = _ready_receipt(client)
    client.post(f"/v1/receipts/{code}/settlement/finalize", headers=HOST)

    unsupported = client.post(
        f"/v1/receipts/{code}/settlement/payment-intent",
        json={"payment_method": "bitcoin"},
        headers=ANA,
    )
    host_paying = client.post(
        f"/v1/receipts/{code}/settlement/payment-intent",
        json={"payment_method": "venmo"},
        headers=HOST,
    )

    assert unsupported.status_code == 400
    assert host_paying.status_code == 400
