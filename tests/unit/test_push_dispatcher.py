from __future__ import annotations

import json
from decimal import Decimal

import httpx

from receipt_split.domain.notification_gate import (
    PaymentNotificationRequest,
    build_payment_notification,
)
from receipt_split.infrastructure.push_dispatcher import HTTPPushDispatcher

REQUEST = PaymentNotificationRequest(
    receipt_code="123456",
    participant_key="guest:ana",
    guest_name="Ana",
    amount=Decimal("8.00"),
    payment_method="venmo",
    host_token_identifier="issuer|host",
)
NOTIFICATION = build_payment_notification(REQUEST)


def test_posts_notification_to_relay() -> None:
    seen: list[dict[str, object]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(202)

    dispatcher = HTTPPushDispatcher(
        relay_url="http://relay.test/push",
        timeout_seconds=1,
        transport=httpx.MockTransport(handler),
    )

    assert dispatcher.dispatch(REQUEST, NOTIFICATION) is True
    assert seen == [
        {
            "recipient": {"token_identifier": "issuer|host", "guest_device_id": None},
            "title": "Payment Incoming",
            "body": "Ana is paying you $8.00 via Venmo. Tap to confirm.",
            "data": NOTIFICATION.payload,
        }
    ]


def test_relay_failure_is_reported_not_raised() -> None:
    dispatcher = HTTPPushDispatcher(
        relay_url="http://relay.test/push",
        timeout_seconds=1,
        transport=httpx.MockTransport(lambda _: httpx.Response(503)),
    )

    assert dispatcher.dispatch(REQUEST, NOTIFICATION) is False


def test_missing_relay_url_skips_delivery() -> None:
    dispatcher = HTTPPushDispatcher(relay_url=None, timeout_seconds=1)

    assert dispatcher.dispatch(REQUEST, NOTIFICATION) is False
