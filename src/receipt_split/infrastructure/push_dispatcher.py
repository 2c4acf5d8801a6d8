"""Push relay adapter for payment notifications."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

import httpx

from receipt_split.domain.notification_gate import (
    PaymentNotification,
    PaymentNotificationRequest,
)

logger = logging.getLogger(__name__)


class PushDispatcher(Protocol):
    """Hands a built notification to the delivery collaborator."""

    def dispatch(
        self,
        request: PaymentNotificationRequest,
        notification: PaymentNotification,
    ) -> bool: ...


@dataclass(slots=True, frozen=True)
class HTTPPushDispatcher:
    """Posts notifications to the push relay; a no-op without a relay URL."""

    relay_url: str | None
    timeout_seconds: float
    transport: httpx.BaseTransport | None = None

    def dispatch(
        self,
        request: PaymentNotificationRequest,
        notification: PaymentNotification,
    ) -> bool:
        if not self.relay_url:
            logger.info(
                "push_relay_not_configured",
                extra={"receipt_code": request.receipt_code},
            )
            return False

        body = {
            "recipient": {
                "token_identifier": request.host_token_identifier,
                "guest_device_id": request.host_guest_device_id,
            },
            "title": notification.title,
            "body": notification.body,
            "data": notification.payload,
        }
        try:
            with httpx.Client(
                timeout=self.timeout_seconds,
                transport=self.transport,
            ) as client:
                response = client.post(self.relay_url, json=body)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning(
                "push_relay_failed",
                extra={"receipt_code": request.receipt_code, "error": str(exc)},
            )
            return False

        logger.info(
            "payment_notification_sent",
            extra={
                "receipt_code": request.receipt_code,
                "participant_key": request.participant_key,
            },
        )
        return True
