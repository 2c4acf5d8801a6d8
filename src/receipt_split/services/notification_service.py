"""Deferred delivery of payment notifications to the host."""

from __future__ import annotations

import logging
from collections.abc import Callable

from sqlalchemy.orm import Session

from receipt_split.domain.notification_gate import (
    PaymentNotificationRequest,
    PaymentStateSnapshot,
    build_payment_notification,
    should_notify,
)
from receipt_split.infrastructure.push_dispatcher import PushDispatcher
from receipt_split.repositories.participant_repository import ParticipantRepository
from receipt_split.repositories.receipt_repository import ReceiptRepository

logger = logging.getLogger(__name__)


class NotificationService:
    """Re-checks payment state after the request and notifies the host.

    Runs outside the request's unit of work, so it opens its own session.
    """

    def __init__(
        self,
        *,
        session_factory: Callable[[], Session],
        dispatcher: PushDispatcher,
    ) -> None:
        self._session_factory = session_factory
        self._dispatcher = dispatcher

    def read_state(
        self,
        session: Session,
        request: PaymentNotificationRequest,
    ) -> PaymentStateSnapshot | None:
        receipt = ReceiptRepository(session).get_by_share_code(request.receipt_code)
        if receipt is None:
            return None
        row = ParticipantRepository(session).get(receipt.id, request.participant_key)
        if row is None:
            return None
        return PaymentStateSnapshot(
            receipt_is_active=receipt.active,
            payment_status=row.payment_status,
            payment_method=row.payment_method,
        )

    def deliver(self, request: PaymentNotificationRequest) -> bool:
        with self._session_factory() as session:
            state = self.read_state(session, request)

        if not should_notify(request, state):
            logger.info(
                "payment_notification_skipped",
                extra={
                    "receipt_code": request.receipt_code,
                    "participant_key": request.participant_key,
                    "payment_status": state.payment_status if state else None,
                },
            )
            return False
        return self._dispatcher.dispatch(request, build_payment_notification(request))
