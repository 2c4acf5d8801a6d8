from __future__ import annotations

from decimal import Decimal

import pytest
from conftest import (
    ALICE,
    GUEST_A_DEVICE,
    GUEST_B_DEVICE,
    HOST_DEVICE,
    auth_context,
    guest_context,
    receipt_input,
)
from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from receipt_split.api.dependencies import (
    get_claim_service,
    get_participant_service,
    get_receipt_service,
    get_settlement_service,
    get_user_service,
)
from receipt_split.db.models.receipt import ArchiveReason, Receipt
from receipt_split.domain.errors import (
    HostOnlyActionError,
    InvalidRequestError,
    SettlementNotReadyError,
)
from receipt_split.domain.identity import RequestContext
from receipt_split.domain.notification_gate import (
    PaymentNotification,
    PaymentNotificationRequest,
)
from receipt_split.services.notification_service import NotificationService
from receipt_split.services.user_service import UpdateProfileInput

ANA = guest_context(GUEST_A_DEVICE)
BEN = guest_context(GUEST_B_DEVICE)
HOST = guest_context(HOST_DEVICE)
ANA_KEY = f"guest:{GUEST_A_DEVICE}"
BEN_KEY = f"guest:{GUEST_B_DEVICE}"


class RecordingDispatcher:
    def __init__(self) -> None:
        self.sent: list[PaymentNotification] = []

    def dispatch(
        self,
        request: PaymentNotificationRequest,
        notification: PaymentNotification,
    ) -> bool:
        self.sent.append(notification)
        return True


def _claimed_and_submitted(session: Session, context: RequestContext = HOST) -> str:
    code = (
        get_receipt_service(session)
        .create(context, receipt_input(receipt_total="40.00"))
        .code
    )
    claims = get_claim_service(session)
    claims.update_claim(code, ANA, item_key="tacos", delta=2)
    claims.update_claim(code, BEN, item_key="tacos", delta=1)
    claims.update_claim(code, BEN, item_key="soda", delta=1)
    participants = get_participant_service(session)
    participants.set_submission_status(code, ANA, is_submitted=True)
    participants.set_submission_status(code, BEN, is_submitted=True)
    return code


def test_finalize_requires_every_participant_submitted(session: Session) -> None:
    code = get_receipt_service(session).create(HOST, receipt_input()).code
    get_claim_service(session).update_claim(code, ANA, item_key="tacos", delta=3)
    settlement = get_settlement_service(session)

    with pytest.raises(SettlementNotReadyError):
        settlement.finalize_settlement(code, HOST)
    with pytest.raises(HostOnlyActionError):
        settlement.finalize_settlement(code, ANA)


def test_finalize_requires_every_item_claimed(session: Session) -> None:
    code = get_receipt_service(session).create(HOST, receipt_input()).code
    get_claim_service(session).update_claim(code, ANA, item_key="tacos", delta=3)
    get_participant_service(session).set_submission_status(
        code, ANA, is_submitted=True
    )

    with pytest.raises(SettlementNotReadyError) as exc_info:
        get_settlement_service(session).finalize_settlement(code, HOST)

    assert exc_info.value.details["unclaimed_item_count"] == 1


def test_account_host_needs_a_payment_option(session: Session) -> None:
    alice = auth_context(ALICE)
    code = _claimed_and_submitted(session, alice)
    settlement = get_settlement_service(session)

    with pytest.raises(SettlementNotReadyError):
        settlement.finalize_settlement(code, alice)

    get_user_service(session).update_profile(
        ALICE, UpdateProfileInput(venmo_enabled=True, venmo_username="@alice")
    )
    receipt = settlement.finalize_settlement(code, alice)

    assert receipt.finalized_at is not None


def test_totals_cover_the_receipt_and_last_confirmation_archives(
    session: Session,
) -> None:
    code = _claimed_and_submitted(session)
    settlement = get_settlement_service(session)
    settlement.finalize_settlement(code, HOST)

    view = get_claim_service(session).live(code, HOST)
    assert view is not None
    dues = {row.participant_key: row.settlement.total_due for row in view.participants}
    assert dues == {ANA_KEY: Decimal("23.53"), BEN_KEY: Decimal("16.47")}
    assert [entry.participant_key for entry in view.host_payment_queue] == [
        ANA_KEY,
        BEN_KEY,
    ]

    ana_intent = settlement.mark_payment_intent(code, ANA, "Venmo")
    assert ana_intent.amount_due == Decimal("23.53")
    assert ana_intent.notification.guest_name == "Guest"
    assert ana_intent.notification.host_guest_device_id == HOST_DEVICE
    settlement.mark_payment_intent(code, BEN, "cash_app")

    first = settlement.confirm_payment(code, HOST, ANA_KEY)
    last = settlement.confirm_payment(code, HOST, BEN_KEY)

    assert first.receipt_archived is False
    assert last.receipt_archived is True
    stored = session.scalar(select(Receipt).where(Receipt.share_code == code))
    assert stored is not None
    assert stored.is_active is False
    assert stored.archived_reason is ArchiveReason.AUTO_SETTLED
    assert get_receipt_service(session).get(code, HOST) is None


def test_payment_intent_rejects_bad_method_and_unfinalized(session: Session) -> None:
    code = _claimed_and_submitted(session)
    settlement = get_settlement_service(session)

    with pytest.raises(InvalidRequestError):
        settlement.mark_payment_intent(code, ANA, "bitcoin")
    with pytest.raises(SettlementNotReadyError):
        settlement.mark_payment_intent(code, ANA, "venmo")


def test_notification_is_skipped_once_payment_is_confirmed(
    session: Session,
    sqlite_session_factory: sessionmaker[Session],
) -> None:
    code = _claimed_and_submitted(session)
    settlement = get_settlement_service(session)
    settlement.finalize_settlement(code, HOST)
    intent = settlement.mark_payment_intent(code, ANA, "zelle")
    dispatcher = RecordingDispatcher()
    notifications = NotificationService(
        session_factory=sqlite_session_factory, dispatcher=dispatcher
    )

    assert notifications.deliver(intent.notification) is True
    assert dispatcher.sent[0].body == (
        "Guest is paying you $23.53 via Zelle. Tap to confirm."
    )

    settlement.confirm_payment(code, HOST, ANA_KEY)
    assert notifications.deliver(intent.notification) is False
    assert len(dispatcher.sent) == 1
