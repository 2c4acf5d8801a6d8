"""API dependency providers."""

from __future__ import annotations

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from receipt_split.core.settings import get_settings
from receipt_split.db.session import SessionFactory, get_db_session
from receipt_split.domain.errors import (
    AuthenticationRequiredError,
    compose_error_message,
)
from receipt_split.domain.identity import RequestContext, VerifiedIdentity
from receipt_split.infrastructure.push_dispatcher import HTTPPushDispatcher
from receipt_split.repositories.claim_repository import ClaimRepository
from receipt_split.repositories.participant_repository import ParticipantRepository
from receipt_split.repositories.receipt_repository import ReceiptRepository
from receipt_split.repositories.user_repository import UserRepository
from receipt_split.services.billing_service import BillingService
from receipt_split.services.claim_service import ClaimService
from receipt_split.services.ledger_snapshot import LedgerReader
from receipt_split.services.migration_service import MigrationService
from receipt_split.services.notification_service import NotificationService
from receipt_split.services.participant_service import ParticipantService
from receipt_split.services.receipt_service import ReceiptService
from receipt_split.services.settlement_service import SettlementService
from receipt_split.services.user_service import UserService


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


def get_request_context(
    x_auth_token_identifier: Annotated[str | None, Header()] = None,
    x_auth_subject: Annotated[str | None, Header()] = None,
    x_auth_issuer: Annotated[str | None, Header()] = None,
    x_auth_name: Annotated[str | None, Header()] = None,
    x_auth_email: Annotated[str | None, Header()] = None,
    x_guest_device_id: Annotated[str | None, Header()] = None,
) -> RequestContext:
    """Build caller context from identity headers set by the auth gateway."""

    token_identifier = _clean(x_auth_token_identifier)
    identity = None
    if token_identifier is not None:
        subject = _clean(x_auth_subject)
        issuer = _clean(x_auth_issuer)
        if subject is None or issuer is None:
            raise AuthenticationRequiredError(
                message=compose_error_message(
                    cause="The identity token is missing its subject or issuer.",
                    action="Sign in again and retry.",
                )
            )
        identity = VerifiedIdentity(
            token_identifier=token_identifier,
            subject=subject,
            issuer=issuer,
            name=_clean(x_auth_name),
            email=_clean(x_auth_email),
        )
    return RequestContext(identity=identity, guest_device_id=_clean(x_guest_device_id))


def get_verified_identity(
    context: Annotated[RequestContext, Depends(get_request_context)],
) -> VerifiedIdentity:
    """Require a signed-in caller."""

    if context.identity is None:
        raise AuthenticationRequiredError(
            message=compose_error_message(
                cause="This operation needs a signed-in account.",
                action="Sign in and retry.",
            )
        )
    return context.identity


def get_session_factory() -> Callable[[], Session]:
    """Session factory for work that outlives the request session."""

    return SessionFactory


def _build_user_service(session: Session) -> UserService:
    return UserService(user_repository=UserRepository(session), session=session)


def get_user_service(
    session: Annotated[Session, Depends(get_db_session)],
) -> UserService:
    return _build_user_service(session)


def _build_billing_service(session: Session) -> BillingService:
    user_repository = UserRepository(session)
    return BillingService(
        user_repository=user_repository,
        user_service=UserService(user_repository=user_repository, session=session),
        session=session,
        credit_packs=get_settings().bill_credit_packs,
    )


def get_billing_service(
    session: Annotated[Session, Depends(get_db_session)],
) -> BillingService:
    """Build billing service with the configured credit packs."""

    return _build_billing_service(session)


def _build_participant_service(session: Session) -> ParticipantService:
    return ParticipantService(
        receipt_repository=ReceiptRepository(session),
        participant_repository=ParticipantRepository(session),
        claim_repository=ClaimRepository(session),
        session=session,
    )


def get_participant_service(
    session: Annotated[Session, Depends(get_db_session)],
) -> ParticipantService:
    return _build_participant_service(session)


def _build_receipt_service(session: Session) -> ReceiptService:
    return ReceiptService(
        receipt_repository=ReceiptRepository(session),
        participant_repository=ParticipantRepository(session),
        participant_service=_build_participant_service(session),
        user_service=_build_user_service(session),
        billing_service=_build_billing_service(session),
        session=session,
    )


def get_receipt_service(
    session: Annotated[Session, Depends(get_db_session)],
) -> ReceiptService:
    """Build receipt service with per-request session."""

    return _build_receipt_service(session)


def _build_ledger_reader(session: Session) -> LedgerReader:
    return LedgerReader(
        item_loader=_build_receipt_service(session),
        participant_repository=ParticipantRepository(session),
        claim_repository=ClaimRepository(session),
        user_repository=UserRepository(session),
    )


def get_claim_service(
    session: Annotated[Session, Depends(get_db_session)],
) -> ClaimService:
    """Build claim ledger service reusing receipt item loading."""

    return ClaimService(
        receipt_repository=ReceiptRepository(session),
        claim_repository=ClaimRepository(session),
        participant_service=_build_participant_service(session),
        ledger_reader=_build_ledger_reader(session),
        session=session,
    )


def get_settlement_service(
    session: Annotated[Session, Depends(get_db_session)],
) -> SettlementService:
    return SettlementService(
        receipt_repository=ReceiptRepository(session),
        participant_repository=ParticipantRepository(session),
        ledger_reader=_build_ledger_reader(session),
        session=session,
    )


def get_migration_service(
    session: Annotated[Session, Depends(get_db_session)],
) -> MigrationService:
    return MigrationService(
        receipt_repository=ReceiptRepository(session),
        participant_repository=ParticipantRepository(session),
        claim_repository=ClaimRepository(session),
        user_service=_build_user_service(session),
        session=session,
    )


def get_notification_service(
    session_factory: Annotated[
        Callable[[], Session], Depends(get_session_factory)
    ],
) -> NotificationService:
    """Build notification service that re-reads state in its own session."""

    settings = get_settings()
    return NotificationService(
        session_factory=session_factory,
        dispatcher=HTTPPushDispatcher(
            relay_url=settings.push_relay_url,
            timeout_seconds=settings.push_relay_timeout_seconds,
        ),
    )
