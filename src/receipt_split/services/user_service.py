"""Account profile service."""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from datetime import datetime
from typing import Protocol

from receipt_split.db.models.user import User
from receipt_split.domain.billing_period import StoredUsage, derive_usage_state
from receipt_split.domain.clock import utc_now
from receipt_split.domain.errors import InvalidRequestError, compose_error_message
from receipt_split.domain.identity import VerifiedIdentity
from receipt_split.domain.notification_gate import PAYMENT_METHODS
from receipt_split.domain.payment_options import (
    HostPaymentConfig,
    resolve_host_payment_config,
)

logger = logging.getLogger(__name__)


class SessionProtocol(Protocol):
    """Subset of SQLAlchemy session APIs used by this service."""

    def commit(self) -> None: ...
    def rollback(self) -> None: ...
    def refresh(self, instance: object) -> None: ...


class UserRepositoryProtocol(Protocol):
    """User repository contract consumed by service."""

    def get_by_token_identifier(self, token_identifier: str) -> User | None: ...

    def get_by_token_identifier_for_update(
        self, token_identifier: str
    ) -> User | None: ...

    def add(self, user: User) -> User: ...


@dataclass(slots=True, frozen=True)
class UpdateProfileInput:
    """Profile fields to change; ``None`` leaves a field untouched."""

    name: str | None = None
    preferred_payment_method: str | None = None
    absorb_extra_cents: bool | None = None
    venmo_enabled: bool | None = None
    venmo_username: str | None = None
    cash_app_enabled: bool | None = None
    cash_app_cashtag: str | None = None
    zelle_enabled: bool | None = None
    zelle_contact: str | None = None
    cash_apple_pay_enabled: bool | None = None


class UserService:
    """Keeps account profiles in sync with verified identities."""

    def __init__(
        self,
        *,
        user_repository: UserRepositoryProtocol,
        session: SessionProtocol,
    ) -> None:
        self._user_repository = user_repository
        self._session = session

    def upsert_from_identity(self, identity: VerifiedIdentity, now: datetime) -> User:
        """Create or refresh the profile row. The caller commits.

        A stored name is never overwritten, so edits made in the app survive
        later sign-ins.
        """

        user = self._user_repository.get_by_token_identifier_for_update(
            identity.token_identifier
        )
        if user is not None:
            user.subject = identity.subject
            user.issuer = identity.issuer
            user.email = identity.email or user.email
            if not user.name and identity.name:
                user.name = identity.name
            user.updated_at = now
            user.last_seen_at = now
            return user

        usage = derive_usage_state(StoredUsage(anchor=now), now)
        user = User(
            token_identifier=identity.token_identifier,
            subject=identity.subject,
            issuer=identity.issuer,
            name=identity.name,
            email=identity.email,
            free_bills_used_in_period=usage.free_bills_used_in_period,
            current_period_start_at=usage.current_period_start_at,
            current_period_end_at=usage.current_period_end_at,
            bill_credits_balance=usage.bill_credits_balance,
            created_at=now,
            updated_at=now,
            last_seen_at=now,
        )
        return self._user_repository.add(user)

    def upsert_me(self, identity: VerifiedIdentity) -> User:
        try:
            user = self.upsert_from_identity(identity, utc_now())
            self._session.commit()
            self._session.refresh(user)
            return user
        except Exception:
            self._session.rollback()
            raise

    def get_me(self, identity: VerifiedIdentity) -> User | None:
        return self._user_repository.get_by_token_identifier(identity.token_identifier)

    def update_profile(
        self,
        identity: VerifiedIdentity,
        payload: UpdateProfileInput,
    ) -> User:
        method = payload.preferred_payment_method
        if method is not None and method not in PAYMENT_METHODS:
            raise InvalidRequestError(
                message=compose_error_message(
                    cause="preferred_payment_method is not a supported method.",
                    action="Use venmo, cash_app, zelle or cash_apple_pay.",
                ),
                details={"preferred_payment_method": method},
            )

        try:
            now = utc_now()
            user = self.upsert_from_identity(identity, now)
            changed = []
            for field in fields(payload):
                value = getattr(payload, field.name)
                if value is None:
                    continue
                if isinstance(value, str):
                    value = value.strip() or None
                setattr(user, field.name, value)
                changed.append(field.name)
            user.updated_at = now
            self._session.commit()
            self._session.refresh(user)
            logger.info(
                "user_profile_updated",
                extra={
                    "token_identifier": identity.token_identifier,
                    "fields": changed,
                },
            )
            return user
        except Exception:
            self._session.rollback()
            raise

    def host_payment_config(
        self, owner_token_identifier: str | None
    ) -> HostPaymentConfig:
        profile = (
            self._user_repository.get_by_token_identifier(owner_token_identifier)
            if owner_token_identifier
            else None
        )
        return resolve_host_payment_config(
            owner_token_identifier=owner_token_identifier,
            profile=profile,
        )
