"""Billing allowance service backed by user usage counters."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from receipt_split.db.models.bill_credit_purchase import BillCreditPurchase
from receipt_split.db.models.user import User
from receipt_split.domain.billing_period import (
    FREE_BILLS_PER_PERIOD,
    AllowanceSource,
    StoredUsage,
    UsageState,
    consume_allowance,
    derive_usage_state,
)
from receipt_split.domain.clock import utc_now
from receipt_split.domain.errors import (
    BillAllowanceExhaustedError,
    InvalidRequestError,
    PurchaseAlreadyRedeemedError,
    UnknownCreditProductError,
    compose_error_message,
)
from receipt_split.domain.identity import VerifiedIdentity

logger = logging.getLogger(__name__)


class SessionProtocol(Protocol):
    """Subset of SQLAlchemy session APIs used by this service."""

    def commit(self) -> None: ...
    def rollback(self) -> None: ...


class UserRepositoryProtocol(Protocol):
    """User repository contract consumed by service."""

    def get_by_token_identifier(self, token_identifier: str) -> User | None: ...

    def get_credit_purchase(
        self, transaction_id: str
    ) -> BillCreditPurchase | None: ...

    def add_credit_purchase(
        self, purchase: BillCreditPurchase
    ) -> BillCreditPurchase: ...


class UserUpserter(Protocol):
    def upsert_from_identity(
        self, identity: VerifiedIdentity, now: datetime
    ) -> User: ...


@dataclass(slots=True, frozen=True)
class UsageSummary:
    free_limit: int
    free_used: int
    free_remaining: int
    period_start_at: datetime
    period_end_at: datetime
    bill_credits_balance: int
    can_host_new_bill: bool


@dataclass(slots=True, frozen=True)
class RedeemCreditPurchaseInput:
    transaction_id: str
    product_id: str
    purchased_at: datetime | None = None


@dataclass(slots=True, frozen=True)
class CreditRedemption:
    applied: bool
    transaction_id: str
    credits_granted: int
    bill_credits_balance: int


def stored_usage(user: User | None, now: datetime) -> StoredUsage:
    if user is None:
        return StoredUsage(anchor=now)
    return StoredUsage(
        anchor=user.created_at,
        free_bills_used_in_period=user.free_bills_used_in_period,
        current_period_start_at=user.current_period_start_at,
        current_period_end_at=user.current_period_end_at,
        bill_credits_balance=user.bill_credits_balance,
    )


def apply_usage(user: User, usage: UsageState) -> None:
    user.free_bills_used_in_period = usage.free_bills_used_in_period
    user.current_period_start_at = usage.current_period_start_at
    user.current_period_end_at = usage.current_period_end_at
    user.bill_credits_balance = usage.bill_credits_balance


class BillingService:
    """Reads and spends the per-period receipt allowance."""

    def __init__(
        self,
        *,
        user_repository: UserRepositoryProtocol,
        user_service: UserUpserter,
        session: SessionProtocol,
        credit_packs: Mapping[str, int],
    ) -> None:
        self._user_repository = user_repository
        self._user_service = user_service
        self._session = session
        self._credit_packs = dict(credit_packs)

    def usage_summary(
        self,
        identity: VerifiedIdentity,
        now: datetime | None = None,
    ) -> UsageSummary:
        now = now or utc_now()
        user = self._user_repository.get_by_token_identifier(identity.token_identifier)
        usage = derive_usage_state(stored_usage(user, now), now)
        return UsageSummary(
            free_limit=FREE_BILLS_PER_PERIOD,
            free_used=usage.free_bills_used_in_period,
            free_remaining=usage.free_bills_remaining,
            period_start_at=usage.current_period_start_at,
            period_end_at=usage.current_period_end_at,
            bill_credits_balance=usage.bill_credits_balance,
            can_host_new_bill=usage.can_host_new_bill,
        )

    def consume_for_new_receipt(
        self,
        identity: VerifiedIdentity,
        now: datetime,
    ) -> AllowanceSource:
        """Spend one slot for a new receipt. The caller commits."""

        user = self._user_service.upsert_from_identity(identity, now)
        usage = derive_usage_state(stored_usage(user, now), now)
        consumption = consume_allowance(usage)
        if consumption.source is AllowanceSource.NONE:
            raise BillAllowanceExhaustedError(
                details={
                    "free_limit": FREE_BILLS_PER_PERIOD,
                    "period_end_at": usage.current_period_end_at.isoformat(),
                }
            )
        apply_usage(user, consumption.updated)
        logger.info(
            "bill_allowance_consumed",
            extra={
                "token_identifier": identity.token_identifier,
                "source": consumption.source.value,
                "free_used": consumption.updated.free_bills_used_in_period,
                "credits_left": consumption.updated.bill_credits_balance,
            },
        )
        return consumption.source

    def redeem_credit_purchase(
        self,
        identity: VerifiedIdentity,
        payload: RedeemCreditPurchaseInput,
    ) -> CreditRedemption:
        transaction_id = payload.transaction_id.strip()
        product_id = payload.product_id.strip()
        if not transaction_id:
            raise InvalidRequestError(
                message=compose_error_message(
                    cause="transaction_id is blank.",
                    action="Send the store transaction id of the purchase.",
                )
            )
        credits_granted = self._credit_packs.get(product_id)
        if not credits_granted:
            raise UnknownCreditProductError(details={"product_id": product_id})

        try:
            now = utc_now()
            existing = self._user_repository.get_credit_purchase(transaction_id)
            user = self._user_service.upsert_from_identity(identity, now)
            usage = derive_usage_state(stored_usage(user, now), now)
            if existing is not None:
                if existing.token_identifier != identity.token_identifier:
                    raise PurchaseAlreadyRedeemedError(
                        details={"transaction_id": transaction_id}
                    )
                self._session.commit()
                return CreditRedemption(
                    applied=False,
                    transaction_id=transaction_id,
                    credits_granted=existing.credits_granted,
                    bill_credits_balance=usage.bill_credits_balance,
                )

            balance = usage.bill_credits_balance + credits_granted
            apply_usage(user, usage)
            user.bill_credits_balance = balance
            user.updated_at = now
            self._user_repository.add_credit_purchase(
                BillCreditPurchase(
                    token_identifier=identity.token_identifier,
                    transaction_id=transaction_id,
                    product_id=product_id,
                    credits_granted=credits_granted,
                    purchased_at=payload.purchased_at or now,
                    created_at=now,
                )
            )
            self._session.commit()
            logger.info(
                "bill_credits_redeemed",
                extra={
                    "token_identifier": identity.token_identifier,
                    "transaction_id": transaction_id,
                    "credits_granted": credits_granted,
                    "balance": balance,
                },
            )
            return CreditRedemption(
                applied=True,
                transaction_id=transaction_id,
                credits_granted=credits_granted,
                bill_credits_balance=balance,
            )
        except Exception:
            self._session.rollback()
            raise
