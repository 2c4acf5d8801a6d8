"""Schemas for account profile and billing endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from receipt_split.db.models.user import User
from receipt_split.services.billing_service import CreditRedemption, UsageSummary
from receipt_split.services.user_service import UpdateProfileInput


class UserResponse(BaseModel):
    token_identifier: str
    name: str | None
    email: str | None
    preferred_payment_method: str | None
    absorb_extra_cents: bool
    venmo_enabled: bool
    venmo_username: str | None
    cash_app_enabled: bool
    cash_app_cashtag: str | None
    zelle_enabled: bool
    zelle_contact: str | None
    cash_apple_pay_enabled: bool
    created_at: datetime

    @classmethod
    def from_model(cls, user: User) -> UserResponse:
        return cls(
            token_identifier=user.token_identifier,
            name=user.name,
            email=user.email,
            preferred_payment_method=user.preferred_payment_method,
            absorb_extra_cents=user.absorb_extra_cents is True,
            venmo_enabled=user.venmo_enabled is True,
            venmo_username=user.venmo_username,
            cash_app_enabled=user.cash_app_enabled is True,
            cash_app_cashtag=user.cash_app_cashtag,
            zelle_enabled=user.zelle_enabled is True,
            zelle_contact=user.zelle_contact,
            cash_apple_pay_enabled=user.cash_apple_pay_enabled is True,
            created_at=user.created_at,
        )


class UpdateProfileRequest(BaseModel):
    """Partial profile update; omitted fields stay unchanged."""

    name: str | None = Field(default=None, max_length=120)
    preferred_payment_method: str | None = Field(default=None, max_length=32)
    absorb_extra_cents: bool | None = None
    venmo_enabled: bool | None = None
    venmo_username: str | None = Field(default=None, max_length=120)
    cash_app_enabled: bool | None = None
    cash_app_cashtag: str | None = Field(default=None, max_length=120)
    zelle_enabled: bool | None = None
    zelle_contact: str | None = Field(default=None, max_length=320)
    cash_apple_pay_enabled: bool | None = None

    def to_input(self) -> UpdateProfileInput:
        return UpdateProfileInput(**self.model_dump())


class UsageSummaryResponse(BaseModel):
    free_limit: int
    free_used: int
    free_remaining: int
    period_start_at: datetime
    period_end_at: datetime
    bill_credits_balance: int
    can_host_new_bill: bool

    @classmethod
    def from_summary(cls, summary: UsageSummary) -> UsageSummaryResponse:
        return cls(
            free_limit=summary.free_limit,
            free_used=summary.free_used,
            free_remaining=summary.free_remaining,
            period_start_at=summary.period_start_at,
            period_end_at=summary.period_end_at,
            bill_credits_balance=summary.bill_credits_balance,
            can_host_new_bill=summary.can_host_new_bill,
        )


class RedeemCreditPurchaseRequest(BaseModel):
    transaction_id: str = Field(max_length=200)
    product_id: str = Field(min_length=1, max_length=200)
    purchased_at: datetime | None = None


class CreditRedemptionResponse(BaseModel):
    applied: bool
    transaction_id: str
    credits_granted: int
    bill_credits_balance: int

    @classmethod
    def from_result(cls, result: CreditRedemption) -> CreditRedemptionResponse:
        return cls(
            applied=result.applied,
            transaction_id=result.transaction_id,
            credits_granted=result.credits_granted,
            bill_credits_balance=result.bill_credits_balance,
        )


class MigrateGuestRequest(BaseModel):
    guest_device_id: str = Field(max_length=64)


class MigrationResponse(BaseModel):
    migrated_receipt_count: int
    migrated_participant_count: int
    migrated_claim_count: int
