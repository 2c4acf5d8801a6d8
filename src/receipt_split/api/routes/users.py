"""Account, billing and migration routes."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from receipt_split.api.dependencies import (
    get_billing_service,
    get_migration_service,
    get_user_service,
    get_verified_identity,
)
from receipt_split.api.schemas.users import (
    CreditRedemptionResponse,
    MigrateGuestRequest,
    MigrationResponse,
    RedeemCreditPurchaseRequest,
    UpdateProfileRequest,
    UsageSummaryResponse,
    UserResponse,
)
from receipt_split.domain.identity import VerifiedIdentity
from receipt_split.services.billing_service import (
    BillingService,
    RedeemCreditPurchaseInput,
)
from receipt_split.services.migration_service import MigrationService
from receipt_split.services.user_service import UserService

router = APIRouter(prefix="/users/me", tags=["Users"])


@router.put("", response_model=UserResponse)
def upsert_me(
    identity: Annotated[VerifiedIdentity, Depends(get_verified_identity)],
    service: Annotated[UserService, Depends(get_user_service)],
) -> UserResponse:
    """Create or refresh the caller's account profile."""

    return UserResponse.from_model(service.upsert_me(identity))


@router.get("", response_model=UserResponse | None)
def get_me(
    identity: Annotated[VerifiedIdentity, Depends(get_verified_identity)],
    service: Annotated[UserService, Depends(get_user_service)],
) -> UserResponse | None:
    user = service.get_me(identity)
    return UserResponse.from_model(user) if user else None


@router.patch("", response_model=UserResponse)
def update_profile(
    payload: UpdateProfileRequest,
    identity: Annotated[VerifiedIdentity, Depends(get_verified_identity)],
    service: Annotated[UserService, Depends(get_user_service)],
) -> UserResponse:
    return UserResponse.from_model(service.update_profile(identity, payload.to_input()))


@router.get("/usage", response_model=UsageSummaryResponse)
def get_usage_summary(
    identity: Annotated[VerifiedIdentity, Depends(get_verified_identity)],
    service: Annotated[BillingService, Depends(get_billing_service)],
) -> UsageSummaryResponse:
    """Free bills left in the current period and the credit balance."""

    return UsageSummaryResponse.from_summary(service.usage_summary(identity))


@router.post("/credit-purchases", response_model=CreditRedemptionResponse)
def redeem_credit_purchase(
    payload: RedeemCreditPurchaseRequest,
    identity: Annotated[VerifiedIdentity, Depends(get_verified_identity)],
    service: Annotated[BillingService, Depends(get_billing_service)],
) -> CreditRedemptionResponse:
    result = service.redeem_credit_purchase(
        identity,
        RedeemCreditPurchaseInput(
            transaction_id=payload.transaction_id,
            product_id=payload.product_id,
            purchased_at=payload.purchased_at,
        ),
    )
    return CreditRedemptionResponse.from_result(result)


@router.post("/migrations/guest", response_model=MigrationResponse)
def migrate_guest_data(
    payload: MigrateGuestRequest,
    identity: Annotated[VerifiedIdentity, Depends(get_verified_identity)],
    service: Annotated[MigrationService, Depends(get_migration_service)],
) -> MigrationResponse:
    """Move receipts, roster rows and claims of a guest device to the caller."""

    result = service.migrate(identity, payload.guest_device_id)
    return MigrationResponse(
        migrated_receipt_count=result.migrated_receipt_count,
        migrated_participant_count=result.migrated_participant_count,
        migrated_claim_count=result.migrated_claim_count,
    )
