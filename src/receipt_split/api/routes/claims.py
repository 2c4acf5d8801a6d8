"""Claim ledger routes."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from receipt_split.api.dependencies import get_claim_service, get_request_context
from receipt_split.api.schemas.claims import (
    LiveViewResponse,
    UpdateClaimRequest,
    UpdateClaimResponse,
)
from receipt_split.domain.identity import RequestContext
from receipt_split.services.claim_service import ClaimService

router = APIRouter(prefix="/receipts/{code}", tags=["Claims"])


@router.get("/live", response_model=LiveViewResponse | None)
def get_live_view(
    code: str,
    context: Annotated[RequestContext, Depends(get_request_context)],
    service: Annotated[ClaimService, Depends(get_claim_service)],
) -> LiveViewResponse | None:
    """Items with claimed and remaining quantities plus settlement totals."""

    view = service.live(code, context)
    return LiveViewResponse.from_view(view) if view else None


@router.post(
    "/claims",
    response_model=UpdateClaimResponse,
    responses={
        404: {"description": "Receipt or item not found"},
        409: {"description": "Finalized or submitted"},
    },
)
def update_claim(
    code: str,
    payload: UpdateClaimRequest,
    context: Annotated[RequestContext, Depends(get_request_context)],
    service: Annotated[ClaimService, Depends(get_claim_service)],
) -> UpdateClaimResponse:
    """Claim or release units; the applied delta may be smaller than asked."""

    change = service.update_claim(
        code,
        context,
        item_key=payload.item_key,
        delta=payload.delta,
    )
    return UpdateClaimResponse.from_change(change)
