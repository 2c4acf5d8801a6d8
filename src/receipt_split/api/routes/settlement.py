"""Settlement routes."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends

from receipt_split.api.dependencies import (
    get_notification_service,
    get_request_context,
    get_settlement_service,
)
from receipt_split.api.schemas.settlement import (
    ConfirmPaymentRequest,
    ConfirmPaymentResponse,
    FinalizeResponse,
    PaymentIntentRequest,
    PaymentIntentResponse,
)
from receipt_split.domain.identity import RequestContext
from receipt_split.services.notification_service import NotificationService
from receipt_split.services.settlement_service import SettlementService

router = APIRouter(prefix="/receipts/{code}/settlement", tags=["Settlement"])


@router.post(
    "/finalize",
    response_model=FinalizeResponse,
    responses={
        403: {"description": "Only the host can finalize"},
        422: {"description": "Split is not ready to finalize"},
    },
)
def finalize_settlement(
    code: str,
    context: Annotated[RequestContext, Depends(get_request_context)],
    service: Annotated[SettlementService, Depends(get_settlement_service)],
) -> FinalizeResponse:
    receipt = service.finalize_settlement(code, context)
    return FinalizeResponse.from_model(receipt)


@router.post("/payment-intent", response_model=PaymentIntentResponse)
def mark_payment_intent(
    code: str,
    payload: PaymentIntentRequest,
    background_tasks: BackgroundTasks,
    context: Annotated[RequestContext, Depends(get_request_context)],
    service: Annotated[SettlementService, Depends(get_settlement_service)],
    notifications: Annotated[NotificationService, Depends(get_notification_service)],
) -> PaymentIntentResponse:
    """Declare a payment; the host is notified after the response is sent."""

    result = service.mark_payment_intent(code, context, payload.payment_method)
    background_tasks.add_task(notifications.deliver, result.notification)
    return PaymentIntentResponse.from_result(result)


@router.post("/confirmations", response_model=ConfirmPaymentResponse)
def confirm_payment(
    code: str,
    payload: ConfirmPaymentRequest,
    context: Annotated[RequestContext, Depends(get_request_context)],
    service: Annotated[SettlementService, Depends(get_settlement_service)],
) -> ConfirmPaymentResponse:
    result = service.confirm_payment(code, context, payload.participant_key)
    return ConfirmPaymentResponse.from_result(result)
