"""Receipt store routes."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status

from receipt_split.api.dependencies import get_receipt_service, get_request_context
from receipt_split.api.schemas.receipts import (
    CreateReceiptRequest,
    CreateReceiptResponse,
    ReceiptResponse,
    ReceiptStatusResponse,
    RecentReceiptsResponse,
)
from receipt_split.domain.identity import RequestContext
from receipt_split.services.receipt_service import ReceiptService

router = APIRouter(prefix="/receipts", tags=["Receipts"])


@router.post(
    "",
    response_model=CreateReceiptResponse,
    responses={
        200: {"description": "Receipt re-submitted"},
        201: {"description": "Receipt created"},
        401: {"description": "No owner identity"},
        402: {"description": "Bill allowance exhausted"},
    },
)
def create_receipt(
    payload: CreateReceiptRequest,
    response: Response,
    context: Annotated[RequestContext, Depends(get_request_context)],
    service: Annotated[ReceiptService, Depends(get_receipt_service)],
) -> CreateReceiptResponse:
    """Create a receipt, or replace the items of the caller's existing one."""

    result = service.create(context, payload.to_input())
    response.status_code = (
        status.HTTP_201_CREATED if result.created else status.HTTP_200_OK
    )
    return CreateReceiptResponse.from_result(result)


@router.get("", response_model=RecentReceiptsResponse)
def list_recent_receipts(
    context: Annotated[RequestContext, Depends(get_request_context)],
    service: Annotated[ReceiptService, Depends(get_receipt_service)],
    limit: Annotated[int | None, Query(ge=1, le=100)] = None,
    include_archived: bool = False,
) -> RecentReceiptsResponse:
    """Receipts the caller owns or joined, newest first."""

    views = service.list_recent(
        context,
        limit=limit,
        include_archived=include_archived,
    )
    return RecentReceiptsResponse.from_views(views)


@router.get("/{code}", response_model=ReceiptResponse | None)
def get_receipt(
    code: str,
    context: Annotated[RequestContext, Depends(get_request_context)],
    service: Annotated[ReceiptService, Depends(get_receipt_service)],
) -> ReceiptResponse | None:
    view = service.get(code, context)
    return ReceiptResponse.from_view(view) if view else None


@router.post("/{code}/join", response_model=ReceiptResponse | None)
def join_receipt(
    code: str,
    context: Annotated[RequestContext, Depends(get_request_context)],
    service: Annotated[ReceiptService, Depends(get_receipt_service)],
) -> ReceiptResponse | None:
    """Add the caller to the roster of a shared receipt."""

    view = service.join(code, context)
    return ReceiptResponse.from_view(view) if view else None


@router.post("/owned/{client_receipt_id}/archive", response_model=ReceiptStatusResponse)
def archive_receipt(
    client_receipt_id: str,
    context: Annotated[RequestContext, Depends(get_request_context)],
    service: Annotated[ReceiptService, Depends(get_receipt_service)],
) -> ReceiptStatusResponse:
    return ReceiptStatusResponse(found=service.archive(context, client_receipt_id))


@router.post(
    "/owned/{client_receipt_id}/unarchive",
    response_model=ReceiptStatusResponse,
)
def unarchive_receipt(
    client_receipt_id: str,
    context: Annotated[RequestContext, Depends(get_request_context)],
    service: Annotated[ReceiptService, Depends(get_receipt_service)],
) -> ReceiptStatusResponse:
    return ReceiptStatusResponse(found=service.unarchive(context, client_receipt_id))


@router.delete("/owned/{client_receipt_id}", response_model=ReceiptStatusResponse)
def destroy_receipt(
    client_receipt_id: str,
    context: Annotated[RequestContext, Depends(get_request_context)],
    service: Annotated[ReceiptService, Depends(get_receipt_service)],
) -> ReceiptStatusResponse:
    """Delete the receipt with its items, claims and roster."""

    return ReceiptStatusResponse(found=service.destroy(context, client_receipt_id))
