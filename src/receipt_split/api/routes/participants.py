"""Participant registry routes."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from receipt_split.api.dependencies import get_participant_service, get_request_context
from receipt_split.api.schemas.participants import (
    DisplayNameRequest,
    ParticipantResponse,
    RemoveParticipantResponse,
    SubmissionRequest,
)
from receipt_split.domain.identity import RequestContext
from receipt_split.services.participant_service import ParticipantService

router = APIRouter(prefix="/receipts/{code}/participants", tags=["Participants"])


@router.put("/me/submission", response_model=ParticipantResponse)
def set_submission_status(
    code: str,
    payload: SubmissionRequest,
    context: Annotated[RequestContext, Depends(get_request_context)],
    service: Annotated[ParticipantService, Depends(get_participant_service)],
) -> ParticipantResponse:
    row = service.set_submission_status(
        code,
        context,
        is_submitted=payload.is_submitted,
    )
    return ParticipantResponse.from_model(row)


@router.patch("/me", response_model=ParticipantResponse)
def update_display_name(
    code: str,
    payload: DisplayNameRequest,
    context: Annotated[RequestContext, Depends(get_request_context)],
    service: Annotated[ParticipantService, Depends(get_participant_service)],
) -> ParticipantResponse:
    row = service.update_display_name(code, context, payload.display_name)
    return ParticipantResponse.from_model(row)


@router.delete(
    "/{participant_key}",
    response_model=RemoveParticipantResponse,
    responses={403: {"description": "Only the host can remove participants"}},
)
def remove_participant(
    code: str,
    participant_key: str,
    context: Annotated[RequestContext, Depends(get_request_context)],
    service: Annotated[ParticipantService, Depends(get_participant_service)],
) -> RemoveParticipantResponse:
    """Remove a participant and drop their claims."""

    removed = service.remove_participant(code, context, participant_key)
    return RemoveParticipantResponse(removed=removed)
