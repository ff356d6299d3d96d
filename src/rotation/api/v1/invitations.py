"""Developer invitation endpoints: respond, pending list, recent activity."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query

from src.rotation.api.dependencies import AssignmentServiceDep, DeveloperId
from src.rotation.api.errors import rotation_http_error
from src.rotation.models import RespondAction
from src.rotation.schemas.invitation import (
    CandidateRead,
    PendingInvitationsResponse,
    RespondResponse,
)
from src.rotation.schemas.pagination import PaginatedResponse

router = APIRouter(prefix="/invitations", tags=["invitations"])

_RESPOND_ERRORS = {
    403: {"description": "Invitation belongs to another developer"},
    404: {"description": "Invitation not found"},
    409: {"description": "Already responded, or project accepted by someone else"},
    410: {"description": "Acceptance deadline passed"},
    503: {"description": "Temporary storage failure"},
}


async def _respond(
    candidate_id: UUID,
    action: RespondAction,
    developer_id: UUID,
    service: AssignmentServiceDep,
) -> RespondResponse:
    outcome = await service.respond(candidate_id, action, developer_id)
    if outcome.error is not None:
        raise rotation_http_error(outcome.error, outcome.detail)
    message = (
        "Invitation accepted, the project is yours"
        if action is RespondAction.ACCEPT
        else "Invitation declined"
    )
    return RespondResponse(candidate=CandidateRead.model_validate(outcome.candidate), message=message)


@router.post(
    "/{candidate_id}/accept",
    response_model=RespondResponse,
    summary="Accept invitation",
    description="Accept an invitation. The first developer to accept wins the project.",
    responses=_RESPOND_ERRORS,
)
async def accept_invitation(
    candidate_id: UUID,
    developer_id: DeveloperId,
    service: AssignmentServiceDep,
) -> RespondResponse:
    return await _respond(candidate_id, RespondAction.ACCEPT, developer_id, service)


@router.post(
    "/{candidate_id}/reject",
    response_model=RespondResponse,
    summary="Reject invitation",
    responses=_RESPOND_ERRORS,
)
async def reject_invitation(
    candidate_id: UUID,
    developer_id: DeveloperId,
    service: AssignmentServiceDep,
) -> RespondResponse:
    return await _respond(candidate_id, RespondAction.REJECT, developer_id, service)


@router.get(
    "/pending",
    response_model=PendingInvitationsResponse,
    summary="List pending invitations",
    description="Invitations the developer can still answer, newest first.",
)
async def list_pending(
    developer_id: DeveloperId,
    service: AssignmentServiceDep,
) -> PendingInvitationsResponse:
    candidates = await service.pending_invitations(developer_id)
    return PendingInvitationsResponse(
        invitations=[CandidateRead.model_validate(c) for c in candidates],
        total=len(candidates),
    )


@router.get(
    "/activity",
    response_model=PaginatedResponse[CandidateRead],
    summary="Recent invitation activity",
    description="Answered, expired and invalidated invitations with cursor pagination.",
)
async def recent_activity(
    developer_id: DeveloperId,
    service: AssignmentServiceDep,
    cursor: Annotated[str | None, Query(description="Cursor from previous page")] = None,
    limit: Annotated[int, Query(ge=1, le=100, description="Page size")] = 20,
) -> PaginatedResponse[CandidateRead]:
    items, next_cursor, has_more = await service.recent_activity(developer_id, cursor, limit)
    return PaginatedResponse(
        items=[CandidateRead.model_validate(c) for c in items],
        next_cursor=next_cursor,
        has_more=has_more,
    )
