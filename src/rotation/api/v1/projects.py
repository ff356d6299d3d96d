"""Project batch endpoints: compose, refresh, close, manual invite."""

from uuid import UUID

from fastapi import APIRouter, status

from src.rotation.api.dependencies import BatchServiceDep
from src.rotation.api.errors import rotation_http_error
from src.rotation.schemas.batch import (
    BatchDetailResponse,
    BatchRead,
    ComposeBatchRequest,
    LevelMixRequest,
    ManualInviteRequest,
    RefreshBatchRequest,
    RefreshBatchResponse,
)
from src.rotation.schemas.invitation import CandidateRead
from src.rotation.services.policies import LevelMix
from src.rotation.services.results import BatchOutcome

router = APIRouter(prefix="/projects", tags=["projects"])


def _detail(outcome: BatchOutcome) -> BatchDetailResponse:
    if outcome.error is not None:
        raise rotation_http_error(outcome.error, outcome.detail)
    return BatchDetailResponse(
        batch=BatchRead.model_validate(outcome.batch),
        candidates=[CandidateRead.model_validate(c) for c in outcome.candidates],
    )


def _level_mix(requested: LevelMixRequest | None) -> LevelMix | None:
    if requested is None:
        return None
    return LevelMix(expert=requested.expert, mid=requested.mid, fresher=requested.fresher)


@router.post(
    "/{project_id}/batches",
    response_model=BatchDetailResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Compose batch",
    description=(
        "Invite a new round of developers. Supersedes the active batch. "
        "Unfilled EXPERT slots go to MID developers, unfilled MID slots to FRESHER."
    ),
)
async def compose_batch(
    project_id: UUID,
    request: ComposeBatchRequest,
    service: BatchServiceDep,
) -> BatchDetailResponse:
    return _detail(await service.compose_batch(project_id, _level_mix(request.level_mix)))


@router.post(
    "/{project_id}/batches/refresh",
    response_model=RefreshBatchResponse,
    summary="Refresh batch",
    description=(
        "Replace the latest batch, skipping developers who declined or were passed over. "
        "Falls back to re-inviting them when nobody else is left. "
        "Without a level mix the previous batch's mix is reused."
    ),
)
async def refresh_batch(
    project_id: UUID,
    service: BatchServiceDep,
    request: RefreshBatchRequest | None = None,
) -> RefreshBatchResponse:
    mix = _level_mix(request.level_mix) if request is not None else None
    result = await service.refresh_batch(project_id, mix)
    return RefreshBatchResponse(
        refreshed=result.refreshed,
        new_batch_id=result.new_batch_id,
        candidate_count=result.candidate_count,
        repeats_allowed=result.repeats_allowed,
        reason=result.reason,
    )


@router.post(
    "/{project_id}/batches/close",
    response_model=BatchDetailResponse,
    summary="Close active batch",
    description="Close the active batch without a successor. Pending invitations are invalidated.",
)
async def close_batch(project_id: UUID, service: BatchServiceDep) -> BatchDetailResponse:
    return _detail(await service.close_batch(project_id))


@router.get(
    "/{project_id}/batches/current",
    response_model=BatchDetailResponse,
    summary="Current batch",
)
async def current_batch(project_id: UUID, service: BatchServiceDep) -> BatchDetailResponse:
    return _detail(await service.current_batch(project_id))


@router.post(
    "/{project_id}/invites/manual",
    response_model=BatchDetailResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Invite developer directly",
    description="Invite one developer outside rotation. Manual invitations never expire.",
)
async def invite_manually(
    project_id: UUID,
    request: ManualInviteRequest,
    service: BatchServiceDep,
) -> BatchDetailResponse:
    return _detail(await service.invite_manually(project_id, request.developer_id, request.message))
