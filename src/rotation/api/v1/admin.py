"""Operational endpoints: manual sweep trigger and sweep history."""

from typing import Annotated

from fastapi import APIRouter, Query

from src.rotation.api.dependencies import CronAuthorized, DBSession, SweepServiceDep
from src.rotation.schemas.pagination import PaginatedResponse
from src.rotation.schemas.sweep import SweepReportResponse, SweepRunRead
from src.rotation.services.sweep_service import list_sweep_runs

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post(
    "/sweep",
    response_model=SweepReportResponse,
    summary="Run sweep now",
    description=(
        "Expire stale invitations, then exhaust and refresh the affected batches. "
        "Requires X-Cron-Secret when a cron secret is configured."
    ),
    responses={
        401: {"description": "Invalid or missing cron secret"},
        503: {"description": "Temporary storage failure"},
    },
)
async def run_sweep(_: CronAuthorized, service: SweepServiceDep) -> SweepReportResponse:
    report = await service.run_sweep()
    return SweepReportResponse(
        sweep_run_id=report.sweep_run_id,
        expired_count=report.expired_count,
        refreshed_batches=report.refreshed_batches,
        exhausted_batches=report.exhausted_batches,
        failed_batches=report.failed_batches,
        repaired_candidates=report.repaired_candidates,
    )


@router.get(
    "/sweep-runs",
    response_model=PaginatedResponse[SweepRunRead],
    summary="List sweep runs",
)
async def list_runs(
    _: CronAuthorized,
    session: DBSession,
    cursor: Annotated[str | None, Query(description="Cursor from previous page")] = None,
    limit: Annotated[int, Query(ge=1, le=100, description="Page size")] = 20,
) -> PaginatedResponse[SweepRunRead]:
    items, next_cursor, has_more = await list_sweep_runs(session, cursor, limit)
    return PaginatedResponse(
        items=[SweepRunRead.model_validate(r) for r in items],
        next_cursor=next_cursor,
        has_more=has_more,
    )
