"""Sweep schemas."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel


class SweepReportResponse(BaseModel):
    """Summary of a sweep run triggered through the API."""

    sweep_run_id: UUID | None
    expired_count: int
    refreshed_batches: list[UUID]
    exhausted_batches: list[UUID]
    failed_batches: list[UUID]
    repaired_candidates: int


class SweepRunRead(BaseModel):
    id: UUID
    job: str
    status: str
    expired_count: int
    refreshed_batches: int
    failed_batches: int
    details: dict[str, Any]
    started_at: datetime
    finished_at: datetime | None

    model_config = {"from_attributes": True}
