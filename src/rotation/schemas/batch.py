"""Batch schemas."""

from datetime import datetime
from typing import Self
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from src.rotation.schemas.invitation import CandidateRead


class LevelMixRequest(BaseModel):
    """Requested candidates per tier. Omitted tiers request none."""

    expert: int = Field(default=0, ge=0, le=50)
    mid: int = Field(default=0, ge=0, le=50)
    fresher: int = Field(default=0, ge=0, le=50)

    @model_validator(mode="after")
    def validate_not_empty(self) -> Self:
        if self.expert + self.mid + self.fresher == 0:
            raise ValueError("Level mix must request at least one candidate")
        return self


class ComposeBatchRequest(BaseModel):
    """Request to compose a batch. Without a mix the configured default is used."""

    level_mix: LevelMixRequest | None = None


class RefreshBatchRequest(BaseModel):
    """Request to refresh a batch. Without a mix the previous batch's mix is reused."""

    level_mix: LevelMixRequest | None = None


class ManualInviteRequest(BaseModel):
    """Request to invite one developer directly."""

    developer_id: UUID
    message: str | None = Field(default=None, max_length=300)


class BatchRead(BaseModel):
    id: UUID
    project_id: UUID
    batch_number: int
    status: str
    batch_type: str
    no_expire: bool
    level_mix: dict[str, int]
    created_at: datetime
    closed_at: datetime | None

    model_config = {"from_attributes": True}


class BatchDetailResponse(BaseModel):
    """A batch with all of its candidates."""

    batch: BatchRead
    candidates: list[CandidateRead]


class RefreshBatchResponse(BaseModel):
    refreshed: bool
    new_batch_id: UUID | None
    candidate_count: int
    repeats_allowed: bool
    reason: str | None = None
