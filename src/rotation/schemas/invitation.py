"""Invitation (candidate) schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class CandidateRead(BaseModel):
    """One invitation as seen by the developer or the client."""

    id: UUID
    batch_id: UUID
    project_id: UUID
    developer_id: UUID
    level: str
    source: str
    response_status: str
    assigned_at: datetime
    acceptance_deadline: datetime | None
    responded_at: datetime | None
    expired_at: datetime | None
    invalidated_at: datetime | None
    is_first_accepted: bool
    message: str | None

    model_config = {"from_attributes": True}


class RespondResponse(BaseModel):
    """Response after accepting or rejecting an invitation."""

    candidate: CandidateRead
    message: str


class PendingInvitationsResponse(BaseModel):
    invitations: list[CandidateRead]
    total: int
