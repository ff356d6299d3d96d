"""Request/response schemas."""

from src.rotation.schemas.batch import (
    BatchDetailResponse,
    BatchRead,
    ComposeBatchRequest,
    LevelMixRequest,
    ManualInviteRequest,
    RefreshBatchRequest,
    RefreshBatchResponse,
)
from src.rotation.schemas.invitation import (
    CandidateRead,
    PendingInvitationsResponse,
    RespondResponse,
)
from src.rotation.schemas.pagination import PaginatedResponse, decode_cursor, encode_cursor
from src.rotation.schemas.sweep import SweepReportResponse, SweepRunRead

__all__ = [
    "BatchDetailResponse",
    "BatchRead",
    "CandidateRead",
    "ComposeBatchRequest",
    "LevelMixRequest",
    "ManualInviteRequest",
    "PaginatedResponse",
    "PendingInvitationsResponse",
    "RefreshBatchRequest",
    "RefreshBatchResponse",
    "RespondResponse",
    "SweepReportResponse",
    "SweepRunRead",
    "decode_cursor",
    "encode_cursor",
]
