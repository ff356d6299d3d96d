"""Typed outcomes returned by the assignment lifecycle services.

Expected failures are values, not exceptions: callers branch on ``error``
and map it to a response.
"""

from dataclasses import dataclass, field
from enum import StrEnum
from uuid import UUID

from src.rotation.models import Batch, Candidate


class RotationError(StrEnum):
    NOT_FOUND = "NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"
    ALREADY_RESPONDED = "ALREADY_RESPONDED"
    DEADLINE_PASSED = "DEADLINE_PASSED"
    CONFLICT = "CONFLICT"
    TRANSIENT_STORE_ERROR = "TRANSIENT_STORE_ERROR"
    INVALID_STATE = "INVALID_STATE"

    @property
    def message(self) -> str:
        """User-facing message for the error kind."""
        return ERROR_MESSAGES[self]


ERROR_MESSAGES: dict[RotationError, str] = {
    RotationError.NOT_FOUND: "Invitation not found",
    RotationError.FORBIDDEN: "You can only respond to your own invitations",
    RotationError.ALREADY_RESPONDED: "You already responded to this invitation",
    RotationError.DEADLINE_PASSED: "Invitation expired",
    RotationError.CONFLICT: (
        "This project was already accepted by someone else, please refresh"
    ),
    RotationError.TRANSIENT_STORE_ERROR: "Temporary storage failure, please retry",
    RotationError.INVALID_STATE: "Operation not allowed in the current state",
}


@dataclass(frozen=True)
class RespondOutcome:
    """Result of respond(): exactly one of candidate/error is set."""

    candidate: Candidate | None = None
    error: RotationError | None = None
    detail: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, candidate: Candidate) -> "RespondOutcome":
        return cls(candidate=candidate)

    @classmethod
    def failure(cls, error: RotationError, detail: str | None = None) -> "RespondOutcome":
        return cls(error=error, detail=detail or error.message)


@dataclass(frozen=True)
class ExpireResult:
    """Result of expire_stale(): count plus the batches that were touched."""

    expired_count: int
    batch_ids: list[UUID] = field(default_factory=list)


@dataclass(frozen=True)
class RefreshResult:
    """Result of refresh_batch()."""

    new_batch_id: UUID | None
    refreshed: bool
    reason: str | None = None
    candidate_count: int = 0
    repeats_allowed: bool = False


@dataclass(frozen=True)
class BatchOutcome:
    """Result of compose/manual-invite operations."""

    batch: Batch | None = None
    candidates: list[Candidate] = field(default_factory=list)
    error: RotationError | None = None
    detail: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, error: RotationError, detail: str | None = None) -> "BatchOutcome":
        return cls(error=error, detail=detail or error.message)


@dataclass(frozen=True)
class SweepReport:
    """Summary of one sweep run."""

    sweep_run_id: UUID | None
    expired_count: int
    refreshed_batches: list[UUID] = field(default_factory=list)
    exhausted_batches: list[UUID] = field(default_factory=list)
    failed_batches: list[UUID] = field(default_factory=list)
    repaired_candidates: int = 0

    def as_dict(self) -> dict[str, object]:
        return {
            "sweep_run_id": str(self.sweep_run_id) if self.sweep_run_id else None,
            "expired_count": self.expired_count,
            "refreshed_batches": [str(b) for b in self.refreshed_batches],
            "exhausted_batches": [str(b) for b in self.exhausted_batches],
            "failed_batches": [str(b) for b in self.failed_batches],
            "repaired_candidates": self.repaired_candidates,
        }
