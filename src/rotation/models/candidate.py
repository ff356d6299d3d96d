"""Candidate model - a developer's invitation record for one batch."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import Index, text
from sqlmodel import Field, SQLModel

from src.rotation.models.base import utc_now
from src.rotation.models.enums import CandidateSource, DevLevel, ResponseStatus


class Candidate(SQLModel, table=True):
    """Invitation record.

    Mutated only through conditional updates in CandidateRepository; terminal
    rows are kept for recent-activity history.
    """

    __tablename__ = "candidates"
    __table_args__ = (
        Index("ix_candidates_batch_status", "batch_id", "response_status"),
        Index("ix_candidates_status_deadline", "response_status", "acceptance_deadline"),
        Index("ix_candidates_developer_status", "developer_id", "response_status"),
        # Storage-level backstop for first-accepted-wins
        Index(
            "uq_candidates_first_accepted_per_project",
            "project_id",
            unique=True,
            postgresql_where=text("is_first_accepted"),
            sqlite_where=text("is_first_accepted = 1"),
        ),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    batch_id: UUID = Field(foreign_key="batches.id")
    developer_id: UUID = Field(foreign_key="developers.id")
    project_id: UUID = Field(foreign_key="projects.id", index=True)
    level: str = Field(max_length=10)
    source: str = Field(default=CandidateSource.AUTO_ROTATION.value, max_length=20)
    response_status: str = Field(default=ResponseStatus.PENDING.value, max_length=20)
    assigned_at: datetime = Field(default_factory=utc_now)
    acceptance_deadline: datetime | None = Field(default=None)
    responded_at: datetime | None = Field(default=None)
    expired_at: datetime | None = Field(default=None)
    invalidated_at: datetime | None = Field(default=None)
    is_first_accepted: bool = Field(default=False)
    message: str | None = Field(default=None, max_length=300)

    @property
    def status_enum(self) -> ResponseStatus:
        """Get response status as ResponseStatus enum."""
        return ResponseStatus(self.response_status)

    @property
    def source_enum(self) -> CandidateSource:
        """Get source as CandidateSource enum."""
        return CandidateSource(self.source)

    @property
    def level_enum(self) -> DevLevel:
        """Get level as DevLevel enum."""
        return DevLevel(self.level)

    @property
    def is_pending(self) -> bool:
        return self.response_status == ResponseStatus.PENDING.value

    def deadline_passed(self, now: datetime) -> bool:
        """True once ``now`` has reached the acceptance deadline.

        Candidates without a deadline (no-expire batches) never pass it.
        """
        return self.acceptance_deadline is not None and self.acceptance_deadline <= now
