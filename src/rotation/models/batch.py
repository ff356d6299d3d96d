"""Batch model - one round of invitations for a project."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import Column, Index
from sqlmodel import Field, SQLModel

from src.rotation.models.base import utc_now
from src.rotation.models.developer import JSONType
from src.rotation.models.enums import BatchStatus, BatchType


class Batch(SQLModel, table=True):
    """Invitation round. Candidates are fixed at creation; rows are never reused."""

    __tablename__ = "batches"
    __table_args__ = (Index("ix_batches_project_status", "project_id", "status"),)

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    project_id: UUID = Field(foreign_key="projects.id", index=True)
    batch_number: int = Field(default=1)
    status: str = Field(default=BatchStatus.ACTIVE.value, max_length=20)
    batch_type: str = Field(default=BatchType.AUTO_ROTATION.value, max_length=20)
    no_expire: bool = Field(default=False)
    level_mix: dict[str, int] = Field(default_factory=dict, sa_column=Column(JSONType, nullable=False))
    created_at: datetime = Field(default_factory=utc_now)
    closed_at: datetime | None = Field(default=None)

    @property
    def status_enum(self) -> BatchStatus:
        """Get status as BatchStatus enum."""
        return BatchStatus(self.status)

    @property
    def type_enum(self) -> BatchType:
        """Get batch type as BatchType enum."""
        return BatchType(self.batch_type)

    @property
    def is_active(self) -> bool:
        return self.status == BatchStatus.ACTIVE.value
