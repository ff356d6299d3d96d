"""Project model - a unit of work posted by a client."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import Column
from sqlmodel import Field, SQLModel

from src.rotation.models.base import utc_now
from src.rotation.models.developer import JSONType
from src.rotation.models.enums import ProjectStatus


class Project(SQLModel, table=True):
    """Project posted by a client.

    ``accepted_candidate_id`` is the first-accepted-wins claim slot: it is
    only ever written by a conditional update guarded on ``IS NULL``.
    """

    __tablename__ = "projects"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    client_id: UUID = Field(index=True)
    client_email: str | None = Field(default=None, max_length=255)
    title: str = Field(max_length=200)
    description: str | None = Field(default=None, max_length=5000)
    skills_required: list[str] = Field(
        default_factory=list, sa_column=Column(JSONType, nullable=False)
    )
    status: str = Field(default=ProjectStatus.OPEN.value, max_length=20, index=True)
    current_batch_id: UUID | None = Field(default=None)
    accepted_candidate_id: UUID | None = Field(default=None)
    assigned_developer_id: UUID | None = Field(default=None, foreign_key="developers.id")
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def status_enum(self) -> ProjectStatus:
        """Get status as ProjectStatus enum."""
        return ProjectStatus(self.status)

    @property
    def is_claimed(self) -> bool:
        """A candidate has already won this project."""
        return self.accepted_candidate_id is not None
